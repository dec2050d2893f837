"""Pydantic models for synthetic identities."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class BrowserKind(StrEnum):
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class IdentityProfile(BaseModel):
    """Persisted synthetic attributes of one identity.

    Serialized with the store's historical JSON keys (``user``, ``ip``,
    ``agent``, ``deviceID``...). ``key``, ``device_id`` and ``email`` are
    fixed at creation; ``user_agent`` is the only field refreshed later.
    """

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="user")
    display_name: str | None = Field(default=None, alias="name")
    email: str | None = None
    source_ip: str | None = Field(default=None, alias="ip")
    user_agent: str | None = Field(default=None, alias="agent")
    device_id: str | None = Field(default=None, alias="deviceID")
    assigned_browser: BrowserKind | None = Field(default=None, alias="browser")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
