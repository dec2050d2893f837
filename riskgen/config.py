"""Run configuration via environment variables."""

from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings

from riskgen.shared.errors import ConfigurationError

BUNDLED_TEMPLATE = Path(__file__).parent / "templates" / "sdk_request.json"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/132.0.0.0 Safari/537.36"
)


class UserSource(StrEnum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class SelectionMode(StrEnum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"


class Settings(BaseSettings):
    app_name: str = "riskgen"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "console"

    # Credentials and tenant
    client_id: str = ""
    client_secret: str = ""
    envid: str = ""
    risk_policy_id: str = ""
    auth_base_url: str = "https://auth.pingone.com"
    api_base_url: str = "https://api.pingone.com/v1"
    http_timeout_seconds: float = 30.0

    # Run shape
    number_of_total_runs: int = 10
    number_of_concurrent_runs: int = 20
    process_users_sequentially: bool = False
    user_source: UserSource = UserSource.INTERNAL
    seed: int | None = None

    # Traffic variation
    include_sdk: bool = False
    include_badactors: bool = False
    bad_actor_probability: float = 0.2
    forced_risk_level: str = "false"
    randomize_browser: bool = False
    default_user_agent: str = DEFAULT_USER_AGENT

    # Feedback
    include_feedback: bool = False
    feedback_category: str = "LEGITIMATE"
    feedback_delay_seconds: float = 0.0

    # Files
    data_dir: str = "data"
    request_template: str = "sdkRequestData.json"
    profiles_file: str = "user_profiles.json"

    # Fingerprint test page
    test_domain: str = "localhost"
    test_port: int = 3000
    fingerprint_password: str = "2FederateMore!"
    fingerprint_timeout_seconds: float = 60.0
    headless: bool = True

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> "Settings":
        """Load settings with a YAML file layered over the environment."""
        try:
            with open(path) as f:
                values = yaml.safe_load(f) or {}
        except FileNotFoundError as exc:
            raise ConfigurationError(f"config file not found: {path}") from exc
        if not isinstance(values, dict):
            raise ConfigurationError(f"config file must contain a mapping: {path}")
        values.update(overrides)
        return cls(**values)

    @property
    def selection_mode(self) -> SelectionMode:
        if self.process_users_sequentially:
            return SelectionMode.SEQUENTIAL
        return SelectionMode.RANDOM

    @property
    def identity_file(self) -> Path:
        name = "external_Users" if self.user_source == UserSource.EXTERNAL else "internal_Users"
        return Path(self.data_dir) / name

    @property
    def profiles_path(self) -> Path:
        return Path(self.data_dir) / self.profiles_file

    @property
    def template_path(self) -> Path:
        candidate = Path(self.data_dir) / self.request_template
        return candidate if candidate.exists() else BUNDLED_TEMPLATE

    @property
    def test_page_url(self) -> str:
        return f"http://{self.test_domain}:{self.test_port}/test"

    def validate_run(self) -> None:
        """Reject settings that cannot produce a run."""
        missing = [
            name for name in ("client_id", "client_secret", "envid") if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"missing required settings: {', '.join(missing)}")
        if self.number_of_concurrent_runs < 1:
            raise ConfigurationError("number_of_concurrent_runs must be at least 1")
        if self.number_of_total_runs < 0:
            raise ConfigurationError("number_of_total_runs must not be negative")
        if not 0.0 <= self.bad_actor_probability <= 1.0:
            raise ConfigurationError("bad_actor_probability must be within [0, 1]")
        if self.feedback_delay_seconds < 0:
            raise ConfigurationError("feedback_delay_seconds must not be negative")

