"""Outbound request composition by placeholder substitution into a JSON template."""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from riskgen.shared.errors import ConfigurationError, TemplateError

PLACEHOLDERS = (
    "IP",
    "NAME",
    "MAIL",
    "AGENT",
    "FORCED_RISK_LEVEL",
    "FINGERPRINT",
    "USER_ID",
    "DEVICE_ID",
    "RISK_POLICY_ID",
    "CLIENT_ID",
)


def substitute(template: str, fields: Mapping[str, Any]) -> str:
    """Replace every ``{NAME}`` token with its value. ``None`` becomes an empty string."""
    text = template
    for name, value in fields.items():
        text = text.replace("{" + name + "}", "" if value is None else str(value))
    return text


def build_request(template: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    rendered = substitute(template, fields)
    try:
        body = json.loads(rendered)
    except json.JSONDecodeError as exc:
        raise TemplateError(
            f"request is not valid JSON after substitution (line {exc.lineno}, col {exc.colno})"
        ) from exc
    if not isinstance(body, dict):
        raise TemplateError(f"request root must be a JSON object, got {type(body).__name__}")
    return body


class RequestBuilder:
    """Holds one template for the lifetime of a run."""

    def __init__(self, template: str):
        self.template = template

    @classmethod
    def from_file(cls, path: str | Path) -> "RequestBuilder":
        try:
            return cls(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(f"request template not found: {path}") from exc

    def build(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return build_request(self.template, fields)
