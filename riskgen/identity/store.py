"""JSON-file backed identity profile store, loaded once and saved once per run."""

import json
from collections.abc import Iterator
from pathlib import Path

import structlog
from pydantic import ValidationError

from riskgen.shared.errors import ConfigurationError

from .models import IdentityProfile

logger = structlog.get_logger()


class ProfileStore:
    def __init__(self, path: str | Path, profiles: dict[str, IdentityProfile] | None = None):
        self.path = Path(path)
        self._profiles: dict[str, IdentityProfile] = profiles or {}

    @classmethod
    def load(cls, path: str | Path) -> "ProfileStore":
        """Read the store file. A missing file yields an empty store."""
        path = Path(path)
        if not path.exists():
            logger.info("profile_store_created", path=str(path))
            return cls(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"profile store is not valid JSON: {path}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"profile store must be a JSON object: {path}")

        profiles: dict[str, IdentityProfile] = {}
        for key, record in raw.items():
            try:
                profiles[key] = IdentityProfile.model_validate({**record, "user": key})
            except (TypeError, ValidationError) as exc:
                raise ConfigurationError(f"invalid profile {key!r} in {path}: {exc}") from exc
        logger.info("profile_store_loaded", path=str(path), profiles=len(profiles))
        return cls(path, profiles)

    def get(self, key: str) -> IdentityProfile | None:
        return self._profiles.get(key)

    def put(self, profile: IdentityProfile) -> None:
        self._profiles[profile.key] = profile

    def __contains__(self, key: object) -> bool:
        return key in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: profile.to_record() for key, profile in self._profiles.items()}
        self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        logger.info("profile_store_saved", path=str(self.path), profiles=len(payload))
