"""Identity selection and lazy profile creation.

The resolver is the only writer of the profile store. It runs once, before any
transaction is scheduled, and persists the store with a single write.
"""

from collections.abc import Sequence
from pathlib import Path

import structlog

from riskgen.generators.profile_generator import ProfileGenerator
from riskgen.config import SelectionMode
from riskgen.shared.errors import ConfigurationError
from riskgen.shared.randomness import RandomSource

from .models import IdentityProfile
from .store import ProfileStore

logger = structlog.get_logger()


def load_identity_keys(path: str | Path) -> list[str]:
    """Read identity keys, one per non-blank line."""
    try:
        with open(path, encoding="utf-8") as f:
            keys = [line.strip() for line in f if line.strip()]
    except FileNotFoundError as exc:
        raise ConfigurationError(f"identity file not found: {path}") from exc
    if not keys:
        raise ConfigurationError(f"identity file has no keys: {path}")
    return keys


def select_identities(
    all_keys: Sequence[str],
    count: int,
    mode: SelectionMode,
    rng: RandomSource,
) -> list[str]:
    """Pick ``count`` keys.

    ``sequential`` walks ``all_keys`` in order and wraps around; ``random``
    samples uniformly with replacement.
    """
    if not all_keys:
        raise ConfigurationError("no identities to select from")
    if count < 0:
        raise ConfigurationError(f"identity count must not be negative, got {count}")

    if mode == SelectionMode.SEQUENTIAL:
        return [all_keys[i % len(all_keys)] for i in range(count)]
    return rng.sample_with_replacement(all_keys, count)


class IdentityResolver:
    def __init__(self, store: ProfileStore, generator: ProfileGenerator):
        self.store = store
        self.generator = generator

    @property
    def rng(self) -> RandomSource:
        return self.generator.rng

    def resolve(self, all_keys: Sequence[str], count: int, mode: SelectionMode) -> list[str]:
        selected = select_identities(all_keys, count, mode, self.rng)
        logger.info(
            "identities_selected",
            mode=mode.value,
            requested=count,
            pool_size=len(all_keys),
            unique=len(set(selected)),
        )
        self.ensure_profiles(selected)
        return selected

    def ensure_profiles(self, keys: Sequence[str]) -> dict[str, IdentityProfile]:
        """Create missing profiles, repair and refresh existing ones, then save once."""
        updated = False
        profiles: dict[str, IdentityProfile] = {}

        for key in dict.fromkeys(keys):
            profile = self.store.get(key)
            if profile is None:
                profile = IdentityProfile.model_validate(self.generator.generate(key))
                self.store.put(profile)
                updated = True
                logger.info("profile_created", identity_key=key)
            else:
                if profile.user_agent != self.generator.user_agent:
                    profile.user_agent = self.generator.user_agent
                    updated = True
                    logger.debug("profile_user_agent_refreshed", identity_key=key)
                if not profile.device_id:
                    profile.device_id = self.generator.device_id()
                    updated = True
                    logger.info(
                        "profile_device_id_assigned",
                        identity_key=key,
                        device_id=profile.device_id,
                    )
                if profile.assigned_browser is None and self.generator.assign_browser:
                    profile.assigned_browser = self.generator.browser()
                    updated = True
            profiles[key] = profile

        if updated:
            self.store.save()
        return profiles
