"""Synthetic identity profile generator with seeded randomness and file-backed pools."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from riskgen.identity.models import BrowserKind
from riskgen.shared.randomness import RandomSource

from .utils.names import FULL_NAMES, MAIL_DOMAINS, email_for
from .utils.network import BAD_ACTOR_IPS, CLEAN_POOL_FILES, IP_POOLS, clean_ips

logger = structlog.get_logger()


def read_pool_file(path: Path) -> list[str]:
    """One entry per non-blank line."""
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


@dataclass
class IdentityPools:
    """Value pools that synthetic profiles and bad-actor events draw from."""

    names: list[str] = field(default_factory=lambda: list(FULL_NAMES))
    mail_domains: list[str] = field(default_factory=lambda: list(MAIL_DOMAINS))
    ips: list[str] = field(default_factory=clean_ips)
    bad_ips: list[str] = field(default_factory=lambda: list(BAD_ACTOR_IPS))

    @classmethod
    def from_directory(cls, data_dir: str | Path) -> "IdentityPools":
        """Built-in pools, each replaced by its file in *data_dir* when present."""
        root = Path(data_dir)
        pools = cls()

        def _override(filename: str, default: list[str]) -> list[str]:
            path = root / filename
            if not path.exists():
                return default
            values = read_pool_file(path)
            if not values:
                logger.warning("pool_file_empty", path=str(path))
                return default
            return values

        pools.names = _override("names", pools.names)
        pools.mail_domains = _override("mail_Domains", pools.mail_domains)
        pools.bad_ips = _override("ips_Bad", pools.bad_ips)

        ips: list[str] = []
        for filename in CLEAN_POOL_FILES:
            ips.extend(_override(filename, IP_POOLS[filename]))
        pools.ips = ips
        return pools


class ProfileGenerator:
    def __init__(
        self,
        pools: IdentityPools,
        rng: RandomSource,
        user_agent: str,
        assign_browser: bool = False,
    ):
        self.pools = pools
        self.rng = rng
        self.user_agent = user_agent
        self.assign_browser = assign_browser

    def device_id(self) -> str:
        """24 hex characters (12 random bytes)."""
        return self.rng.hex_token(12)

    def browser(self) -> BrowserKind:
        return self.rng.choice(list(BrowserKind))

    def generate(self, key: str) -> dict[str, Any]:
        name = self.rng.choice(self.pools.names)
        domain = self.rng.choice(self.pools.mail_domains)
        profile: dict[str, Any] = {
            "user": key,
            "name": name,
            "email": email_for(name, domain),
            "ip": self.rng.choice(self.pools.ips),
            "agent": self.user_agent,
            "deviceID": self.device_id(),
        }
        if self.assign_browser:
            profile["browser"] = self.browser().value
        return profile
