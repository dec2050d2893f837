"""Shared test fixtures for riskgen tests."""

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from riskgen.generators.profile_generator import IdentityPools, ProfileGenerator
from riskgen.identity.models import IdentityProfile
from riskgen.orchestrator.models import EvaluationResult
from riskgen.request_builder import RequestBuilder
from riskgen.shared.randomness import RandomSource

NOW = datetime(2026, 1, 15, 14, 0, 0, tzinfo=UTC)

TEMPLATE = """{
  "event": {
    "ip": "{IP}",
    "user": {"id": "{USER_ID}", "name": "{NAME}", "type": "PING_ONE"},
    "browser": {"userAgent": "{AGENT}"},
    "session": {"id": "{DEVICE_ID}"},
    "sdk": {"signals": {"data": "{FINGERPRINT}"}},
    "targetResource": {"id": "{CLIENT_ID}"},
    "inducerisk": "{FORCED_RISK_LEVEL}"
  },
  "riskPolicySet": {"id": "{RISK_POLICY_ID}"},
  "contact": "{MAIL}"
}"""


class ScriptedRandom(RandomSource):
    """RandomSource that replays scripted decisions, then falls back to defaults.

    ``chances`` are returned by ``chance()`` in order (then False); ``picks``
    are indexes returned by ``choice()`` in order (then index 0).
    """

    def __init__(self, chances: Sequence[bool] = (), picks: Sequence[int] = ()):
        super().__init__(seed=0)
        self.chances = list(chances)
        self.picks = list(picks)

    def chance(self, probability: float) -> bool:
        return self.chances.pop(0) if self.chances else False

    def choice(self, options):
        index = self.picks.pop(0) if self.picks else 0
        return options[index]


def make_profile(key: str = "user-1", **kwargs) -> IdentityProfile:
    defaults = {
        "user": key,
        "name": "Grace Liu",
        "email": "Grace.Liu@gmail.com",
        "ip": "73.92.180.44",
        "agent": "test-agent/1.0",
        "deviceID": "a1b2c3d4e5f6a1b2c3d4e5f6",
    }
    defaults.update(kwargs)
    return IdentityProfile.model_validate(defaults)


def make_client(
    level: str = "LOW",
    evaluation_id: str | None = "eval-1",
    created_at: datetime | None = NOW,
    submit_failed: bool = False,
) -> MagicMock:
    client = MagicMock()
    if submit_failed:
        result = EvaluationResult.failed()
    else:
        result = EvaluationResult(id=evaluation_id, level=level, created_at=created_at)
    client.submit_evaluation = AsyncMock(return_value=result)
    client.complete_evaluation = AsyncMock(return_value={"completionStatus": "SUCCESS"})
    client.submit_feedback = AsyncMock(return_value={})
    return client


@pytest.fixture
def template() -> str:
    return TEMPLATE


@pytest.fixture
def builder() -> RequestBuilder:
    return RequestBuilder(TEMPLATE)


@pytest.fixture
def pools() -> IdentityPools:
    return IdentityPools(
        names=["Grace Liu", "Jonas Becker"],
        mail_domains=["gmail.com", "proton.me"],
        ips=["73.92.180.44", "24.5.112.63"],
        bad_ips=["185.220.101.34", "45.153.160.2"],
    )


@pytest.fixture
def generator(pools: IdentityPools) -> ProfileGenerator:
    return ProfileGenerator(pools, RandomSource(seed=7), user_agent="test-agent/1.0")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    root = tmp_path / "data"
    root.mkdir()
    (root / "internal_Users").write_text("alice\nbob\n\ncarol\n")
    (root / "external_Users").write_text("ext-1\next-2\n")
    return root
