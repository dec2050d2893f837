"""Lifecycle of one identity's risk evaluation.

    INIT -> FINGERPRINT_READY -> SUBMITTED -> COMPLETED -> FEEDBACK_SENT -> DONE
      \\________________________ FAILED(build | submit) ______________________/

Only a malformed request or a failed submission ends a transaction early.
Fingerprinting, the completion update and feedback are optional steps whose
failures are logged on the transaction and absorbed.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from riskgen.clients.risk_api import RiskApiClient
from riskgen.config import Settings, UserSource
from riskgen.fingerprint.provider import FingerprintProvider
from riskgen.identity.models import IdentityProfile
from riskgen.request_builder import RequestBuilder
from riskgen.shared.errors import RemoteCallError, TemplateError
from riskgen.shared.randomness import RandomSource

from .models import (
    RISK_LEVELS,
    FailedStage,
    OutcomeCategory,
    RiskLevelMode,
    Transaction,
    TransactionState,
)

logger = structlog.get_logger()


@dataclass
class TransactionOptions:
    """Per-run knobs every transaction reads."""

    user_source: UserSource = UserSource.INTERNAL
    risk_mode: RiskLevelMode = field(default_factory=lambda: RiskLevelMode("false"))
    include_badactors: bool = False
    bad_actor_probability: float = 0.2
    bad_ips: list[str] = field(default_factory=list)
    include_feedback: bool = False
    feedback_category: str = "LEGITIMATE"
    feedback_delay_seconds: float = 0.0
    risk_policy_id: str = ""
    client_id: str = ""

    @classmethod
    def from_settings(cls, settings: Settings, bad_ips: list[str]) -> "TransactionOptions":
        return cls(
            user_source=settings.user_source,
            risk_mode=RiskLevelMode(settings.forced_risk_level),
            include_badactors=settings.include_badactors,
            bad_actor_probability=settings.bad_actor_probability,
            bad_ips=list(bad_ips),
            include_feedback=settings.include_feedback,
            feedback_category=settings.feedback_category,
            feedback_delay_seconds=settings.feedback_delay_seconds,
            risk_policy_id=settings.risk_policy_id,
            client_id=settings.client_id,
        )


def subject_for(profile: IdentityProfile, user_source: UserSource) -> dict[str, str]:
    """The ``event.user`` object for the identity's source."""
    if user_source == UserSource.EXTERNAL:
        return {"id": profile.email or "", "name": profile.email or "", "type": "EXTERNAL"}
    return {"name": profile.key, "type": "PING_ONE"}


class TransactionStateMachine:
    def __init__(
        self,
        client: RiskApiClient,
        builder: RequestBuilder,
        profiles: Mapping[str, IdentityProfile],
        options: TransactionOptions,
        rng: RandomSource,
        fingerprint_provider: FingerprintProvider | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.builder = builder
        self.profiles = profiles
        self.options = options
        self.rng = rng
        self.fingerprint_provider = fingerprint_provider
        self._sleep = sleep

    # ---- INIT -----------------------------------------------------------------

    def resolve_event_ip(self, profile: IdentityProfile) -> str | None:
        opts = self.options
        if opts.include_badactors and opts.bad_ips and self.rng.chance(opts.bad_actor_probability):
            bad_ip = self.rng.choice(opts.bad_ips)
            logger.info("bad_actor_ip_injected", identity_key=profile.key, event_ip=bad_ip)
            return bad_ip
        return profile.source_ip

    def resolve_risk_level(self) -> str | None:
        mode = self.options.risk_mode
        if mode.disabled:
            return None
        if mode.per_transaction:
            return self.rng.choice(RISK_LEVELS)
        return mode.raw

    # ---- request --------------------------------------------------------------

    def build_body(self, txn: Transaction, profile: IdentityProfile) -> dict[str, Any]:
        fields = {
            "IP": txn.event_ip,
            "NAME": profile.display_name,
            "MAIL": profile.email,
            "AGENT": profile.user_agent,
            "FORCED_RISK_LEVEL": txn.risk_level,
            "FINGERPRINT": txn.fingerprint or "",
            "USER_ID": profile.key,
            "DEVICE_ID": profile.device_id,
            "RISK_POLICY_ID": self.options.risk_policy_id,
            "CLIENT_ID": self.options.client_id,
        }
        body = self.builder.build(fields)
        event = body.get("event")
        if not isinstance(event, dict):
            raise TemplateError("request template has no 'event' object")
        event["user"] = subject_for(profile, self.options.user_source)
        if self.options.risk_mode.disabled:
            event.pop("inducerisk", None)
        return body

    # ---- lifecycle ------------------------------------------------------------

    async def run(self, identity_key: str) -> Transaction:
        profile = self.profiles.get(identity_key)
        if profile is None:
            raise KeyError(f"no profile resolved for identity {identity_key!r}")

        txn = Transaction(identity_key=identity_key)
        log = logger.bind(identity_key=identity_key)

        txn.event_ip = self.resolve_event_ip(profile)
        txn.risk_level = self.resolve_risk_level()

        if self.fingerprint_provider is not None:
            await self._acquire_fingerprint(txn, profile, log)

        try:
            body = self.build_body(txn, profile)
        except TemplateError as exc:
            txn.fail(FailedStage.BUILD)
            log.error("transaction_failed", stage=FailedStage.BUILD.value, error=str(exc))
            return txn
        log.debug("request_built", body=body)

        result = await self.client.submit_evaluation(body)
        if not result.succeeded:
            txn.fail(FailedStage.SUBMIT)
            log.error("transaction_failed", stage=FailedStage.SUBMIT.value)
            return txn

        txn.evaluation_id = result.id
        txn.evaluation_created_at = result.created_at
        txn.returned_level = OutcomeCategory.parse(result.level)
        txn.state = TransactionState.SUBMITTED

        if txn.evaluation_id is not None:
            update = self.client.complete_evaluation(txn.evaluation_id)
            if await self._optional_step(txn, log, update):
                txn.state = TransactionState.COMPLETED
        else:
            log.warning("evaluation_id_missing", level=txn.returned_level.value)

        if (
            self.options.include_feedback
            and txn.evaluation_id is not None
            and txn.evaluation_created_at is not None
        ):
            await self._wait_for_feedback_window(txn.evaluation_created_at)
            feedback = self.client.submit_feedback(
                txn.evaluation_id, txn.evaluation_created_at, self.options.feedback_category
            )
            if await self._optional_step(txn, log, feedback):
                txn.state = TransactionState.FEEDBACK_SENT

        txn.state = TransactionState.DONE
        log.info(
            "transaction_processed",
            evaluation_id=txn.evaluation_id,
            level=txn.returned_level.value,
            event_ip=txn.event_ip,
            warnings=len(txn.warnings),
        )
        return txn

    async def _acquire_fingerprint(self, txn: Transaction, profile: IdentityProfile, log) -> None:
        assert self.fingerprint_provider is not None
        try:
            txn.fingerprint = await self.fingerprint_provider(profile)
        except Exception as exc:
            txn.fingerprint = None
            txn.warnings.append(f"fingerprint: {exc}")
            log.warning("fingerprint_failed", error=str(exc), exc_info=True)
            return
        txn.state = TransactionState.FINGERPRINT_READY

    async def _optional_step(self, txn: Transaction, log, call: Awaitable[Any]) -> bool:
        try:
            await call
        except RemoteCallError as exc:
            txn.warnings.append(str(exc))
            log.warning(
                "optional_step_failed",
                stage=exc.stage,
                status_code=exc.status_code,
                evaluation_id=txn.evaluation_id,
                error=str(exc),
            )
            return False
        return True

    async def _wait_for_feedback_window(self, created_at: datetime) -> None:
        delay = self.options.feedback_delay_seconds
        if delay <= 0:
            return
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        remaining = (created_at + timedelta(seconds=delay) - datetime.now(UTC)).total_seconds()
        if remaining > 0:
            await self._sleep(remaining)
