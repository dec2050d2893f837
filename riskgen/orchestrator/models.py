"""Transaction lifecycle types."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel


class OutcomeCategory(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: object) -> "OutcomeCategory":
        """Map a returned risk level to a category. Anything unrecognized is UNKNOWN."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.UNKNOWN


class TransactionState(StrEnum):
    INIT = "init"
    FINGERPRINT_READY = "fingerprint_ready"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FEEDBACK_SENT = "feedback_sent"
    DONE = "done"
    FAILED = "failed"


class FailedStage(StrEnum):
    BUILD = "build"
    SUBMIT = "submit"


RISK_LEVELS = ("LOW", "MEDIUM", "HIGH")
RISK_DISABLED = "false"
RISK_RANDOM = "true"


class RiskLevelMode:
    """How the forced risk level is chosen.

    ``"false"`` disables induced risk (the field is dropped from the request),
    ``"true"`` draws LOW/MEDIUM/HIGH per transaction, anything else is sent as a
    fixed label.
    """

    def __init__(self, raw: str | None):
        self.raw = (raw or RISK_DISABLED).strip()

    @property
    def disabled(self) -> bool:
        return self.raw.lower() == RISK_DISABLED

    @property
    def per_transaction(self) -> bool:
        return self.raw.lower() == RISK_RANDOM

    def __repr__(self) -> str:
        return f"RiskLevelMode({self.raw!r})"


class EvaluationResult(BaseModel):
    """What the submission boundary hands back. Never raised, always returned."""

    id: str | None = None
    level: str = OutcomeCategory.UNKNOWN.value
    created_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.level != OutcomeCategory.ERROR

    @classmethod
    def failed(cls) -> "EvaluationResult":
        return cls(id=None, level=OutcomeCategory.ERROR.value, created_at=None)


@dataclass
class Transaction:
    identity_key: str
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_ip: str | None = None
    risk_level: str | None = None
    fingerprint: str | None = None
    evaluation_id: str | None = None
    evaluation_created_at: datetime | None = None
    returned_level: OutcomeCategory | None = None
    state: TransactionState = TransactionState.INIT
    failed_stage: FailedStage | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def outcome(self) -> OutcomeCategory:
        if self.state == TransactionState.FAILED or self.returned_level is None:
            return OutcomeCategory.ERROR
        return self.returned_level

    def fail(self, stage: FailedStage) -> None:
        self.state = TransactionState.FAILED
        self.failed_stage = stage
