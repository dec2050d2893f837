"""Error taxonomy for a traffic run."""


class RiskGenError(Exception):
    """Base class for every error raised by riskgen."""


class ConfigurationError(RiskGenError):
    """Missing or invalid run inputs. Fatal before any transaction starts."""


class TemplateError(RiskGenError):
    """The request template did not produce a well-formed JSON object."""


class RemoteCallError(RiskGenError):
    """A call to the risk-evaluation service failed."""

    def __init__(self, stage: str, message: str, status_code: int | None = None):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.status_code = status_code


class FingerprintError(RiskGenError):
    """The fingerprint provider could not produce a payload."""
