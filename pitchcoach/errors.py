"""Exception hierarchy for the evaluation service."""

from typing import Optional


class PitchCoachError(Exception):
    """Base class for all service errors."""


class ConfigurationError(PitchCoachError):
    """Required configuration (usually a provider credential) is missing."""


class ProviderError(PitchCoachError):
    """An external AI provider returned an error or an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuotaExceededError(PitchCoachError):
    """Provider signalled quota exhaustion or rate limiting; not worth retrying."""

    def __init__(self, label: str, cause: BaseException):
        super().__init__(f"{label} hit a provider quota: {cause}")
        self.label = label
        self.cause = cause


class RetryExhaustedError(PitchCoachError):
    """All retry attempts for a call site failed."""

    def __init__(self, label: str, attempts: int, cause: BaseException):
        super().__init__(f"{label} failed after {attempts} attempts: {cause}")
        self.label = label
        self.attempts = attempts
        self.cause = cause


class PromptNotFoundError(PitchCoachError, KeyError):
    """Requested prompt template does not exist."""

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0]) if self.args else ""


class JobStoreError(PitchCoachError):
    """Job or result persistence failed."""
