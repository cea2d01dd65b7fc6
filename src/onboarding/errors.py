"""
Onboarding Errors.

Validation errors (caller misuse, never retried):
- MissingUserError, InvalidStepError, EmptyAssessmentError, NotInitializedError

Recoverable errors (retry the same call):
- PersistenceError, CompletionError
"""


class OnboardingError(Exception):
    """Base class for onboarding errors."""

    code = "ONBOARDING_ERROR"
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingUserError(OnboardingError):
    """No user identity supplied to initialize."""

    code = "MISSING_USER"


class InvalidStepError(OnboardingError):
    """Unrecognized step label, or step data for a different step."""

    code = "INVALID_STEP"


class EmptyAssessmentError(OnboardingError):
    """Zero answers passed to the trait aggregator."""

    code = "EMPTY_ASSESSMENT"


class NotInitializedError(OnboardingError):
    """A mutating call was made before initialize/resume."""

    code = "NOT_INITIALIZED"


class PersistenceError(OnboardingError):
    """Transient cache or durable store I/O failure."""

    code = "PERSISTENCE_ERROR"
    retryable = True


class CompletionError(OnboardingError):
    """Durable completion write failed; progress was not marked complete."""

    code = "COMPLETION_ERROR"
    retryable = True
