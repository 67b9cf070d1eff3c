"""Scheduling engine errors.

Configuration errors are raised before any candidate is computed and are
reported once, at the decision point (preview or apply). Blocking conflicts are
never raised: they are a classification in the conflicts bucket.
"""


class SchedulingError(Exception):
    """Base exception for the rescheduling engine."""

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or f"Scheduling failed: {code}"
        super().__init__(self.message)


class ConfigurationError(SchedulingError):
    """Raised when a request is not computable as configured."""


class InvalidRuleError(ConfigurationError):
    """Raised when a modification rule is a no-op or self-contradictory."""


class MissingSelectionError(ConfigurationError):
    """Raised when the student, session or period selection is missing or unknown."""


class NoApplicableChangesError(SchedulingError):
    """Raised when an apply is requested but every candidate is blocked."""

    def __init__(self, blocked: int):
        self.blocked = blocked
        super().__init__(
            "NO_APPLICABLE_CHANGES",
            f"No sessions to apply: {blocked} selected session(s) were held back by conflicts or warnings",
        )
