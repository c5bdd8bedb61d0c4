"""
Error taxonomy for the scheduling engine.

Every error carries a machine-readable code and the HTTP status the API layer
answers with, so views never need to know which domain rule failed.
"""

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base class for every error raised by the engine."""

    default_code = "SCHEDULING_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidStateTransition(SchedulingError):
    """Grading a suspended or nonexistent card state."""

    default_code = "INVALID_STATE_TRANSITION"
    status_code = 409


class InvalidRating(SchedulingError):
    default_code = "INVALID_RATING"
    status_code = 400

    def __init__(self, rating: Any):
        super().__init__(
            f"Unknown rating: {rating!r}",
            details={"rating": str(rating)},
        )


class InvalidQueueFilter(SchedulingError):
    default_code = "VALIDATION_ERROR"
    status_code = 400


class CardStateNotFound(SchedulingError):
    default_code = "RESOURCE_NOT_FOUND"
    status_code = 404


class ConcurrentModification(SchedulingError):
    """The row changed between read and write; retry the whole grade."""

    default_code = "CONCURRENT_MODIFICATION"
    status_code = 409


class PersistenceFailure(SchedulingError):
    """State write or log append failed; nothing was applied."""

    default_code = "PERSISTENCE_FAILURE"
    status_code = 503


class AppendOnlyViolation(SchedulingError):
    default_code = "APPEND_ONLY_VIOLATION"
    status_code = 500


class RateLimitExceeded(SchedulingError):
    default_code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, info):
        self.info = info
        super().__init__(
            "Too many requests. Please try again later.",
            details={
                "limit": info.limit,
                "remaining": info.remaining,
                "reset_at": info.reset_at.isoformat(),
            },
        )
