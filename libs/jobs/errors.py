# =============================================================================
# Rewrite Job Errors
# =============================================================================
# Errors surfaced to operators. Each carries a human-readable message, optional
# debug context (last step, collection, cursor, run id) and whether retrying
# the same call can succeed.
# =============================================================================

from typing import Any, Optional

__all__ = [
    "JobStateCorruptError",
    "JobStateMissingError",
    "RewriteJobError",
    "RollbackRefusedError",
    "StuckCursorError",
    "UnknownCollectionError",
]


class RewriteJobError(Exception):
    """Base error for rewrite job operations."""

    non_retryable_default = False

    def __init__(
        self,
        message: str,
        *,
        debug: Optional[dict[str, Any]] = None,
        non_retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.debug = debug or {}
        self.non_retryable = (
            self.non_retryable_default if non_retryable is None else non_retryable
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": self.message,
            "non_retryable": self.non_retryable,
        }
        if self.debug:
            payload["debug"] = self.debug
        return payload


class JobStateMissingError(RewriteJobError):
    """No job state exists for the operator (never started, finished or expired)."""

    non_retryable_default = True


class JobStateCorruptError(RewriteJobError):
    """Persisted job state failed validation and was deleted."""

    non_retryable_default = True


class StuckCursorError(RewriteJobError):
    """The cursor stopped advancing; the job was aborted."""

    non_retryable_default = True


class UnknownCollectionError(RewriteJobError):
    """A job names a collection with no registered walker."""

    non_retryable_default = True


class RollbackRefusedError(RewriteJobError):
    """Rollback is not possible for the latest run."""

    non_retryable_default = True
