# =============================================================================
# Rewrite Jobs Library
# =============================================================================
# Resumable job state, the batch scheduler, audit & rollback, and the
# RewriteEngine facade used by every control surface.
# =============================================================================

from .audit import AuditStore, Auditor, build_summary
from .engine import RewriteEngine
from .errors import (
    JobStateCorruptError,
    JobStateMissingError,
    RewriteJobError,
    RollbackRefusedError,
    StuckCursorError,
    UnknownCollectionError,
)
from .scheduler import BatchScheduler, build_completion_message
from .state import JobStateStore

__all__ = [
    "AuditStore",
    "Auditor",
    "BatchScheduler",
    "JobStateCorruptError",
    "JobStateMissingError",
    "JobStateStore",
    "RewriteEngine",
    "RewriteJobError",
    "RollbackRefusedError",
    "StuckCursorError",
    "UnknownCollectionError",
    "build_completion_message",
    "build_summary",
]
