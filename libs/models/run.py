# =============================================================================
# Rewrite Run Model
# =============================================================================
# Defines the durable audit record of one rewrite job. Runs outlive the job
# state so the summary stays viewable and live runs stay reversible.
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .job import CollectionStats, FieldCount, JobMode, JobStats


__all__ = [
    "ActionResponse",
    "LogView",
    "RewriteRun",
    "RunStatus",
    "RunSummary",
    "RollbackStats",
]


class RunStatus(str, Enum):
    """Status of a rewrite run in the audit store."""

    RUNNING = "running"
    COMPLETE = "complete"
    ABORTED = "aborted"
    RESET = "reset"
    ROLLED_BACK = "rolled_back"


class RunSummary(BaseModel):
    """
    Compact summary persisted when a run completes.

    Attributes:
        collections: Scanned/updated counts per collection
        replaced: Total references replaced
        skipped_external: References left alone because they are external
        skipped_no_target: References left alone because no migrated file exists
        skipped_opaque: Fields skipped by the structured payload heuristic
        change_count: Number of change records in the full audit log
        top_fields: Most-frequently-changed field keys
    """

    collections: dict[str, CollectionStats] = Field(default_factory=dict)
    replaced: int = 0
    skipped_external: int = 0
    skipped_no_target: int = 0
    skipped_opaque: int = 0
    change_count: int = 0
    top_fields: list[FieldCount] = Field(default_factory=list)


class RollbackStats(BaseModel):
    """Outcome of a rollback pass."""

    restored: int = 0
    failed: int = 0


class RewriteRun(BaseModel):
    """
    Run document model for the audit store.

    Attributes:
        run_id: Run identifier (unique index)
        operator: Operator who started the job
        mode: dry_run or live
        status: Current run status
        stats: Statistics at the time the run finished
        summary: Compact summary, set on completion
        abort_reason: Reason the run stopped early, if it did
        started_at: Timestamp when the job started
        completed_at: Timestamp when the run finished
        rolled_back_at: Timestamp of the rollback, if any
        rollback: Rollback outcome, if any
    """

    run_id: str = Field(..., description="Run identifier (unique)")
    operator: str = Field(..., description="Operator who started the job")
    mode: JobMode = Field(..., description="dry_run or live")
    status: RunStatus = Field(RunStatus.RUNNING, description="Current run status")
    stats: Optional[JobStats] = None
    summary: Optional[RunSummary] = None
    abort_reason: Optional[str] = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Run start timestamp",
    )
    completed_at: Optional[datetime] = None
    rolled_back_at: Optional[datetime] = None
    rollback: Optional[RollbackStats] = None


class ActionResponse(BaseModel):
    """Response for reset and rollback."""

    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class LogView(BaseModel):
    """
    Read-only view of the latest run.

    Attributes:
        run: Latest run document, if any
        summary: Its compact summary (None until the run finishes)
        log: Change record previews, newest first
    """

    run: Optional[RewriteRun] = None
    summary: Optional[RunSummary] = None
    log: list[dict[str, Any]] = Field(default_factory=list)
