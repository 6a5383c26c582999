# =============================================================================
# Job State Models
# =============================================================================
# Defines the resumable rewrite job persisted between advance calls, plus its
# aggregate statistics and the responses returned to operators.
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


__all__ = [
    "JobMode",
    "JobStage",
    "CollectionStats",
    "FieldCount",
    "JobStats",
    "Job",
    "JobResponse",
]


class JobMode(str, Enum):
    """Whether a job persists its rewrites."""

    DRY_RUN = "dry_run"
    LIVE = "live"


class JobStage(str, Enum):
    """Stage reported by a scheduler call."""

    STARTED = "started"
    PROGRESS = "progress"
    TABLE_COMPLETE = "table_complete"
    COMPLETE = "complete"


class CollectionStats(BaseModel):
    """Per-collection counters."""

    scanned: int = 0
    updated: int = 0
    failures: int = 0


class FieldCount(BaseModel):
    """Change count for one `<collection>:<field>` key."""

    key: str
    count: int = 0


class JobStats(BaseModel):
    """
    Aggregate statistics for a job.

    Field counts are kept as a list rather than a mapping because metadata
    keys may contain characters MongoDB does not accept in field names.
    """

    collections: dict[str, CollectionStats] = Field(default_factory=dict)
    replaced: int = 0
    skipped_external: int = 0
    skipped_no_target: int = 0
    skipped_opaque: int = 0
    fields: list[FieldCount] = Field(default_factory=list)

    def for_collection(self, name: str) -> CollectionStats:
        if name not in self.collections:
            self.collections[name] = CollectionStats()
        return self.collections[name]

    def bump_field(self, key: str, amount: int = 1) -> None:
        for entry in self.fields:
            if entry.key == key:
                entry.count += amount
                return
        self.fields.append(FieldCount(key=key, count=amount))

    def top_fields(self, limit: int) -> list[FieldCount]:
        ranked = sorted(self.fields, key=lambda f: (-f.count, f.key))
        return [entry.model_copy() for entry in ranked[:limit]]

    @property
    def total_updated(self) -> int:
        return sum(stats.updated for stats in self.collections.values())


class Job(BaseModel):
    """
    Resumable rewrite job, one per initiating operator.

    Created by start_job, mutated by every advance call and deleted on
    completion, reset, abort or corruption. The change records themselves are
    appended to the audit store as batches complete; the job only tracks how
    many have been written.

    Attributes:
        operator: Operator identity (state scope key)
        run_id: Identifier linking the job to its audit run
        mode: dry_run or live
        collections: Ordered collection queue
        index: Position of the current collection in the queue
        cursors: Last-seen primary key per collection
        cursor_check: Cursor observed on the previous advance call
        stuck_count: Consecutive advance calls without cursor movement
        completed_collections: Collections processed to exhaustion
        stats: Aggregate statistics
        change_count: Change records written to the audit store
        samples: Bounded list of change previews for the completion response
        last_step: Last processing step, reported with errors
        created_at: Job creation timestamp
        updated_at: Last persistence timestamp (drives the idle TTL)
    """

    operator: str = Field(..., min_length=1)
    run_id: str = Field(..., min_length=1)
    mode: JobMode
    collections: list[str] = Field(..., min_length=1)
    index: int = Field(0, ge=0)
    cursors: dict[str, int] = Field(default_factory=dict)
    cursor_check: Optional[int] = None
    stuck_count: int = Field(0, ge=0)
    completed_collections: list[str] = Field(default_factory=list)
    stats: JobStats = Field(default_factory=JobStats)
    change_count: int = Field(0, ge=0)
    samples: list[dict[str, Any]] = Field(default_factory=list)
    last_step: str = "created"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def check_index(self) -> "Job":
        if self.index > len(self.collections):
            raise ValueError("index is beyond the collection queue")
        return self

    @property
    def dry_run(self) -> bool:
        return self.mode == JobMode.DRY_RUN

    @property
    def current_collection(self) -> Optional[str]:
        if self.index >= len(self.collections):
            return None
        return self.collections[self.index]

    @property
    def cursor(self) -> int:
        name = self.current_collection
        if name is None:
            return 0
        return self.cursors.get(name, 0)

    def set_cursor(self, value: int) -> None:
        name = self.current_collection
        if name is not None:
            self.cursors[name] = value


class JobResponse(BaseModel):
    """Response returned by start_job and advance."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    stage: JobStage
    collection: Optional[str] = None
    processed: int = 0
    total: int = 0
    updated: int = 0
    replacements: int = 0
    continue_: bool = Field(True, alias="continue")
    stats: Optional[JobStats] = None
    samples: list[dict[str, Any]] = Field(default_factory=list)
    execution_time: Optional[float] = None
