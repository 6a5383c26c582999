# =============================================================================
# Batch Scheduler
# =============================================================================
# Drives a rewrite job one bounded unit of work per call:
#
#   start_job -> Running(0, 0) -> advance ... -> CollectionComplete(i)
#             -> Running(i + 1, 0) -> ... -> AllComplete | Aborted(reason)
#
# Every call loads the persisted Job, performs at most one walker batch and
# persists the new state before returning.
# =============================================================================

import logging
import time
import uuid
from typing import Callable, Optional

from libs.models import (
    ActionResponse,
    ChangeRecord,
    Job,
    JobMode,
    JobResponse,
    JobStage,
    RewriteRun,
    RewriteSettings,
    RunStatus,
)
from libs.stores import BatchResult, CollectionWalker, WalkContext, WalkerRegistry

from .audit import AuditStore, build_summary
from .errors import (
    JobStateCorruptError,
    JobStateMissingError,
    StuckCursorError,
    UnknownCollectionError,
)
from .state import JobStateStore

logger = logging.getLogger(__name__)

__all__ = ["BatchScheduler", "build_completion_message"]

STUCK_LIMIT = 2


def build_completion_message(job: Job) -> str:
    """Summarize a finished job, collection by collection."""
    if job.dry_run:
        message = "Dry run completed! "
    else:
        message = "Reference replacement complete! "

    parts = [
        f"{name}: {stats.scanned} scanned, {stats.updated} updated"
        for name, stats in job.stats.collections.items()
        if stats.scanned > 0
    ]
    if parts:
        message += "; ".join(parts) + ". "
    return message + f"Total replacements: {job.stats.replaced}."


class BatchScheduler:
    """
    State transitions for rewrite jobs.

    Args:
        state: Job state store
        audit: Audit store receiving runs and change records
        registry: Walker registry
        settings: Rewrite settings (batch size, time budget, limits)
        clock: Monotonic clock used for the per-call budget
    """

    def __init__(
        self,
        state: JobStateStore,
        audit: AuditStore,
        registry: WalkerRegistry,
        settings: RewriteSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.audit = audit
        self.registry = registry
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------------
    # start / reset
    # ------------------------------------------------------------------

    def start_job(self, operator: str, dry_run: bool = False) -> JobResponse:
        """
        Create a fresh job for the operator, replacing any existing one.

        Raises:
            UnknownCollectionError: If the configured queue names a collection
                with no walker
        """
        collections = list(self.settings.collections)
        unknown = [name for name in collections if name not in self.registry]
        if unknown or not collections:
            raise UnknownCollectionError(
                f"Unknown collection: {', '.join(unknown) or '(empty queue)'}",
                debug={"collections": collections, "known": self.registry.names()},
            )

        previous = self._peek(operator)
        if previous is not None:
            logger.info(f"Replacing job {previous.run_id} for operator {operator}")
            self.audit.finish_run(
                previous.run_id,
                RunStatus.RESET,
                stats=previous.stats,
                abort_reason="superseded by a new job",
            )

        mode = JobMode.DRY_RUN if dry_run else JobMode.LIVE
        job = Job(
            operator=operator,
            run_id=uuid.uuid4().hex,
            mode=mode,
            collections=collections,
            cursors={name: 0 for name in collections},
            last_step="started",
        )
        for name in collections:
            job.stats.for_collection(name)

        self.audit.begin_run(
            RewriteRun(run_id=job.run_id, operator=operator, mode=mode)
        )
        self.state.save(job)
        logger.info(f"Started {mode.value} job {job.run_id} for operator {operator}")

        return JobResponse(
            message="Job started. Processing...",
            stage=JobStage.STARTED,
            collection=job.current_collection,
            continue_=True,
        )

    def reset(self, operator: str) -> ActionResponse:
        """Delete the operator's job unconditionally."""
        job = self._peek(operator)
        if job is not None:
            self.audit.finish_run(
                job.run_id,
                RunStatus.RESET,
                stats=job.stats,
                abort_reason="reset by operator",
            )
        self.state.delete(operator)
        logger.info(f"Reset job state for operator {operator}")
        return ActionResponse(
            message="Job reset successfully.",
            details={"run_id": job.run_id} if job else {},
        )

    def _peek(self, operator: str) -> Optional[Job]:
        try:
            return self.state.load(operator)
        except JobStateCorruptError:
            # Already deleted by the store
            return None

    # ------------------------------------------------------------------
    # advance
    # ------------------------------------------------------------------

    def advance(self, operator: str) -> JobResponse:
        """
        Run one batch of the operator's job.

        Raises:
            JobStateMissingError: If no job exists
            JobStateCorruptError: If the stored job is invalid (deleted)
            StuckCursorError: If the cursor stopped advancing (job aborted)
            UnknownCollectionError: If the current collection has no walker
        """
        started = self.clock()
        job = self.state.load(operator)
        if job is None:
            raise JobStateMissingError(
                "Job state not found. Please start a new job.",
                debug={"operator": operator},
            )

        name = job.current_collection
        if name is None:
            return self._finalize(job, BatchResult(), started)

        walker = self._walker(job, name)
        cursor = job.cursor
        self._check_progress(job, cursor)

        job.last_step = f"{name}: batch after cursor {cursor}"
        # Records logged by a call whose state save failed are already stored
        job.change_count = self.audit.count_changes(job.run_id)
        context = WalkContext(
            dry_run=job.dry_run,
            deadline=started + self.settings.time_budget_seconds,
            preview_length=self.settings.audit_preview_length,
            clock=self.clock,
            log_change=lambda change: self._log_change(job, change),
        )
        batch = walker.process_batch(cursor, self.settings.batch_size, context)
        self._record_batch(job, name, walker, batch)

        if batch.read_error:
            job.last_step = f"{name}: read error after cursor {cursor}"
            self.state.save(job)
            return self._response(
                job,
                name,
                batch,
                started,
                f"Read error in {name}; retrying on the next call.",
            )

        if batch.log_error:
            job.last_step = f"{name}: audit write failed after cursor {batch.cursor}"
            self.state.save(job)
            return self._response(
                job,
                name,
                batch,
                started,
                f"Audit log write failed in {name}; retrying on the next call.",
            )

        if not batch.completed:
            self.state.save(job)
            return self._response(
                job,
                name,
                batch,
                started,
                f"Processing {name}... {job.stats.for_collection(name).scanned} rows processed.",
            )

        job.completed_collections.append(name)
        job.index += 1
        job.cursor_check = None
        job.stuck_count = 0
        logger.info(f"Completed {name} for job {job.run_id}")

        next_name = job.current_collection
        if next_name is None:
            return self._finalize(job, batch, started)

        job.last_step = f"{next_name}: queued"
        self.state.save(job)
        response = self._response(
            job,
            next_name,
            batch,
            started,
            f"Completed {name}. Processing {next_name}...",
            counted=name,
        )
        response.stage = JobStage.TABLE_COMPLETE
        return response

    def _walker(self, job: Job, name: str) -> CollectionWalker:
        try:
            return self.registry.get(name)
        except KeyError:
            self.state.delete(job.operator)
            self.audit.finish_run(
                job.run_id,
                RunStatus.ABORTED,
                stats=job.stats,
                abort_reason=f"unknown collection {name}",
            )
            raise UnknownCollectionError(
                f"Unknown collection: {name}",
                debug=self._debug(job),
            ) from None

    def _check_progress(self, job: Job, cursor: int) -> None:
        """Abort when the cursor has not moved for three consecutive calls."""
        if job.cursor_check is not None and cursor == job.cursor_check:
            if job.stuck_count >= STUCK_LIMIT:
                logger.error(
                    f"Cursor stuck at {cursor} in {job.current_collection} "
                    f"for job {job.run_id}; aborting"
                )
                self.state.delete(job.operator)
                self.audit.finish_run(
                    job.run_id,
                    RunStatus.ABORTED,
                    stats=job.stats,
                    abort_reason="stuck_loop",
                )
                raise StuckCursorError(
                    "Cursor did not advance; possible query issue. "
                    "Stopping to prevent infinite loop.",
                    debug=self._debug(job),
                )
            job.stuck_count += 1
        else:
            job.stuck_count = 0
            job.cursor_check = cursor

    def _record_batch(
        self,
        job: Job,
        name: str,
        walker: CollectionWalker,
        batch: BatchResult,
    ) -> None:
        if walker.paginated:
            job.set_cursor(batch.cursor)

        collection_stats = job.stats.for_collection(name)
        collection_stats.scanned += batch.scanned
        collection_stats.updated += batch.updated
        collection_stats.failures += batch.failures
        job.stats.replaced += batch.replacements
        job.stats.skipped_external += batch.skipped_external
        job.stats.skipped_no_target += batch.skipped_no_target
        job.stats.skipped_opaque += batch.skipped_opaque

        for change in batch.changes:
            job.stats.bump_field(change.field_key)
        if job.dry_run:
            room = self.settings.sample_limit - len(job.samples)
            job.samples.extend(change.preview() for change in batch.changes[: max(room, 0)])

    def _log_change(self, job: Job, change: ChangeRecord) -> None:
        """Persist one change record ahead of its store write."""
        self.audit.append_changes(job.run_id, job.change_count, [change])
        job.change_count += 1

    def _finalize(self, job: Job, batch: BatchResult, started: float) -> JobResponse:
        summary = build_summary(job.stats, job.change_count, self.settings.summary_top_n)
        self.audit.finish_run(
            job.run_id, RunStatus.COMPLETE, stats=job.stats, summary=summary
        )
        self.state.delete(job.operator)
        logger.info(
            f"Job {job.run_id} complete: {job.stats.replaced} replacements, "
            f"{job.change_count} change records"
        )

        last = job.completed_collections[-1] if job.completed_collections else None
        response = self._response(
            job, None, batch, started, build_completion_message(job), counted=last
        )
        response.stage = JobStage.COMPLETE
        response.continue_ = False
        response.stats = job.stats
        response.samples = list(job.samples)
        return response

    def _response(
        self,
        job: Job,
        collection: Optional[str],
        batch: BatchResult,
        started: float,
        message: str,
        counted: Optional[str] = None,
    ) -> JobResponse:
        """`processed` is the cumulative scanned count of `counted` (default: `collection`)."""
        counted = counted or collection
        return JobResponse(
            message=message,
            stage=JobStage.PROGRESS,
            collection=collection,
            processed=job.stats.for_collection(counted).scanned if counted else 0,
            total=batch.total,
            updated=batch.updated,
            replacements=batch.replacements,
            continue_=True,
            execution_time=round(self.clock() - started, 3),
        )

    @staticmethod
    def _debug(job: Job) -> dict:
        return {
            "last_step": job.last_step,
            "collection": job.current_collection,
            "cursor": job.cursor,
            "run_id": job.run_id,
        }
