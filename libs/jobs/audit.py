# =============================================================================
# Audit & Rollback
# =============================================================================
# Durable audit trail kept outside the record stores:
# - rewrite_runs: one RewriteRun per job (status, stats, summary)
# - rewrite_changes: one document per ChangeRecord, ordered by seq
#
# Runs survive job state deletion, so a completed live run can be reversed and
# the latest summary stays viewable.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import pymongo
from pymongo.database import Database

from libs.models import (
    ActionResponse,
    ChangeRecord,
    JobMode,
    JobStats,
    LogView,
    RewriteRun,
    RollbackStats,
    RunStatus,
    RunSummary,
)
from libs.stores import WalkerRegistry

from .errors import RollbackRefusedError

logger = logging.getLogger(__name__)

__all__ = ["AuditStore", "Auditor", "build_summary"]


def build_summary(stats: JobStats, change_count: int, top_n: int) -> RunSummary:
    """Compact summary: per-collection counts, totals and most-changed fields."""
    return RunSummary(
        collections={name: s.model_copy() for name, s in stats.collections.items()},
        replaced=stats.replaced,
        skipped_external=stats.skipped_external,
        skipped_no_target=stats.skipped_no_target,
        skipped_opaque=stats.skipped_opaque,
        change_count=change_count,
        top_fields=stats.top_fields(top_n),
    )


def _run_document(run: RewriteRun) -> dict[str, Any]:
    document = run.model_dump()
    document["mode"] = run.mode.value
    document["status"] = run.status.value
    return document


class AuditStore:
    """MongoDB persistence for runs and change records."""

    RUNS = "rewrite_runs"
    CHANGES = "rewrite_changes"
    NEWEST = [("started_at", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)]

    def __init__(self, db: Database) -> None:
        self.db = db

    def ensure_indexes(self) -> None:
        self.db[self.RUNS].create_index("run_id", unique=True)
        self.db[self.RUNS].create_index([("started_at", pymongo.DESCENDING)])
        self.db[self.CHANGES].create_index(
            [("run_id", pymongo.ASCENDING), ("seq", pymongo.ASCENDING)], unique=True
        )

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def begin_run(self, run: RewriteRun) -> None:
        self.db[self.RUNS].insert_one(_run_document(run))

    def finish_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        stats: Optional[JobStats] = None,
        summary: Optional[RunSummary] = None,
        abort_reason: Optional[str] = None,
    ) -> None:
        update: dict[str, Any] = {
            "status": status.value,
            "completed_at": datetime.now(timezone.utc),
        }
        if stats is not None:
            update["stats"] = stats.model_dump()
        if summary is not None:
            update["summary"] = summary.model_dump()
        if abort_reason:
            update["abort_reason"] = abort_reason
        self.db[self.RUNS].update_one({"run_id": run_id}, {"$set": update})

    def get_run(self, run_id: str) -> Optional[RewriteRun]:
        document = self.db[self.RUNS].find_one({"run_id": run_id})
        return self._to_run(document)

    def latest_run(self) -> Optional[RewriteRun]:
        document = self.db[self.RUNS].find_one(sort=self.NEWEST)
        return self._to_run(document)

    def latest_finished_run(self) -> Optional[RewriteRun]:
        """Most recent run that ran to completion (including rolled-back ones)."""
        document = self.db[self.RUNS].find_one(
            {"status": {"$in": [RunStatus.COMPLETE.value, RunStatus.ROLLED_BACK.value]}},
            sort=self.NEWEST,
        )
        return self._to_run(document)

    def mark_rolled_back(self, run_id: str, stats: RollbackStats) -> None:
        self.db[self.RUNS].update_one(
            {"run_id": run_id},
            {
                "$set": {
                    "status": RunStatus.ROLLED_BACK.value,
                    "rolled_back_at": datetime.now(timezone.utc),
                    "rollback": stats.model_dump(),
                }
            },
        )

    @staticmethod
    def _to_run(document: Optional[dict]) -> Optional[RewriteRun]:
        if not document:
            return None
        document = dict(document)
        document.pop("_id", None)
        return RewriteRun(**document)

    # ------------------------------------------------------------------
    # Change records
    # ------------------------------------------------------------------

    def append_changes(self, run_id: str, start_seq: int, changes: list[ChangeRecord]) -> int:
        """
        Append change records for a run.

        Args:
            run_id: Owning run
            start_seq: Sequence number of the first record
            changes: Records in the order they were produced

        Returns:
            Number of records written
        """
        if not changes:
            return 0
        documents = []
        for offset, change in enumerate(changes):
            document = change.model_dump()
            document["run_id"] = run_id
            document["seq"] = start_seq + offset
            documents.append(document)
        self.db[self.CHANGES].insert_many(documents)
        return len(documents)

    def count_changes(self, run_id: str) -> int:
        return self.db[self.CHANGES].count_documents({"run_id": run_id})

    def iter_changes(
        self,
        run_id: str,
        *,
        newest_first: bool = False,
        limit: int = 0,
    ) -> Iterator[ChangeRecord]:
        direction = pymongo.DESCENDING if newest_first else pymongo.ASCENDING
        cursor = self.db[self.CHANGES].find({"run_id": run_id}).sort("seq", direction)
        if limit:
            cursor = cursor.limit(limit)
        for document in cursor:
            document.pop("_id", None)
            document.pop("run_id", None)
            document.pop("seq", None)
            yield ChangeRecord(**document)


class Auditor:
    """
    Rollback and log view over the audit store.

    Rollback writes each recorded pre-run value back through the owning
    walker's write primitive, newest change first. It is best-effort: a
    failing record is logged and counted and the remaining records are still
    restored.
    """

    LOG_LIMIT = 100

    def __init__(self, store: AuditStore, registry: WalkerRegistry) -> None:
        self.store = store
        self.registry = registry

    def rollback(self) -> ActionResponse:
        run = self.store.latest_finished_run()
        if run is None:
            raise RollbackRefusedError("No completed run found to roll back.")
        debug = {"run_id": run.run_id, "operator": run.operator}
        if run.mode == JobMode.DRY_RUN:
            raise RollbackRefusedError(
                "The last completed run was a dry run; nothing was changed.", debug=debug
            )
        if run.status == RunStatus.ROLLED_BACK:
            raise RollbackRefusedError(
                "The last completed run has already been rolled back.", debug=debug
            )

        stats = RollbackStats()
        for change in self.store.iter_changes(run.run_id, newest_first=True):
            try:
                walker = self.registry.get(change.collection)
                walker.write_field(change, change.original)
                stats.restored += 1
            except Exception:
                logger.exception(
                    f"Rollback failed for {change.collection} record "
                    f"{change.record_id} field {change.field} (run {run.run_id})"
                )
                stats.failed += 1

        self.store.mark_rolled_back(run.run_id, stats)
        logger.info(
            f"Rolled back run {run.run_id}: {stats.restored} restored, {stats.failed} failed"
        )
        return ActionResponse(
            message=(
                f"Rollback complete: {stats.restored} fields restored, "
                f"{stats.failed} failed."
            ),
            details={"run_id": run.run_id, **stats.model_dump()},
        )

    def view_log(self, limit: int = LOG_LIMIT) -> LogView:
        run = self.store.latest_run()
        if run is None:
            return LogView()
        log = [
            change.preview()
            for change in self.store.iter_changes(run.run_id, newest_first=True, limit=limit)
        ]
        return LogView(run=run, summary=run.summary, log=log)
