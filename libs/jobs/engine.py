# =============================================================================
# Rewrite Engine
# =============================================================================
# Wires the walker registry, job state store, audit store, scheduler and
# auditor around one database. Used by the web service, the CLI and the
# Dagster ops.
# =============================================================================

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from pymongo.database import Database

from libs.models import ActionResponse, JobResponse, LogView, RewriteSettings
from libs.stores import WalkerRegistry

from .audit import AuditStore, Auditor
from .scheduler import BatchScheduler
from .state import JobStateStore

logger = logging.getLogger(__name__)

__all__ = ["RewriteEngine"]


class RewriteEngine:
    """
    Facade over the reference rewriting components.

    Args:
        db: Database holding the record stores and the audit collections
        settings: Rewrite settings
        exists: Optional file existence check for the resolver
        clock: Monotonic clock for the per-call budget
    """

    def __init__(
        self,
        db: Database,
        settings: RewriteSettings,
        exists: Optional[Callable[[Path], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.db = db
        self.settings = settings
        self.registry = WalkerRegistry(db, settings, exists=exists)
        self.state = JobStateStore(db, ttl_seconds=settings.state_ttl_seconds)
        self.audit = AuditStore(db)
        self.scheduler = BatchScheduler(
            self.state, self.audit, self.registry, settings, clock=clock
        )
        self.auditor = Auditor(self.audit, self.registry)

    def ensure_indexes(self) -> None:
        self.state.ensure_indexes()
        self.audit.ensure_indexes()

    def start_job(self, operator: str, dry_run: bool = False) -> JobResponse:
        return self.scheduler.start_job(operator, dry_run=dry_run)

    def advance(self, operator: str) -> JobResponse:
        return self.scheduler.advance(operator)

    def reset(self, operator: str) -> ActionResponse:
        return self.scheduler.reset(operator)

    def rollback(self) -> ActionResponse:
        return self.auditor.rollback()

    def view_log(self, limit: int = Auditor.LOG_LIMIT) -> LogView:
        return self.auditor.view_log(limit=limit)

    def run_to_completion(
        self,
        operator: str,
        dry_run: bool = False,
        on_progress: Optional[Callable[[JobResponse], None]] = None,
        max_calls: Optional[int] = None,
    ) -> JobResponse:
        """
        Start a job and call advance until it completes.

        Args:
            operator: Operator identity
            dry_run: Record changes without persisting them
            on_progress: Called with every response, including the first
            max_calls: Stop after this many advance calls (None = no limit)

        Returns:
            The last response; its `continue_` flag is False when the job
            completed.

        Raises:
            RewriteJobError: If the job is aborted
        """
        response = self.start_job(operator, dry_run=dry_run)
        if on_progress:
            on_progress(response)

        calls = 0
        while response.continue_:
            if max_calls is not None and calls >= max_calls:
                logger.warning(f"Stopping after {calls} advance calls; job left resumable")
                break
            response = self.advance(operator)
            calls += 1
            if on_progress:
                on_progress(response)
        return response
