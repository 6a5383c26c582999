# =============================================================================
# Rewrite Service - Reference Rewriting Engine Access
# =============================================================================
# Owns the MongoDB client and the RewriteEngine used by the rewrite router.
# =============================================================================

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from app.config import get_settings
from libs.jobs import RewriteEngine
from libs.models import ActionResponse, JobResponse, LogView, RewriteSettings


class RewriteService:
    """Service wrapping the rewrite engine for one CMS database."""

    def __init__(self) -> None:
        settings = get_settings()
        self._client = MongoClient(settings.mongo_connection_string)
        self._db: Database = self._client[settings.mongo_database_name]
        self.engine = RewriteEngine(self._db, RewriteSettings())
        self.engine.ensure_indexes()

    def ping(self) -> None:
        """Raise if MongoDB is unreachable."""
        self._client.admin.command("ping")

    # ------------------------------------------------------------------
    # Job operations
    # ------------------------------------------------------------------

    def start_job(self, operator: str, dry_run: bool) -> JobResponse:
        return self.engine.start_job(operator, dry_run=dry_run)

    def advance(self, operator: str) -> JobResponse:
        return self.engine.advance(operator)

    def reset(self, operator: str) -> ActionResponse:
        return self.engine.reset(operator)

    def rollback(self) -> ActionResponse:
        return self.engine.rollback()

    def view_log(self) -> LogView:
        return self.engine.view_log()


# Singleton instance
_rewrite_service: Optional[RewriteService] = None


def get_rewrite_service() -> RewriteService:
    """Get or create the RewriteService singleton."""
    global _rewrite_service
    if _rewrite_service is None:
        _rewrite_service = RewriteService()
    return _rewrite_service
