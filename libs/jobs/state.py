# =============================================================================
# Job State Store
# =============================================================================
# Keyed store (operator -> Job) in the `rewrite_jobs` collection. A TTL index
# on updated_at expires abandoned jobs; expiry is also enforced on load because
# the MongoDB TTL monitor runs only periodically.
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError
from pymongo.database import Database

from libs.models import Job

from .errors import JobStateCorruptError

logger = logging.getLogger(__name__)

__all__ = ["JobStateStore"]


class JobStateStore:
    """
    Persist one resumable job per operator.

    Args:
        db: Database holding the job collection
        ttl_seconds: Idle lifetime of a job
    """

    COLLECTION = "rewrite_jobs"

    def __init__(self, db: Database, ttl_seconds: int = 3600) -> None:
        self.db = db
        self.ttl_seconds = ttl_seconds

    @property
    def collection(self):
        return self.db[self.COLLECTION]

    def ensure_indexes(self) -> None:
        self.collection.create_index(
            "updated_at",
            name="rewrite_jobs_ttl",
            expireAfterSeconds=self.ttl_seconds,
        )

    def load(self, operator: str) -> Optional[Job]:
        """
        Load the operator's job.

        Returns:
            The job, or None when absent or expired

        Raises:
            JobStateCorruptError: If the stored document is invalid; the
                document is deleted first
        """
        document = self.collection.find_one({"_id": operator})
        if not document:
            return None

        document.pop("_id", None)
        try:
            job = Job(**document)
        except (ValidationError, TypeError) as e:
            logger.error(f"Corrupt job state for operator {operator}, deleting: {e}")
            self.delete(operator)
            raise JobStateCorruptError(
                "Job state is invalid and has been cleared. Please start again.",
                debug={"operator": operator, "error": str(e)},
            ) from e

        updated_at = job.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - updated_at > timedelta(seconds=self.ttl_seconds):
            logger.info(f"Job state for operator {operator} expired")
            self.delete(operator)
            return None
        return job

    def save(self, job: Job) -> None:
        job.updated_at = datetime.now(timezone.utc)
        document = job.model_dump()
        document["mode"] = job.mode.value
        self.collection.replace_one({"_id": job.operator}, document, upsert=True)

    def delete(self, operator: str) -> bool:
        result = self.collection.delete_one({"_id": operator})
        return result.deleted_count > 0
