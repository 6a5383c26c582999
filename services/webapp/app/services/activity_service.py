# =============================================================================
# Activity Service - Operator Action Trail
# =============================================================================
# Records who started, reset, finished or rolled back a rewrite job, and
# lists recent entries. Field-level changes live in the rewrite audit store;
# this trail only names the action and the run it touched.
# =============================================================================

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from app.config import get_settings
from libs.models import ActivityLog


@dataclass
class ActivityLogEntry:
    """One stored operator action."""

    id: str  # MongoDB ObjectId as string
    user: str
    action: str
    resource_type: str
    resource_id: str
    details: dict
    timestamp: datetime
    ip_address: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "ActivityLogEntry":
        return cls(
            id=str(doc.get("_id", "")),
            user=doc.get("user", ""),
            action=doc.get("action", ""),
            resource_type=doc.get("resource_type", ""),
            resource_id=doc.get("resource_id", ""),
            details=doc.get("details", {}),
            timestamp=doc.get("timestamp", datetime.now(timezone.utc)),
            ip_address=doc.get("ip_address"),
        )


class ActivityService:
    """
    Activity trail stored in the `activity_logs` collection.

    Args:
        db: Database to use; defaults to the one named by the webapp settings
    """

    ACTIVITY_LOGS = "activity_logs"

    def __init__(self, db: Optional[Database] = None) -> None:
        if db is None:
            settings = get_settings()
            client = MongoClient(settings.mongo_connection_string)
            db = client[settings.mongo_database_name]
        self._db: Database = db

    def _get_collection(self) -> Collection:
        return self._db[self.ACTIVITY_LOGS]

    def ensure_indexes(self) -> None:
        collection = self._get_collection()
        collection.create_index([("timestamp", DESCENDING)])
        collection.create_index([("resource_id", ASCENDING), ("timestamp", DESCENDING)])

    def log_activity(
        self,
        user: str,
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> str:
        """
        Log an operator action.

        Args:
            user: Operator identity
            action: One of the rewrite actions ('start_rewrite', 'rollback_rewrite', ...)
            resource_type: 'rewrite_job' or 'rewrite_run'
            resource_id: Run identifier (or operator when no run exists)
            details: Optional additional details
            ip_address: Optional client address

        Returns:
            The inserted document's ObjectId as a string

        Raises:
            pydantic.ValidationError: If action or resource_type is unknown
        """
        entry = ActivityLog(
            user=user,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
        )
        doc: dict[str, Any] = entry.model_dump()
        if ip_address is not None:
            doc["ip_address"] = ip_address

        result = self._get_collection().insert_one(doc)
        return str(result.inserted_id)

    def get_recent_activity(
        self,
        user: Optional[str] = None,
        action: Optional[str] = None,
        resource_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[ActivityLogEntry], int]:
        """
        Recent actions, newest first.

        `resource_id` narrows the trail to one run (or one operator's job
        actions recorded before a run existed).

        Returns:
            Tuple of (entries, count of returned entries)
        """
        query: dict[str, Any] = {}
        if user is not None:
            query["user"] = user
        if action is not None:
            query["action"] = action
        if resource_id is not None:
            query["resource_id"] = resource_id

        cursor = (
            self._get_collection()
            .find(query)
            .sort("timestamp", DESCENDING)
            .skip(offset)
            .limit(limit)
        )
        results = [ActivityLogEntry.from_document(doc) for doc in cursor]
        return results, len(results)


# Singleton instance
_activity_service: Optional[ActivityService] = None


def get_activity_service() -> ActivityService:
    """Get or create the ActivityService singleton."""
    global _activity_service
    if _activity_service is None:
        _activity_service = ActivityService()
        _activity_service.ensure_indexes()
    return _activity_service
