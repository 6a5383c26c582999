# =============================================================================
# Activity Router
# =============================================================================
# JSON listing of the operator action trail (starts, completions, aborts,
# resets and rollbacks of rewrite jobs).
# =============================================================================

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.auth.dependencies import AuthenticatedUser, get_current_user
from app.services.activity_service import ActivityLogEntry, get_activity_service

router = APIRouter(prefix="/activity", tags=["activity"])


class ActivityLogItem(BaseModel):
    id: str
    user: str
    action: str
    resource_type: str
    resource_id: str
    details: dict
    timestamp: str
    ip_address: Optional[str]

    @classmethod
    def from_entry(cls, entry: ActivityLogEntry) -> "ActivityLogItem":
        return cls(
            id=entry.id,
            user=entry.user,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            details=entry.details,
            timestamp=entry.timestamp.isoformat(),
            ip_address=entry.ip_address,
        )


class ActivityListResponse(BaseModel):
    items: list[ActivityLogItem]
    count_returned: int
    offset: int
    limit: int
    filters: dict[str, Any]


@router.get("/", response_model=ActivityListResponse)
async def list_activity(
    user: Optional[str] = Query(None, description="Filter by operator"),
    action: Optional[str] = Query(None, description="Filter by rewrite action"),
    run_id: Optional[str] = Query(None, description="Filter by run identifier"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    limit: int = Query(50, ge=1, le=100, description="Limit for pagination"),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ActivityListResponse:
    """List rewrite actions, newest first."""
    entries, count = get_activity_service().get_recent_activity(
        user=user,
        action=action,
        resource_id=run_id,
        offset=offset,
        limit=limit,
    )

    return ActivityListResponse(
        items=[ActivityLogItem.from_entry(entry) for entry in entries],
        count_returned=count,
        offset=offset,
        limit=limit,
        filters={"user": user, "action": action, "run_id": run_id},
    )
