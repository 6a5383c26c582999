# =============================================================================
# Activity Log Model
# =============================================================================
# Defines the ActivityLog model for tracking operator/system actions in MongoDB.
# =============================================================================

from datetime import datetime, timezone
from typing import Literal, Any

from pydantic import BaseModel, Field


__all__ = ["ActivityLog", "ActivityAction", "ActivityResourceType"]


# Type aliases for literal types
ActivityAction = Literal[
    "start_rewrite",
    "reset_rewrite",
    "complete_rewrite",
    "abort_rewrite",
    "rollback_rewrite",
]

ActivityResourceType = Literal["rewrite_job", "rewrite_run"]


class ActivityLog(BaseModel):
    """
    Activity log document model for the MongoDB audit trail.

    Records who started, reset, finished or reverted a rewrite job. The
    field-level changes themselves live in the rewrite audit store.

    Attributes:
        timestamp: When the action occurred (UTC)
        user: Operator or system identifier who performed the action
        action: Type of action performed (e.g., start_rewrite, rollback_rewrite)
        resource_type: Type of resource affected (rewrite_job, rewrite_run)
        resource_id: Identifier of the affected resource (run id)
        details: Additional context about the action (flexible dict)
    """

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the action occurred (UTC)",
    )
    user: str = Field(..., description="Operator or system identifier")
    action: ActivityAction = Field(..., description="Type of action performed")
    resource_type: ActivityResourceType = Field(
        ..., description="Type of resource affected"
    )
    resource_id: str = Field(..., description="Identifier of the affected resource")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context about the action",
    )
