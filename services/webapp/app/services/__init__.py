# =============================================================================
# Services Module
# =============================================================================
# Service wrappers for the rewrite engine and the activity trail.
# =============================================================================

from app.services.activity_service import ActivityService, get_activity_service
from app.services.rewrite_service import RewriteService, get_rewrite_service

__all__ = [
    # Activity
    "ActivityService",
    "get_activity_service",
    # Rewrite
    "RewriteService",
    "get_rewrite_service",
]
