# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the reference rewriting engine.
# =============================================================================

"""
Data models for the reference rewriter.

This library provides:
- Job: Resumable job state and its statistics
- ChangeRecord: Field-level audit entry
- RewriteRun: Durable audit record of a job
- ActivityLog: Operator action trail
- Configuration models
"""

__version__ = "0.1.0"

# Job models
from .job import (
    CollectionStats,
    FieldCount,
    Job,
    JobMode,
    JobResponse,
    JobStage,
    JobStats,
)

# Audit models
from .change import ChangeRecord, truncate_preview
from .run import (
    ActionResponse,
    LogView,
    RewriteRun,
    RollbackStats,
    RunStatus,
    RunSummary,
)

# Activity models
from .activity import ActivityLog, ActivityAction, ActivityResourceType

# Configuration models
from .config import DEFAULT_COLLECTIONS, MongoSettings, RewriteSettings

__all__ = [
    # Job models
    "CollectionStats",
    "FieldCount",
    "Job",
    "JobMode",
    "JobResponse",
    "JobStage",
    "JobStats",
    # Audit models
    "ChangeRecord",
    "truncate_preview",
    "ActionResponse",
    "LogView",
    "RewriteRun",
    "RollbackStats",
    "RunStatus",
    "RunSummary",
    # Activity models
    "ActivityLog",
    "ActivityAction",
    "ActivityResourceType",
    # Configuration models
    "DEFAULT_COLLECTIONS",
    "MongoSettings",
    "RewriteSettings",
]
