# =============================================================================
# Rewrite Router
# =============================================================================
# Administrative control surface for the reference rewriting engine:
# start, advance, reset, rollback and the audit log view. The authenticated
# username is the operator identity that scopes job state.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.auth.dependencies import AuthenticatedUser, get_current_user
from app.services.activity_service import get_activity_service
from app.services.rewrite_service import get_rewrite_service
from libs.jobs import JobStateMissingError, RewriteJobError, StuckCursorError
from libs.models import ActionResponse, JobResponse, JobStage, LogView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rewrite", tags=["rewrite"])


class StartRequest(BaseModel):
    """Request body for starting a job."""

    dry_run: bool = False


def _job_error(exc: RewriteJobError) -> HTTPException:
    status_code = 404 if isinstance(exc, JobStateMissingError) else 409
    return HTTPException(status_code=status_code, detail=exc.to_payload())


def _unexpected_error(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Unexpected error during {action}")
    return HTTPException(
        status_code=500,
        detail={"message": f"{action} failed: {exc}", "non_retryable": False},
    )


def _record_activity(
    user: AuthenticatedUser,
    action: str,
    resource_type: str,
    resource_id: Optional[str],
    details: Optional[dict] = None,
) -> None:
    try:
        get_activity_service().log_activity(
            user=user.username,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id or user.operator_id,
            details=details,
        )
    except Exception as exc:
        # Activity logging is best-effort
        logger.warning(f"Failed to record activity {action}: {exc}")


@router.post("/start", response_model=JobResponse)
async def start_job(
    request: StartRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> JobResponse:
    """Create a new job for the operator, replacing any job in progress."""
    service = get_rewrite_service()
    try:
        response = service.start_job(current_user.operator_id, dry_run=request.dry_run)
    except RewriteJobError as exc:
        raise _job_error(exc) from exc
    except Exception as exc:
        raise _unexpected_error("Start job", exc) from exc

    _record_activity(
        current_user,
        "start_rewrite",
        "rewrite_job",
        None,
        {"dry_run": request.dry_run},
    )
    return response


@router.post("/advance", response_model=JobResponse)
async def advance_job(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> JobResponse:
    """
    Run one bounded batch of the operator's job.

    Clients call this repeatedly while the response says `continue`.
    """
    service = get_rewrite_service()
    try:
        response = service.advance(current_user.operator_id)
    except StuckCursorError as exc:
        _record_activity(
            current_user,
            "abort_rewrite",
            "rewrite_run",
            exc.debug.get("run_id"),
            exc.to_payload(),
        )
        raise _job_error(exc) from exc
    except RewriteJobError as exc:
        raise _job_error(exc) from exc
    except Exception as exc:
        raise _unexpected_error("Batch processing", exc) from exc

    if response.stage == JobStage.COMPLETE:
        _record_activity(
            current_user,
            "complete_rewrite",
            "rewrite_run",
            None,
            {"message": response.message},
        )
    return response


@router.post("/reset", response_model=ActionResponse)
async def reset_job(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ActionResponse:
    """Delete the operator's job state unconditionally."""
    service = get_rewrite_service()
    try:
        response = service.reset(current_user.operator_id)
    except Exception as exc:
        raise _unexpected_error("Reset job", exc) from exc

    _record_activity(
        current_user,
        "reset_rewrite",
        "rewrite_job",
        response.details.get("run_id"),
    )
    return response


@router.post("/rollback", response_model=ActionResponse)
async def rollback_run(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ActionResponse:
    """Restore every field changed by the last completed live run."""
    service = get_rewrite_service()
    try:
        response = service.rollback()
    except RewriteJobError as exc:
        raise _job_error(exc) from exc
    except Exception as exc:
        raise _unexpected_error("Rollback", exc) from exc

    _record_activity(
        current_user,
        "rollback_rewrite",
        "rewrite_run",
        response.details.get("run_id"),
        response.details,
    )
    return response


@router.get("/log", response_model=LogView)
async def view_log(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> LogView:
    """Latest run with its summary and most recent change previews."""
    service = get_rewrite_service()
    try:
        return service.view_log()
    except Exception as exc:
        raise _unexpected_error("View log", exc) from exc
