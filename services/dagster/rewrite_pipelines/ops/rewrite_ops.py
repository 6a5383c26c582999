# =============================================================================
# Rewrite Ops - Headless Reference Rewriting
# =============================================================================
# Drive a rewrite job to completion (start, then advance until done) and roll
# back the last completed live run. The admin service drives the same engine
# one call at a time; these ops loop inside a single Dagster step.
# =============================================================================

from typing import Any, Dict, Optional

from dagster import Config, OpExecutionContext, op
from pydantic import Field

from libs.jobs import RewriteEngine, RewriteJobError
from libs.models import JobResponse


class RewriteRunConfig(Config):
    """Run config for run_reference_rewrite."""

    operator: str = Field("dagster", description="Operator identity scoping the job state")
    dry_run: bool = Field(True, description="Record changes without persisting them")
    max_calls: Optional[int] = Field(None, description="Stop after this many advance calls")


def _run_rewrite(
    engine: RewriteEngine,
    operator: str,
    dry_run: bool,
    log,
    max_calls: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Core logic for a full rewrite run.

    This function is extracted for easier unit testing without Dagster context.

    Args:
        engine: RewriteEngine bound to the CMS database
        operator: Operator identity
        dry_run: Record changes without persisting them
        log: Logger instance (context.log)
        max_calls: Optional cap on advance calls

    Returns:
        The final response as a JSON-ready dict

    Raises:
        RewriteJobError: If the job aborts (e.g. the cursor stops advancing)
    """
    mode = "dry-run" if dry_run else "live"
    log.info(f"Starting {mode} reference rewrite as {operator}")

    def report(response: JobResponse) -> None:
        log.info(
            f"[{response.stage.value}] {response.collection or '-'}: {response.message}"
        )

    try:
        final = engine.run_to_completion(
            operator, dry_run=dry_run, on_progress=report, max_calls=max_calls
        )
    except RewriteJobError as e:
        log.error(f"Reference rewrite aborted: {e.message} {e.debug}")
        raise

    if final.continue_:
        log.warning("Reference rewrite stopped before completion; advance again to resume")
    else:
        log.info(final.message)
    return final.model_dump(mode="json", by_alias=True)


def _rollback(engine: RewriteEngine, log) -> Dict[str, Any]:
    """
    Core logic for rolling back the last completed live run.

    Raises:
        RollbackRefusedError: If there is nothing to roll back
    """
    log.info("Rolling back the last completed reference rewrite")
    response = engine.rollback()
    log.info(response.message)
    return response.model_dump(mode="json")


@op(required_resource_keys={"mongodb"})
def run_reference_rewrite(
    context: OpExecutionContext, config: RewriteRunConfig
) -> Dict[str, Any]:
    """
    Rewrite legacy asset references across every configured collection.

    Args:
        context: Dagster op execution context
        config: Operator identity, dry-run flag and optional call cap

    Returns:
        Final job response (stage, stats, samples, message)
    """
    engine = context.resources.mongodb.get_engine()
    return _run_rewrite(
        engine=engine,
        operator=config.operator,
        dry_run=config.dry_run,
        log=context.log,
        max_calls=config.max_calls,
    )


@op(required_resource_keys={"mongodb"})
def rollback_reference_rewrite(context: OpExecutionContext) -> Dict[str, Any]:
    """Restore every field changed by the last completed live run."""
    engine = context.resources.mongodb.get_engine()
    return _rollback(engine=engine, log=context.log)
