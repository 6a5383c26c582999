"""Reference rewriting jobs (op-based)."""

from dagster import job

from ..ops import rollback_reference_rewrite, run_reference_rewrite


@job(
    name="rewrite_references_job",
    description="Rewrite legacy-format asset references to their migrated counterparts across the CMS record stores",
)
def rewrite_references_job():
    """
    Run a full rewrite job in one Dagster step.

    Dry-run by default; set ops.run_reference_rewrite.config.dry_run to false
    to persist changes.
    """
    run_reference_rewrite()


@job(
    name="rollback_references_job",
    description="Restore every field changed by the last completed live rewrite",
)
def rollback_references_job():
    rollback_reference_rewrite()
