"""Dagster Jobs - Executable Workflows."""

from .rewrite_jobs import rewrite_references_job, rollback_references_job

__all__ = ["rewrite_references_job", "rollback_references_job"]
