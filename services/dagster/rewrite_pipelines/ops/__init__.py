"""Dagster Ops - Reference rewriting steps."""

from .rewrite_ops import RewriteRunConfig, rollback_reference_rewrite, run_reference_rewrite

__all__ = [
    "RewriteRunConfig",
    "rollback_reference_rewrite",
    "run_reference_rewrite",
]
