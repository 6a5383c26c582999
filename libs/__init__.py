# =============================================================================
# Media Reference Rewriter Shared Libraries
# =============================================================================
# This package contains shared libraries for the reference rewriting engine.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
Media reference rewriter shared libraries.

Sub-packages:
- models: Pydantic data models, job state and settings
- rewriting: Reference resolution and structure-preserving value rewriting
- stores: Collection walkers over the CMS record stores
- jobs: Job state persistence, batch scheduling, audit and rollback
"""

__version__ = "0.1.0"
