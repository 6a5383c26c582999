# =============================================================================
# FastAPI Main Application
# =============================================================================
# Entry point for the reference rewriter admin service.
# =============================================================================

from fastapi import FastAPI

from app import __version__
from app.routers import activity, health, rewrite

# Application instance
app = FastAPI(
    title="Reference Rewriter Admin",
    description=(
        "Rewrite legacy-format asset references to their migrated counterparts "
        "across the CMS record stores, with dry runs, audit log and rollback."
    ),
    version=__version__,
)

# Include routers
app.include_router(health.router)
app.include_router(rewrite.router)
app.include_router(activity.router)
