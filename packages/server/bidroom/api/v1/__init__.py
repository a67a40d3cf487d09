"""
API v1 Router

Org-scoped endpoints act on the session's active organization.
"""

from fastapi import APIRouter
from . import auth, evaluations, packages, projects
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Organization routes (list, create)
router.include_router(orgs_global_router)

# Active-org routes (profile, members, invitations)
router.include_router(orgs_scoped_router, prefix="/org", tags=["Organizations"])

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(packages.router, prefix="/packages", tags=["Packages"])
router.include_router(packages.assets_router, prefix="/assets", tags=["Packages"])
router.include_router(evaluations.router, tags=["Evaluations"])


@router.get("/", tags=["API"])
async def api_root():
    """API root. Returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/auth/session",
            "/orgs",
            "/org",
            "/projects",
            "/packages",
            "/assets",
            "/technical-evaluations",
            "/commercial-evaluations",
        ],
    }
