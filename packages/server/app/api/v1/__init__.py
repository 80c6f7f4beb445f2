"""
API v1 Router

Org-scoped collections are prefixed with /orgs/{org_id}; single tasks are
addressed directly by id under /tasks.
"""

from fastapi import APIRouter
from . import memberships, organizations, tasks, users

router = APIRouter()

router.include_router(organizations.router, prefix="/orgs", tags=["Organizations"])
router.include_router(memberships.router, prefix="/orgs/{org_id}", tags=["Memberships"])
router.include_router(tasks.org_tasks_router, prefix="/orgs/{org_id}/tasks", tags=["Tasks"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(users.router, prefix="/users", tags=["Users"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/join",
            "/orgs/{org_id}/members",
            "/orgs/{org_id}/tasks",
            "/tasks/{task_id}",
            "/users/me",
        ],
    }
