"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Which routes are public is decided HERE, statically, by how each
router is included. Protected routers carry the authentication gate as a
router-level dependency, so no handler in them can run without a
verified identity. Open: health and the auth router (signup, login,
forgot, reset; /auth/me declares the gate itself). The root page and the
OpenAPI docs live outside /api and are open too.
"""

from fastapi import APIRouter, Depends

from shareme.api.auth import router as auth_router
from shareme.api.health import router as health_router
from shareme.api.projects import router as projects_router
from shareme.api.task_notes import router as task_notes_router
from shareme.api.tasks import router as tasks_router
from shareme.api.users import router as users_router
from shareme.auth.dependencies import get_current_identity

# All protected routers require authentication
_auth = [Depends(get_current_identity)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(projects_router, tags=["projects"], dependencies=_auth)
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
api_router.include_router(task_notes_router, tags=["task-notes"], dependencies=_auth)
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
