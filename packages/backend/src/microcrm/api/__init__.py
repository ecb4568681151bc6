"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in the clients router
without relying on each handler to remember it. Health and auth routers
are open (the auth router guards /profile and /me itself).
"""

from fastapi import APIRouter, Depends

from microcrm.api.auth import router as auth_router
from microcrm.api.clients import router as clients_router
from microcrm.api.health import router as health_router
from microcrm.auth.dependencies import get_current_identity

# All protected routers require authentication
_auth = [Depends(get_current_identity)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(clients_router, tags=["clients"], dependencies=_auth)
