"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and auth routers are open. Every other router protects
its routes with the gates from auth.dependencies, either per route or
at the router level (see api/admin.py).
"""

from fastapi import APIRouter

from crafthub.api.admin import router as admin_router
from crafthub.api.artisans import router as artisans_router
from crafthub.api.auth import router as auth_router
from crafthub.api.customers import router as customers_router
from crafthub.api.health import router as health_router
from crafthub.api.oauth import router as oauth_router
from crafthub.api.profile import router as profile_router

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
# After auth_router so fixed paths like /auth/admin/login win over /auth/{provider}/...
api_router.include_router(oauth_router, tags=["oauth"])

# Gated routes
api_router.include_router(profile_router, tags=["profile"])
api_router.include_router(artisans_router, tags=["artisans"])
api_router.include_router(customers_router, tags=["customers"])
api_router.include_router(admin_router, tags=["admin"])
