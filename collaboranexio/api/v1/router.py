"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from collaboranexio.features.audit.router import router as audit_router
from collaboranexio.features.auth.router import router as auth_router
from collaboranexio.features.tenants.router import router as companies_router
from collaboranexio.features.users.router import router as users_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Register all feature routers
v1_router.include_router(auth_router)
v1_router.include_router(companies_router)
v1_router.include_router(users_router)
v1_router.include_router(audit_router)
