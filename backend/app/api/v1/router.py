"""API v1 router aggregator.

All v1 endpoint routers are included here; mounted at /api/v1.
"""

from fastapi import APIRouter

from app.api.v1 import auth

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(auth.me_router, tags=["auth"])
