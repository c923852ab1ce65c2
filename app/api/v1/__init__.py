"""API v1 routes aggregation"""

from fastapi import APIRouter

from .rewards.router import router as rewards_router
from .referrals.router import router as referrals_router
from .admin.router import router as admin_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(rewards_router, prefix="/rewards", tags=["Rewards"])
api_router.include_router(referrals_router, prefix="/referral", tags=["Referrals"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])

# Export router
router = api_router
