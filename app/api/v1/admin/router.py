"""Admin management endpoints"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies import get_admin_service, require_admin
from app.core.exceptions import NotFoundException
from app.schemas import ActionResult, SweepSummary
from app.schemas.admin import (
    ActivityData,
    AdjustPointsRequest,
    AdminStats,
    DailyPostEntry,
    ReferralAdminStats,
)
from app.services import AdminService
from app.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter(dependencies=[Depends(require_admin)])

def pagination(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
) -> PaginationParams:
    return PaginationParams(page=page, size=size)

@router.get("/stats", response_model=AdminStats)
async def get_admin_stats(service: AdminService = Depends(get_admin_service)):
    """Get admin dashboard statistics"""
    return await service.get_stats()

@router.get("/users")
async def get_all_users(
    params: PaginationParams = Depends(pagination),
    sort_by: str = Query("created_at", pattern="^(created_at|total_points)$"),
    descending: bool = Query(True),
    service: AdminService = Depends(get_admin_service),
) -> PaginatedResponse[Dict[str, Any]]:
    return await service.list_users(params, sort_by, descending)

@router.get("/users/search")
async def search_users(
    q: str = Query(..., min_length=1, max_length=128),
    params: PaginationParams = Depends(pagination),
    service: AdminService = Depends(get_admin_service),
) -> PaginatedResponse[Dict[str, Any]]:
    """Search by wallet address, X username or Discord username"""
    return await service.search_users(q, params)

@router.get("/users/{wallet_address}/activity")
async def get_user_activity(
    wallet_address: str,
    service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    activity = await service.get_user_activity(wallet_address)
    if activity is None:
        raise NotFoundException("Profile not found")
    return activity

@router.get("/users/{wallet_address}/audit")
async def audit_user(
    wallet_address: str,
    service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    """Compare the stored total with the wallet's history"""
    audit = await service.audit_wallet(wallet_address)
    if audit is None:
        raise NotFoundException("Profile not found")
    return audit

@router.post("/points/adjust", response_model=ActionResult)
async def adjust_points(
    body: AdjustPointsRequest,
    service: AdminService = Depends(get_admin_service),
):
    return await service.adjust_points(body.wallet_address, body.points_change, body.reason)

@router.get("/history")
async def get_points_history(
    wallet_address: Optional[str] = Query(None),
    params: PaginationParams = Depends(pagination),
    service: AdminService = Depends(get_admin_service),
) -> PaginatedResponse[Dict[str, Any]]:
    return await service.get_points_history(params, wallet_address)

@router.get("/daily-posts", response_model=List[DailyPostEntry])
async def get_daily_posts(
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    service: AdminService = Depends(get_admin_service),
):
    """Daily-post completions with the tweet URL parsed out of metadata"""
    return await service.get_daily_posts(date)

@router.post("/daily-posts/{completion_id}/revoke", response_model=ActionResult)
async def revoke_daily_post(
    completion_id: int,
    service: AdminService = Depends(get_admin_service),
):
    return await service.revoke_task(completion_id)

@router.get("/referrals")
async def get_referrals(
    params: PaginationParams = Depends(pagination),
    service: AdminService = Depends(get_admin_service),
) -> PaginatedResponse[Dict[str, Any]]:
    return await service.list_referrals(params)

@router.get("/referrals/stats", response_model=ReferralAdminStats)
async def get_referral_stats(service: AdminService = Depends(get_admin_service)):
    return await service.get_referral_stats()

@router.get("/activity", response_model=ActivityData)
async def get_activity(service: AdminService = Depends(get_admin_service)):
    """Chart data: daily for 30 days, monthly for 12 months"""
    return await service.get_activity_data()

@router.post("/tweets/reconcile", response_model=SweepSummary)
async def reconcile_tweets(
    wallet_address: Optional[str] = Query(None),
    service: AdminService = Depends(get_admin_service),
):
    """Re-check every active daily-post tweet now"""
    return await service.reconcile_tweets(wallet_address)
