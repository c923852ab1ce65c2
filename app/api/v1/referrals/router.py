"""Referral API router"""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_referral_service
from app.core.exceptions import NotFoundException
from app.middleware.rate_limit import referral_limiter
from app.schemas import ActionResult, ReferralTier
from app.schemas.rewards import ApplyReferralRequest, ClaimReferralRequest
from app.services import ReferralService, tier_of

router = APIRouter()

@router.get("/code-status")
async def get_code_status(
    wallet_address: str = Query(..., min_length=1),
    service: ReferralService = Depends(get_referral_service),
) -> Dict[str, Any]:
    """Whether the wallet can hold a referral code, and what is missing"""
    return await service.get_code_status(wallet_address)

@router.get("/stats")
async def get_referral_stats(
    wallet_address: str = Query(..., min_length=1),
    service: ReferralService = Depends(get_referral_service),
) -> Dict[str, Any]:
    stats = await service.get_referral_stats(wallet_address)
    if stats is None:
        raise NotFoundException("Profile not found")
    return stats

@router.post("/apply", response_model=ActionResult)
@referral_limiter
async def apply_referral_code(
    request: Request,
    body: ApplyReferralRequest,
    service: ReferralService = Depends(get_referral_service),
):
    return await service.apply_referral_code(body.wallet_address, body.referral_code)

@router.post("/claim", response_model=ActionResult)
@referral_limiter
async def claim_referral_bonus(
    request: Request,
    body: ClaimReferralRequest,
    service: ReferralService = Depends(get_referral_service),
):
    return await service.claim_referral_bonus(body.referred_wallet)

@router.get("/leaderboard")
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    service: ReferralService = Depends(get_referral_service),
) -> List[Dict[str, Any]]:
    return await service.get_leaderboard(limit)

@router.get("/tiers/{count}", response_model=ReferralTier)
async def get_tier(count: int):
    return tier_of(max(count, 0))
