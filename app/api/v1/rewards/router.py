"""Rewards API router"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import (
    get_connection_service,
    get_points_engine,
    get_reconciliation_service,
    get_task_service,
)
from app.middleware.rate_limit import mutation_limiter
from app.models import Platform
from app.schemas import ActionResult, ExternalIdentity, SweepSummary
from app.schemas.rewards import (
    ConnectDiscordRequest,
    ConnectXRequest,
    DailyPostRequest,
    ProfileRequest,
    WalletRequest,
)
from app.services import ConnectionService, PointsEngine, ReconciliationService, TaskService
from app.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter()

@router.post("/profile")
async def get_or_create_profile(
    body: ProfileRequest,
    service: ConnectionService = Depends(get_connection_service),
) -> Dict[str, Any]:
    """Profile for a wallet, created on first visit"""
    return await service.get_profile_view(body.wallet_address, body.chain_type)

@router.post("/connect-bonus", response_model=ActionResult)
@mutation_limiter
async def claim_connect_bonus(
    request: Request,
    body: WalletRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.claim_one_time_connect_bonus(body.wallet_address)

@router.post("/x/connect", response_model=ActionResult)
@mutation_limiter
async def connect_x(
    request: Request,
    body: ConnectXRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    identity = ExternalIdentity(username=body.x_username, external_id=body.x_user_id)
    return await service.connect_platform(body.wallet_address, Platform.X, identity)

@router.post("/x/disconnect", response_model=ActionResult)
@mutation_limiter
async def disconnect_x(
    request: Request,
    body: WalletRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.disconnect_platform(body.wallet_address, Platform.X)

@router.post("/discord/connect", response_model=ActionResult)
@mutation_limiter
async def connect_discord(
    request: Request,
    body: ConnectDiscordRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    identity = ExternalIdentity(username=body.discord_username, external_id=body.discord_id)
    return await service.connect_platform(body.wallet_address, Platform.DISCORD, identity)

@router.post("/discord/verify", response_model=ActionResult)
@mutation_limiter
async def verify_discord(
    request: Request,
    body: WalletRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    """Check Discord server membership through the bot API"""
    return await service.verify_discord_server_membership(body.wallet_address)

@router.post("/discord/disconnect", response_model=ActionResult)
@mutation_limiter
async def disconnect_discord(
    request: Request,
    body: WalletRequest,
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.disconnect_platform(body.wallet_address, Platform.DISCORD)

@router.post("/daily-post", response_model=ActionResult)
@mutation_limiter
async def complete_daily_post(
    request: Request,
    body: DailyPostRequest,
    service: TaskService = Depends(get_task_service),
):
    return await service.complete_daily_post(body.wallet_address, body.tweet_url)

@router.get("/history")
async def get_points_history(
    wallet_address: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    engine: PointsEngine = Depends(get_points_engine),
) -> PaginatedResponse[Dict[str, Any]]:
    """Wallet's points history, newest first"""
    params = PaginationParams(page=page, size=size)
    entries, total = await engine.get_history(wallet_address, params.offset, params.size)
    return PaginatedResponse.build([e.to_dict() for e in entries], total, params)

@router.post("/tweets/check", response_model=SweepSummary)
async def check_my_tweets(
    body: WalletRequest,
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Re-check this wallet's daily-post tweets and revoke deleted ones"""
    return await service.reconcile_all_active_tweets(body.wallet_address)
