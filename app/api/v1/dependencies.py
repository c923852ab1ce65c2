"""Shared API dependencies"""

from typing import Optional
import hmac
import logging

from fastapi import Depends, Header

from app.core.config import Settings, get_settings
from app.core.database import AsyncSessionLocal
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.repositories import InMemoryLedgerStore, LedgerStore, SqlAlchemyLedgerStore
from app.services import (
    AdminService,
    ConnectionService,
    PointsEngine,
    ReconciliationService,
    ReferralService,
    TaskService,
)

logger = logging.getLogger(__name__)

_mock_store = InMemoryLedgerStore()

def get_ledger_store(settings: Settings = Depends(get_settings)) -> LedgerStore:
    if settings.REWARDS_MOCK:
        return _mock_store
    return SqlAlchemyLedgerStore(AsyncSessionLocal)

def get_points_engine(store: LedgerStore = Depends(get_ledger_store)) -> PointsEngine:
    return PointsEngine(store)

def get_connection_service(
    store: LedgerStore = Depends(get_ledger_store),
    settings: Settings = Depends(get_settings),
) -> ConnectionService:
    return ConnectionService(store, settings)

def get_task_service(
    store: LedgerStore = Depends(get_ledger_store),
    settings: Settings = Depends(get_settings),
) -> TaskService:
    return TaskService(store, settings)

def get_referral_service(
    store: LedgerStore = Depends(get_ledger_store),
    settings: Settings = Depends(get_settings),
) -> ReferralService:
    return ReferralService(store, settings)

def get_reconciliation_service(
    store: LedgerStore = Depends(get_ledger_store),
    settings: Settings = Depends(get_settings),
) -> ReconciliationService:
    return ReconciliationService(store, settings)

def get_admin_service(
    store: LedgerStore = Depends(get_ledger_store),
    settings: Settings = Depends(get_settings),
) -> AdminService:
    return AdminService(store, settings)

async def require_admin(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Require the shared admin key on admin routes"""
    if not settings.ADMIN_API_KEY:
        raise ForbiddenException("Admin API is disabled", error_code="ADMIN_DISABLED")

    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        logger.warning("Rejected admin request with a missing or invalid key")
        raise UnauthorizedException("Invalid admin key", error_code="INVALID_ADMIN_KEY")
