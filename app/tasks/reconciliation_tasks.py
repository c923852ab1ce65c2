"""Periodic reconciliation tasks"""

from celery import Task
from celery.utils.log import get_task_logger
from typing import Any, Dict, Optional
import asyncio

from app.core.celery_app import celery_app
from app.core.database import worker_session_factory
from app.repositories import SqlAlchemyLedgerStore
from app.services.reconciliation import ReconciliationService

logger = get_task_logger(__name__)

class ReconciliationTask(Task):
    """Base class for sweeps; a failed sweep is retried later, not immediately"""

    autoretry_for = (Exception,)
    retry_kwargs = {"max_retries": 2}
    retry_backoff = 300
    retry_backoff_max = 1800

async def _membership_sweep(timeout: Optional[float]) -> Dict[str, Any]:
    async with worker_session_factory() as session_factory:
        service = ReconciliationService(SqlAlchemyLedgerStore(session_factory))
        summary = await service.reconcile_all_memberships(timeout=timeout)
        return summary.model_dump()

async def _tweet_sweep(wallet_address: Optional[str], timeout: Optional[float]) -> Dict[str, Any]:
    async with worker_session_factory() as session_factory:
        service = ReconciliationService(SqlAlchemyLedgerStore(session_factory))
        summary = await service.reconcile_all_active_tweets(wallet_address, timeout=timeout)
        return summary.model_dump()

def _run(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
        asyncio.set_event_loop(None)

@celery_app.task(base=ReconciliationTask, name="reconcile_discord_memberships")
def reconcile_discord_memberships_task(timeout: Optional[float] = None) -> Dict[str, Any]:
    """Unverify wallets whose Discord user left the server"""
    logger.info("Starting Discord membership reconciliation")
    result = _run(_membership_sweep(timeout))
    logger.info(
        f"Discord membership reconciliation: {result['checked']} checked, "
        f"{result['revoked']} revoked, {result['errors']} errors"
    )
    return result

@celery_app.task(base=ReconciliationTask, name="reconcile_active_tweets")
def reconcile_active_tweets_task(
    wallet_address: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Revoke daily posts whose tweet was deleted"""
    logger.info("Starting tweet reconciliation")
    result = _run(_tweet_sweep(wallet_address, timeout))
    logger.info(
        f"Tweet reconciliation: {result['checked']} checked, "
        f"{result['revoked']} revoked, {result['errors']} errors"
    )
    return result
