"""Points engine: the single path every balance change goes through"""

from typing import List, Optional, Tuple
import logging

from app.models import PointsHistory
from app.repositories import LedgerStore
from app.utils.helpers import normalize_wallet

logger = logging.getLogger(__name__)

class PointsEngine:
    """Adjusts wallet balances and appends the matching history rows"""

    def __init__(self, store: LedgerStore):
        self.store = store

    async def add_points(
        self,
        wallet_address: str,
        delta: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> int:
        """
        Apply a signed point delta to a wallet

        The profile is created on first reference. Total and history row are
        written together; if the store is down neither is written and
        LedgerUnavailableError propagates.

        Returns:
            Balance after the change
        """
        entry = await self.record(wallet_address, delta, transaction_type, description)
        return entry.balance_after

    async def record(
        self,
        wallet_address: str,
        delta: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> PointsHistory:
        wallet = normalize_wallet(wallet_address)
        await self.store.get_or_create_profile(wallet)
        entry = await self.store.apply_points(wallet, delta, transaction_type, description)
        logger.info(
            f"Points {delta:+d} ({transaction_type}) for {wallet}, balance {entry.balance_after}"
        )
        return entry

    async def get_original_bonus_amount(
        self,
        wallet_address: str,
        transaction_type: str,
        default: int,
    ) -> int:
        """
        Amount actually granted for a bonus type

        Disconnects refund what was granted, not the current configured
        amount, so the most recent positive entry of that type wins.
        """
        amount = await self.store.latest_positive_points(normalize_wallet(wallet_address), transaction_type)
        if amount is None:
            return default
        return amount

    async def get_history(
        self,
        wallet_address: str,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[PointsHistory], int]:
        return await self.store.list_history(normalize_wallet(wallet_address), offset, limit)
