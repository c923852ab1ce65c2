"""
Ledger store: persistence port for wallet profiles, points history,
task completions and referral edges

Every method is one unit of work against the backing store. Transitions that
guard a points award are compare-and-set updates, so two concurrent requests
cannot both win the same transition, and the award is written in the same
unit of work as the transition: either both land or neither does.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, List, NamedTuple, Optional, Sequence, Tuple
import logging

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import LedgerUnavailableError
from app.models import (
    WalletProfile,
    PointsHistory,
    TaskCompletion,
    CompletionStatus,
    Referral,
    utc_now,
)

logger = logging.getLogger(__name__)

PROFILE_SORT_FIELDS = ("created_at", "total_points")

class PointsAward(NamedTuple):
    """A signed balance change and the history row describing it"""

    delta: int
    transaction_type: str
    description: Optional[str] = None

def new_profile(wallet_address: str, chain_type: str = "evm") -> WalletProfile:
    """Fresh profile with every column populated"""
    now = utc_now()
    return WalletProfile(
        wallet_address=wallet_address,
        chain_type=chain_type,
        total_points=0,
        connect_bonus_claimed=False,
        x_connected=False,
        x_username=None,
        x_user_id=None,
        x_connected_at=None,
        discord_connected=False,
        discord_username=None,
        discord_id=None,
        discord_connected_at=None,
        discord_verified=False,
        discord_verified_at=None,
        referral_code=None,
        referred_by=None,
        referral_count=0,
        referral_points_earned=0,
        created_at=now,
        updated_at=now,
    )

class LedgerStore(ABC):
    """Storage port used by every rewards service"""

    # Profiles

    @abstractmethod
    async def get_profile(self, wallet_address: str) -> Optional[WalletProfile]:
        ...

    @abstractmethod
    async def get_or_create_profile(self, wallet_address: str, chain_type: str = "evm") -> WalletProfile:
        ...

    @abstractmethod
    async def update_profile(self, wallet_address: str, **changes: Any) -> Optional[WalletProfile]:
        ...

    @abstractmethod
    async def update_profile_if(
        self,
        wallet_address: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        awards: Sequence[PointsAward] = (),
    ) -> Optional[WalletProfile]:
        """
        Apply changes only if every expected column still holds its value

        Awards are credited in the same unit of work, so a failure leaves
        neither the changes nor the points behind. None if the guard lost.
        """

    @abstractmethod
    async def set_referral_code(self, wallet_address: str, code: str) -> Optional[str]:
        """
        Store a referral code unless the profile already has one

        Returns the code now on the profile, or None when the code collides
        with another profile's code.
        """

    @abstractmethod
    async def find_profile_by_referral_code(self, code: str) -> Optional[WalletProfile]:
        ...

    @abstractmethod
    async def list_verified_discord_profiles(self) -> List[WalletProfile]:
        ...

    @abstractmethod
    async def list_profiles(
        self,
        offset: int = 0,
        limit: int = 20,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> Tuple[List[WalletProfile], int]:
        ...

    @abstractmethod
    async def search_profiles(self, query: str, offset: int = 0, limit: int = 20) -> Tuple[List[WalletProfile], int]:
        ...

    @abstractmethod
    async def top_referrers(self, limit: int = 10) -> List[WalletProfile]:
        ...

    # Points

    @abstractmethod
    async def apply_points(
        self,
        wallet_address: str,
        delta: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> PointsHistory:
        """Increment the stored total and append the history row in one transaction"""

    @abstractmethod
    async def latest_positive_points(self, wallet_address: str, transaction_type: str) -> Optional[int]:
        ...

    @abstractmethod
    async def list_history(
        self,
        wallet_address: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[PointsHistory], int]:
        ...

    @abstractmethod
    async def sum_history(self, wallet_address: str) -> int:
        ...

    # Task completions

    @abstractmethod
    async def add_task_completion(
        self,
        wallet_address: str,
        task_type: str,
        points_awarded: int,
        completion_date: Optional[str] = None,
        metadata: Optional[str] = None,
        award: Optional[PointsAward] = None,
    ) -> Optional[TaskCompletion]:
        """
        Record an active completion, crediting award alongside it

        None if the wallet already has an active completion of that task
        for that date.
        """

    @abstractmethod
    async def get_task_completion(self, completion_id: int) -> Optional[TaskCompletion]:
        ...

    @abstractmethod
    async def has_active_completion(
        self,
        wallet_address: str,
        task_type: str,
        completion_date: Optional[str] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def revoke_completion(
        self,
        completion_id: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> Optional[TaskCompletion]:
        """Flip an active completion to revoked and deduct its own points_awarded; None if it was not active"""

    @abstractmethod
    async def list_active_completions_with_metadata(
        self,
        task_type: str,
        wallet_address: Optional[str] = None,
    ) -> List[TaskCompletion]:
        ...

    @abstractmethod
    async def list_completions(self, task_type: str, completion_date: Optional[str] = None) -> List[TaskCompletion]:
        ...

    @abstractmethod
    async def recent_completions(self, wallet_address: str, task_type: str, limit: int = 30) -> List[TaskCompletion]:
        ...

    @abstractmethod
    async def count_completions(self, wallet_address: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def count_daily_active(self, completion_date: str) -> int:
        ...

    # Referrals

    @abstractmethod
    async def create_referral(self, referrer_wallet: str, referred_wallet: str, code: str) -> Optional[Referral]:
        """Insert the edge and set referred_by; None if the wallet was already referred"""

    @abstractmethod
    async def get_referral_for_referred(self, referred_wallet: str) -> Optional[Referral]:
        ...

    @abstractmethod
    async def claim_referral(
        self,
        referral_id: int,
        referrer_award: PointsAward,
        referred_award: PointsAward,
    ) -> Optional[Referral]:
        """
        Flip an unclaimed referral to claimed and pay both sides

        The referrer's referral_count and referral_points_earned are then
        derived from all of their rows. None if it was already claimed.
        """

    @abstractmethod
    async def list_referrals_by_referrer(self, referrer_wallet: str) -> List[Referral]:
        ...

    @abstractmethod
    async def list_referrals(self, offset: int = 0, limit: int = 20, descending: bool = True) -> Tuple[List[Referral], int]:
        ...

    # Aggregates

    @abstractmethod
    async def profile_totals(self) -> Dict[str, int]:
        """total_users, total_points, x_connected, discord_connected"""

    @abstractmethod
    async def referral_totals(self) -> Dict[str, int]:
        """total, claimed, active_referrers"""

    @abstractmethod
    async def referrer_counts(self) -> List[int]:
        """referral_count of every profile with at least one referral"""

    @abstractmethod
    async def profile_created_since(self, since: datetime) -> List[datetime]:
        ...

    @abstractmethod
    async def completions_since(self, since: datetime) -> List[datetime]:
        ...

class SqlAlchemyLedgerStore(LedgerStore):
    """Ledger store backed by a relational database"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except (OperationalError, InterfaceError, OSError) as e:
            logger.error(f"Ledger store unavailable: {e}")
            raise LedgerUnavailableError(str(e)) from e

    @staticmethod
    def _profile_query(wallet_address: str):
        return (
            select(WalletProfile)
            .where(WalletProfile.wallet_address == wallet_address)
            .execution_options(populate_existing=True)
        )

    # Profiles

    async def get_profile(self, wallet_address: str) -> Optional[WalletProfile]:
        async with self._transaction() as session:
            result = await session.execute(self._profile_query(wallet_address))
            return result.scalar_one_or_none()

    async def get_or_create_profile(self, wallet_address: str, chain_type: str = "evm") -> WalletProfile:
        profile = await self.get_profile(wallet_address)
        if profile:
            return profile

        try:
            async with self._transaction() as session:
                profile = new_profile(wallet_address, chain_type)
                session.add(profile)
            logger.info(f"Created wallet profile {wallet_address} ({chain_type})")
            return profile
        except IntegrityError:
            # Created concurrently by another request
            return await self.get_profile(wallet_address)

    async def update_profile(self, wallet_address: str, **changes: Any) -> Optional[WalletProfile]:
        return await self.update_profile_if(wallet_address, {}, changes)

    async def update_profile_if(
        self,
        wallet_address: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        awards: Sequence[PointsAward] = (),
    ) -> Optional[WalletProfile]:
        stmt = update(WalletProfile).where(WalletProfile.wallet_address == wallet_address)
        for key, value in expected.items():
            column = getattr(WalletProfile, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        stmt = stmt.values(**changes, updated_at=utc_now()).execution_options(synchronize_session=False)

        async with self._transaction() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return None
            for award in awards:
                await self._append_points(session, wallet_address, award)
            refreshed = await session.execute(self._profile_query(wallet_address))
            return refreshed.scalar_one()

    async def set_referral_code(self, wallet_address: str, code: str) -> Optional[str]:
        try:
            profile = await self.update_profile_if(wallet_address, {"referral_code": None}, {"referral_code": code})
        except IntegrityError:
            return None
        if profile:
            return profile.referral_code
        existing = await self.get_profile(wallet_address)
        return existing.referral_code if existing else None

    async def find_profile_by_referral_code(self, code: str) -> Optional[WalletProfile]:
        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile).where(WalletProfile.referral_code == code).limit(1)
            )
            return result.scalar_one_or_none()

    async def list_verified_discord_profiles(self) -> List[WalletProfile]:
        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile)
                .where(
                    WalletProfile.discord_verified == True,  # noqa: E712
                    WalletProfile.discord_id.is_not(None),
                )
                .order_by(WalletProfile.id)
            )
            return list(result.scalars().all())

    async def list_profiles(
        self,
        offset: int = 0,
        limit: int = 20,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> Tuple[List[WalletProfile], int]:
        if sort_by not in PROFILE_SORT_FIELDS:
            sort_by = "created_at"
        column = getattr(WalletProfile, sort_by)
        order = column.desc() if descending else column.asc()

        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile).order_by(order, WalletProfile.id).offset(offset).limit(limit)
            )
            total = await session.scalar(select(func.count()).select_from(WalletProfile))
            return list(result.scalars().all()), total or 0

    async def search_profiles(self, query: str, offset: int = 0, limit: int = 20) -> Tuple[List[WalletProfile], int]:
        needle = query.strip().lower()
        condition = or_(
            func.lower(WalletProfile.wallet_address).contains(needle, autoescape=True),
            func.lower(WalletProfile.x_username).contains(needle, autoescape=True),
            func.lower(WalletProfile.discord_username).contains(needle, autoescape=True),
        )

        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile)
                .where(condition)
                .order_by(WalletProfile.created_at.desc(), WalletProfile.id)
                .offset(offset)
                .limit(limit)
            )
            total = await session.scalar(select(func.count()).select_from(WalletProfile).where(condition))
            return list(result.scalars().all()), total or 0

    async def top_referrers(self, limit: int = 10) -> List[WalletProfile]:
        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile)
                .where(WalletProfile.referral_count >= 1)
                .order_by(WalletProfile.referral_count.desc(), WalletProfile.id)
                .limit(limit)
            )
            return list(result.scalars().all())

    # Points

    async def apply_points(
        self,
        wallet_address: str,
        delta: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> PointsHistory:
        async with self._transaction() as session:
            return await self._append_points(
                session, wallet_address, PointsAward(delta, transaction_type, description)
            )

    async def _append_points(self, session: AsyncSession, wallet_address: str, award: PointsAward) -> PointsHistory:
        result = await session.execute(
            update(WalletProfile)
            .where(WalletProfile.wallet_address == wallet_address)
            .values(total_points=WalletProfile.total_points + award.delta, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise LookupError(f"No wallet profile for {wallet_address}")

        balance = await session.scalar(
            select(WalletProfile.total_points).where(WalletProfile.wallet_address == wallet_address)
        )
        entry = PointsHistory(
            wallet_address=wallet_address,
            transaction_type=award.transaction_type,
            points_change=award.delta,
            balance_after=balance,
            description=award.description,
            created_at=utc_now(),
        )
        session.add(entry)
        await session.flush()
        return entry

    async def latest_positive_points(self, wallet_address: str, transaction_type: str) -> Optional[int]:
        async with self._transaction() as session:
            return await session.scalar(
                select(PointsHistory.points_change)
                .where(
                    PointsHistory.wallet_address == wallet_address,
                    PointsHistory.transaction_type == transaction_type,
                    PointsHistory.points_change > 0,
                )
                .order_by(PointsHistory.id.desc())
                .limit(1)
            )

    async def list_history(
        self,
        wallet_address: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[PointsHistory], int]:
        query = select(PointsHistory)
        count_query = select(func.count()).select_from(PointsHistory)
        if wallet_address:
            query = query.where(PointsHistory.wallet_address == wallet_address)
            count_query = count_query.where(PointsHistory.wallet_address == wallet_address)

        async with self._transaction() as session:
            result = await session.execute(query.order_by(PointsHistory.id.desc()).offset(offset).limit(limit))
            total = await session.scalar(count_query)
            return list(result.scalars().all()), total or 0

    async def sum_history(self, wallet_address: str) -> int:
        async with self._transaction() as session:
            total = await session.scalar(
                select(func.coalesce(func.sum(PointsHistory.points_change), 0))
                .where(PointsHistory.wallet_address == wallet_address)
            )
            return int(total or 0)

    # Task completions

    async def add_task_completion(
        self,
        wallet_address: str,
        task_type: str,
        points_awarded: int,
        completion_date: Optional[str] = None,
        metadata: Optional[str] = None,
        award: Optional[PointsAward] = None,
    ) -> Optional[TaskCompletion]:
        try:
            async with self._transaction() as session:
                completion = TaskCompletion(
                    wallet_address=wallet_address,
                    task_type=task_type,
                    points_awarded=points_awarded,
                    completion_date=completion_date,
                    metadata_json=metadata,
                    status=CompletionStatus.ACTIVE.value,
                    completed_at=utc_now(),
                    revoked_at=None,
                )
                session.add(completion)
                await session.flush()
                if award:
                    await self._append_points(session, wallet_address, award)
                return completion
        except IntegrityError:
            # Another request already holds the active completion for this date
            logger.info(f"Duplicate {task_type} completion for {wallet_address} on {completion_date}")
            return None

    async def get_task_completion(self, completion_id: int) -> Optional[TaskCompletion]:
        async with self._transaction() as session:
            result = await session.execute(
                select(TaskCompletion)
                .where(TaskCompletion.id == completion_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def has_active_completion(
        self,
        wallet_address: str,
        task_type: str,
        completion_date: Optional[str] = None,
    ) -> bool:
        query = select(TaskCompletion.id).where(
            TaskCompletion.wallet_address == wallet_address,
            TaskCompletion.task_type == task_type,
            TaskCompletion.status == CompletionStatus.ACTIVE.value,
        )
        if completion_date:
            query = query.where(TaskCompletion.completion_date == completion_date)

        async with self._transaction() as session:
            return (await session.scalar(query.limit(1))) is not None

    async def revoke_completion(
        self,
        completion_id: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> Optional[TaskCompletion]:
        async with self._transaction() as session:
            result = await session.execute(
                update(TaskCompletion)
                .where(
                    TaskCompletion.id == completion_id,
                    TaskCompletion.status == CompletionStatus.ACTIVE.value,
                )
                .values(status=CompletionStatus.REVOKED.value, revoked_at=utc_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            refreshed = await session.execute(
                select(TaskCompletion)
                .where(TaskCompletion.id == completion_id)
                .execution_options(populate_existing=True)
            )
            completion = refreshed.scalar_one()
            if completion.points_awarded:
                await self._append_points(
                    session,
                    completion.wallet_address,
                    PointsAward(-completion.points_awarded, transaction_type, description),
                )
            return completion

    async def list_active_completions_with_metadata(
        self,
        task_type: str,
        wallet_address: Optional[str] = None,
    ) -> List[TaskCompletion]:
        query = select(TaskCompletion).where(
            TaskCompletion.task_type == task_type,
            TaskCompletion.status == CompletionStatus.ACTIVE.value,
            TaskCompletion.metadata_json.is_not(None),
        )
        if wallet_address:
            query = query.where(TaskCompletion.wallet_address == wallet_address)

        async with self._transaction() as session:
            result = await session.execute(query.order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc()))
            return list(result.scalars().all())

    async def list_completions(self, task_type: str, completion_date: Optional[str] = None) -> List[TaskCompletion]:
        query = select(TaskCompletion).where(TaskCompletion.task_type == task_type)
        if completion_date:
            query = query.where(TaskCompletion.completion_date == completion_date)

        async with self._transaction() as session:
            result = await session.execute(query.order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc()))
            return list(result.scalars().all())

    async def recent_completions(self, wallet_address: str, task_type: str, limit: int = 30) -> List[TaskCompletion]:
        async with self._transaction() as session:
            result = await session.execute(
                select(TaskCompletion)
                .where(
                    TaskCompletion.wallet_address == wallet_address,
                    TaskCompletion.task_type == task_type,
                )
                .order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def count_completions(self, wallet_address: Optional[str] = None) -> int:
        query = select(func.count()).select_from(TaskCompletion)
        if wallet_address:
            query = query.where(TaskCompletion.wallet_address == wallet_address)
        async with self._transaction() as session:
            return (await session.scalar(query)) or 0

    async def count_daily_active(self, completion_date: str) -> int:
        async with self._transaction() as session:
            count = await session.scalar(
                select(func.count(func.distinct(TaskCompletion.wallet_address)))
                .where(TaskCompletion.completion_date == completion_date)
            )
            return count or 0

    # Referrals

    async def create_referral(self, referrer_wallet: str, referred_wallet: str, code: str) -> Optional[Referral]:
        try:
            async with self._transaction() as session:
                result = await session.execute(
                    update(WalletProfile)
                    .where(
                        WalletProfile.wallet_address == referred_wallet,
                        WalletProfile.referred_by.is_(None),
                    )
                    .values(referred_by=code, updated_at=utc_now())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return None

                referral = Referral(
                    referrer_wallet=referrer_wallet,
                    referred_wallet=referred_wallet,
                    referral_code=code,
                    referrer_points=0,
                    referred_points=0,
                    referrer_claimed=False,
                    referred_claimed=False,
                    created_at=utc_now(),
                    claimed_at=None,
                )
                session.add(referral)
                await session.flush()
                return referral
        except IntegrityError:
            return None

    async def get_referral_for_referred(self, referred_wallet: str) -> Optional[Referral]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Referral)
                .where(Referral.referred_wallet == referred_wallet)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def claim_referral(
        self,
        referral_id: int,
        referrer_award: PointsAward,
        referred_award: PointsAward,
    ) -> Optional[Referral]:
        async with self._transaction() as session:
            result = await session.execute(
                update(Referral)
                .where(Referral.id == referral_id, Referral.referrer_claimed == False)  # noqa: E712
                .values(
                    referrer_claimed=True,
                    referred_claimed=True,
                    claimed_at=utc_now(),
                    referrer_points=referrer_award.delta,
                    referred_points=referred_award.delta,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            refreshed = await session.execute(
                select(Referral).where(Referral.id == referral_id).execution_options(populate_existing=True)
            )
            referral = refreshed.scalar_one()

            await self._append_points(session, referral.referrer_wallet, referrer_award)
            await self._append_points(session, referral.referred_wallet, referred_award)
            await self._recompute_referral_stats(session, referral.referrer_wallet)
            return referral

    async def list_referrals_by_referrer(self, referrer_wallet: str) -> List[Referral]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Referral)
                .where(Referral.referrer_wallet == referrer_wallet)
                .order_by(Referral.created_at.desc(), Referral.id.desc())
            )
            return list(result.scalars().all())

    async def list_referrals(self, offset: int = 0, limit: int = 20, descending: bool = True) -> Tuple[List[Referral], int]:
        order = Referral.created_at.desc() if descending else Referral.created_at.asc()
        async with self._transaction() as session:
            result = await session.execute(select(Referral).order_by(order, Referral.id).offset(offset).limit(limit))
            total = await session.scalar(select(func.count()).select_from(Referral))
            return list(result.scalars().all()), total or 0

    @staticmethod
    async def _recompute_referral_stats(session: AsyncSession, referrer_wallet: str) -> None:
        count = await session.scalar(
            select(func.count())
            .select_from(Referral)
            .where(
                Referral.referrer_wallet == referrer_wallet,
                Referral.referrer_claimed == True,  # noqa: E712
            )
        )
        earned = await session.scalar(
            select(func.coalesce(func.sum(Referral.referrer_points), 0))
            .where(Referral.referrer_wallet == referrer_wallet)
        )
        await session.execute(
            update(WalletProfile)
            .where(WalletProfile.wallet_address == referrer_wallet)
            .values(referral_count=count or 0, referral_points_earned=int(earned or 0), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )

    # Aggregates

    async def profile_totals(self) -> Dict[str, int]:
        async with self._transaction() as session:
            row = (await session.execute(
                select(
                    func.count(WalletProfile.id),
                    func.coalesce(func.sum(WalletProfile.total_points), 0),
                )
            )).one()
            x_connected = await session.scalar(
                select(func.count()).select_from(WalletProfile).where(WalletProfile.x_connected == True)  # noqa: E712
            )
            discord_connected = await session.scalar(
                select(func.count()).select_from(WalletProfile).where(WalletProfile.discord_connected == True)  # noqa: E712
            )
            return {
                "total_users": row[0] or 0,
                "total_points": int(row[1] or 0),
                "x_connected": x_connected or 0,
                "discord_connected": discord_connected or 0,
            }

    async def referral_totals(self) -> Dict[str, int]:
        async with self._transaction() as session:
            total = await session.scalar(select(func.count()).select_from(Referral))
            claimed = await session.scalar(
                select(func.count()).select_from(Referral).where(Referral.referrer_claimed == True)  # noqa: E712
            )
            active = await session.scalar(select(func.count(func.distinct(Referral.referrer_wallet))))
            return {
                "total": total or 0,
                "claimed": claimed or 0,
                "active_referrers": active or 0,
            }

    async def referrer_counts(self) -> List[int]:
        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile.referral_count).where(WalletProfile.referral_count >= 1)
            )
            return [row[0] for row in result.all()]

    async def profile_created_since(self, since: datetime) -> List[datetime]:
        async with self._transaction() as session:
            result = await session.execute(
                select(WalletProfile.created_at).where(WalletProfile.created_at >= since)
            )
            return [row[0] for row in result.all()]

    async def completions_since(self, since: datetime) -> List[datetime]:
        async with self._transaction() as session:
            result = await session.execute(
                select(TaskCompletion.completed_at).where(TaskCompletion.completed_at >= since)
            )
            return [row[0] for row in result.all()]
