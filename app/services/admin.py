"""Admin reporting and ledger tooling"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from collections import Counter
import logging

from app.core.config import Settings, get_settings
from app.core.exceptions import ErrorCode
from app.models import TaskType, TransactionType, utc_now
from app.repositories import LedgerStore
from app.schemas import ActionResult, MetadataOutcome, SweepSummary
from app.schemas.admin import (
    ActivityData,
    ActivitySeries,
    AdminStats,
    DailyCount,
    DailyPostEntry,
    MonthlyActivitySeries,
    MonthlyCount,
    ReferralAdminStats,
)
from app.services.points import PointsEngine
from app.services.reconciliation import ReconciliationService
from app.services.referral import REFERRAL_TIERS, tier_of
from app.services.tasks import TaskService, parse_tweet_metadata
from app.utils.helpers import normalize_wallet, utc_date_string
from app.utils.pagination import PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)

ACTIVITY_DAYS = 30
ACTIVITY_MONTHS = 12

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def _month_keys(now: datetime, months: int) -> List[str]:
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))

def _daily_counts(timestamps: Iterable[datetime], days: List[str]) -> List[DailyCount]:
    counts = Counter(_as_utc(ts).strftime("%Y-%m-%d") for ts in timestamps)
    return [DailyCount(date=day, count=counts.get(day, 0)) for day in days]

def _monthly_counts(timestamps: Iterable[datetime], months: List[str]) -> List[MonthlyCount]:
    counts = Counter(_as_utc(ts).strftime("%Y-%m") for ts in timestamps)
    return [MonthlyCount(month=month, count=counts.get(month, 0)) for month in months]

class AdminService:
    """Service backing the admin dashboard"""

    def __init__(
        self,
        store: LedgerStore,
        settings: Optional[Settings] = None,
        reconciliation: Optional[ReconciliationService] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.points = PointsEngine(store)
        self.tasks = TaskService(store, self.settings)
        self.reconciliation = reconciliation or ReconciliationService(store, self.settings)

    async def get_stats(self) -> AdminStats:
        totals = await self.store.profile_totals()
        daily_active = await self.store.count_daily_active(utc_date_string())
        return AdminStats(
            total_users=totals["total_users"],
            total_points_distributed=totals["total_points"],
            x_connected_users=totals["x_connected"],
            discord_connected_users=totals["discord_connected"],
            daily_active_users=daily_active,
        )

    async def list_users(
        self,
        params: PaginationParams,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> PaginatedResponse[Dict[str, Any]]:
        profiles, total = await self.store.list_profiles(params.offset, params.size, sort_by, descending)
        return PaginatedResponse.build([p.to_dict() for p in profiles], total, params)

    async def search_users(self, query: str, params: PaginationParams) -> PaginatedResponse[Dict[str, Any]]:
        profiles, total = await self.store.search_profiles(query, params.offset, params.size)
        return PaginatedResponse.build([p.to_dict() for p in profiles], total, params)

    async def get_points_history(
        self,
        params: PaginationParams,
        wallet_address: Optional[str] = None,
    ) -> PaginatedResponse[Dict[str, Any]]:
        wallet = normalize_wallet(wallet_address) if wallet_address else None
        entries, total = await self.store.list_history(wallet, params.offset, params.size)
        return PaginatedResponse.build([e.to_dict() for e in entries], total, params)

    async def adjust_points(self, wallet_address: str, points_change: int, reason: str) -> ActionResult:
        """Manual correction; the wallet must already have a profile"""
        wallet = normalize_wallet(wallet_address)
        if not await self.store.get_profile(wallet):
            return ActionResult.fail(ErrorCode.NOT_FOUND, "Profile not found")

        new_total = await self.points.add_points(
            wallet, points_change, TransactionType.ADMIN_ADJUSTMENT.value, reason
        )
        logger.info(f"Admin adjusted {wallet} by {points_change:+d}: {reason}")
        return ActionResult.ok(
            f"Points adjusted by {points_change:+d}", points=points_change, new_total=new_total
        )

    async def get_daily_posts(self, completion_date: Optional[str] = None) -> List[DailyPostEntry]:
        completions = await self.store.list_completions(TaskType.DAILY_POST.value, completion_date)
        usernames: Dict[str, Optional[str]] = {}

        entries = []
        for completion in completions:
            if completion.wallet_address not in usernames:
                profile = await self.store.get_profile(completion.wallet_address)
                usernames[completion.wallet_address] = profile.x_username if profile else None

            metadata = parse_tweet_metadata(completion.metadata_json)
            data = completion.to_dict(exclude=["metadata_json"])
            entries.append(DailyPostEntry(
                **data,
                x_username=usernames[completion.wallet_address],
                tweet_url=metadata.tweet_url,
                metadata_malformed=metadata.outcome == MetadataOutcome.MALFORMED,
            ))
        return entries

    async def revoke_task(self, completion_id: int) -> ActionResult:
        return await self.tasks.revoke_task_points(completion_id, "revoked by admin")

    async def list_referrals(self, params: PaginationParams) -> PaginatedResponse[Dict[str, Any]]:
        referrals, total = await self.store.list_referrals(params.offset, params.size)
        return PaginatedResponse.build([r.to_dict() for r in referrals], total, params)

    async def get_referral_stats(self) -> ReferralAdminStats:
        totals = await self.store.referral_totals()
        distribution = {tier.name: 0 for tier in reversed(REFERRAL_TIERS)}
        for count in await self.store.referrer_counts():
            distribution[tier_of(count).name] += 1

        return ReferralAdminStats(
            total_referrals=totals["total"],
            claimed_referrals=totals["claimed"],
            pending_referrals=max(0, totals["total"] - totals["claimed"]),
            active_referrers=totals["active_referrers"],
            tier_distribution=distribution,
        )

    async def get_activity_data(self, now: Optional[datetime] = None) -> ActivityData:
        """Daily series for the last 30 days and monthly for the last 12 months"""
        now = _as_utc(now or utc_now())
        days = [
            (now - timedelta(days=offset)).strftime("%Y-%m-%d")
            for offset in range(ACTIVITY_DAYS - 1, -1, -1)
        ]
        months = _month_keys(now, ACTIVITY_MONTHS)

        month_start = datetime(int(months[0][:4]), int(months[0][5:]), 1, tzinfo=timezone.utc)
        day_start = datetime.strptime(days[0], "%Y-%m-%d").replace(tzinfo=timezone.utc)
        since = min(month_start, day_start)

        users = await self.store.profile_created_since(since)
        tasks = await self.store.completions_since(since)
        totals = await self.store.profile_totals()

        return ActivityData(
            daily=ActivitySeries(users=_daily_counts(users, days), tasks=_daily_counts(tasks, days)),
            monthly=MonthlyActivitySeries(
                users=_monthly_counts(users, months), tasks=_monthly_counts(tasks, months)
            ),
            total_users=totals["total_users"],
            total_task_completions=await self.store.count_completions(),
        )

    async def get_user_activity(self, wallet_address: str) -> Optional[Dict[str, Any]]:
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile:
            return None

        recent_posts = await self.store.recent_completions(wallet, TaskType.DAILY_POST.value, limit=30)
        return {
            "total_tasks": await self.store.count_completions(wallet),
            "recent_daily_posts": len(recent_posts),
            "profile": profile.to_dict(),
        }

    async def audit_wallet(self, wallet_address: str) -> Optional[Dict[str, Any]]:
        """Compare a stored total with the sum of its history"""
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile:
            return None

        history_total = await self.store.sum_history(wallet)
        return {
            "wallet_address": wallet,
            "total_points": profile.total_points,
            "history_total": history_total,
            "consistent": profile.total_points == history_total,
        }

    async def reconcile_tweets(self, wallet_address: Optional[str] = None) -> SweepSummary:
        logger.info(f"Admin triggered tweet sweep (wallet={wallet_address or 'all'})")
        return await self.reconciliation.reconcile_all_active_tweets(wallet_address)
