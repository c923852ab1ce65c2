"""Tests for the admin reporting service"""

from datetime import datetime, timezone

import pytest

from app.core.exceptions import ErrorCode
from app.models import CompletionStatus, TaskType, TransactionType
from app.schemas import TweetStatus
from app.utils.helpers import utc_date_string
from app.utils.pagination import PaginationParams
from tests.helpers import (
    WALLET_A,
    WALLET_B,
    WALLET_C,
    assert_ledger_consistent,
    connect_discord,
    connect_x,
    make_eligible,
)

TWEET = "https://x.com/alice/status/1790000000000000000"

class TestStats:
    """Dashboard counters"""

    @pytest.mark.asyncio
    async def test_counts_users_points_and_connections(self, services):
        await connect_x(services, WALLET_A)
        await connect_discord(services, WALLET_B, "222")
        await services.tasks.complete_daily_post(WALLET_A, TWEET)

        stats = await services.admin.get_stats()

        assert stats.total_users == 2
        assert stats.total_points_distributed == 250
        assert stats.x_connected_users == 1
        assert stats.discord_connected_users == 1
        assert stats.daily_active_users == 1

    @pytest.mark.asyncio
    async def test_empty_ledger(self, services):
        stats = await services.admin.get_stats()

        assert stats.model_dump() == {
            "total_users": 0,
            "total_points_distributed": 0,
            "x_connected_users": 0,
            "discord_connected_users": 0,
            "daily_active_users": 0,
        }

class TestAdjustPoints:
    """Manual corrections"""

    @pytest.mark.asyncio
    async def test_unknown_wallet(self, services):
        result = await services.admin.adjust_points(WALLET_C, 10, "goodwill")

        assert result.error_code == ErrorCode.NOT_FOUND
        assert await services.store.get_profile(WALLET_C) is None

    @pytest.mark.asyncio
    async def test_adjustment_is_recorded(self, services):
        await connect_x(services, WALLET_A)

        result = await services.admin.adjust_points(WALLET_A, -40, "duplicate account")

        assert result.success
        assert result.data["new_total"] == 60
        entries, _ = await services.store.list_history(WALLET_A)
        assert entries[0].transaction_type == TransactionType.ADMIN_ADJUSTMENT.value
        assert entries[0].description == "duplicate account"
        await assert_ledger_consistent(services.store, WALLET_A)

class TestDailyPosts:
    """Daily-post listing and revocation"""

    @pytest.mark.asyncio
    async def test_lists_posts_with_tweet_url_and_username(self, services):
        await connect_x(services, WALLET_A, username="alice")
        await services.tasks.complete_daily_post(WALLET_A, TWEET)

        entries = await services.admin.get_daily_posts(utc_date_string())

        assert len(entries) == 1
        assert entries[0].x_username == "alice"
        assert entries[0].tweet_url == TWEET
        assert entries[0].metadata_malformed is False
        assert entries[0].status == CompletionStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_flags_malformed_metadata(self, services):
        await services.store.get_or_create_profile(WALLET_B)
        await services.store.add_task_completion(
            WALLET_B, TaskType.DAILY_POST.value, 100, "2024-03-01", "{oops"
        )

        entries = await services.admin.get_daily_posts("2024-03-01")

        assert entries[0].metadata_malformed is True
        assert entries[0].tweet_url is None
        assert await services.admin.get_daily_posts("2024-03-02") == []

    @pytest.mark.asyncio
    async def test_revoke(self, services):
        await connect_x(services, WALLET_A)
        completion_id = (await services.tasks.complete_daily_post(WALLET_A, TWEET)).data["completion_id"]

        first = await services.admin.revoke_task(completion_id)
        second = await services.admin.revoke_task(completion_id)

        assert first.success
        assert second.error_code == ErrorCode.ALREADY_IN_STATE
        assert (await services.store.get_profile(WALLET_A)).total_points == 100

    @pytest.mark.asyncio
    async def test_reconcile_tweets(self, services):
        await connect_x(services, WALLET_A)
        await services.tasks.complete_daily_post(WALLET_A, TWEET)
        services.tweets.status = TweetStatus.DELETED

        summary = await services.admin.reconcile_tweets(WALLET_A)

        assert summary.revoked == 1

class TestUserListings:
    """Paginated users, search and history"""

    @pytest.mark.asyncio
    async def test_pagination(self, services):
        for wallet in (WALLET_A, WALLET_B, WALLET_C):
            await services.store.get_or_create_profile(wallet)

        page = await services.admin.list_users(PaginationParams(page=2, size=2))

        assert page.total == 3
        assert page.pages == 2
        assert len(page.items) == 1

    @pytest.mark.asyncio
    async def test_sort_by_points(self, services):
        await services.points.add_points(WALLET_A, 10, TransactionType.OTHER.value)
        await services.points.add_points(WALLET_B, 30, TransactionType.OTHER.value)
        await services.points.add_points(WALLET_C, 20, TransactionType.OTHER.value)

        page = await services.admin.list_users(PaginationParams(), sort_by="total_points")

        assert [item["wallet_address"] for item in page.items] == [WALLET_B, WALLET_C, WALLET_A]

    @pytest.mark.asyncio
    async def test_search_matches_username(self, services):
        await connect_x(services, WALLET_A, username="satoshi")
        await connect_x(services, WALLET_B, username="vitalik")

        page = await services.admin.search_users("SATO", PaginationParams())

        assert page.total == 1
        assert page.items[0]["wallet_address"] == WALLET_A

    @pytest.mark.asyncio
    async def test_history_filtered_by_wallet(self, services):
        await connect_x(services, WALLET_A, username="a")
        await connect_x(services, WALLET_B, username="b")

        everything = await services.admin.get_points_history(PaginationParams())
        only_b = await services.admin.get_points_history(PaginationParams(), WALLET_B)

        assert everything.total == 2
        assert only_b.total == 1
        assert only_b.items[0]["wallet_address"] == WALLET_B

class TestReferralReporting:
    """Referral listing and tier distribution"""

    @pytest.mark.asyncio
    async def test_referral_stats(self, services):
        code = await make_eligible(services, WALLET_A)
        await services.referrals.apply_referral_code(WALLET_B, code)
        await services.referrals.apply_referral_code(WALLET_C, code)
        await services.referrals.claim_referral_bonus(WALLET_B)

        stats = await services.admin.get_referral_stats()
        listing = await services.admin.list_referrals(PaginationParams())

        assert stats.total_referrals == 2
        assert stats.claimed_referrals == 1
        assert stats.pending_referrals == 1
        assert stats.active_referrers == 1
        assert stats.tier_distribution == {
            "Bronze": 1, "Silver": 0, "Gold": 0, "Platinum": 0, "Diamond": 0,
        }
        assert listing.total == 2

class TestActivity:
    """Time series and per-wallet activity"""

    @pytest.mark.asyncio
    async def test_series_are_zero_filled(self, services):
        await connect_x(services, WALLET_A)
        await services.tasks.complete_daily_post(WALLET_A, TWEET)
        now = datetime.now(timezone.utc)

        data = await services.admin.get_activity_data(now)

        assert len(data.daily.users) == 30
        assert len(data.monthly.tasks) == 12
        assert data.daily.users[-1].date == now.strftime("%Y-%m-%d")
        assert data.daily.users[-1].count == 1
        assert data.daily.tasks[-1].count == 1
        assert sum(day.count for day in data.daily.users[:-1]) == 0
        assert data.monthly.users[-1].month == now.strftime("%Y-%m")
        assert data.total_users == 1
        assert data.total_task_completions == 1

    @pytest.mark.asyncio
    async def test_month_keys_cross_year_boundary(self, services):
        data = await services.admin.get_activity_data(datetime(2025, 2, 10, tzinfo=timezone.utc))

        months = [entry.month for entry in data.monthly.users]
        assert months[0] == "2024-03"
        assert months[-1] == "2025-02"
        assert all(entry.count == 0 for entry in data.monthly.users)

    @pytest.mark.asyncio
    async def test_user_activity_and_audit(self, services):
        await connect_x(services, WALLET_A)
        await services.tasks.complete_daily_post(WALLET_A, TWEET)

        activity = await services.admin.get_user_activity(WALLET_A)
        audit = await services.admin.audit_wallet(WALLET_A)

        assert activity["total_tasks"] == 1
        assert activity["recent_daily_posts"] == 1
        assert activity["profile"]["total_points"] == 200
        assert audit == {
            "wallet_address": WALLET_A,
            "total_points": 200,
            "history_total": 200,
            "consistent": True,
        }

    @pytest.mark.asyncio
    async def test_audit_detects_drift(self, services):
        await connect_x(services, WALLET_A)
        await services.store.update_profile(WALLET_A, total_points=999)

        audit = await services.admin.audit_wallet(WALLET_A)

        assert audit["consistent"] is False
        assert await services.admin.audit_wallet(WALLET_C) is None
        assert await services.admin.get_user_activity(WALLET_C) is None
