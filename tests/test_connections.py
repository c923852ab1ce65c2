"""Tests for platform connections and Discord verification"""

import asyncio

import pytest

from app.core.exceptions import ErrorCode, LedgerUnavailableError
from app.models import Platform, TransactionType
from app.schemas import ExternalIdentity, MembershipStatus
from app.services import ConnectionService
from tests.helpers import (
    WALLET_A,
    FakeMembershipClient,
    FakeTweetClient,
    assert_ledger_consistent,
    build_services,
    connect_discord,
    connect_x,
)

TWEET = "https://x.com/alice/status/1790000000000000000"

def ledger_down(*args, **kwargs):
    raise LedgerUnavailableError("ledger down")

class TestConnectPlatform:
    """Connecting X and Discord"""

    @pytest.mark.asyncio
    async def test_connect_x_awards_bonus(self, services):
        result = await connect_x(services, WALLET_A)

        assert result.success
        assert result.points == 100
        profile = await services.store.get_profile(WALLET_A)
        assert profile.x_connected is True
        assert profile.x_username == "alice"
        assert profile.x_user_id == "x-alice"
        assert profile.x_connected_at is not None
        assert profile.total_points == 100

    @pytest.mark.asyncio
    async def test_connect_discord_awards_bonus(self, services):
        result = await connect_discord(services, WALLET_A, "777")

        assert result.success
        assert result.points == 50
        profile = await services.store.get_profile(WALLET_A)
        assert profile.discord_connected is True
        assert profile.discord_id == "777"
        assert profile.discord_verified is False

    @pytest.mark.asyncio
    async def test_connect_twice_fails_without_points(self, services):
        await connect_x(services, WALLET_A)

        result = await connect_x(services, WALLET_A)

        assert not result.success
        assert result.error_code == ErrorCode.ALREADY_IN_STATE
        assert (await services.store.get_profile(WALLET_A)).total_points == 100
        await assert_ledger_consistent(services.store, WALLET_A)

    @pytest.mark.asyncio
    async def test_failed_award_leaves_profile_unconnected(self, services, monkeypatch):
        monkeypatch.setattr(services.store, "_append_points", ledger_down)

        with pytest.raises(LedgerUnavailableError):
            await connect_x(services, WALLET_A)
        monkeypatch.undo()

        profile = await services.store.get_profile(WALLET_A)
        assert profile.x_connected is False
        assert profile.x_username is None
        assert profile.total_points == 0
        assert await services.store.sum_history(WALLET_A) == 0

        retry = await connect_x(services, WALLET_A)
        assert retry.success and retry.points == 100

        disconnected = await services.connections.disconnect_platform(WALLET_A, Platform.X)
        assert disconnected.points == -100
        assert (await services.store.get_profile(WALLET_A)).total_points == 0
        await assert_ledger_consistent(services.store, WALLET_A)

    @pytest.mark.asyncio
    async def test_failed_refund_keeps_connection(self, services, monkeypatch):
        await connect_discord(services, WALLET_A, "555")
        await services.connections.verify_discord_server_membership(WALLET_A)
        monkeypatch.setattr(services.store, "_append_points", ledger_down)

        with pytest.raises(LedgerUnavailableError):
            await services.connections.disconnect_platform(WALLET_A, Platform.DISCORD)
        monkeypatch.undo()

        profile = await services.store.get_profile(WALLET_A)
        assert profile.discord_connected is True
        assert profile.discord_verified is True
        assert profile.total_points == 100
        await assert_ledger_consistent(services.store, WALLET_A)

class TestDisconnectPlatform:
    """Disconnecting refunds what was granted"""

    @pytest.mark.asyncio
    async def test_disconnect_when_not_connected_fails(self, services):
        result = await services.connections.disconnect_platform(WALLET_A, Platform.X)

        assert not result.success
        assert result.error_code == ErrorCode.ALREADY_IN_STATE

    @pytest.mark.asyncio
    async def test_connect_then_disconnect_nets_zero(self, services):
        await connect_x(services, WALLET_A)

        result = await services.connections.disconnect_platform(WALLET_A, Platform.X)

        assert result.success
        profile = await services.store.get_profile(WALLET_A)
        assert profile.total_points == 0
        assert profile.x_connected is False
        assert profile.x_username is None
        assert profile.x_user_id is None
        assert profile.x_connected_at is None
        await assert_ledger_consistent(services.store, WALLET_A)

    @pytest.mark.asyncio
    async def test_refund_uses_granted_amount_after_config_change(self, store, settings, membership):
        await ConnectionService(store, settings, membership).connect_platform(
            WALLET_A, Platform.X, ExternalIdentity(username="alice", external_id="1")
        )

        changed = settings.model_copy(update={"X_CONNECT_POINTS": 150})
        result = await ConnectionService(store, changed, membership).disconnect_platform(WALLET_A, Platform.X)

        assert result.points == -100
        profile = await store.get_profile(WALLET_A)
        assert profile.total_points == 0
        entries, _ = await store.list_history(WALLET_A)
        assert entries[0].transaction_type == TransactionType.X_DISCONNECT.value
        assert entries[0].points_change == -100

    @pytest.mark.asyncio
    async def test_disconnect_after_verify_reverses_both_bonuses(self, services):
        await connect_discord(services, WALLET_A, "555")
        await services.connections.verify_discord_server_membership(WALLET_A)
        assert (await services.store.get_profile(WALLET_A)).total_points == 100

        result = await services.connections.disconnect_platform(WALLET_A, Platform.DISCORD)

        assert result.success
        assert result.points == -100
        profile = await services.store.get_profile(WALLET_A)
        assert profile.total_points == 0
        assert profile.discord_connected is False
        assert profile.discord_username is None
        assert profile.discord_id is None
        assert profile.discord_connected_at is None
        assert profile.discord_verified is False
        assert profile.discord_verified_at is None

        entries, _ = await services.store.list_history(WALLET_A)
        types = [e.transaction_type for e in entries[:2]]
        assert sorted(types) == sorted([
            TransactionType.DISCORD_DISCONNECT.value,
            TransactionType.DISCORD_VERIFY_REVOKED.value,
        ])
        await assert_ledger_consistent(services.store, WALLET_A)

class TestVerifyDiscord:
    """Guild membership verification"""

    @pytest.mark.asyncio
    async def test_requires_discord_connection(self, services):
        result = await services.connections.verify_discord_server_membership(WALLET_A)

        assert result.error_code == ErrorCode.INELIGIBLE
        assert services.membership.calls == []

    @pytest.mark.asyncio
    async def test_requires_discord_id(self, services):
        await services.connections.connect_platform(
            WALLET_A, Platform.DISCORD, ExternalIdentity(username="nobody", external_id=None)
        )

        result = await services.connections.verify_discord_server_membership(WALLET_A)

        assert result.error_code == ErrorCode.INELIGIBLE

    @pytest.mark.asyncio
    async def test_not_a_member_carries_invite(self, services):
        await connect_discord(services, WALLET_A, "555")
        services.membership.status = MembershipStatus.ABSENT

        result = await services.connections.verify_discord_server_membership(WALLET_A)

        assert result.error_code == ErrorCode.NOT_A_MEMBER
        assert result.data["invite_url"] == services.settings.DISCORD_INVITE_URL
        assert (await services.store.get_profile(WALLET_A)).discord_verified is False

    @pytest.mark.asyncio
    async def test_indeterminate_changes_nothing(self, services):
        await connect_discord(services, WALLET_A, "555")
        services.membership.status = MembershipStatus.INDETERMINATE

        result = await services.connections.verify_discord_server_membership(WALLET_A)

        assert result.error_code == ErrorCode.EXTERNAL_UNAVAILABLE
        assert (await services.store.get_profile(WALLET_A)).total_points == 50

    @pytest.mark.asyncio
    async def test_present_verifies_once(self, services):
        await connect_discord(services, WALLET_A, "555")

        first = await services.connections.verify_discord_server_membership(WALLET_A)
        second = await services.connections.verify_discord_server_membership(WALLET_A)

        assert first.success and first.points == 50
        assert second.error_code == ErrorCode.ALREADY_IN_STATE
        profile = await services.store.get_profile(WALLET_A)
        assert profile.discord_verified is True
        assert profile.discord_verified_at is not None
        assert profile.total_points == 100

    @pytest.mark.asyncio
    async def test_unconfigured_bot_is_unavailable(self, store, settings):
        services = build_services(
            store, settings, FakeMembershipClient(configured=False), FakeTweetClient()
        )
        await connect_discord(services, WALLET_A, "555")

        result = await services.connections.verify_discord_server_membership(WALLET_A)

        assert result.error_code == ErrorCode.EXTERNAL_UNAVAILABLE

class TestConnectBonus:
    """One-time wallet connect bonus"""

    @pytest.mark.asyncio
    async def test_claimed_once(self, services):
        first = await services.connections.claim_one_time_connect_bonus(WALLET_A)
        second = await services.connections.claim_one_time_connect_bonus(WALLET_A)

        assert first.success and first.points == 300
        assert second.error_code == ErrorCode.ALREADY_IN_STATE
        assert (await services.store.get_profile(WALLET_A)).total_points == 300

    @pytest.mark.asyncio
    async def test_concurrent_claims_pay_once(self, services):
        await services.store.get_or_create_profile(WALLET_A)

        results = await asyncio.gather(
            *[services.connections.claim_one_time_connect_bonus(WALLET_A) for _ in range(5)]
        )

        assert sum(1 for r in results if r.success) == 1
        assert all(r.error_code == ErrorCode.ALREADY_IN_STATE for r in results if not r.success)
        assert (await services.store.get_profile(WALLET_A)).total_points == 300
        await assert_ledger_consistent(services.store, WALLET_A)

    @pytest.mark.asyncio
    async def test_failed_award_leaves_bonus_unclaimed(self, services, monkeypatch):
        await services.store.get_or_create_profile(WALLET_A)
        monkeypatch.setattr(services.store, "_append_points", ledger_down)

        with pytest.raises(LedgerUnavailableError):
            await services.connections.claim_one_time_connect_bonus(WALLET_A)
        monkeypatch.undo()

        assert (await services.store.get_profile(WALLET_A)).connect_bonus_claimed is False
        retry = await services.connections.claim_one_time_connect_bonus(WALLET_A)
        assert retry.success and retry.points == 300
        await assert_ledger_consistent(services.store, WALLET_A)

class TestProfileView:
    """Profile fetch with membership re-check"""

    @pytest.mark.asyncio
    async def test_creates_profile_with_detected_chain(self, services):
        tron_wallet = "TJRabPrwbZy45sbavfcjinPJC18kjpRTv8"

        view = await services.connections.get_profile_view(tron_wallet)

        assert view["profile"]["wallet_address"] == tron_wallet.lower()
        assert view["profile"]["chain_type"] == "tron"
        assert view["daily_post_completed"] is False
        assert len(view["today_utc"]) == 10

    @pytest.mark.asyncio
    async def test_revokes_verification_when_member_left(self, services):
        await connect_discord(services, WALLET_A, "555")
        await services.connections.verify_discord_server_membership(WALLET_A)
        services.membership.status = MembershipStatus.ABSENT

        view = await services.connections.get_profile_view(WALLET_A)

        assert view["discord_membership_revoked"] is True
        assert view["profile"]["discord_verified"] is False
        assert view["profile"]["discord_connected"] is True
        assert view["profile"]["total_points"] == 50
        await assert_ledger_consistent(services.store, WALLET_A)

    @pytest.mark.asyncio
    async def test_indeterminate_check_keeps_verification(self, services):
        await connect_discord(services, WALLET_A, "555")
        await services.connections.verify_discord_server_membership(WALLET_A)
        services.membership.status = MembershipStatus.INDETERMINATE

        view = await services.connections.get_profile_view(WALLET_A)

        assert view["discord_membership_revoked"] is False
        assert view["profile"]["discord_verified"] is True

    @pytest.mark.asyncio
    async def test_daily_post_not_reported_without_x(self, services):
        await connect_x(services, WALLET_A)
        await services.tasks.complete_daily_post(WALLET_A, TWEET)
        assert (await services.connections.get_profile_view(WALLET_A))["daily_post_completed"] is True

        await services.connections.disconnect_platform(WALLET_A, Platform.X)
        view = await services.connections.get_profile_view(WALLET_A)

        assert view["profile"]["x_connected"] is False
        assert view["daily_post_completed"] is False
