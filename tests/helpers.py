"""Test doubles and scenario helpers"""

from types import SimpleNamespace
from typing import Dict, Optional, Union

from app.core.config import Settings
from app.models import Platform
from app.repositories import LedgerStore
from app.schemas import ExternalIdentity, MembershipStatus, TweetStatus
from app.services import (
    AdminService,
    ConnectionService,
    PointsEngine,
    ReconciliationService,
    ReferralService,
    TaskService,
)

WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40
WALLET_C = "0x" + "c" * 40

class FakeMembershipClient:
    """Membership adapter answering from a table instead of the Discord API"""

    def __init__(
        self,
        status: MembershipStatus = MembershipStatus.PRESENT,
        configured: bool = True,
    ):
        self.status = status
        self.by_user: Dict[str, Union[MembershipStatus, Exception]] = {}
        self.configured = configured
        self.calls = []

    async def check_membership(self, guild_id: Optional[str], discord_user_id: str) -> MembershipStatus:
        self.calls.append(discord_user_id)
        answer = self.by_user.get(discord_user_id, self.status)
        if isinstance(answer, Exception):
            raise answer
        return answer

class FakeTweetClient:
    """Tweet adapter answering from a table instead of oEmbed"""

    def __init__(self, status: TweetStatus = TweetStatus.EXISTS):
        self.status = status
        self.by_url: Dict[str, Union[TweetStatus, Exception]] = {}
        self.calls = []

    async def check_tweet(self, tweet_url: str) -> TweetStatus:
        self.calls.append(tweet_url)
        answer = self.by_url.get(tweet_url, self.status)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def check_tweet_exists(self, tweet_url: str) -> bool:
        return await self.check_tweet(tweet_url) != TweetStatus.DELETED

def build_services(store: LedgerStore, settings: Settings, membership, tweets) -> SimpleNamespace:
    reconciliation = ReconciliationService(store, settings, membership, tweets)
    return SimpleNamespace(
        store=store,
        settings=settings,
        points=PointsEngine(store),
        connections=ConnectionService(store, settings, membership),
        tasks=TaskService(store, settings),
        referrals=ReferralService(store, settings),
        reconciliation=reconciliation,
        admin=AdminService(store, settings, reconciliation),
        membership=membership,
        tweets=tweets,
    )

async def connect_x(services, wallet: str, username: str = "alice"):
    return await services.connections.connect_platform(
        wallet, Platform.X, ExternalIdentity(username=username, external_id=f"x-{username}")
    )

async def connect_discord(services, wallet: str, discord_id: str = "555"):
    return await services.connections.connect_platform(
        wallet, Platform.DISCORD, ExternalIdentity(username=f"user{discord_id}", external_id=discord_id)
    )

async def make_eligible(services, wallet: str, discord_id: str = "555") -> str:
    """Connect X and Discord, verify, and return the issued referral code"""
    await connect_x(services, wallet, username=f"user{discord_id}")
    await connect_discord(services, wallet, discord_id)
    result = await services.connections.verify_discord_server_membership(wallet)
    assert result.success, result.message
    profile = await services.store.get_profile(wallet)
    return profile.referral_code

async def assert_ledger_consistent(store: LedgerStore, wallet: str):
    profile = await store.get_profile(wallet)
    assert profile.total_points == await store.sum_history(wallet)
