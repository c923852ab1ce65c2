"""Social connection service: X and Discord linking, Discord server verification"""

from typing import Any, Dict, Optional
import logging

from app.core.config import Settings, get_settings
from app.core.exceptions import ErrorCode
from app.models import Platform, TaskType, TransactionType, utc_now
from app.repositories import LedgerStore, PointsAward
from app.schemas import ActionResult, ExternalIdentity, MembershipCheck, MembershipStatus
from app.services.points import PointsEngine
from app.services.referral import ReferralService
from app.services.verification import DiscordMembershipClient
from app.utils.helpers import detect_chain_type, normalize_wallet, utc_date_string

logger = logging.getLogger(__name__)

PLATFORM_LABELS = {Platform.X: "X", Platform.DISCORD: "Discord"}

# Profile columns owned by each platform, with their disconnected values
PLATFORM_FIELDS = {
    Platform.X: {
        "x_connected": False,
        "x_username": None,
        "x_user_id": None,
        "x_connected_at": None,
    },
    Platform.DISCORD: {
        "discord_connected": False,
        "discord_username": None,
        "discord_id": None,
        "discord_connected_at": None,
        "discord_verified": False,
        "discord_verified_at": None,
    },
}

DISCONNECT_ATTEMPTS = 3

class ConnectionService:
    """Service for platform connections and the bonuses they carry"""

    def __init__(
        self,
        store: LedgerStore,
        settings: Optional[Settings] = None,
        membership_client: Optional[DiscordMembershipClient] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.points = PointsEngine(store)
        self.referrals = ReferralService(store, self.settings)
        self.membership_client = membership_client or DiscordMembershipClient(self.settings)

    def _connect_bonus(self, platform: Platform) -> tuple:
        if platform == Platform.X:
            return TransactionType.X_CONNECT.value, self.settings.X_CONNECT_POINTS
        return TransactionType.DISCORD_CONNECT.value, self.settings.DISCORD_CONNECT_POINTS

    async def _after_eligibility_change(self, wallet: str):
        await self.referrals.maybe_issue_referral_code(wallet)
        await self.referrals.maybe_claim_referral_bonus(wallet)

    async def connect_platform(
        self,
        wallet_address: str,
        platform: Platform,
        identity: ExternalIdentity,
    ) -> ActionResult:
        """Mark a platform connected and award its bonus"""
        wallet = normalize_wallet(wallet_address)
        platform = Platform(platform)
        label = PLATFORM_LABELS[platform]
        await self.store.get_or_create_profile(wallet)

        prefix = platform.value
        id_field = "x_user_id" if platform == Platform.X else "discord_id"
        changes = {
            f"{prefix}_connected": True,
            f"{prefix}_username": identity.username,
            id_field: identity.external_id,
            f"{prefix}_connected_at": utc_now(),
        }
        transaction_type, bonus = self._connect_bonus(platform)
        award = PointsAward(bonus, transaction_type, f"Connected {label} account @{identity.username}")
        updated = await self.store.update_profile_if(
            wallet, {f"{prefix}_connected": False}, changes, awards=[award]
        )
        if not updated:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, f"{label} already connected")

        await self._after_eligibility_change(wallet)

        logger.info(f"{wallet} connected {label} as {identity.username}")
        return ActionResult.ok(f"{label} connected! +{bonus} points", points=bonus)

    async def disconnect_platform(self, wallet_address: str, platform: Platform) -> ActionResult:
        """
        Clear a platform connection and refund what it granted

        For Discord, a verified membership is reversed in the same call with
        its own deduction. Both amounts come from history, not from settings.
        """
        wallet = normalize_wallet(wallet_address)
        platform = Platform(platform)
        label = PLATFORM_LABELS[platform]

        connect_type, default_bonus = self._connect_bonus(platform)
        disconnect_type = (
            TransactionType.X_DISCONNECT.value if platform == Platform.X
            else TransactionType.DISCORD_DISCONNECT.value
        )

        for _ in range(DISCONNECT_ATTEMPTS):
            profile = await self.store.get_profile(wallet)
            if not profile or not profile.is_connected(platform):
                return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, f"{label} not connected")

            refund = await self.points.get_original_bonus_amount(wallet, connect_type, default_bonus)
            awards = [PointsAward(-refund, disconnect_type, f"Disconnected {label} account")]
            expected = {f"{platform.value}_connected": True}
            if platform == Platform.DISCORD:
                expected["discord_verified"] = profile.discord_verified
                if profile.discord_verified:
                    awards.append(await self._verify_revocation(wallet, "Discord disconnected"))

            if await self.store.update_profile_if(wallet, expected, dict(PLATFORM_FIELDS[platform]), awards=awards):
                break
        else:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, f"{label} not connected")

        total_deducted = -sum(award.delta for award in awards)
        logger.info(f"{wallet} disconnected {label}, -{total_deducted} points")
        return ActionResult.ok(f"{label} disconnected. -{total_deducted} points", points=-total_deducted)

    async def _verify_revocation(self, wallet: str, reason: str) -> PointsAward:
        amount = await self.points.get_original_bonus_amount(
            wallet, TransactionType.DISCORD_VERIFY.value, self.settings.DISCORD_VERIFY_POINTS
        )
        return PointsAward(
            -amount,
            TransactionType.DISCORD_VERIFY_REVOKED.value,
            f"Discord verification revoked: {reason}",
        )

    async def verify_discord_server_membership(self, wallet_address: str) -> ActionResult:
        """Confirm guild membership with the bot API and award the verify bonus"""
        wallet = normalize_wallet(wallet_address)
        if not self.membership_client.configured:
            return ActionResult.fail(
                ErrorCode.EXTERNAL_UNAVAILABLE, "Discord verification is not configured"
            )

        profile = await self.store.get_profile(wallet)
        if not profile or not profile.discord_connected:
            return ActionResult.fail(ErrorCode.INELIGIBLE, "Please connect Discord first")
        if profile.discord_verified:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Discord membership already verified")
        if not profile.discord_id:
            return ActionResult.fail(
                ErrorCode.INELIGIBLE, "Discord user id missing. Please reconnect Discord"
            )

        status = await self.membership_client.check_membership(None, profile.discord_id)
        if status == MembershipStatus.ABSENT:
            return ActionResult.fail(
                ErrorCode.NOT_A_MEMBER,
                "You are not a member of our Discord server yet. Join and try again.",
                invite_url=self.settings.DISCORD_INVITE_URL,
            )
        if status != MembershipStatus.PRESENT:
            return ActionResult.fail(
                ErrorCode.EXTERNAL_UNAVAILABLE,
                "Could not verify Discord membership right now. Please try again later.",
            )

        bonus = self.settings.DISCORD_VERIFY_POINTS
        updated = await self.store.update_profile_if(
            wallet,
            {"discord_connected": True, "discord_verified": False, "discord_id": profile.discord_id},
            {"discord_verified": True, "discord_verified_at": utc_now()},
            awards=[PointsAward(bonus, TransactionType.DISCORD_VERIFY.value, "Verified Discord server membership")],
        )
        if not updated:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Discord membership already verified")

        await self._after_eligibility_change(wallet)

        logger.info(f"{wallet} verified Discord membership")
        return ActionResult.ok(f"Discord membership verified! +{bonus} points", points=bonus)

    async def claim_one_time_connect_bonus(self, wallet_address: str) -> ActionResult:
        wallet = normalize_wallet(wallet_address)
        await self.store.get_or_create_profile(wallet)

        bonus = self.settings.CONNECT_BONUS_POINTS
        updated = await self.store.update_profile_if(
            wallet,
            {"connect_bonus_claimed": False},
            {"connect_bonus_claimed": True},
            awards=[PointsAward(bonus, TransactionType.CONNECT_BONUS.value, "Wallet connect bonus")],
        )
        if not updated:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Connect bonus already claimed")

        return ActionResult.ok(f"Connect bonus claimed! +{bonus} points", points=bonus)

    async def reconcile_membership(self, wallet_address: str) -> MembershipCheck:
        """
        Re-check a verified wallet's guild membership

        Only a confirmed absence unverifies the wallet and deducts the verify
        bonus; an indeterminate answer changes nothing.
        """
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile or not profile.discord_verified or not profile.discord_id:
            return MembershipCheck(still_member=True, revoked=False)

        status = await self.membership_client.check_membership(None, profile.discord_id)
        if status != MembershipStatus.ABSENT:
            return MembershipCheck(still_member=True, revoked=False)

        revoked = await self.revoke_discord_verification(wallet, profile.discord_id)
        return MembershipCheck(still_member=False, revoked=revoked)

    async def revoke_discord_verification(self, wallet_address: str, discord_id: str) -> bool:
        """Unverify a wallet that left the guild; False if it was no longer verified"""
        wallet = normalize_wallet(wallet_address)
        award = await self._verify_revocation(wallet, "left the Discord server")
        updated = await self.store.update_profile_if(
            wallet,
            {"discord_verified": True, "discord_id": discord_id},
            {"discord_verified": False, "discord_verified_at": None},
            awards=[award],
        )
        if not updated:
            return False

        logger.info(f"{wallet} left the Discord server, verification revoked ({award.delta})")
        return True

    async def get_profile_view(
        self,
        wallet_address: str,
        chain_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Profile with today's task state, after a membership re-check"""
        wallet = normalize_wallet(wallet_address)
        membership = await self.reconcile_membership(wallet)
        profile = await self.store.get_or_create_profile(
            wallet, chain_type or detect_chain_type(wallet_address)
        )

        today = utc_date_string()
        # A post only counts while X is still connected
        daily_post_completed = bool(profile.x_connected) and await self.store.has_active_completion(
            wallet, TaskType.DAILY_POST.value, today
        )
        return {
            "profile": profile.to_dict(),
            "daily_post_completed": daily_post_completed,
            "today_utc": today,
            "discord_membership_revoked": membership.revoked,
        }
