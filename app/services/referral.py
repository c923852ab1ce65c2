"""Referral system service"""

from typing import Any, Dict, List, Optional
import logging

from app.core.config import Settings, get_settings
from app.core.exceptions import ErrorCode
from app.models import TransactionType
from app.repositories import LedgerStore, PointsAward
from app.schemas import ActionResult, ReferralTier
from app.utils.helpers import (
    generate_referral_code,
    normalize_referral_code,
    normalize_wallet,
    short_wallet,
)

logger = logging.getLogger(__name__)

# Highest threshold first
REFERRAL_TIERS: List[ReferralTier] = [
    ReferralTier(name="Diamond", min_referrals=100, bonus_per_referral=100, percentage_bonus=15, color="#b9f2ff"),
    ReferralTier(name="Platinum", min_referrals=50, bonus_per_referral=75, percentage_bonus=12, color="#e5e4e2"),
    ReferralTier(name="Gold", min_referrals=25, bonus_per_referral=60, percentage_bonus=10, color="#ffd700"),
    ReferralTier(name="Silver", min_referrals=10, bonus_per_referral=55, percentage_bonus=8, color="#c0c0c0"),
    ReferralTier(name="Bronze", min_referrals=0, bonus_per_referral=50, percentage_bonus=5, color="#cd7f32"),
]

CODE_ISSUE_ATTEMPTS = 5

def tier_of(referral_count: int) -> ReferralTier:
    """Tier for a referral count; Bronze below every threshold"""
    for tier in REFERRAL_TIERS:
        if referral_count >= tier.min_referrals:
            return tier
    return REFERRAL_TIERS[-1]

def _missing_requirement(profile) -> Optional[str]:
    if not profile.x_connected and not profile.discord_connected:
        return "Connect X and Discord to get your referral code"
    if not profile.x_connected:
        return "Connect X to get your referral code"
    if not profile.discord_connected:
        return "Connect Discord to get your referral code"
    if not profile.discord_verified:
        return "Verify Discord server membership to get your referral code"
    return None

class ReferralService:
    """Service for managing referral codes, edges and bonuses"""

    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    async def maybe_issue_referral_code(self, wallet_address: str) -> Optional[str]:
        """
        Issue a referral code once the wallet is fully eligible

        The code is permanent: later disconnects do not revoke it.

        Returns:
            The wallet's code, or None while it is not eligible
        """
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile:
            return None
        if profile.referral_code:
            return profile.referral_code
        if not profile.is_referral_eligible:
            return None

        for _ in range(CODE_ISSUE_ATTEMPTS):
            code = await self.store.set_referral_code(
                wallet, generate_referral_code(self.settings.REFERRAL_CODE_LENGTH)
            )
            if code:
                logger.info(f"Issued referral code {code} to {wallet}")
                return code
            logger.warning(f"Referral code collision for {wallet}, retrying")

        logger.error(f"Could not issue a unique referral code to {wallet}")
        return None

    async def apply_referral_code(self, wallet_address: str, referral_code: str) -> ActionResult:
        """Link a wallet to the owner of a referral code"""
        wallet = normalize_wallet(wallet_address)
        code = normalize_referral_code(referral_code)

        profile = await self.store.get_or_create_profile(wallet)
        if profile.referred_by:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "You have already used a referral code")

        referrer = await self.store.find_profile_by_referral_code(code) if code else None
        if not referrer:
            return ActionResult.fail(ErrorCode.NOT_FOUND, "Invalid referral code")

        if referrer.wallet_address == wallet:
            return ActionResult.fail(ErrorCode.SELF_REFERRAL, "You cannot use your own referral code")

        if not referrer.is_referral_eligible:
            return ActionResult.fail(
                ErrorCode.INELIGIBLE,
                "This referral code is not active. The owner must connect X and Discord and verify Discord membership.",
            )

        referral = await self.store.create_referral(referrer.wallet_address, wallet, code)
        if not referral:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "You have already used a referral code")

        logger.info(f"Referral {referral.id}: {referrer.wallet_address} referred {wallet} with {code}")
        return ActionResult.ok(
            "Referral code applied. Complete a task to claim your bonus.",
            referrer_wallet=short_wallet(referrer.wallet_address),
            referral_id=referral.id,
        )

    async def claim_referral_bonus(self, referred_wallet: str) -> ActionResult:
        """
        Pay both sides of a referral edge

        The claimed flags, both balance changes and the referrer's
        recomputed aggregates land in one store write, so a concurrent
        claim cannot pay twice and a failed one pays nothing.
        """
        wallet = normalize_wallet(referred_wallet)
        referral = await self.store.get_referral_for_referred(wallet)
        if not referral:
            return ActionResult.fail(ErrorCode.NOT_FOUND, "No referral found")
        if referral.referrer_claimed:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Referral bonus already claimed")

        referrer_bonus = self.settings.REFERRER_BONUS_POINTS
        referred_bonus = self.settings.REFERRED_BONUS_POINTS

        claimed = await self.store.claim_referral(
            referral.id,
            PointsAward(
                referrer_bonus,
                TransactionType.REFERRAL_BONUS.value,
                f"Referral bonus: {short_wallet(wallet)} joined with your code",
            ),
            PointsAward(
                referred_bonus,
                TransactionType.REFERRAL_BONUS.value,
                f"Referral bonus: joined with code {referral.referral_code}",
            ),
        )
        if not claimed:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Referral bonus already claimed")

        logger.info(
            f"Referral {referral.id} claimed: {referral.referrer_wallet} +{referrer_bonus}, {wallet} +{referred_bonus}"
        )
        return ActionResult.ok(
            "Referral bonus claimed",
            points=referred_bonus,
            referrer_points=referrer_bonus,
            referred_points=referred_bonus,
        )

    async def maybe_claim_referral_bonus(self, wallet_address: str) -> Optional[ActionResult]:
        """Claim the pending referral bonus of a referred wallet, if any"""
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile or not profile.referred_by:
            return None

        referral = await self.store.get_referral_for_referred(wallet)
        if not referral or referral.referrer_claimed:
            return None

        return await self.claim_referral_bonus(wallet)

    async def get_code_status(self, wallet_address: str) -> Dict[str, Any]:
        profile = await self.store.get_profile(normalize_wallet(wallet_address))
        if not profile:
            return {"can_generate": False, "has_code": False, "reason": "Profile not found"}

        return {
            "can_generate": profile.is_referral_eligible,
            "has_code": bool(profile.referral_code),
            "referral_code": profile.referral_code,
            "x_connected": profile.x_connected,
            "discord_connected": profile.discord_connected,
            "discord_verified": profile.discord_verified,
            "reason": _missing_requirement(profile),
        }

    async def get_referral_stats(self, wallet_address: str) -> Optional[Dict[str, Any]]:
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile:
            return None

        referrals = await self.store.list_referrals_by_referrer(wallet)
        return {
            "referral_code": profile.referral_code,
            "referral_count": profile.referral_count,
            "referral_points_earned": profile.referral_points_earned,
            "referrals": [r.to_dict() for r in referrals],
            "tier": tier_of(profile.referral_count).model_dump(),
            "can_generate_code": profile.is_referral_eligible,
            "referred_by": profile.referred_by,
        }

    async def get_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        top = await self.store.top_referrers(limit)
        return [
            {
                "rank": rank,
                "wallet_address": profile.wallet_address,
                "referral_count": profile.referral_count,
                "referral_points_earned": profile.referral_points_earned,
                "tier": tier_of(profile.referral_count).model_dump(),
            }
            for rank, profile in enumerate(top, start=1)
        ]
