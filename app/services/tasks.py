"""Task completion service: daily posts and revocation"""

from typing import Optional
import json
import logging

from app.core.config import Settings, get_settings
from app.core.exceptions import ErrorCode
from app.models import TaskType, TransactionType
from app.repositories import LedgerStore, PointsAward
from app.schemas import ActionResult, MetadataOutcome, TweetMetadata
from app.services.referral import ReferralService
from app.utils.helpers import normalize_wallet, utc_date_string

logger = logging.getLogger(__name__)

def parse_tweet_metadata(raw: Optional[str]) -> TweetMetadata:
    """
    Extract the tweet URL from a completion's metadata

    Metadata is JSON of the form {"tweetUrl": "..."}. Older rows may hold the
    bare URL, which is accepted as is.
    """
    if raw is None or not raw.strip():
        return TweetMetadata(outcome=MetadataOutcome.MISSING)

    text = raw.strip()
    if text.startswith("http"):
        return TweetMetadata(outcome=MetadataOutcome.OK, tweet_url=text)

    try:
        data = json.loads(text)
    except ValueError:
        return TweetMetadata(outcome=MetadataOutcome.MALFORMED)

    if not isinstance(data, dict):
        return TweetMetadata(outcome=MetadataOutcome.MALFORMED)

    tweet_url = data.get("tweetUrl")
    if tweet_url is None:
        return TweetMetadata(outcome=MetadataOutcome.MISSING)
    if not isinstance(tweet_url, str) or not tweet_url.strip():
        return TweetMetadata(outcome=MetadataOutcome.MALFORMED)

    return TweetMetadata(outcome=MetadataOutcome.OK, tweet_url=tweet_url.strip())

class TaskService:
    """Service for task completions"""

    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self.referrals = ReferralService(store, self.settings)

    async def has_completed_task(
        self,
        wallet_address: str,
        task_type: str,
        completion_date: Optional[str] = None,
    ) -> bool:
        """Only active completions count; a revoked one does not block a resubmission"""
        return await self.store.has_active_completion(
            normalize_wallet(wallet_address), task_type, completion_date
        )

    async def complete_daily_post(self, wallet_address: str, tweet_url: Optional[str] = None) -> ActionResult:
        wallet = normalize_wallet(wallet_address)
        profile = await self.store.get_profile(wallet)
        if not profile or not profile.x_connected:
            return ActionResult.fail(ErrorCode.INELIGIBLE, "Please connect X first")

        today = utc_date_string()
        if await self.has_completed_task(wallet, TaskType.DAILY_POST.value, today):
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Daily post already completed today")

        bonus = self.settings.DAILY_POST_POINTS
        metadata = json.dumps({"tweetUrl": tweet_url}) if tweet_url else None
        completion = await self.store.add_task_completion(
            wallet,
            TaskType.DAILY_POST.value,
            bonus,
            today,
            metadata,
            award=PointsAward(bonus, TransactionType.DAILY_POST.value, f"Daily post for {today}"),
        )
        if not completion:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Daily post already completed today")
        await self.referrals.maybe_claim_referral_bonus(wallet)

        logger.info(f"{wallet} completed daily post {completion.id} for {today}")
        return ActionResult.ok(
            f"Daily post completed! +{bonus} points", points=bonus, completion_id=completion.id
        )

    async def revoke_task_points(self, completion_id: int, reason: Optional[str] = None) -> ActionResult:
        """Revoke a completion and deduct exactly what that row awarded"""
        completion = await self.store.get_task_completion(completion_id)
        if not completion:
            return ActionResult.fail(ErrorCode.NOT_FOUND, "Task completion not found")
        if not completion.is_active:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Task already revoked")

        description = f"Revoked {completion.task_type} {completion.completion_date or ''}".rstrip()
        if reason:
            description = f"{description}: {reason}"
        revoked = await self.store.revoke_completion(
            completion_id, TransactionType.TASK_REVOKED.value, description
        )
        if not revoked:
            return ActionResult.fail(ErrorCode.ALREADY_IN_STATE, "Task already revoked")

        logger.info(
            f"Revoked task completion {completion_id} for {revoked.wallet_address} (-{revoked.points_awarded})"
        )
        return ActionResult.ok(
            f"Task revoked. -{revoked.points_awarded} points", points=-revoked.points_awarded
        )
