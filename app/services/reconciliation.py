"""
Reconciliation sweeps

Re-verify external state (Discord guild membership, tweet existence) and
revoke through the same paths a manual action would use. Sweeps pace their
external calls, isolate per-item failures and can be bounded by a timeout.
"""

from typing import Optional
import asyncio
import logging

from app.core.config import Settings, get_settings
from app.models import TaskType
from app.repositories import LedgerStore
from app.schemas import MembershipCheck, MembershipStatus, MetadataOutcome, SweepSummary, TweetStatus
from app.services.connections import ConnectionService
from app.services.tasks import TaskService, parse_tweet_metadata
from app.services.verification import DiscordMembershipClient, TweetExistenceClient
from app.utils.helpers import normalize_wallet

logger = logging.getLogger(__name__)

class ReconciliationService:
    """Service for periodic and on-demand re-verification"""

    def __init__(
        self,
        store: LedgerStore,
        settings: Optional[Settings] = None,
        membership_client: Optional[DiscordMembershipClient] = None,
        tweet_client: Optional[TweetExistenceClient] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.membership_client = membership_client or DiscordMembershipClient(self.settings)
        self.tweet_client = tweet_client or TweetExistenceClient(self.settings)
        self.connections = ConnectionService(store, self.settings, self.membership_client)
        self.tasks = TaskService(store, self.settings)

    @staticmethod
    def _deadline(timeout: Optional[float]) -> Optional[float]:
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    @staticmethod
    def _expired(deadline: Optional[float]) -> bool:
        return deadline is not None and asyncio.get_running_loop().time() >= deadline

    async def reconcile_one_wallet_membership(self, wallet_address: str) -> MembershipCheck:
        return await self.connections.reconcile_membership(wallet_address)

    async def reconcile_all_memberships(self, timeout: Optional[float] = None) -> SweepSummary:
        """Re-check every verified Discord member"""
        summary = SweepSummary()
        deadline = self._deadline(timeout)
        batch_size = max(self.settings.MEMBERSHIP_SWEEP_BATCH_SIZE, 1)

        profiles = await self.store.list_verified_discord_profiles()
        logger.info(f"Membership sweep started for {len(profiles)} verified wallets")

        for profile in profiles:
            if self._expired(deadline):
                summary.timed_out = True
                logger.warning(f"Membership sweep timed out after {summary.checked} checks")
                break

            if summary.checked and summary.checked % batch_size == 0:
                await asyncio.sleep(self.settings.MEMBERSHIP_SWEEP_PAUSE_SECONDS)

            summary.checked += 1
            try:
                status = await self.membership_client.check_membership(None, profile.discord_id)
                if status == MembershipStatus.INDETERMINATE:
                    summary.errors += 1
                    continue
                if status == MembershipStatus.PRESENT:
                    continue

                revoked = await self.connections.revoke_discord_verification(
                    profile.wallet_address, profile.discord_id
                )
                if revoked:
                    summary.revoked += 1
                    summary.revoked_ids.append(profile.id)
                else:
                    summary.skipped += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                summary.errors += 1
                logger.error(f"Membership check failed for {profile.wallet_address}: {e}")

        logger.info(
            f"Membership sweep done: checked={summary.checked} revoked={summary.revoked} "
            f"errors={summary.errors}"
        )
        return summary

    async def reconcile_all_active_tweets(
        self,
        wallet_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SweepSummary:
        """
        Re-check the tweets behind active daily-post completions

        Scoped to one wallet when wallet_address is given, which uses the
        lighter per-wallet pacing. Rows revoked since the listing are skipped.
        """
        summary = SweepSummary()
        deadline = self._deadline(timeout)
        wallet = normalize_wallet(wallet_address) if wallet_address else None

        if wallet:
            delay = 0.0
            batch_size = self.settings.WALLET_TWEET_CHECK_BATCH_SIZE
            batch_pause = self.settings.WALLET_TWEET_CHECK_PAUSE_SECONDS
        else:
            delay = self.settings.TWEET_SWEEP_DELAY_SECONDS
            batch_size = self.settings.TWEET_SWEEP_BATCH_SIZE
            batch_pause = self.settings.TWEET_SWEEP_BATCH_PAUSE_SECONDS
        batch_size = max(batch_size, 1)

        completions = await self.store.list_active_completions_with_metadata(
            TaskType.DAILY_POST.value, wallet
        )
        logger.info(f"Tweet sweep started for {len(completions)} active completions")

        for completion in completions:
            if self._expired(deadline):
                summary.timed_out = True
                logger.warning(f"Tweet sweep timed out after {summary.checked} checks")
                break

            metadata = parse_tweet_metadata(completion.metadata_json)
            if metadata.outcome == MetadataOutcome.MALFORMED:
                summary.errors += 1
                logger.warning(f"Malformed metadata on task completion {completion.id}")
                continue
            if metadata.outcome == MetadataOutcome.MISSING:
                summary.skipped += 1
                continue

            if summary.checked and summary.checked % batch_size == 0:
                await asyncio.sleep(batch_pause)

            summary.checked += 1
            try:
                status = await self.tweet_client.check_tweet(metadata.tweet_url)
                if status == TweetStatus.INDETERMINATE:
                    summary.errors += 1
                elif status == TweetStatus.DELETED:
                    result = await self.tasks.revoke_task_points(completion.id, "tweet no longer exists")
                    if result.success:
                        summary.revoked += 1
                        summary.revoked_ids.append(completion.id)
                    else:
                        summary.skipped += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                summary.errors += 1
                logger.error(f"Tweet check failed for task completion {completion.id}: {e}")

            if delay:
                await asyncio.sleep(delay)

        logger.info(
            f"Tweet sweep done: checked={summary.checked} revoked={summary.revoked} "
            f"errors={summary.errors} skipped={summary.skipped}"
        )
        return summary
