"""
External verification adapters

Thin callers to the Discord guild-member API and the public tweet oEmbed
endpoint. Both report a tri-state outcome and fail open: anything other than
an explicit not-found answer is never treated as a negative finding.
"""

from typing import Optional
import logging

import httpx

from app.core.config import Settings, get_settings
from app.schemas import MembershipStatus, TweetStatus

logger = logging.getLogger(__name__)

class DiscordMembershipClient:
    """Checks whether a Discord user is a member of a guild"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client

    @property
    def configured(self) -> bool:
        return bool(self.settings.DISCORD_BOT_TOKEN and self.settings.DISCORD_GUILD_ID)

    async def _get(self, url: str, headers: dict) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(url, headers=headers)
        async with httpx.AsyncClient(timeout=self.settings.EXTERNAL_HTTP_TIMEOUT) as client:
            return await client.get(url, headers=headers)

    async def check_membership(
        self,
        guild_id: Optional[str],
        discord_user_id: str,
    ) -> MembershipStatus:
        """
        Look up a guild member

        Args:
            guild_id: Guild to check; None means the configured guild
            discord_user_id: Discord snowflake of the user

        Returns:
            PRESENT on success, ABSENT on 404, INDETERMINATE otherwise
        """
        guild_id = guild_id or self.settings.DISCORD_GUILD_ID
        token = self.settings.DISCORD_BOT_TOKEN
        if not token or not guild_id:
            logger.warning("Discord membership check skipped: bot token or guild id not configured")
            return MembershipStatus.INDETERMINATE

        url = f"{self.settings.DISCORD_API_BASE_URL}/guilds/{guild_id}/members/{discord_user_id}"
        try:
            response = await self._get(url, {"Authorization": f"Bot {token}"})
        except httpx.HTTPError as e:
            logger.error(f"Discord membership check failed for {discord_user_id}: {e}")
            return MembershipStatus.INDETERMINATE

        if response.status_code == 404:
            return MembershipStatus.ABSENT
        if response.is_success:
            return MembershipStatus.PRESENT

        logger.warning(
            f"Discord membership check for {discord_user_id} returned {response.status_code}"
        )
        return MembershipStatus.INDETERMINATE

class TweetExistenceClient:
    """Checks whether a public tweet still resolves"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client

    async def _get(self, url: str, params: dict) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(url, params=params)
        async with httpx.AsyncClient(timeout=self.settings.EXTERNAL_HTTP_TIMEOUT) as client:
            return await client.get(url, params=params)

    async def check_tweet(self, tweet_url: str) -> TweetStatus:
        """DELETED on 404/403, EXISTS on success, INDETERMINATE otherwise"""
        try:
            response = await self._get(self.settings.TWEET_OEMBED_URL, {"url": tweet_url})
        except httpx.HTTPError as e:
            logger.error(f"Tweet check failed for {tweet_url}: {e}")
            return TweetStatus.INDETERMINATE

        if response.status_code in (403, 404):
            logger.info(f"Tweet no longer available ({response.status_code}): {tweet_url}")
            return TweetStatus.DELETED
        if response.is_success:
            return TweetStatus.EXISTS

        logger.warning(f"Tweet check for {tweet_url} returned {response.status_code}")
        return TweetStatus.INDETERMINATE

    async def check_tweet_exists(self, tweet_url: str) -> bool:
        return await self.check_tweet(tweet_url) != TweetStatus.DELETED
