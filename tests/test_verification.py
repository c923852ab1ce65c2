"""Tests for the Discord and oEmbed adapters"""

import httpx
import pytest

from app.schemas import MembershipStatus, TweetStatus
from app.services import DiscordMembershipClient, TweetExistenceClient

TWEET = "https://x.com/alice/status/1790000000000000000"

def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))

def _status(code: int):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, json={})
    return handler

def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

class TestDiscordMembershipClient:
    """Guild member lookups"""

    @pytest.mark.asyncio
    async def test_request_shape(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"user": {"id": "555"}})

        async with _client(handler) as http:
            status = await DiscordMembershipClient(settings, http).check_membership(None, "555")

        assert status == MembershipStatus.PRESENT
        assert seen[0].url.path == "/api/v10/guilds/123456789/members/555"
        assert seen[0].headers["Authorization"] == "Bot test-bot-token"

    @pytest.mark.asyncio
    async def test_explicit_guild_overrides_configured(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={})

        async with _client(handler) as http:
            await DiscordMembershipClient(settings, http).check_membership("42", "555")

        assert seen == ["/api/v10/guilds/42/members/555"]

    @pytest.mark.asyncio
    async def test_not_found_is_absent(self, settings):
        async with _client(_status(404)) as http:
            status = await DiscordMembershipClient(settings, http).check_membership(None, "555")

        assert status == MembershipStatus.ABSENT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [401, 403, 429, 500, 503])
    async def test_other_statuses_are_indeterminate(self, settings, code):
        async with _client(_status(code)) as http:
            status = await DiscordMembershipClient(settings, http).check_membership(None, "555")

        assert status == MembershipStatus.INDETERMINATE

    @pytest.mark.asyncio
    async def test_transport_error_is_indeterminate(self, settings):
        async with _client(_refuse) as http:
            status = await DiscordMembershipClient(settings, http).check_membership(None, "555")

        assert status == MembershipStatus.INDETERMINATE

    @pytest.mark.asyncio
    async def test_missing_configuration_skips_the_call(self, settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        unconfigured = settings.model_copy(update={"DISCORD_BOT_TOKEN": None})
        async with _client(handler) as http:
            client = DiscordMembershipClient(unconfigured, http)
            status = await client.check_membership(None, "555")

        assert client.configured is False
        assert status == MembershipStatus.INDETERMINATE
        assert calls == []

class TestTweetExistenceClient:
    """oEmbed lookups"""

    @pytest.mark.asyncio
    async def test_request_carries_tweet_url(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"html": "<blockquote/>"})

        async with _client(handler) as http:
            status = await TweetExistenceClient(settings, http).check_tweet(TWEET)

        assert status == TweetStatus.EXISTS
        assert seen[0].url.host == "publish.twitter.com"
        assert seen[0].url.params["url"] == TWEET

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [403, 404])
    async def test_gone_tweets_are_deleted(self, settings, code):
        async with _client(_status(code)) as http:
            client = TweetExistenceClient(settings, http)
            status = await client.check_tweet(TWEET)
            exists = await client.check_tweet_exists(TWEET)

        assert status == TweetStatus.DELETED
        assert exists is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [429, 500, 502])
    async def test_failures_fail_open(self, settings, code):
        async with _client(_status(code)) as http:
            client = TweetExistenceClient(settings, http)
            status = await client.check_tweet(TWEET)
            exists = await client.check_tweet_exists(TWEET)

        assert status == TweetStatus.INDETERMINATE
        assert exists is True

    @pytest.mark.asyncio
    async def test_transport_error_fails_open(self, settings):
        async with _client(_refuse) as http:
            client = TweetExistenceClient(settings, http)

            assert await client.check_tweet(TWEET) == TweetStatus.INDETERMINATE
            assert await client.check_tweet_exists(TWEET) is True
