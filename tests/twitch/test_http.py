"""Tests for the shared request policy of the Twitch client.

Covers:
- 401 → exactly one token refresh and one retry; a second 401 is terminal
- 429 → one delayed retry using Ratelimit-Reset (fallback 1 s); a second 429 is terminal
- 404 → absent result, never an exception
- other 4xx/5xx and transport errors → HttpFailure
- parse_rate_limit_reset() header interpretation

The policy is exercised through ``get_user_id()``, the simplest operation.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from stream_herald.core.exceptions import HttpFailure
from stream_herald.twitch._http import parse_rate_limit_reset
from stream_herald.twitch.client import HelixClient
from stream_herald.twitch.config import TWITCH_API_BASE, TWITCH_TOKEN_URL

USERS_URL = f"{TWITCH_API_BASE}/users"

_USER_PAYLOAD = {"data": [{"id": "141981764", "login": "twitchdev"}]}


# ---------------------------------------------------------------------------
# 401 handling
# ---------------------------------------------------------------------------


class TestUnauthorizedRetry:
    @pytest.mark.asyncio
    @respx.mock
    async def test_401_refreshes_token_and_retries_once(self, helix_client: HelixClient) -> None:
        """A 401 triggers one token exchange and one retry carrying the new token."""
        token_route = respx.post(TWITCH_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "fresh-token"})
        )
        users_route = respx.get(USERS_URL).mock(
            side_effect=[
                httpx.Response(401, json={"message": "Invalid OAuth token"}),
                httpx.Response(200, json=_USER_PAYLOAD),
            ]
        )

        user_id = await helix_client.get_user_id("twitchdev")

        assert user_id == "141981764"
        assert token_route.call_count == 1
        assert users_route.call_count == 2
        first, second = users_route.calls
        assert first.request.headers["Authorization"] == "Bearer test-token"
        assert second.request.headers["Authorization"] == "Bearer fresh-token"
        assert second.request.url == first.request.url

    @pytest.mark.asyncio
    @respx.mock
    async def test_second_401_is_terminal(self, helix_client: HelixClient) -> None:
        """A 401 on the retry raises HttpFailure without a third attempt."""
        token_route = respx.post(TWITCH_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "fresh-token"})
        )
        users_route = respx.get(USERS_URL).mock(return_value=httpx.Response(401))

        with pytest.raises(HttpFailure) as exc_info:
            await helix_client.get_user_id("twitchdev")

        assert exc_info.value.status_code == 401
        assert token_route.call_count == 1
        assert users_route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_404_on_retry_is_terminal(self, helix_client: HelixClient) -> None:
        """Any unsuccessful retry, even a 404, surfaces as HttpFailure."""
        respx.post(TWITCH_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "fresh-token"})
        )
        respx.get(USERS_URL).mock(
            side_effect=[httpx.Response(401), httpx.Response(404)]
        )

        with pytest.raises(HttpFailure) as exc_info:
            await helix_client.get_user_id("twitchdev")

        assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# 429 handling
# ---------------------------------------------------------------------------


class TestRateLimitRetry:
    @pytest.mark.asyncio
    @respx.mock
    async def test_429_sleeps_for_reset_header_then_retries(
        self, helix_client: HelixClient
    ) -> None:
        """A 429 waits for the Ratelimit-Reset delay and retries once."""
        users_route = respx.get(USERS_URL).mock(
            side_effect=[
                httpx.Response(429, headers={"Ratelimit-Reset": "3"}),
                httpx.Response(200, json=_USER_PAYLOAD),
            ]
        )

        with patch("asyncio.sleep", new=AsyncMock()) as mock_sleep:
            user_id = await helix_client.get_user_id("twitchdev")

        assert user_id == "141981764"
        assert users_route.call_count == 2
        mock_sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_without_header_waits_one_second(self, helix_client: HelixClient) -> None:
        """Without Ratelimit-Reset the backoff falls back to 1 second."""
        respx.get(USERS_URL).mock(
            side_effect=[httpx.Response(429), httpx.Response(200, json=_USER_PAYLOAD)]
        )

        with patch("asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await helix_client.get_user_id("twitchdev")

        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_with_infinite_reset_waits_one_second(
        self, helix_client: HelixClient
    ) -> None:
        """An overflowing reset value never turns into an endless sleep."""
        respx.get(USERS_URL).mock(
            side_effect=[
                httpx.Response(429, headers={"Ratelimit-Reset": "1e400"}),
                httpx.Response(200, json=_USER_PAYLOAD),
            ]
        )

        with patch("asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await helix_client.get_user_id("twitchdev")

        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_second_429_is_terminal(self, helix_client: HelixClient) -> None:
        """A 429 on the retry raises HttpFailure after a single backoff."""
        users_route = respx.get(USERS_URL).mock(return_value=httpx.Response(429))

        with patch("asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(HttpFailure) as exc_info:
                await helix_client.get_user_id("twitchdev")

        assert exc_info.value.status_code == 429
        assert users_route.call_count == 2
        assert mock_sleep.await_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_retry_does_not_touch_token_endpoint(
        self, helix_client: HelixClient
    ) -> None:
        """The rate-limit path keeps the current token."""
        users_route = respx.get(USERS_URL).mock(
            side_effect=[httpx.Response(429), httpx.Response(200, json=_USER_PAYLOAD)]
        )

        with patch("asyncio.sleep", new=AsyncMock()):
            await helix_client.get_user_id("twitchdev")

        assert users_route.calls.last.request.headers["Authorization"] == "Bearer test-token"


# ---------------------------------------------------------------------------
# 404 and hard failures
# ---------------------------------------------------------------------------


class TestFailureClassification:
    @pytest.mark.asyncio
    @respx.mock
    async def test_404_returns_none(self, helix_client: HelixClient) -> None:
        """get_user_id('doesnotexist') on a 404 returns None, not an exception."""
        respx.get(USERS_URL).mock(return_value=httpx.Response(404))

        assert await helix_client.get_user_id("doesnotexist") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_500_raises_http_failure_with_status_and_body(
        self, helix_client: HelixClient
    ) -> None:
        """Other error statuses raise HttpFailure embedding status and body."""
        users_route = respx.get(USERS_URL).mock(
            return_value=httpx.Response(500, text="upstream exploded")
        )

        with pytest.raises(HttpFailure) as exc_info:
            await helix_client.get_user_id("twitchdev")

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "upstream exploded"
        assert "500" in str(exc_info.value)
        assert users_route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_400_is_not_retried(self, helix_client: HelixClient) -> None:
        users_route = respx.get(USERS_URL).mock(return_value=httpx.Response(400))

        with pytest.raises(HttpFailure):
            await helix_client.get_user_id("twitchdev")

        assert users_route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_raises_http_failure(self, helix_client: HelixClient) -> None:
        """Connection errors surface as HttpFailure with no status code."""
        respx.get(USERS_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(HttpFailure) as exc_info:
            await helix_client.get_user_id("twitchdev")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


# ---------------------------------------------------------------------------
# parse_rate_limit_reset()
# ---------------------------------------------------------------------------


class TestParseRateLimitReset:
    def test_missing_header_falls_back_to_one_second(self) -> None:
        assert parse_rate_limit_reset(None) == 1.0

    def test_unparseable_header_falls_back_to_one_second(self) -> None:
        assert parse_rate_limit_reset("soon") == 1.0

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400"])
    def test_non_finite_header_falls_back_to_one_second(self, value: str) -> None:
        assert parse_rate_limit_reset(value, now=1_700_000_000.0) == 1.0

    def test_small_value_is_a_delta(self) -> None:
        assert parse_rate_limit_reset("2.5", now=1_700_000_000.0) == 2.5

    def test_epoch_seconds(self) -> None:
        assert parse_rate_limit_reset("1700000005", now=1_700_000_000.0) == 5.0

    def test_epoch_milliseconds(self) -> None:
        assert parse_rate_limit_reset("1700000002500", now=1_700_000_000.0) == 2.5

    def test_reset_in_the_past_clamps_to_zero(self) -> None:
        assert parse_rate_limit_reset("1699999990", now=1_700_000_000.0) == 0.0
