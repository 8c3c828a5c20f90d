"""App access token management for the Twitch client.

Internal module; used by :mod:`~stream_herald.twitch._http` and
:mod:`~stream_herald.twitch.client`.

The credential is a plain attribute replaced wholesale on refresh.  Every
request captures the token when its headers are built, so a request that
raced a refresh merely fails once with 401 and goes through the normal
refresh-and-retry path.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from stream_herald.core.exceptions import HttpFailure, NormalizationError, NotAuthorized
from stream_herald.twitch.config import TWITCH_TOKEN_URL

logger = logging.getLogger(__name__)


class TokenManager:
    """Holds the current app access token and knows how to refresh it.

    Args:
        http: Shared HTTP client used for the token exchange.
        client_id: Twitch application Client ID.
        client_secret: Twitch application client secret.
        access_token: Optional pre-issued token; when ``None`` the first call
            to :meth:`current` performs the exchange.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        access_token: str | None = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")
        self._http = http
        self.client_id = client_id
        self._client_secret = client_secret
        self._token = access_token
        self._refresh_lock = asyncio.Lock()

    @property
    def token(self) -> str | None:
        """The current bearer token, or ``None`` before the first exchange."""
        return self._token

    async def current(self) -> str:
        """Return the current token, authorizing first if none is held yet."""
        if self._token is None:
            await self.refresh(stale_token=None)
        return self._token  # type: ignore[return-value]

    async def authorize(self) -> None:
        """Exchange the client id and secret for a new app access token.

        Raises:
            NotAuthorized: The token endpoint answered with a 4xx status.
            HttpFailure: The token endpoint answered with a 5xx status or
                could not be reached.
            NormalizationError: The success payload has no ``access_token``.
        """
        try:
            response = await self._http.post(
                TWITCH_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.RequestError as exc:
            raise HttpFailure(
                f"twitch: connection error obtaining app access token: {exc}",
                url=TWITCH_TOKEN_URL,
            ) from exc

        if response.is_success:
            try:
                token = response.json()["access_token"]
            except (ValueError, KeyError, TypeError) as exc:
                raise NormalizationError(
                    "twitch: token response missing 'access_token' field"
                ) from exc
            self._token = str(token)
            logger.info("twitch: obtained new app access token")
            return

        if response.status_code < 500:
            raise NotAuthorized(response)
        raise HttpFailure.from_response(response)

    async def refresh(self, stale_token: str | None) -> None:
        """Replace *stale_token* with a fresh one.

        Concurrent callers are serialized; a caller whose stale token was
        already replaced by another refresh returns without a second
        exchange.

        Args:
            stale_token: The token the failing request was sent with, or
                ``None`` when the request carried no token.  A ``None`` stale
                token only triggers an exchange while no token is held yet.
        """
        async with self._refresh_lock:
            if self._token is not None and self._token != stale_token:
                logger.debug("twitch: token already refreshed by a concurrent request")
                return
            await self.authorize()
