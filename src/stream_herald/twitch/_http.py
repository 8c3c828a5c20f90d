"""Request execution and the shared retry policy for the Twitch client.

Internal module; not part of the public API.  Used exclusively by
:mod:`~stream_herald.twitch.client`.

Every typed client operation goes through :meth:`RequestExecutor.execute`,
which classifies the response into exactly one outcome:

==========================  ==============================================
Response                    Outcome
==========================  ==============================================
2xx                         decoded by the caller-supplied handler
non-2xx on a retry attempt  :class:`HttpFailure` (never retried again)
401                         token refresh, then one retry
404                         warning logged, ``None`` returned
429                         sleep until ``Ratelimit-Reset``, then one retry
anything else               :class:`HttpFailure` with status and body
transport error             :class:`HttpFailure` without a status
==========================  ==============================================
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable
from typing import TypeVar

import httpx

from stream_herald.core.exceptions import HttpFailure
from stream_herald.twitch._auth import TokenManager
from stream_herald.twitch.config import (
    RATE_LIMIT_FALLBACK_SECONDS,
    RATE_LIMIT_RESET_HEADER,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BEARER_PREFIX = "Bearer "

# Reset values above these thresholds are absolute timestamps, not deltas.
_EPOCH_MILLIS_THRESHOLD = 1e11
_EPOCH_SECONDS_THRESHOLD = 1e9


def parse_rate_limit_reset(value: str | None, now: float | None = None) -> float:
    """Return the number of seconds to wait before retrying a rate-limited request.

    Helix sends ``Ratelimit-Reset`` as an epoch timestamp; some proxies send
    epoch milliseconds or a plain delta.  Large values are treated as
    absolute times, small values as a delta in seconds.

    Args:
        value: Raw header value, or ``None`` when the header is absent.
        now: Current epoch time in seconds; defaults to :func:`time.time`.

    Returns:
        Non-negative delay in seconds; :data:`RATE_LIMIT_FALLBACK_SECONDS`
        when the header is absent, unparseable or not finite.
    """
    if value is None:
        return RATE_LIMIT_FALLBACK_SECONDS
    try:
        reset = float(value.strip())
    except ValueError:
        reset = math.nan
    if not math.isfinite(reset):
        logger.debug("twitch: unparseable %s header %r", RATE_LIMIT_RESET_HEADER, value)
        return RATE_LIMIT_FALLBACK_SECONDS

    current = time.time() if now is None else now
    if reset > _EPOCH_MILLIS_THRESHOLD:
        delay = reset / 1000.0 - current
    elif reset > _EPOCH_SECONDS_THRESHOLD:
        delay = reset - current
    else:
        delay = reset
    return max(0.0, delay)


def _bearer_token(request: httpx.Request) -> str | None:
    header = request.headers.get("Authorization")
    if header is None or not header.startswith(_BEARER_PREFIX):
        return None
    return header[len(_BEARER_PREFIX):]


class RequestExecutor:
    """Issues single HTTP requests and applies the shared retry policy.

    Args:
        http: Shared HTTP client.
        tokens: Token manager consulted on 401 responses.
    """

    def __init__(self, http: httpx.AsyncClient, tokens: TokenManager) -> None:
        self._http = http
        self._tokens = tokens

    async def execute(
        self,
        request: httpx.Request,
        handler: Callable[[httpx.Response], T | None],
        *,
        is_retry: bool = False,
        follow_redirects: bool = False,
    ) -> T | None:
        """Send *request* and return the decoded result.

        Args:
            request: The fully built request (URL, query and headers).
            handler: Decodes a successful response into the caller's result.
            is_retry: ``True`` for the single permitted retry; any
                unsuccessful response then raises instead of retrying.
            follow_redirects: Follow 3xx responses to their target before
                classifying the final response.

        Returns:
            The handler's result, or ``None`` when the resource does not
            exist (HTTP 404).

        Raises:
            HttpFailure: On an unrecoverable response or transport error.
        """
        logger.debug("twitch: %s %s", request.method, request.url)
        try:
            response = await self._http.send(request, follow_redirects=follow_redirects)
        except httpx.RequestError as exc:
            raise HttpFailure(
                f"twitch: request error on {request.url}: {exc}",
                url=str(request.url),
            ) from exc
        logger.debug("twitch: HTTP %d for %s", response.status_code, request.url)

        if response.is_success:
            return handler(response)

        # Bound the work per logical call: a failed retry is terminal.
        if is_retry:
            raise HttpFailure.from_response(response)

        if response.status_code == 401:
            # App tokens expire after a few months of uptime.
            logger.warning("twitch: authorization expired, refreshing token")
            await self._tokens.refresh(stale_token=_bearer_token(request))
            return await self.execute(
                self._reissue(request),
                handler,
                is_retry=True,
                follow_redirects=follow_redirects,
            )

        if response.status_code == 404:
            logger.warning("twitch: received 404 for %s", request.url)
            return None

        if response.status_code == 429:
            delay = parse_rate_limit_reset(response.headers.get(RATE_LIMIT_RESET_HEADER))
            logger.warning(
                "twitch: rate limited on %s; retrying in %.2fs",
                request.url,
                delay,
            )
            await asyncio.sleep(delay)
            return await self.execute(
                self._reissue(request),
                handler,
                is_retry=True,
                follow_redirects=follow_redirects,
            )

        raise HttpFailure.from_response(response)

    def _reissue(self, request: httpx.Request) -> httpx.Request:
        """Copy *request*, swapping in the current token if it was authenticated."""
        headers = httpx.Headers(request.headers)
        if "Authorization" in headers and self._tokens.token is not None:
            headers["Authorization"] = f"{_BEARER_PREFIX}{self._tokens.token}"
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=request.content,
            extensions=request.extensions,
        )
