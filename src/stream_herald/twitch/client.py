"""Typed, retry-transparent client for the Twitch Helix API.

:class:`HelixClient` is the public surface used by the polling loop.  Each
operation builds one Helix request, hands it to the
:class:`~stream_herald.twitch._http.RequestExecutor` together with a decoding
function, and returns domain entities from :mod:`stream_herald.twitch.models`.

Operations are coroutines and can be composed freely, e.g. fetching the
category and the archive video of a session concurrently::

    async with await create_helix_client() as client:
        sessions = await client.get_streams_by_login(["shroud"])
        category, video = await asyncio.gather(
            client.get_category(sessions[0]),
            client.get_video_by_stream(sessions[0]),
        )

"Not found" is never an error: a 404 or an empty ``data`` array yields
``None`` (single entities) or ``[]`` (sequences).  Only genuine failures
propagate, as :class:`~stream_herald.core.exceptions.HttpFailure`,
:class:`~stream_herald.core.exceptions.NotAuthorized` or
:class:`~stream_herald.core.exceptions.NormalizationError`.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from types import TracebackType
from typing import Any

import httpx

from stream_herald.config.settings import Settings, get_settings
from stream_herald.core.bounded_cache import BoundedCache
from stream_herald.core.exceptions import NormalizationError, StreamHeraldError
from stream_herald.twitch._auth import TokenManager
from stream_herald.twitch._http import RequestExecutor
from stream_herald.twitch._records import (
    format_helix_timestamp,
    helix_data,
    make_category,
    make_stream_session,
    make_video,
    parse_helix_timestamp,
    resolve_thumbnail_url,
)
from stream_herald.twitch.config import (
    ARCHIVE_LOOKUP_PAGE_SIZE,
    ARCHIVE_VIDEO_KIND,
    CATEGORY_CACHE_SIZE,
    CLIPS_PAGE_SIZE,
    DEFAULT_THUMBNAIL_HEIGHT,
    DEFAULT_THUMBNAIL_WIDTH,
    DEFAULT_TOP_CLIPS,
    HEALTH_CHECK_RESOURCE,
    HTTP_TIMEOUT_SECONDS,
    TWITCH_API_BASE,
    USER_AGENT,
)
from stream_herald.twitch.models import NO_CATEGORY, Category, StreamSession, Video

logger = logging.getLogger(__name__)

QueryParams = Sequence[tuple[str, str | int]]


class HelixClient:
    """Authenticated, rate-aware access to the Twitch Helix API.

    The bearer token, the category cache and the set of logins already
    warned about missing archives are shared by all concurrent calls on one
    instance.

    Args:
        client_id: Twitch application Client ID.
        client_secret: Twitch application client secret.
        access_token: Optional pre-issued app access token.  Without one the
            token is obtained before the first request.
        http_client: Optional injected :class:`httpx.AsyncClient`.  When
            omitted the client creates (and later closes) its own.
        timeout: Timeout for a client-owned ``httpx.AsyncClient``.
    """

    platform_name: str = "twitch"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        access_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
        self._tokens = TokenManager(
            self._http, client_id, client_secret, access_token=access_token
        )
        self._executor = RequestExecutor(self._http, self._tokens)
        self._categories: BoundedCache[str, Category] = BoundedCache(CATEGORY_CACHE_SIZE)
        self._warned_missing_archive: set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def authorize(self) -> None:
        """Obtain a fresh app access token (see :meth:`TokenManager.authorize`)."""
        await self._tokens.authorize()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> HelixClient:
        if self._tokens.token is None:
            await self._tokens.authorize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def get_streams_by_login(self, logins: Iterable[str]) -> list[StreamSession]:
        """Return the live sessions of the given broadcasters in one request.

        Broadcasters that are offline are simply absent from the result.
        An empty *logins* returns ``[]`` without a request.

        Args:
            logins: Broadcaster login names; sent as repeated ``user_login``.

        Returns:
            One :class:`StreamSession` per live broadcaster, in Helix order.
        """
        params = [("user_login", login) for login in logins]
        if not params:
            # A bare GET /streams lists the most-viewed streams of the whole site.
            return []
        request = await self._get("streams", params)

        def handle(response: httpx.Response) -> list[StreamSession]:
            return [make_stream_session(record) for record in helix_data(response)]

        return await self._executor.execute(request, handle) or []

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def get_category(self, stream: StreamSession) -> Category | None:
        """Return the category of *stream*, served from cache when possible.

        Returns:
            :data:`NO_CATEGORY` when the session has no category or Helix
            knows no such game, the :class:`Category` otherwise, or ``None``
            on a 404.
        """
        category_id = stream.category_id
        if not category_id:
            return NO_CATEGORY

        cached = self._categories.get(category_id)
        if cached is not None:
            return cached

        request = await self._get("games", [("id", category_id)])

        def handle(response: httpx.Response) -> Category:
            data = helix_data(response)
            if not data:
                return NO_CATEGORY
            category = make_category(data[0])
            return self._categories.get_or_insert(category_id, lambda: category)

        return await self._executor.execute(request, handle)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_id(self, login: str) -> str | None:
        """Return the Helix user id for *login*, or ``None`` for an unknown user."""
        request = await self._get("users", [("login", login)])

        def handle(response: httpx.Response) -> str | None:
            data = helix_data(response)
            if not data:
                return None
            return str(data[0]["id"])

        return await self._executor.execute(request, handle)

    # ------------------------------------------------------------------
    # Videos and clips
    # ------------------------------------------------------------------

    async def get_video_by_id(
        self,
        video_id: str,
        kind: str | None = ARCHIVE_VIDEO_KIND,
    ) -> Video | None:
        """Return one video by id, optionally filtered by video type.

        Args:
            video_id: Helix video id.
            kind: Helix video ``type`` filter; ``None`` disables filtering.
        """
        params: list[tuple[str, str | int]] = [("id", video_id)]
        if kind is not None:
            params.append(("type", kind))
        request = await self._get("videos", params)

        def handle(response: httpx.Response) -> Video | None:
            data = helix_data(response)
            return make_video(data[0]) if data else None

        return await self._executor.execute(request, handle)

    async def get_video_by_stream(self, stream: StreamSession) -> Video | None:
        """Return the archive recording of the broadcast *stream* belongs to.

        Helix cannot look up a video by stream, and may ignore the ``type``
        filter, so the most recent archives are fetched and the first one
        that is an archive created at or after the session start is picked.
        When none qualifies a warning is logged once per broadcaster.
        """
        request = await self._get(
            "videos",
            [
                ("type", ARCHIVE_VIDEO_KIND),
                ("first", ARCHIVE_LOOKUP_PAGE_SIZE),
                ("user_id", stream.broadcaster_id),
            ],
        )

        def handle(response: httpx.Response) -> Video | None:
            for record in helix_data(response):
                if record.get("type") != ARCHIVE_VIDEO_KIND:
                    continue
                try:
                    created_at = parse_helix_timestamp(record["created_at"])
                except (KeyError, TypeError, ValueError) as exc:
                    raise NormalizationError(
                        f"twitch: malformed video record: {exc!r}", raw_item=record
                    ) from exc
                if created_at >= stream.started_at:
                    return make_video(record)
            if stream.broadcaster_login not in self._warned_missing_archive:
                self._warned_missing_archive.add(stream.broadcaster_login)
                logger.warning(
                    "twitch: could not find archive for current stream by %s. "
                    "Are past broadcasts enabled?",
                    stream.broadcaster_login,
                )
            return None

        return await self._executor.execute(request, handle)

    async def get_top_clips(
        self,
        user_id: str,
        started_at: int,
        limit: int = DEFAULT_TOP_CLIPS,
    ) -> list[Video]:
        """Return up to *limit* clips created since *started_at*, most viewed first.

        Helix applies ``first`` before ``started_at``, so a combined request
        silently drops clips.  The maximum page is requested instead and
        truncated here, preserving Helix ordering.

        Args:
            user_id: Helix broadcaster id.
            started_at: Lower bound on clip creation time, in epoch seconds.
            limit: Maximum number of clips returned.
        """
        request = await self._get(
            "clips",
            [
                ("broadcaster_id", user_id),
                ("first", CLIPS_PAGE_SIZE),
                ("started_at", format_helix_timestamp(started_at)),
            ],
        )

        def handle(response: httpx.Response) -> list[Video]:
            return [make_video(record) for record in helix_data(response)[:limit]]

        return await self._executor.execute(request, handle) or []

    # ------------------------------------------------------------------
    # Thumbnails
    # ------------------------------------------------------------------

    async def get_thumbnail(
        self,
        source: str | StreamSession | Video,
        width: int = DEFAULT_THUMBNAIL_WIDTH,
        height: int = DEFAULT_THUMBNAIL_HEIGHT,
    ) -> io.BytesIO | None:
        """Download a thumbnail image into memory.

        A missing thumbnail is never fatal: every failure, including a 404,
        is logged and reported as ``None``.  CDN redirects are followed.

        Args:
            source: A thumbnail URL template, or an entity carrying one.
            width: Width substituted into the template.
            height: Height substituted into the template.

        Returns:
            The image bytes, or ``None`` if the download failed.
        """
        template = source if isinstance(source, str) else source.thumbnail_url
        try:
            url = resolve_thumbnail_url(template, width, height)
            # Thumbnails are CDN-cached; a fresh query string forces a new image.
            request = self._http.build_request(
                "GET", url, params={"v": int(time.time() * 1000)}
            )
            return await self._executor.execute(
                request,
                lambda response: io.BytesIO(response.content),
                follow_redirects=True,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "twitch: failed to download thumbnail with url '%s': %s",
                template,
                exc,
                exc_info=exc,
            )
            return None

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Verify that the Helix API is reachable and the credentials are valid.

        Calls ``GET /streams?first=1``.  Never raises.

        Returns:
            Dict with ``status`` (``"ok"`` | ``"down"``), ``platform``,
            ``checked_at`` and ``detail``.
        """
        base: dict[str, Any] = {
            "platform": self.platform_name,
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            request = await self._get(HEALTH_CHECK_RESOURCE, [("first", 1)])
            count = await self._executor.execute(
                request, lambda response: len(helix_data(response))
            )
        except StreamHeraldError as exc:
            return {**base, "status": "down", "detail": str(exc)}

        if count is None:
            return {**base, "status": "down", "detail": "Helix returned 404"}
        return {
            **base,
            "status": "ok",
            "detail": f"Helix API reachable; streams_returned={count}",
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get(self, resource: str, params: QueryParams) -> httpx.Request:
        """Build an authenticated Helix GET request for *resource*."""
        token = await self._tokens.current()
        return self._http.build_request(
            "GET",
            f"{TWITCH_API_BASE}/{resource}",
            params=list(params),
            headers={
                "Client-Id": self._tokens.client_id,
                "Authorization": f"Bearer {token}",
            },
        )


async def create_helix_client(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> HelixClient:
    """Build a :class:`HelixClient` from settings and obtain its first token.

    Args:
        settings: Settings to read credentials and timeout from; defaults to
            :func:`~stream_herald.config.settings.get_settings`.
        http_client: Optional injected :class:`httpx.AsyncClient`.

    Returns:
        An authorized client.

    Raises:
        NotAuthorized: If Twitch rejects the configured credentials.
        HttpFailure: If the token endpoint is unavailable.
    """
    settings = settings or get_settings()
    client = HelixClient(
        settings.twitch_client_id,
        settings.twitch_client_secret,
        http_client=http_client,
        timeout=settings.http_timeout_seconds,
    )
    try:
        await client.authorize()
    except StreamHeraldError:
        await client.close()
        raise
    return client
