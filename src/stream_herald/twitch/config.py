"""Constants for the Twitch Helix client.

Used by :class:`~stream_herald.twitch.client.HelixClient` and its private
helper modules.  The page sizes below are tuned to observed Helix behaviour
and are not incidental: Helix applies ``first`` *before* some filters, so the
client over-fetches and filters locally.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

TWITCH_API_BASE: str = "https://api.twitch.tv/helix"
"""Base URL for the Twitch Helix REST API."""

TWITCH_TOKEN_URL: str = "https://id.twitch.tv/oauth2/token"
"""OAuth 2.0 token endpoint for the Client Credentials grant."""

HEALTH_CHECK_RESOURCE: str = "streams"
"""Helix resource used by the health check (``GET /streams?first=1``)."""

USER_AGENT: str = "StreamHerald/1.0 (twitch-client)"

# ---------------------------------------------------------------------------
# Page sizes
# ---------------------------------------------------------------------------

ARCHIVE_LOOKUP_PAGE_SIZE: int = 5
"""Recent videos fetched when searching for the archive of a live session.

Helix may ignore the ``type`` filter, so several recent videos are checked
client-side instead of trusting ``first=1``.
"""

CLIPS_PAGE_SIZE: int = 100
"""Clips requested per ``GET /clips`` call (Helix maximum).

Helix limits *before* applying ``started_at``, so the maximum page is
requested and truncated locally.
"""

DEFAULT_TOP_CLIPS: int = 5
"""Number of clips returned by ``get_top_clips`` when no limit is given."""

# ---------------------------------------------------------------------------
# Client behaviour
# ---------------------------------------------------------------------------

CATEGORY_CACHE_SIZE: int = 10
"""Capacity of the per-client category cache (FIFO eviction)."""

RATE_LIMIT_FALLBACK_SECONDS: float = 1.0
"""Backoff applied on HTTP 429 when ``Ratelimit-Reset`` is absent or unparseable."""

RATE_LIMIT_RESET_HEADER: str = "Ratelimit-Reset"

HTTP_TIMEOUT_SECONDS: float = 15.0
"""Timeout for a client-owned ``httpx.AsyncClient``."""

DEFAULT_THUMBNAIL_WIDTH: int = 1920
DEFAULT_THUMBNAIL_HEIGHT: int = 1080

DEFAULT_LANGUAGE: str = "en"
"""Language assumed when a stream record carries none."""

ARCHIVE_VIDEO_KIND: str = "archive"
"""Helix video ``type`` for past-broadcast recordings (vs. highlight/upload)."""
