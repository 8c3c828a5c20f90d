"""Decoding helpers that turn Helix JSON payloads into domain entities.

This module is private to the ``twitch`` package.  It contains:

- :func:`helix_data`: extract the ``data`` array of a Helix response.
- :func:`make_stream_session`, :func:`make_category`, :func:`make_video`:
  entity factories for single Helix records.
- :func:`parse_helix_timestamp` / :func:`format_helix_timestamp`: RFC 3339
  conversion to and from epoch seconds.
- :func:`resolve_thumbnail_url`: thumbnail template substitution.

A successful response with an unexpected shape raises
:class:`~stream_herald.core.exceptions.NormalizationError`; the Helix
contract is assumed stable, so this is fatal for the call.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import httpx

from stream_herald.core.exceptions import NormalizationError
from stream_herald.twitch.config import DEFAULT_LANGUAGE
from stream_herald.twitch.models import Category, StreamSession, Video

# Live-stream thumbnails use ``{width}`` while video thumbnails use ``%{width}``.
_WIDTH_PLACEHOLDER = re.compile(r"%?\{width\}")
_HEIGHT_PLACEHOLDER = re.compile(r"%?\{height\}")


def helix_data(response: httpx.Response) -> list[dict[str, Any]]:
    """Return the ``data`` array of a Helix JSON response.

    Raises:
        NormalizationError: If the body is not JSON or has no ``data`` list.
    """
    try:
        body = response.json()
    except ValueError as exc:
        raise NormalizationError(
            f"twitch: response from {response.request.url} is not valid JSON"
        ) from exc
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, list):
        raise NormalizationError(
            f"twitch: response from {response.request.url} has no 'data' array",
            raw_item=body if isinstance(body, dict) else None,
        )
    return data


def parse_helix_timestamp(value: str) -> int:
    """Convert a Helix RFC 3339 timestamp (``2024-05-01T18:00:00Z``) to epoch seconds."""
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def format_helix_timestamp(epoch_seconds: int) -> str:
    """Format epoch seconds as the RFC 3339 UTC string Helix expects in queries."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )


def make_stream_session(record: dict[str, Any]) -> StreamSession:
    """Build a :class:`StreamSession` from one ``GET /streams`` record."""
    try:
        return StreamSession(
            id=str(record["id"]),
            category_id=str(record.get("game_id") or ""),
            title=record.get("title", ""),
            kind=record.get("type", ""),
            language=record.get("language") or DEFAULT_LANGUAGE,
            thumbnail_url=record.get("thumbnail_url", ""),
            broadcaster_id=str(record["user_id"]),
            broadcaster_login=record.get("user_login") or record["user_name"],
            started_at=parse_helix_timestamp(record["started_at"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise NormalizationError(
            f"twitch: malformed stream record: {exc!r}", raw_item=record
        ) from exc


def make_category(record: dict[str, Any]) -> Category:
    """Build a :class:`Category` from one ``GET /games`` record."""
    try:
        return Category(id=str(record["id"]), name=record["name"])
    except KeyError as exc:
        raise NormalizationError(
            f"twitch: malformed game record: missing {exc}", raw_item=record
        ) from exc


def make_video(record: dict[str, Any]) -> Video:
    """Build a :class:`Video` from a ``GET /videos`` or ``GET /clips`` record."""
    try:
        return Video(
            id=str(record["id"]),
            url=record["url"],
            title=record.get("title", ""),
            thumbnail_url=record.get("thumbnail_url", ""),
            view_count=int(record.get("view_count") or 0),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise NormalizationError(
            f"twitch: malformed video record: {exc!r}", raw_item=record
        ) from exc


def resolve_thumbnail_url(template: str, width: int, height: int) -> str:
    """Substitute width and height into a thumbnail URL template.

    Both ``{width}``/``{height}`` and ``%{width}``/``%{height}`` spellings are
    replaced, so ``https://x/%{width}x%{height}.jpg`` and
    ``https://x/{width}x{height}.jpg`` resolve to the same URL.
    """
    url = _WIDTH_PLACEHOLDER.sub(str(width), template)
    return _HEIGHT_PLACEHOLDER.sub(str(height), url)
