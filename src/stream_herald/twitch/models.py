"""Domain entities returned by the Twitch client.

All entities are immutable snapshots: the polling loop compares successive
``StreamSession`` observations rather than mutating one in place.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StreamSession:
    """One observation of a live broadcast.

    Attributes:
        id: Helix stream id (changes with every broadcast).
        category_id: Helix game id; empty string when no category is set.
        title: Current stream title.
        kind: Helix stream ``type`` (``"live"`` for a live broadcast).
        language: ISO 639-1 broadcast language.
        thumbnail_url: Thumbnail URL template with ``{width}``/``{height}``.
        broadcaster_id: Helix user id of the broadcaster.
        broadcaster_login: Login name of the broadcaster.
        started_at: Broadcast start time as epoch seconds.
    """

    id: str
    category_id: str
    title: str
    kind: str
    language: str
    thumbnail_url: str
    broadcaster_id: str
    broadcaster_login: str
    started_at: int


@dataclass(frozen=True)
class Category:
    """An activity category (a Helix "game")."""

    id: str
    name: str


@dataclass(frozen=True)
class Video:
    """A recorded broadcast (archive) or a clip.

    Attributes:
        id: Helix video or clip id.
        url: Public URL of the video.
        title: Video title.
        thumbnail_url: Thumbnail URL template; archives use ``%{width}``.
        view_count: View count, ``0`` when Helix omits it.
    """

    id: str
    url: str
    title: str
    thumbnail_url: str
    view_count: int = 0


NO_CATEGORY = Category(id="", name="No Category")
"""Sentinel returned when a stream has no category set."""
