"""Twitch Helix client.

Implemented functionality:
    - Live session lookup for a batch of broadcaster logins.
    - Category lookup with a small FIFO cache.
    - User id, video and clip lookups.
    - Thumbnail download from templated URLs.
    - Transparent token refresh on 401 and a single delayed retry on 429.

The polling loop that diffs successive sessions and the webhook publisher
live outside this package and only consume :class:`HelixClient`.
"""

from stream_herald.twitch.client import HelixClient, create_helix_client
from stream_herald.twitch.models import NO_CATEGORY, Category, StreamSession, Video

__all__ = [
    "NO_CATEGORY",
    "Category",
    "HelixClient",
    "StreamSession",
    "Video",
    "create_helix_client",
]
