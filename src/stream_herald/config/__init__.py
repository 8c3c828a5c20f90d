"""Configuration package for Stream Herald.

Re-exports the settings symbols so that callers can write::

    from stream_herald.config import get_settings
"""

from __future__ import annotations

from stream_herald.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
