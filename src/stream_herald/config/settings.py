"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.
The Twitch client credentials are accessed exclusively through this module;
never call ``os.getenv`` directly elsewhere in the codebase.

Usage::

    from stream_herald.config.settings import get_settings

    settings = get_settings()
    client_id = settings.twitch_client_id
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration backed by environment variables and an optional .env file.

    Fields without defaults are required and must be supplied via the
    environment or a .env file.  The client secret should never be committed
    to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Twitch application credentials
    # ------------------------------------------------------------------

    twitch_client_id: str
    """Client ID of the registered Twitch application, sent as ``Client-Id``."""

    twitch_client_secret: str
    """Client secret exchanged for an app access token (client credentials grant)."""

    # ------------------------------------------------------------------
    # Tracked broadcasters
    # ------------------------------------------------------------------

    twitch_user_logins: list[str] = Field(default_factory=list)
    """Broadcaster logins to watch.  Accepts a JSON list in the environment,
    e.g. ``TWITCH_USER_LOGINS='["shroud", "pokimane"]'``."""

    # ------------------------------------------------------------------
    # HTTP behaviour
    # ------------------------------------------------------------------

    http_timeout_seconds: float = 15.0
    """Timeout applied to every request made by the shared ``httpx.AsyncClient``."""

    thumbnail_width: int = 1920
    """Width substituted into thumbnail URL templates."""

    thumbnail_height: int = 1080
    """Height substituted into thumbnail URL templates."""

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    @field_validator("twitch_user_logins")
    @classmethod
    def _normalize_logins(cls, value: list[str]) -> list[str]:
        # Twitch logins are case-insensitive and always lower-case in Helix payloads.
        return [login.strip().lower() for login in value if login.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings singleton.

    Uses ``functools.lru_cache`` so that Pydantic Settings reads the environment
    and .env file exactly once per process lifetime.  In tests, call
    ``get_settings.cache_clear()`` after patching environment variables.

    Returns:
        Settings: The validated settings object.
    """
    return Settings()  # type: ignore[call-arg]
