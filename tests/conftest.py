"""Shared pytest fixtures for Stream Herald tests.

Fixture summary
---------------
helix_client: HelixClient with a pre-issued token and an injected httpx client.
unauthorized_client: HelixClient that has not obtained a token yet.

All HTTP traffic is mocked with respx; no test touches the network.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import httpx
import pytest_asyncio

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set required env vars before any application modules are imported so that
# Settings() does not raise a ValidationError during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "TWITCH_CLIENT_ID": "test-client-id",
    "TWITCH_CLIENT_SECRET": "test-client-secret",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

from stream_herald.config.settings import get_settings  # noqa: E402
from stream_herald.twitch.client import HelixClient  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()

TEST_CLIENT_ID = "test-client-id"
TEST_CLIENT_SECRET = "test-client-secret"
TEST_TOKEN = "test-token"


@pytest_asyncio.fixture
async def helix_client() -> AsyncGenerator[HelixClient, None]:
    """HelixClient that already holds ``TEST_TOKEN``."""
    async with httpx.AsyncClient() as http:
        yield HelixClient(
            TEST_CLIENT_ID,
            TEST_CLIENT_SECRET,
            access_token=TEST_TOKEN,
            http_client=http,
        )


@pytest_asyncio.fixture
async def unauthorized_client() -> AsyncGenerator[HelixClient, None]:
    """HelixClient that must call the token endpoint before its first request."""
    async with httpx.AsyncClient() as http:
        yield HelixClient(TEST_CLIENT_ID, TEST_CLIENT_SECRET, http_client=http)
