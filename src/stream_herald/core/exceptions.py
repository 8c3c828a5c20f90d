"""Application-wide exception hierarchy for Stream Herald.

All custom exceptions subclass ``StreamHeraldError``, enabling consistent
error handling and structured logging across the application.

Hierarchy::

    StreamHeraldError
    ├── HttpFailure           (status_code: int | None, body: str)
    ├── NotAuthorized         (status_code: int, response)
    └── NormalizationError    (raw_item: dict | None)

A 404 from the platform is never an exception: the client turns it into an
absent or empty result.
"""

from __future__ import annotations

from typing import Any

import httpx


class StreamHeraldError(Exception):
    """Base class for all Stream Herald exceptions.

    Callers such as the polling loop can catch the entire hierarchy with a
    single ``except`` clause and skip the current poll cycle.
    """


# ---------------------------------------------------------------------------
# HTTP exceptions
# ---------------------------------------------------------------------------


class HttpFailure(StreamHeraldError):
    """Raised when a platform request fails in a way that is not recovered.

    Covers non-2xx responses outside the 401/404/429 special cases, a retry
    attempt that is itself unsuccessful, and transport-level errors
    (timeouts, connection resets). For transport errors ``status_code`` is
    ``None`` and the original ``httpx`` exception is chained.

    Args:
        message: Human-readable description of the failure.
        status_code: HTTP status code, or ``None`` for transport errors.
        body: Response body text (empty for transport errors).
        url: Request URL, for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.url = url

    @classmethod
    def from_response(cls, response: httpx.Response) -> HttpFailure:
        """Build an ``HttpFailure`` embedding the status code and body of *response*."""
        url = str(response.request.url)
        return cls(
            f"HTTP {response.status_code} from {url}: {response.text}",
            status_code=response.status_code,
            body=response.text,
            url=url,
        )


class NotAuthorized(StreamHeraldError):
    """Raised when the token endpoint rejects the client credentials.

    This is fatal at startup: the configured client id or secret is wrong
    or has been revoked. The response is kept for diagnostics.

    Args:
        response: The 4xx response returned by the token endpoint.
    """

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(
            f"Client credentials rejected: HTTP {response.status_code}: {response.text}"
        )
        self.response = response
        self.status_code = response.status_code
        self.body = response.text


# ---------------------------------------------------------------------------
# Data-processing exceptions
# ---------------------------------------------------------------------------


class NormalizationError(StreamHeraldError):
    """Raised when a successful platform payload cannot be decoded.

    Args:
        message: Description of the decoding failure.
        raw_item: The raw dict that could not be decoded (for debugging).
    """

    def __init__(
        self,
        message: str,
        raw_item: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.raw_item = raw_item
