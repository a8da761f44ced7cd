"""
HTTP plumbing shared by the session manager and the remote collector.

One httpx.Client per analysis call (closed by the caller's `with` block), a
fixed timeout on every request, and translation of transport failures and
429 responses into the error taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_crashguard.core.exceptions import RateLimited, TransientNetworkError
from backend_crashguard.crashguard_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0
DEFAULT_RATE_LIMIT_BACKOFF_SEC = 60.0

STATUS_RATE_LIMITED = 429
STATUS_NOT_FOUND = 404
AUTH_REJECTED_STATUSES = (401, 403)


def build_http_client(
    base_url: str,
    user_agent: str,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Client with base URL, UA header and timeout. Caller owns and closes it."""
    return httpx.Client(
        base_url=base_url,
        headers={"User-Agent": user_agent, "Accept": "application/json"},
        timeout=httpx.Timeout(timeout_sec),
        transport=transport,
    )


def parse_retry_after(response: httpx.Response, default: float | None) -> float | None:
    """Retry-After in seconds (numeric form only); default when absent or malformed."""
    raw = (response.headers.get("Retry-After") or "").strip()
    if not raw:
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


def send(client: httpx.Client, method: str, path: str, **kwargs: Any) -> httpx.Response:
    """
    Issue one request. Timeouts and transport errors become TransientNetworkError.
    No retries here; callers decide.
    """
    try:
        return client.request(method, path, **kwargs)
    except httpx.TimeoutException as e:
        logger.warning("remote_request_timeout", path=path, error=type(e).__name__)
        raise TransientNetworkError("remote request timed out") from e
    except httpx.TransportError as e:
        logger.warning("remote_request_failed", path=path, error=type(e).__name__)
        raise TransientNetworkError("remote connection failed") from e


def raise_if_rate_limited(response: httpx.Response, default_backoff: float | None) -> None:
    if response.status_code == STATUS_RATE_LIMITED:
        retry_after = parse_retry_after(response, default_backoff)
        logger.warning(
            "remote_rate_limited",
            path=response.request.url.path,
            retry_after_sec=retry_after,
        )
        raise RateLimited("remote rate limit exceeded", retry_after_sec=retry_after)


def json_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; anything else is TransientNetworkError."""
    try:
        data = response.json()
    except ValueError as e:
        raise TransientNetworkError("remote returned malformed JSON") from e
    if not isinstance(data, dict):
        raise TransientNetworkError("remote returned unexpected JSON shape")
    return data
