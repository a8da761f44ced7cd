"""
Session manager: acquire and cache the VRChat auth session.

The cached Session is the only shared mutable state in the core. Acquisition
is single-flight: a lock serializes acquire(), so the first caller performs
the login and concurrent callers wait and reuse its result. A failed login is
never cached; the next caller retries. The raw token stays inside this
package and is masked in repr and logs.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import quote

import httpx

from backend_crashguard.core.exceptions import AuthenticationError, TransientNetworkError
from backend_crashguard.crashguard_logging import get_logger
from backend_crashguard.vrchat_api.http_client import (
    AUTH_REJECTED_STATUSES,
    json_body,
    raise_if_rate_limited,
    send,
)

logger = get_logger(__name__)

LOGIN_PATH = "/auth/user"
AUTH_COOKIE = "auth"
DEFAULT_SESSION_TTL_SEC = 3600.0


@dataclass
class Session:
    """Opaque auth token plus validity. Never handed to analyze() callers."""

    token: str = field(repr=False)
    acquired_at: float
    expires_at: float
    valid: bool = True

    def is_usable(self, now: float) -> bool:
        return self.valid and bool(self.token) and now < self.expires_at


class SessionManager:
    """
    Owns the cached session. Collectors call acquire(client) before each
    remote read and invalidate(session) on a 401/403.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        ttl_sec: float = DEFAULT_SESSION_TTL_SEC,
        rate_limit_backoff_sec: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._username = username
        self._password = password
        self._ttl_sec = max(1.0, float(ttl_sec))
        self._rate_limit_backoff_sec = rate_limit_backoff_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._session: Session | None = None
        self.login_count = 0

    def __repr__(self) -> str:
        return f"SessionManager(username={self._username!r}, cached={self._session is not None})"

    @property
    def has_credentials(self) -> bool:
        return bool(self._username and self._password)

    def acquire(self, client: httpx.Client) -> Session:
        """
        Return the cached usable session, or log in and cache a new one.

        Raises AuthenticationError (rejected / 2FA / no token / no credentials),
        RateLimited, or TransientNetworkError. Failures are not cached.
        """
        with self._lock:
            session = self._session
            if session is not None and session.is_usable(self._clock()):
                return session
            self._session = None
            session = self._login(client)
            self._session = session
            return session

    def invalidate(self, session: Session | None = None) -> None:
        """
        Drop the cached session. With a session argument, only drop it if it is
        still the cached one, so a stale rejection cannot discard a newer login.
        """
        with self._lock:
            if session is not None:
                session.valid = False
                if self._session is not session:
                    return
            if self._session is not None:
                self._session.valid = False
            self._session = None
        logger.info("session_invalidated")

    def _login(self, client: httpx.Client) -> Session:
        if not self.has_credentials:
            logger.error("session_login_no_credentials")
            raise AuthenticationError("remote credentials are not configured")

        self.login_count += 1
        # Re-login must not carry a rejected token from the jar
        client.cookies.delete(AUTH_COOKIE)
        # Basic auth with percent-encoded username and password
        auth = (quote(self._username, safe=""), quote(self._password, safe=""))
        response = send(client, "GET", LOGIN_PATH, auth=auth)
        raise_if_rate_limited(response, self._rate_limit_backoff_sec)

        if response.status_code in AUTH_REJECTED_STATUSES:
            logger.warning("session_login_rejected", status=response.status_code)
            raise AuthenticationError("login rejected")
        if response.status_code >= 400:
            logger.warning("session_login_failed", status=response.status_code)
            raise TransientNetworkError(f"login failed with status {response.status_code}")

        try:
            body = json_body(response)
        except TransientNetworkError:
            body = {}
        if body.get("requiresTwoFactorAuth"):
            logger.warning("session_login_two_factor_required")
            raise AuthenticationError("login requires two-factor authentication")

        token = response.cookies.get(AUTH_COOKIE)
        if not token:
            logger.warning("session_login_no_token", status=response.status_code)
            raise AuthenticationError("login returned no usable token")

        now = self._clock()
        logger.info("session_login_ok", login_count=self.login_count, ttl_sec=self._ttl_sec)
        return Session(token=token, acquired_at=now, expires_at=now + self._ttl_sec)
