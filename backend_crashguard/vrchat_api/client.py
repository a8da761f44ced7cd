"""
Remote evidence collector: fetch user / avatar metadata from the VRChat API.

Every read goes through the SessionManager. On 401/403 the session is
invalidated once and the read retried exactly once with a fresh login; a
second rejection surfaces AuthenticationError. 429 fails immediately with
RateLimited (no retry loop here), 404 is NotFound, anything else non-2xx is
TransientNetworkError.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_crashguard.analysis_engine.models import AvatarEvidence, Identifier, UserEvidence
from backend_crashguard.core.exceptions import (
    AuthenticationError,
    NotFound,
    TransientNetworkError,
)
from backend_crashguard.crashguard_logging import get_logger
from backend_crashguard.vrchat_api.http_client import (
    AUTH_REJECTED_STATUSES,
    STATUS_NOT_FOUND,
    json_body,
    raise_if_rate_limited,
    send,
)
from backend_crashguard.vrchat_api.session import AUTH_COOKIE, Session, SessionManager

logger = get_logger(__name__)

USER_PATH = "/users/{id}"
AVATAR_PATH = "/avatars/{id}"


class VRChatClient:
    """Reads one subject per call; the httpx client is owned by the caller."""

    def __init__(
        self,
        sessions: SessionManager,
        http: httpx.Client,
        *,
        rate_limit_backoff_sec: float | None = None,
    ) -> None:
        self._sessions = sessions
        self._http = http
        self._rate_limit_backoff_sec = rate_limit_backoff_sec

    def fetch_user(self, identifier: Identifier) -> UserEvidence:
        data = self._authorized_get(USER_PATH.format(id=identifier.value))
        evidence = UserEvidence.from_api(identifier.value, data)
        logger.debug("remote_user_fetched", subject_id=identifier.value, tags=list(evidence.system_tags))
        return evidence

    def fetch_avatar(self, identifier: Identifier) -> AvatarEvidence:
        data = self._authorized_get(AVATAR_PATH.format(id=identifier.value))
        evidence = AvatarEvidence.from_api(identifier.value, data)
        logger.debug("remote_avatar_fetched", subject_id=identifier.value, author_id=evidence.author_id)
        return evidence

    def fetch(self, identifier: Identifier) -> UserEvidence | AvatarEvidence:
        """Dispatch on identifier kind."""
        if identifier.is_user:
            return self.fetch_user(identifier)
        return self.fetch_avatar(identifier)

    def _get(self, path: str, session: Session) -> httpx.Response:
        # Explicit Cookie header wins over anything left in the client's jar
        return send(self._http, "GET", path, headers={"Cookie": f"{AUTH_COOKIE}={session.token}"})

    def _authorized_get(self, path: str) -> dict[str, Any]:
        session = self._sessions.acquire(self._http)
        response = self._get(path, session)

        if response.status_code in AUTH_REJECTED_STATUSES:
            logger.info("remote_session_rejected", path=path, status=response.status_code)
            self._sessions.invalidate(session)
            session = self._sessions.acquire(self._http)
            response = self._get(path, session)
            if response.status_code in AUTH_REJECTED_STATUSES:
                self._sessions.invalidate(session)
                logger.warning("remote_session_rejected_after_refresh", path=path, status=response.status_code)
                raise AuthenticationError("session rejected after refresh")

        raise_if_rate_limited(response, self._rate_limit_backoff_sec)
        if response.status_code == STATUS_NOT_FOUND:
            raise NotFound("subject not found")
        if response.status_code >= 400:
            logger.warning("remote_fetch_failed", path=path, status=response.status_code)
            raise TransientNetworkError(f"remote returned status {response.status_code}")
        return json_body(response)
