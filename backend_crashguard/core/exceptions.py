"""
Application-level exceptions.

Closed error taxonomy for the analysis core. Every error carries a stable
`kind` code so callers branch on kind, never on message text. Messages are
short and never include tokens, credentials, or raw response bodies.

Abort-level (propagate out of analyze): InvalidIdentifier, RateLimited,
AllSourcesUnavailable. Everything else is a per-source outcome that the
pipeline converts into a "source failed" signal.
"""

from __future__ import annotations


class CrashGuardError(Exception):
    """Base class for all CrashGuard errors."""

    kind = "crashguard_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}


class InvalidIdentifier(CrashGuardError):
    """Identifier is empty or has no recognized prefix. Raised before any I/O."""

    kind = "invalid_identifier"


class AuthenticationError(CrashGuardError):
    """Login rejected, no usable token, or session rejected after one retry."""

    kind = "authentication_error"


class RateLimited(CrashGuardError):
    """Remote quota exceeded. The core does not retry; backoff is a caller concern."""

    kind = "rate_limited"

    def __init__(self, message: str = "", retry_after_sec: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_sec = retry_after_sec

    def to_dict(self) -> dict[str, str]:
        out = super().to_dict()
        if self.retry_after_sec is not None:
            out["retry_after_sec"] = str(self.retry_after_sec)
        return out


class NotFound(CrashGuardError):
    """Subject does not exist on the remote service."""

    kind = "not_found"


class TransientNetworkError(CrashGuardError):
    """Timeout, connection failure, or unexpected remote response."""

    kind = "transient_network_error"


class StoreUnavailable(CrashGuardError):
    """Local activity store missing, locked, or unreadable."""

    kind = "store_unavailable"


class NoActivity(CrashGuardError):
    """Local store has zero rows for the subject. Non-fatal empty result."""

    kind = "no_activity"


class AllSourcesUnavailable(CrashGuardError):
    """Both evidence sources failed; no Verdict can be produced."""

    kind = "all_sources_unavailable"
