"""
Domain models for the analysis engine.

Identifier, Evidence records (user, avatar, local activity), Indicator and
Verdict. Evidence and Identifier are frozen: collectors produce them once and
the heuristic engine only reads them. Verdict is the sole output of analyze().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SubjectKind(str, Enum):
    USER = "user"
    AVATAR = "avatar"


class IndicatorSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class Classification(str, Enum):
    CLEAN = "clean"
    CLIENT_CRASH_SUSPECT = "client-crash-suspect"
    AVATAR_CRASH_SUSPECT = "avatar-crash-suspect"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Identifier:
    """Classified subject identifier (usr_… or avtr_…)."""

    value: str
    kind: SubjectKind

    @property
    def is_user(self) -> bool:
        return self.kind is SubjectKind.USER

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UserEvidence:
    """Normalized user profile from the remote service."""

    user_id: str
    display_name: str = ""
    bio: str = ""
    status: str = ""
    status_description: str = ""
    system_tags: tuple[str, ...] = ()
    last_login: str | None = None
    date_joined: str | None = None

    @classmethod
    def from_api(cls, user_id: str, data: dict[str, Any]) -> "UserEvidence":
        """Build from a GET /users/{id} JSON body; missing fields become empty."""
        return cls(
            user_id=str(data.get("id") or user_id),
            display_name=str(data.get("displayName") or ""),
            bio=str(data.get("bio") or ""),
            status=str(data.get("status") or ""),
            status_description=str(data.get("statusDescription") or ""),
            system_tags=tuple(str(t) for t in (data.get("tags") or []) if t),
            last_login=data.get("last_login") or None,
            date_joined=data.get("date_joined") or None,
        )


@dataclass(frozen=True)
class AvatarEvidence:
    """Normalized avatar metadata from the remote service."""

    avatar_id: str
    name: str = ""
    description: str = ""
    author_id: str = ""
    author_name: str = ""
    tags: tuple[str, ...] = ()
    version: int | None = None
    release_status: str = ""

    @classmethod
    def from_api(cls, avatar_id: str, data: dict[str, Any]) -> "AvatarEvidence":
        """Build from a GET /avatars/{id} JSON body; missing fields become empty."""
        version = data.get("version")
        try:
            version = int(version) if version is not None else None
        except (TypeError, ValueError):
            version = None
        return cls(
            avatar_id=str(data.get("id") or avatar_id),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            author_id=str(data.get("authorId") or ""),
            author_name=str(data.get("authorName") or ""),
            tags=tuple(str(t) for t in (data.get("tags") or []) if t),
            version=version,
            release_status=str(data.get("releaseStatus") or ""),
        )


@dataclass(frozen=True)
class LocationVisit:
    """One historical location visit joined with the location's metadata."""

    location_id: str
    name: str
    description: str
    visited_at: int
    """Unix timestamp (seconds)."""


@dataclass(frozen=True)
class ProfileSnapshot:
    """Most recent cached profile row written by the desktop client."""

    user_id: str
    display_name: str = ""
    bio: str = ""
    status: str = ""
    status_description: str = ""
    tags: tuple[str, ...] = ()
    captured_at: int | None = None


@dataclass(frozen=True)
class LocalActivityEvidence:
    """Local history for one user: newest-first visits plus an optional snapshot."""

    user_id: str
    recent_location_visits: tuple[LocationVisit, ...] = ()
    snapshot_profile: ProfileSnapshot | None = None
    visits_last_24h: int = 0
    """Visit count over the whole log for the 24 hours before the analysis instant."""


@dataclass(frozen=True)
class Indicator:
    """Single matched suspicion signal, tagged with its source."""

    text: str
    source: IndicatorSource
    rule_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "source": self.source.value, "rule_name": self.rule_name}


@dataclass
class Verdict:
    """
    Final classification for one analysis request.

    classification is clean iff indicators is empty; risk_tier depends only on
    the indicator count. degraded is True when exactly one source failed.
    """

    subject_id: str
    classification: Classification
    risk_tier: RiskTier
    indicators: list[Indicator]
    rationale: str
    produced_at: datetime
    degraded: bool = False
    failed_sources: list[IndicatorSource] = field(default_factory=list)

    @property
    def indicator_texts(self) -> list[str]:
        return [i.text for i in self.indicators]

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "classification": self.classification.value,
            "risk_tier": self.risk_tier.value,
            "indicators": [i.to_dict() for i in self.indicators],
            "rationale": self.rationale,
            "produced_at": self.produced_at.isoformat(),
            "degraded": self.degraded,
            "failed_sources": [s.value for s in self.failed_sources],
        }
