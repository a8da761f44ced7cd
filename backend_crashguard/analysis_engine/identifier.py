"""
Identifier classification: route a raw string to the user or avatar path.

Pure function, always the first step of an analysis. Nothing here touches the
network or the local store, so a rejected identifier never costs any I/O.
"""

from __future__ import annotations

import re

from backend_crashguard.analysis_engine.models import Identifier, SubjectKind
from backend_crashguard.core.exceptions import InvalidIdentifier

USER_PREFIX = "usr_"
AVATAR_PREFIX = "avtr_"

PREFIX_KINDS = (
    (USER_PREFIX, SubjectKind.USER),
    (AVATAR_PREFIX, SubjectKind.AVATAR),
)

# Body after the prefix: uuid in production, short ids in fixtures
_BODY_RE = re.compile(r"^[A-Za-z0-9-]+$")


def classify_identifier(raw: str | None) -> Identifier:
    """
    Trim and classify a raw identifier.

    Raises InvalidIdentifier if empty or without a recognized prefix
    (usr_ / avtr_) followed by a non-empty [A-Za-z0-9-] body.
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidIdentifier("identifier must be non-empty")
    for prefix, kind in PREFIX_KINDS:
        if value.startswith(prefix):
            body = value[len(prefix):]
            if not body or not _BODY_RE.match(body):
                raise InvalidIdentifier(f"malformed {kind.value} identifier")
            return Identifier(value=value, kind=kind)
    raise InvalidIdentifier("unrecognized identifier prefix")
