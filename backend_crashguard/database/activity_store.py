"""
Local evidence collector: read a user's history from the activity store.

The SQLite file is opened read-only (URI mode=ro) for the duration of one
fetch and closed on every exit path. No writer path exists here; concurrent
readers never block each other. Missing, locked, or malformed stores raise
StoreUnavailable; a user with no rows raises NoActivity.
"""

from __future__ import annotations

import json
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from backend_crashguard.analysis_engine.heuristics import CHURN_WINDOW_SEC
from backend_crashguard.analysis_engine.models import (
    Identifier,
    LocalActivityEvidence,
    LocationVisit,
    ProfileSnapshot,
)
from backend_crashguard.core.exceptions import NoActivity, StoreUnavailable
from backend_crashguard.crashguard_logging import get_logger

logger = get_logger(__name__)

MAX_VISIT_ROWS = 50
DEFAULT_STORE_TIMEOUT_SEC = 5.0

SQL_LATEST_SNAPSHOT = """
    SELECT user_id, display_name, bio, status, status_description, tags_json, captured_at
    FROM user_snapshots WHERE user_id = ?
    ORDER BY captured_at DESC, id DESC LIMIT 1
"""

SQL_RECENT_VISITS = """
    SELECT v.location_id, v.visited_at, l.name, l.description
    FROM location_visits v
    LEFT JOIN locations l ON l.location_id = v.location_id
    WHERE v.user_id = ?
    ORDER BY v.visited_at DESC, v.id DESC LIMIT ?
"""

SQL_VISITS_IN_WINDOW = """
    SELECT COUNT(*) AS n FROM location_visits
    WHERE user_id = ? AND visited_at > ? AND visited_at <= ?
"""


def _parse_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    try:
        data = json.loads(raw)
    except ValueError:
        return ()
    if not isinstance(data, list):
        return ()
    return tuple(str(t) for t in data if t)


class ActivityStore:
    """Read-only view of the desktop client's activity database."""

    def __init__(
        self,
        path: str | Path,
        *,
        visit_limit: int = MAX_VISIT_ROWS,
        timeout_sec: float = DEFAULT_STORE_TIMEOUT_SEC,
    ) -> None:
        self._path = Path(path)
        self._visit_limit = max(1, min(int(visit_limit), MAX_VISIT_ROWS))
        self._timeout_sec = timeout_sec

    @property
    def path(self) -> Path:
        return self._path

    @property
    def visit_limit(self) -> int:
        return self._visit_limit

    def _connect(self) -> sqlite3.Connection:
        if not self._path.is_file():
            raise StoreUnavailable("local store not found")
        uri = f"{self._path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True, timeout=self._timeout_sec)
        except sqlite3.Error as e:
            raise StoreUnavailable("local store could not be opened") from e
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        conn = self._connect()
        try:
            yield conn.cursor()
        except sqlite3.Error as e:
            raise StoreUnavailable("local store query failed") from e
        finally:
            conn.close()

    def fetch_activity(self, identifier: Identifier, now: int | None = None) -> LocalActivityEvidence:
        """
        Latest snapshot, up to visit_limit newest visits (joined with location
        metadata), and the visit count for the 24 hours before now.

        Raises StoreUnavailable or NoActivity.
        """
        user_id = identifier.value
        now_ts = int(now if now is not None else time.time())
        try:
            with self._cursor() as cur:
                cur.execute(SQL_LATEST_SNAPSHOT, (user_id,))
                snap_row = cur.fetchone()
                cur.execute(SQL_RECENT_VISITS, (user_id, self._visit_limit))
                visit_rows = cur.fetchall()
                cur.execute(SQL_VISITS_IN_WINDOW, (user_id, now_ts - CHURN_WINDOW_SEC, now_ts))
                window_count = int(cur.fetchone()["n"] or 0)
        except StoreUnavailable as e:
            logger.warning("local_store_unavailable", subject_id=user_id, path=str(self._path), error=str(e))
            raise

        if snap_row is None and not visit_rows:
            logger.info("local_no_activity", subject_id=user_id)
            raise NoActivity("no local activity for subject")

        snapshot = None
        if snap_row is not None:
            snapshot = ProfileSnapshot(
                user_id=snap_row["user_id"],
                display_name=snap_row["display_name"] or "",
                bio=snap_row["bio"] or "",
                status=snap_row["status"] or "",
                status_description=snap_row["status_description"] or "",
                tags=_parse_tags(snap_row["tags_json"]),
                captured_at=snap_row["captured_at"],
            )
        visits = tuple(
            LocationVisit(
                location_id=row["location_id"],
                name=row["name"] or "",
                description=row["description"] or "",
                visited_at=int(row["visited_at"]),
            )
            for row in visit_rows
        )
        logger.debug(
            "local_activity_fetched",
            subject_id=user_id,
            visits=len(visits),
            visits_last_24h=window_count,
            has_snapshot=snapshot is not None,
        )
        return LocalActivityEvidence(
            user_id=user_id,
            recent_location_visits=visits,
            snapshot_profile=snapshot,
            visits_last_24h=window_count,
        )
