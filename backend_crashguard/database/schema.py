"""
Local activity store schema (SQLite).

The store is written by the desktop client, not by this backend. The schema
lives here so tooling and tests can build a compatible file; the analysis
core only ever opens it read-only.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_USER_SNAPSHOTS = """
CREATE TABLE IF NOT EXISTS user_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    display_name TEXT,
    bio TEXT,
    status TEXT,
    status_description TEXT,
    tags_json TEXT,
    captured_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_user_snapshots_user_captured ON user_snapshots(user_id, captured_at);
"""

SCHEMA_LOCATIONS = """
CREATE TABLE IF NOT EXISTS locations (
    location_id TEXT PRIMARY KEY,
    name TEXT,
    description TEXT
);
"""

SCHEMA_LOCATION_VISITS = """
CREATE TABLE IF NOT EXISTS location_visits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    location_id TEXT NOT NULL,
    visited_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_location_visits_user_visited ON location_visits(user_id, visited_at);
"""

ALL_SCHEMAS = (SCHEMA_USER_SNAPSHOTS, SCHEMA_LOCATIONS, SCHEMA_LOCATION_VISITS)


def create_schema(path: str | Path) -> None:
    """Create the three tables if missing. For tooling and fixtures only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        for stmt in ALL_SCHEMAS:
            conn.executescript(stmt)
        conn.commit()
    finally:
        conn.close()
