"""
Pytest fixtures for CrashGuard tests.

The VRChat API is faked with httpx.MockTransport (FakeVRChat records logins
and reads). The local activity store is a temporary SQLite file built with
the real schema.
"""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from pathlib import Path

import httpx
import pytest

from backend_crashguard.analysis_engine.models import Identifier, SubjectKind
from backend_crashguard.config.settings import Settings
from backend_crashguard.database.schema import create_schema

API_URL = "https://vrchat.test/api/1"
NOW_TS = 1_760_000_000


class FakeVRChat:
    """
    Minimal VRChat API double.

    Logins issue tokens auth_1, auth_2, ... Tokens in `rejected_tokens` get 401
    on reads. `scripted[path]` responses are served before the default
    user/avatar bodies.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.avatars: dict[str, dict] = {}
        self.scripted: dict[str, list[httpx.Response]] = {}
        self.rejected_tokens: set[str] = set()
        self.login_status = 200
        self.login_body: dict = {"id": "usr_operator", "displayName": "operator"}
        self.login_delay_sec = 0.0
        self.login_calls = 0
        self.login_cookies: list[str | None] = []
        self.read_calls = 0
        self.read_tokens: list[str] = []
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/1")
        if path == "/auth/user":
            return self._login(request)
        with self._lock:
            self.read_calls += 1
        cookie = request.headers.get("cookie", "")
        token = cookie.split("auth=", 1)[1].split(";", 1)[0] if "auth=" in cookie else ""
        self.read_tokens.append(token)
        if not token or token in self.rejected_tokens:
            return httpx.Response(401, json={"error": {"message": "Missing Credentials"}})
        queue = self.scripted.get(path)
        if queue:
            return queue.pop(0)
        kind, _, subject_id = path.strip("/").partition("/")
        table = self.users if kind == "users" else self.avatars
        if subject_id in table:
            return httpx.Response(200, json=table[subject_id])
        return httpx.Response(404, json={"error": {"message": "not found"}})

    def _login(self, request: httpx.Request) -> httpx.Response:
        if self.login_delay_sec:
            time.sleep(self.login_delay_sec)
        with self._lock:
            self.login_calls += 1
            n = self.login_calls
            self.login_cookies.append(request.headers.get("cookie"))
        if "authorization" not in request.headers:
            return httpx.Response(401)
        if "auth=" in (request.headers.get("cookie") or ""):
            # Stale session cookie on a login is rejected
            return httpx.Response(401)
        if self.login_status != 200:
            return httpx.Response(self.login_status)
        return httpx.Response(
            200,
            json=self.login_body,
            headers={"Set-Cookie": f"auth=auth_{n}; Path=/"},
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(base_url=API_URL, transport=self.transport())


class ActivityDb:
    """Writes fixture rows into a temporary activity store."""

    def __init__(self, path: Path) -> None:
        self.path = path
        create_schema(path)

    def _execute(self, sql: str, params: tuple) -> None:
        conn = sqlite3.connect(str(self.path))
        try:
            conn.execute(sql, params)
            conn.commit()
        finally:
            conn.close()

    def add_location(self, location_id: str, name: str, description: str = "") -> None:
        self._execute(
            "INSERT OR REPLACE INTO locations (location_id, name, description) VALUES (?, ?, ?)",
            (location_id, name, description),
        )

    def add_visit(self, user_id: str, location_id: str, visited_at: int) -> None:
        self._execute(
            "INSERT INTO location_visits (user_id, location_id, visited_at) VALUES (?, ?, ?)",
            (user_id, location_id, visited_at),
        )

    def add_visits(self, user_id: str, location_id: str, timestamps: list[int]) -> None:
        conn = sqlite3.connect(str(self.path))
        try:
            conn.executemany(
                "INSERT INTO location_visits (user_id, location_id, visited_at) VALUES (?, ?, ?)",
                [(user_id, location_id, ts) for ts in timestamps],
            )
            conn.commit()
        finally:
            conn.close()

    def add_snapshot(self, user_id: str, captured_at: int, **fields: object) -> None:
        self._execute(
            """
            INSERT INTO user_snapshots
                (user_id, display_name, bio, status, status_description, tags_json, captured_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                fields.get("display_name", ""),
                fields.get("bio", ""),
                fields.get("status", ""),
                fields.get("status_description", ""),
                json.dumps(fields.get("tags", [])),
                captured_at,
            ),
        )


@pytest.fixture
def fake_vrchat() -> FakeVRChat:
    return FakeVRChat()


@pytest.fixture
def activity_db(tmp_path) -> ActivityDb:
    return ActivityDb(tmp_path / "activity.db")


@pytest.fixture
def settings(activity_db) -> Settings:
    return Settings(
        username="operator@example.com",
        password="s3cret pass",
        api_url=API_URL,
        store_path=activity_db.path,
        remote_timeout_sec=2.0,
    )


@pytest.fixture
def user_id() -> Identifier:
    return Identifier(value="usr_abc123", kind=SubjectKind.USER)


@pytest.fixture
def avatar_id() -> Identifier:
    return Identifier(value="avtr_xyz789", kind=SubjectKind.AVATAR)
