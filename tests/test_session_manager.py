"""
Tests for session acquisition and caching (vrchat_api.session.SessionManager).

Login exchange is served by FakeVRChat over httpx.MockTransport.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from backend_crashguard.core.exceptions import AuthenticationError, RateLimited, TransientNetworkError
from backend_crashguard.vrchat_api.session import SessionManager


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def _manager(**kwargs) -> SessionManager:
    return SessionManager("operator@example.com", "s3cret pass", **kwargs)


def test_acquire_logs_in_once_and_reuses(fake_vrchat):
    mgr = _manager()
    with fake_vrchat.client() as client:
        s1 = mgr.acquire(client)
        s2 = mgr.acquire(client)
    assert s1 is s2
    assert s1.token == "auth_1"
    assert fake_vrchat.login_calls == 1
    assert mgr.login_count == 1


def test_token_masked_in_repr(fake_vrchat):
    mgr = _manager()
    with fake_vrchat.client() as client:
        session = mgr.acquire(client)
    assert "auth_1" not in repr(session)
    assert "s3cret" not in repr(mgr)


def test_login_sends_basic_auth(fake_vrchat):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["authorization"] = request.headers.get("authorization")
        return httpx.Response(200, json={}, headers={"Set-Cookie": "auth=tok; Path=/"})

    with httpx.Client(base_url="https://vrchat.test/api/1", transport=httpx.MockTransport(handler)) as client:
        _manager().acquire(client)
    assert seen["authorization"].startswith("Basic ")


def test_invalidate_forces_relogin(fake_vrchat):
    mgr = _manager()
    with fake_vrchat.client() as client:
        s1 = mgr.acquire(client)
        mgr.invalidate()
        s2 = mgr.acquire(client)
    assert s1 is not s2
    assert s1.valid is False
    assert s2.token == "auth_2"
    assert fake_vrchat.login_calls == 2
    assert fake_vrchat.login_cookies == [None, None]


def test_stale_invalidate_keeps_newer_session(fake_vrchat):
    mgr = _manager()
    with fake_vrchat.client() as client:
        old = mgr.acquire(client)
        mgr.invalidate(old)
        new = mgr.acquire(client)
        mgr.invalidate(old)  # late rejection of the old token
        again = mgr.acquire(client)
    assert again is new
    assert fake_vrchat.login_calls == 2


def test_session_expires_after_ttl(fake_vrchat):
    clock = FakeClock()
    mgr = _manager(ttl_sec=60, clock=clock)
    with fake_vrchat.client() as client:
        mgr.acquire(client)
        clock.now += 59
        mgr.acquire(client)
        assert fake_vrchat.login_calls == 1
        clock.now += 2
        mgr.acquire(client)
    assert fake_vrchat.login_calls == 2


def test_concurrent_acquire_single_flight(fake_vrchat):
    """Concurrent callers wait for the first login and reuse its session."""
    fake_vrchat.login_delay_sec = 0.05
    mgr = _manager()
    with fake_vrchat.client() as client:
        with ThreadPoolExecutor(max_workers=8) as pool:
            sessions = list(pool.map(lambda _: mgr.acquire(client), range(8)))
    assert fake_vrchat.login_calls == 1
    assert all(s is sessions[0] for s in sessions)


@pytest.mark.parametrize("status", [401, 403])
def test_login_rejected(fake_vrchat, status):
    fake_vrchat.login_status = status
    mgr = _manager()
    with fake_vrchat.client() as client:
        with pytest.raises(AuthenticationError):
            mgr.acquire(client)


def test_failed_login_not_cached(fake_vrchat):
    fake_vrchat.login_status = 401
    mgr = _manager()
    with fake_vrchat.client() as client:
        with pytest.raises(AuthenticationError):
            mgr.acquire(client)
        fake_vrchat.login_status = 200
        session = mgr.acquire(client)
    assert session.token == "auth_2"
    assert fake_vrchat.login_calls == 2


def test_two_factor_required(fake_vrchat):
    fake_vrchat.login_body = {"requiresTwoFactorAuth": ["totp", "otp"]}
    with fake_vrchat.client() as client:
        with pytest.raises(AuthenticationError, match="two-factor"):
            _manager().acquire(client)


def test_login_without_cookie():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": "usr_me"}))
    with httpx.Client(base_url="https://vrchat.test/api/1", transport=transport) as client:
        with pytest.raises(AuthenticationError, match="no usable token"):
            _manager().acquire(client)


def test_missing_credentials_no_request(fake_vrchat):
    mgr = SessionManager("", "")
    with fake_vrchat.client() as client:
        with pytest.raises(AuthenticationError):
            mgr.acquire(client)
    assert fake_vrchat.login_calls == 0


def test_login_rate_limited(fake_vrchat):
    transport = httpx.MockTransport(lambda request: httpx.Response(429, headers={"Retry-After": "30"}))
    with httpx.Client(base_url="https://vrchat.test/api/1", transport=transport) as client:
        with pytest.raises(RateLimited) as exc:
            _manager().acquire(client)
    assert exc.value.retry_after_sec == 30.0


def test_login_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with httpx.Client(base_url="https://vrchat.test/api/1", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TransientNetworkError):
            _manager().acquire(client)
