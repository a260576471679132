"""Tests for switchyard.sessions — signed cookie and in-memory backends."""

import pytest

from switchyard.errors import ConfigurationError
from switchyard.http.response import Response
from switchyard.sessions import (
    CookieSessionBackend,
    MemorySessionBackend,
    SessionConfig,
    create_backend,
    get_session,
    session_scope,
)


def _cookie_value(response: Response, name: str) -> str:
    for cookie in response.cookies:
        if cookie.name == name:
            return cookie.value
    raise AssertionError(f"no cookie {name!r}")


class TestSessionScope:
    def test_outside_request(self) -> None:
        with pytest.raises(LookupError):
            get_session()

    def test_scope_binds_and_restores(self) -> None:
        session = {"user": 1}
        with session_scope(session):
            assert get_session() is session
        with pytest.raises(LookupError):
            get_session()


class TestCookieBackend:
    def test_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            CookieSessionBackend(SessionConfig())

    def test_round_trip(self, make_request) -> None:
        backend = CookieSessionBackend(SessionConfig(secret_key="k"))
        response = backend.save(Response(), {"user": 7})
        value = _cookie_value(response, "switchyard_session")
        request = make_request("GET", "/", {"cookie": f"switchyard_session={value}"})
        assert backend.load(request) == {"user": 7}

    def test_wrong_secret_loads_empty(self, make_request) -> None:
        signer = CookieSessionBackend(SessionConfig(secret_key="one"))
        value = _cookie_value(signer.save(Response(), {"user": 7}), "switchyard_session")
        other = CookieSessionBackend(SessionConfig(secret_key="two"))
        request = make_request("GET", "/", {"cookie": f"switchyard_session={value}"})
        assert other.load(request) == {}

    def test_no_cookie(self, make_request) -> None:
        backend = CookieSessionBackend(SessionConfig(secret_key="k"))
        assert backend.load(make_request()) == {}

    def test_cookie_attributes(self) -> None:
        backend = CookieSessionBackend(SessionConfig(secret_key="k", max_age=60))
        cookie = backend.save(Response(), {}).cookies[0]
        assert cookie.max_age == 60
        assert cookie.httponly
        assert cookie.samesite == "lax"


class TestMemoryBackend:
    def test_persists_by_sid(self, make_request) -> None:
        backend = MemorySessionBackend()
        response = backend.save(Response(), {"n": 1})
        sid = _cookie_value(response, "switchyard_session")
        request = make_request("GET", "/", {"cookie": f"switchyard_session={sid}"})
        session = backend.load(request)
        assert session["n"] == 1
        session["n"] = 2
        again = backend.save(Response(), session)
        assert _cookie_value(again, "switchyard_session") == sid
        assert backend.load(request)["n"] == 2

    def test_unknown_sid_gets_new_session(self, make_request) -> None:
        backend = MemorySessionBackend()
        request = make_request("GET", "/", {"cookie": "switchyard_session=forged"})
        session = backend.load(request)
        assert session == {}
        session["n"] = 1
        sid = _cookie_value(backend.save(Response(), session), "switchyard_session")
        assert sid != "forged"

    def test_empty_session_is_not_stored(self) -> None:
        backend = MemorySessionBackend()
        response = backend.save(Response(), {})
        assert response.cookies == ()
        assert len(backend) == 0

    def test_store_is_capped(self) -> None:
        backend = MemorySessionBackend(max_entries=3)
        sids = [
            _cookie_value(backend.save(Response(), {"_csrf_token": str(i)}), "switchyard_session")
            for i in range(10)
        ]
        assert len(backend) == 3
        assert list(backend._store) == sids[-3:]

    def test_entries_expire(self, make_request) -> None:
        now = [0.0]
        backend = MemorySessionBackend(SessionConfig(max_age=60), clock=lambda: now[0])
        old = _cookie_value(backend.save(Response(), {"n": 1}), "switchyard_session")
        now[0] = 30.0
        backend.save(Response(), {"n": 2})
        now[0] = 61.0
        assert backend.load(make_request("GET", "/", {"cookie": f"switchyard_session={old}"})) == {}
        assert len(backend) == 1
        now[0] = 95.0
        backend.save(Response(), {"n": 3})
        assert len(backend) == 1


class TestCreateBackend:
    def test_with_secret(self) -> None:
        assert isinstance(create_backend("s", "sess", 10), CookieSessionBackend)

    def test_without_secret_warns(self, caplog) -> None:
        with caplog.at_level("WARNING", logger="switchyard.security"):
            backend = create_backend("", "sess", 10)
        assert isinstance(backend, MemorySessionBackend)
        assert "secret_key" in caplog.text
