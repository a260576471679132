"""Sessions — signed cookie storage with an in-memory fallback.

The CSRF guard keeps its token in the session, so the app loads the
session before dispatch and writes it back onto the final response.
The active session dict is stored in a ContextVar, accessible via
``get_session()`` from any handler or middleware.

``CookieSessionBackend`` serializes the session as JSON signed with
``itsdangerous``. ``MemorySessionBackend`` keeps session data
server-side under a random id cookie; the app uses it when no
``secret_key`` is configured.
"""

import logging
import secrets
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Protocol

from itsdangerous import BadData, URLSafeTimedSerializer

from switchyard.errors import ConfigurationError
from switchyard.http.request import Request
from switchyard.http.response import Response

logger = logging.getLogger("switchyard.security")

_session_var: ContextVar[dict[str, Any] | None] = ContextVar("switchyard_session", default=None)


def get_session() -> dict[str, Any]:
    """Return the current session dict.

    Raises ``LookupError`` outside a request.
    """
    session = _session_var.get()
    if session is None:
        msg = "No active session. get_session() is only available while a request is dispatched."
        raise LookupError(msg)
    return session


@contextmanager
def session_scope(session: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Make *session* the current session for the duration of the block."""
    token = _session_var.set(session)
    try:
        yield session
    finally:
        _session_var.reset(token)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session cookie configuration."""

    secret_key: str = ""
    cookie_name: str = "switchyard_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionBackend(Protocol):
    def load(self, request: Request) -> dict[str, Any]: ...

    def save(self, response: Response, session: dict[str, Any]) -> Response: ...


def _set_cookie(response: Response, config: SessionConfig, value: str) -> Response:
    return response.with_cookie(
        config.cookie_name,
        value,
        max_age=config.max_age,
        path=config.path,
        domain=config.domain,
        secure=config.secure,
        httponly=config.httponly,
        samesite=config.samesite,
    )


class CookieSessionBackend:
    """Signed cookie sessions.

    The cookie is re-signed on every response so its timestamp slides
    with activity. Tampered, expired, or malformed cookies load as an
    empty session.
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="switchyard.session")

    @property
    def config(self) -> SessionConfig:
        return self._config

    def load(self, request: Request) -> dict[str, Any]:
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return {}
        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadData:
            logger.debug("Discarding invalid session cookie")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, response: Response, session: dict[str, Any]) -> Response:
        return _set_cookie(response, self._config, self._serializer.dumps(session))


class MemorySessionBackend:
    """Process-local sessions keyed by a random id cookie.

    Data is lost on restart and not shared between processes. Entries
    expire ``max_age`` seconds after their last save, and at most
    ``max_entries`` are kept; the least recently saved go first. Empty
    sessions are never stored.
    """

    __slots__ = ("_clock", "_config", "_lock", "_max_entries", "_store")

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SessionConfig()
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # sid -> (saved_at, data), oldest first
        self._store: OrderedDict[str, tuple[float, dict[str, Any]]] = OrderedDict()

    @property
    def config(self) -> SessionConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._store)

    def load(self, request: Request) -> dict[str, Any]:
        sid = request.cookies.get(self._config.cookie_name)
        if not sid:
            return {}
        with self._lock:
            entry = self._store.get(sid)
            if entry is not None and self._expired(entry[0], self._clock()):
                del self._store[sid]
                entry = None
        if entry is None:
            return {}
        return {**entry[1], "__sid": sid}

    def save(self, response: Response, session: dict[str, Any]) -> Response:
        sid = session.pop("__sid", None)
        if not session and sid is None:
            return response
        sid = sid or secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._sweep(now)
            self._store[sid] = (now, dict(session))
            self._store.move_to_end(sid)
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)
        return _set_cookie(response, self._config, sid)

    def _expired(self, saved_at: float, now: float) -> bool:
        return now - saved_at >= self._config.max_age

    def _sweep(self, now: float) -> None:
        # Insertion order is save order, so expired entries sit at the front
        while self._store:
            sid, (saved_at, _) = next(iter(self._store.items()))
            if not self._expired(saved_at, now):
                break
            del self._store[sid]


def create_backend(secret_key: str, cookie_name: str, max_age: int) -> SessionBackend:
    """Pick the signed-cookie backend, or the in-memory one without a secret."""
    config = SessionConfig(secret_key=secret_key, cookie_name=cookie_name, max_age=max_age)
    if secret_key:
        return CookieSessionBackend(config)
    logger.warning(
        "No secret_key configured; sessions (and CSRF tokens) are kept in process memory. "
        "Set AppConfig.secret_key to use signed cookie sessions."
    )
    return MemorySessionBackend(config)
