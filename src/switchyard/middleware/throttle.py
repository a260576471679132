"""Fixed-window request throttling.

A small in-memory limiter keyed by client address. State lives on the
middleware instance, so the ``"throttle"`` alias points at the shared
``default_throttle`` instance rather than the class.

The client address is the ASGI peer unless ``key_header`` names a proxy
header. That header is taken at face value, so only set it when a
trusted proxy overwrites it.
"""

import logging
import threading
import time
from dataclasses import dataclass

from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.middleware.protocol import Next

logger = logging.getLogger("switchyard.middleware")


@dataclass(frozen=True, slots=True)
class ThrottleConfig:
    """Throttle configuration.

    Attributes:
        requests: Requests allowed per client per window.
        window_seconds: Window length.
        block_seconds: How long a client is refused after exceeding the limit.
        key_header: Trusted proxy header carrying the client address, e.g.
            ``"x-forwarded-for"``. ``None`` uses the connection peer.
    """

    requests: int = 60
    window_seconds: int = 60
    block_seconds: int = 60
    key_header: str | None = None


@dataclass(slots=True)
class _Window:
    started: float
    count: int = 0
    blocked_until: float = 0.0


class ThrottleMiddleware:
    """Refuse clients exceeding ``requests`` per window with ``429``.

    Windows of clients that have gone quiet are dropped once per
    window length, so the table only holds recently active clients.
    """

    __slots__ = ("_config", "_lock", "_next_sweep", "_windows")

    def __init__(self, config: ThrottleConfig | None = None) -> None:
        self._config = config or ThrottleConfig()
        self._lock = threading.Lock()
        self._windows: dict[str, _Window] = {}
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._windows)

    def client_key(self, request: Request) -> str:
        header_name = self._config.key_header
        if header_name and (raw := request.headers.get(header_name)):
            # Leftmost entry of a proxy chain
            if client := raw.split(",", 1)[0].strip():
                return client
        return request.client[0] if request.client else "unknown"

    def hit(self, key: str, now: float) -> tuple[bool, int]:
        """Count one request for *key*. Returns ``(allowed, retry_after)``."""
        cfg = self._config
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            window = self._windows.get(key)
            if window is not None and window.blocked_until > now:
                return False, max(1, int(window.blocked_until - now))
            if window is None or now - window.started >= cfg.window_seconds:
                window = self._windows[key] = _Window(started=now)

            window.count += 1
            if window.count <= cfg.requests:
                return True, 0
            window.blocked_until = now + cfg.block_seconds
            return False, cfg.block_seconds

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._next_sweep = 0.0

    def _sweep(self, now: float) -> None:
        window_seconds = self._config.window_seconds
        self._windows = {
            key: window
            for key, window in self._windows.items()
            if window.blocked_until > now or now - window.started < window_seconds
        }
        self._next_sweep = now + window_seconds

    async def handle(self, request: Request, response: Response, next: Next) -> Response:
        key = self.client_key(request)
        allowed, retry_after = self.hit(key, time.monotonic())
        if not allowed:
            logger.warning("Throttled %s %s for %s", request.method, request.path, key)
            return (
                response.with_status(429)
                .with_content_type("text/plain; charset=utf-8")
                .with_body("Too Many Requests")
                .with_header("Retry-After", str(retry_after))
            )
        return await next(request, response)


default_throttle = ThrottleMiddleware()
