"""Cross-origin resource sharing, behind the ``"cors"`` alias.

The alias points at the class, and an unconfigured ``CORSMiddleware``
trusts no origin. Register a configured instance to open it up::

    registry.alias("cors", CORSMiddleware(CORSConfig(allow_origins=("https://example.com",))))
"""

from dataclasses import dataclass

from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """Which origins, methods, and headers cross-origin callers may use.

    ``allow_origins=("*",)`` trusts every origin; combined with
    ``allow_credentials`` the concrete origin is echoed instead of ``*``.
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600


class CORSMiddleware:
    """Answer preflights and decorate responses for trusted origins.

    Requests without an ``Origin`` header, or from an untrusted origin,
    pass through unchanged. A preflight (``OPTIONS`` from a trusted
    origin) is answered with 204 and never reaches the route handler.
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def is_allowed_origin(self, origin: str) -> bool:
        allowed = self.config.allow_origins
        return "*" in allowed or origin in allowed

    async def handle(self, request: Request, response: Response, next: Next) -> Response:
        origin = request.headers.get("origin")
        if not origin or not self.is_allowed_origin(origin):
            return await next(request, response)
        if request.method == "OPTIONS":
            return self._preflight(request, response, origin)
        return self._decorate(await next(request, response), origin)

    def _decorate(self, response: Response, origin: str) -> Response:
        cfg = self.config
        headers: dict[str, str] = {}
        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            headers["Access-Control-Allow-Origin"] = "*"
        else:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        if cfg.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if cfg.expose_headers:
            headers["Access-Control-Expose-Headers"] = ", ".join(cfg.expose_headers)
        return response.with_headers(headers)

    def _preflight(self, request: Request, response: Response, origin: str) -> Response:
        cfg = self.config
        headers: dict[str, str] = {}
        if request.headers.get("access-control-request-method"):
            headers["Access-Control-Allow-Methods"] = ", ".join(cfg.allow_methods)
        if cfg.allow_headers:
            headers["Access-Control-Allow-Headers"] = ", ".join(cfg.allow_headers)
        headers["Access-Control-Max-Age"] = str(cfg.max_age)
        preflight = self._decorate(response.with_status(204).with_body(""), origin)
        return preflight.with_headers(headers)
