"""Immutable HTTP request.

Metadata is fixed when the request is built from the ASGI scope. The
body is read lazily, once, and cached on the request so the CSRF guard,
middleware, and the handler can all look at it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from switchyard._internal.asgi import Receive, Scope
from switchyard.errors import HTTPError
from switchyard.http.cookies import parse_cookies
from switchyard.http.forms import is_form_content_type, media_type
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams

if TYPE_CHECKING:
    from switchyard.http.forms import FormData


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True)
class Request:
    """One incoming HTTP request.

    ``path_params`` is empty until the dispatcher matches a route and
    hands the handler a copy made with ``with_path_params()``.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    path_params: dict[str, str] = field(default_factory=dict)
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)

    _receive: Receive = _no_body

    # Shared by every copy of this request: raw body, parsed JSON, parsed form
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        headers = Headers(scope.get("headers", ()))
        server, client = scope.get("server"), scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"] or "/",
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )

    def with_path_params(self, params: Mapping[str, str]) -> Request:
        """Copy of this request carrying the matched route parameters."""
        return replace(self, path_params=dict(params))

    # -- Metadata --

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """Declared body size, or ``None`` when absent or malformed."""
        raw = self.headers.get("content-length")
        if raw is None or not raw.strip().isdigit():
            return None
        return int(raw)

    @property
    def host(self) -> str:
        """The ``Host`` header, else the server address (port omitted for 80/443)."""
        if host := self.headers.get("host"):
            return host
        if not self.server:
            return ""
        name, port = self.server
        return name if port in (80, 443) else f"{name}:{port}"

    @property
    def url(self) -> str:
        """Path plus query string, as requested."""
        if not self.query.raw:
            return self.path
        return f"{self.path}?{self.query.raw.decode('latin-1')}"

    # -- Content negotiation signals --

    @property
    def is_ajax(self) -> bool:
        return (self.headers.get("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def is_json(self) -> bool:
        return media_type(self.content_type) == "application/json"

    @property
    def is_form(self) -> bool:
        return is_form_content_type(self.content_type)

    @property
    def wants_json(self) -> bool:
        return "application/json" in (self.headers.get("accept") or "").lower()

    @property
    def expects_json(self) -> bool:
        """AJAX requests and ``Accept: application/json`` get JSON error bodies."""
        return self.is_ajax or self.wants_json

    # -- Body --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield body chunks straight from the server. Consumes the body."""
        more = True
        while more:
            message = await self._receive()
            if chunk := message.get("body", b""):
                yield chunk
            more = message.get("more_body", False)

    async def body(self) -> bytes:
        if "body" not in self._cache:
            self._cache["body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["body"]

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Decoded JSON body, ``None`` for an empty body.

        Raises ``ValueError`` for malformed JSON.
        """
        if "json" not in self._cache:
            raw = await self.body()
            self._cache["json"] = json_module.loads(raw) if raw else None
        return self._cache["json"]

    async def form(self) -> FormData:
        """Parsed form body. Non-form requests yield an empty ``FormData``.

        Raises ``HTTPError(400)`` when the body cannot be decoded or parsed.
        """
        if "form" not in self._cache:
            from switchyard.http.forms import FormData, parse_form_data

            if self.is_form:
                try:
                    self._cache["form"] = await parse_form_data(await self.body(), self.content_type or "")
                except ValueError as exc:
                    raise HTTPError(status=400, detail="Malformed form body") from exc
            else:
                self._cache["form"] = FormData()
        return self._cache["form"]

    async def input(self, key: str, default: Any = None) -> Any:
        """Look *key* up in the form or JSON object body, then in the query string."""
        if self.is_form:
            form = await self.form()
            if key in form:
                return form[key]
        elif self.is_json:
            payload = await self.json()
            if isinstance(payload, dict) and key in payload:
                return payload[key]
        return self.query.get(key, default)
