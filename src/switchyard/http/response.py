"""Immutable HTTP response.

Every route handler receives the response the dispatcher started with
(possibly decorated by outer middleware) and returns the one it built.
Nothing is mutated in place: each ``with_*`` call produces a copy, so a
middleware can hold on to the response it passed inward and still know
exactly what it sent.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from switchyard.http.cookies import SetCookie


@dataclass(frozen=True, slots=True)
class Response:
    """Status, body, headers, and cookies of one HTTP response.

    Usage::

        return (
            response.with_status(201)
            .with_header("Location", f"/users/{user.id}")
            .with_json({"id": user.id})
        )
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Builders --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_body(self, body: str | bytes) -> Response:
        return replace(self, body=body)

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    def with_header(self, name: str, value: str) -> Response:
        """Append a header. Existing headers with the same name are kept."""
        return self.with_headers({name: value})

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=self.headers + tuple(headers.items()))

    def with_json(self, data: Any) -> Response:
        """Serialize *data* as the body and switch to ``application/json``."""
        body = json_module.dumps(data, default=str)
        return replace(self, body=body, content_type="application/json")

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        """Attach a ``Set-Cookie`` directive."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return replace(self, cookies=self.cookies + (cookie,))

    def without_cookie(self, name: str, path: str = "/") -> Response:
        """Expire the cookie *name* on the client."""
        return self.with_cookie(name, "", max_age=0, path=path)

    def redirect(self, url: str, status: int = 302) -> Response:
        """Turn this response into a redirect to *url*; the body is dropped."""
        return replace(self, status=status, body="").with_header("Location", url)

    # -- Inspection --

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of header *name*, compared case-insensitively."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), default)

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    @property
    def text(self) -> str:
        return self.body.decode("utf-8") if isinstance(self.body, bytes) else self.body

    def json(self) -> Any:
        return json_module.loads(self.body_bytes)


@dataclass(frozen=True, slots=True)
class Redirect:
    """Handler outcome meaning "send the client to *url*"."""

    url: str
    status: int = 302
    headers: tuple[tuple[str, str], ...] = ()
