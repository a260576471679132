"""Shared fixtures for switchyard tests."""

from collections.abc import Callable, Mapping

import pytest

from switchyard.http.cookies import parse_cookies
from switchyard.http.headers import Headers
from switchyard.http.request import Request


def _receive_for(body: bytes):
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return receive


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Request without going through ASGI.

    ``host: testserver`` is added unless the caller sets a host header.
    """

    def factory(
        method: str = "GET",
        path: str = "/",
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        merged = {"host": "testserver", **(headers or {})}
        built = Headers.from_mapping(merged)
        return Request(
            method=method,
            path=path,
            headers=built,
            cookies=parse_cookies(built.get("cookie", "")),
            _receive=_receive_for(body),
        )

    return factory
