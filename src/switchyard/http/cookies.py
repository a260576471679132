"""Cookie parsing and SetCookie serialization.

The read side (``parse_cookies``) feeds ``Request.cookies`` and the
session backend; the write side (``SetCookie``) is attached to a
``Response`` when the session is saved.
"""

from dataclasses import dataclass
from urllib.parse import unquote


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Later duplicates do not override the first occurrence, matching
    browser send order (most specific path first).
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for chunk in header.split(";"):
        name, sep, value = chunk.strip().partition("=")
        if not sep or not name:
            continue
        cookies.setdefault(name.strip(), unquote(value.strip().strip('"')))
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value."""
        attributes = [f"{self.name}={self.value}"]
        valued = (
            ("Max-Age", self.max_age),
            ("Path", self.path or None),
            ("Domain", self.domain),
            ("SameSite", self.samesite.capitalize() if self.samesite else None),
        )
        attributes.extend(f"{key}={value}" for key, value in valued if value is not None)
        if self.secure:
            attributes.append("Secure")
        if self.httponly:
            attributes.append("HttpOnly")
        return "; ".join(attributes)
