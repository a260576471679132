"""Case-insensitive request headers.

Built from the ``(name, value)`` byte pairs of the ASGI scope. Names are
lower-cased once at construction; values are decoded as latin-1.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from switchyard.http.params import MultiValueMapping


class Headers(MultiValueMapping):
    """Request headers. ``headers["Content-Type"]`` and ``headers["content-type"]`` agree."""

    __slots__ = ("_raw",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        pairs = tuple((bytes(name), bytes(value)) for name, value in raw)
        super().__init__((name.decode("latin-1"), value.decode("latin-1")) for name, value in pairs)
        self._raw = pairs

    @staticmethod
    def _fold(key: str) -> str:
        return key.lower()

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str]) -> Headers:
        """Build headers from a plain ``{name: value}`` mapping."""
        return cls((name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items())

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Header byte pairs as received from the server."""
        return self._raw
