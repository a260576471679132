"""Query string parameters."""

from urllib.parse import parse_qsl

from switchyard.http.params import MultiValueMapping


class QueryParams(MultiValueMapping):
    """Parsed query string. ``?tag=a&tag=b`` keeps both values."""

    __slots__ = ("_raw",)

    def __init__(self, query_string: bytes = b"") -> None:
        super().__init__(parse_qsl(query_string.decode("latin-1"), keep_blank_values=True))
        self._raw = query_string

    @property
    def raw(self) -> bytes:
        """The undecoded query string."""
        return self._raw
