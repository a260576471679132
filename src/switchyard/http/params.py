"""Multi-value mappings for query strings, form bodies, and headers.

Every key keeps its values in arrival order. Item access and ``get``
return the first value; ``get_list`` returns all of them. Subclasses
fold keys through ``_fold`` (headers are case-insensitive).
"""

from collections.abc import Iterable, Iterator, Mapping


class MultiValueMapping(Mapping[str, str]):
    """Read-only ``str -> [str, ...]`` mapping exposed as ``Mapping[str, str]``."""

    __slots__ = ("_values",)

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        grouped: dict[str, list[str]] = {}
        for key, value in pairs:
            grouped.setdefault(self._fold(key), []).append(value)
        self._values = grouped

    @staticmethod
    def _fold(key: str) -> str:
        return key

    def __getitem__(self, key: str) -> str:
        return self._values[self._fold(key)][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._fold(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.multi_items()!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._values.get(self._fold(key))
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Return every value for *key*, possibly empty."""
        return list(self._values.get(self._fold(key), ()))

    def multi_items(self) -> list[tuple[str, str]]:
        """All ``(key, value)`` pairs, repeated keys included."""
        return [(key, value) for key, values in self._values.items() for value in values]
