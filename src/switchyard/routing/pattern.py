"""Path template compilation.

Turns a template such as ``/users/{id}/posts/{slug?}`` into an anchored
regular expression with one named group per placeholder:

* ``{name}`` — required, one or more of ``[A-Za-z0-9_-]``
* ``{name?}`` — optional, zero or more of the same class; captures ``""``
  when absent

Literal text is matched exactly and case-sensitively. Templates built
from group prefixes may contain ``//``; runs of slashes are collapsed
before compiling.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

from switchyard.errors import ConfigurationError

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(\?)?\}")

# Anything in braces, to catch placeholders PLACEHOLDER_RE rejects
_BRACES_RE = re.compile(r"\{[^{}/]*\}")

SEGMENT_CHARS = r"[A-Za-z0-9_-]"

_SLASHES_RE = re.compile(r"/{2,}")


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A named path segment parsed from a template."""

    name: str
    optional: bool = False


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """An anchored matcher compiled from a path template."""

    template: str
    regex: re.Pattern[str]
    placeholders: tuple[Placeholder, ...]

    def match(self, path: str) -> dict[str, str] | None:
        """Match *path* in full and return the captured parameters.

        Optional placeholders that did not participate in the match
        are reported as empty strings. Returns ``None`` on no match.
        """
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        return {p.name: m.group(p.name) or "" for p in self.placeholders}


def normalize_template(template: str) -> str:
    """Collapse runs of ``/`` and ensure a leading slash."""
    template = _SLASHES_RE.sub("/", template)
    if not template.startswith("/"):
        template = "/" + template
    return template


def parse_placeholders(template: str) -> tuple[Placeholder, ...]:
    """Return the placeholders of *template* in order of appearance."""
    return tuple(
        Placeholder(name=m.group(1), optional=m.group(2) is not None)
        for m in PLACEHOLDER_RE.finditer(template)
    )


@lru_cache(maxsize=1024)
def compile_pattern(template: str) -> CompiledPattern:
    """Compile a path template into a ``CompiledPattern``.

    A segment made of nothing but an optional placeholder also makes its
    leading slash optional, so ``/posts/{slug?}`` matches ``/posts``,
    ``/posts/`` and ``/posts/hello``.

    Raises ``ConfigurationError`` if a placeholder name is not an
    identifier or repeats.
    """
    normalized = normalize_template(template)
    for m in _BRACES_RE.finditer(normalized):
        if not PLACEHOLDER_RE.fullmatch(m.group(0)):
            msg = f"Route template {template!r} has an invalid placeholder {m.group(0)!r}"
            raise ConfigurationError(msg)
    placeholders = parse_placeholders(normalized)

    names = [p.name for p in placeholders]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        msg = f"Route template {template!r} repeats placeholder(s): {', '.join(duplicates)}"
        raise ConfigurationError(msg)

    parts: list[str] = []
    pos = 0
    for m in PLACEHOLDER_RE.finditer(normalized):
        start, end = m.span()
        name, optional = m.group(1), m.group(2) is not None
        literal = normalized[pos:start]

        whole_segment = (
            optional
            and literal.endswith("/")
            and (end == len(normalized) or normalized[end] == "/")
        )
        if whole_segment:
            parts.append(re.escape(literal[:-1]))
            parts.append(f"(?:/(?P<{name}>{SEGMENT_CHARS}*))?")
        else:
            parts.append(re.escape(literal))
            quantifier = "*" if optional else "+"
            parts.append(f"(?P<{name}>{SEGMENT_CHARS}{quantifier})")
        pos = end
    parts.append(re.escape(normalized[pos:]))

    regex = re.compile("".join(parts))
    return CompiledPattern(template=normalized, regex=regex, placeholders=placeholders)
