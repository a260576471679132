"""CSRF protection — session-backed tokens and the dispatch-time gate.

One token per session, created lazily and stored in the session under
``CSRFConfig.session_key``. The dispatcher runs ``CsrfGuard.check()``
for POST, PUT, PATCH, and DELETE before any middleware.

Verification is required when the request submits a token, or when a
form post arrives with an ``Origin`` or ``Referer`` naming another host.
Requests that submit no token and carry no cross-origin signal pass.

Templates::

    <form method="post">
        {{ csrf_field() }}
        ...
    </form>

AJAX (via meta tag)::

    {{ csrf_meta() }}
    fetch(url, {headers: {"X-CSRF-Token": document.querySelector('meta[name="csrf-token"]').content}})
"""

import hmac
import logging
import re
import secrets
from collections.abc import Iterable, MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass
from html import escape
from typing import Any

from kida.utils.html import Markup

from switchyard.errors import CsrfValidationFailure
from switchyard.http.request import Request

logger = logging.getLogger("switchyard.security")

SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})

# Methods gated at dispatch
UNSAFE_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# -- CSRF token ContextVar (accessible from template globals) --

_csrf_token_var: ContextVar[str | None] = ContextVar("switchyard_csrf_token", default=None)


def set_current_token(token: str | None) -> Any:
    """Bind *token* for template helpers. Returns the ContextVar reset token."""
    return _csrf_token_var.set(token)


def reset_current_token(reset_token: Any) -> None:
    _csrf_token_var.reset(reset_token)


def get_csrf_token() -> str:
    """Return the current CSRF token.

    Raises ``LookupError`` outside a request.
    """
    token = _csrf_token_var.get()
    if token is None:
        msg = "No CSRF token available outside a request."
        raise LookupError(msg)
    return token


def csrf_field() -> Markup:
    """Render a hidden input carrying the CSRF token.

    Renders: ``<input type="hidden" name="_csrf_token" value="...">``
    """
    token = escape(get_csrf_token(), quote=True)
    return Markup(f'<input type="hidden" name="_csrf_token" value="{token}">')


def csrf_meta() -> Markup:
    """Render ``<meta name="csrf-token" content="...">`` for AJAX clients."""
    token = escape(get_csrf_token(), quote=True)
    return Markup(f'<meta name="csrf-token" content="{token}">')


def csrf_token() -> str:
    """Return the raw CSRF token string."""
    return get_csrf_token()


# -- Configuration --


@dataclass(frozen=True, slots=True)
class CSRFConfig:
    """CSRF guard configuration.

    Attributes:
        field_name: Form (and JSON body) field carrying the token.
        header_name: Header for AJAX requests.
        alt_header_name: Secondary header, as sent by some JS clients.
        session_key: Session key the token is stored under.
        token_length: Random bytes per token (hex-encoded, so twice as many chars).
        exempt_paths: Path patterns that skip the gate; ``*`` matches anything.
    """

    field_name: str = "_csrf_token"
    header_name: str = "X-CSRF-Token"
    alt_header_name: str = "X-XSRF-Token"
    session_key: str = "_csrf_token"
    token_length: int = 32
    exempt_paths: tuple[str, ...] = ()


def _exclusion_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(re.escape(pattern).replace(r"\*", ".*"))


class CsrfGuard:
    """Issues and verifies per-session CSRF tokens."""

    __slots__ = ("_config", "_excluded")

    def __init__(self, config: CSRFConfig | None = None) -> None:
        self._config = config or CSRFConfig()
        self._excluded: tuple[re.Pattern[str], ...] = ()
        self.except_(self._config.exempt_paths)

    @property
    def config(self) -> CSRFConfig:
        return self._config

    # -- Tokens --

    def token(self, session: MutableMapping[str, Any]) -> str:
        """Return the session's token, creating it on first use."""
        key = self._config.session_key
        token = session.get(key)
        if not token:
            token = secrets.token_hex(self._config.token_length)
            session[key] = token
        return token

    def regenerate(self, session: MutableMapping[str, Any]) -> str:
        """Replace the session's token. Call after login and logout."""
        token = secrets.token_hex(self._config.token_length)
        session[self._config.session_key] = token
        return token

    def verify(self, session: MutableMapping[str, Any], submitted: str | None) -> bool:
        """Constant-time comparison of *submitted* against the session token."""
        expected = session.get(self._config.session_key)
        if not expected or not submitted:
            return False
        return hmac.compare_digest(str(expected).encode(), submitted.encode())

    # -- Exclusions --

    def except_(self, patterns: Iterable[str]) -> None:
        """Replace the exclusion list, e.g. ``["/api/*", "/webhook/stripe"]``."""
        self._excluded = tuple(_exclusion_regex(p) for p in patterns)

    exempt = except_

    def is_excluded(self, path: str) -> bool:
        return any(regex.fullmatch(path) for regex in self._excluded)

    @staticmethod
    def is_safe_method(method: str) -> bool:
        return method.upper() in SAFE_METHODS

    # -- Request inspection --

    async def submitted_token(self, request: Request) -> str | None:
        """Find the token in headers, then the form body, then a JSON body."""
        cfg = self._config
        header = request.headers.get(cfg.header_name) or request.headers.get(cfg.alt_header_name)
        if header:
            return header.strip()

        if request.is_form:
            form = await request.form()
            value = form.get(cfg.field_name)
            if value is not None:
                return value.strip()

        if request.is_json:
            try:
                data = await request.json()
            except ValueError:
                return None
            if isinstance(data, dict) and isinstance(data.get(cfg.field_name), str):
                return data[cfg.field_name].strip()

        return None

    async def should_validate(self, request: Request) -> bool:
        """Decide whether *request* has to carry a valid token."""
        if self.is_safe_method(request.method) or self.is_excluded(request.path):
            return False

        cfg = self._config
        if request.headers.get(cfg.header_name) is not None:
            return True
        if request.is_form:
            form = await request.form()
            if cfg.field_name in form:
                return True

            host = request.host
            origin = request.headers.get("origin") or ""
            if origin and host not in origin:
                return True
            referer = request.headers.get("referer") or ""
            if referer and host not in referer:
                return True

        return False

    async def check(self, request: Request, session: MutableMapping[str, Any]) -> None:
        """Raise ``CsrfValidationFailure`` when a gated request fails verification."""
        if not await self.should_validate(request):
            return
        if self.verify(session, await self.submitted_token(request)):
            return
        logger.warning("CSRF validation failed for %s %s", request.method, request.path)
        raise CsrfValidationFailure(expects_json=request.expects_json)
