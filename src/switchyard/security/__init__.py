"""Security — CSRF tokens and the dispatch-time CSRF gate."""

from switchyard.security.csrf import (
    CSRFConfig,
    CsrfGuard,
    csrf_field,
    csrf_meta,
    csrf_token,
    get_csrf_token,
)

__all__ = [
    "CSRFConfig",
    "CsrfGuard",
    "csrf_field",
    "csrf_meta",
    "csrf_token",
    "get_csrf_token",
]
