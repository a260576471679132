"""Switchyard exception hierarchy.

Shared across Router, Dispatcher, CSRF guard, and middleware so every
module raises and catches the same types. Only the conditions the
router itself detects are modelled here; exceptions raised by handlers
and middleware propagate untouched to the ASGI boundary.
"""

from dataclasses import dataclass


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """Raised when router or app configuration is invalid.

    Typically raised during route registration, before the first
    request is served.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(SwitchyardError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher or the CSRF guard. The ASGI boundary
    catches these and renders them through the matching
    ``@app.error()`` handler or a default body.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class RouteNotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route matched the request method and path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


NotFound = RouteNotFound


class CsrfValidationFailure(HTTPError):  # noqa: N818
    """419 — CSRF token missing or mismatched on a gated request.

    ``expects_json`` carries the request's content-negotiation signal so
    the boundary can render a JSON body for API clients and an HTML
    page for browsers. The status is the same either way.
    """

    expects_json: bool

    def __init__(self, detail: str = "CSRF token invalid or expired.", *, expects_json: bool = False) -> None:
        super().__init__(status=419, detail=detail)
        object.__setattr__(self, "expects_json", expects_json)


class MissingRouteParameter(SwitchyardError, LookupError):
    """URL generation was asked for a route without a required placeholder."""

    def __init__(self, route: str, parameter: str) -> None:
        self.route = route
        self.parameter = parameter
        super().__init__(f"Missing required parameter {parameter!r} for route {route!r}.")


class InvalidMiddlewareContract(ConfigurationError):  # noqa: N818
    """A resolved middleware does not expose a callable ``handle()``."""

    def __init__(self, identifier: object, resolved: object | None = None) -> None:
        self.identifier = identifier
        kind = type(resolved).__name__ if resolved is not None else "object"
        super().__init__(
            f"Middleware {identifier!r} resolved to {kind}, which does not implement "
            "handle(request, response, next)."
        )


class HandlerResolutionError(ConfigurationError):
    """A handler reference cannot be resolved to a callable.

    Raised for unknown classes, missing methods, and handler values that
    are neither callables nor ``(class, method)`` pairs.
    """
