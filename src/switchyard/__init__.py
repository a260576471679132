"""Switchyard — an ordered HTTP router for ASGI applications.

Routes are matched in registration order against path templates with
``{name}`` and ``{name?}`` placeholders, run through onion middleware
resolved by alias, guarded by a session-backed CSRF check, and reversed
into URLs by name.

Basic usage::

    from switchyard import App

    app = App()

    @app.route("/hello/{name}", name="hello")
    def hello(request, response, params):
        return f"Hello, {params['name']}!"

    app.url_for("hello", {"name": "world"})  # "/hello/world"
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "CsrfGuard",
    "CsrfValidationFailure",
    "Dispatcher",
    "HTTPError",
    "Middleware",
    "MiddlewareRegistry",
    "MissingRouteParameter",
    "Next",
    "NotFound",
    "Redirect",
    "Request",
    "Response",
    "RouteNotFound",
    "Router",
    "SwitchyardError",
    "Template",
]

_ERRORS = (
    "ConfigurationError",
    "CsrfValidationFailure",
    "HTTPError",
    "MissingRouteParameter",
    "NotFound",
    "RouteNotFound",
    "SwitchyardError",
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "App":
        from switchyard.app import App

        return App

    if name == "AppConfig":
        from switchyard.config import AppConfig

        return AppConfig

    if name == "Request":
        from switchyard.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from switchyard.http import response

        return getattr(response, name)

    if name == "Router":
        from switchyard.routing.router import Router

        return Router

    if name == "Dispatcher":
        from switchyard.dispatch import Dispatcher

        return Dispatcher

    if name == "CsrfGuard":
        from switchyard.security.csrf import CsrfGuard

        return CsrfGuard

    if name in ("Middleware", "Next"):
        from switchyard.middleware import protocol

        return getattr(protocol, name)

    if name == "MiddlewareRegistry":
        from switchyard.middleware.registry import MiddlewareRegistry

        return MiddlewareRegistry

    if name == "Template":
        from switchyard.templating.returns import Template

        return Template

    if name in _ERRORS:
        from switchyard import errors

        return getattr(errors, name)

    msg = f"module 'switchyard' has no attribute {name!r}"
    raise AttributeError(msg)
