"""Ordered route table with group scoping and URL generation.

Routes are registered during a single-threaded setup phase and kept in
registration order, which is significant: dispatch scans the table and
the first route whose method and pattern match wins. The first
dispatch freezes the router; registration after that raises.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from switchyard._internal.types import HandlerSpec, MiddlewareSpec
from switchyard.errors import ConfigurationError, MissingRouteParameter
from switchyard.http.response import Redirect
from switchyard.middleware.registry import MiddlewareRegistry
from switchyard.routing.handlers import to_handler
from switchyard.routing.pattern import PLACEHOLDER_RE, compile_pattern
from switchyard.routing.route import Route, RouteHandle, RouteMatch
from switchyard.templating.returns import Template

logger = logging.getLogger("switchyard.routing")

STANDARD_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")

_SLASHES_RE = re.compile(r"/{2,}")


def _as_list(middleware: MiddlewareSpec | Sequence[MiddlewareSpec] | None) -> list[MiddlewareSpec]:
    """Accept a single identifier or a sequence of identifiers."""
    if middleware is None:
        return []
    if isinstance(middleware, list | tuple):
        return list(middleware)
    return [middleware]


class Router:
    """Ordered route table.

    Usage::

        router = Router()
        router.global_middleware(["throttle"])

        router.get("/", home).name("home")
        router.get("/users/{id}", ("app.controllers:UserController", "show")).name("users.show")

        with router.group(prefix="/admin", middleware=["auth"]):
            router.get("/", admin_home).name("admin.home")
            router.post("/users/{id}/ban", ban_user)

        router.url_for("users.show", {"id": 42})  # "/users/42"

    Middleware attached to a route is, in order: global middleware,
    active group middleware (outer to inner), then the route's own.
    Duplicates are kept and run once per occurrence.
    """

    __slots__ = (
        "_frozen",
        "_global_middleware",
        "_group_middleware",
        "_prefixes",
        "_registry",
        "_routes",
    )

    def __init__(self, *, middleware_registry: MiddlewareRegistry | None = None) -> None:
        self._registry = middleware_registry or MiddlewareRegistry()
        self._routes: list[Route] = []
        self._prefixes: list[str] = []
        self._group_middleware: list[list[MiddlewareSpec]] = []
        self._global_middleware: list[MiddlewareSpec] = []
        self._frozen = False

    # -- Introspection --

    @property
    def middleware_registry(self) -> MiddlewareRegistry:
        return self._registry

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def get_routes(self) -> list[Route]:
        return self.routes

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(tuple(self._routes))

    # -- Registration --

    def add(
        self,
        method: str,
        path: str,
        handler: HandlerSpec,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec] = (),
    ) -> RouteHandle:
        """Register a route for a single HTTP method.

        Args:
            method: HTTP verb, upper-cased on registration.
            path: Path template, relative to the active group prefix.
            handler: A callable ``(request, response, params)`` or a
                ``(class, method_name)`` pair.
            middleware: Route-specific middleware identifiers.
        """
        return RouteHandle(self, [self._register(method, path, handler, middleware)])

    def get(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("GET", path, handler, middleware)

    def post(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("POST", path, handler, middleware)

    def put(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("PUT", path, handler, middleware)

    def patch(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("PATCH", path, handler, middleware)

    def delete(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("DELETE", path, handler, middleware)

    def options(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        return self.add("OPTIONS", path, handler, middleware)

    def match(
        self,
        methods: Sequence[str],
        path: str,
        handler: HandlerSpec,
        middleware: Any = (),
    ) -> RouteHandle:
        """Register the same route for several methods.

        The returned handle covers every registered route, so naming it
        or appending middleware applies to all of them.
        """
        if isinstance(methods, str):
            methods = [methods]
        if not methods:
            msg = f"match() for {path!r} needs at least one HTTP method"
            raise ConfigurationError(msg)
        indices = [self._register(method, path, handler, middleware) for method in methods]
        return RouteHandle(self, indices)

    def any(self, path: str, handler: HandlerSpec, middleware: Any = ()) -> RouteHandle:
        """Register the route for every standard HTTP method."""
        return self.match(STANDARD_METHODS, path, handler, middleware)

    def redirect(self, from_path: str, to: str, status: int = 302) -> RouteHandle:
        """Register a GET route that redirects to *to*."""
        target = Redirect(url=to, status=status)

        def redirect_handler(request: Any, response: Any, params: dict[str, str]) -> Redirect:
            return target

        return self.add("GET", from_path, redirect_handler)

    def view(self, path: str, template: str, data: Mapping[str, Any] | None = None) -> RouteHandle:
        """Register a GET route that renders *template* with *data*."""
        context = dict(data or {})

        def view_handler(request: Any, response: Any, params: dict[str, str]) -> Template:
            return Template(template, **{**context, "params": params})

        return self.add("GET", path, view_handler)

    # -- Scoping --

    @contextmanager
    def scope(
        self,
        *,
        prefix: str | None = None,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec] | None = None,
    ) -> Iterator[Router]:
        """Temporarily extend the active prefix and/or group middleware.

        The previous state is restored on exit, including when the body
        raises.
        """
        self._check_not_frozen()
        layer = _as_list(middleware) if middleware is not None else None
        if layer is not None:
            self._registry.validate(layer)

        saved_prefixes = list(self._prefixes)
        saved_middleware = [list(group) for group in self._group_middleware]
        try:
            if prefix is not None:
                self._prefixes.append(prefix.rstrip("/") + "/")
            if layer is not None:
                self._group_middleware.append(layer)
            yield self
        finally:
            self._prefixes = saved_prefixes
            self._group_middleware = saved_middleware

    def group(
        self,
        config: Mapping[str, Any] | None = None,
        body: Callable[[], Any] | None = None,
        *,
        prefix: str | None = None,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec] | None = None,
    ) -> Any:
        """Group routes under a prefix and/or middleware.

        Two forms::

            router.group({"prefix": "/api", "middleware": ["cors"]}, register_api)

            with router.group(prefix="/api", middleware=["cors"]):
                router.get("/status", status)

        With a *body* the callback runs inside the scope and ``None`` is
        returned; without one the scope is returned as a context manager.
        """
        self._check_not_frozen()
        config = dict(config or {})
        unknown = set(config) - {"prefix", "middleware"}
        if unknown:
            msg = f"Unknown group option(s): {', '.join(sorted(unknown))}"
            raise ConfigurationError(msg)
        prefix = config.get("prefix", prefix)
        middleware = config.get("middleware", middleware)

        scope = self.scope(prefix=prefix, middleware=middleware)
        if body is None:
            return scope
        with scope:
            body()
        return None

    def middleware(
        self,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec],
        body: Callable[[], Any] | None = None,
    ) -> Any:
        """Shorthand for a group with middleware and no prefix."""
        return self.group(body=body, middleware=_as_list(middleware))

    def global_middleware(self, middleware: MiddlewareSpec | Sequence[MiddlewareSpec]) -> None:
        """Append middleware applied to every route registered afterwards."""
        self._check_not_frozen()
        layer = _as_list(middleware)
        self._registry.validate(layer)
        self._global_middleware.extend(layer)

    # -- Route mutators (reached through RouteHandle) --

    def set_name(self, index: int, name: str) -> None:
        """Name the route at *index*. Unknown indices are ignored."""
        self._check_not_frozen()
        if 0 <= index < len(self._routes):
            self._routes[index].name = name

    def append_middleware(
        self,
        index: int,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec],
    ) -> None:
        """Append middleware to the route at *index*. Unknown indices are ignored."""
        self._check_not_frozen()
        layer = _as_list(middleware)
        self._registry.validate(layer)
        if 0 <= index < len(self._routes):
            self._routes[index].middleware.extend(layer)

    def reset(self) -> None:
        """Drop every route, prefix, and middleware layer."""
        self._check_not_frozen()
        self._routes.clear()
        self._prefixes.clear()
        self._group_middleware.clear()
        self._global_middleware.clear()

    clear_routes = reset

    # -- Lookup --

    def find_by_name(self, name: str) -> Route | None:
        """Return the first route carrying *name*."""
        for route in self._routes:
            if route.name == name:
                return route
        return None

    def match_request(self, method: str, path: str) -> RouteMatch | None:
        """Scan routes in registration order; first match wins."""
        method = method.upper()
        for route in self._routes:
            params = route.matches(method, path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def url_for(self, name: str, params: Mapping[str, Any] | None = None) -> str | None:
        """Build the path of the route named *name*.

        Returns ``None`` when no route carries that name. Raises
        ``MissingRouteParameter`` when a required placeholder has no
        value. Optional placeholders default to the empty string; the
        result has no repeated or trailing slashes (except ``/``).
        """
        route = self.find_by_name(name)
        if route is None:
            return None
        values = dict(params or {})

        def substitute(m: re.Match[str]) -> str:
            placeholder, optional = m.group(1), m.group(2) is not None
            value = values.get(placeholder)
            if value is None:
                if not optional:
                    raise MissingRouteParameter(name, placeholder)
                return ""
            return str(value)

        url = PLACEHOLDER_RE.sub(substitute, route.path)
        url = _SLASHES_RE.sub("/", url)
        return url.rstrip("/") or "/"

    route = url_for

    # -- Lifecycle --

    def freeze(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._frozen = True

    # -- Internal --

    def _register(
        self,
        method: str,
        path: str,
        handler: HandlerSpec,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec],
    ) -> int:
        self._check_not_frozen()
        verb = method.strip().upper()
        if not verb:
            msg = f"Route {path!r} needs a non-empty HTTP method"
            raise ConfigurationError(msg)

        own = _as_list(middleware)
        self._registry.validate(own)
        stack = [*self._global_middleware]
        for layer in self._group_middleware:
            stack.extend(layer)
        stack.extend(own)

        pattern = compile_pattern(self._full_path(path))
        route = Route(
            index=len(self._routes),
            method=verb,
            path=pattern.template,
            handler=to_handler(handler),
            pattern=pattern,
            middleware=stack,
        )
        self._routes.append(route)
        logger.debug("Registered %s %s -> %s", verb, route.path, route.handler.label)
        return route.index

    def _full_path(self, path: str) -> str:
        if not self._prefixes:
            return path
        prefix = "".join(self._prefixes)
        rest = path.lstrip("/")
        if not rest:
            return prefix.rstrip("/") or "/"
        return prefix + rest

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the router after it has started dispatching requests. "
                "Register routes and middleware during application setup."
            )
            raise RuntimeError(msg)
