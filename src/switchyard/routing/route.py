"""Route, RouteMatch, and the fluent RouteHandle."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from switchyard._internal.types import MiddlewareSpec
from switchyard.routing.handlers import RouteHandler
from switchyard.routing.pattern import CompiledPattern

if TYPE_CHECKING:
    from switchyard.routing.router import Router


@dataclass(slots=True)
class Route:
    """A registered route.

    Created during registration. After that only ``name`` and
    ``middleware`` change, and only through ``Router.set_name`` and
    ``Router.append_middleware`` before the router is frozen.
    """

    index: int
    method: str
    path: str
    handler: RouteHandler
    pattern: CompiledPattern
    middleware: list[MiddlewareSpec] = field(default_factory=list)
    name: str | None = None

    def matches(self, method: str, path: str) -> dict[str, str] | None:
        """Return captured parameters if *method* and *path* match this route."""
        if method != self.method:
            return None
        return self.pattern.match(path)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: dict[str, str]


class RouteHandle:
    """Fluent handle returned by route registration.

    Wraps the registration indices (one per verb for ``match()`` and
    ``any()``) so the caller can name the route or append middleware::

        router.get("/users/{id}", show_user).name("users.show").middleware("auth")
    """

    __slots__ = ("_indices", "_router")

    def __init__(self, router: Router, indices: Sequence[int]) -> None:
        self._router = router
        self._indices = tuple(indices)

    @property
    def indices(self) -> tuple[int, ...]:
        return self._indices

    @property
    def routes(self) -> list[Route]:
        all_routes = self._router.routes
        return [all_routes[i] for i in self._indices if i < len(all_routes)]

    def name(self, name: str) -> RouteHandle:
        """Assign *name* to the route(s) behind this handle."""
        for index in self._indices:
            self._router.set_name(index, name)
        return self

    def middleware(self, middleware: MiddlewareSpec | Sequence[MiddlewareSpec]) -> RouteHandle:
        """Append middleware after the route's existing middleware."""
        for index in self._indices:
            self._router.append_middleware(index, middleware)
        return self

    middlewares = middleware

    def __repr__(self) -> str:
        return f"RouteHandle(indices={self._indices!r})"
