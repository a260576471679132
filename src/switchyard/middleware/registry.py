"""Middleware alias registry.

Maps short names used in route definitions (``"auth"``, ``"cors"``,
``"throttle"``...) to concrete middleware targets. A target is a class
(instantiated once per request), a zero-argument factory, a ready
instance, or an import string for any of those.

Identifiers are resolved when a route is registered so a typo fails at
startup with ``ConfigurationError``. Whether the resolved object really
implements ``handle(request, response, next)`` is checked when the
pipeline is built for a request, raising ``InvalidMiddlewareContract``.
"""

import inspect
import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from switchyard._internal.types import MiddlewareSpec
from switchyard.errors import ConfigurationError, InvalidMiddlewareContract
from switchyard.middleware.protocol import Middleware, satisfies_contract
from switchyard.routing.handlers import import_string

logger = logging.getLogger("switchyard.middleware")

# Application-provided middleware live in ``app.middlewares``; the
# framework ships CORS and throttling.
DEFAULT_ALIASES: dict[str, MiddlewareSpec] = {
    "auth": "app.middlewares:AuthMiddleware",
    "guest": "app.middlewares:GuestMiddleware",
    "jwt": "app.middlewares:JwtMiddleware",
    "cors": "switchyard.middleware.builtin:CORSMiddleware",
    "throttle": "switchyard.middleware.throttle:default_throttle",
}


def _is_import_string(value: str) -> bool:
    return ":" in value or "." in value


class MiddlewareRegistry:
    """Alias table plus a resolution cache for string identifiers.

    Usage::

        registry = MiddlewareRegistry()
        registry.alias("auth", SessionAuth)
        registry.alias("admin", "myapp.middleware:AdminOnly")

        router = Router(middleware_registry=registry)
        router.get("/admin", dashboard, ["auth", "admin"])
    """

    __slots__ = ("_aliases", "_cache", "_lock")

    def __init__(self, aliases: Mapping[str, MiddlewareSpec] | None = None) -> None:
        self._aliases: dict[str, MiddlewareSpec] = dict(DEFAULT_ALIASES)
        if aliases:
            self._aliases.update(aliases)
        self._cache: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def aliases(self) -> Mapping[str, MiddlewareSpec]:
        return dict(self._aliases)

    def alias(self, name: str, target: MiddlewareSpec) -> None:
        """Add or replace the alias *name*."""
        with self._lock:
            self._aliases[name] = target
            self._cache.pop(name, None)

    def canonical(self, identifier: MiddlewareSpec) -> MiddlewareSpec:
        """Map an alias to its target; anything else passes through unchanged."""
        if isinstance(identifier, str):
            return self._aliases.get(identifier, identifier)
        return identifier

    def resolve(self, identifier: MiddlewareSpec) -> Any:
        """Resolve *identifier* to a class, factory, or instance.

        Raises ``ConfigurationError`` for unknown aliases and import
        strings that cannot be imported.
        """
        if not isinstance(identifier, str):
            return identifier
        cached = self._cache.get(identifier)
        if cached is not None:
            return cached

        target = self.canonical(identifier)
        if isinstance(target, str):
            if not _is_import_string(target):
                known = ", ".join(sorted(self._aliases))
                msg = f"Unknown middleware alias {identifier!r}. Known aliases: {known}"
                raise ConfigurationError(msg)
            try:
                target = import_string(target)
            except (ImportError, AttributeError) as exc:
                msg = f"Cannot import middleware {identifier!r} ({self.canonical(identifier)!r}): {exc}"
                raise ConfigurationError(msg) from exc

        with self._lock:
            self._cache[identifier] = target
        return target

    def validate(self, identifiers: Iterable[MiddlewareSpec]) -> None:
        """Resolve every identifier, failing fast on the first bad one."""
        for identifier in identifiers:
            self.resolve(identifier)

    def instantiate(self, identifier: MiddlewareSpec) -> Middleware:
        """Produce the middleware object used for one request.

        Classes are instantiated with no arguments, objects that already
        satisfy the contract are used as is, and other callables are
        treated as factories.
        """
        target = self.resolve(identifier)

        if inspect.isclass(target):
            instance = target()
        elif satisfies_contract(target):
            instance = target
        elif callable(target):
            instance = target()
        else:
            raise InvalidMiddlewareContract(identifier, target)

        if not satisfies_contract(instance):
            logger.error("Middleware %r does not implement handle()", identifier)
            raise InvalidMiddlewareContract(identifier, instance)
        return instance

    def instantiate_all(self, identifiers: Iterable[MiddlewareSpec]) -> list[Middleware]:
        return [self.instantiate(identifier) for identifier in identifiers]
