"""Shared type aliases used across switchyard modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler — called with (request, response, params)
Handler: TypeAlias = Callable[..., Any]

# Error handler — receives (request, error?) and returns an outcome
ErrorHandler: TypeAlias = Callable[..., Any]

# Anything registration accepts as a handler: a callable or a
# (class-or-import-string, method-name) pair
HandlerSpec: TypeAlias = Callable[..., Any] | tuple[type | str, str]

# Middleware identifier: alias name, import string, class, or instance
MiddlewareSpec: TypeAlias = str | type | object
