"""Routing — ordered route table, path templates, URL generation.

    Router -- registration, groups, lookup, ``url_for``
    Route, RouteMatch, RouteHandle -- table entries and the fluent handle
    compile_pattern -- path template to anchored regex
"""

__all__ = [
    "CompiledPattern",
    "Route",
    "RouteHandle",
    "RouteMatch",
    "Router",
    "compile_pattern",
]


def __getattr__(name: str) -> object:
    """Lazy exports; ``switchyard.middleware`` imports from this package."""
    if name == "Router":
        from switchyard.routing.router import Router

        return Router

    if name in ("Route", "RouteHandle", "RouteMatch"):
        from switchyard.routing import route

        return getattr(route, name)

    if name in ("CompiledPattern", "compile_pattern"):
        from switchyard.routing import pattern

        return getattr(pattern, name)

    msg = f"module 'switchyard.routing' has no attribute {name!r}"
    raise AttributeError(msg)
