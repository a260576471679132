"""``switchyard routes`` and ``switchyard url``.

Resolve an import string to a router and print its route table in
registration order (the order requests are matched in), or build the
URL of a named route.
"""

import argparse
import sys

from switchyard.cli._resolve import resolve_router
from switchyard.errors import MissingRouteParameter
from switchyard.routing.router import Router


def _load(import_string: str) -> Router:
    try:
        return resolve_router(import_string)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def _middleware_label(identifier: object) -> str:
    if isinstance(identifier, str):
        return identifier
    return getattr(identifier, "__name__", None) or type(identifier).__name__


def format_routes(router: Router, method: str | None = None) -> list[str]:
    """Render the route table as aligned text lines."""
    routes = [r for r in router.routes if method is None or r.method == method.upper()]
    if not routes:
        return []

    rows: list[tuple[str, str, str, str]] = []
    for route in routes:
        handler_name = route.handler.label
        if route.name:
            handler_name = f"{handler_name} ({route.name})"
        middleware = ", ".join(_middleware_label(m) for m in route.middleware)
        rows.append((route.method, route.path, handler_name, middleware))

    max_method = max(6, *(len(r[0]) for r in rows))  # "METHOD" header
    max_path = max(4, *(len(r[1]) for r in rows))  # "PATH" header
    max_handler = max(7, *(len(r[2]) for r in rows))  # "HANDLER" header

    fmt = f"{{:<{max_method}}}  {{:<{max_path}}}  {{:<{max_handler}}}  {{}}"
    lines = [fmt.format("METHOD", "PATH", "HANDLER", "MIDDLEWARE").rstrip()]
    lines.append("-" * min(max_method + max_path + max_handler + 16, 80))
    lines.extend(fmt.format(*row).rstrip() for row in rows)
    return lines


def run_routes(args: argparse.Namespace) -> None:
    """Print the route table for ``args.app``."""
    router = _load(args.app)
    lines = format_routes(router, args.method)
    if not lines:
        print("No routes registered.")
        return
    for line in lines:
        print(line)


def run_url(args: argparse.Namespace) -> None:
    """Print ``router.url_for(args.name, params)``."""
    router = _load(args.app)
    params: dict[str, str] = {}
    for item in args.params:
        key, sep, value = item.partition("=")
        if not sep:
            print(f"Error: parameter {item!r} is not key=value", file=sys.stderr)
            raise SystemExit(2)
        params[key] = value

    try:
        url = router.url_for(args.name, params)
    except MissingRouteParameter as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    if url is None:
        print(f"Error: no route named {args.name!r}", file=sys.stderr)
        raise SystemExit(1)
    print(url)
