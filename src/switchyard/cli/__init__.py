"""Switchyard CLI — route table inspection.

Entry point registered as ``switchyard`` in ``pyproject.toml``::

    [project.scripts]
    switchyard = "switchyard.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``switchyard`` command."""
    parser = argparse.ArgumentParser(
        prog="switchyard",
        description="Switchyard — an ordered HTTP router for ASGI applications.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- switchyard routes -------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    routes_parser.add_argument("--method", default=None, help="Only show routes for this HTTP method")

    # -- switchyard url ----------------------------------------------------
    url_parser = subparsers.add_parser("url", help="Build the URL of a named route")
    url_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    url_parser.add_argument("name", help="Route name")
    url_parser.add_argument("params", nargs="*", help="Placeholder values as key=value")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from switchyard.cli._routes import run_routes

        run_routes(args)
    elif args.command == "url":
        from switchyard.cli._routes import run_url

        run_url(args)
