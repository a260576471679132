"""The request's error boundary.

Everything the dispatcher (or a handler) raises ends up here and leaves
as a Response: ``HTTPError`` subclasses keep their status, anything else
is a logged 500. Handlers registered with ``App.error()`` are looked up
by exception type first, then by status code.
"""

import inspect
import json as json_module
import logging
from collections.abc import Callable
from typing import Any

from kida import Environment

from switchyard._internal.invoke import invoke
from switchyard.errors import CsrfValidationFailure, HTTPError
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.server.negotiation import negotiate

logger = logging.getLogger("switchyard.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]


def default_error_response(status: int, detail: str, *, as_json: bool) -> Response:
    """Body used when no handler is registered for the failure."""
    if as_json:
        return Response(status=status).with_json({"error": detail, "status": status})
    return Response(body=f"{status} {detail}", status=status, content_type="text/plain; charset=utf-8")


def _find_handler(handlers: ErrorHandlers, exc: Exception, status: int) -> Callable[..., Any] | None:
    return handlers.get(type(exc)) or handlers.get(status)


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
    kida_env: Environment | None,
) -> Response:
    """Run *handler* and negotiate its outcome.

    The handler takes as many of ``(request, exc)`` as it declares, so
    ``def not_found(): ...``, ``def not_found(request): ...`` and
    ``def not_found(request, exc): ...`` all work.
    """
    arity = len(inspect.signature(handler).parameters)
    outcome = await invoke(handler, *(request, exc)[:arity])
    return negotiate(outcome, Response(), kida_env=kida_env)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
) -> Response:
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = _find_handler(error_handlers, exc, exc.status)
    if handler is None:
        as_json = request.expects_json or (isinstance(exc, CsrfValidationFailure) and exc.expects_json)
        detail = exc.detail or f"Error {exc.status}"
        return default_error_response(exc.status, detail, as_json=as_json).with_headers(dict(exc.headers))

    response = await call_error_handler(handler, request, exc, kida_env)
    # A handler that did not pick a status keeps the error's
    return response if response.status != 200 else response.with_status(exc.status)


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
    debug: bool,
) -> Response:
    logger.exception("500 %s %s", request.method, request.path)

    handler = _find_handler(error_handlers, exc, 500)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, kida_env)
        return response if response.status != 200 else response.with_status(500)

    detail = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return default_error_response(500, detail, as_json=request.expects_json)
