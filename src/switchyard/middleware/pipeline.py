"""Onion pipeline construction.

The first middleware in the list is the outermost layer. The chain is
built by folding the list in reverse, each middleware wrapping the
chain built so far as its ``next``.

When a *normalize* callable is given, every layer's outcome (and the
terminal's) is passed through it, so a middleware that awaits ``next``
always gets a ``Response`` back whatever the inner layer returned.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from switchyard._internal.invoke import invoke
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.middleware.protocol import Middleware, Next

type Normalize = Callable[[Any, Request, Response], Awaitable[Any]]


def _link(middleware: Middleware, inner: Next, normalize: Normalize | None) -> Next:
    async def call(request: Request, response: Response) -> Any:
        outcome = await invoke(middleware.handle, request, response, inner)
        if normalize is not None:
            return await normalize(outcome, request, response)
        return outcome

    call.__qualname__ = f"{type(middleware).__qualname__}.handle"
    return call


def _terminal(terminal: Next, normalize: Normalize) -> Next:
    async def call(request: Request, response: Response) -> Any:
        return await normalize(await terminal(request, response), request, response)

    return call


def build_pipeline(
    middleware: Sequence[Middleware],
    terminal: Next,
    *,
    normalize: Normalize | None = None,
) -> Next:
    """Wrap *terminal* in *middleware*, first entry outermost."""
    chain = terminal if normalize is None else _terminal(terminal, normalize)
    for mw in reversed(middleware):
        chain = _link(mw, chain, normalize)
    return chain
