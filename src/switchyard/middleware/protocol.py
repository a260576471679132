"""Middleware protocol and Next type alias.

A middleware is any object with a ``handle`` method::

    class Timing:
        async def handle(self, request: Request, response: Response, next: Next) -> Any:
            start = time.monotonic()
            outcome = await next(request, response)
            ...
            return outcome

No base class required. The pipeline checks the shape, not the lineage,
and only when the middleware is instantiated for a request.

``handle`` may be ``def`` or ``async def``. ``next`` is always a
coroutine function; a synchronous ``handle`` can simply return
``next(request, response)`` and the pipeline awaits it.

Under the dispatcher, awaiting ``next`` yields a ``Response``: inner
outcomes (templates, redirects, strings, ``None``) are converted before
they reach the outer layer.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from switchyard.http.request import Request
from switchyard.http.response import Response

# The remaining chain below a middleware
type Next = Callable[[Request, Response], Awaitable[Any]]


@runtime_checkable
class Middleware(Protocol):
    """Protocol for switchyard middleware.

    Returning without calling ``next`` short-circuits the chain: inner
    middleware and the route handler never run::

        class Maintenance:
            def handle(self, request, response, next):
                return response.with_status(503).with_body("Down for maintenance")
    """

    def handle(self, request: Request, response: Response, next: Next) -> Any: ...


def satisfies_contract(obj: object) -> bool:
    """True if *obj* exposes a callable ``handle`` attribute."""
    return callable(getattr(obj, "handle", None))
