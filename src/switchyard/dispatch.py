"""Request dispatch — match, CSRF gate, middleware pipeline, 404 fallback.

The dispatcher owns no state of its own beyond its collaborators. It
never catches exceptions raised by handlers or middleware; those
propagate to the App's error boundary.
"""

import json as json_module
import logging
from collections.abc import MutableMapping, Sequence
from typing import Any, Protocol

from kida import Environment
from kida.environment.exceptions import TemplateNotFoundError

from switchyard.errors import RouteNotFound
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.middleware.pipeline import build_pipeline
from switchyard.routing.router import Router
from switchyard.security.csrf import UNSAFE_METHODS, CsrfGuard
from switchyard.server.negotiation import HTML, negotiate

logger = logging.getLogger("switchyard.dispatch")


class NotFoundPage(Protocol):
    """One candidate in the 404 fallback chain."""

    def exists(self) -> bool: ...

    def render(self, request: Request, response: Response) -> Response: ...


class TemplateNotFoundPage:
    """Render a kida template as the 404 page, if the template exists."""

    __slots__ = ("_env", "name")

    def __init__(self, env: Environment, name: str) -> None:
        self._env = env
        self.name = name

    def exists(self) -> bool:
        try:
            self._env.get_template(self.name)
        except TemplateNotFoundError:
            return False
        return True

    def render(self, request: Request, response: Response) -> Response:
        html = self._env.get_template(self.name).render({"path": request.path, "method": request.method})
        return response.with_status(404).with_body(html).with_content_type(HTML)


_BUILTIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>404 - Page Not Found</title>
</head>
<body>
<h1>404</h1>
<p>The page you are looking for does not exist.</p>
</body>
</html>
"""


class BuiltinNotFoundPage:
    """Last resort 404 page. JSON for clients that expect JSON."""

    __slots__ = ()

    def exists(self) -> bool:
        return True

    def render(self, request: Request, response: Response) -> Response:
        response = response.with_status(404)
        if request.expects_json:
            body = json_module.dumps({"error": "Not Found", "status": 404})
            return response.with_body(body).with_content_type("application/json")
        return response.with_body(_BUILTIN_PAGE).with_content_type(HTML)


class Dispatcher:
    """Route one request through the router.

    Usage::

        dispatcher = Dispatcher(router, csrf=CsrfGuard())
        response = await dispatcher.dispatch(request, Response(), session)
    """

    __slots__ = ("_csrf", "_kida_env", "_not_found", "_router")

    def __init__(
        self,
        router: Router,
        *,
        csrf: CsrfGuard | None = None,
        not_found: Sequence[NotFoundPage] = (),
        kida_env: Environment | None = None,
    ) -> None:
        self._router = router
        self._csrf = csrf or CsrfGuard()
        self._not_found = tuple(not_found)
        self._kida_env = kida_env

    @property
    def router(self) -> Router:
        return self._router

    @property
    def csrf(self) -> CsrfGuard:
        return self._csrf

    async def dispatch(
        self,
        request: Request,
        response: Response,
        session: MutableMapping[str, Any] | None = None,
    ) -> Response:
        """Dispatch *request* and return the final response.

        Raises ``RouteNotFound`` when nothing matches and no 404 page
        exists, and ``CsrfValidationFailure`` when a gated request fails
        verification. In both cases no middleware or handler runs.
        """
        self._router.freeze()

        method = request.method.upper()
        match = self._router.match_request(method, request.path)
        if match is None:
            logger.debug("No route for %s %s", request.method, request.path)
            return self.not_found(request, response)

        route = match.route
        logger.debug("Matched %s %s -> %s", request.method, request.path, route.handler.label)
        request = request.with_path_params(match.params)

        if method in UNSAFE_METHODS:
            await self._csrf.check(request, session if session is not None else {})

        middleware = self._router.middleware_registry.instantiate_all(route.middleware)

        async def terminal(req: Request, resp: Response) -> Any:
            return await route.handler.invoke(req, resp, match.params)

        pipeline = build_pipeline(middleware, terminal, normalize=self._normalize)
        return await pipeline(request, response)

    def not_found(self, request: Request, response: Response) -> Response:
        """Render the first existing 404 page, or raise ``RouteNotFound``."""
        for page in self._not_found:
            if page.exists():
                return page.render(request, response)
        raise RouteNotFound(f"No route for {request.method} {request.path}")

    async def _normalize(self, outcome: Any, request: Request, response: Response) -> Response:
        return negotiate(outcome, response, kida_env=self._kida_env)
