"""Switchyard application class.

Mutable during setup (routes, middleware aliases, error handlers,
template globals). Frozen when the first lifespan or HTTP scope arrives.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from kida import Environment

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard._internal.invoke import invoke
from switchyard._internal.types import ErrorHandler, Handler, MiddlewareSpec
from switchyard.config import AppConfig
from switchyard.dispatch import BuiltinNotFoundPage, Dispatcher, NotFoundPage, TemplateNotFoundPage
from switchyard.errors import RouteNotFound
from switchyard.middleware.registry import MiddlewareRegistry
from switchyard.routing.router import Router
from switchyard.security.csrf import CSRFConfig, CsrfGuard
from switchyard.server.handler import handle_request
from switchyard.sessions import SessionBackend, create_backend
from switchyard.templating.integration import bind_globals, create_environment

logger = logging.getLogger("switchyard.server")


class App:
    """The switchyard application.

    Usage::

        app = App(AppConfig(secret_key="..."))

        @app.route("/users/{id}", name="users.show")
        def show_user(request, response, params):
            return response.with_json({"id": params["id"]})

        with app.router.group(prefix="/admin", middleware=["auth"]):
            app.router.get("/", admin_home)

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread builds the runtime
        state when several workers receive their first request at once.
    """

    __slots__ = (
        "_csrf",
        "_custom_kida_env",
        "_dispatcher",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_router",
        "_sessions",
        "_shutdown_hooks",
        "_startup_hooks",
        "_template_globals",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        csrf: CSRFConfig | CsrfGuard | None = None,
        middleware_registry: MiddlewareRegistry | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router(middleware_registry=middleware_registry)
        self._csrf = csrf if isinstance(csrf, CsrfGuard) else CsrfGuard(csrf)
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._template_globals: dict[str, Any] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._custom_kida_env = kida_env
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._kida_env: Environment | None = None
        self._dispatcher: Dispatcher | None = None
        self._sessions: SessionBackend | None = None

    # -- Routing --

    @property
    def router(self) -> Router:
        return self._router

    @property
    def csrf(self) -> CsrfGuard:
        return self._csrf

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        name: str | None = None,
        middleware: MiddlewareSpec | Sequence[MiddlewareSpec] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route via decorator. Defaults to GET."""

        def decorator(func: Handler) -> Handler:
            handle = self._router.match(list(methods or ["GET"]), path, func, middleware)
            if name is not None:
                handle.name(name)
            return func

        return decorator

    def url_for(self, name: str, params: dict[str, Any] | None = None) -> str | None:
        return self._router.url_for(name, params)

    def alias_middleware(self, name: str, target: MiddlewareSpec) -> None:
        """Add or replace a middleware alias (``"auth"``, ``"cors"``...)."""
        self._check_not_frozen()
        self._router.middleware_registry.alias(name, target)

    # -- Errors --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator.

        A handler for 404 (or ``RouteNotFound``) replaces the built-in
        404 page at the end of the fallback chain.
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Templates --

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Expose the decorated function to every template, under *name* or its own name."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Lifespan --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Run *func* (sync or async) when the server starts."""
        return self._add_hook(self._startup_hooks, func)

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Run *func* (sync or async) when the server stops."""
        return self._add_hook(self._shutdown_hooks, func)

    def _add_hook(self, hooks: list[Callable[..., Any]], func: Callable[..., Any]) -> Callable[..., Any]:
        self._check_not_frozen()
        hooks.append(func)
        return func

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._dispatcher is not None
        assert self._sessions is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            sessions=self._sessions,
            error_handlers=self._error_handlers,
            kida_env=self._kida_env,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        self._ensure_frozen()

        while (message := await receive())["type"] != "lifespan.shutdown":
            if message["type"] != "lifespan.startup":
                continue
            try:
                await self._run_hooks(self._startup_hooks)
            except Exception as exc:
                logger.exception("Startup hook failed")
                await send({"type": "lifespan.startup.failed", "message": str(exc)})
                return
            await send({"type": "lifespan.startup.complete"})

        await self._run_hooks(self._shutdown_hooks)
        await send({"type": "lifespan.shutdown.complete"})

    async def _run_hooks(self, hooks: Sequence[Callable[..., Any]]) -> None:
        for hook in hooks:
            await invoke(hook)

    # -- Freezing --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Build the runtime state. MUST only be called while holding _freeze_lock."""
        cfg = self.config
        self._router.freeze()

        globals_ = {"route": self._router.url_for, **self._template_globals}
        if self._custom_kida_env is not None:
            env: Environment | None = bind_globals(self._custom_kida_env, globals_)
        elif Path(cfg.template_dir).is_dir():
            env = create_environment(cfg, globals_)
        else:
            env = None
        self._kida_env = env

        not_found: list[NotFoundPage] = []
        if env is not None:
            not_found.extend(TemplateNotFoundPage(env, name) for name in cfg.not_found_templates)
        if 404 not in self._error_handlers and RouteNotFound not in self._error_handlers:
            not_found.append(BuiltinNotFoundPage())

        self._dispatcher = Dispatcher(self._router, csrf=self._csrf, not_found=not_found, kida_env=env)
        self._sessions = create_backend(cfg.secret_key, cfg.session_cookie, cfg.session_max_age)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and error handlers during setup."
            )
            raise RuntimeError(msg)
