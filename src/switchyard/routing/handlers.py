"""Route handler references.

A route handler is either a plain callable or a ``(class, method)``
pair. Both are normalised at registration into one of two variants
that share a single ``invoke(request, response, params)`` entry point:

* ``FunctionHandler`` — calls the function directly.
* ``MethodHandler`` — instantiates the class (no arguments) and calls
  the named method. The class may be given as an import string
  (``"app.controllers:UserController"``); it is imported on first use
  and the resolution is cached.
"""

import importlib
import inspect
import threading
from dataclasses import dataclass, field
from typing import Any

from switchyard._internal.invoke import invoke
from switchyard._internal.types import Handler
from switchyard.errors import HandlerResolutionError


def import_string(target: str) -> Any:
    """Import ``"module:attr"`` or ``"module.attr"`` and return the attribute.

    Raises ``ImportError`` or ``AttributeError`` unchanged so callers
    can wrap them in a domain error.
    """
    if ":" in target:
        module_path, _, attr = target.partition(":")
    else:
        module_path, _, attr = target.rpartition(".")
    if not module_path or not attr:
        msg = f"{target!r} is not an import string (expected 'module:attribute')"
        raise ImportError(msg)
    module = importlib.import_module(module_path)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


@dataclass(frozen=True, slots=True)
class FunctionHandler:
    """A plain callable handler."""

    func: Handler

    @property
    def label(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)

    async def invoke(self, request: Any, response: Any, params: dict[str, str]) -> Any:
        return await invoke(self.func, request, response, params)


@dataclass(slots=True)
class MethodHandler:
    """A ``(class, method)`` pair, instantiated per call."""

    target: type | str
    method_name: str
    _resolved: type | None = field(default=None, init=False, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def label(self) -> str:
        name = self.target if isinstance(self.target, str) else self.target.__qualname__
        return f"{name}.{self.method_name}"

    def resolve_class(self) -> type:
        """Return the handler class, importing it on first call."""
        if self._resolved is not None:
            return self._resolved
        with self._lock:
            if self._resolved is None:
                self._resolved = self._load()
        return self._resolved

    def _load(self) -> type:
        target = self.target
        if isinstance(target, str):
            try:
                target = import_string(target)
            except (ImportError, AttributeError) as exc:
                msg = f"Cannot resolve handler class {self.target!r}: {exc}"
                raise HandlerResolutionError(msg) from exc
        if not inspect.isclass(target):
            msg = f"Handler target {self.target!r} is not a class"
            raise HandlerResolutionError(msg)
        if not callable(getattr(target, self.method_name, None)):
            msg = f"Handler class {target.__qualname__} has no method {self.method_name!r}"
            raise HandlerResolutionError(msg)
        return target

    async def invoke(self, request: Any, response: Any, params: dict[str, str]) -> Any:
        instance = self.resolve_class()()
        return await invoke(getattr(instance, self.method_name), request, response, params)


type RouteHandler = FunctionHandler | MethodHandler


def to_handler(spec: Any) -> RouteHandler:
    """Normalise a registration-time handler value.

    Accepts a callable, a ``(class_or_import_string, method_name)`` pair
    (tuple or list), or an already-built handler variant. Class objects
    are checked eagerly; import strings are resolved on first dispatch.
    """
    if isinstance(spec, FunctionHandler | MethodHandler):
        return spec
    if isinstance(spec, tuple | list) and len(spec) == 2:
        target, method_name = spec
        if isinstance(target, str | type) and isinstance(method_name, str):
            handler = MethodHandler(target, method_name)
            if isinstance(target, type):
                handler.resolve_class()
            return handler
    if callable(spec) and not isinstance(spec, type):
        return FunctionHandler(spec)
    msg = (
        f"Cannot use {spec!r} as a route handler; expected a function or a "
        "(class, method_name) pair"
    )
    raise HandlerResolutionError(msg)
