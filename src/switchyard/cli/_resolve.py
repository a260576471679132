"""Import resolution — ``"module:attribute"`` strings to a Router.

Accepts an ``App`` (its router is used), a ``Router``, or a zero-argument
factory returning either.
"""

import importlib

from switchyard.app import App
from switchyard.routing.router import Router


def resolve_router(import_string: str) -> Router:
    """Resolve an import string to a Router.

    When the attribute portion is omitted it defaults to ``"app"``
    (``"myapp"`` resolves to ``myapp.app``).

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is neither an App nor a Router.
    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name or "app")

    if callable(obj) and not isinstance(obj, App | Router):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, App):
        return obj.router
    if isinstance(obj, Router):
        return obj

    msg = f"{import_string!r} resolved to {type(obj).__name__}, not a switchyard App or Router"
    raise TypeError(msg)
