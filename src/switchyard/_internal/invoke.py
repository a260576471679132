"""Invoke helpers — call sync or async callables uniformly.

Route handlers, middleware ``handle()`` methods, and error handlers can
be ``def`` or ``async def``. Any code that calls user-provided code
must handle both cases. This module keeps the sync/async check in
exactly one place.

Usage::

    from switchyard._internal.invoke import invoke

    result = await invoke(handler, request, response, params)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable.

    Works with both sync and async callables::

        def show(request, response, params):
            return f"user {params['id']}"

        async def show(request, response, params):
            user = await load_user(params["id"])
            return user.name
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
