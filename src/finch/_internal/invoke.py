"""Invoke helpers: call sync or async handlers uniformly.

Finch handlers can be ``def`` or ``async def``. Any code that calls a
user-provided handler must handle both cases. This module provides a
single helper so the sync/async check lives in exactly one place.

Usage::

    from finch._internal.invoke import invoke

    result = await invoke(handler, request, response, next)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it is awaitable.

    A sync handler may hand its continuation back instead of awaiting
    it::

        def guard(request, response, next):
            if not request.cookies.get("session"):
                return response.redirect("/login")
            return next()  # awaited here
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
