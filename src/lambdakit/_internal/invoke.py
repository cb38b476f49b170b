"""Invoke helpers — call sync or async handlers uniformly.

Chain handlers can be ``def`` or ``async def``, and may accept
``(request, next)`` or just ``(request)``. Code that calls a
user-provided handler goes through this module so both checks live in
exactly one place.

Usage::

    from lambdakit._internal.invoke import invoke, wants_next

    if wants_next(handler):
        result = await invoke(handler, request, next)
    else:
        result = await invoke(handler, request)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def wants_next(handler: Any) -> bool:
    """True when *handler* takes a second positional (the ``next`` continuation).

    Handlers with ``*args`` are treated as wanting it. Callable objects
    are inspected through their ``__call__``.
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return True
    positional = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 2
