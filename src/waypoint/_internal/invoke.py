"""Invoke helpers — call sync or async callables uniformly.

Guards, redirect functions, after-hooks and the scroll hook can be
``def`` or ``async def``. Any code that calls a user-provided callable
must handle both cases. This module keeps the check in one place.

Usage::

    from waypoint._internal.invoke import invoke

    result = await invoke(guard, to, from_)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync — returns immediately
        def require_login(to, from_):
            return {"name": "login"} if not session.user else None

        # async — returns a coroutine, awaited automatically
        async def require_login(to, from_):
            user = await session.load_user()
            return {"name": "login"} if user is None else None
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def accepts_next(func: Any) -> bool:
    """Return True when *func* takes a third positional ``next`` argument.

    Guards declared as ``(to, from_, next)`` settle by calling ``next``
    instead of returning a value.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind is p.VAR_POSITIONAL for p in signature.parameters.values()):
        return False
    return len(positional) >= 3
