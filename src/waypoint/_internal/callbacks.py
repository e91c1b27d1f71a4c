"""Ordered callback registries.

Guards and handlers registered on the router keep their registration
order and can be removed individually through the function returned by
``add()``::

    guards = CallbackList()
    remove = guards.add(check_auth)
    ...
    remove()
"""

import contextlib
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class CallbackList(Generic[T]):
    """A list of callbacks with remover functions."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: list[T] = []

    def add(self, handler: T) -> Callable[[], None]:
        """Register *handler* and return a function that removes it again."""
        self._handlers.append(handler)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return remove

    def handlers(self) -> list[T]:
        """Return a snapshot of the handlers in registration order."""
        return list(self._handlers)

    def reset(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)
