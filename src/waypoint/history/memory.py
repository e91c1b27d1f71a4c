"""In-memory history backend.

Keeps a stack of entries and a cursor, like a browser tab without a
browser. Useful for tests, server-side use, and embedding the router in
non-browser runtimes.

Usage::

    history = MemoryHistory()
    router = Router(history, routes)
    await router.push("/")
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from waypoint.history.base import (
    NavigationCallback,
    NavigationDirection,
    NavigationInformation,
    NavigationType,
    normalize_base,
)

# Entry before the first navigation
START = ""


@dataclass(slots=True)
class _Entry:
    location: str
    state: dict[str, Any] = field(default_factory=dict)


class MemoryHistory:
    """A ``RouterHistory`` backed by a list of entries."""

    __slots__ = ("_base", "_listeners", "_position", "_queue")

    def __init__(self, base: str = "") -> None:
        self._base = normalize_base(base)
        self._listeners: list[NavigationCallback] = []
        self._queue: list[_Entry] = [_Entry(START)]
        self._position = 0

    @property
    def base(self) -> str:
        return self._base

    @property
    def location(self) -> str:
        return self._queue[self._position].location

    @property
    def state(self) -> Mapping[str, Any]:
        return self._queue[self._position].state

    @property
    def position(self) -> int:
        """Index of the current entry."""
        return self._position

    @property
    def entries(self) -> list[str]:
        """Locations of every entry, oldest first."""
        return [entry.location for entry in self._queue]

    def _set_location(self, entry: _Entry) -> None:
        self._position += 1
        # Navigating from the middle of the stack drops the forward entries
        del self._queue[self._position :]
        self._queue.append(entry)

    def push(self, to: str, data: Mapping[str, Any] | None = None) -> None:
        self._set_location(_Entry(to, dict(data or {})))

    def replace(self, to: str, data: Mapping[str, Any] | None = None) -> None:
        # Remove the current entry and step back so _set_location lands on the same index
        del self._queue[self._position]
        self._position -= 1
        self._set_location(_Entry(to, dict(data or {})))

    def listen(self, callback: NavigationCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def teardown() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return teardown

    def destroy(self) -> None:
        self._listeners = []
        self._queue = [_Entry(START)]
        self._position = 0

    def go(self, delta: int, trigger: bool = True) -> None:
        from_ = self.location
        # A delta of 0 is considered forward; reloading means nothing in memory
        direction = NavigationDirection.BACK if delta < 0 else NavigationDirection.FORWARD
        self._position = max(0, min(self._position + delta, len(self._queue) - 1))
        if trigger:
            info = NavigationInformation(type=NavigationType.POP, direction=direction, delta=delta)
            for callback in list(self._listeners):
                callback(self.location, from_, info)

    def back(self, trigger: bool = True) -> None:
        self.go(-1, trigger)

    def forward(self, trigger: bool = True) -> None:
        self.go(1, trigger)

    def __repr__(self) -> str:
        return f"<MemoryHistory position={self._position} entries={self.entries!r}>"
