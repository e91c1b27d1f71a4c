"""History contract shared by every backend.

A backend is any object matching ``RouterHistory``. No base class
required. The router checks the shape, not the lineage.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, TypeAlias, runtime_checkable


class NavigationType(Enum):
    """How a history change happened."""

    POP = "pop"
    PUSH = "push"


class NavigationDirection(Enum):
    """Direction of a pop navigation relative to the previous entry."""

    BACK = "back"
    FORWARD = "forward"
    UNKNOWN = ""


@dataclass(frozen=True, slots=True)
class NavigationInformation:
    """Details passed to history listeners with each location change."""

    type: NavigationType
    direction: NavigationDirection
    delta: int


# Listener signature: (to_full_path, from_full_path, info)
NavigationCallback: TypeAlias = Callable[[str, str, NavigationInformation], Any]


@runtime_checkable
class RouterHistory(Protocol):
    """What the router needs from a history backend.

    ``location`` is the current full path (path + query + hash) without
    the base. ``push``/``replace`` change it without notifying listeners;
    ``go`` moves through existing entries and notifies listeners unless
    *trigger* is false.
    """

    @property
    def base(self) -> str: ...

    @property
    def location(self) -> str: ...

    @property
    def state(self) -> Mapping[str, Any]: ...

    def push(self, to: str, data: Mapping[str, Any] | None = None) -> None: ...
    def replace(self, to: str, data: Mapping[str, Any] | None = None) -> None: ...
    def go(self, delta: int, trigger: bool = True) -> None: ...
    def listen(self, callback: NavigationCallback) -> Callable[[], None]: ...
    def destroy(self) -> None: ...


def normalize_base(base: str | None) -> str:
    """Normalize a history base: leading slash, no trailing slash."""
    if not base:
        return ""
    if not base.startswith("/"):
        base = "/" + base
    return base.rstrip("/")
