"""Waypoint exception hierarchy.

Shared across the matcher, the navigation pipeline, and the router so
every module raises and catches the same types.

Two families live here:

- **Raised** errors (``ConfigurationError``, ``ParamError``,
  ``MatcherNotFound``) signal programming or route-table mistakes.
- **Returned** failures (``NavigationFailure``) describe a navigation that
  did not commit. ``push()`` resolves with them instead of raising.
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import Any


class ErrorTypes(IntFlag):
    """Tags for matcher and navigation errors.

    Flags so callers can test for several kinds at once::

        is_navigation_failure(result, ErrorTypes.NAVIGATION_ABORTED | ErrorTypes.NAVIGATION_CANCELLED)
    """

    MATCHER_NOT_FOUND = 1
    NAVIGATION_GUARD_REDIRECT = 2
    NAVIGATION_ABORTED = 4
    NAVIGATION_CANCELLED = 8
    NAVIGATION_DUPLICATED = 16


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when the route table or router configuration is invalid.

    Typically raised from ``add_route()`` at registration time.
    """


class InvalidRedirectError(ConfigurationError):
    """A redirect target carries neither a ``name`` nor a ``path``."""

    def __init__(self, target: Any, from_path: str) -> None:
        self.target = target
        self.from_path = from_path
        super().__init__(
            f"Invalid redirect found: {target!r} when navigating to {from_path!r}. "
            "A redirect must contain a name or path."
        )


class ParamError(WaypointError, ValueError):
    """Params cannot be stringified into a path (missing or wrong shape)."""


@dataclass(frozen=True, slots=True)
class MatcherNotFound(WaypointError):  # noqa: N818 — mirrors the MATCHER_NOT_FOUND tag
    """No record matched the location, by name or by path."""

    location: Any
    current_location: Any = None

    @property
    def type(self) -> ErrorTypes:
        return ErrorTypes.MATCHER_NOT_FOUND

    def __str__(self) -> str:
        return f"No match for {self.location!r}"


@dataclass(frozen=True, slots=True)
class NavigationFailure(WaypointError):
    """A navigation that did not commit.

    Returned (not raised) by ``Router.push()`` and friends. ``to`` and
    ``from_`` are the resolved locations involved. For the internal
    ``NAVIGATION_GUARD_REDIRECT`` signal, ``redirect_to`` carries the raw
    target the guard asked for.
    """

    type: ErrorTypes
    to: Any
    from_: Any
    redirect_to: Any = None

    def __str__(self) -> str:
        to_path = getattr(self.to, "full_path", self.to)
        from_path = getattr(self.from_, "full_path", self.from_)
        if self.type is ErrorTypes.NAVIGATION_ABORTED:
            return f"Navigation aborted from {from_path!r} to {to_path!r} via a navigation guard."
        if self.type is ErrorTypes.NAVIGATION_CANCELLED:
            return (
                f"Navigation cancelled from {from_path!r} to {to_path!r} "
                "with a new navigation."
            )
        if self.type is ErrorTypes.NAVIGATION_DUPLICATED:
            return f"Avoided redundant navigation to current location: {from_path!r}."
        return (
            f"Redirected from {from_path!r} to {self.redirect_to!r} "
            "via a navigation guard."
        )


def is_navigation_failure(error: Any, types: ErrorTypes | None = None) -> bool:
    """Check whether *error* is a ``NavigationFailure``, optionally of *types*."""
    if not isinstance(error, NavigationFailure):
        return False
    return types is None or bool(error.type & types)
