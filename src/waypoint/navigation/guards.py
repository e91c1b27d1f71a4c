"""Navigation guards as tagged entries.

Guards come from four places: global hooks on the router, ``before_enter``
on route records, guards registered by mounted views on a record
(``leave_guards`` / ``update_guards``), and ``before_route_*`` hooks on
the view components themselves. All of them are normalized into
``GuardEntry(kind, fn, record, view)`` and run by ``run_guard``.

A guard is a sync or async callable::

    def guard(to, from_): ...            # settle by returning
    def guard(to, from_, next): ...      # settle by calling next(value)

Settling values:

- ``None`` / ``True``                     -> continue
- ``False``                               -> abort
- ``str`` / mapping / ``RouteLocation``   -> redirect there
- an exception (raised, or given to next) -> error
- a callable, from ``before_route_enter`` -> continue, and call it with
  the view instance once the view is mounted
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from waypoint._internal.invoke import accepts_next, invoke
from waypoint._internal.types import Guard
from waypoint.errors import ErrorTypes, NavigationFailure, WaypointError
from waypoint.location import RouteLocation
from waypoint.routing.route import RouteRecord

logger = logging.getLogger("waypoint.navigation")


class GuardKind(Enum):
    """Where a guard came from. Values of the component kinds are the hook names."""

    COMPONENT_LEAVE = "before_route_leave"
    LEAVE = "leave"
    BEFORE_EACH = "before_each"
    COMPONENT_UPDATE = "before_route_update"
    UPDATE = "update"
    BEFORE_ENTER = "before_enter"
    COMPONENT_ENTER = "before_route_enter"
    BEFORE_RESOLVE = "before_resolve"


@dataclass(frozen=True, slots=True)
class GuardEntry:
    """One guard queued for a stage.

    ``callbacks`` is the enter-callback list of ``record`` for ``view``,
    captured when the entry was built. A callback returned by the guard
    is only queued if that list is still the record's current one.
    """

    kind: GuardKind
    fn: Guard
    record: RouteRecord | None = None
    view: str | None = None
    callbacks: list[Callable[[Any], Any]] | None = None

    def __repr__(self) -> str:
        name = getattr(self.fn, "__qualname__", repr(self.fn))
        where = f" {self.record.path!r}" if self.record else ""
        return f"<GuardEntry {self.kind.name} {name}{where}>"


def global_guards(kind: GuardKind, guards: Iterable[Guard]) -> list[GuardEntry]:
    """Entries for router-level hooks (``before_each`` / ``before_resolve``)."""
    return [GuardEntry(kind, guard) for guard in guards]


def record_guards(kind: GuardKind, records: Iterable[RouteRecord]) -> list[GuardEntry]:
    """Entries for guards stored on records (leave, update, before_enter)."""
    entries: list[GuardEntry] = []
    for record in records:
        if kind is GuardKind.LEAVE:
            guards = list(record.leave_guards)
        elif kind is GuardKind.UPDATE:
            guards = list(record.update_guards)
        elif kind is GuardKind.BEFORE_ENTER:
            guards = list(record.before_enter)
        else:
            msg = f"{kind!r} is not a record guard kind"
            raise ValueError(msg)
        entries.extend(GuardEntry(kind, guard, record) for guard in guards)
    return entries


def component_guards(kind: GuardKind, records: Iterable[RouteRecord]) -> list[GuardEntry]:
    """Entries for ``before_route_*`` hooks declared on view components.

    Leave and update hooks are looked up on the mounted instance and are
    skipped for views that are not mounted. Enter hooks are looked up on
    the component itself since no instance exists yet.
    """
    hook = kind.value
    entries: list[GuardEntry] = []
    for record in records:
        for view, component in record.components.items():
            if kind is GuardKind.COMPONENT_ENTER:
                guard = getattr(component, hook, None)
                callbacks = record.enter_callbacks.setdefault(view, []) if guard else None
            else:
                instance = record.instances.get(view)
                if instance is None:
                    continue
                guard = getattr(instance, hook, None)
                callbacks = None
            if guard is None:
                continue
            if not callable(guard):
                logger.warning(
                    'Component "%s" at "%s" has a non-callable %s', view, record.path, hook
                )
                continue
            entries.append(GuardEntry(kind, guard, record, view, callbacks))
    return entries


async def run_guard(
    entry: GuardEntry,
    to: RouteLocation,
    from_: RouteLocation,
) -> NavigationFailure | None:
    """Run one guard and interpret what it settled with.

    Returns ``None`` to continue, or a ``NavigationFailure`` tagged
    ``NAVIGATION_ABORTED`` or ``NAVIGATION_GUARD_REDIRECT``. Errors raised
    by the guard propagate.
    """
    if accepts_next(entry.fn):
        value = await _call_with_next(entry, to, from_)
    else:
        value = await invoke(entry.fn, to, from_)
    return _interpret(entry, value, to, from_)


async def _call_with_next(entry: GuardEntry, to: RouteLocation, from_: RouteLocation) -> Any:
    settled: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    def next_(value: Any = None) -> None:
        if settled.done():
            logger.warning(
                'The "next" callback was called more than once in one navigation guard '
                'when going from "%s" to "%s".',
                from_.full_path,
                to.full_path,
            )
            return
        settled.set_result(value)

    result = entry.fn(to, from_, next_)
    if inspect.isawaitable(result):
        await result
        if not settled.done():
            msg = f'The "next" callback was never called inside of {entry!r}'
            raise WaypointError(msg)
    return await settled


def _interpret(
    entry: GuardEntry,
    value: Any,
    to: RouteLocation,
    from_: RouteLocation,
) -> NavigationFailure | None:
    if value is False:
        return NavigationFailure(ErrorTypes.NAVIGATION_ABORTED, to=to, from_=from_)
    if isinstance(value, BaseException):
        raise value
    if isinstance(value, (str, Mapping, RouteLocation)):
        return NavigationFailure(
            ErrorTypes.NAVIGATION_GUARD_REDIRECT, to=to, from_=from_, redirect_to=value
        )
    if callable(value):
        _queue_enter_callback(entry, value)
    return None


def _queue_enter_callback(entry: GuardEntry, callback: Callable[[Any], Any]) -> None:
    if entry.kind is not GuardKind.COMPONENT_ENTER or entry.record is None or entry.view is None:
        return
    # The record may have been reset since the entry was built
    if entry.record.enter_callbacks.get(entry.view) is entry.callbacks and entry.callbacks is not None:
        entry.callbacks.append(callback)
