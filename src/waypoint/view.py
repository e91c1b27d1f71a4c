"""Presentation-layer side of the record contract.

Whatever renders matched components (a template layer, a test harness,
a widget toolkit) tells the router about mounted instances through
these helpers. The router only reads what they write, and clears it
when a record stops being matched.

Usage::

    record = router.current_route.matched[-1]
    mount_view(record, "default", page)
    remove = on_before_route_leave(record, confirm_unsaved_changes)
    props = view_props(router.current_route, record, "default")
"""

from collections.abc import Callable, Mapping
from typing import Any

from waypoint._internal.types import Guard
from waypoint.location import RouteLocation
from waypoint.routing.route import RouteRecord


def mount_view(record: RouteRecord, view: str, instance: Any) -> None:
    """Associate a mounted *instance* with *record*'s *view*.

    Callbacks queued by ``before_route_enter`` for that view run now,
    with the instance, and are dropped.
    """
    record.instances[view] = instance
    callbacks = record.enter_callbacks.pop(view, [])
    for callback in callbacks:
        callback(instance)


def unmount_view(record: RouteRecord, view: str, instance: Any | None = None) -> None:
    """Forget the instance mounted in *view*.

    With *instance*, only forget it if it is still the mounted one.
    """
    current = record.instances.get(view)
    if current is None:
        return
    if instance is None or current is instance:
        del record.instances[view]


def on_before_route_leave(record: RouteRecord, guard: Guard) -> Callable[[], None]:
    """Run *guard* when navigating away from *record*. Returns a remover."""
    return _register(record.leave_guards, guard)


def on_before_route_update(record: RouteRecord, guard: Guard) -> Callable[[], None]:
    """Run *guard* when *record* stays matched but the location changes."""
    return _register(record.update_guards, guard)


def _register(guards: list[Guard], guard: Guard) -> Callable[[], None]:
    if guard not in guards:
        guards.append(guard)

    def remove() -> None:
        if guard in guards:
            guards.remove(guard)

    return remove


def view_props(location: RouteLocation, record: RouteRecord, view: str = "default") -> dict[str, Any]:
    """Props for the component rendered in *view*, from the record's ``props`` option.

    ``True`` passes the params, a mapping is passed as-is, and a callable
    is called with the location.
    """
    option = record.props.get(view)
    if option is None or option is False:
        return {}
    if option is True:
        return dict(location.params)
    if callable(option):
        return dict(option(location))
    if isinstance(option, Mapping):
        return dict(option)
    msg = f"Invalid props option {option!r} for view {view!r} of {record!r}"
    raise TypeError(msg)
