"""One navigation's guard pipeline.

Diffs the matched chains of ``from_`` and ``to`` into leaving, updating
and entering records, then runs guard stages in order:

1. ``before_route_leave`` on leaving views, then record leave guards
2. global ``before_each``
3. ``before_route_update`` on updating views, then record update guards
4. ``before_enter`` of entering records
5. ``before_route_enter`` on entering views
6. global ``before_resolve``

Each stage's guards are collected when the stage starts, so guards
registered by an earlier stage are seen. After every guard the pipeline
asks the router whether its target is still the pending navigation; if
not, it stops with ``NAVIGATION_CANCELLED``.

The pipeline never touches history. The router commits on success.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum, auto

from waypoint._internal.types import Guard
from waypoint.errors import ErrorTypes, NavigationFailure
from waypoint.location import RouteLocation
from waypoint.navigation.guards import (
    GuardEntry,
    GuardKind,
    component_guards,
    global_guards,
    record_guards,
    run_guard,
)
from waypoint.routing.route import RouteRecord

logger = logging.getLogger("waypoint.navigation")


class NavigationState(Enum):
    RESOLVING = auto()
    LEAVE_GUARDS = auto()
    GLOBAL_BEFORE = auto()
    UPDATE_GUARDS = auto()
    BEFORE_ENTER = auto()
    ENTER_GUARDS = auto()
    GLOBAL_BEFORE_RESOLVE = auto()
    COMMITTED = auto()
    REDIRECTED = auto()
    FAILED = auto()


def _contains(records: Sequence[RouteRecord], record: RouteRecord) -> bool:
    return any(record is candidate for candidate in records)


def extract_changing_records(
    to: RouteLocation, from_: RouteLocation
) -> tuple[list[RouteRecord], list[RouteRecord], list[RouteRecord]]:
    """Split both chains into ``(leaving, updating, entering)``.

    Records are compared by identity, so an alias and its original count
    as different records. ``leaving`` is leaf-to-root, the other two are
    root-to-leaf.
    """
    leaving = [record for record in from_.matched if not _contains(to.matched, record)]
    updating = [record for record in from_.matched if _contains(to.matched, record)]
    entering = [record for record in to.matched if not _contains(from_.matched, record)]
    leaving.reverse()
    return leaving, updating, entering


class NavigationPipeline:
    """Runs the guards between ``from_`` and ``to``.

    *is_pending* is called with ``to`` after every guard and must return
    whether it is still the navigation the router wants.

    Usage::

        pipeline = NavigationPipeline(to, from_, before_each=guards,
                                      before_resolve=(), is_pending=router_check)
        failure = await pipeline.run()
        pipeline.settle(failure)
    """

    __slots__ = (
        "_before_each",
        "_before_resolve",
        "_is_pending",
        "entering",
        "from_",
        "leaving",
        "state",
        "to",
        "updating",
    )

    def __init__(
        self,
        to: RouteLocation,
        from_: RouteLocation,
        *,
        before_each: Iterable[Guard] = (),
        before_resolve: Iterable[Guard] = (),
        is_pending: Callable[[RouteLocation], bool],
    ) -> None:
        self.to = to
        self.from_ = from_
        self._before_each = tuple(before_each)
        self._before_resolve = tuple(before_resolve)
        self._is_pending = is_pending
        self.leaving, self.updating, self.entering = extract_changing_records(to, from_)
        self.state = NavigationState.RESOLVING

    def _stages(self) -> tuple[tuple[NavigationState, Callable[[], list[GuardEntry]]], ...]:
        return (
            (NavigationState.LEAVE_GUARDS, self._leave_guards),
            (NavigationState.GLOBAL_BEFORE, lambda: global_guards(GuardKind.BEFORE_EACH, self._before_each)),
            (NavigationState.UPDATE_GUARDS, self._update_guards),
            (NavigationState.BEFORE_ENTER, lambda: record_guards(GuardKind.BEFORE_ENTER, self.entering)),
            (NavigationState.ENTER_GUARDS, lambda: component_guards(GuardKind.COMPONENT_ENTER, self.entering)),
            (
                NavigationState.GLOBAL_BEFORE_RESOLVE,
                lambda: global_guards(GuardKind.BEFORE_RESOLVE, self._before_resolve),
            ),
        )

    def _leave_guards(self) -> list[GuardEntry]:
        return component_guards(GuardKind.COMPONENT_LEAVE, self.leaving) + record_guards(
            GuardKind.LEAVE, self.leaving
        )

    def _update_guards(self) -> list[GuardEntry]:
        return component_guards(GuardKind.COMPONENT_UPDATE, self.updating) + record_guards(
            GuardKind.UPDATE, self.updating
        )

    async def run(self) -> NavigationFailure | None:
        """Run every stage. ``None`` means the navigation may be committed.

        Returns an aborted, cancelled or guard-redirect failure otherwise.
        Exceptions raised by guards propagate.
        """
        try:
            for state, collect in self._stages():
                self.state = state
                failure = await self._run_queue(collect())
                if failure is not None:
                    self.settle(failure)
                    return failure
        except BaseException:
            self.state = NavigationState.FAILED
            raise
        return None

    async def _run_queue(self, entries: list[GuardEntry]) -> NavigationFailure | None:
        for entry in entries:
            if not self._is_pending(self.to):
                return self._cancelled()
            failure = await run_guard(entry, self.to, self.from_)
            if not self._is_pending(self.to):
                return self._cancelled()
            if failure is not None:
                logger.debug(
                    "%r settled %s -> %s with %s",
                    entry,
                    self.from_.full_path,
                    self.to.full_path,
                    failure.type.name,
                )
                return failure
        return None

    def _cancelled(self) -> NavigationFailure:
        return NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=self.to, from_=self.from_)

    def settle(self, failure: NavigationFailure | None) -> None:
        """Record the outcome decided by the router."""
        if failure is None:
            self.state = NavigationState.COMMITTED
        elif failure.type is ErrorTypes.NAVIGATION_GUARD_REDIRECT:
            self.state = NavigationState.REDIRECTED
        else:
            self.state = NavigationState.FAILED

    def __repr__(self) -> str:
        return f"<NavigationPipeline {self.from_.full_path!r} -> {self.to.full_path!r} {self.state.name}>"
