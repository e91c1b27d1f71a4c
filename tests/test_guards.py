"""Tests for waypoint.navigation.guards — guard entries and their results."""

import pytest

from waypoint.errors import ErrorTypes, WaypointError
from waypoint.location import RouteLocation
from waypoint.navigation.guards import (
    GuardEntry,
    GuardKind,
    component_guards,
    global_guards,
    record_guards,
    run_guard,
)
from waypoint.routing.route import Route, normalize_route

FROM = RouteLocation(path="/a", full_path="/a")
TO = RouteLocation(path="/b", full_path="/b")


async def run(fn, kind: GuardKind = GuardKind.BEFORE_EACH):
    return await run_guard(GuardEntry(kind, fn), TO, FROM)


class Page:
    """A view component with every hook."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def before_route_leave(self, to, from_):
        self.calls.append("leave")

    def before_route_update(self, to, from_):
        self.calls.append("update")

    @staticmethod
    def before_route_enter(to, from_):
        return lambda instance: instance.calls.append("entered")


class TestResults:
    @pytest.mark.asyncio
    async def test_none_continues(self) -> None:
        assert await run(lambda to, from_: None) is None

    @pytest.mark.asyncio
    async def test_true_continues(self) -> None:
        assert await run(lambda to, from_: True) is None

    @pytest.mark.asyncio
    async def test_false_aborts(self) -> None:
        failure = await run(lambda to, from_: False)
        assert failure.type is ErrorTypes.NAVIGATION_ABORTED
        assert failure.to is TO
        assert failure.from_ is FROM

    @pytest.mark.asyncio
    async def test_string_redirects(self) -> None:
        failure = await run(lambda to, from_: "/login")
        assert failure.type is ErrorTypes.NAVIGATION_GUARD_REDIRECT
        assert failure.redirect_to == "/login"

    @pytest.mark.asyncio
    async def test_mapping_redirects(self) -> None:
        failure = await run(lambda to, from_: {"name": "login"})
        assert failure.redirect_to == {"name": "login"}

    @pytest.mark.asyncio
    async def test_location_redirects(self) -> None:
        failure = await run(lambda to, from_: FROM)
        assert failure.redirect_to is FROM

    @pytest.mark.asyncio
    async def test_raised_error_propagates(self) -> None:
        def guard(to, from_):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await run(guard)

    @pytest.mark.asyncio
    async def test_returned_error_is_raised(self) -> None:
        with pytest.raises(ValueError, match="bad"):
            await run(lambda to, from_: ValueError("bad"))

    @pytest.mark.asyncio
    async def test_async_guard(self) -> None:
        async def guard(to, from_):
            return False

        failure = await run(guard)
        assert failure.type is ErrorTypes.NAVIGATION_ABORTED


class TestNextCallback:
    @pytest.mark.asyncio
    async def test_next_without_value_continues(self) -> None:
        def guard(to, from_, next):
            next()

        assert await run(guard) is None

    @pytest.mark.asyncio
    async def test_next_false_aborts(self) -> None:
        def guard(to, from_, next):
            next(False)

        failure = await run(guard)
        assert failure.type is ErrorTypes.NAVIGATION_ABORTED

    @pytest.mark.asyncio
    async def test_next_with_error(self) -> None:
        def guard(to, from_, next):
            next(RuntimeError("nope"))

        with pytest.raises(RuntimeError, match="nope"):
            await run(guard)

    @pytest.mark.asyncio
    async def test_async_guard_must_call_next(self) -> None:
        async def guard(to, from_, next):
            return None

        with pytest.raises(WaypointError, match="never called"):
            await run(guard)

    @pytest.mark.asyncio
    async def test_async_guard_calling_next(self) -> None:
        async def guard(to, from_, next):
            next("/login")

        failure = await run(guard)
        assert failure.redirect_to == "/login"

    @pytest.mark.asyncio
    async def test_second_call_ignored(self, caplog) -> None:
        def guard(to, from_, next):
            next()
            next(False)

        with caplog.at_level("WARNING", logger="waypoint.navigation"):
            assert await run(guard) is None
        assert any("more than once" in r.message for r in caplog.records)


class TestEntries:
    def test_global_guards(self) -> None:
        def guard(to, from_):
            return None

        entries = global_guards(GuardKind.BEFORE_EACH, [guard])
        assert entries == [GuardEntry(GuardKind.BEFORE_EACH, guard)]

    def test_record_guards(self) -> None:
        def enter(to, from_):
            return None

        def leave(to, from_):
            return None

        record = normalize_route(Route("/a", before_enter=enter), "/a")
        record.leave_guards.append(leave)
        assert [e.fn for e in record_guards(GuardKind.BEFORE_ENTER, [record])] == [enter]
        assert [e.fn for e in record_guards(GuardKind.LEAVE, [record])] == [leave]
        assert record_guards(GuardKind.UPDATE, [record]) == []

    def test_record_guards_rejects_component_kind(self) -> None:
        with pytest.raises(ValueError):
            record_guards(GuardKind.COMPONENT_LEAVE, [])

    def test_leave_guards_need_a_mounted_instance(self) -> None:
        record = normalize_route(Route("/a", component=Page), "/a")
        assert component_guards(GuardKind.COMPONENT_LEAVE, [record]) == []

        page = Page()
        record.instances["default"] = page
        entries = component_guards(GuardKind.COMPONENT_LEAVE, [record])
        assert len(entries) == 1
        assert entries[0].view == "default"
        assert entries[0].record is record

    @pytest.mark.asyncio
    async def test_instance_guard_is_bound(self) -> None:
        record = normalize_route(Route("/a", component=Page), "/a")
        page = Page()
        record.instances["default"] = page
        (entry,) = component_guards(GuardKind.COMPONENT_UPDATE, [record])
        assert await run_guard(entry, TO, FROM) is None
        assert page.calls == ["update"]

    def test_component_without_hook(self) -> None:
        record = normalize_route(Route("/a", component=object), "/a")
        record.instances["default"] = object()
        assert component_guards(GuardKind.COMPONENT_LEAVE, [record]) == []
        assert component_guards(GuardKind.COMPONENT_ENTER, [record]) == []

    def test_non_callable_hook_warns(self, caplog) -> None:
        class Broken:
            before_route_enter = "nope"

        record = normalize_route(Route("/a", component=Broken), "/a")
        with caplog.at_level("WARNING", logger="waypoint.navigation"):
            assert component_guards(GuardKind.COMPONENT_ENTER, [record]) == []
        assert any("non-callable" in r.message for r in caplog.records)


class TestEnterCallbacks:
    @pytest.mark.asyncio
    async def test_callback_queued_for_view(self) -> None:
        record = normalize_route(Route("/a", component=Page), "/a")
        (entry,) = component_guards(GuardKind.COMPONENT_ENTER, [record])
        assert await run_guard(entry, TO, FROM) is None
        assert len(record.enter_callbacks["default"]) == 1

    @pytest.mark.asyncio
    async def test_callback_dropped_after_reset(self) -> None:
        record = normalize_route(Route("/a", component=Page), "/a")
        (entry,) = component_guards(GuardKind.COMPONENT_ENTER, [record])
        record.reset_instances()
        await run_guard(entry, TO, FROM)
        assert record.enter_callbacks == {}

    @pytest.mark.asyncio
    async def test_callable_from_other_guards_ignored(self) -> None:
        record = normalize_route(Route("/a"), "/a")
        entry = GuardEntry(GuardKind.BEFORE_ENTER, lambda to, from_: print, record)
        assert await run_guard(entry, TO, FROM) is None
        assert record.enter_callbacks == {}
