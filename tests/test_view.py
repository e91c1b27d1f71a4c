"""Tests for waypoint.view — mounting, view-registered guards and props."""

import pytest

from waypoint.location import RouteLocation
from waypoint.routing.route import Route, normalize_route
from waypoint.view import (
    mount_view,
    on_before_route_leave,
    on_before_route_update,
    unmount_view,
    view_props,
)


class Page:
    pass


def make_record(**kwargs):
    route = Route("/users/:id", component=Page, **kwargs)
    return normalize_route(route, route.path)


def user_location(record) -> RouteLocation:
    return RouteLocation(
        path="/users/1",
        full_path="/users/1?tab=posts",
        params={"id": "1"},
        query={"tab": "posts"},
        matched=(record,),
    )


class TestMounting:
    def test_mount_stores_instance(self) -> None:
        record = make_record()
        page = Page()
        mount_view(record, "default", page)
        assert record.instances == {"default": page}

    def test_mount_flushes_enter_callbacks(self) -> None:
        record = make_record()
        seen = []
        record.enter_callbacks["default"] = [seen.append, lambda vm: seen.append("second")]
        page = Page()

        mount_view(record, "default", page)
        assert seen == [page, "second"]
        assert "default" not in record.enter_callbacks

        mount_view(record, "default", Page())
        assert len(seen) == 2

    def test_unmount(self) -> None:
        record = make_record()
        page = Page()
        mount_view(record, "default", page)
        unmount_view(record, "default")
        assert record.instances == {}

    def test_unmount_ignores_other_instance(self) -> None:
        record = make_record()
        page = Page()
        mount_view(record, "default", page)
        unmount_view(record, "default", Page())
        assert record.instances == {"default": page}
        unmount_view(record, "default", page)
        assert record.instances == {}

    def test_unmount_unknown_view(self) -> None:
        record = make_record()
        unmount_view(record, "sidebar")
        assert record.instances == {}


class TestViewGuards:
    def test_leave_guard_registration(self) -> None:
        record = make_record()

        def guard(to, from_):
            return None

        remove = on_before_route_leave(record, guard)
        on_before_route_leave(record, guard)
        assert record.leave_guards == [guard]

        remove()
        assert record.leave_guards == []
        remove()

    def test_update_guard_registration(self) -> None:
        record = make_record()

        def guard(to, from_):
            return None

        remove = on_before_route_update(record, guard)
        assert record.update_guards == [guard]
        remove()
        assert record.update_guards == []

    def test_reset_clears_registrations(self) -> None:
        record = make_record()
        mount_view(record, "default", Page())
        on_before_route_leave(record, lambda to, from_: None)
        on_before_route_update(record, lambda to, from_: None)

        record.reset_instances()
        assert record.instances == {}
        assert record.leave_guards == []
        assert record.update_guards == []


class TestViewProps:
    def test_no_props(self) -> None:
        record = make_record()
        assert view_props(user_location(record), record) == {}

    def test_true_passes_params(self) -> None:
        record = make_record(props=True)
        assert view_props(user_location(record), record) == {"id": "1"}

    def test_mapping(self) -> None:
        record = make_record(props={"title": "User"})
        assert view_props(user_location(record), record) == {"title": "User"}

    def test_callable(self) -> None:
        record = make_record(props=lambda to: {"id": int(to.params["id"]), "tab": to.query["tab"]})
        assert view_props(user_location(record), record) == {"id": 1, "tab": "posts"}

    def test_per_view(self) -> None:
        route = Route(
            "/users/:id",
            components={"default": Page, "sidebar": Page},
            props={"default": True, "sidebar": False},
        )
        record = normalize_route(route, route.path)
        location = user_location(record)
        assert view_props(location, record, "default") == {"id": "1"}
        assert view_props(location, record, "sidebar") == {}

    def test_unknown_view(self) -> None:
        record = make_record(props=True)
        assert view_props(user_location(record), record, "sidebar") == {}

    def test_invalid_option(self) -> None:
        record = make_record(props=42)
        with pytest.raises(TypeError, match="Invalid props option"):
            view_props(user_location(record), record)
