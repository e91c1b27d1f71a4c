"""Tests for waypoint.history.memory — in-memory history backend."""

from waypoint.history.base import (
    NavigationDirection,
    NavigationInformation,
    NavigationType,
    RouterHistory,
    normalize_base,
)
from waypoint.history.memory import START, MemoryHistory


def pushed(*locations: str) -> MemoryHistory:
    history = MemoryHistory()
    for location in locations:
        history.push(location)
    return history


class TestStack:
    def test_initial_state(self) -> None:
        history = MemoryHistory()
        assert history.location == START
        assert history.position == 0
        assert history.entries == [START]
        assert history.state == {}

    def test_push(self) -> None:
        history = pushed("/a", "/b")
        assert history.location == "/b"
        assert history.position == 2
        assert history.entries == [START, "/a", "/b"]

    def test_replace(self) -> None:
        history = pushed("/a", "/b")
        history.replace("/c")
        assert history.entries == [START, "/a", "/c"]
        assert history.position == 2

    def test_replace_first_entry(self) -> None:
        history = MemoryHistory()
        history.replace("/a")
        assert history.entries == ["/a"]
        assert history.position == 0

    def test_push_drops_forward_entries(self) -> None:
        history = pushed("/a", "/b", "/c")
        history.go(-2, trigger=False)
        history.push("/d")
        assert history.entries == [START, "/a", "/d"]

    def test_state(self) -> None:
        history = MemoryHistory()
        history.push("/a", {"scroll": 10})
        assert history.state == {"scroll": 10}
        history.push("/b")
        assert history.state == {}

    def test_destroy_resets(self) -> None:
        history = pushed("/a")
        history.listen(lambda *args: None)
        history.destroy()
        assert history.entries == [START]
        assert history.position == 0


class TestGo:
    def test_notifies_listeners(self) -> None:
        history = pushed("/a", "/b")
        calls = []
        history.listen(lambda to, from_, info: calls.append((to, from_, info)))
        history.go(-1)
        assert calls == [
            ("/a", "/b", NavigationInformation(NavigationType.POP, NavigationDirection.BACK, -1))
        ]

    def test_forward_direction(self) -> None:
        history = pushed("/a", "/b")
        history.back(trigger=False)
        calls = []
        history.listen(lambda to, from_, info: calls.append(info.direction))
        history.forward()
        assert calls == [NavigationDirection.FORWARD]
        assert history.location == "/b"

    def test_push_does_not_notify(self) -> None:
        history = MemoryHistory()
        calls = []
        history.listen(lambda *args: calls.append(args))
        history.push("/a")
        history.replace("/b")
        assert calls == []

    def test_silent_go(self) -> None:
        history = pushed("/a", "/b")
        calls = []
        history.listen(lambda *args: calls.append(args))
        history.go(-1, trigger=False)
        assert calls == []
        assert history.location == "/a"

    def test_clamps_position(self) -> None:
        history = pushed("/a")
        history.go(-10, trigger=False)
        assert history.position == 0
        history.go(10, trigger=False)
        assert history.position == 1

    def test_teardown(self) -> None:
        history = pushed("/a", "/b")
        calls = []
        teardown = history.listen(lambda *args: calls.append(args))
        teardown()
        teardown()
        history.go(-1)
        assert calls == []


class TestContract:
    def test_implements_protocol(self) -> None:
        assert isinstance(MemoryHistory(), RouterHistory)

    def test_base_normalized(self) -> None:
        assert MemoryHistory("app/").base == "/app"

    def test_normalize_base(self) -> None:
        assert normalize_base("") == ""
        assert normalize_base(None) == ""
        assert normalize_base("/app/") == "/app"
