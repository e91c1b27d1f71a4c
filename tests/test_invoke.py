"""Tests for waypoint._internal — invoke, accepts_next and CallbackList."""

import pytest

from waypoint._internal.callbacks import CallbackList
from waypoint._internal.invoke import accepts_next, invoke


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync(self) -> None:
        assert await invoke(lambda a, b: a + b, 1, 2) == 3

    @pytest.mark.asyncio
    async def test_async(self) -> None:
        async def add(a, b):
            return a + b

        assert await invoke(add, 1, 2) == 3

    @pytest.mark.asyncio
    async def test_kwargs(self) -> None:
        assert await invoke(dict, a=1) == {"a": 1}

    @pytest.mark.asyncio
    async def test_error_propagates(self) -> None:
        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await invoke(boom)


class TestAcceptsNext:
    def test_two_args(self) -> None:
        assert accepts_next(lambda to, from_: None) is False

    def test_three_args(self) -> None:
        assert accepts_next(lambda to, from_, next: None) is True

    def test_async_three_args(self) -> None:
        async def guard(to, from_, next):
            next()

        assert accepts_next(guard) is True

    def test_varargs(self) -> None:
        assert accepts_next(lambda *args: None) is False

    def test_bound_method(self) -> None:
        class Page:
            def before_route_leave(self, to, from_, next):
                next()

        assert accepts_next(Page().before_route_leave) is True

    def test_uninspectable(self) -> None:
        assert accepts_next(object()) is False


class TestCallbackList:
    def test_order(self) -> None:
        callbacks = CallbackList()
        callbacks.add("a")
        callbacks.add("b")
        assert callbacks.handlers() == ["a", "b"]
        assert len(callbacks) == 2

    def test_remover(self) -> None:
        callbacks = CallbackList()
        remove = callbacks.add("a")
        callbacks.add("b")
        remove()
        remove()
        assert callbacks.handlers() == ["b"]

    def test_snapshot(self) -> None:
        callbacks = CallbackList()
        callbacks.add("a")
        snapshot = callbacks.handlers()
        callbacks.add("b")
        assert snapshot == ["a"]

    def test_reset(self) -> None:
        callbacks = CallbackList()
        callbacks.add("a")
        callbacks.reset()
        assert callbacks.handlers() == []
