"""Router — the public entry point.

Owns the matcher, the history listener, the guard registries, and the
current route. Every navigation goes through ``_push_with_redirect``
(programmatic) or ``_handle_pop`` (history-triggered); both run a
``NavigationPipeline`` and commit through ``_finalize_navigation``.

Usage::

    router = Router(MemoryHistory(), [
        Route("/", name="home", component=Home),
        Route("/users/:id", name="user", component=User),
    ])
    router.before_each(require_login)

    await router.push("/users/1")
    await router.push({"name": "user", "params": {"id": 2}})

Concurrency: navigations are not locked. The last one started owns the
pending location; older ones notice at their next guard boundary and
settle with ``NAVIGATION_CANCELLED``.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

import anyio

from waypoint._internal.callbacks import CallbackList
from waypoint._internal.invoke import invoke
from waypoint._internal.types import AfterHook, ErrorHandler, Guard, ParseQuery, StringifyQuery
from waypoint.config import RouterConfig
from waypoint.errors import (
    ConfigurationError,
    ErrorTypes,
    InvalidRedirectError,
    MatcherNotFound,
    NavigationFailure,
)
from waypoint.history.base import NavigationInformation, RouterHistory
from waypoint.location import (
    START_LOCATION,
    RouteLocation,
    is_same_route_location,
    parse_url,
    stringify_url,
)
from waypoint.navigation.pipeline import NavigationPipeline
from waypoint.query import normalize_query
from waypoint.query import parse_query as default_parse_query
from waypoint.query import stringify_query as default_stringify_query
from waypoint.routing.encoding import decode, encode_hash
from waypoint.routing.matcher import RouterMatcher
from waypoint.routing.route import Route, RouteRecord

logger = logging.getLogger("waypoint.router")

# Redirects back to the location being entered before giving up
_MAX_SAME_REDIRECTS = 30

# What push/replace/resolve accept
RouteTarget: TypeAlias = str | Mapping[str, Any] | RouteLocation

# (to, from_, saved_position) -> position or None; the caller applies it
ScrollBehavior: TypeAlias = Callable[[RouteLocation, RouteLocation, Any], Any]


class Router:
    """Resolves locations and drives navigations over a history backend.

    The history listener is attached on construction; call ``destroy()``
    to detach it.
    """

    __slots__ = (
        "_after_hooks",
        "_before_guards",
        "_before_resolve_guards",
        "_config",
        "_current_route",
        "_error_handlers",
        "_history",
        "_matcher",
        "_parse_query",
        "_pending_location",
        "_pop_tasks",
        "_ready",
        "_ready_error",
        "_ready_event",
        "_remove_listener",
        "_scroll_behavior",
        "_stringify_query",
    )

    def __init__(
        self,
        history: RouterHistory,
        routes: Iterable[Route] = (),
        config: RouterConfig | None = None,
        *,
        parse_query: ParseQuery | None = None,
        stringify_query: StringifyQuery | None = None,
        scroll_behavior: ScrollBehavior | None = None,
    ) -> None:
        if not isinstance(history, RouterHistory):
            msg = f"{history!r} does not implement the RouterHistory protocol"
            raise ConfigurationError(msg)

        self._config = config or RouterConfig()
        self._history = history
        self._matcher = RouterMatcher(routes, self._config)
        self._parse_query = parse_query or default_parse_query
        self._stringify_query = stringify_query or default_stringify_query
        self._scroll_behavior = scroll_behavior

        self._before_guards: CallbackList[Guard] = CallbackList()
        self._before_resolve_guards: CallbackList[Guard] = CallbackList()
        self._after_hooks: CallbackList[AfterHook] = CallbackList()
        self._error_handlers: CallbackList[ErrorHandler] = CallbackList()

        self._current_route: RouteLocation = START_LOCATION
        self._pending_location: RouteLocation = START_LOCATION
        self._pop_tasks: set[asyncio.Task[None]] = set()

        self._ready = False
        self._ready_error: BaseException | None = None
        self._ready_event: anyio.Event | None = None

        self._remove_listener = history.listen(self._on_history_change)

    # -- Properties --

    @property
    def current_route(self) -> RouteLocation:
        """The last committed location, ``START_LOCATION`` before the first one."""
        return self._current_route

    @property
    def history(self) -> RouterHistory:
        return self._history

    @property
    def config(self) -> RouterConfig:
        return self._config

    # -- Route table --

    def add_route(self, parent_or_route: str | Route, route: Route | None = None) -> Callable[[], None]:
        """Add a route, optionally as a child of the named route.

        ``add_route(Route(...))`` or ``add_route("parent", Route(...))``.
        Returns a function removing the added route.
        """
        if isinstance(parent_or_route, str):
            if route is None:
                msg = f'add_route("{parent_or_route}") needs a route to add'
                raise ConfigurationError(msg)
            parent = self._matcher.get_record_matcher(parent_or_route)
            if parent is None:
                msg = f'Parent route "{parent_or_route}" not found when adding child route "{route.path}"'
                raise ConfigurationError(msg)
            return self._matcher.add_route(route, parent)
        return self._matcher.add_route(parent_or_route)

    def remove_route(self, name: str) -> None:
        if self._matcher.get_record_matcher(name) is None:
            logger.warning('Cannot remove non-existent route "%s"', name)
            return
        self._matcher.remove_route(name)

    def has_route(self, name: str) -> bool:
        return self._matcher.get_record_matcher(name) is not None

    def get_routes(self) -> list[RouteRecord]:
        """Every record (aliases included), most specific first."""
        return [matcher.record for matcher in self._matcher.get_routes()]

    # -- Resolution --

    def resolve(self, target: RouteTarget, current_location: RouteLocation | None = None) -> RouteLocation:
        """Resolve *target* against the route table.

        Relative paths and param-only targets resolve against
        *current_location* (the current route by default). Raises
        ``MatcherNotFound`` when nothing matches.
        """
        current = current_location or self._current_route

        if isinstance(target, str):
            parsed = parse_url(self._parse_query, target, current.path)
            matched = self._matcher.resolve({"path": parsed.path}, current)
            return RouteLocation(
                path=matched.path,
                full_path=parsed.full_path,
                name=matched.name,
                params=_normalize_params(matched.params),
                query=parsed.query,
                hash=parsed.hash,
                matched=matched.matched,
                meta=matched.meta,
                href=self._history.base + parsed.full_path,
            )

        raw = self._location_as_object(target) if isinstance(target, RouteLocation) else target

        matcher_location: dict[str, Any] = {}
        if raw.get("name"):
            matcher_location["name"] = raw["name"]
        if "path" in raw:
            if raw.get("params") and "name" not in raw:
                logger.warning(
                    'Path "%s" was passed with params but they will be ignored. '
                    "Use a named route alongside params instead.",
                    raw["path"],
                )
            matcher_location["path"] = parse_url(self._parse_query, raw["path"], current.path).path
        else:
            matcher_location["params"] = {
                key: value for key, value in (raw.get("params") or {}).items() if value is not None
            }

        matched = self._matcher.resolve(matcher_location, current)

        hash_ = encode_hash(raw.get("hash") or "")
        if hash_ and not hash_.startswith("#"):
            logger.warning(
                'A `hash` should always start with the character "#". Replace "%s" with "#%s".',
                hash_,
                hash_,
            )

        query = raw.get("query") or {}
        full_path = stringify_url(self._stringify_query, matched.path, query, hash_)
        return RouteLocation(
            path=matched.path,
            full_path=full_path,
            name=matched.name,
            params=_normalize_params(matched.params),
            query=normalize_query(query) if self._stringify_query is default_stringify_query else dict(query),
            hash=hash_,
            matched=matched.matched,
            meta=matched.meta,
            href=self._history.base + full_path,
        )

    def _location_as_object(self, target: RouteTarget) -> dict[str, Any]:
        """Turn any target into a mapping so navigation options can be attached."""
        if isinstance(target, str):
            parsed = parse_url(self._parse_query, target, self._current_route.path)
            return {"path": parsed.path, "query": parsed.query, "hash": decode(parsed.hash)}
        if isinstance(target, RouteLocation):
            return {"path": target.path, "query": dict(target.query), "hash": decode(target.hash)}
        return dict(target)

    # -- Navigation --

    async def push(self, to: RouteTarget) -> NavigationFailure | None:
        """Navigate to *to*, adding a history entry.

        Returns ``None`` on success or a ``NavigationFailure`` (aborted,
        cancelled, duplicated). Raises for resolution errors and for
        unexpected guard exceptions.
        """
        return await self._push_with_redirect(to)

    async def replace(self, to: RouteTarget) -> NavigationFailure | None:
        """Like ``push`` but replaces the current history entry."""
        return await self._push_with_redirect({**self._location_as_object(to), "replace": True})

    async def go(self, delta: int) -> NavigationFailure | None:
        """Move *delta* entries through history and wait for that navigation to settle."""
        settled: asyncio.Future[NavigationFailure | None] = asyncio.get_running_loop().create_future()

        def on_error(error: BaseException) -> None:
            if not settled.done():
                settled.set_exception(error)

        def on_after(to: RouteLocation, from_: RouteLocation, failure: NavigationFailure | None) -> None:
            if not settled.done():
                settled.set_result(failure)

        remove_error = self._error_handlers.add(on_error)
        remove_after = self._after_hooks.add(on_after)
        try:
            self._history.go(delta)
            return await settled
        finally:
            remove_error()
            remove_after()

    async def back(self) -> NavigationFailure | None:
        return await self.go(-1)

    async def forward(self) -> NavigationFailure | None:
        return await self.go(1)

    async def _push_with_redirect(
        self,
        to: RouteTarget,
        redirected_from: RouteLocation | None = None,
    ) -> NavigationFailure | None:
        target: RouteTarget = to
        redirect_count = 0

        while True:
            options: Mapping[str, Any] = target if isinstance(target, Mapping) else {}
            state = options.get("state")
            force = bool(options.get("force"))
            replace = options.get("replace") is True

            target_location = self.resolve(target)
            from_ = self._current_route

            redirect = self._record_redirect(target_location)
            if redirect is not None:
                redirected_from = redirected_from or target_location
                target = {**redirect, "state": state, "force": force, "replace": replace}
                continue

            to_location = (
                dataclasses.replace(target_location, redirected_from=redirected_from)
                if redirected_from is not None
                else target_location
            )
            self._pending_location = to_location

            if not force and is_same_route_location(self._stringify_query, from_, to_location):
                failure = NavigationFailure(ErrorTypes.NAVIGATION_DUPLICATED, to=to_location, from_=from_)
                # Same-location navigation still scrolls, e.g. to an anchor
                await self._handle_scroll(from_, from_, is_push=True, is_first=False)
                await self._trigger_after_each(to_location, from_, failure)
                return failure

            pipeline = self._pipeline(to_location, from_)
            try:
                failure = await pipeline.run()
            except Exception as error:
                if not self._is_pending(to_location):
                    failure = NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=to_location, from_=from_)
                else:
                    await self._report_error(error)
                    raise

            if failure is not None and failure.type is ErrorTypes.NAVIGATION_GUARD_REDIRECT:
                redirect_count = self._count_redirect(failure, to_location, redirect_count)
                redirected_from = redirected_from or to_location
                redirect_target = self._location_as_object(failure.redirect_to)
                target = {**redirect_target, "state": state, "force": force, "replace": replace}
                continue

            if failure is None:
                failure = await self._finalize_navigation(
                    to_location, from_, is_push=True, replace=replace, state=state
                )
            pipeline.settle(failure)
            await self._trigger_after_each(to_location, from_, failure)
            return failure

    def _record_redirect(self, to: RouteLocation) -> dict[str, Any] | None:
        """The redirect target of the matched leaf record, if it declares one."""
        if not to.matched:
            return None
        redirect = to.matched[-1].redirect
        if redirect is None:
            return None

        new_target = redirect(to) if callable(redirect) else redirect
        if isinstance(new_target, str):
            # A bare path keeps the query and hash of the original target
            if "?" in new_target or "#" in new_target:
                location = self._location_as_object(new_target)
            else:
                location = {"path": new_target}
            location["params"] = {}
        else:
            location = self._location_as_object(new_target)
        if "path" not in location and "name" not in location:
            raise InvalidRedirectError(new_target, to.full_path)

        return {
            "query": to.query,
            "hash": decode(to.hash),
            "params": {} if "path" in location else to.params,
            **location,
        }

    def _count_redirect(self, failure: NavigationFailure, to: RouteLocation, count: int) -> int:
        """Guard against guards that keep redirecting to the location being entered."""
        try:
            redirect_location = self.resolve(failure.redirect_to)
        except MatcherNotFound:
            return count
        if not is_same_route_location(self._stringify_query, redirect_location, to):
            return count
        count += 1
        if count > _MAX_SAME_REDIRECTS:
            logger.warning(
                'Detected a possibly infinite redirection in a navigation guard '
                'when going from "%s" to "%s".',
                failure.from_.full_path,
                to.full_path,
            )
            msg = "Infinite redirect in navigation guard"
            raise ConfigurationError(msg)
        return count

    def _pipeline(self, to: RouteLocation, from_: RouteLocation) -> NavigationPipeline:
        return NavigationPipeline(
            to,
            from_,
            before_each=self._before_guards.handlers(),
            before_resolve=self._before_resolve_guards.handlers(),
            is_pending=self._is_pending,
        )

    def _is_pending(self, to: RouteLocation) -> bool:
        return to is self._pending_location

    async def _finalize_navigation(
        self,
        to: RouteLocation,
        from_: RouteLocation,
        *,
        is_push: bool,
        replace: bool = False,
        state: Mapping[str, Any] | None = None,
    ) -> NavigationFailure | None:
        """Commit *to*: write history, publish the route, scroll, mark ready."""
        if not self._is_pending(to):
            return NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=to, from_=from_)

        for record in from_.matched:
            if not any(record is kept for kept in to.matched):
                record.reset_instances()

        is_first = from_ is START_LOCATION
        if is_push:
            if replace or is_first:
                data: dict[str, Any] = {}
                if is_first and "scroll" in self._history.state:
                    data["scroll"] = self._history.state["scroll"]
                data.update(state or {})
                self._history.replace(to.full_path, data)
            else:
                self._history.push(to.full_path, state)

        self._current_route = to
        self._mark_as_ready()
        await self._handle_scroll(to, from_, is_push=is_push, is_first=is_first)
        logger.debug("Navigated %s -> %s", from_.full_path, to.full_path)
        return None

    async def _trigger_after_each(
        self, to: RouteLocation, from_: RouteLocation, failure: NavigationFailure | None
    ) -> None:
        for hook in self._after_hooks.handlers():
            await invoke(hook, to, from_, failure)

    async def _handle_scroll(
        self, to: RouteLocation, from_: RouteLocation, *, is_push: bool, is_first: bool
    ) -> None:
        if self._scroll_behavior is None:
            return
        saved_position = self._history.state.get("scroll") if (is_first or not is_push) else None
        try:
            await invoke(self._scroll_behavior, to, from_, saved_position)
        except Exception as error:
            await self._report_error(error)

    # -- History-triggered navigation --

    def _on_history_change(self, to: str, from_: str, info: NavigationInformation) -> None:
        task = asyncio.get_running_loop().create_task(self._run_pop(to, info))
        self._pop_tasks.add(task)
        task.add_done_callback(self._pop_tasks.discard)

    async def _run_pop(self, to: str, info: NavigationInformation) -> None:
        try:
            await self._handle_pop(to, info)
        except Exception:
            logger.exception("Navigation to %r triggered by history failed", to)

    async def _handle_pop(self, to: str, info: NavigationInformation) -> None:
        try:
            to_location = self.resolve(to)
        except MatcherNotFound as error:
            self._history.go(-info.delta, trigger=False)
            await self._report_error(error)
            return

        self._pending_location = to_location
        from_ = self._current_route

        pipeline = self._pipeline(to_location, from_)
        try:
            failure = await pipeline.run()
        except Exception as error:
            if self._is_pending(to_location):
                self._history.go(-info.delta, trigger=False)
                await self._report_error(error)
                return
            failure = NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=to_location, from_=from_)

        if failure is not None and failure.type is ErrorTypes.NAVIGATION_GUARD_REDIRECT:
            # Undo the pop, then navigate to the redirect as a regular push
            self._history.go(-info.delta, trigger=False)
            await self._push_with_redirect(failure.redirect_to, to_location)
            return

        if failure is None:
            failure = await self._finalize_navigation(to_location, from_, is_push=False)

        # A cancelled pop leaves history to the navigation that superseded it
        if failure is not None and failure.type is not ErrorTypes.NAVIGATION_CANCELLED:
            self._history.go(-info.delta, trigger=False)

        pipeline.settle(failure)
        await self._trigger_after_each(to_location, from_, failure)

    # -- Hooks --

    def before_each(self, guard: Guard) -> Callable[[], None]:
        """Register a global guard run before every navigation. Returns a remover."""
        return self._before_guards.add(guard)

    def before_resolve(self, guard: Guard) -> Callable[[], None]:
        """Register a global guard run after every other guard. Returns a remover."""
        return self._before_resolve_guards.add(guard)

    def after_each(self, hook: AfterHook) -> Callable[[], None]:
        """Register ``hook(to, from_, failure)`` run after every settled navigation."""
        return self._after_hooks.add(hook)

    def on_error(self, handler: ErrorHandler) -> Callable[[], None]:
        """Register a handler for unexpected errors raised during navigation."""
        return self._error_handlers.add(handler)

    # -- Readiness & errors --

    async def is_ready(self) -> None:
        """Wait until the first navigation settles.

        Returns immediately once a navigation has been committed. Raises
        the error of the first navigation if it failed unexpectedly.
        """
        if self._ready:
            if self._current_route is not START_LOCATION:
                return
            if self._ready_error is not None:
                raise self._ready_error
        if self._ready_event is None:
            self._ready_event = anyio.Event()
        await self._ready_event.wait()
        if self._ready_error is not None and self._current_route is START_LOCATION:
            raise self._ready_error

    def _mark_as_ready(self, error: BaseException | None = None) -> None:
        if self._ready:
            return
        self._ready = True
        self._ready_error = error
        if self._ready_event is not None:
            self._ready_event.set()

    async def _report_error(self, error: BaseException) -> None:
        """Hand *error* to the ``on_error`` handlers, or log it if there are none."""
        self._mark_as_ready(error)
        handlers = self._error_handlers.handlers()
        if not handlers:
            logger.error("Uncaught error during route navigation", exc_info=error)
            return
        for handler in handlers:
            await invoke(handler, error)

    # -- Teardown --

    def destroy(self) -> None:
        """Detach from history and drop every registered hook.

        In-flight history-triggered navigations are cancelled.
        """
        self._remove_listener()
        for task in list(self._pop_tasks):
            task.cancel()
        self._pop_tasks.clear()
        self._before_guards.reset()
        self._before_resolve_guards.reset()
        self._after_hooks.reset()
        self._error_handlers.reset()
        self._current_route = START_LOCATION
        self._pending_location = START_LOCATION
        self._ready = False
        self._ready_error = None
        self._ready_event = None

    def __repr__(self) -> str:
        return f"<Router current={self._current_route.full_path!r} routes={len(self._matcher.get_routes())}>"


def _normalize_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce param values to ``str`` (lists of ``str`` for repeatable params)."""
    return {
        key: [str(item) for item in value] if isinstance(value, (list, tuple)) else str(value)
        for key, value in params.items()
    }
