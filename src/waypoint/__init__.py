"""Waypoint — routing core for single-page applications.

Resolves locations against a route table and runs the guard pipeline
that must pass before a navigation is committed.

Basic usage::

    from waypoint import MemoryHistory, Route, Router

    router = Router(MemoryHistory(), [
        Route("/", name="home", component=Home),
        Route("/users/:id", name="user", component=User),
    ])

    def require_login(to, from_):
        if to.meta.get("requires_auth") and not session.user:
            return {"name": "login"}

    remove_guard = router.before_each(require_login)

    failure = await router.push("/users/1")
"""

__version__ = "0.1.0-dev"
__all__ = [
    "START_LOCATION",
    "ConfigurationError",
    "ErrorTypes",
    "InvalidRedirectError",
    "MatcherNotFound",
    "MemoryHistory",
    "NavigationDirection",
    "NavigationFailure",
    "NavigationInformation",
    "NavigationType",
    "ParamError",
    "Route",
    "RouteLocation",
    "RouteRecord",
    "Router",
    "RouterConfig",
    "RouterHistory",
    "WaypointError",
    "is_navigation_failure",
    "mount_view",
    "on_before_route_leave",
    "on_before_route_update",
    "parse_query",
    "stringify_query",
    "unmount_view",
    "view_props",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from waypoint.router import Router

        return Router

    if name == "RouterConfig":
        from waypoint.config import RouterConfig

        return RouterConfig

    if name in ("Route", "RouteRecord"):
        from waypoint.routing import route as _route

        return getattr(_route, name)

    if name in ("RouteLocation", "START_LOCATION"):
        from waypoint import location as _location

        return getattr(_location, name)

    if name in ("parse_query", "stringify_query"):
        from waypoint import query as _query

        return getattr(_query, name)

    if name == "MemoryHistory":
        from waypoint.history.memory import MemoryHistory

        return MemoryHistory

    if name in ("NavigationDirection", "NavigationInformation", "NavigationType", "RouterHistory"):
        from waypoint.history import base as _base

        return getattr(_base, name)

    if name in ("mount_view", "on_before_route_leave", "on_before_route_update", "unmount_view", "view_props"):
        from waypoint import view as _view

        return getattr(_view, name)

    if name in (
        "ConfigurationError",
        "ErrorTypes",
        "InvalidRedirectError",
        "MatcherNotFound",
        "NavigationFailure",
        "ParamError",
        "WaypointError",
        "is_navigation_failure",
    ):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
