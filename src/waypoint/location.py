"""Resolved locations and URL helpers.

``RouteLocation`` is what ``Router.resolve()`` returns and what guards
receive as ``to`` / ``from_``. It is frozen: the pending-navigation check
compares locations by identity, so a location never changes after it is
published.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from waypoint._internal.types import ParseQuery, Query
from waypoint.routing.route import RouteRecord

logger = logging.getLogger("waypoint.location")


@dataclass(frozen=True, slots=True)
class RouteLocation:
    """A fully resolved location.

    ``matched`` lists the records from the root-most ancestor to the leaf.
    ``redirected_from`` is set when this location was reached by following
    a redirect; it points at the first location of the chain.
    """

    path: str
    full_path: str
    name: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    query: Query = field(default_factory=dict)
    hash: str = ""
    matched: tuple[RouteRecord, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)
    redirected_from: "RouteLocation | None" = None
    href: str = ""

    def __repr__(self) -> str:
        return f"RouteLocation({self.full_path!r}, name={self.name!r})"


# Sentinel for "no navigation happened yet"
START_LOCATION = RouteLocation(path="/", full_path="/", href="/")


@dataclass(frozen=True, slots=True)
class ParsedURL:
    """A raw URL split into its parts, path resolved against the current one."""

    full_path: str
    path: str
    query: Query
    hash: str


def parse_url(parse_query: ParseQuery, location: str, current_location: str = "/") -> ParsedURL:
    """Split *location* into path, query and hash.

    Relative paths (``"edit"``, ``"../users"``) resolve against
    *current_location*.
    """
    path = ""
    query: Query = {}
    search = ""
    hash_ = ""

    search_pos = location.find("?")
    hash_pos = location.find("#")
    # A "?" after the "#" belongs to the hash
    if -1 < hash_pos < search_pos:
        search_pos = -1

    if search_pos > -1:
        path = location[:search_pos]
        search = location[search_pos + 1 : hash_pos if hash_pos > -1 else len(location)]
        query = parse_query(search)

    if hash_pos > -1:
        path = path or location[:hash_pos]
        hash_ = location[hash_pos:]

    path = resolve_relative_path(path if (search_pos > -1 or hash_pos > -1) else location, current_location)

    return ParsedURL(
        full_path=path + ("?" if search else "") + search + hash_,
        path=path,
        query=query,
        hash=hash_,
    )


def stringify_url(
    stringify_query: Callable[[Mapping[str, Any]], str],
    path: str,
    query: Mapping[str, Any] | None = None,
    hash_: str = "",
) -> str:
    """Join path, serialized query and hash into a full path."""
    search = stringify_query(query) if query else ""
    return path + ("?" if search else "") + search + (hash_ or "")


def resolve_relative_path(to: str, from_: str) -> str:
    """Resolve *to* against *from_* the way a browser resolves a relative link.

    ``"."`` stays in the current directory, ``".."`` goes up one level::

        resolve_relative_path("c", "/a/b")     # "/a/c"
        resolve_relative_path("../c", "/a/b")  # "/c"
    """
    if to.startswith("/"):
        return to
    if not from_.startswith("/"):
        logger.warning(
            'Cannot resolve a relative location without an absolute path. Trying to resolve "%s" from "%s".',
            to,
            from_,
        )
        return to
    if not to:
        return from_

    from_segments = from_.split("/")
    to_segments = to.split("/")
    if to_segments[-1] in ("..", "."):
        to_segments.append("")

    position = len(from_segments) - 1
    to_position = 0
    for to_position, segment in enumerate(to_segments):
        if segment == ".":
            continue
        if segment == "..":
            if position > 1:
                position -= 1
            continue
        break

    return "/".join(from_segments[:position]) + "/" + "/".join(to_segments[to_position:])


def is_same_route_record(a: RouteRecord, b: RouteRecord) -> bool:
    """Records are the same when they (or the records they alias) are identical."""
    return a.original is b.original


def is_same_route_location(
    stringify_query: Callable[[Mapping[str, Any]], str],
    a: RouteLocation,
    b: RouteLocation,
) -> bool:
    """Same matched leaf, params, query and hash."""
    if not a.matched or not b.matched:
        return False
    return (
        is_same_route_record(a.matched[-1], b.matched[-1])
        and is_same_route_location_params(a.params, b.params)
        and stringify_query(a.query) == stringify_query(b.query)
        and a.hash == b.hash
    )


def is_same_route_location_params(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    if len(a) != len(b):
        return False
    return all(key in b and _is_same_param_value(a[key], b[key]) for key in a)


def _is_same_param_value(a: Any, b: Any) -> bool:
    if isinstance(a, (list, tuple)):
        return _is_equivalent_list(a, b)
    if isinstance(b, (list, tuple)):
        return _is_equivalent_list(b, a)
    return a == b


def _is_equivalent_list(a: Any, b: Any) -> bool:
    """A list equals another list item-wise, or a scalar when it holds just that scalar."""
    if isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(x == y for x, y in zip(a, b, strict=True))
    return len(a) == 1 and a[0] == b
