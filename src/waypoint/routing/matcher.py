"""Route record tree and location matcher.

The matcher owns every compiled record. Records are kept in one list
sorted by path specificity (``compare_path_parser_score``) with ties
broken by insertion order, plus a name index. Resolution is a single
ordered scan, so the first record that matches is the most specific one.

Usage::

    matcher = RouterMatcher([Route("/users/:id", name="user")])
    matcher.resolve({"path": "/users/1"}, START_LOCATION)
    matcher.resolve({"name": "user", "params": {"id": "1"}}, START_LOCATION)
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError, MatcherNotFound
from waypoint.routing.parser import ParamKey, PathParser, compare_path_parser_score
from waypoint.routing.route import Route, RouteRecord, normalize_route
from waypoint.routing.tokenizer import tokenize_path

logger = logging.getLogger("waypoint.matcher")


@dataclass(frozen=True, slots=True)
class MatcherLocation:
    """Result of a successful resolution: the matched chain and its params."""

    name: str | None
    path: str
    params: dict[str, Any]
    matched: tuple[RouteRecord, ...]
    meta: dict[str, Any] = field(default_factory=dict)


class RouteRecordMatcher:
    """A record bound to its compiled parser and its place in the tree."""

    __slots__ = ("alias", "children", "parent", "parser", "raw", "record")

    def __init__(
        self,
        record: RouteRecord,
        parser: PathParser,
        parent: "RouteRecordMatcher | None",
        raw: Route,
    ) -> None:
        self.record = record
        self.parser = parser
        self.parent = parent
        self.raw = raw
        self.children: list[RouteRecordMatcher] = []
        self.alias: list[RouteRecordMatcher] = []

    @property
    def keys(self) -> tuple[ParamKey, ...]:
        return self.parser.keys

    @property
    def is_alias(self) -> bool:
        return self.record.alias_of is not None

    def chain(self) -> tuple[RouteRecord, ...]:
        """Records from the root-most ancestor down to this one."""
        matched: list[RouteRecord] = []
        node: RouteRecordMatcher | None = self
        while node is not None:
            matched.append(node.record)
            node = node.parent
        matched.reverse()
        return tuple(matched)

    def __repr__(self) -> str:
        return f"<RouteRecordMatcher {self.record.path!r}>"


class RouterMatcher:
    """Owns the record tree and resolves raw locations against it.

    Registration is atomic: if ``add_route`` raises a
    ``ConfigurationError`` (bad template, alias param mismatch), the tree
    is restored to its previous state.
    """

    __slots__ = ("_config", "_matcher_map", "_matchers")

    def __init__(self, routes: Iterable[Route] = (), config: RouterConfig | None = None) -> None:
        self._config = config or RouterConfig()
        self._matchers: list[RouteRecordMatcher] = []
        self._matcher_map: dict[str, RouteRecordMatcher] = {}
        for route in routes:
            self.add_route(route)

    # -- Registration --

    def add_route(
        self,
        route: Route,
        parent: RouteRecordMatcher | None = None,
    ) -> Callable[[], None]:
        """Add *route* (and its children and aliases) under *parent*.

        Returns a function that removes everything this call added.
        """
        snapshot = self._snapshot()
        try:
            original = self._add_route(route, parent, None)
        except ConfigurationError:
            self._restore(snapshot)
            raise

        def remove() -> None:
            self.remove_route(original)

        return remove

    def _add_route(
        self,
        route: Route,
        parent: RouteRecordMatcher | None,
        original_record: RouteRecordMatcher | None,
    ) -> RouteRecordMatcher:
        is_root_add = original_record is None
        options = self._parser_options(route)
        parent_meta = parent.record.meta if parent else None

        main_record = normalize_route(route, route.path, parent_meta)
        main_record.alias_of = original_record.record if original_record else None
        normalized = [main_record]
        for alias in route.aliases:
            alias_record = normalize_route(route, alias, parent_meta)
            if original_record is not None:
                alias_record.components = original_record.record.components
                alias_record.alias_of = original_record.record
            else:
                alias_record.alias_of = main_record
            normalized.append(alias_record)

        orphans: list[RouteRecordMatcher] = []
        original_matcher: RouteRecordMatcher | None = None

        for record in normalized:
            declared_path = record.path
            if parent is not None:
                record.path = _join_path(parent, declared_path)

            matcher = RouteRecordMatcher(
                record,
                PathParser(tokenize_path(record.path), **options),
                parent,
                route,
            )

            if parent is not None and declared_path.startswith("/"):
                self._check_missing_params_in_absolute_path(matcher, parent)

            if original_record is not None:
                _check_same_params(original_record, matcher)
                original_record.alias.append(matcher)
            else:
                original_matcher = original_matcher or matcher
                if original_matcher is not matcher:
                    _check_same_params(original_matcher, matcher)
                    original_matcher.alias.append(matcher)
                if is_root_add and route.name and not matcher.is_alias:
                    previous = self._matcher_map.get(route.name)
                    if previous is not None:
                        orphans = [c for c in previous.children if not c.is_alias]
                        self.remove_route(previous)

            if parent is not None and matcher.is_alias == parent.is_alias:
                parent.children.append(matcher)

            for index, child in enumerate(route.children):
                child_original = original_record.children[index] if original_record else None
                self._add_route(child, matcher, child_original)

            original_record = original_record or matcher
            self._insert_matcher(matcher)

        if orphans and original_matcher is not None:
            self._reparent_children(orphans, original_matcher)

        return original_matcher or original_record  # type: ignore[return-value]

    def _reparent_children(
        self, orphans: list[RouteRecordMatcher], replacement: RouteRecordMatcher
    ) -> None:
        """Re-attach the children of a replaced named record under its replacement."""
        for child in orphans:
            name = child.record.name
            if name and name in self._matcher_map:
                continue
            joined = _join_path(replacement, child.raw.path)
            if any(
                existing.raw is child.raw or existing.record.path == joined
                for existing in replacement.children
            ):
                continue
            self._add_route(child.raw, replacement, None)

    def _insert_matcher(self, matcher: RouteRecordMatcher) -> None:
        index = 0
        while index < len(self._matchers) and compare_path_parser_score(
            matcher.parser, self._matchers[index].parser
        ) >= 0:
            index += 1
        self._matchers.insert(index, matcher)
        if matcher.record.name and not matcher.is_alias:
            self._matcher_map[matcher.record.name] = matcher

    def remove_route(self, matcher_or_name: RouteRecordMatcher | str) -> None:
        """Remove a record with all its descendants and aliases."""
        if isinstance(matcher_or_name, str):
            matcher = self._matcher_map.get(matcher_or_name)
            if matcher is None:
                return
        else:
            matcher = matcher_or_name

        if matcher not in self._matchers:
            return
        self._matchers.remove(matcher)
        name = matcher.record.name
        if name and self._matcher_map.get(name) is matcher:
            del self._matcher_map[name]
        if matcher.parent is not None and matcher in matcher.parent.children:
            matcher.parent.children.remove(matcher)
        if matcher.is_alias:
            for other in self._matchers:
                if matcher in other.alias:
                    other.alias.remove(matcher)
        for child in list(matcher.children):
            self.remove_route(child)
        for alias in list(matcher.alias):
            self.remove_route(alias)

    def get_routes(self) -> list[RouteRecordMatcher]:
        """All record matchers, most specific first."""
        return list(self._matchers)

    def get_record_matcher(self, name: str) -> RouteRecordMatcher | None:
        return self._matcher_map.get(name)

    # -- Resolution --

    def resolve(self, location: Mapping[str, Any], current_location: Any) -> MatcherLocation:
        """Resolve a matcher location (``name`` + ``params``, or ``path``).

        Raises ``MatcherNotFound`` if no record matches.
        """
        name = location.get("name")
        if name:
            matcher = self._matcher_map.get(name)
            if matcher is None:
                raise MatcherNotFound(location)
            key_names = {key.name for key in matcher.keys}
            current_params = getattr(current_location, "params", None) or {}
            # Inherit unchanged params shared with the current location
            params = {
                key.name: current_params[key.name]
                for key in matcher.keys
                if not key.optional and key.name in current_params
            }
            for key, value in (location.get("params") or {}).items():
                if key in key_names:
                    params[key] = value
                else:
                    logger.debug(
                        'Discarded invalid param "%s" when navigating to route "%s"', key, name
                    )
            path = matcher.parser.stringify(params)

        elif "path" in location:
            path = location["path"]
            for matcher in self._matchers:
                parsed = matcher.parser.parse(path)
                if parsed is not None:
                    params = parsed
                    break
            else:
                raise MatcherNotFound(location, current_location)

        else:
            # Relative location: reuse the current record and override params
            current_name = getattr(current_location, "name", None)
            current_path = getattr(current_location, "path", "/")
            if current_name:
                matcher = self._matcher_map.get(current_name)
            else:
                matcher = next(
                    (m for m in self._matchers if m.parser.re.match(current_path)), None
                )
            if matcher is None:
                raise MatcherNotFound(location, current_location)
            params = {**(getattr(current_location, "params", None) or {}), **(location.get("params") or {})}
            path = matcher.parser.stringify(params)

        matched = matcher.chain()
        return MatcherLocation(
            name=matcher.record.name,
            path=path,
            params=params,
            matched=matched,
            meta=merge_meta_fields(matched),
        )

    # -- Internals --

    def _parser_options(self, route: Route) -> dict[str, bool]:
        return {
            "sensitive": self._config.sensitive if route.sensitive is None else route.sensitive,
            "strict": self._config.strict if route.strict is None else route.strict,
            "end": self._config.end if route.end is None else route.end,
        }

    def _check_missing_params_in_absolute_path(
        self, matcher: RouteRecordMatcher, parent: RouteRecordMatcher
    ) -> None:
        if not self._config.warn_absolute_params:
            return
        for key in parent.keys:
            if not any(_is_same_param(key, own) for own in matcher.keys):
                logger.warning(
                    'Absolute path "%s" should have the exact same param named "%s" as its parent "%s".',
                    matcher.record.path,
                    key.name,
                    parent.record.path,
                )

    def _snapshot(self) -> tuple[Any, ...]:
        tree = {id(m): (m, list(m.children), list(m.alias)) for m in self._matchers}
        return list(self._matchers), dict(self._matcher_map), tree

    def _restore(self, snapshot: tuple[Any, ...]) -> None:
        matchers, matcher_map, tree = snapshot
        self._matchers = matchers
        self._matcher_map = matcher_map
        for matcher, children, alias in tree.values():
            matcher.children = children
            matcher.alias = alias


def merge_meta_fields(matched: Iterable[RouteRecord]) -> dict[str, Any]:
    """Merge meta root-to-leaf; deeper records override shallower ones."""
    meta: dict[str, Any] = {}
    for record in matched:
        meta.update(record.meta)
    return meta


def _is_same_param(a: ParamKey, b: ParamKey) -> bool:
    return a.name == b.name and a.optional == b.optional and a.repeatable == b.repeatable


def _check_same_params(original: RouteRecordMatcher, alias: RouteRecordMatcher) -> None:
    """An alias must declare exactly the params of its original record."""
    for key in original.keys:
        if not any(_is_same_param(key, other) for other in alias.keys):
            msg = (
                f'Alias "{alias.record.path}" and the original record: "{original.record.path}" '
                f'should have the exact same param named "{key.name}"'
            )
            raise ConfigurationError(msg)
    for key in alias.keys:
        if not any(_is_same_param(key, other) for other in original.keys):
            msg = (
                f'Alias "{alias.record.path}" and the original record: "{original.record.path}" '
                f'should have the exact same param named "{key.name}"'
            )
            raise ConfigurationError(msg)


def _join_path(parent: RouteRecordMatcher, declared_path: str) -> str:
    """Full path of a child declared as *declared_path* under *parent*."""
    if declared_path.startswith("/"):
        return declared_path
    parent_path = parent.record.path
    connecting_slash = "" if parent_path.endswith("/") else "/"
    return parent_path + (declared_path and connecting_slash + declared_path)
