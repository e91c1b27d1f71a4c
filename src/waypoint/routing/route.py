"""Route declarations and normalized route records.

``Route`` is what users write. ``RouteRecord`` is what the matcher
derives from it: the full joined path, merged meta, normalized guards,
and the mutable per-instance state shared with the presentation layer.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from waypoint._internal.types import Guard

# Route ``redirect`` option: a target, or a callable computing one from the location
RedirectOption: TypeAlias = str | Mapping[str, Any] | Callable[[Any], Any]

# Route ``props`` option per view: True (pass params), a mapping, or a callable
PropsOption: TypeAlias = bool | Mapping[str, Any] | Callable[[Any], Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class Route:
    """A declared route.

    Usage::

        Route("/users/:id", name="user", component=UserPage,
              children=[Route("posts", component=UserPosts)],
              before_enter=require_login,
              meta={"requires_auth": True})

    ``component`` is shorthand for ``components={"default": component}``.
    Child paths are relative to the parent unless they start with ``/``.
    ``sensitive``, ``strict`` and ``end`` override the router defaults
    for this route's path parser when not ``None``.
    """

    path: str
    name: str | None = None
    component: Any = None
    components: Mapping[str, Any] | None = None
    children: Sequence["Route"] = ()
    redirect: RedirectOption | None = None
    alias: str | Sequence[str] | None = None
    before_enter: Guard | Sequence[Guard] | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    props: PropsOption | Mapping[str, PropsOption] | None = None
    sensitive: bool | None = None
    strict: bool | None = None
    end: bool | None = None

    @property
    def aliases(self) -> tuple[str, ...]:
        """Alias paths as a tuple (empty when no alias is declared)."""
        if self.alias is None:
            return ()
        if isinstance(self.alias, str):
            return (self.alias,)
        return tuple(self.alias)


@dataclass(slots=True, eq=False)
class RouteRecord:
    """A normalized route record, positioned in the tree.

    Compared by identity: the navigation pipeline diffs matched chains by
    reference, and alias records are distinct objects whose ``alias_of``
    points at the original.

    The mutable fields are the non-owning association with mounted views.
    The presentation layer writes them; the router clears them when the
    record stops being matched.
    """

    path: str
    name: str | None
    components: dict[str, Any]
    children: tuple[Route, ...]
    redirect: RedirectOption | None
    before_enter: tuple[Guard, ...]
    meta: dict[str, Any]
    props: dict[str, PropsOption]
    alias_of: "RouteRecord | None" = None

    # -- Per-instance state --
    instances: dict[str, Any] = field(default_factory=dict)
    enter_callbacks: dict[str, list[Callable[[Any], Any]]] = field(default_factory=dict)
    leave_guards: list[Guard] = field(default_factory=list)
    update_guards: list[Guard] = field(default_factory=list)

    @property
    def original(self) -> "RouteRecord":
        """The record this one aliases, or itself."""
        return self.alias_of or self

    def reset_instances(self) -> None:
        """Drop every view association after the record stops being matched."""
        self.instances.clear()
        self.enter_callbacks.clear()
        self.leave_guards.clear()
        self.update_guards.clear()

    def __repr__(self) -> str:
        alias = f" alias_of={self.alias_of.path!r}" if self.alias_of else ""
        return f"<RouteRecord {self.path!r} name={self.name!r}{alias}>"


def normalize_route(route: Route, path: str, parent_meta: Mapping[str, Any] | None = None) -> RouteRecord:
    """Build a ``RouteRecord`` from a declaration.

    *path* is the already-joined full path; *parent_meta* is the parent
    record's merged meta (child keys win).
    """
    if route.components is not None:
        components = dict(route.components)
    elif route.component is not None:
        components = {"default": route.component}
    else:
        components = {}

    return RouteRecord(
        path=path,
        name=route.name,
        components=components,
        children=tuple(route.children),
        redirect=route.redirect,
        before_enter=_normalize_guards(route.before_enter),
        meta={**(parent_meta or {}), **route.meta},
        props=_normalize_props(route.props, components),
    )


def _normalize_guards(guards: Guard | Sequence[Guard] | None) -> tuple[Guard, ...]:
    if guards is None:
        return ()
    if callable(guards):
        return (guards,)
    return tuple(guards)


def _normalize_props(
    props: PropsOption | Mapping[str, PropsOption] | None,
    components: Mapping[str, Any],
) -> dict[str, PropsOption]:
    """Expand the ``props`` option into one entry per view.

    A single option applies to every view; a mapping whose keys are view
    names is used as-is when all keys name declared views.
    """
    if props is None or props is False:
        return {}
    if isinstance(props, Mapping) and props and all(key in components for key in props):
        return dict(props)
    return dict.fromkeys(components, props)
