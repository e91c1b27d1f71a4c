"""Shared type aliases used across waypoint modules."""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeAlias

# A navigation guard — (to, from_) or (to, from_, next), sync or async
Guard: TypeAlias = Callable[..., Any]

# After-navigation hook — receives (to, from_, failure)
AfterHook: TypeAlias = Callable[..., Any]

# Error handler registered via Router.on_error — receives the exception
ErrorHandler: TypeAlias = Callable[[BaseException], Any]

# Raw param values as accepted from callers (coerced to str)
RawParamValue: TypeAlias = str | int | float | Sequence[str | int | float]

# Normalized param values: a single string, or a list for repeatable params
ParamValue: TypeAlias = str | list[str]
Params: TypeAlias = dict[str, ParamValue]

# Query mapping: value is a string, None (key without "="), or a list of either
QueryValue: TypeAlias = str | None | list[str | None]
Query: TypeAlias = dict[str, QueryValue]
RawQuery: TypeAlias = Mapping[str, Any]

# Query codec callables
ParseQuery: TypeAlias = Callable[[str], Query]
StringifyQuery: TypeAlias = Callable[[RawQuery], str]
