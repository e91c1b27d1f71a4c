"""Path pattern compiler — tokens to regex, params, stringifier and score.

A ``PathParser`` is compiled once per route record and exposes:

- ``parse(path)``      -> decoded params, or ``None`` when the path doesn't match
- ``stringify(params)`` -> encoded path built from params
- ``score``            -> nested tuple used to rank records by specificity
- ``re`` / ``keys``    -> the compiled pattern and its param keys

Scoring (per token, multiplier 10)::

    root segment        90
    segment             40
    static              +40
    dynamic             +20
    custom regexp       +10
    optional            -8
    repeatable          -20
    wildcard (.*)       -50
    strict (last token) +0.7
    case sensitive      +0.25

Scores compare segment by segment; the higher one ranks first. A param
with a custom regexp (``:id(\\d+)``) therefore ranks above a plain
``:id``, since the regexp narrows what the segment accepts. When two
patterns share a prefix and differ by one segment, the longer one ranks
first unless its last score is negative (a trailing catch-all).
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from waypoint.errors import ConfigurationError, ParamError
from waypoint.routing.encoding import decode, encode_param
from waypoint.routing.tokenizer import PathToken, tokenize_path

_MULTIPLIER = 10

SCORE_ROOT = 9 * _MULTIPLIER
SCORE_SEGMENT = 4 * _MULTIPLIER
SCORE_SUB_SEGMENT = 3 * _MULTIPLIER
SCORE_STATIC = 4 * _MULTIPLIER
SCORE_DYNAMIC = 2 * _MULTIPLIER
BONUS_CUSTOM_REGEXP = 1 * _MULTIPLIER
BONUS_WILDCARD = -4 * _MULTIPLIER - BONUS_CUSTOM_REGEXP
BONUS_REPEATABLE = -2 * _MULTIPLIER
BONUS_OPTIONAL = -0.8 * _MULTIPLIER
BONUS_STRICT = 0.07 * _MULTIPLIER
BONUS_CASE_SENSITIVE = 0.025 * _MULTIPLIER

# Default pattern for a param: one segment, non-greedy
BASE_PARAM_PATTERN = "[^/]+?"

# A lone static segment ("/about") outranks longer dynamic patterns
_LONE_STATIC = SCORE_STATIC + SCORE_SEGMENT

Score: TypeAlias = tuple[tuple[float, ...], ...]


@dataclass(frozen=True, slots=True)
class ParamKey:
    """A param declared by a compiled template."""

    name: str
    repeatable: bool = False
    optional: bool = False


class PathParser:
    """A compiled path template.

    Usage::

        parser = PathParser(tokenize_path("/users/:id"))
        parser.parse("/users/42")          # {"id": "42"}
        parser.stringify({"id": "a b"})    # "/users/a%20b"
    """

    __slots__ = ("_groups", "_segments", "keys", "re", "score")

    def __init__(
        self,
        segments: list[list[PathToken]],
        *,
        sensitive: bool = False,
        strict: bool = False,
        start: bool = True,
        end: bool = True,
    ) -> None:
        self._segments = segments
        score: list[tuple[float, ...]] = []
        keys: list[ParamKey] = []
        groups: list[str] = []
        pattern = "^" if start else ""

        for segment in segments:
            segment_scores: list[float] = [] if segment else [SCORE_ROOT]

            if strict and not segment:
                pattern += "/"

            for token_index, token in enumerate(segment):
                sub_segment_score: float = SCORE_SEGMENT + (
                    BONUS_CASE_SENSITIVE if sensitive else 0
                )

                if not token.is_param:
                    if token_index == 0:
                        pattern += "/"
                    pattern += re.escape(token.value)
                    sub_segment_score += SCORE_STATIC
                else:
                    if any(key.name == token.value for key in keys):
                        msg = f'Found duplicated params with name "{token.value}" in path template'
                        raise ConfigurationError(msg)
                    keys.append(ParamKey(token.value, token.repeatable, token.optional))

                    param_re = token.regexp or BASE_PARAM_PATTERN
                    if param_re != BASE_PARAM_PATTERN:
                        sub_segment_score += BONUS_CUSTOM_REGEXP
                        try:
                            re.compile(f"({param_re})")
                        except re.error as exc:
                            msg = f'Invalid custom RegExp for param "{token.value}" ({param_re}): {exc}'
                            raise ConfigurationError(msg) from exc

                    group = f"p{len(groups)}"
                    groups.append(group)
                    if token.repeatable:
                        sub_pattern = f"(?P<{group}>(?:{param_re})(?:/(?:{param_re}))*)"
                    else:
                        sub_pattern = f"(?P<{group}>{param_re})"

                    if token_index == 0:
                        # An optional param alone in its segment swallows its slash too
                        if token.optional and len(segment) < 2:
                            sub_pattern = f"(?:/{sub_pattern})"
                        else:
                            sub_pattern = "/" + sub_pattern
                    if token.optional:
                        sub_pattern += "?"

                    pattern += sub_pattern

                    sub_segment_score += SCORE_DYNAMIC
                    if token.optional:
                        sub_segment_score += BONUS_OPTIONAL
                    if token.repeatable:
                        sub_segment_score += BONUS_REPEATABLE
                    if param_re == ".*":
                        sub_segment_score += BONUS_WILDCARD

                segment_scores.append(sub_segment_score)

            score.append(tuple(segment_scores))

        if strict and end and score:
            last = list(score[-1])
            last[-1] += BONUS_STRICT
            score[-1] = tuple(last)

        if not strict:
            pattern += "/?"

        if end:
            pattern += r"\Z"
        elif strict and not pattern.endswith("/"):
            # A prefix match must stop at a segment boundary
            pattern += r"(?:/|\Z)"

        try:
            self.re = re.compile(pattern, 0 if sensitive else re.IGNORECASE)
        except re.error as exc:
            msg = f"Invalid path pattern {pattern!r}: {exc}"
            raise ConfigurationError(msg) from exc
        self.keys: tuple[ParamKey, ...] = tuple(keys)
        self.score: Score = tuple(score)
        self._groups = tuple(groups)

    def parse(self, path: str) -> dict[str, str | list[str]] | None:
        """Match *path* and return decoded params, or ``None``."""
        match = self.re.match(path)
        if match is None:
            return None

        params: dict[str, str | list[str]] = {}
        for key, group in zip(self.keys, self._groups, strict=True):
            value = match.group(group) or ""
            if value and key.repeatable:
                params[key.name] = [decode(part) for part in value.split("/")]
            else:
                params[key.name] = decode(value)
        return params

    def stringify(self, params: Mapping[str, Any]) -> str:
        """Build a path from *params*, encoding each value.

        Raises ``ParamError`` when a required param is missing or a list
        is given for a param that is not repeatable.
        """
        path = ""
        avoid_duplicated_slash = False

        for segment in self._segments:
            if not avoid_duplicated_slash or not path.endswith("/"):
                path += "/"
            avoid_duplicated_slash = False

            for token in segment:
                if not token.is_param:
                    path += token.value
                    continue

                param = params.get(token.value, "")
                if _is_sequence(param):
                    if not token.repeatable:
                        msg = (
                            f'Provided param "{token.value}" is a list but it is not '
                            "repeatable (* or + modifiers)"
                        )
                        raise ParamError(msg)
                    text = "/".join(encode_param(part) for part in param)
                else:
                    text = encode_param(param)

                if not text:
                    if not token.optional:
                        msg = f'Missing required param "{token.value}"'
                        raise ParamError(msg)
                    # An empty optional param alone in its segment drops the segment
                    if len(segment) < 2 and len(self._segments) > 1:
                        if path.endswith("/"):
                            path = path[:-1]
                        else:
                            avoid_duplicated_slash = True
                path += text

        return path or "/"

    def __repr__(self) -> str:
        return f"PathParser({self.re.pattern!r})"


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str)


def compile_path(
    path: str,
    *,
    sensitive: bool = False,
    strict: bool = False,
    end: bool = True,
) -> PathParser:
    """Tokenize and compile a template in one step."""
    return PathParser(tokenize_path(path), sensitive=sensitive, strict=strict, end=end)


def compare_score_array(a: Sequence[float], b: Sequence[float]) -> float:
    """Compare two segment scores. Negative means *a* ranks first."""
    for a_value, b_value in zip(a, b, strict=False):
        diff = b_value - a_value
        if diff:
            return diff

    if len(a) < len(b):
        return -1 if len(a) == 1 and a[0] == _LONE_STATIC else 1
    if len(a) > len(b):
        return 1 if len(b) == 1 and b[0] == _LONE_STATIC else -1
    return 0


def compare_path_parser_score(a: PathParser, b: PathParser) -> float:
    """Compare two parsers. Negative means *a* is more specific than *b*."""
    for a_segment, b_segment in zip(a.score, b.score, strict=False):
        comparison = compare_score_array(a_segment, b_segment)
        if comparison:
            return comparison

    # A trailing catch-all also matches the bare prefix, so it must rank after it
    if abs(len(b.score) - len(a.score)) == 1:
        if _is_last_score_negative(a.score):
            return 1
        if _is_last_score_negative(b.score):
            return -1
    return len(b.score) - len(a.score)


def _is_last_score_negative(score: Score) -> bool:
    return bool(score) and bool(score[-1]) and score[-1][-1] < 0
