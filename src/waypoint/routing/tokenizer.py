"""Path template tokenizer.

Turns a template such as ``/users/:id(\\d+)/files/:path*`` into segments
of ``PathToken`` values. Segments are split on ``/``; a segment may hold
several tokens (``/:lang-:region`` is one segment with two params and a
static ``-`` between them).

Grammar::

    :name          one segment, default pattern [^/]+?
    :name?         optional
    :name+         one or more segments, joined by "/"
    :name*         zero or more segments
    :name(regex)   custom pattern; "\\)" keeps a literal parenthesis
    \\x            literal x (escapes ":" or "(" in static text)
"""

import re
from dataclasses import dataclass
from enum import Enum

from waypoint.errors import ConfigurationError

_VALID_PARAM_CHAR = re.compile(r"[A-Za-z0-9_]")

_MODIFIERS = frozenset("*?+")


@dataclass(frozen=True, slots=True)
class PathToken:
    """A parsed token of a path template.

    Static:  ``users``        (is_param=False, value="users")
    Param:   ``:id``          (is_param=True, value="id")
    Custom:  ``:id(\\d+)``    (is_param=True, value="id", regexp="\\d+")
    Star:    ``:path*``       (repeatable=True, optional=True)
    """

    value: str
    is_param: bool = False
    regexp: str = ""
    repeatable: bool = False
    optional: bool = False


class _State(Enum):
    STATIC = "static"
    PARAM = "param"
    PARAM_REGEXP = "param_regexp"
    PARAM_REGEXP_END = "param_regexp_end"
    ESCAPE_NEXT = "escape_next"


# Root path: a single empty segment
_ROOT: list[list[PathToken]] = [[]]


def tokenize_path(path: str) -> list[list[PathToken]]:
    """Split a path template into segments of tokens.

    Examples::

        "/"                -> [[]]
        "/users"           -> [[PathToken("users")]]
        "/users/:id"       -> [[PathToken("users")], [PathToken("id", is_param=True)]]
        "/files/:path*"    -> [[PathToken("files")],
                               [PathToken("path", is_param=True, repeatable=True, optional=True)]]

    Raises ``ConfigurationError`` for malformed templates.
    """
    if not path:
        return [[]]
    if path == "/":
        return [[]]
    if not path.startswith("/"):
        msg = (
            f'Route paths should start with a "/": "{path}" should be "/{path}".'
        )
        raise ConfigurationError(msg)

    return _Tokenizer(path).run()


class _Tokenizer:
    """Single-pass state machine over the template characters."""

    __slots__ = (
        "buffer",
        "char",
        "custom_re",
        "path",
        "previous_state",
        "segment",
        "state",
        "tokens",
    )

    def __init__(self, path: str) -> None:
        self.path = path
        self.state = _State.STATIC
        self.previous_state = _State.STATIC
        self.tokens: list[list[PathToken]] = []
        self.segment: list[PathToken] | None = None
        self.buffer = ""
        self.custom_re = ""
        self.char = ""

    def _error(self, message: str) -> ConfigurationError:
        msg = f'Error parsing path "{self.path}" ({self.state.value}/"{self.buffer}"): {message}'
        return ConfigurationError(msg)

    def _finalize_segment(self) -> None:
        if self.segment is not None:
            self.tokens.append(self.segment)
        self.segment = []

    def _consume_buffer(self) -> None:
        if self.segment is None:
            self.segment = []

        if self.state is _State.STATIC:
            if self.buffer:
                self.segment.append(PathToken(self.buffer))
        elif self.state in (_State.PARAM, _State.PARAM_REGEXP, _State.PARAM_REGEXP_END):
            if not self.buffer:
                raise self._error("A param must have a name")
            repeatable = self.char in ("*", "+")
            if len(self.segment) > 0 and repeatable:
                msg = f'A repeatable param ({self.buffer}) must be alone in its segment. eg: "/:ids+".'
                raise self._error(msg)
            self.segment.append(
                PathToken(
                    self.buffer,
                    is_param=True,
                    regexp=self.custom_re,
                    repeatable=repeatable,
                    optional=self.char in ("*", "?"),
                )
            )
        else:
            raise self._error("Invalid state to consume buffer")

        self.buffer = ""

    def run(self) -> list[list[PathToken]]:
        path = self.path
        i = 0
        while i < len(path):
            self.char = char = path[i]
            i += 1

            if char == "\\" and self.state is not _State.PARAM_REGEXP:
                self.previous_state = self.state
                self.state = _State.ESCAPE_NEXT
                continue

            if self.state is _State.STATIC:
                if char == "/":
                    if self.buffer:
                        self._consume_buffer()
                    self._finalize_segment()
                elif char == ":":
                    self._consume_buffer()
                    self.state = _State.PARAM
                else:
                    self.buffer += char

            elif self.state is _State.ESCAPE_NEXT:
                self.buffer += char
                self.state = self.previous_state

            elif self.state is _State.PARAM:
                if char == "(":
                    self.state = _State.PARAM_REGEXP
                elif _VALID_PARAM_CHAR.match(char):
                    self.buffer += char
                else:
                    self._consume_buffer()
                    self.state = _State.STATIC
                    # Modifiers were consumed with the param; anything else is re-read
                    if char not in _MODIFIERS:
                        i -= 1

            elif self.state is _State.PARAM_REGEXP:
                if char == ")":
                    if self.custom_re.endswith("\\"):
                        self.custom_re = self.custom_re[:-1] + char
                    else:
                        self.state = _State.PARAM_REGEXP_END
                else:
                    self.custom_re += char

            elif self.state is _State.PARAM_REGEXP_END:
                self._consume_buffer()
                self.state = _State.STATIC
                if char not in _MODIFIERS:
                    i -= 1
                self.custom_re = ""

        if self.state is _State.PARAM_REGEXP:
            raise self._error(f'Unfinished custom RegExp for param "{self.buffer}"')

        # End of the template: the last char is not a modifier
        self.char = ""
        if self.state is _State.ESCAPE_NEXT:
            self.state = self.previous_state
        self._consume_buffer()
        self._finalize_segment()

        return self.tokens
