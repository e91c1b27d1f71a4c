"""Default query codec.

The router treats the query codec as two opaque callables
(``parse_query`` / ``stringify_query``); these are the defaults. Swap
them on the ``Router`` constructor for another format.

Values are kept as strings. A key without ``=`` maps to ``None`` and a
repeated key maps to a list, so ``parse_query`` and ``stringify_query``
round-trip::

    parse_query("?tag=a&tag=b&flag")      # {"tag": ["a", "b"], "flag": None}
    stringify_query({"q": "a b", "n": 2})  # "q=a+b&n=2"
"""

from collections.abc import Mapping
from typing import Any

from waypoint._internal.types import Query, QueryValue
from waypoint.routing.encoding import decode, encode_query_key, encode_query_value


def parse_query(search: str) -> Query:
    """Parse a query string (with or without the leading ``?``)."""
    query: Query = {}
    if search in ("", "?"):
        return query

    if search.startswith("?"):
        search = search[1:]

    for part in search.split("&"):
        if not part:
            continue
        part = part.replace("+", " ")
        key_text, eq, value_text = part.partition("=")
        key = decode(key_text)
        value = decode(value_text) if eq else None

        if key in query:
            current = query[key]
            if isinstance(current, list):
                current.append(value)
            else:
                query[key] = [current, value]
        else:
            query[key] = value

    return query


def stringify_query(query: Mapping[str, Any] | None) -> str:
    """Serialize a query mapping, without the leading ``?``."""
    if not query:
        return ""

    parts: list[str] = []
    for raw_key, value in query.items():
        key = encode_query_key(raw_key)
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                parts.append(key)
            else:
                parts.append(f"{key}={encode_query_value(item)}")
    return "&".join(parts)


def normalize_query(query: Mapping[str, Any] | None) -> Query:
    """Coerce query values to strings, keeping ``None`` and lists."""
    normalized: Query = {}
    if not query:
        return normalized
    for key, value in query.items():
        if isinstance(value, (list, tuple)):
            normalized[key] = [_normalize_value(item) for item in value]
        else:
            normalized[key] = _normalize_value(value)
    return normalized


def _normalize_value(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def query_value(query: Mapping[str, QueryValue], key: str, default: str | None = None) -> str | None:
    """Return the first value for *key*, or *default* if missing."""
    value = query.get(key)
    if isinstance(value, list):
        return value[0] if value else default
    return default if value is None else value
