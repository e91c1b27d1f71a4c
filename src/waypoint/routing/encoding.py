"""Percent-encoding for the parts of a location.

Each part of a URL tolerates a different set of raw characters. These
helpers mirror ``encodeURI`` and then tighten (or relax) the safe set per
part:

- ``encode_path``   — ``#`` and ``?`` are encoded, ``/`` is kept
- ``encode_param``  — like ``encode_path`` but ``/`` is encoded too
- ``encode_query_value`` / ``encode_query_key`` — ``&``, ``#``, ``+``
  (and ``=`` for keys) are encoded, spaces become ``+``
- ``encode_hash``   — ``{``, ``}`` and ``^`` stay readable

``decode`` is the inverse for every part: ``decode(encode_x(s)) == s``.
"""

import logging
from urllib.parse import quote, unquote

logger = logging.getLogger("waypoint.encoding")

# Characters encodeURI leaves alone, plus the ones kept readable on purpose
_URI_SAFE = ";,/?:@&=+$!*'()#|[]"

_PATH_SAFE = _URI_SAFE.replace("#", "").replace("?", "")
_PARAM_SAFE = _PATH_SAFE.replace("/", "")
_HASH_SAFE = _URI_SAFE + "{}^"
_QUERY_VALUE_SAFE = _URI_SAFE.replace("#", "").replace("&", "").replace("+", "") + "{}^`"
_QUERY_KEY_SAFE = _QUERY_VALUE_SAFE.replace("=", "")


def encode_hash(text: str) -> str:
    """Encode the hash part of a location (leading ``#`` included)."""
    return quote(text, safe=_HASH_SAFE)


def encode_query_value(text: str | int | float | None) -> str:
    """Encode a query value. Spaces become ``+``, a literal ``+`` becomes ``%2B``."""
    if text is None:
        return ""
    return quote(str(text), safe=_QUERY_VALUE_SAFE).replace("%20", "+")


def encode_query_key(text: str | int | float) -> str:
    """Like ``encode_query_value`` but ``=`` is encoded as well."""
    return quote(str(text), safe=_QUERY_KEY_SAFE).replace("%20", "+")


def encode_path(text: str | int | float) -> str:
    """Encode a path, keeping ``/`` separators."""
    return quote(str(text), safe=_PATH_SAFE)


def encode_param(text: str | int | float | None) -> str:
    """Encode a single param value so it stays inside one path segment."""
    if text is None:
        return ""
    return quote(str(text), safe=_PARAM_SAFE)


def decode(text: str | int | float) -> str:
    """Decode a percent-encoded string.

    Malformed sequences (e.g. bytes that are not valid UTF-8) are logged
    and the original text is returned unchanged.
    """
    text = str(text)
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        logger.warning("Error decoding %r. Using the original value", text)
        return text
