"""Decoding of PHP-serialized meta values.

WordPress persists arrays and objects in meta tables as PHP ``serialize()``
strings.  ``maybe_unserialize`` mirrors the WordPress function of the same
name: values that look serialized are decoded, everything else is returned
unchanged.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import phpserialize

logger = logging.getLogger(__name__)

_SCALAR_RE = re.compile(r"^[bid]:[0-9.E+-]+;$")
_SIZED_RE = re.compile(r"^[saOE]:[0-9]+:", re.S)


def is_serialized(data: Any) -> bool:
    """Return True if ``data`` is a string in PHP serialize() format.

    Same strict checks as WordPress ``is_serialized()``.
    """
    if not isinstance(data, str):
        return False
    data = data.strip()
    if data == "N;":
        return True
    if len(data) < 4 or data[1] != ":":
        return False
    if data[-1] not in (";", "}"):
        return False
    token = data[0]
    if token == "s":
        if data[-2] != '"':
            return False
        return bool(_SIZED_RE.match(data))
    if token in ("a", "O", "E"):
        return bool(_SIZED_RE.match(data))
    if token in ("b", "i", "d"):
        return bool(_SCALAR_RE.match(data))
    return False


def _object_hook(name: str, props: dict) -> dict:
    return dict(props)


def _normalize(value: Any) -> Any:
    """Turn phpserialize output into JSON-safe Python values."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        keys = list(value.keys())
        if keys == list(range(len(keys))):
            return [_normalize(v) for v in value.values()]
        return {str(_normalize(k)): _normalize(v) for k, v in value.items()}
    return value


def maybe_unserialize(value: Any) -> Any:
    """Decode ``value`` if it is PHP-serialized, otherwise return it as-is.

    Values that pass ``is_serialized`` but fail to decode are returned
    unchanged, as WordPress does.
    """
    if not is_serialized(value):
        return value
    text = value.strip()
    try:
        decoded = phpserialize.loads(
            text.encode("utf-8"),
            decode_strings=True,
            object_hook=_object_hook,
        )
    except (ValueError, TypeError):
        logger.debug("Could not unserialize meta value %.40r", text)
        return value
    return _normalize(decoded)
