"""
Flattening of GiveWP records into JSON-safe structures.

``flatten(record)`` walks ``record.attributes()`` and converts every value
according to its ValueKind:

    TIMESTAMP   datetime/date         -> "YYYY-MM-DD HH:MM:SS"
    MONEY       Money                 -> {"amount", "currency", "formatted"}
    STRINGABLE  enums, own __str__    -> str(value)
    COLLECTION  list/tuple/set        -> list of converted elements
    COMPOSITE   records, value objects, mappings -> dict of converted values
    PRIMITIVE   str/int/float/bool/None -> unchanged

Flattening never raises.  A value that fails to convert becomes None and a
warning is logged, so one odd field cannot fail a whole response.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from give_store.records import Money

logger = logging.getLogger(__name__)

JSONValue = Union[str, int, float, bool, None, list, dict]
Flattened = dict[str, JSONValue]
Augment = Callable[[Any], Optional[Mapping[str, Any]]]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ValueKind(Enum):
    TIMESTAMP = "timestamp"
    MONEY = "money"
    STRINGABLE = "stringable"
    COLLECTION = "collection"
    COMPOSITE = "composite"
    PRIMITIVE = "primitive"


def _has_own_str(value: Any) -> bool:
    return type(value).__str__ is not object.__str__


def classify(value: Any) -> ValueKind:
    """Pick the conversion branch for ``value`` (first match wins)."""
    if isinstance(value, (datetime, date)):
        return ValueKind.TIMESTAMP
    if isinstance(value, Money):
        return ValueKind.MONEY
    if isinstance(value, Enum) or isinstance(value, Decimal):
        return ValueKind.STRINGABLE
    if value is None or isinstance(value, (str, int, float, bool)):
        return ValueKind.PRIMITIVE
    if isinstance(value, (list, tuple, set, frozenset)):
        return ValueKind.COLLECTION
    if (
        hasattr(value, "attributes")
        or hasattr(value, "to_dict")
        or isinstance(value, Mapping)
        or dataclasses.is_dataclass(value)
    ):
        return ValueKind.COMPOSITE
    if _has_own_str(value):
        return ValueKind.STRINGABLE
    return ValueKind.COMPOSITE


def _timestamp(value: date) -> str:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return value.strftime(TIMESTAMP_FORMAT)


def _money(value: Money) -> dict[str, Any]:
    return {
        "amount": value.amount,
        "currency": value.currency,
        "formatted": value.format_to_decimal(),
    }


def _stringable(value: Any) -> str:
    return str(value)


def _collection(value: Any) -> list:
    items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
    return [convert(item) for item in items]


def _composite(value: Any) -> Any:
    if hasattr(value, "attributes"):
        return flatten(value)
    if hasattr(value, "to_dict"):
        data = value.to_dict()
    elif isinstance(value, Mapping):
        data = value
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    else:
        return str(value)
    return {str(k): convert(v) for k, v in data.items()}


def _primitive(value: Any) -> Any:
    return value


_CONVERTERS: dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.TIMESTAMP: _timestamp,
    ValueKind.MONEY: _money,
    ValueKind.STRINGABLE: _stringable,
    ValueKind.COLLECTION: _collection,
    ValueKind.COMPOSITE: _composite,
    ValueKind.PRIMITIVE: _primitive,
}


def convert(value: Any) -> JSONValue:
    """Convert a single value to its JSON-safe form."""
    return _CONVERTERS[classify(value)](value)


def flatten(record: Any, augment: Optional[Augment] = None) -> Optional[Flattened]:
    """Flatten a record into an ordered dict of JSON-safe values.

    Args:
        record: Any object exposing ``attributes()``.
        augment: Optional callable invoked with ``record`` after the base
            flatten; keys of the mapping it returns overwrite base keys.

    Returns:
        The flattened dict, or None when ``record`` is None or its
        ``attributes()`` is missing, raises, or returns a non-mapping.
    """
    if record is None or not callable(getattr(record, "attributes", None)):
        return None

    try:
        attributes = record.attributes()
    except Exception:
        logger.warning("Could not read attributes of %s", type(record).__name__, exc_info=True)
        return None
    if not isinstance(attributes, Mapping):
        logger.warning(
            "attributes() of %s returned %s, not a mapping",
            type(record).__name__, type(attributes).__name__,
        )
        return None

    data: Flattened = {}
    for key, value in attributes.items():
        try:
            data[key] = convert(value)
        except Exception:
            logger.warning(
                "Could not flatten field %s of %s", key, type(record).__name__,
                exc_info=True,
            )
            data[key] = None

    if augment is not None:
        extra = augment(record)
        if isinstance(extra, Mapping):
            data.update(extra)

    return data
