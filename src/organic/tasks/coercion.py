"""Type coercion for task contracts.

Every value crossing a task boundary is converted into one of a small set of
semantic types. Coercion is pure and deterministic: the same value and type
always produce the same result or the same :class:`CoercionError`.

``None`` means *absent* and never coerces. A whitespace-only string is
*present but empty* and becomes the empty string, list or mapping for the
types that have one.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from ..errors import CoercionError


class SemanticType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"

    def __str__(self) -> str:
        return self.value


TypeLike = Union[SemanticType, str]

TYPE_NAMES = tuple(member.value for member in SemanticType)

_TRUE_STRINGS = frozenset({"true", "1"})
_FALSE_STRINGS = frozenset({"false", "0"})

# Python refuses int<->str conversions beyond this many digits by default.
_MAX_INTEGER_DIGITS = 4300

COERCION_RULES: Dict[SemanticType, Dict[str, str]] = {
    SemanticType.STRING: {
        "accepts": "any scalar",
        "rule": "stringify non-string scalars (booleans as true/false)",
        "fails": "collections",
    },
    SemanticType.NUMBER: {
        "accepts": "numeric string, integer, float",
        "rule": "parse to float",
        "fails": "non-numeric text, non-finite values, booleans",
    },
    SemanticType.INTEGER: {
        "accepts": "numeric string, integer, whole float",
        "rule": "parse to int, decimal strings exactly",
        "fails": "non-zero fractional part, non-numeric text, booleans",
    },
    SemanticType.BOOLEAN: {
        "accepts": "boolean, 'true'/'false'/'1'/'0' (any case)",
        "rule": "map to True/False",
        "fails": "anything else",
    },
    SemanticType.ARRAY: {
        "accepts": "list, tuple, comma-separated string",
        "rule": "ordered list of raw elements, string pieces trimmed",
        "fails": "mappings, sets, other scalars",
    },
    SemanticType.OBJECT: {
        "accepts": "mapping",
        "rule": "passthrough",
        "fails": "anything that is not already a mapping",
    },
}


def parse_type(name: TypeLike) -> SemanticType:
    """Resolve a declared type name. Raises ``ValueError`` for unknown names."""

    if isinstance(name, SemanticType):
        return name
    if not isinstance(name, str):
        raise ValueError(f"Type name must be a string, got {type(name).__name__}")
    try:
        return SemanticType(name.strip().lower())
    except ValueError as exc:
        raise ValueError(
            f"Unknown type '{name}', expected one of {', '.join(TYPE_NAMES)}"
        ) from exc


def is_known_type(name: Any) -> bool:
    try:
        parse_type(name)
    except ValueError:
        return False
    return True


def _is_blank(value: Any) -> bool:
    return isinstance(value, str) and not value.strip()


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, Mapping))


def coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return "" if _is_blank(value) else value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_collection(value):
        raise CoercionError(value, "string", f"{type(value).__name__} is a collection")
    return str(value)


def coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionError(value, "number", "booleans are not numbers")
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            raise CoercionError(value, "number", "value is not finite") from None
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise CoercionError(value, "number", "not a numeric string") from None
    else:
        raise CoercionError(value, "number", f"unsupported type {type(value).__name__}")
    if not math.isfinite(result):
        raise CoercionError(value, "number", "value is not finite")
    return result


def _whole_decimal(value: Any, text: str) -> int:
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        raise CoercionError(value, "integer", "not a numeric string") from None
    if not parsed.is_finite():
        raise CoercionError(value, "integer", "value is not finite")
    if parsed.adjusted() > _MAX_INTEGER_DIGITS:
        raise CoercionError(value, "integer", "value is too large")
    if parsed != parsed.to_integral_value():
        raise CoercionError(value, "integer", "fractional part is not zero")
    return int(parsed)


def coerce_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionError(value, "integer", "booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CoercionError(value, "integer", "value is not finite")
        if not value.is_integer():
            raise CoercionError(value, "integer", "fractional part is not zero")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            # Whole values with a decimal point stay exact: "12345678901234567.0" -> 12345678901234567.
            return _whole_decimal(value, text)
    raise CoercionError(value, "integer", f"unsupported type {type(value).__name__}")


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise CoercionError(value, "boolean", "expected true, false, 1 or 0")
    raise CoercionError(value, "boolean", f"unsupported type {type(value).__name__}")


def coerce_array(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [piece.strip() for piece in value.split(",") if piece.strip()]
    raise CoercionError(value, "array", f"unsupported type {type(value).__name__}")


def coerce_object(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    if _is_blank(value):
        return {}
    raise CoercionError(value, "object", f"expected a mapping, got {type(value).__name__}")


_COERCERS = {
    SemanticType.STRING: coerce_string,
    SemanticType.NUMBER: coerce_number,
    SemanticType.INTEGER: coerce_integer,
    SemanticType.BOOLEAN: coerce_boolean,
    SemanticType.ARRAY: coerce_array,
    SemanticType.OBJECT: coerce_object,
}


def coerce(value: Any, declared_type: TypeLike) -> Any:
    """Coerce ``value`` into ``declared_type`` or raise :class:`CoercionError`."""

    target = parse_type(declared_type)
    if value is None:
        raise CoercionError(value, target.value, "value is missing")
    if _is_blank(value) and target in (
        SemanticType.NUMBER,
        SemanticType.INTEGER,
        SemanticType.BOOLEAN,
    ):
        raise CoercionError(value, target.value, f"blank string has no {target.value} value")
    return _COERCERS[target](value)
