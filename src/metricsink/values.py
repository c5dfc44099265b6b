"""Sample values and their storage types.

Values are normalized into a closed set of variants before any SQL is built:

- `classify()` turns a plain Python value into a variant (variants pass through).
- `column_type()` maps a variant to the column type used when creating storage.
- `bind()` converts a variant to the driver parameter for an insert.

Producers that care about integer width or float precision can pass a variant
directly (e.g. `Int32Value(7)` creates an INTEGER column rather than BIGINT).
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from fractions import Fraction
from typing import Any, Union

from .errors import UnsupportedValueTypeError
from .stores.base import Dialect

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class TextValue:
    value: str


@dataclass(frozen=True)
class TimestampValue:
    value: datetime


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class Int16Value:
    value: int


@dataclass(frozen=True)
class Int32Value:
    value: int


@dataclass(frozen=True)
class Int64Value:
    value: int


@dataclass(frozen=True)
class Float32Value:
    value: float


@dataclass(frozen=True)
class Float64Value:
    value: float


@dataclass(frozen=True)
class NumericValue:
    value: numbers.Number


ScalarValue = Union[
    TextValue,
    TimestampValue,
    BoolValue,
    Int16Value,
    Int32Value,
    Int64Value,
    Float32Value,
    Float64Value,
    NumericValue,
]

_VARIANTS = (
    TextValue,
    TimestampValue,
    BoolValue,
    Int16Value,
    Int32Value,
    Int64Value,
    Float32Value,
    Float64Value,
    NumericValue,
)

# Text is absent: its column type comes from the dialect/configuration.
_COLUMN_TYPES: dict[type, str] = {
    TimestampValue: "TIMESTAMP",
    BoolValue: "BOOLEAN",
    Int64Value: "BIGINT",
    Int32Value: "INTEGER",
    Int16Value: "SMALLINT",
    Float64Value: "REAL",
    Float32Value: "REAL",
    NumericValue: "NUMERIC",
}


def classify(value: Any) -> ScalarValue:
    """Return the variant for `value`.

    Raises:
    - `UnsupportedValueTypeError` when the runtime type has no storage type.
    """
    if isinstance(value, _VARIANTS):
        return value
    if isinstance(value, str):
        return TextValue(value)
    if isinstance(value, datetime):
        return TimestampValue(value)
    # bool is a subclass of int; check it first.
    if isinstance(value, bool):
        return BoolValue(value)
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return Int64Value(value)
        return NumericValue(value)
    if isinstance(value, float):
        return Float64Value(value)
    # Complex numbers have no column type.
    if isinstance(value, (numbers.Real, Decimal)):
        return NumericValue(value)
    raise UnsupportedValueTypeError(value)


def column_type(value: ScalarValue, text_type: str) -> str:
    """Return the storage column type for a variant."""
    if isinstance(value, TextValue):
        return text_type
    return _COLUMN_TYPES[type(value)]


def column_type_of(value: Any, text_type: str) -> str:
    """Classify a plain value and return its storage column type."""
    return column_type(classify(value), text_type)


def bind(value: ScalarValue, dialect: Dialect) -> Any:
    """Convert a variant to the driver's positional parameter."""
    if isinstance(value, TimestampValue):
        return dialect.bind_timestamp(value.value)
    if isinstance(value, NumericValue):
        raw = value.value
        if isinstance(raw, Fraction):
            raw = Decimal(raw.numerator) / Decimal(raw.denominator)
        elif not isinstance(raw, Decimal):
            raw = Decimal(str(raw))
        return dialect.bind_decimal(raw)
    if isinstance(value, (Float32Value, Float64Value)):
        return float(value.value)
    return value.value
