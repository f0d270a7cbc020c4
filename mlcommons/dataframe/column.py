"""Typed scalar values for tabular data.

Every cell of a ``DataFrame`` is a ``ColumnValue``: an immutable scalar tagged
with its ``ColumnType``. The serialized form is exactly
``{"column_type": "<TAG>", "value": <scalar>}``.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Tuple, Type

import numpy as np

from mlcommons.common.exceptions import TypeMismatchError


class ColumnType(Enum):
    """Supported column types."""
    STRING = "STRING"
    SHORT = "SHORT"
    INTEGER = "INTEGER"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"


NUMERIC_COLUMN_TYPES = frozenset({
    ColumnType.SHORT,
    ColumnType.INTEGER,
    ColumnType.LONG,
    ColumnType.FLOAT,
    ColumnType.DOUBLE,
})


@dataclass(frozen=True)
class ColumnMeta:
    """Name and type of a column."""
    name: str
    column_type: ColumnType

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "column_type": self.column_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnMeta":
        return cls(name=data["name"], column_type=ColumnType(data["column_type"]))


@dataclass(frozen=True)
class ColumnValue:
    """Immutable scalar tagged with a column type.

    Subclasses set ``_column_type`` and implement ``_coerce`` to validate the
    payload. Typed accessors raise ``TypeMismatchError`` unless the requested
    type is the value's own type.
    """

    value: Any

    _column_type: ClassVar[ColumnType]

    def __post_init__(self):
        object.__setattr__(self, "value", self._coerce(self.value))

    @classmethod
    def _coerce(cls, value: Any) -> Any:
        raise NotImplementedError

    def column_type(self) -> ColumnType:
        """Return the type tag of this value."""
        return self._column_type

    def _typed(self, expected: ColumnType) -> Any:
        if self._column_type is not expected:
            raise TypeMismatchError(
                f"the value isn't {expected.value} type: {self._column_type.value}"
            )
        return self.value

    def short_value(self) -> int:
        return self._typed(ColumnType.SHORT)

    def int_value(self) -> int:
        return self._typed(ColumnType.INTEGER)

    def long_value(self) -> int:
        return self._typed(ColumnType.LONG)

    def float_value(self) -> float:
        return self._typed(ColumnType.FLOAT)

    def double_value(self) -> float:
        return self._typed(ColumnType.DOUBLE)

    def string_value(self) -> str:
        return self._typed(ColumnType.STRING)

    def boolean_value(self) -> bool:
        return self._typed(ColumnType.BOOLEAN)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to ``{"column_type": ..., "value": ...}``."""
        return {"column_type": self._column_type.value, "value": self.value}

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def _is_integer(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


class _BoundedIntegerValue(ColumnValue):
    _bits: ClassVar[int]

    @classmethod
    def _coerce(cls, value: Any) -> int:
        if not _is_integer(value):
            raise TypeMismatchError(
                f"{cls._column_type.value} value must be an integer, got {type(value).__name__}"
            )
        value = int(value)
        bound = 1 << (cls._bits - 1)
        if not -bound <= value < bound:
            raise TypeMismatchError(f"{value} is out of range for {cls._column_type.value}")
        return value


class ShortValue(_BoundedIntegerValue):
    _column_type = ColumnType.SHORT
    _bits = 16


class IntValue(_BoundedIntegerValue):
    _column_type = ColumnType.INTEGER
    _bits = 32


class LongValue(_BoundedIntegerValue):
    _column_type = ColumnType.LONG
    _bits = 64


class _FloatingValue(ColumnValue):
    @classmethod
    def _coerce(cls, value: Any) -> float:
        if isinstance(value, (float, np.floating)) or _is_integer(value):
            return float(value)
        raise TypeMismatchError(
            f"{cls._column_type.value} value must be a number, got {type(value).__name__}"
        )


class FloatValue(_FloatingValue):
    _column_type = ColumnType.FLOAT


class DoubleValue(_FloatingValue):
    _column_type = ColumnType.DOUBLE


class StringValue(ColumnValue):
    _column_type = ColumnType.STRING

    @classmethod
    def _coerce(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeMismatchError(f"STRING value must be a str, got {type(value).__name__}")
        return value


class BooleanValue(ColumnValue):
    _column_type = ColumnType.BOOLEAN

    @classmethod
    def _coerce(cls, value: Any) -> bool:
        if not isinstance(value, (bool, np.bool_)):
            raise TypeMismatchError(f"BOOLEAN value must be a bool, got {type(value).__name__}")
        return bool(value)


class NullValue(ColumnValue):
    _column_type = ColumnType.NULL

    def __init__(self, value: Any = None):
        super().__init__(value)

    @classmethod
    def _coerce(cls, value: Any) -> None:
        if value is not None:
            raise TypeMismatchError("NULL value must be None")
        return None


_VALUE_CLASSES: Dict[ColumnType, Type[ColumnValue]] = {
    ColumnType.STRING: StringValue,
    ColumnType.SHORT: ShortValue,
    ColumnType.INTEGER: IntValue,
    ColumnType.LONG: LongValue,
    ColumnType.FLOAT: FloatValue,
    ColumnType.DOUBLE: DoubleValue,
    ColumnType.BOOLEAN: BooleanValue,
    ColumnType.NULL: NullValue,
}

_INT32_RANGE: Tuple[int, int] = (-(1 << 31), (1 << 31) - 1)


def column_value(column_type: ColumnType, value: Any) -> ColumnValue:
    """Build a value of an explicit type; ``None`` always becomes ``NullValue``."""
    if value is None:
        return NullValue()
    return _VALUE_CLASSES[column_type](value)


def column_value_of(value: Any) -> ColumnValue:
    """Infer a ``ColumnValue`` from a Python or numpy scalar.

    Integers become ``IntValue`` when they fit in 32 bits, ``LongValue``
    otherwise. Values that are already ``ColumnValue`` are returned as is.
    """
    if isinstance(value, ColumnValue):
        return value
    if value is None:
        return NullValue()
    if isinstance(value, (bool, np.bool_)):
        return BooleanValue(value)
    if _is_integer(value):
        low, high = _INT32_RANGE
        return IntValue(value) if low <= int(value) <= high else LongValue(value)
    if isinstance(value, np.float32):
        return FloatValue(value)
    if isinstance(value, (float, np.floating)):
        return DoubleValue(value)
    if isinstance(value, str):
        return StringValue(value)
    raise TypeMismatchError(f"Unsupported column value type: {type(value).__name__}")


def column_value_from_dict(data: Dict[str, Any]) -> ColumnValue:
    """Parse the serialized ``{"column_type", "value"}`` form."""
    try:
        column_type = ColumnType(data["column_type"])
    except (KeyError, ValueError) as e:
        raise TypeMismatchError(f"Invalid column value: {data!r}") from e
    return column_value(column_type, data.get("value"))
