"""Rows and data frames.

A ``DataFrame`` is an ordered, immutable collection of ``Row`` objects that
share the declared ``ColumnMeta`` list: every row has exactly one value per
column and every non-null value carries the column's type.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from mlcommons.common.exceptions import SchemaViolationError
from mlcommons.dataframe.column import (
    ColumnMeta,
    ColumnType,
    ColumnValue,
    NUMERIC_COLUMN_TYPES,
    column_value,
    column_value_from_dict,
    column_value_of,
)


class Row:
    """Ordered, fixed-width sequence of column values."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[ColumnValue]):
        self._values: Tuple[ColumnValue, ...] = tuple(values)

    def size(self) -> int:
        return len(self._values)

    def get_value(self, index: int) -> ColumnValue:
        return self._values[index]

    def select(self, indices: Sequence[int]) -> "Row":
        """Return a new row holding only the given column indices."""
        return Row(self._values[i] for i in indices)

    def remove(self, index: int) -> "Row":
        """Return a new row without the value at ``index``."""
        return Row(v for i, v in enumerate(self._values) if i != index)

    def to_list(self) -> List[Any]:
        return [v.value for v in self._values]

    def to_dict(self) -> Dict[str, Any]:
        return {"values": [v.to_dict() for v in self._values]}

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> ColumnValue:
        return self._values[index]

    def __iter__(self) -> Iterator[ColumnValue]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Row) and self._values == other._values

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Row({list(self._values)!r})"


class DataFrame:
    """Immutable table of rows sharing one column schema.

    Parameters
    - column_metas: Column names and types, in order
    - rows: Rows whose width and value types match ``column_metas``

    Raises ``SchemaViolationError`` when a row does not fit the schema.
    """

    def __init__(self, column_metas: Sequence[ColumnMeta], rows: Iterable[Row] = ()):
        self._column_metas: Tuple[ColumnMeta, ...] = tuple(column_metas)
        names = [meta.name for meta in self._column_metas]
        if len(set(names)) != len(names):
            raise SchemaViolationError(f"Duplicate column names: {names}")
        self._rows: Tuple[Row, ...] = tuple(rows)
        for index, row in enumerate(self._rows):
            self._check_row(index, row)

    def _check_row(self, index: int, row: Row) -> None:
        if not isinstance(row, Row):
            raise SchemaViolationError(f"Row {index} is not a Row: {type(row).__name__}")
        if row.size() != len(self._column_metas):
            raise SchemaViolationError(
                f"Row {index} has {row.size()} columns, expected {len(self._column_metas)}"
            )
        for meta, value in zip(self._column_metas, row):
            if value.column_type() is ColumnType.NULL:
                continue
            if value.column_type() is not meta.column_type:
                raise SchemaViolationError(
                    f"Row {index} column {meta.name!r} has type {value.column_type().value}, "
                    f"expected {meta.column_type.value}"
                )

    @property
    def column_metas(self) -> Tuple[ColumnMeta, ...]:
        return self._column_metas

    def column_names(self) -> List[str]:
        return [meta.name for meta in self._column_metas]

    def column_index(self, name: str) -> int:
        """Return the index of a column, raising ``SchemaViolationError`` if absent."""
        for index, meta in enumerate(self._column_metas):
            if meta.name == name:
                return index
        raise SchemaViolationError(f"Column not found: {name}")

    def size(self) -> int:
        return len(self._rows)

    def get_row(self, index: int) -> Row:
        return self._rows[index]

    def select(self, indices: Sequence[int]) -> "DataFrame":
        """Return a new frame restricted to the given column indices."""
        metas = [self._column_metas[i] for i in indices]
        return DataFrame(metas, (row.select(indices) for row in self._rows))

    def remove(self, index: int) -> "DataFrame":
        """Return a new frame without the column at ``index``."""
        metas = [m for i, m in enumerate(self._column_metas) if i != index]
        return DataFrame(metas, (row.remove(index) for row in self._rows))

    def to_numpy(self, indices: Optional[Sequence[int]] = None) -> np.ndarray:
        """Return the numeric columns as a ``float64`` matrix.

        Null cells become ``nan``. Non-numeric columns raise
        ``SchemaViolationError``.
        """
        if indices is None:
            indices = range(len(self._column_metas))
        indices = list(indices)
        for i in indices:
            meta = self._column_metas[i]
            if meta.column_type not in NUMERIC_COLUMN_TYPES:
                raise SchemaViolationError(
                    f"Column {meta.name!r} is not numeric: {meta.column_type.value}"
                )
        matrix = np.empty((len(self._rows), len(indices)), dtype=np.float64)
        for r, row in enumerate(self._rows):
            for c, i in enumerate(indices):
                value = row.get_value(i).value
                matrix[r, c] = np.nan if value is None else value
        return matrix

    def to_records(self) -> List[Dict[str, Any]]:
        """Return rows as ``{column name: scalar}`` dictionaries."""
        names = self.column_names()
        return [dict(zip(names, row.to_list())) for row in self._rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_metas": [meta.to_dict() for meta in self._column_metas],
            "rows": [row.to_dict() for row in self._rows],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataFrame":
        metas = [ColumnMeta.from_dict(m) for m in data.get("column_metas", [])]
        rows = [
            Row(column_value_from_dict(v) for v in row.get("values", []))
            for row in data.get("rows", [])
        ]
        return cls(metas, rows)

    def to_pandas(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_records(), columns=self.column_names())

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> Row:
        return self._rows[index]

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, DataFrame)
            and self._column_metas == other._column_metas
            and self._rows == other._rows
        )

    def __repr__(self) -> str:
        return f"DataFrame(columns={self.column_names()}, size={len(self._rows)})"


def empty_data_frame(column_metas: Sequence[ColumnMeta]) -> DataFrame:
    """Create a frame with a schema and no rows."""
    return DataFrame(column_metas)


def load_rows(column_metas: Sequence[ColumnMeta], raw_rows: Iterable[Sequence[Any]]) -> DataFrame:
    """Build a frame from plain scalars laid out as ``column_metas``."""
    rows = []
    for index, raw in enumerate(raw_rows):
        raw = list(raw)
        if len(raw) != len(column_metas):
            raise SchemaViolationError(
                f"Row {index} has {len(raw)} columns, expected {len(column_metas)}"
            )
        rows.append(Row(column_value(meta.column_type, v) for meta, v in zip(column_metas, raw)))
    return DataFrame(column_metas, rows)


def load(records: Sequence[Dict[str, Any]]) -> DataFrame:
    """Build a frame from a list of dictionaries.

    Column names come from the first record and every following record must
    have the same keys. A column takes the type of its first non-null value;
    columns holding only nulls are ``NULL``.
    """
    if not records:
        return DataFrame([])
    names = list(records[0])
    keys = set(names)
    for index, record in enumerate(records):
        if set(record) != keys:
            raise SchemaViolationError(
                f"Record {index} has columns {sorted(record)}, expected {sorted(keys)}"
            )

    metas = []
    for name in names:
        types = (column_value_of(record[name]).column_type() for record in records)
        metas.append(ColumnMeta(name, next((t for t in types if t is not ColumnType.NULL), ColumnType.NULL)))
    return load_rows(metas, ([record[name] for name in names] for record in records))


def _pandas_column_type(series: pd.Series) -> ColumnType:
    if pd.api.types.is_bool_dtype(series):
        return ColumnType.BOOLEAN
    if pd.api.types.is_integer_dtype(series):
        if series.empty:
            return ColumnType.INTEGER
        low, high = int(series.min()), int(series.max())
        return ColumnType.INTEGER if -(1 << 31) <= low and high < (1 << 31) else ColumnType.LONG
    if series.dtype == np.float32:
        return ColumnType.FLOAT
    if pd.api.types.is_float_dtype(series):
        return ColumnType.DOUBLE
    return ColumnType.STRING


def from_pandas(frame: pd.DataFrame) -> DataFrame:
    """Convert a pandas frame; missing values become ``NullValue``."""
    metas = [ColumnMeta(str(name), _pandas_column_type(frame[name])) for name in frame.columns]
    raw_rows = (
        [_pandas_scalar(meta, v) for meta, v in zip(metas, values)]
        for values in frame.itertuples(index=False, name=None)
    )
    return load_rows(metas, raw_rows)


def _pandas_scalar(meta: ColumnMeta, value: Any) -> Any:
    if pd.isna(value):
        return None
    if meta.column_type is ColumnType.STRING:
        return str(value)
    return value
