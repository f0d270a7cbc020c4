"""Tabular value model used as the input and output of local algorithms.

Primary components:
- ``column``: ``ColumnType``, ``ColumnMeta`` and the typed ``ColumnValue`` family.
- ``frame``: ``Row``, ``DataFrame`` and builders (records, raw rows, pandas).
"""

from mlcommons.dataframe.column import (
    BooleanValue,
    ColumnMeta,
    ColumnType,
    ColumnValue,
    DoubleValue,
    FloatValue,
    IntValue,
    LongValue,
    NullValue,
    ShortValue,
    StringValue,
    column_value,
    column_value_from_dict,
    column_value_of,
)
from mlcommons.dataframe.frame import (
    DataFrame,
    Row,
    empty_data_frame,
    from_pandas,
    load,
    load_rows,
)

__all__ = [
    "BooleanValue",
    "ColumnMeta",
    "ColumnType",
    "ColumnValue",
    "DataFrame",
    "DoubleValue",
    "FloatValue",
    "IntValue",
    "LongValue",
    "NullValue",
    "Row",
    "ShortValue",
    "StringValue",
    "column_value",
    "column_value_from_dict",
    "column_value_of",
    "empty_data_frame",
    "from_pandas",
    "load",
    "load_rows",
]
