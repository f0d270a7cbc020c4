"""Data builders shared by the test modules."""

import json
from typing import Callable, List

import httpx
import numpy as np

from mlcommons.dataframe import ColumnMeta, ColumnType, DataFrame, load, load_rows


def kmeans_data_frame(size: int) -> DataFrame:
    """Two well separated 2-D blobs, alternating row by row."""
    rng = np.random.default_rng(42)
    rows = []
    for i in range(size):
        center = (0.0, 0.0) if i % 2 == 0 else (10.0, 10.0)
        x, y = rng.normal(loc=center, scale=0.5)
        rows.append([float(x), float(y)])
    metas = [ColumnMeta("f1", ColumnType.DOUBLE), ColumnMeta("f2", ColumnType.DOUBLE)]
    return load_rows(metas, rows)


def linear_data_frame(size: int = 40) -> DataFrame:
    """Rows following ``price = 1 + 3 * x1 + 2 * x2`` exactly."""
    rng = np.random.default_rng(7)
    records = []
    for _ in range(size):
        x1, x2 = (float(v) for v in rng.uniform(0.0, 5.0, size=2))
        records.append({"x1": x1, "x2": x2, "price": 1.0 + 3.0 * x1 + 2.0 * x2})
    return load(records)


def pmml_data_frame() -> DataFrame:
    return load([{"x1": 0.0}, {"x1": 1.5}, {"x1": 2.5}, {"x1": 3.5}])


# decisionFunction / outlier for pmml_data_frame()
PMML_EXPECTED = [
    (0.010751943968992317, False),
    (0.090822837917184984, False),
    (-0.019280103865186748, True),
    (-0.120896777470202, True),
]


class RecordingTransport(httpx.MockTransport):
    """Mock transport remembering every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8"))
