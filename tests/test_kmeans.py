"""Tests for k-means clustering."""

import pytest

from mlcommons.common.exceptions import (
    CorruptModelError,
    InvalidParameterError,
    MissingModelError,
    SchemaViolationError,
)
from mlcommons.dataframe import ColumnMeta, ColumnType, ColumnValue, empty_data_frame, load, load_rows
from mlcommons.engine.algorithms import KMeans
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameterBuilder
from tests.helpers import kmeans_data_frame


def test_train_and_predict(kmeans_parameters):
    """Test a trained model labels every row with a cluster id."""
    kmeans = KMeans()
    model = kmeans.train(kmeans_parameters, kmeans_data_frame(100))
    assert model.name == "KMeans"
    assert model.version == 1
    assert model.algorithm == "kmeans"

    predictions = kmeans.predict(kmeans_data_frame(10), model)
    assert predictions.size() == 10
    assert predictions.column_names() == ["ClusterID"]
    assert predictions.column_metas[0].column_type is ColumnType.INTEGER

    labels = [row.get_value(0).int_value() for row in predictions]
    assert set(labels) <= {0, 1}
    # alternating blobs end up in alternating clusters
    assert labels[0::2] == [labels[0]] * 5
    assert labels[1::2] == [labels[1]] * 5
    assert labels[0] != labels[1]


def test_training_is_deterministic(kmeans_parameters):
    """Test the same seed and data produce identical models."""
    first = KMeans().train(kmeans_parameters, kmeans_data_frame(100))
    second = KMeans().train(kmeans_parameters, kmeans_data_frame(100))
    assert first.content == second.content


@pytest.mark.parametrize("distance_type", [1, 2])
def test_other_distances(kmeans_parameters, distance_type):
    """Test cosine and L1 distances train and predict."""
    parameters = [p for p in kmeans_parameters if p.name != "distance_type"]
    parameters.append(MLParameterBuilder.parameter("distance_type", distance_type))
    kmeans = KMeans()
    model = kmeans.train(parameters, kmeans_data_frame(40))
    predictions = kmeans.predict(kmeans_data_frame(6), model)
    assert predictions.size() == 6


def test_default_parameters():
    """Test training with no parameters uses the defaults."""
    model = KMeans().train(None, kmeans_data_frame(20))
    predictions = KMeans().predict(kmeans_data_frame(4), model)
    assert predictions.size() == 4


def test_invalid_parameters(kmeans_parameters):
    """Test parameter validation."""
    kmeans = KMeans()
    with pytest.raises(InvalidParameterError):
        kmeans.train([MLParameterBuilder.parameter("k", 0)], kmeans_data_frame(10))
    with pytest.raises(InvalidParameterError):
        kmeans.train([MLParameterBuilder.parameter("distance_type", 9)], kmeans_data_frame(10))
    with pytest.raises(InvalidParameterError):
        kmeans.train([MLParameterBuilder.parameter("k", "two")], kmeans_data_frame(10))
    with pytest.raises(InvalidParameterError):
        kmeans.train([MLParameterBuilder.parameter("clusters", 2)], kmeans_data_frame(10))
    with pytest.raises(InvalidParameterError):
        kmeans.train([MLParameterBuilder.parameter("k", 5)], kmeans_data_frame(3))


def test_predict_without_model():
    """Test predicting without a model names the algorithm."""
    with pytest.raises(MissingModelError, match="No model found for kmeans prediction."):
        KMeans().predict(kmeans_data_frame(4), None)


def test_predict_empty_frame(kmeans_parameters):
    """Test an empty input frame gives an empty output frame."""
    kmeans = KMeans()
    model = kmeans.train(kmeans_parameters, kmeans_data_frame(20))
    metas = [ColumnMeta("f1", ColumnType.DOUBLE), ColumnMeta("f2", ColumnType.DOUBLE)]
    predictions = kmeans.predict(empty_data_frame(metas), model)
    assert predictions.size() == 0
    assert predictions.column_names() == ["ClusterID"]


def test_predict_schema_mismatch(kmeans_parameters):
    """Test prediction input must have the trained width."""
    kmeans = KMeans()
    model = kmeans.train(kmeans_parameters, kmeans_data_frame(20))
    with pytest.raises(SchemaViolationError):
        kmeans.predict(load([{"f1": 1.0}]), model)
    with pytest.raises(SchemaViolationError):
        metas = [ColumnMeta("f1", ColumnType.DOUBLE), ColumnMeta("f2", ColumnType.DOUBLE)]
        kmeans.predict(load_rows(metas, [[1.0, None], [2.0, 1.0]]), model)


def test_corrupt_model_content():
    """Test undecodable model content is reported as corrupt."""
    model = Model(name="KMeans", version=1, algorithm="kmeans", content=b"not an archive")
    with pytest.raises(CorruptModelError):
        KMeans().predict(kmeans_data_frame(4), model)


def test_cluster_id_values_are_column_values(kmeans_parameters):
    """Test output cells are typed column values."""
    kmeans = KMeans()
    model = kmeans.train(kmeans_parameters, kmeans_data_frame(20))
    row = kmeans.predict(kmeans_data_frame(2), model).get_row(0)
    assert isinstance(row.get_value(0), ColumnValue)
