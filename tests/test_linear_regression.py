"""Tests for gradient descent linear regression."""

import math

import pytest

from mlcommons.common.exceptions import (
    AlgorithmExecutionError,
    CorruptModelError,
    InvalidParameterError,
    MissingModelError,
    SchemaViolationError,
)
from mlcommons.dataframe import ColumnType, load
from mlcommons.engine.algorithms import LinearRegression
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameterBuilder
from tests.helpers import linear_data_frame


def _with(parameters, **overrides):
    kept = [p for p in parameters if p.name not in overrides]
    return kept + [MLParameterBuilder.parameter(name, value) for name, value in overrides.items()]


def test_train_and_predict(linear_regression_parameters):
    """Test predictions follow the generating relation."""
    regression = LinearRegression()
    model = regression.train(linear_regression_parameters, linear_data_frame())
    assert model.name == "LinearRegression"
    assert model.version == 1
    assert model.algorithm == "linear_regression"

    frame = load([{"x1": 1.0, "x2": 2.0}, {"x1": 4.0, "x2": 0.5}])
    predictions = regression.predict(frame, model)
    assert predictions.column_names() == ["price"]
    assert predictions.column_metas[0].column_type is ColumnType.DOUBLE
    values = [row.get_value(0).double_value() for row in predictions]
    assert values[0] == pytest.approx(8.0, abs=1.0)
    assert values[1] == pytest.approx(14.0, abs=1.0)


def test_prediction_ignores_target_column(linear_regression_parameters):
    """Test the target column may be present in prediction input."""
    regression = LinearRegression()
    model = regression.train(linear_regression_parameters, linear_data_frame())
    predictions = regression.predict(linear_data_frame(5), model)
    assert predictions.size() == 5


@pytest.mark.parametrize("optimiser", [0, 6])
def test_optimisers_converge(linear_regression_parameters, optimiser):
    """Test SGD and RMSProp fit the data."""
    parameters = _with(linear_regression_parameters, optimiser=optimiser, learning_rate=0.01)
    regression = LinearRegression()
    model = regression.train(parameters, linear_data_frame())
    value = regression.predict(load([{"x1": 2.0, "x2": 2.0}]), model).get_row(0).get_value(0).double_value()
    assert value == pytest.approx(11.0, abs=1.5)


@pytest.mark.parametrize("optimiser", [1, 2, 3, 4])
def test_decaying_optimisers_train(linear_regression_parameters, optimiser):
    """Test decaying and adaptive optimisers produce finite models."""
    parameters = _with(linear_regression_parameters, optimiser=optimiser, epochs=20)
    regression = LinearRegression()
    model = regression.train(parameters, linear_data_frame())
    value = regression.predict(load([{"x1": 2.0, "x2": 2.0}]), model).get_row(0).get_value(0).double_value()
    assert math.isfinite(value)


@pytest.mark.parametrize("objective", [1, 2])
def test_robust_objectives(linear_regression_parameters, objective):
    """Test absolute and huber losses train."""
    parameters = _with(linear_regression_parameters, objective=objective)
    model = LinearRegression().train(parameters, linear_data_frame())
    assert model.format == "npz"


def test_missing_target_parameter():
    """Test the target parameter is required."""
    with pytest.raises(InvalidParameterError, match="target"):
        LinearRegression().train([MLParameterBuilder.parameter("epochs", 5)], linear_data_frame())


def test_invalid_parameter_values(linear_regression_parameters):
    """Test out-of-range parameters are rejected."""
    with pytest.raises(InvalidParameterError):
        LinearRegression().train(_with(linear_regression_parameters, optimiser=9), linear_data_frame())
    with pytest.raises(InvalidParameterError):
        LinearRegression().train(_with(linear_regression_parameters, learning_rate=-0.1), linear_data_frame())
    with pytest.raises(InvalidParameterError):
        LinearRegression().train(_with(linear_regression_parameters, beta1=1.5), linear_data_frame())


def test_unknown_target_column(linear_regression_parameters):
    """Test the target must be a column of the frame."""
    parameters = _with(linear_regression_parameters, target="cost")
    with pytest.raises(SchemaViolationError):
        LinearRegression().train(parameters, linear_data_frame())


def test_missing_feature_column(linear_regression_parameters):
    """Test prediction input must carry every trained feature."""
    regression = LinearRegression()
    model = regression.train(linear_regression_parameters, linear_data_frame())
    with pytest.raises(SchemaViolationError):
        regression.predict(load([{"x1": 1.0}]), model)


def test_divergence_is_reported(linear_regression_parameters):
    """Test a diverging fit raises instead of returning a useless model."""
    parameters = _with(linear_regression_parameters, optimiser=0, learning_rate=1e6)
    with pytest.raises(AlgorithmExecutionError):
        LinearRegression().train(parameters, linear_data_frame())


def test_predict_without_model():
    """Test predicting without a model names the algorithm."""
    with pytest.raises(MissingModelError, match="No model found for linear_regression prediction."):
        LinearRegression().predict(linear_data_frame(2), None)


def test_corrupt_model_content():
    """Test undecodable model content is reported as corrupt."""
    model = Model(name="LinearRegression", version=1, algorithm="linear_regression", content=b"\x00\x01")
    with pytest.raises(CorruptModelError):
        LinearRegression().predict(linear_data_frame(2), model)
