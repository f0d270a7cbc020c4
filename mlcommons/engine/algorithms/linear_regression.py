"""Linear regression fitted by mini-batch gradient descent.

Features and target are standardized before fitting; the learned weights,
together with the scaling statistics and column names, are stored as an
``.npz`` archive so prediction can map columns by name.
"""

import io
import zipfile
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from mlcommons.common.exceptions import AlgorithmExecutionError, CorruptModelError, SchemaViolationError
from mlcommons.dataframe import ColumnMeta, ColumnType, DataFrame, empty_data_frame, load_rows
from mlcommons.dataframe.column import NUMERIC_COLUMN_TYPES
from mlcommons.engine.algorithms.base import AlgoParam, MLAlgorithm, non_negative, one_of, positive
from mlcommons.engine.algorithms.optimisers import OPTIMISERS, create_optimiser
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameter, ParameterType

logger = structlog.get_logger("algorithms.linear_regression")

OBJECTIVE = "objective"
OPTIMISER = "optimiser"
LEARNING_RATE = "learning_rate"
MOMENTUM_FACTOR = "momentum_factor"
EPSILON = "epsilon"
BETA1 = "beta1"
BETA2 = "beta2"
DECAY_RATE = "decay_rate"
EPOCHS = "epochs"
BATCH_SIZE = "batch_size"
SEED = "seed"
TARGET = "target"

OBJECTIVES = {0: "squared_loss", 1: "absolute_loss", 2: "huber"}
HUBER_DELTA = 1.0


def _unit_interval(value: float) -> Optional[str]:
    return None if 0.0 <= value < 1.0 else "must be in [0, 1)"


def _loss(residual: np.ndarray, objective: int) -> float:
    if objective == 0:
        return float(np.mean(0.5 * residual ** 2))
    if objective == 1:
        return float(np.mean(np.abs(residual)))
    absolute = np.abs(residual)
    quadratic = np.minimum(absolute, HUBER_DELTA)
    return float(np.mean(0.5 * quadratic ** 2 + HUBER_DELTA * (absolute - quadratic)))


def _loss_gradient(residual: np.ndarray, objective: int) -> np.ndarray:
    """Derivative of the per-row loss with respect to the prediction."""
    if objective == 0:
        return residual
    if objective == 1:
        return np.sign(residual)
    return np.clip(residual, -HUBER_DELTA, HUBER_DELTA)


def _scale(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    mean = values.mean(axis=0)
    std = values.std(axis=0)
    # constant columns are centred but not rescaled
    std = np.where(std > 0, std, 1.0)
    return mean, std


class LinearRegression(MLAlgorithm):
    """Predict a numeric ``target`` column from the other numeric columns."""

    name = "linear_regression"
    model_name = "LinearRegression"
    description = "Linear regression trained with gradient descent"
    parameter_specs = (
        AlgoParam(OBJECTIVE, ParameterType.INTEGER, "Loss: 0 squared, 1 absolute, 2 huber", 0,
                  check=one_of(*OBJECTIVES)),
        AlgoParam(OPTIMISER, ParameterType.INTEGER,
                  "Optimiser: 0 SGD, 1 linear decay SGD, 2 sqrt decay SGD, 3 AdaGrad, 4 AdaDelta, 5 Adam, 6 RMSProp",
                  0, check=one_of(*OPTIMISERS)),
        AlgoParam(LEARNING_RATE, ParameterType.DOUBLE, "Step size", 0.01, check=positive),
        AlgoParam(MOMENTUM_FACTOR, ParameterType.DOUBLE, "Momentum for SGD optimisers", 0.0, check=_unit_interval),
        AlgoParam(EPSILON, ParameterType.DOUBLE, "Convergence tolerance and numerical stabilizer", 1e-6,
                  check=positive),
        AlgoParam(BETA1, ParameterType.DOUBLE, "Adam first moment decay", 0.9, check=_unit_interval),
        AlgoParam(BETA2, ParameterType.DOUBLE, "Adam second moment decay", 0.99, check=_unit_interval),
        AlgoParam(DECAY_RATE, ParameterType.DOUBLE, "AdaDelta/RMSProp decay", 0.9, check=_unit_interval),
        AlgoParam(EPOCHS, ParameterType.INTEGER, "Maximum passes over the data", 1000, check=positive),
        AlgoParam(BATCH_SIZE, ParameterType.INTEGER, "Rows per gradient step", 1, check=positive),
        AlgoParam(SEED, ParameterType.LONG, "Random seed for row shuffling", 12345, check=non_negative),
        AlgoParam(TARGET, ParameterType.STRING, "Name of the column to predict", required=True),
    )

    def train(self, parameters: Optional[Iterable[MLParameter]], data_frame: DataFrame) -> Model:
        params = self.resolve_parameters(parameters)
        data_frame = self._require_data(data_frame, "training")
        target = params[TARGET]
        target_index = data_frame.column_index(target)
        feature_names = self._feature_names(data_frame, target)

        features = data_frame.to_numpy([data_frame.column_index(name) for name in feature_names])
        labels = data_frame.to_numpy([target_index])[:, 0]
        if len(labels) == 0:
            raise SchemaViolationError("LinearRegression needs at least one training row")
        if np.isnan(features).any() or np.isnan(labels).any():
            raise SchemaViolationError("LinearRegression does not accept null values")

        feature_mean, feature_std = _scale(features)
        (target_mean,), (target_std,) = _scale(labels[:, None])
        x = (features - feature_mean) / feature_std
        y = (labels - target_mean) / target_std

        weights, bias, epochs = self._fit(x, y, params)
        logger.info(
            "Trained LinearRegression model",
            rows=len(y),
            features=feature_names,
            target=target,
            objective=OBJECTIVES[params[OBJECTIVE]],
            optimiser=OPTIMISERS[params[OPTIMISER]],
            epochs=epochs,
        )

        state = {
            "feature_names": np.array(feature_names, dtype=str),
            "target": np.array(target, dtype=str),
            "weights": weights,
            "bias": np.float64(bias),
            "feature_mean": feature_mean,
            "feature_std": feature_std,
            "target_mean": np.float64(target_mean),
            "target_std": np.float64(target_std),
        }
        buffer = io.BytesIO()
        np.savez(buffer, **state)
        return Model(
            name=self.model_name,
            version=1,
            algorithm=self.name,
            content=buffer.getvalue(),
            format="npz",
        )

    def _fit(self, x: np.ndarray, y: np.ndarray, params: Dict[str, Any]) -> Tuple[np.ndarray, float, int]:
        objective = params[OBJECTIVE]
        batch_size = params[BATCH_SIZE]
        optimiser = create_optimiser(params[OPTIMISER], params)
        rng = np.random.default_rng(params[SEED])

        # last entry is the bias term
        theta = np.zeros(x.shape[1] + 1)
        previous = _loss(-y, objective)
        epoch = 0
        for epoch in range(1, params[EPOCHS] + 1):
            order = rng.permutation(len(y))
            for start in range(0, len(order), batch_size):
                batch = order[start:start + batch_size]
                xb = x[batch]
                residual = xb @ theta[:-1] + theta[-1] - y[batch]
                slope = _loss_gradient(residual, objective)
                gradient = np.append(xb.T @ slope, slope.sum()) / len(batch)
                theta += optimiser.step(gradient)

            current = _loss(x @ theta[:-1] + theta[-1] - y, objective)
            if not np.isfinite(current):
                raise AlgorithmExecutionError("LinearRegression diverged; lower the learning rate")
            if abs(previous - current) < params[EPSILON]:
                break
            previous = current
        return theta[:-1], float(theta[-1]), epoch

    def predict(
        self,
        data_frame: DataFrame,
        model: Optional[Model],
        parameters: Optional[Iterable[MLParameter]] = None,
    ) -> DataFrame:
        model = self._require_model(model)
        data_frame = self._require_data(data_frame, "prediction")
        state = self._deserialize(model.content)

        feature_names = [str(name) for name in state["feature_names"]]
        target = str(state["target"])
        output_metas = [ColumnMeta(target, ColumnType.DOUBLE)]
        indices = [data_frame.column_index(name) for name in feature_names]
        if data_frame.size() == 0:
            return empty_data_frame(output_metas)

        features = data_frame.to_numpy(indices)
        if np.isnan(features).any():
            raise SchemaViolationError("LinearRegression does not accept null values")
        x = (features - state["feature_mean"]) / state["feature_std"]
        scaled = x @ state["weights"] + state["bias"]
        predictions = scaled * state["target_std"] + state["target_mean"]
        return load_rows(output_metas, ([float(value)] for value in predictions))

    @staticmethod
    def _feature_names(data_frame: DataFrame, target: str) -> List[str]:
        metas = data_frame.column_metas
        if metas[data_frame.column_index(target)].column_type not in NUMERIC_COLUMN_TYPES:
            raise SchemaViolationError(f"Target column {target!r} is not numeric")
        names = [
            meta.name for meta in metas
            if meta.name != target and meta.column_type in NUMERIC_COLUMN_TYPES
        ]
        if not names:
            raise SchemaViolationError("LinearRegression needs at least one numeric feature column")
        return names

    @staticmethod
    def _deserialize(content: bytes) -> Dict[str, np.ndarray]:
        keys = (
            "feature_names",
            "target",
            "weights",
            "bias",
            "feature_mean",
            "feature_std",
            "target_mean",
            "target_std",
        )
        try:
            with np.load(io.BytesIO(content), allow_pickle=False) as archive:
                state = {key: archive[key] for key in keys}
        except (ValueError, KeyError, OSError, EOFError, zipfile.BadZipFile) as e:
            raise CorruptModelError(f"Invalid LinearRegression model content: {e}") from e
        if len(state["weights"]) != len(state["feature_names"]):
            raise CorruptModelError("Invalid LinearRegression model content")
        return state
