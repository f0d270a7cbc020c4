"""Dispatcher routing train/predict calls to registered algorithms.

``MLEngine`` holds no per-call state: it looks the algorithm up in a
read-only registry and delegates, so a single instance serves concurrent
callers. Remote predictions are forwarded to the connector executor chosen
by the connector's protocol.
"""

import time
from typing import Any, Iterable, Optional

import structlog

from mlcommons.common.config import get_config
from mlcommons.common.exceptions import AlgorithmExecutionError, MissingModelError, MLCommonsError
from mlcommons.common.logging import log_performance
from mlcommons.common.metrics import MetricsCollector, create_metrics_collector
from mlcommons.dataframe import DataFrame
from mlcommons.engine.model import MLInput, Model
from mlcommons.engine.registry import AlgorithmRegistry, MLEngineMetaData, default_registry
from mlcommons.parameter import MLParameter

logger = structlog.get_logger("engine")


class MLEngine:
    """Entry point for local training/prediction and remote inference.

    Parameters
    - registry: Algorithm table; defaults to the built-in algorithms
    - metrics: Optional collector recording call counts and latencies
    """

    def __init__(self, registry: Optional[AlgorithmRegistry] = None, metrics: Optional[MetricsCollector] = None):
        self.registry = registry or default_registry()
        self.metrics = metrics

    def train(
        self,
        algo_name: str,
        parameters: Optional[Iterable[MLParameter]],
        data_frame: DataFrame,
    ) -> Model:
        """Train ``algo_name`` on ``data_frame`` and return the model."""
        algorithm = self.registry.get(algo_name)
        start = time.perf_counter()
        status = "error"
        try:
            model = self._run(algo_name, "train", algorithm.train, parameters, data_frame)
            status = "success"
            return model
        finally:
            self._observe("train", algorithm.name, status, start)

    def predict(
        self,
        algo_name: str,
        parameters: Optional[Iterable[MLParameter]],
        data_frame: DataFrame,
        model: Optional[Model],
    ) -> DataFrame:
        """Score ``data_frame`` with ``model``; one output row per input row."""
        algorithm = self.registry.get(algo_name)
        if model is None:
            raise MissingModelError(f"No model found for {algo_name} prediction.")
        start = time.perf_counter()
        status = "error"
        rows = 0
        try:
            predictions = self._run(algo_name, "predict", algorithm.predict, data_frame, model, parameters)
            status = "success"
            rows = predictions.size()
            return predictions
        finally:
            self._observe("predict", algorithm.name, status, start, rows)

    def get_meta_data(self) -> MLEngineMetaData:
        """Describe every registered algorithm and its parameters."""
        return self.registry.get_meta_data()

    def predict_remote(self, connector: Any, ml_input: MLInput, **executor_options: Any) -> Any:
        """Invoke the remote model behind ``connector``.

        Parameters
        - connector: Connector describing the remote endpoint
        - ml_input: Runtime parameters and optional text documents
        - executor_options: Forwarded to the executor (client factory,
          privilege gate, secret decryption, output processor, metrics)

        Returns
        - ``ModelTensorOutput`` with the normalized response
        """
        from mlcommons.connector.executor import create_connector_executor

        executor_options.setdefault("metrics", self.metrics)
        executor = create_connector_executor(connector, **executor_options)
        return executor.execute_predict(ml_input)

    def _run(self, algo_name: str, operation: str, call, *args: Any):
        try:
            return call(*args)
        except MLCommonsError:
            raise
        except Exception as e:
            logger.error(
                "Algorithm execution failed",
                algorithm=algo_name,
                operation=operation,
                error=str(e),
                exc_info=True,
            )
            raise AlgorithmExecutionError(f"Failed to {operation} {algo_name}: {e}") from e

    def _observe(self, operation: str, algorithm: str, status: str, start: float, rows: int = 0) -> None:
        duration = time.perf_counter() - start
        log_performance(
            f"{operation}_{algorithm}",
            duration * 1000,
            algorithm=algorithm,
            status=status,
        )
        if self.metrics is None:
            return
        if operation == "train":
            self.metrics.record_train(algorithm, status, duration)
        else:
            self.metrics.record_predict(algorithm, status, duration, rows)


_ml_engine: Optional[MLEngine] = None


def get_ml_engine() -> MLEngine:
    """Get the process-wide engine backed by the default registry."""
    global _ml_engine
    if _ml_engine is None:
        config = get_config()
        metrics = create_metrics_collector("mlcommons") if config.ml_metrics_enabled else None
        _ml_engine = MLEngine(metrics=metrics)
    return _ml_engine
