"""Tests for the algorithm dispatcher."""

import pytest

from mlcommons.common.exceptions import (
    AlgorithmExecutionError,
    MissingModelError,
    UnsupportedAlgorithmError,
    UnsupportedOperationError,
)
from mlcommons.engine import AlgorithmRegistry, MLEngine, MLInput, Model, default_registry, get_ml_engine
from mlcommons.engine.algorithms import KMeans, MLAlgorithm
from tests.helpers import PMML_EXPECTED, json_body, kmeans_data_frame, pmml_data_frame


class ExplodingAlgorithm(MLAlgorithm):
    name = "exploding"
    model_name = "Exploding"

    def train(self, parameters, data_frame):
        raise RuntimeError("boom")

    def predict(self, data_frame, model, parameters=None):
        raise RuntimeError("boom")


def test_train_and_predict_kmeans(kmeans_parameters, metrics):
    """Test the engine delegates to the named algorithm."""
    engine = MLEngine(metrics=metrics)
    model = engine.train("kmeans", kmeans_parameters, kmeans_data_frame(100))
    assert model.name == "KMeans"
    assert model.version == 1

    predictions = engine.predict("kmeans", None, kmeans_data_frame(10), model)
    assert predictions.size() == 10

    output = metrics.get_metrics()
    assert 'ml_train_requests_total{algorithm="kmeans",status="success"} 1.0' in output
    assert 'ml_predict_rows_total{algorithm="kmeans"} 10.0' in output


def test_algorithm_names_are_case_insensitive(kmeans_parameters):
    """Test lookups ignore case and surrounding whitespace."""
    engine = MLEngine()
    model = engine.train("KMeans", kmeans_parameters, kmeans_data_frame(20))
    assert engine.predict(" KMEANS ", None, kmeans_data_frame(2), model).size() == 2


def test_unsupported_algorithm():
    """Test unknown names fail with the algorithm name."""
    engine = MLEngine()
    with pytest.raises(UnsupportedAlgorithmError, match="Unsupported algorithm: svm"):
        engine.train("svm", None, kmeans_data_frame(4))
    with pytest.raises(UnsupportedAlgorithmError, match="Unsupported algorithm: svm"):
        engine.predict("svm", None, kmeans_data_frame(4), None)


def test_predict_without_model():
    """Test a missing model is reported before the algorithm runs."""
    with pytest.raises(MissingModelError, match="No model found for kmeans prediction."):
        MLEngine().predict("kmeans", None, kmeans_data_frame(4), None)


def test_pmml_prediction(pmml_model):
    """Test PMML documents are scored through the engine."""
    predictions = MLEngine().predict("pmml", None, pmml_data_frame(), pmml_model)
    outliers = [row.get_value(1).boolean_value() for row in predictions]
    assert outliers == [outlier for _, outlier in PMML_EXPECTED]

    with pytest.raises(UnsupportedOperationError):
        MLEngine().train("pmml", None, pmml_data_frame())


def test_unexpected_errors_are_wrapped(metrics):
    """Test failures outside the error taxonomy become execution errors."""
    engine = MLEngine(AlgorithmRegistry([ExplodingAlgorithm()]), metrics=metrics)
    with pytest.raises(AlgorithmExecutionError) as exc_info:
        engine.train("exploding", None, kmeans_data_frame(2))
    assert isinstance(exc_info.value.__cause__, RuntimeError)

    model = Model(name="Exploding", version=1, algorithm="exploding", content=b"")
    with pytest.raises(AlgorithmExecutionError):
        engine.predict("exploding", None, kmeans_data_frame(2), model)
    assert 'ml_train_requests_total{algorithm="exploding",status="error"} 1.0' in metrics.get_metrics()


def test_registry_rejects_duplicates():
    """Test two algorithms cannot share a name."""
    with pytest.raises(ValueError):
        AlgorithmRegistry([KMeans(), KMeans()])


def test_default_registry():
    """Test the built-in algorithms are registered once."""
    registry = default_registry()
    assert registry is default_registry()
    assert set(registry.names()) == {"kmeans", "linear_regression", "pmml"}
    assert "KMeans" in registry
    assert "svm" not in registry
    with pytest.raises(TypeError):
        registry.algorithms["svm"] = KMeans()


def test_meta_data():
    """Test the metadata snapshot lists algorithms and parameters."""
    meta = MLEngine().get_meta_data().to_dict()
    algorithms = {algo["name"]: algo for algo in meta["algo_meta_data"]}
    assert set(algorithms) == {"kmeans", "linear_regression", "pmml"}
    assert algorithms["pmml"]["trainable"] is False

    kmeans_params = {param["name"]: param for param in algorithms["kmeans"]["params"]}
    assert set(kmeans_params) == {"seed", "num_threads", "distance_type", "iterations", "k"}
    assert kmeans_params["k"]["param_type"] == "integer"
    target = next(p for p in algorithms["linear_regression"]["params"] if p["name"] == "target")
    assert target["required"] is True


def test_get_ml_engine_is_shared():
    """Test the process-wide engine is created once."""
    assert get_ml_engine() is get_ml_engine()


def test_predict_remote(openai_connector, client_factory, config, secret_manager, transport, metrics):
    """Test remote predictions go through the connector executor."""
    engine = MLEngine(metrics=metrics)
    output = engine.predict_remote(
        openai_connector,
        MLInput(text_docs=["hello", "world"]),
        client_factory=client_factory,
        decrypt=secret_manager.decrypt,
        config=config,
    )
    result = output.to_dict()["inference_results"][0]
    assert result["status_code"] == 200
    assert [tensor["data"] for tensor in result["output"]] == [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]

    assert json_body(transport.requests[0]) == {"input": ["hello", "world"], "model": "text-embedding-ada-002"}
    assert 'ml_remote_invocations_total{connector="openai-embedding",method="POST",status="success"} 1.0' in (
        metrics.get_metrics()
    )


def test_model_document_form(kmeans_parameters):
    """Test a trained model survives its persisted form."""
    model = MLEngine().train("kmeans", kmeans_parameters, kmeans_data_frame(20))
    document = model.to_dict()
    assert isinstance(document["content"], str)
    restored = Model.from_dict(document)
    assert restored == model
    assert MLEngine().predict("kmeans", None, kmeans_data_frame(4), restored).size() == 4
