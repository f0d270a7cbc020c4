"""Shared fixtures for the ML engine test suite."""

import base64
from pathlib import Path
from typing import List

import httpx
import pytest
from prometheus_client import CollectorRegistry

from mlcommons.common.config import MLCommonsConfig
from mlcommons.common.metrics import MetricsCollector
from mlcommons.common.security import SecretManager, generate_encryption_key
from mlcommons.connector import HttpClientFactory, HttpConnector
from mlcommons.engine import Model
from mlcommons.parameter import MLParameterBuilder
from tests.helpers import RecordingTransport

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def kmeans_parameters() -> List:
    return [
        MLParameterBuilder.parameter("seed", 1),
        MLParameterBuilder.parameter("num_threads", 1),
        MLParameterBuilder.parameter("distance_type", 0),
        MLParameterBuilder.parameter("iterations", 10),
        MLParameterBuilder.parameter("k", 2),
    ]


@pytest.fixture
def linear_regression_parameters() -> List:
    return [
        MLParameterBuilder.parameter("objective", 0),
        MLParameterBuilder.parameter("optimiser", 5),
        MLParameterBuilder.parameter("learning_rate", 0.01),
        MLParameterBuilder.parameter("epsilon", 1e-6),
        MLParameterBuilder.parameter("beta1", 0.9),
        MLParameterBuilder.parameter("beta2", 0.99),
        MLParameterBuilder.parameter("epochs", 200),
        MLParameterBuilder.parameter("target", "price"),
    ]


@pytest.fixture
def pmml_content() -> bytes:
    """IsolationForest exported by JPMML-SkLearn (single input ``x1``)."""
    return base64.b64decode((FIXTURES / "isolation_forest.pmml.b64").read_text().strip())


@pytest.fixture
def pmml_model(pmml_content) -> Model:
    return Model(name="isolation_forest", version=1, algorithm="pmml", content=pmml_content, format="pmml")


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector("test-service", registry=CollectorRegistry())


@pytest.fixture
def config() -> MLCommonsConfig:
    return MLCommonsConfig(
        ml_connector_trusted_endpoints_regex=[r"^https://api\.openai\.com/.*$"],
        ml_connector_max_response_bytes=4096,
    )


@pytest.fixture
def secret_manager() -> SecretManager:
    return SecretManager(generate_encryption_key())


@pytest.fixture
def openai_connector(secret_manager) -> HttpConnector:
    return HttpConnector(
        name="openai-embedding",
        predict_endpoint="https://api.openai.com/v1/embeddings",
        predict_http_method="POST",
        parameters={"model": "text-embedding-ada-002"},
        credential={"openAI_key": secret_manager.encrypt("sk-test")},
        headers={"Authorization": "Bearer ${credential.openAI_key}"},
        request_body='{"input": ${parameters.input}, "model": "${parameters.model}"}',
        pre_process_function="connector.pre_process.openai.embedding",
        post_process_function="connector.post_process.openai.embedding",
    )


@pytest.fixture
def embedding_response() -> dict:
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "index": 0, "embedding": [0.1, 0.2, 0.3]},
            {"object": "embedding", "index": 1, "embedding": [0.4, 0.5, 0.6]},
        ],
        "model": "text-embedding-ada-002",
    }


@pytest.fixture
def transport(embedding_response) -> RecordingTransport:
    return RecordingTransport(lambda request: httpx.Response(200, json=embedding_response))


@pytest.fixture
def client_factory(config, transport) -> HttpClientFactory:
    factory = HttpClientFactory(config, transport=transport)
    yield factory
    factory.close()
