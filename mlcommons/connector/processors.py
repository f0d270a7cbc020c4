"""Pre- and post-processing of remote model calls.

Post-processing turns a raw response body into ``ModelTensors``; pre-processing
turns input text documents into template parameters. Connectors name either a
built-in function (``connector.post_process.openai.embedding``...) or a script
that is run by an external ``ScriptService``.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

import structlog

from mlcommons.connector.connector import HttpConnector
from mlcommons.connector.tensors import ModelTensor, ModelTensors, embedding_tensors

logger = structlog.get_logger("connector.processors")

OPENAI_EMBEDDING_POST_PROCESS = "connector.post_process.openai.embedding"
COHERE_EMBEDDING_POST_PROCESS = "connector.post_process.cohere.embedding"
DEFAULT_EMBEDDING_POST_PROCESS = "connector.post_process.default.embedding"

OPENAI_EMBEDDING_PRE_PROCESS = "connector.pre_process.openai.embedding"
COHERE_EMBEDDING_PRE_PROCESS = "connector.pre_process.cohere.embedding"
DEFAULT_EMBEDDING_PRE_PROCESS = "connector.pre_process.default.embedding"

RESPONSE_TENSOR = "response"


class ScriptService(Protocol):
    """Executes a connector-supplied script and returns its output as text."""

    def execute(self, script: str, params: Mapping[str, Any]) -> str:
        ...


def _vectors(values: Any, source: str) -> List[List[float]]:
    if not isinstance(values, list) or not all(isinstance(v, list) for v in values):
        raise ValueError(f"Expected a list of embeddings in {source} response")
    return [[float(x) for x in vector] for vector in values]


def _openai_embedding(response: Any) -> List[ModelTensor]:
    if not isinstance(response, dict) or not isinstance(response.get("data"), list):
        raise ValueError("Expected 'data' list in openai embedding response")
    items = sorted(response["data"], key=lambda item: item.get("index", 0))
    return embedding_tensors(_vectors([item.get("embedding") for item in items], "openai"))


def _cohere_embedding(response: Any) -> List[ModelTensor]:
    if not isinstance(response, dict):
        raise ValueError("Expected object in cohere embedding response")
    return embedding_tensors(_vectors(response.get("embeddings"), "cohere"))


def _default_embedding(response: Any) -> List[ModelTensor]:
    if isinstance(response, dict):
        response = response.get("embeddings", response.get("embedding"))
    if isinstance(response, list) and response and not isinstance(response[0], list):
        response = [response]
    return embedding_tensors(_vectors(response, "default"))


BUILTIN_POST_PROCESS: Dict[str, Callable[[Any], List[ModelTensor]]] = {
    OPENAI_EMBEDDING_POST_PROCESS: _openai_embedding,
    COHERE_EMBEDDING_POST_PROCESS: _cohere_embedding,
    DEFAULT_EMBEDDING_POST_PROCESS: _default_embedding,
}

BUILTIN_PRE_PROCESS: Dict[str, Callable[[Sequence[str]], Dict[str, Any]]] = {
    OPENAI_EMBEDDING_PRE_PROCESS: lambda docs: {"input": list(docs)},
    COHERE_EMBEDDING_PRE_PROCESS: lambda docs: {"texts": list(docs)},
    DEFAULT_EMBEDDING_PRE_PROCESS: lambda docs: {"input": list(docs)},
}


def _map_tensor(value: Any) -> ModelTensor:
    if isinstance(value, dict):
        return ModelTensor(name=RESPONSE_TENSOR, data_as_map=value)
    return ModelTensor(name=RESPONSE_TENSOR, data_as_map={RESPONSE_TENSOR: value})


class OutputProcessor(ABC):
    """Strategy converting a raw response body into ``ModelTensors``."""

    @abstractmethod
    def process(
        self,
        body: str,
        connector: HttpConnector,
        parameters: Mapping[str, Any],
        status_code: Optional[int] = None,
    ) -> ModelTensors:
        pass

    def pre_process(self, text_docs: Sequence[str], connector: HttpConnector) -> Dict[str, Any]:
        """Turn input documents into template parameters."""
        return {}


class ConnectorOutputProcessor(OutputProcessor):
    """Runs the connector's built-in or scripted processing functions.

    Parameters
    - script_service: Collaborator executing non built-in functions; without
      one, scripted connectors fail
    """

    def __init__(self, script_service: Optional[ScriptService] = None):
        self.script_service = script_service

    def process(
        self,
        body: str,
        connector: HttpConnector,
        parameters: Mapping[str, Any],
        status_code: Optional[int] = None,
    ) -> ModelTensors:
        function = connector.post_process_function
        if function is None:
            try:
                response = json.loads(body)
            except json.JSONDecodeError:
                tensor = ModelTensor(name=RESPONSE_TENSOR, result=body)
            else:
                tensor = _map_tensor(response)
            return ModelTensors(ml_model_tensors=[tensor], status_code=status_code)

        response = json.loads(body)
        builtin = BUILTIN_POST_PROCESS.get(function)
        if builtin is not None:
            return ModelTensors(ml_model_tensors=builtin(response), status_code=status_code)

        output = json.loads(self._run_script(function, {"response": response, "parameters": dict(parameters)}))
        if isinstance(output, list) and output and all(isinstance(v, list) for v in output):
            tensors = embedding_tensors(_vectors(output, "script"))
        else:
            tensors = [_map_tensor(output)]
        return ModelTensors(ml_model_tensors=tensors, status_code=status_code)

    def pre_process(self, text_docs: Sequence[str], connector: HttpConnector) -> Dict[str, Any]:
        function = connector.pre_process_function
        if function is None:
            return {"input": list(text_docs)}
        builtin = BUILTIN_PRE_PROCESS.get(function)
        if builtin is not None:
            return builtin(text_docs)

        output = json.loads(self._run_script(function, {"text_docs": list(text_docs)}))
        if not isinstance(output, dict):
            raise ValueError("Pre-process script must return a JSON object")
        return dict(output.get("parameters", output))

    def _run_script(self, script: str, params: Mapping[str, Any]) -> str:
        if self.script_service is None:
            raise ValueError("Connector uses a processing script but no script service is configured")
        logger.debug("Running connector script", params=list(params))
        return self.script_service.execute(script, params)
