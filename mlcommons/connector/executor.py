"""Executors invoking remote models through connectors.

An invocation runs four stages: build the request, attach headers, execute it
inside the privilege gate, and normalize the response into ``ModelTensors``.
Domain errors propagate unchanged; anything unexpected is logged and raised
as ``RemoteInvocationError`` with the original cause chained. Nothing is
appended to the output list unless every stage succeeds, and no stage is
retried.
"""

import json
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

import httpx
import structlog

from mlcommons.common.config import MLCommonsConfig, get_config
from mlcommons.common.exceptions import (
    MLCommonsError,
    OutputProcessingError,
    RemoteInvocationError,
    RequestBuildError,
    UnsupportedMethodError,
    UnsupportedOperationError,
)
from mlcommons.common.logging import log_performance
from mlcommons.common.metrics import MetricsCollector
from mlcommons.common.security import create_secret_manager
from mlcommons.connector.connector import ConnectorProtocols, HttpConnector
from mlcommons.connector.http_client import HttpClientFactory, get_http_client_factory
from mlcommons.connector.privileged import EgressPermit, PrivilegeGate, SandboxPrivilegeGate
from mlcommons.connector.processors import ConnectorOutputProcessor, OutputProcessor
from mlcommons.connector.tensors import ModelTensorOutput, ModelTensors
from mlcommons.engine.model import MLInput

logger = structlog.get_logger("connector.executor")

SUPPORTED_METHODS = ("POST", "GET")
CONTENT_TYPE = "Content-Type"
DEFAULT_CONTENT_TYPE = "application/json"
ERROR_BODY_PREVIEW = 512
VALID_HOST = re.compile(rb"^[A-Za-z0-9.-]+$")

_EXECUTORS: Dict[str, Type["RemoteConnectorExecutor"]] = {}


def connector_executor(protocol: str) -> Callable:
    """Register an executor class for a connector protocol."""
    def decorator(cls: Type["RemoteConnectorExecutor"]) -> Type["RemoteConnectorExecutor"]:
        _EXECUTORS[protocol] = cls
        return cls
    return decorator


def create_connector_executor(connector: HttpConnector, **options: Any) -> "RemoteConnectorExecutor":
    """Create the executor registered for ``connector.protocol``.

    ``options`` are forwarded to the executor constructor.
    """
    protocol = getattr(connector, "protocol", None)
    executor_class = _EXECUTORS.get(protocol)
    if executor_class is None:
        raise UnsupportedOperationError(f"Unsupported connector protocol: {protocol}")
    return executor_class(connector, **options)


class RemoteConnectorExecutor(ABC):
    """Invokes the remote model described by a connector."""

    def __init__(self, connector: HttpConnector, output_processor: Optional[OutputProcessor] = None):
        self.connector = connector
        self.output_processor = output_processor or ConnectorOutputProcessor()

    def execute_predict(self, ml_input: MLInput) -> ModelTensorOutput:
        """Resolve parameters and payload for ``ml_input`` and invoke the model."""
        parameters = self.connector.merge_parameters(ml_input.parameters)
        try:
            if ml_input.text_docs:
                parameters.update(self.output_processor.pre_process(ml_input.text_docs, self.connector))
            payload = self.connector.create_predict_payload(parameters)
        except Exception as e:
            raise RequestBuildError("Failed to create request payload for remote model") from e
        if payload is None:
            payload = parameters.get("payload", "{}")
            if not isinstance(payload, str):
                payload = json.dumps(payload)

        tensor_outputs: List[ModelTensors] = []
        self.invoke_remote_model(ml_input, parameters, payload, tensor_outputs)
        return ModelTensorOutput(ml_model_outputs=tensor_outputs)

    @abstractmethod
    def invoke_remote_model(
        self,
        ml_input: MLInput,
        parameters: Mapping[str, Any],
        payload: Optional[str],
        tensor_outputs: List[ModelTensors],
    ) -> None:
        """Call the remote model and append the normalized output."""
        pass


@connector_executor(ConnectorProtocols.HTTP)
class HttpJsonConnectorExecutor(RemoteConnectorExecutor):
    """Executes JSON-over-HTTP connectors.

    Parameters
    - connector: The ``HttpConnector`` to invoke
    - client_factory: Source of the pooled HTTP client
    - privilege_gate: Boundary the network call runs inside
    - decrypt: Secret decryption for credential references in headers
    - output_processor: Response normalization strategy
    - metrics: Optional collector for invocation counts and latencies
    - config: Trusted endpoints and response size limit
    """

    def __init__(
        self,
        connector: HttpConnector,
        client_factory: Optional[HttpClientFactory] = None,
        privilege_gate: Optional[PrivilegeGate] = None,
        decrypt: Optional[Callable[[str], str]] = None,
        output_processor: Optional[OutputProcessor] = None,
        metrics: Optional[MetricsCollector] = None,
        config: Optional[MLCommonsConfig] = None,
    ):
        super().__init__(connector, output_processor)
        self.config = config or get_config()
        self.client_factory = client_factory or get_http_client_factory()
        self.privilege_gate = privilege_gate or SandboxPrivilegeGate()
        self.metrics = metrics
        self._decrypt = decrypt
        self._trusted_endpoints = [re.compile(pattern) for pattern in self.config.ml_connector_trusted_endpoints_regex]

    def decrypt(self, value: str) -> str:
        """Decrypt one credential value, creating the secret manager on first use."""
        if self._decrypt is None:
            self._decrypt = create_secret_manager(self.config.ml_credential_encryption_key).decrypt
        return self._decrypt(value)

    def invoke_remote_model(
        self,
        ml_input: MLInput,
        parameters: Mapping[str, Any],
        payload: Optional[str],
        tensor_outputs: List[ModelTensors],
    ) -> None:
        method = (self.connector.predict_http_method or "").upper()
        start = time.perf_counter()
        status = "error"
        try:
            request = self._build_request(method, parameters, payload)
            body, status_code = self.privilege_gate.do_privileged(
                lambda permit: self._execute(permit, request)
            )
            tensors = self._process_output(body, parameters, status_code)
            tensor_outputs.append(tensors)
            status = "success"
        except MLCommonsError as e:
            logger.error(
                "Fail to execute http connector",
                connector=self.connector.name,
                method=method,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        except Exception as e:
            logger.error(
                "Fail to execute http connector",
                connector=self.connector.name,
                method=method,
                error=str(e),
                exc_info=True,
            )
            raise RemoteInvocationError("Fail to execute http connector") from e
        finally:
            duration = time.perf_counter() - start
            log_performance(
                "remote_invocation",
                duration * 1000,
                connector=self.connector.name,
                method=method,
                status=status,
            )
            if self.metrics is not None:
                self.metrics.record_remote_invocation(self.connector.name, method, status, duration)

    def _build_request(self, method: str, parameters: Mapping[str, Any], payload: Optional[str]) -> httpx.Request:
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(f"Unsupported http method: {self.connector.predict_http_method}")
        try:
            url = self._resolve_url(parameters)
            with self.connector.decrypted_headers(self.decrypt) as decrypted:
                headers = self._header_list(decrypted)
            content = (payload or "").encode("utf-8") if method == "POST" else None
            return httpx.Request(method, url, headers=headers, content=content)
        except Exception as e:
            raise RequestBuildError("Failed to create http request for remote model") from e

    def _resolve_url(self, parameters: Mapping[str, Any]) -> str:
        url = self.connector.get_predict_endpoint(parameters)
        parsed = httpx.URL(url)
        if parsed.scheme not in ("http", "https") or not VALID_HOST.match(parsed.raw_host) or parsed.userinfo:
            raise ValueError(f"Malformed connector URL: {url}")
        if not any(pattern.match(url) for pattern in self._trusted_endpoints):
            raise ValueError("Connector URL is not matching the trusted connector endpoint regex")
        return url

    @staticmethod
    def _header_list(decrypted: Mapping[str, str]) -> List[Tuple[str, str]]:
        headers = []
        has_content_type = False
        for name, value in decrypted.items():
            if any(c in name or c in value for c in "\r\n"):
                raise ValueError(f"Header {name!r} contains a line break")
            if name.lower() == CONTENT_TYPE.lower():
                has_content_type = True
            headers.append((name, value))
        if not has_content_type:
            headers.append((CONTENT_TYPE, DEFAULT_CONTENT_TYPE))
        return headers

    def _execute(self, permit: EgressPermit, request: httpx.Request) -> Tuple[str, int]:
        client = self.client_factory.get_client(permit)
        limit = self.client_factory.max_response_bytes
        response = client.send(request, stream=True)
        try:
            chunks = []
            size = 0
            for chunk in response.iter_bytes():
                size += len(chunk)
                if size > limit:
                    raise RemoteInvocationError(
                        f"Remote model response exceeds {limit} bytes",
                        status_code=response.status_code,
                    )
                chunks.append(chunk)
        finally:
            response.close()

        body = b"".join(chunks).decode(response.charset_encoding or "utf-8", errors="replace")
        if not response.is_success:
            raise RemoteInvocationError(
                f"Remote model returned status {response.status_code}: {body[:ERROR_BODY_PREVIEW]}",
                status_code=response.status_code,
            )
        logger.debug(
            "Received remote model response",
            connector=self.connector.name,
            status_code=response.status_code,
            bytes=size,
        )
        return body, response.status_code

    def _process_output(self, body: str, parameters: Mapping[str, Any], status_code: int) -> ModelTensors:
        try:
            return self.output_processor.process(body, self.connector, parameters, status_code)
        except Exception as e:
            raise OutputProcessingError("Failed to process remote model output", status_code=status_code) from e
