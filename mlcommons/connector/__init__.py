"""Remote model invocation through declarative connectors.

Primary components:
- ``connector``: ``HttpConnector`` configuration and template substitution.
- ``executor``: protocol-keyed executors running the invocation stages.
- ``privileged``: egress permits and the privilege gate.
- ``http_client``: pooled ``httpx`` client factory.
- ``processors``: built-in and scripted pre/post processing.
- ``tensors``: ``ModelTensor`` result containers.
"""

from mlcommons.connector.connector import Connector, ConnectorProtocols, HttpConnector
from mlcommons.connector.executor import (
    HttpJsonConnectorExecutor,
    RemoteConnectorExecutor,
    connector_executor,
    create_connector_executor,
)
from mlcommons.connector.http_client import HttpClientFactory, get_http_client_factory
from mlcommons.connector.privileged import EgressPermit, PrivilegeGate, SandboxPrivilegeGate, require_permit
from mlcommons.connector.processors import ConnectorOutputProcessor, OutputProcessor, ScriptService
from mlcommons.connector.tensors import MLResultDataType, ModelTensor, ModelTensorOutput, ModelTensors

__all__ = [
    "Connector",
    "ConnectorOutputProcessor",
    "ConnectorProtocols",
    "EgressPermit",
    "HttpClientFactory",
    "HttpConnector",
    "HttpJsonConnectorExecutor",
    "MLResultDataType",
    "ModelTensor",
    "ModelTensorOutput",
    "ModelTensors",
    "OutputProcessor",
    "PrivilegeGate",
    "RemoteConnectorExecutor",
    "SandboxPrivilegeGate",
    "ScriptService",
    "connector_executor",
    "create_connector_executor",
    "get_http_client_factory",
    "require_permit",
]
