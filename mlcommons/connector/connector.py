"""Connector configuration for remotely hosted models.

A connector describes how to reach a remote model: the endpoint template,
HTTP method, headers (which may reference encrypted credentials) and the
request body template. Connectors are read-only after construction; runtime
values are substituted into copies, never written back.
"""

import json
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional
from urllib.parse import quote

from mlcommons.common.exceptions import InvalidParameterError, MissingParameterError


class ConnectorProtocols:
    """Supported connector protocols."""
    HTTP = "http"

    VALID = (HTTP,)


PREDICT_ACTION = "predict"

PARAMETER_PLACEHOLDER = re.compile(r"\$\{(?:parameters\.)?([A-Za-z0-9_.\-]+)\}")
CREDENTIAL_PLACEHOLDER = re.compile(r"\$\{credential\.([A-Za-z0-9_.\-]+)\}")


def _parameter_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _json_text(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value)[1:-1]
    return json.dumps(value)


def _url_text(value: Any) -> str:
    return quote(_parameter_text(value), safe="")


def substitute_parameters(
    template: str,
    parameters: Mapping[str, Any],
    render: Callable[[Any], str] = _parameter_text,
) -> str:
    """Replace ``${parameters.name}`` and ``${name}`` placeholders.

    ``render`` turns each value into text; strings are inserted as-is and
    other values as JSON unless a different renderer is given.

    Raises ``MissingParameterError`` naming the first placeholder without a
    value.
    """
    def resolve(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in parameters or parameters[name] is None:
            raise MissingParameterError(f"Missing parameter: {name}", parameter=name)
        return render(parameters[name])

    return PARAMETER_PLACEHOLDER.sub(resolve, template)


class Connector(ABC):
    """Declarative description of a remote model endpoint."""

    name: str
    protocol: str

    @abstractmethod
    def get_predict_endpoint(self, parameters: Optional[Mapping[str, Any]] = None) -> str:
        """Return the prediction URL with runtime parameters substituted."""
        pass

    @abstractmethod
    def get_decrypted_headers(self, decrypt: Callable[[str], str]) -> Dict[str, str]:
        """Return headers with credential references resolved."""
        pass


@dataclass(frozen=True)
class HttpConnector(Connector):
    """Connector invoking a JSON-over-HTTP endpoint.

    Parameters
    - name: Connector name, used in logs and metric labels
    - predict_endpoint: URL template with ``${parameters.x}`` placeholders
    - predict_http_method: HTTP method; only GET and POST can be executed
    - parameters: Default values merged under the runtime parameters
    - credential: Encrypted credential values, referenced from headers as
      ``${credential.key}``
    - headers: Header templates
    - request_body: Optional body template
    - pre_process_function: Built-in name or script turning text documents
      into parameters
    - post_process_function: Built-in name or script normalizing the response
    """
    name: str
    predict_endpoint: str
    predict_http_method: str = "POST"
    version: str = "1"
    description: Optional[str] = None
    protocol: str = ConnectorProtocols.HTTP
    parameters: Dict[str, Any] = field(default_factory=dict)
    credential: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    request_body: Optional[str] = None
    pre_process_function: Optional[str] = None
    post_process_function: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HttpConnector":
        """Build a connector from its persisted form.

        Expects the ``actions`` layout, using the entry whose ``action_type``
        is ``predict``::

            {"name": "...", "protocol": "http", "parameters": {...},
             "credential": {...},
             "actions": [{"action_type": "predict", "method": "POST",
                          "url": "...", "headers": {...},
                          "request_body": "...",
                          "pre_process_function": "...",
                          "post_process_function": "..."}]}
        """
        protocol = data.get("protocol", ConnectorProtocols.HTTP)
        if protocol not in ConnectorProtocols.VALID:
            raise InvalidParameterError(f"Unsupported connector protocol: {protocol}")
        actions: List[Mapping[str, Any]] = list(data.get("actions") or [])
        predict = next(
            (action for action in actions if str(action.get("action_type", "")).lower() == PREDICT_ACTION),
            None,
        )
        if predict is None:
            raise InvalidParameterError(f"Connector {data.get('name')} has no predict action")
        if not predict.get("url"):
            raise InvalidParameterError(f"Connector {data.get('name')} predict action has no url")

        return cls(
            name=data.get("name", ""),
            version=str(data.get("version", "1")),
            description=data.get("description"),
            protocol=protocol,
            parameters=dict(data.get("parameters") or {}),
            credential=dict(data.get("credential") or {}),
            predict_endpoint=predict["url"],
            predict_http_method=predict.get("method", "POST"),
            headers=dict(predict.get("headers") or {}),
            request_body=predict.get("request_body"),
            pre_process_function=predict.get("pre_process_function"),
            post_process_function=predict.get("post_process_function"),
        )

    def to_dict(self) -> Dict[str, Any]:
        action: Dict[str, Any] = {
            "action_type": PREDICT_ACTION,
            "method": self.predict_http_method,
            "url": self.predict_endpoint,
            "headers": dict(self.headers),
        }
        for key in ("request_body", "pre_process_function", "post_process_function"):
            if getattr(self, key) is not None:
                action[key] = getattr(self, key)
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "protocol": self.protocol,
            "parameters": dict(self.parameters),
            "credential": dict(self.credential),
            "actions": [action],
        }

    def merge_parameters(self, parameters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Runtime parameters layered over the connector defaults."""
        merged = dict(self.parameters)
        merged.update(parameters or {})
        return merged

    def get_predict_endpoint(self, parameters: Optional[Mapping[str, Any]] = None) -> str:
        """Render the endpoint; values are percent-encoded so they stay within one URL component."""
        return substitute_parameters(self.predict_endpoint, self.merge_parameters(parameters), _url_text)

    def create_predict_payload(self, parameters: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """Render ``request_body`` with string values JSON-escaped.

        Returns ``None`` when the connector has no template.
        """
        if self.request_body is None:
            return None
        return substitute_parameters(self.request_body, self.merge_parameters(parameters), _json_text)

    def get_decrypted_headers(self, decrypt: Callable[[str], str]) -> Dict[str, str]:
        """Resolve ``${credential.key}`` references in header values.

        The decrypted credential map lives only for this call; callers should
        prefer ``decrypted_headers`` so the plain values are discarded.
        """
        plain = {key: decrypt(value) for key, value in self.credential.items()}
        try:
            def resolve(match: "re.Match[str]") -> str:
                key = match.group(1)
                if key not in plain:
                    raise MissingParameterError(f"Missing credential: {key}", parameter=key)
                return plain[key]

            return {name: CREDENTIAL_PLACEHOLDER.sub(resolve, str(value)) for name, value in self.headers.items()}
        finally:
            plain.clear()

    @contextmanager
    def decrypted_headers(self, decrypt: Callable[[str], str]) -> Iterator[Dict[str, str]]:
        """Yield decrypted headers for one invocation and clear them on exit."""
        headers = self.get_decrypted_headers(decrypt)
        try:
            yield headers
        finally:
            headers.clear()

    def encrypt_credential(self, encrypt: Callable[[str], str]) -> "HttpConnector":
        """Return a copy whose credential values are encrypted with ``encrypt``."""
        return replace(self, credential={key: encrypt(value) for key, value in self.credential.items()})
