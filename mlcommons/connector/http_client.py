"""Pooled HTTP client shared by connector executors."""

import threading
from typing import Optional

import httpx
import structlog

from mlcommons.common.config import MLCommonsConfig, get_config
from mlcommons.connector.privileged import EgressPermit, require_permit

logger = structlog.get_logger("connector.http_client")


class HttpClientFactory:
    """Creates the pooled ``httpx.Client`` on first use and shares it.

    Parameters
    - config: Timeouts and pool limits; defaults to ``get_config()``
    - transport: Optional transport override (``httpx.MockTransport`` in tests)

    Redirects are never followed.
    """

    def __init__(self, config: Optional[MLCommonsConfig] = None, transport: Optional[httpx.BaseTransport] = None):
        self.config = config or get_config()
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._lock = threading.Lock()

    @property
    def max_response_bytes(self) -> int:
        return self.config.ml_connector_max_response_bytes

    def get_client(self, permit: EgressPermit) -> httpx.Client:
        """Return the shared client; requires a live egress permit."""
        require_permit(permit)
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=httpx.Timeout(
                        self.config.ml_connector_read_timeout,
                        connect=self.config.ml_connector_connect_timeout,
                    ),
                    limits=httpx.Limits(
                        max_connections=self.config.ml_connector_max_connections,
                        max_keepalive_connections=self.config.ml_connector_max_keepalive_connections,
                    ),
                    follow_redirects=False,
                    transport=self._transport,
                )
                logger.info(
                    "Created connector HTTP client",
                    max_connections=self.config.ml_connector_max_connections,
                    read_timeout=self.config.ml_connector_read_timeout,
                )
            return self._client

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None


_http_client_factory: Optional[HttpClientFactory] = None
_factory_lock = threading.Lock()


def get_http_client_factory() -> HttpClientFactory:
    """Get the process-wide client factory."""
    global _http_client_factory
    with _factory_lock:
        if _http_client_factory is None:
            _http_client_factory = HttpClientFactory()
        return _http_client_factory
