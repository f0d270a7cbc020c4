"""Configuration management for the ML engine.

This module centralizes environment-driven configuration for local training
and prediction as well as for remote connector invocations. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly‑typed settings with sensible defaults
- One place to discover commonly used environment variables
- Connector egress limits (timeouts, pool size, trusted endpoints) live here

Usage
- Inject the config where needed: ``config = MLCommonsConfig()``
- Or share the process-wide instance: ``config = get_config()``
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TRUSTED_CONNECTOR_ENDPOINTS = [
    r"^https://runtime\.sagemaker\.[^/]*[a-z0-9-]\.amazonaws\.com/.*$",
    r"^https://api\.openai\.com/.*$",
    r"^https://api\.cohere\.ai/.*$",
    r"^https://bedrock-runtime\.[^/]*[a-z0-9-]\.amazonaws\.com/.*$",
]


class MLCommonsConfig(BaseSettings):
    """Configuration for the ML engine and its connectors.

    Parameters are read from the process environment using the upper-cased
    field names (``ML_LOG_LEVEL``, ``ML_CONNECTOR_READ_TIMEOUT``...).

    Notes
    - Add new shared settings here so every component reads them the same way.
    - Prefer injecting a config instance over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ml_env: str = Field(default="local")

    # Logging
    ml_log_level: str = Field(default="INFO")
    ml_log_format: str = Field(default="json")

    # Metrics
    ml_metrics_enabled: bool = Field(default=True)

    # Connector HTTP client
    ml_connector_connect_timeout: float = Field(default=10.0, gt=0)
    ml_connector_read_timeout: float = Field(default=30.0, gt=0)
    ml_connector_max_connections: int = Field(default=30, gt=0)
    ml_connector_max_keepalive_connections: int = Field(default=10, ge=0)
    ml_connector_max_response_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    ml_connector_trusted_endpoints_regex: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TRUSTED_CONNECTOR_ENDPOINTS)
    )

    # Security
    ml_credential_encryption_key: Optional[str] = Field(default=None)


@lru_cache(maxsize=1)
def get_config() -> MLCommonsConfig:
    """Get the process-wide configuration.

    The instance is built on first use and reused afterwards; tests that need
    different values should construct ``MLCommonsConfig`` directly.
    """
    return MLCommonsConfig()
