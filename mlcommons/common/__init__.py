"""Common utilities shared across the engine and connectors.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``exceptions``: the error taxonomy raised at every public boundary.
- ``metrics``: Prometheus metrics for training, prediction, and remote calls.
- ``security``: Fernet-based encryption of connector credentials.

Import pattern:
- from mlcommons.common.config import MLCommonsConfig
- from mlcommons.common.logging import configure_logging
"""
