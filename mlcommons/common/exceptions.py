"""Error taxonomy for the ML engine.

Validation errors (unsupported algorithm, missing model, invalid parameter,
unsupported method) are raised at the boundary with a message naming the
offending identifier; they are configuration mistakes and must not be
retried. Remote failures all derive from ``RemoteInvocationError`` so callers
have a single kind to branch on, with the original cause chained.
"""

from typing import Optional


class MLCommonsError(Exception):
    """Base exception for ML engine operations."""
    pass


class UnsupportedAlgorithmError(MLCommonsError, ValueError):
    """Algorithm name is not registered."""
    pass


class UnsupportedOperationError(MLCommonsError):
    """Operation is not available for this algorithm or protocol."""
    pass


class InvalidParameterError(MLCommonsError, ValueError):
    """Parameter is missing, mistyped, out of range, or unknown."""
    pass


class MissingParameterError(MLCommonsError, ValueError):
    """A template placeholder has no matching runtime value."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message)
        self.parameter = parameter


class MissingModelError(MLCommonsError, ValueError):
    """Prediction was requested without a model."""
    pass


class SchemaViolationError(MLCommonsError, ValueError):
    """Tabular data does not match the declared or expected columns."""
    pass


class TypeMismatchError(MLCommonsError, TypeError):
    """A scalar does not have the requested column type."""
    pass


class CorruptModelError(MLCommonsError):
    """Model content cannot be decoded."""
    pass


class AlgorithmExecutionError(MLCommonsError):
    """Unexpected failure while an algorithm was training or predicting."""
    pass


class UnsupportedMethodError(MLCommonsError, ValueError):
    """Connector HTTP method is not supported."""
    pass


class RemoteInvocationError(MLCommonsError):
    """Remote model invocation failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestBuildError(RemoteInvocationError):
    """Outbound request could not be built from the connector."""
    pass


class OutputProcessingError(RemoteInvocationError):
    """Remote response could not be converted into model tensors."""
    pass
