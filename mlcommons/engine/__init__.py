"""Local execution engine.

Primary components:
- ``model``: ``Model`` and ``MLInput`` containers.
- ``algorithms``: k-means, linear regression and the PMML adapter.
- ``registry``: read-only algorithm table and metadata snapshot.
- ``ml_engine``: the ``MLEngine`` dispatcher.
"""

from mlcommons.engine.ml_engine import MLEngine, get_ml_engine
from mlcommons.engine.model import MLInput, Model
from mlcommons.engine.registry import (
    AlgorithmRegistry,
    MLAlgoMetaData,
    MLAlgoParams,
    MLEngineMetaData,
    default_registry,
)

__all__ = [
    "AlgorithmRegistry",
    "MLAlgoMetaData",
    "MLAlgoParams",
    "MLEngine",
    "MLEngineMetaData",
    "MLInput",
    "Model",
    "default_registry",
    "get_ml_engine",
]
