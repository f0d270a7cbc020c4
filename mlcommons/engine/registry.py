"""Algorithm registry and engine metadata.

The registry is built once and never mutated: lookups from concurrent callers
need no locking.
"""

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import structlog

from mlcommons.common.exceptions import UnsupportedAlgorithmError
from mlcommons.engine.algorithms import KMeans, LinearRegression, MLAlgorithm, PMMLModel

logger = structlog.get_logger("engine.registry")


@dataclass(frozen=True)
class MLAlgoParams:
    name: str
    param_type: str
    description: str
    default: Any = None
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "param_type": self.param_type,
            "description": self.description,
            "default": self.default,
            "required": self.required,
        }


@dataclass(frozen=True)
class MLAlgoMetaData:
    name: str
    description: str
    trainable: bool
    predictable: bool
    params: Tuple[MLAlgoParams, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "trainable": self.trainable,
            "predictable": self.predictable,
            "params": [param.to_dict() for param in self.params],
        }


@dataclass(frozen=True)
class MLEngineMetaData:
    """Snapshot of every registered algorithm and its parameters."""
    algo_meta_data: Tuple[MLAlgoMetaData, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"algo_meta_data": [algo.to_dict() for algo in self.algo_meta_data]}


def normalize_name(algo_name: Optional[str]) -> str:
    return (algo_name or "").strip().lower()


class AlgorithmRegistry:
    """Read-only mapping from lowercase algorithm name to implementation.

    Parameters
    - algorithms: Algorithm instances, keyed by their ``name``
    """

    def __init__(self, algorithms: Iterable[MLAlgorithm]):
        table: Dict[str, MLAlgorithm] = {}
        for algorithm in algorithms:
            key = normalize_name(algorithm.name)
            if key in table:
                raise ValueError(f"Duplicate algorithm name: {algorithm.name}")
            table[key] = algorithm
        self._algorithms: Mapping[str, MLAlgorithm] = MappingProxyType(table)

    @property
    def algorithms(self) -> Mapping[str, MLAlgorithm]:
        return self._algorithms

    def get(self, algo_name: Optional[str]) -> MLAlgorithm:
        """Look up an algorithm by case-insensitive name."""
        algorithm = self._algorithms.get(normalize_name(algo_name))
        if algorithm is None:
            raise UnsupportedAlgorithmError(f"Unsupported algorithm: {algo_name}")
        return algorithm

    def names(self) -> Tuple[str, ...]:
        return tuple(self._algorithms)

    def __contains__(self, algo_name: object) -> bool:
        return isinstance(algo_name, str) and normalize_name(algo_name) in self._algorithms

    def get_meta_data(self) -> MLEngineMetaData:
        return MLEngineMetaData(algo_meta_data=tuple(
            MLAlgoMetaData(
                name=algorithm.name,
                description=algorithm.description,
                trainable=algorithm.trainable,
                predictable=True,
                params=tuple(
                    MLAlgoParams(
                        name=spec.name,
                        param_type=spec.param_type.value,
                        description=spec.description,
                        default=spec.default,
                        required=spec.required,
                    )
                    for spec in algorithm.parameter_specs
                ),
            )
            for algorithm in self._algorithms.values()
        ))


@lru_cache()
def default_registry() -> AlgorithmRegistry:
    """Registry of the built-in algorithms, created on first use."""
    registry = AlgorithmRegistry([KMeans(), LinearRegression(), PMMLModel()])
    logger.info("Algorithm registry initialized", algorithms=list(registry.names()))
    return registry
