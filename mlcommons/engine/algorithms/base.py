"""Base algorithm interface.

Defines the train/predict contract every registered algorithm implements and
the declarative parameter schema used both for validation and for the
engine metadata snapshot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterable, Optional, Tuple

from mlcommons.common.exceptions import InvalidParameterError, MissingModelError, SchemaViolationError
from mlcommons.dataframe import DataFrame
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameter, ParameterType, is_assignable, parameters_to_dict


@dataclass(frozen=True)
class AlgoParam:
    """Declared parameter of an algorithm.

    ``check`` receives the resolved value and returns an error message, or
    ``None`` when the value is acceptable.
    """
    name: str
    param_type: ParameterType
    description: str
    default: Any = None
    required: bool = False
    check: Optional[Callable[[Any], Optional[str]]] = None


def positive(value: Any) -> Optional[str]:
    return None if value > 0 else "must be positive"


def non_negative(value: Any) -> Optional[str]:
    return None if value >= 0 else "must not be negative"


def one_of(*choices: Any) -> Callable[[Any], Optional[str]]:
    def check(value: Any) -> Optional[str]:
        return None if value in choices else f"must be one of {list(choices)}"
    return check


class MLAlgorithm(ABC):
    """Trainable/predictable algorithm registered under ``name``.

    Implementations are stateless: all state lives in the ``Model`` they
    produce, so one instance serves concurrent callers.
    """

    name: ClassVar[str]
    model_name: ClassVar[str]
    description: ClassVar[str] = ""
    trainable: ClassVar[bool] = True
    parameter_specs: ClassVar[Tuple[AlgoParam, ...]] = ()

    def resolve_parameters(self, parameters: Optional[Iterable[MLParameter]]) -> Dict[str, Any]:
        """Validate parameters against ``parameter_specs`` and fill defaults.

        Raises ``InvalidParameterError`` naming the offending key for unknown,
        missing, mistyped, or out-of-range parameters.
        """
        supplied = parameters_to_dict(parameters)
        specs = {spec.name: spec for spec in self.parameter_specs}

        unknown = sorted(set(supplied) - set(specs))
        if unknown:
            raise InvalidParameterError(f"Unknown parameter for {self.name}: {', '.join(unknown)}")

        resolved: Dict[str, Any] = {}
        for spec in self.parameter_specs:
            parameter = supplied.get(spec.name)
            if parameter is None:
                if spec.required:
                    raise InvalidParameterError(f"Missing required parameter: {spec.name}")
                resolved[spec.name] = spec.default
                continue
            if not is_assignable(parameter.parameter_type, spec.param_type):
                raise InvalidParameterError(
                    f"Parameter {spec.name} expects {spec.param_type.value}, "
                    f"got {parameter.parameter_type.value}"
                )
            value = parameter.value
            if spec.param_type is ParameterType.DOUBLE:
                value = float(value)
            if spec.check is not None:
                problem = spec.check(value)
                if problem:
                    raise InvalidParameterError(f"Parameter {spec.name} {problem}: {value!r}")
            resolved[spec.name] = value
        return resolved

    @abstractmethod
    def train(self, parameters: Optional[Iterable[MLParameter]], data_frame: DataFrame) -> Model:
        """Fit the algorithm and return the learned model."""
        pass

    @abstractmethod
    def predict(
        self,
        data_frame: DataFrame,
        model: Optional[Model],
        parameters: Optional[Iterable[MLParameter]] = None,
    ) -> DataFrame:
        """Return one output row per input row, in input order."""
        pass

    def _require_model(self, model: Optional[Model]) -> Model:
        if model is None:
            raise MissingModelError(f"No model found for {self.name} prediction.")
        return model

    def _require_data(self, data_frame: Optional[DataFrame], purpose: str) -> DataFrame:
        if data_frame is None:
            raise SchemaViolationError(f"No input data for {self.name} {purpose}")
        if not isinstance(data_frame, DataFrame):
            raise SchemaViolationError(
                f"Input for {self.name} {purpose} must be a DataFrame, got {type(data_frame).__name__}"
            )
        return data_frame
