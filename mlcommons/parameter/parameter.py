"""Typed algorithm parameters.

``MLParameterBuilder.parameter`` is the only supported way to create an
``MLParameter``: it infers (or checks) the parameter type and rejects values
that no algorithm could consume.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import numpy as np

from mlcommons.common.exceptions import InvalidParameterError


class ParameterType(Enum):
    """Supported parameter value types."""
    STRING = "string"
    INTEGER = "integer"
    LONG = "long"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    STRING_ARRAY = "string_array"
    INTEGER_ARRAY = "integer_array"
    DOUBLE_ARRAY = "double_array"


# array type -> type its elements are normalized to
_ARRAY_ELEMENT_TYPES = {
    ParameterType.STRING_ARRAY: ParameterType.STRING,
    ParameterType.INTEGER_ARRAY: ParameterType.LONG,
    ParameterType.DOUBLE_ARRAY: ParameterType.DOUBLE,
}

_INT32_MIN, _INT32_MAX = -(1 << 31), (1 << 31) - 1
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


@dataclass(frozen=True)
class MLParameter:
    """Named, typed parameter value."""
    name: str
    value: Any
    parameter_type: ParameterType

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"name": self.name, "type": self.parameter_type.value, "value": value}


def _scalar_type(value: Any) -> Optional[ParameterType]:
    if isinstance(value, (bool, np.bool_)):
        return ParameterType.BOOLEAN
    if isinstance(value, (int, np.integer)):
        value = int(value)
        if _INT32_MIN <= value <= _INT32_MAX:
            return ParameterType.INTEGER
        if _INT64_MIN <= value <= _INT64_MAX:
            return ParameterType.LONG
        return None
    if isinstance(value, (float, np.floating)):
        return ParameterType.DOUBLE
    if isinstance(value, str):
        return ParameterType.STRING
    return None


def _normalize_scalar(value: Any, parameter_type: ParameterType) -> Any:
    if parameter_type is ParameterType.BOOLEAN:
        return bool(value)
    if parameter_type in (ParameterType.INTEGER, ParameterType.LONG):
        return int(value)
    if parameter_type is ParameterType.DOUBLE:
        return float(value)
    return value


def infer_parameter_type(value: Any) -> ParameterType:
    """Infer the parameter type of a value, raising ``InvalidParameterError``."""
    scalar = _scalar_type(value)
    if scalar is not None:
        return scalar
    if isinstance(value, (list, tuple)):
        element_types = {_scalar_type(v) for v in value}
        if not value or None in element_types or ParameterType.BOOLEAN in element_types:
            raise InvalidParameterError(f"Unsupported array parameter value: {value!r}")
        if element_types <= {ParameterType.INTEGER, ParameterType.LONG}:
            return ParameterType.INTEGER_ARRAY
        if element_types <= {ParameterType.INTEGER, ParameterType.LONG, ParameterType.DOUBLE}:
            return ParameterType.DOUBLE_ARRAY
        if element_types == {ParameterType.STRING}:
            return ParameterType.STRING_ARRAY
    raise InvalidParameterError(f"Unsupported parameter value type: {type(value).__name__}")


def is_assignable(source: ParameterType, target: ParameterType) -> bool:
    """Whether a value of ``source`` type may be used where ``target`` is declared.

    Integers widen to longs and doubles; integer arrays widen to double arrays.
    """
    if source is target:
        return True
    widening = {
        ParameterType.INTEGER: {ParameterType.LONG, ParameterType.DOUBLE},
        ParameterType.LONG: {ParameterType.DOUBLE},
        ParameterType.INTEGER_ARRAY: {ParameterType.DOUBLE_ARRAY},
    }
    return target in widening.get(source, set())


class MLParameterBuilder:
    """Builds validated ``MLParameter`` instances."""

    @staticmethod
    def parameter(name: str, value: Any, parameter_type: Optional[ParameterType] = None) -> MLParameter:
        """Create a parameter.

        Parameters
        - name: Non-empty parameter name
        - value: A scalar (str, int, float, bool) or a homogeneous list of them
        - parameter_type: Optional explicit type; must be compatible with ``value``

        Raises ``InvalidParameterError`` for empty names, unsupported values,
        and values that do not match ``parameter_type``.
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidParameterError(f"Parameter name must be a non-empty string: {name!r}")
        inferred = infer_parameter_type(value)
        if parameter_type is None:
            parameter_type = inferred
        elif not is_assignable(inferred, parameter_type):
            raise InvalidParameterError(
                f"Parameter {name} expects {parameter_type.value}, got {inferred.value}"
            )

        if parameter_type in _ARRAY_ELEMENT_TYPES:
            element_type = _ARRAY_ELEMENT_TYPES[parameter_type]
            normalized = tuple(_normalize_scalar(v, element_type) for v in value)
        else:
            normalized = _normalize_scalar(value, parameter_type)
        return MLParameter(name=name, value=normalized, parameter_type=parameter_type)


def parameters_to_dict(parameters: Optional[Iterable[MLParameter]]) -> Dict[str, MLParameter]:
    """Index parameters by name, rejecting duplicates and foreign objects."""
    result: Dict[str, MLParameter] = {}
    for parameter in parameters or ():
        if not isinstance(parameter, MLParameter):
            raise InvalidParameterError(f"Not an MLParameter: {parameter!r}")
        if parameter.name in result:
            raise InvalidParameterError(f"Duplicate parameter: {parameter.name}")
        result[parameter.name] = parameter
    return result
