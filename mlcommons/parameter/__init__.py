"""Typed parameters: the uniform input contract for training."""

from mlcommons.parameter.parameter import (
    MLParameter,
    MLParameterBuilder,
    ParameterType,
    infer_parameter_type,
    is_assignable,
    parameters_to_dict,
)

__all__ = [
    "MLParameter",
    "MLParameterBuilder",
    "ParameterType",
    "infer_parameter_type",
    "is_assignable",
    "parameters_to_dict",
]
