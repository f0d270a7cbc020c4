"""Tests for typed parameters."""

import pytest

from mlcommons.common.exceptions import InvalidParameterError
from mlcommons.parameter import MLParameterBuilder, ParameterType, is_assignable, parameters_to_dict


def test_parameter_type_inference():
    """Test types are inferred from values."""
    assert MLParameterBuilder.parameter("k", 2).parameter_type is ParameterType.INTEGER
    assert MLParameterBuilder.parameter("seed", 1 << 40).parameter_type is ParameterType.LONG
    assert MLParameterBuilder.parameter("rate", 0.01).parameter_type is ParameterType.DOUBLE
    assert MLParameterBuilder.parameter("flag", True).parameter_type is ParameterType.BOOLEAN
    assert MLParameterBuilder.parameter("target", "price").parameter_type is ParameterType.STRING
    assert MLParameterBuilder.parameter("ids", [1, 2]).parameter_type is ParameterType.INTEGER_ARRAY
    assert MLParameterBuilder.parameter("weights", [1, 2.5]).parameter_type is ParameterType.DOUBLE_ARRAY
    assert MLParameterBuilder.parameter("names", ["a"]).parameter_type is ParameterType.STRING_ARRAY


def test_explicit_type_widening():
    """Test integers may be declared as doubles but not the reverse."""
    parameter = MLParameterBuilder.parameter("rate", 1, ParameterType.DOUBLE)
    assert parameter.value == 1.0
    assert isinstance(parameter.value, float)
    with pytest.raises(InvalidParameterError):
        MLParameterBuilder.parameter("k", 1.5, ParameterType.INTEGER)

    weights = MLParameterBuilder.parameter("weights", [1, 2], ParameterType.DOUBLE_ARRAY)
    assert weights.value == (1.0, 2.0)
    assert all(isinstance(v, float) for v in weights.value)


def test_invalid_parameters():
    """Test unsupported names and values are rejected."""
    with pytest.raises(InvalidParameterError):
        MLParameterBuilder.parameter("", 1)
    with pytest.raises(InvalidParameterError):
        MLParameterBuilder.parameter("obj", object())
    with pytest.raises(InvalidParameterError):
        MLParameterBuilder.parameter("mixed", [1, "a"])
    with pytest.raises(InvalidParameterError):
        MLParameterBuilder.parameter("empty", [])


def test_parameter_is_immutable():
    """Test parameters cannot be modified after creation."""
    parameter = MLParameterBuilder.parameter("ids", [1, 2])
    assert parameter.value == (1, 2)
    with pytest.raises(AttributeError):
        parameter.value = 3
    assert parameter.to_dict() == {"name": "ids", "type": "integer_array", "value": [1, 2]}


def test_is_assignable():
    """Test type widening rules."""
    assert is_assignable(ParameterType.INTEGER, ParameterType.LONG)
    assert is_assignable(ParameterType.INTEGER, ParameterType.DOUBLE)
    assert is_assignable(ParameterType.INTEGER_ARRAY, ParameterType.DOUBLE_ARRAY)
    assert not is_assignable(ParameterType.DOUBLE, ParameterType.INTEGER)
    assert not is_assignable(ParameterType.STRING, ParameterType.INTEGER)


def test_parameters_to_dict_rejects_duplicates():
    """Test duplicate names are rejected."""
    k = MLParameterBuilder.parameter("k", 2)
    assert parameters_to_dict([k]) == {"k": k}
    assert parameters_to_dict(None) == {}
    with pytest.raises(InvalidParameterError):
        parameters_to_dict([k, MLParameterBuilder.parameter("k", 3)])
    with pytest.raises(InvalidParameterError):
        parameters_to_dict([("k", 2)])
