"""Compilation of PMML expressions and predicates.

Expressions compile to callables taking the field context and returning a
value, with ``None`` standing for a missing value. Predicates compile to
callables returning ``True``, ``False`` or ``None`` (unknown), following the
PMML three-valued logic.
"""

import math
import shlex
import statistics
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, List, Optional

from mlcommons.pmml.document import PMMLError, parse_value

Context = Dict[str, Any]
Expression = Callable[[Context], Any]
Predicate = Callable[[Context], Optional[bool]]

EXPRESSION_TAGS = frozenset({"Constant", "FieldRef", "Apply"})
PREDICATE_TAGS = frozenset({
    "True",
    "False",
    "SimplePredicate",
    "CompoundPredicate",
    "SimpleSetPredicate",
})


def _strict(fn: Callable[..., Any]) -> Callable[[List[Any]], Any]:
    """Wrap ``fn`` so any missing argument yields a missing result."""
    def apply(values: List[Any]) -> Any:
        if any(v is None for v in values):
            return None
        try:
            return fn(*values)
        except (ZeroDivisionError, ValueError, OverflowError):
            return None
    return apply


def _aggregate(fn: Callable[[List[Any]], Any]) -> Callable[[List[Any]], Any]:
    """Aggregations skip missing arguments."""
    def apply(values: List[Any]) -> Any:
        present = [v for v in values if v is not None]
        return fn(present) if present else None
    return apply


def _and(values: List[Any]) -> Optional[bool]:
    if any(v is False for v in values):
        return False
    if any(v is None for v in values):
        return None
    return True


def _or(values: List[Any]) -> Optional[bool]:
    if any(v is True for v in values):
        return True
    if any(v is None for v in values):
        return None
    return False


def _round(value: float) -> float:
    return float(math.floor(value + 0.5))


_FUNCTIONS: Dict[str, Callable[[List[Any]], Any]] = {
    "+": _strict(lambda a, b: a + b),
    "-": _strict(lambda a, b: a - b),
    "*": _strict(lambda a, b: a * b),
    "/": _strict(lambda a, b: a / b),
    "pow": _strict(math.pow),
    "exp": _strict(math.exp),
    "ln": _strict(math.log),
    "log10": _strict(math.log10),
    "sqrt": _strict(math.sqrt),
    "abs": _strict(abs),
    "floor": _strict(lambda a: float(math.floor(a))),
    "ceil": _strict(lambda a: float(math.ceil(a))),
    "round": _strict(_round),
    "threshold": _strict(lambda a, b: 1 if a > b else 0),
    "min": _aggregate(min),
    "max": _aggregate(max),
    "sum": _aggregate(sum),
    "avg": _aggregate(statistics.fmean),
    "equal": _strict(lambda a, b: a == b),
    "notEqual": _strict(lambda a, b: a != b),
    "lessThan": _strict(lambda a, b: a < b),
    "lessOrEqual": _strict(lambda a, b: a <= b),
    "greaterThan": _strict(lambda a, b: a > b),
    "greaterOrEqual": _strict(lambda a, b: a >= b),
    "and": _and,
    "or": _or,
    "not": _strict(lambda a: not a),
    "isMissing": lambda values: values[0] is None,
    "isNotMissing": lambda values: values[0] is not None,
}


def compile_expression(element: ET.Element) -> Expression:
    """Compile a ``Constant``, ``FieldRef`` or ``Apply`` element."""
    tag = element.tag

    if tag == "Constant":
        if element.get("missing") == "true":
            return lambda ctx: None
        constant = parse_value(element.get("dataType"), element.text or "")
        return lambda ctx: constant

    if tag == "FieldRef":
        field = element.get("field")
        if not field:
            raise PMMLError("FieldRef without field attribute")
        map_missing_to = element.get("mapMissingTo")

        def field_ref(ctx: Context) -> Any:
            value = ctx.get(field)
            return map_missing_to if value is None else value
        return field_ref

    if tag == "Apply":
        function = element.get("function")
        arguments = [compile_expression(item) for item in element if item.tag in EXPRESSION_TAGS]
        map_missing_to = parse_value(None, element.get("mapMissingTo"))

        if function == "if":
            if len(arguments) not in (2, 3):
                raise PMMLError("Apply 'if' takes two or three arguments")

            def conditional(ctx: Context) -> Any:
                condition = arguments[0](ctx)
                if condition is None:
                    return map_missing_to
                if condition:
                    return arguments[1](ctx)
                return arguments[2](ctx) if len(arguments) == 3 else None
            return conditional

        try:
            impl = _FUNCTIONS[function]
        except KeyError:
            raise PMMLError(f"Unsupported function: {function}") from None

        def apply(ctx: Context) -> Any:
            result = impl([argument(ctx) for argument in arguments])
            return map_missing_to if result is None else result
        return apply

    raise PMMLError(f"Unsupported expression: {tag}")


def _compare(operator: str, actual: Any, literal: str) -> Optional[bool]:
    if isinstance(actual, bool):
        expected: Any = parse_value("boolean", literal)
    elif isinstance(actual, (int, float)):
        expected = float(literal)
    else:
        expected = literal
        actual = str(actual)
    if operator == "equal":
        return actual == expected
    if operator == "notEqual":
        return actual != expected
    if operator == "lessThan":
        return actual < expected
    if operator == "lessOrEqual":
        return actual <= expected
    if operator == "greaterThan":
        return actual > expected
    if operator == "greaterOrEqual":
        return actual >= expected
    raise PMMLError(f"Unsupported operator: {operator}")


_SIMPLE_OPERATORS = frozenset({
    "equal",
    "notEqual",
    "lessThan",
    "lessOrEqual",
    "greaterThan",
    "greaterOrEqual",
    "isMissing",
    "isNotMissing",
})


def compile_predicate(element: ET.Element) -> Predicate:
    """Compile one of the supported predicate elements."""
    tag = element.tag

    if tag == "True":
        return lambda ctx: True
    if tag == "False":
        return lambda ctx: False

    if tag == "SimplePredicate":
        field = element.get("field")
        operator = element.get("operator")
        literal = element.get("value")
        if operator not in _SIMPLE_OPERATORS:
            raise PMMLError(f"Unsupported operator: {operator}")
        if operator not in ("isMissing", "isNotMissing") and literal is None:
            raise PMMLError(f"SimplePredicate on {field} needs a value")

        def simple(ctx: Context) -> Optional[bool]:
            actual = ctx.get(field)
            if operator == "isMissing":
                return actual is None
            if operator == "isNotMissing":
                return actual is not None
            if actual is None:
                return None
            return _compare(operator, actual, literal)
        return simple

    if tag == "CompoundPredicate":
        boolean_operator = element.get("booleanOperator")
        parts = [compile_predicate(item) for item in element if item.tag in PREDICATE_TAGS]
        if not parts:
            raise PMMLError("CompoundPredicate without predicates")

        if boolean_operator == "and":
            return lambda ctx: _and([p(ctx) for p in parts])
        if boolean_operator == "or":
            return lambda ctx: _or([p(ctx) for p in parts])
        if boolean_operator == "xor":
            def xor(ctx: Context) -> Optional[bool]:
                values = [p(ctx) for p in parts]
                if any(v is None for v in values):
                    return None
                return sum(bool(v) for v in values) % 2 == 1
            return xor
        if boolean_operator == "surrogate":
            def surrogate(ctx: Context) -> Optional[bool]:
                for part in parts:
                    value = part(ctx)
                    if value is not None:
                        return value
                return None
            return surrogate
        raise PMMLError(f"Unsupported booleanOperator: {boolean_operator}")

    if tag == "SimpleSetPredicate":
        field = element.get("field")
        boolean_operator = element.get("booleanOperator")
        if boolean_operator not in ("isIn", "isNotIn"):
            raise PMMLError(f"Unsupported booleanOperator: {boolean_operator}")
        array = next((item for item in element if item.tag == "Array"), None)
        if array is None:
            raise PMMLError(f"SimpleSetPredicate on {field} without Array")
        items = shlex.split(array.text or "")
        numeric = array.get("type") in ("int", "real")
        members = {float(i) for i in items} if numeric else set(items)

        def set_predicate(ctx: Context) -> Optional[bool]:
            actual = ctx.get(field)
            if actual is None:
                return None
            key = float(actual) if numeric else str(actual)
            return (key in members) == (boolean_operator == "isIn")
        return set_predicate

    raise PMMLError(f"Unsupported predicate: {tag}")


def first_predicate(element: ET.Element) -> Predicate:
    """Compile the first predicate child of ``element``."""
    for item in element:
        if item.tag in PREDICATE_TAGS:
            return compile_predicate(item)
    raise PMMLError(f"{element.tag} without predicate")


def compile_derived_fields(container: Optional[ET.Element]) -> List[tuple]:
    """Compile ``DerivedField`` children into ``(name, data_type, expression)``."""
    if container is None:
        return []
    derived = []
    for field in container:
        if field.tag != "DerivedField":
            continue
        expression = next((item for item in field if item.tag in EXPRESSION_TAGS), None)
        if expression is None:
            raise PMMLError(f"DerivedField {field.get('name')} without supported expression")
        derived.append((field.get("name"), field.get("dataType"), compile_expression(expression)))
    return derived
