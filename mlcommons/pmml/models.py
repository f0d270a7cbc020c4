"""Evaluators for the supported PMML model elements."""

import math
import statistics
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, List, Optional

from mlcommons.pmml.document import PMMLError, child, children, coerce_value, parse_value
from mlcommons.pmml.expressions import (
    Context,
    Predicate,
    PREDICATE_TAGS,
    compile_derived_fields,
    first_predicate,
)

MODEL_TAGS = frozenset({"TreeModel", "RegressionModel", "MiningModel"})


class ModelEvaluator(ABC):
    """Evaluates one model element against a field context."""

    def __init__(self, element: ET.Element):
        self.function_name = element.get("functionName", "regression")
        self.active_fields: List[str] = []
        self.target_field: Optional[str] = None
        schema = child(element, "MiningSchema")
        if schema is None:
            raise PMMLError(f"{element.tag} without MiningSchema")
        for field in children(schema, "MiningField"):
            usage = field.get("usageType", "active")
            if usage == "active":
                self.active_fields.append(field.get("name"))
            elif usage in ("target", "predicted") and self.target_field is None:
                self.target_field = field.get("name")
        self.local_transformations = compile_derived_fields(child(element, "LocalTransformations"))

    def evaluate(self, ctx: Context) -> Any:
        """Apply local transformations, then score."""
        if self.local_transformations:
            ctx = dict(ctx)
            for name, data_type, expression in self.local_transformations:
                ctx[name] = coerce_value(data_type, expression(ctx))
        return self._score(ctx)

    @abstractmethod
    def _score(self, ctx: Context) -> Any:
        ...

    def _parse_score(self, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        if self.function_name == "regression":
            return parse_value("double", raw)
        return raw


class _Node:
    __slots__ = ("predicate", "score", "children")

    def __init__(self, predicate: Predicate, score: Any, children: List["_Node"]):
        self.predicate = predicate
        self.score = score
        self.children = children


class TreeModelEvaluator(ModelEvaluator):
    """Decision tree with ``noTrueChildStrategy`` and ``missingValueStrategy``."""

    def __init__(self, element: ET.Element):
        super().__init__(element)
        self.no_true_child_strategy = element.get("noTrueChildStrategy", "returnNullPrediction")
        self.missing_value_strategy = element.get("missingValueStrategy", "none")
        if self.no_true_child_strategy not in ("returnNullPrediction", "returnLastPrediction"):
            raise PMMLError(f"Unsupported noTrueChildStrategy: {self.no_true_child_strategy}")
        if self.missing_value_strategy not in ("none", "nullPrediction", "lastPrediction"):
            raise PMMLError(f"Unsupported missingValueStrategy: {self.missing_value_strategy}")
        root = child(element, "Node")
        if root is None:
            raise PMMLError("TreeModel without Node")
        self.root = self._compile_node(root)

    def _compile_node(self, element: ET.Element) -> _Node:
        return _Node(
            predicate=first_predicate(element),
            score=self._parse_score(element.get("score")),
            children=[self._compile_node(item) for item in children(element, "Node")],
        )

    def _score(self, ctx: Context) -> Any:
        if not self.root.predicate(ctx):
            return None
        node = self.root
        while node.children:
            selected = None
            for candidate in node.children:
                matched = candidate.predicate(ctx)
                if matched is None:
                    if self.missing_value_strategy == "nullPrediction":
                        return None
                    if self.missing_value_strategy == "lastPrediction":
                        return node.score
                    continue
                if matched:
                    selected = candidate
                    break
            if selected is None:
                if self.no_true_child_strategy == "returnLastPrediction":
                    return node.score
                return None
            node = selected
        return node.score


class RegressionModelEvaluator(ModelEvaluator):
    """Linear regression table (``functionName="regression"`` only)."""

    def __init__(self, element: ET.Element):
        super().__init__(element)
        if self.function_name != "regression":
            raise PMMLError("Only regression RegressionModel is supported")
        self.normalization = element.get("normalizationMethod", "none")
        if self.normalization not in ("none", "exp", "logit"):
            raise PMMLError(f"Unsupported normalizationMethod: {self.normalization}")
        table = child(element, "RegressionTable")
        if table is None:
            raise PMMLError("RegressionModel without RegressionTable")
        self.intercept = float(table.get("intercept", "0"))
        self.numeric = [
            (p.get("name"), float(p.get("coefficient")), float(p.get("exponent", "1")))
            for p in children(table, "NumericPredictor")
        ]
        self.categorical = [
            (p.get("name"), p.get("value"), float(p.get("coefficient")))
            for p in children(table, "CategoricalPredictor")
        ]

    def _score(self, ctx: Context) -> Any:
        result = self.intercept
        for name, coefficient, exponent in self.numeric:
            value = ctx.get(name)
            if value is None:
                return None
            result += coefficient * math.pow(float(value), exponent)
        for name, category, coefficient in self.categorical:
            value = ctx.get(name)
            if value is None:
                return None
            if str(value) == category:
                result += coefficient
        if self.normalization == "exp":
            return math.exp(result)
        if self.normalization == "logit":
            return 1.0 / (1.0 + math.exp(-result))
        return result


class MiningModelEvaluator(ModelEvaluator):
    """Segmented ensemble combining its segments' predictions."""

    _METHODS = frozenset({
        "average",
        "weightedAverage",
        "sum",
        "median",
        "max",
        "min",
        "majorityVote",
        "weightedMajorityVote",
        "selectFirst",
    })

    def __init__(self, element: ET.Element):
        super().__init__(element)
        segmentation = child(element, "Segmentation")
        if segmentation is None:
            raise PMMLError("MiningModel without Segmentation")
        self.method = segmentation.get("multipleModelMethod")
        if self.method not in self._METHODS:
            raise PMMLError(f"Unsupported multipleModelMethod: {self.method}")
        self.segments = []
        for segment in children(segmentation, "Segment"):
            model = next((item for item in segment if item.tag in MODEL_TAGS), None)
            if model is None:
                raise PMMLError(f"Segment {segment.get('id')} without supported model")
            predicate = next((item for item in segment if item.tag in PREDICATE_TAGS), None)
            self.segments.append((
                first_predicate(segment) if predicate is not None else (lambda ctx: True),
                float(segment.get("weight", "1")),
                compile_model(model),
            ))

    def _score(self, ctx: Context) -> Any:
        results = []
        for predicate, weight, model in self.segments:
            if predicate(ctx) is not True:
                continue
            prediction = model.evaluate(ctx)
            if prediction is None:
                continue
            if self.method == "selectFirst":
                return prediction
            results.append((weight, prediction))
        if not results:
            return None

        values = [value for _, value in results]
        if self.method == "average":
            return math.fsum(values) / len(values)
        if self.method == "weightedAverage":
            total = math.fsum(w for w, _ in results)
            return math.fsum(w * v for w, v in results) / total if total else None
        if self.method == "sum":
            return math.fsum(values)
        if self.method == "median":
            return statistics.median(values)
        if self.method == "max":
            return max(values)
        if self.method == "min":
            return min(values)
        votes: Dict[Any, float] = Counter()
        for weight, value in results:
            votes[value] += weight if self.method == "weightedMajorityVote" else 1
        best = max(votes.values())
        return next(value for value in values if votes[value] == best)


def compile_model(element: ET.Element) -> ModelEvaluator:
    """Build the evaluator for a model element."""
    if element.tag == "TreeModel":
        return TreeModelEvaluator(element)
    if element.tag == "RegressionModel":
        return RegressionModelEvaluator(element)
    if element.tag == "MiningModel":
        return MiningModelEvaluator(element)
    raise PMMLError(f"Unsupported model: {element.tag}")
