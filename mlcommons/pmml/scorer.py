"""In-memory scorer for a decoded PMML document."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from mlcommons.pmml.document import PMMLError, child, children, coerce_value, parse_document
from mlcommons.pmml.expressions import Expression, EXPRESSION_TAGS, compile_derived_fields, compile_expression
from mlcommons.pmml.models import MODEL_TAGS, ModelEvaluator, compile_model

logger = structlog.get_logger("pmml.scorer")


@dataclass(frozen=True)
class OutputFieldSpec:
    """Declared result field of a scorer."""
    name: str
    data_type: Optional[str]
    is_final_result: bool = True
    expression: Optional[Expression] = None


class PMMLScorer:
    """Scores records against the first supported model of a PMML document.

    Parameters
    - root: Parsed ``PMML`` element (see ``parse_document``)

    Construction compiles every expression, predicate and model up front, so
    unsupported constructs fail at decode time rather than per row.
    """

    def __init__(self, root: ET.Element):
        dictionary = child(root, "DataDictionary")
        self.data_fields: Dict[str, Optional[str]] = {
            field.get("name"): field.get("dataType")
            for field in (children(dictionary, "DataField") if dictionary is not None else [])
        }
        self.derived_fields = compile_derived_fields(child(root, "TransformationDictionary"))

        model_element = next((item for item in root if item.tag in MODEL_TAGS), None)
        if model_element is None:
            raise PMMLError("PMML document has no supported model")
        self.algorithm_name = model_element.get("algorithmName")
        self.model: ModelEvaluator = compile_model(model_element)
        self.outputs = self._compile_outputs(child(model_element, "Output"))

    def _compile_outputs(self, output: Optional[ET.Element]) -> List[OutputFieldSpec]:
        if output is None:
            target = self.model.target_field or "predicted"
            return [OutputFieldSpec(name=target, data_type=self._predicted_data_type())]

        specs = []
        for field in children(output, "OutputField"):
            feature = field.get("feature", "predictedValue")
            expression = None
            if feature == "transformedValue":
                element = next((item for item in field if item.tag in EXPRESSION_TAGS), None)
                if element is None:
                    raise PMMLError(f"OutputField {field.get('name')} without expression")
                expression = compile_expression(element)
            elif feature != "predictedValue":
                raise PMMLError(f"Unsupported output feature: {feature}")
            data_type = field.get("dataType")
            if data_type is None and expression is None:
                data_type = self._predicted_data_type()
            specs.append(OutputFieldSpec(
                name=field.get("name"),
                data_type=data_type,
                is_final_result=field.get("isFinalResult", "true") != "false",
                expression=expression,
            ))
        return specs

    def _predicted_data_type(self) -> str:
        return self.data_fields.get(self.model.target_field) or (
            "double" if self.model.function_name == "regression" else "string"
        )

    @property
    def input_fields(self) -> List[str]:
        """Names of the fields a record must provide."""
        return list(self.model.active_fields)

    @property
    def result_fields(self) -> List[Tuple[str, Optional[str]]]:
        """``(name, dataType)`` of every returned field, in declared order."""
        return [(spec.name, spec.data_type) for spec in self.outputs if spec.is_final_result]

    def evaluate(self, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """Score one record.

        Parameters
        - arguments: Mapping of input field name to raw value; absent or
          ``None`` values are treated as missing

        Returns
        - Ordered mapping of result field name to value
        """
        ctx: Dict[str, Any] = {}
        for name in self.model.active_fields:
            ctx[name] = coerce_value(self.data_fields.get(name), arguments.get(name))
        for name, data_type, expression in self.derived_fields:
            ctx[name] = coerce_value(data_type, expression(ctx))

        prediction = self.model.evaluate(ctx)

        results: Dict[str, Any] = {}
        for spec in self.outputs:
            value = prediction if spec.expression is None else spec.expression(ctx)
            value = coerce_value(spec.data_type, value)
            ctx[spec.name] = value
            if spec.is_final_result:
                results[spec.name] = value
        return results


def load_scorer(content: bytes) -> PMMLScorer:
    """Decode PMML bytes into a ready-to-use scorer."""
    scorer = PMMLScorer(parse_document(content))
    logger.debug(
        "Decoded PMML document",
        algorithm=scorer.algorithm_name,
        inputs=scorer.input_fields,
        outputs=[name for name, _ in scorer.result_fields],
    )
    return scorer
