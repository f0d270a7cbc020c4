"""Adapter scoring externally produced PMML models.

PMML models are load-only: ``train`` always fails and ``predict`` decodes the
document once per call, then scores each input row against it.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from mlcommons.common.exceptions import CorruptModelError, SchemaViolationError, UnsupportedOperationError
from mlcommons.dataframe import ColumnMeta, ColumnType, DataFrame, column_value_of, load_rows
from mlcommons.engine.algorithms.base import MLAlgorithm
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameter
from mlcommons.pmml import PMMLError, PMMLScorer, load_scorer

logger = structlog.get_logger("algorithms.pmml")

# PMML dataType -> output column type
PMML_COLUMN_TYPES = {
    "string": ColumnType.STRING,
    "integer": ColumnType.INTEGER,
    "float": ColumnType.FLOAT,
    "double": ColumnType.DOUBLE,
    "boolean": ColumnType.BOOLEAN,
}


class PMMLModel(MLAlgorithm):
    """Score rows with a PMML document carried in ``Model.content``.

    Parameters
    - decoder: Turns model content into a scorer; defaults to ``load_scorer``
    """

    name = "pmml"
    model_name = "PMML"
    description = "Scores externally trained PMML models"
    trainable = False

    def __init__(self, decoder: Optional[Callable[[bytes], PMMLScorer]] = None):
        self.decoder = decoder or load_scorer

    def train(self, parameters: Optional[Iterable[MLParameter]], data_frame: DataFrame) -> Model:
        raise UnsupportedOperationError("Unsupported train: PMML custom models")

    def predict(
        self,
        data_frame: DataFrame,
        model: Optional[Model],
        parameters: Optional[Iterable[MLParameter]] = None,
    ) -> DataFrame:
        model = self._require_model(model)
        data_frame = self._require_data(data_frame, "prediction")
        scorer = self._decode(model.content)

        names = data_frame.column_names()
        missing = [field for field in scorer.input_fields if field not in names]
        if missing:
            raise SchemaViolationError(f"Missing input columns for PMML model: {', '.join(missing)}")

        results: List[Dict[str, Any]] = []
        for record in data_frame.to_records():
            try:
                results.append(scorer.evaluate(record))
            except (PMMLError, ValueError, TypeError) as e:
                raise SchemaViolationError(f"Cannot score row with PMML model: {e}") from e

        output_metas = [
            ColumnMeta(field, self._column_type(field, data_type, results))
            for field, data_type in scorer.result_fields
        ]
        rows = [[self._output(meta, result.get(meta.name)) for meta in output_metas] for result in results]

        logger.debug("Scored rows with PMML model", model=model.name, rows=len(rows))
        return load_rows(output_metas, rows)

    def _decode(self, content: bytes) -> PMMLScorer:
        try:
            return self.decoder(content)
        except (PMMLError, ValueError, TypeError) as e:
            raise CorruptModelError(f"Invalid PMML model content: {e}") from e

    @staticmethod
    def _column_type(field: str, data_type: Optional[str], results: List[Dict[str, Any]]) -> ColumnType:
        if data_type in PMML_COLUMN_TYPES:
            return PMML_COLUMN_TYPES[data_type]
        types = (column_value_of(result.get(field)).column_type() for result in results)
        return next((t for t in types if t is not ColumnType.NULL), ColumnType.STRING)

    @staticmethod
    def _output(meta: ColumnMeta, value: Any) -> Any:
        if value is None:
            return None
        if meta.column_type is ColumnType.STRING:
            return str(value)
        return value
