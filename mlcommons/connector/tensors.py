"""Tensor containers shared by local predictions and remote invocations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from mlcommons.dataframe import ColumnType, DataFrame


class MLResultDataType(Enum):
    FLOAT32 = "FLOAT32"
    FLOAT64 = "FLOAT64"
    INT32 = "INT32"
    INT64 = "INT64"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    UNKNOWN = "UNKNOWN"


COLUMN_RESULT_TYPES = {
    ColumnType.SHORT: MLResultDataType.INT32,
    ColumnType.INTEGER: MLResultDataType.INT32,
    ColumnType.LONG: MLResultDataType.INT64,
    ColumnType.FLOAT: MLResultDataType.FLOAT32,
    ColumnType.DOUBLE: MLResultDataType.FLOAT64,
    ColumnType.BOOLEAN: MLResultDataType.BOOLEAN,
    ColumnType.STRING: MLResultDataType.STRING,
}


@dataclass
class ModelTensor:
    """Named result of a model invocation.

    Numeric results use ``data``/``shape``/``data_type``; free-form results
    use ``result`` (text) or ``data_as_map`` (parsed JSON).
    """
    name: str
    data: Optional[List[Any]] = None
    shape: Optional[List[int]] = None
    data_type: Optional[MLResultDataType] = None
    result: Optional[str] = None
    data_as_map: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        output: Dict[str, Any] = {"name": self.name}
        if self.data_type is not None:
            output["data_type"] = self.data_type.value
        if self.shape is not None:
            output["shape"] = list(self.shape)
        if self.data is not None:
            output["data"] = list(self.data)
        if self.result is not None:
            output["result"] = self.result
        if self.data_as_map is not None:
            output["dataAsMap"] = self.data_as_map
        return output


@dataclass
class ModelTensors:
    """Tensors produced by one invocation, with the remote status code if any."""
    ml_model_tensors: List[ModelTensor] = field(default_factory=list)
    status_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        output: Dict[str, Any] = {"output": [tensor.to_dict() for tensor in self.ml_model_tensors]}
        if self.status_code is not None:
            output["status_code"] = self.status_code
        return output

    @classmethod
    def from_data_frame(cls, data_frame: DataFrame) -> "ModelTensors":
        """One tensor per column, holding the column's values in row order."""
        tensors = []
        for index, meta in enumerate(data_frame.column_metas):
            values = [row.get_value(index).value for row in data_frame]
            tensors.append(ModelTensor(
                name=meta.name,
                data=values,
                shape=[len(values)],
                data_type=COLUMN_RESULT_TYPES.get(meta.column_type, MLResultDataType.UNKNOWN),
            ))
        return cls(ml_model_tensors=tensors)


@dataclass
class ModelTensorOutput:
    """Aggregated output of a prediction."""
    ml_model_outputs: List[ModelTensors] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"inference_results": [tensors.to_dict() for tensors in self.ml_model_outputs]}


def embedding_tensors(embeddings: Sequence[Sequence[float]], name: str = "sentence_embedding") -> List[ModelTensor]:
    """One ``FLOAT32`` tensor per embedding vector."""
    return [
        ModelTensor(
            name=name,
            data=[float(value) for value in vector],
            shape=[len(vector)],
            data_type=MLResultDataType.FLOAT32,
        )
        for vector in embeddings
    ]
