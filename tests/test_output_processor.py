"""Tests for response normalization and tensor containers."""

import json

import pytest

from mlcommons.connector import ConnectorOutputProcessor, HttpConnector, MLResultDataType, ModelTensors
from mlcommons.connector.processors import (
    COHERE_EMBEDDING_POST_PROCESS,
    COHERE_EMBEDDING_PRE_PROCESS,
    DEFAULT_EMBEDDING_POST_PROCESS,
    OPENAI_EMBEDDING_POST_PROCESS,
)
from mlcommons.dataframe import load


class StaticScriptService:
    """Script service returning a canned result."""

    def __init__(self, output):
        self.output = output
        self.calls = []

    def execute(self, script, params):
        self.calls.append((script, params))
        return json.dumps(self.output)


def _connector(post=None, pre=None) -> HttpConnector:
    return HttpConnector(
        name="test",
        predict_endpoint="https://api.openai.com/v1/embeddings",
        pre_process_function=pre,
        post_process_function=post,
    )


def test_openai_embeddings_are_ordered_by_index():
    """Test openai items are returned in index order."""
    body = json.dumps({"data": [
        {"index": 1, "embedding": [2.0, 2.5]},
        {"index": 0, "embedding": [1.0, 1.5]},
    ]})
    tensors = ConnectorOutputProcessor().process(body, _connector(OPENAI_EMBEDDING_POST_PROCESS), {}, 200)
    assert [tensor.data for tensor in tensors.ml_model_tensors] == [[1.0, 1.5], [2.0, 2.5]]
    assert tensors.ml_model_tensors[0].data_type is MLResultDataType.FLOAT32
    assert tensors.status_code == 200


def test_cohere_and_default_embeddings():
    """Test the other built-in post-process functions."""
    processor = ConnectorOutputProcessor()
    cohere = processor.process('{"embeddings": [[1, 2]]}', _connector(COHERE_EMBEDDING_POST_PROCESS), {})
    assert cohere.ml_model_tensors[0].data == [1.0, 2.0]

    single = processor.process('{"embedding": [3, 4]}', _connector(DEFAULT_EMBEDDING_POST_PROCESS), {})
    assert [tensor.data for tensor in single.ml_model_tensors] == [[3.0, 4.0]]

    listed = processor.process("[[5], [6]]", _connector(DEFAULT_EMBEDDING_POST_PROCESS), {})
    assert len(listed.ml_model_tensors) == 2

    with pytest.raises(ValueError):
        processor.process('{"embeddings": "nope"}', _connector(COHERE_EMBEDDING_POST_PROCESS), {})


def test_raw_responses_without_post_process():
    """Test JSON goes into a map and other text is kept verbatim."""
    processor = ConnectorOutputProcessor()
    mapped = processor.process('{"answer": 42}', _connector(), {}, 200).to_dict()
    assert mapped == {"output": [{"name": "response", "dataAsMap": {"answer": 42}}], "status_code": 200}

    wrapped = processor.process("[1, 2]", _connector(), {}).ml_model_tensors[0]
    assert wrapped.data_as_map == {"response": [1, 2]}

    text = processor.process("plain text", _connector(), {}).ml_model_tensors[0]
    assert text.result == "plain text"
    assert text.data_as_map is None


def test_scripted_post_process():
    """Test non built-in functions run through the script service."""
    service = StaticScriptService([[0.5, 0.25]])
    processor = ConnectorOutputProcessor(script_service=service)
    tensors = processor.process('{"v": 1}', _connector("return params.response.v"), {"model": "m"})
    assert tensors.ml_model_tensors[0].data == [0.5, 0.25]
    script, params = service.calls[0]
    assert script == "return params.response.v"
    assert params == {"response": {"v": 1}, "parameters": {"model": "m"}}

    mapped = ConnectorOutputProcessor(StaticScriptService({"label": "positive"}))
    tensor = mapped.process("{}", _connector("script"), {}).ml_model_tensors[0]
    assert tensor.data_as_map == {"label": "positive"}


def test_script_without_service():
    """Test scripted connectors need a script service."""
    with pytest.raises(ValueError):
        ConnectorOutputProcessor().process("{}", _connector("script"), {})


def test_pre_process():
    """Test built-in and scripted pre-process functions."""
    processor = ConnectorOutputProcessor()
    assert processor.pre_process(["a"], _connector()) == {"input": ["a"]}
    assert processor.pre_process(["a"], _connector(pre=COHERE_EMBEDDING_PRE_PROCESS)) == {"texts": ["a"]}

    scripted = ConnectorOutputProcessor(StaticScriptService({"parameters": {"prompt": "a"}}))
    assert scripted.pre_process(["a"], _connector(pre="script")) == {"prompt": "a"}

    with pytest.raises(ValueError):
        ConnectorOutputProcessor(StaticScriptService([1])).pre_process(["a"], _connector(pre="script"))


def test_tensors_from_data_frame():
    """Test local predictions convert to one tensor per column."""
    frame = load([{"ClusterID": 0, "score": 0.5}, {"ClusterID": 1, "score": 1.5}])
    tensors = ModelTensors.from_data_frame(frame).to_dict()
    assert tensors == {"output": [
        {"name": "ClusterID", "data_type": "INT32", "shape": [2], "data": [0, 1]},
        {"name": "score", "data_type": "FLOAT64", "shape": [2], "data": [0.5, 1.5]},
    ]}
