"""Tests for scoring PMML models."""

import pytest

from mlcommons.common.exceptions import (
    CorruptModelError,
    MissingModelError,
    SchemaViolationError,
    UnsupportedOperationError,
)
from mlcommons.dataframe import ColumnType, load
from mlcommons.engine import MLEngine
from mlcommons.engine.algorithms import PMMLModel
from mlcommons.engine.model import Model
from mlcommons.pmml import PMMLError, load_scorer
from tests.helpers import PMML_EXPECTED, pmml_data_frame


def test_isolation_forest_scores(pmml_model):
    """Test an IsolationForest document scores as its exporter does."""
    predictions = PMMLModel().predict(pmml_data_frame(), pmml_model)
    assert predictions.size() == 4
    assert predictions.column_names() == ["decisionFunction", "outlier"]
    assert [meta.column_type for meta in predictions.column_metas] == [ColumnType.DOUBLE, ColumnType.BOOLEAN]

    for row, (decision, outlier) in zip(predictions, PMML_EXPECTED):
        assert row.get_value(0).double_value() == pytest.approx(decision, abs=1e-9)
        assert row.get_value(1).boolean_value() is outlier


def test_scorer_fields(pmml_content):
    """Test the scorer exposes inputs and final results only."""
    scorer = load_scorer(pmml_content)
    assert scorer.input_fields == ["x1"]
    assert scorer.result_fields == [("decisionFunction", "double"), ("outlier", "boolean")]
    results = scorer.evaluate({"x1": 3.5})
    assert results["outlier"] is True


def test_extra_input_columns_are_ignored(pmml_model):
    """Test columns the document does not use are ignored."""
    frame = load([{"x1": 0.0, "note": "a"}, {"x1": 3.5, "note": "b"}])
    predictions = PMMLModel().predict(frame, pmml_model)
    outliers = [row.get_value(1).boolean_value() for row in predictions]
    assert outliers == [False, True]


def test_train_is_unsupported():
    """Test PMML models cannot be trained."""
    with pytest.raises(UnsupportedOperationError, match="Unsupported train: PMML custom models"):
        PMMLModel().train(None, pmml_data_frame())


def test_predict_without_model():
    """Test scoring needs a model document."""
    with pytest.raises(MissingModelError, match="No model found for pmml prediction."):
        PMMLModel().predict(pmml_data_frame(), None)
    with pytest.raises(MissingModelError, match="No model found for pmml prediction."):
        MLEngine().predict("pmml", None, pmml_data_frame(), None)


def test_missing_input_column(pmml_model):
    """Test a frame without the document inputs is rejected."""
    with pytest.raises(SchemaViolationError):
        PMMLModel().predict(load([{"x2": 1.0}]), pmml_model)


def test_corrupt_content():
    """Test malformed documents are reported as corrupt models."""
    model = Model(name="broken", version=1, algorithm="pmml", content=b"<PMML><unclosed></PMML>")
    with pytest.raises(CorruptModelError):
        PMMLModel().predict(pmml_data_frame(), model)

    with pytest.raises(PMMLError):
        load_scorer(b"")


def test_entity_declarations_are_rejected(pmml_content):
    """Test documents carrying a DTD are refused."""
    content = b'<?xml version="1.0"?>\n<!DOCTYPE PMML [<!ENTITY x "y">]>\n' + pmml_content.split(b"?>", 1)[1]
    with pytest.raises(PMMLError):
        load_scorer(content)
    model = Model(name="dtd", version=1, algorithm="pmml", content=content)
    with pytest.raises(CorruptModelError):
        PMMLModel().predict(pmml_data_frame(), model)


def test_custom_decoder(pmml_model):
    """Test an injected decoder replaces the built-in one."""
    calls = []

    def decoder(content):
        calls.append(content)
        return load_scorer(content)

    PMMLModel(decoder=decoder).predict(pmml_data_frame(), pmml_model)
    assert calls == [pmml_model.content]


UNTYPED_OUTPUT_PMML = b"""<?xml version="1.0" encoding="UTF-8"?>
<PMML xmlns="http://www.dmg.org/PMML-4_4" version="4.4">
  <DataDictionary>
    <DataField name="x" optype="continuous" dataType="double"/>
    <DataField name="y" optype="continuous" dataType="double"/>
  </DataDictionary>
  <RegressionModel functionName="regression">
    <MiningSchema>
      <MiningField name="x"/>
      <MiningField name="y" usageType="target"/>
    </MiningSchema>
    <Output>
      <OutputField name="predicted_y" feature="predictedValue"/>
      <OutputField name="bucket" feature="transformedValue">
        <Constant dataType="integer">7</Constant>
      </OutputField>
    </Output>
    <RegressionTable intercept="1">
      <NumericPredictor name="x" coefficient="2"/>
    </RegressionTable>
  </RegressionModel>
</PMML>
"""


def test_output_fields_without_data_type():
    """Test untyped outputs take the target type or the type of their values."""
    scorer = load_scorer(UNTYPED_OUTPUT_PMML)
    assert scorer.result_fields == [("predicted_y", "double"), ("bucket", None)]

    model = Model(name="regression", version=1, algorithm="pmml", content=UNTYPED_OUTPUT_PMML)
    predictions = PMMLModel().predict(load([{"x": 1.0}, {"x": 2.0}]), model)
    assert [meta.column_type for meta in predictions.column_metas] == [ColumnType.DOUBLE, ColumnType.INTEGER]
    assert [row.get_value(0).double_value() for row in predictions] == [3.0, 5.0]
    assert [row.get_value(1).int_value() for row in predictions] == [7, 7]
