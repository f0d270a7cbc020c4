"""Scorer for externally produced PMML documents.

Models in this format are produced elsewhere (e.g. by a JPMML converter) and
are only ever scored here. ``load_scorer`` turns document bytes into a
``PMMLScorer``; every failure surfaces as ``PMMLError``.
"""

from mlcommons.pmml.document import PMMLError, parse_document
from mlcommons.pmml.scorer import OutputFieldSpec, PMMLScorer, load_scorer

__all__ = [
    "OutputFieldSpec",
    "PMMLError",
    "PMMLScorer",
    "load_scorer",
    "parse_document",
]
