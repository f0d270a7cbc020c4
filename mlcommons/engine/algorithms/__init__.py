"""Local algorithms: k-means, linear regression and the PMML scorer adapter."""

from mlcommons.engine.algorithms.base import AlgoParam, MLAlgorithm
from mlcommons.engine.algorithms.kmeans import KMeans
from mlcommons.engine.algorithms.linear_regression import LinearRegression
from mlcommons.engine.algorithms.pmml_model import PMMLModel

__all__ = [
    "AlgoParam",
    "KMeans",
    "LinearRegression",
    "MLAlgorithm",
    "PMMLModel",
]
