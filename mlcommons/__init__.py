"""Machine-learning execution core for the search platform plugin.

Subpackages:
- ``mlcommons.common``: configuration, logging, errors, metrics, and secrets.
- ``mlcommons.dataframe``: typed tabular values used for training and prediction.
- ``mlcommons.parameter``: typed algorithm parameters.
- ``mlcommons.pmml``: scorer for externally produced PMML documents.
- ``mlcommons.engine``: algorithm registry, local algorithms, and the dispatcher.
- ``mlcommons.connector``: connectors and executors for remotely hosted models.

Usage:
- from mlcommons.engine import MLEngine
- from mlcommons.connector import HttpConnector, create_connector_executor
"""

__version__ = "0.1.0"
