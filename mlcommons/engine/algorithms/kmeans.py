"""K-means clustering.

Centroids are seeded with k-means++ and refined with Lloyd iterations under
the configured distance. The learned state (centroids and distance) is stored
as an ``.npz`` archive in ``Model.content``.
"""

import io
import zipfile
from typing import Dict, Iterable, Optional

import numpy as np
import structlog
from sklearn.cluster import kmeans_plusplus
from sklearn.metrics import pairwise_distances

from mlcommons.common.exceptions import CorruptModelError, InvalidParameterError, SchemaViolationError
from mlcommons.dataframe import ColumnMeta, ColumnType, DataFrame, empty_data_frame, load_rows
from mlcommons.engine.algorithms.base import AlgoParam, MLAlgorithm, non_negative, one_of, positive
from mlcommons.engine.model import Model
from mlcommons.parameter import MLParameter, ParameterType

logger = structlog.get_logger("algorithms.kmeans")

SEED = "seed"
NUM_THREADS = "num_threads"
DISTANCE_TYPE = "distance_type"
ITERATIONS = "iterations"
K = "k"

CLUSTER_ID = "ClusterID"

# distance_type -> sklearn metric
DISTANCE_METRICS: Dict[int, str] = {
    0: "euclidean",
    1: "cosine",
    2: "manhattan",
}


class KMeans(MLAlgorithm):
    """Partition rows into ``k`` clusters."""

    name = "kmeans"
    model_name = "KMeans"
    description = "K-means clustering with k-means++ seeding"
    parameter_specs = (
        AlgoParam(SEED, ParameterType.LONG, "Random seed for centroid initialisation", 1),
        AlgoParam(NUM_THREADS, ParameterType.INTEGER, "Worker threads for distance computation", 1, check=positive),
        AlgoParam(
            DISTANCE_TYPE,
            ParameterType.INTEGER,
            "Distance: 0 euclidean, 1 cosine, 2 L1",
            0,
            check=one_of(*DISTANCE_METRICS),
        ),
        AlgoParam(ITERATIONS, ParameterType.INTEGER, "Maximum refinement rounds", 10, check=non_negative),
        AlgoParam(K, ParameterType.INTEGER, "Number of clusters", 2, check=positive),
    )

    def train(self, parameters: Optional[Iterable[MLParameter]], data_frame: DataFrame) -> Model:
        params = self.resolve_parameters(parameters)
        data_frame = self._require_data(data_frame, "training")
        features = self._features(data_frame)

        k = params[K]
        if features.shape[0] < k:
            raise InvalidParameterError(
                f"Parameter {K} must not exceed the number of rows: {k} > {features.shape[0]}"
            )
        metric = DISTANCE_METRICS[params[DISTANCE_TYPE]]
        seed = params[SEED] % (1 << 32)

        centroids, _ = kmeans_plusplus(features, n_clusters=k, random_state=seed)
        rounds = 0
        for rounds in range(1, params[ITERATIONS] + 1):
            labels = self._assign(features, centroids, metric, params[NUM_THREADS])
            updated = centroids.copy()
            for cluster in range(k):
                members = features[labels == cluster]
                # empty clusters keep their previous centroid
                if len(members):
                    updated[cluster] = members.mean(axis=0)
            converged = np.allclose(updated, centroids)
            centroids = updated
            if converged:
                break

        logger.info(
            "Trained KMeans model",
            rows=features.shape[0],
            features=features.shape[1],
            k=k,
            metric=metric,
            rounds=rounds,
        )
        return Model(
            name=self.model_name,
            version=1,
            algorithm=self.name,
            content=self._serialize(centroids, params[DISTANCE_TYPE]),
            format="npz",
        )

    def predict(
        self,
        data_frame: DataFrame,
        model: Optional[Model],
        parameters: Optional[Iterable[MLParameter]] = None,
    ) -> DataFrame:
        model = self._require_model(model)
        data_frame = self._require_data(data_frame, "prediction")
        centroids, distance_type = self._deserialize(model.content)
        params = self.resolve_parameters(parameters)

        output_metas = [ColumnMeta(CLUSTER_ID, ColumnType.INTEGER)]
        if data_frame.size() == 0:
            return empty_data_frame(output_metas)

        features = self._features(data_frame)
        if features.shape[1] != centroids.shape[1]:
            raise SchemaViolationError(
                f"KMeans model expects {centroids.shape[1]} columns, got {features.shape[1]}"
            )
        labels = self._assign(features, centroids, DISTANCE_METRICS[distance_type], params[NUM_THREADS])
        return load_rows(output_metas, ([int(label)] for label in labels))

    @staticmethod
    def _features(data_frame: DataFrame) -> np.ndarray:
        features = data_frame.to_numpy()
        if features.shape[1] == 0:
            raise SchemaViolationError("KMeans needs at least one numeric column")
        if np.isnan(features).any():
            raise SchemaViolationError("KMeans does not accept null values")
        return features

    @staticmethod
    def _assign(features: np.ndarray, centroids: np.ndarray, metric: str, n_jobs: int) -> np.ndarray:
        distances = pairwise_distances(features, centroids, metric=metric, n_jobs=n_jobs)
        # argmin resolves ties to the lowest cluster index
        return np.argmin(distances, axis=1)

    @staticmethod
    def _serialize(centroids: np.ndarray, distance_type: int) -> bytes:
        buffer = io.BytesIO()
        np.savez(buffer, centroids=centroids, distance_type=np.int64(distance_type))
        return buffer.getvalue()

    @staticmethod
    def _deserialize(content: bytes):
        try:
            with np.load(io.BytesIO(content), allow_pickle=False) as archive:
                centroids = np.asarray(archive["centroids"], dtype=np.float64)
                distance_type = int(archive["distance_type"])
        except (ValueError, KeyError, OSError, EOFError, zipfile.BadZipFile) as e:
            raise CorruptModelError(f"Invalid KMeans model content: {e}") from e
        if centroids.ndim != 2 or distance_type not in DISTANCE_METRICS:
            raise CorruptModelError("Invalid KMeans model content")
        return centroids, distance_type
