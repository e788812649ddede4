"""
Stability measures.

Each feature is removed in turn, the data is re-clustered, and the result is
compared with the clustering of the full data:
- APN: average proportion of observations not placed in the same cluster
- AD: average distance between observations placed in the same cluster
- ADM: average distance between cluster centres
- FOM: average within-cluster spread of the removed feature

All four are averaged over observations and removed features; lower is
better.
"""

from typing import Any, Dict, Optional

import numpy as np

from clustkit.core.base_clustering import SeedLike, spawn_generators
from clustkit.core.clustering_engine import ClusteringEngine
from clustkit.core.dataset import as_matrix
from clustkit.core.distance import DissimilarityMatrix, compute_distance
from clustkit.schemas.data_models import StabilityScores
from clustkit.utils.advanced_logging import PerformanceLogger, get_logger
from clustkit.utils.error_handling import InvalidDataError, check_k

logger = get_logger(__name__)


def _one_hot(labels: np.ndarray) -> np.ndarray:
    _, codes = np.unique(labels, return_inverse=True)
    encoded = np.zeros((len(labels), codes.max() + 1))
    encoded[np.arange(len(labels)), codes] = 1.0
    return encoded


def _cluster_means(X: np.ndarray, members: np.ndarray) -> np.ndarray:
    return (members.T @ X) / members.sum(axis=0)[:, None]


def _column_scores(
    X: np.ndarray,
    D: np.ndarray,
    full: np.ndarray,
    reduced: np.ndarray,
    column: int,
    k: int,
) -> Dict[str, float]:
    """APN, AD, ADM and FOM for one removed column."""
    n = X.shape[0]
    rows = np.arange(n)
    full_members = _one_hot(full)
    reduced_members = _one_hot(reduced)
    full_codes = full_members.argmax(axis=1)
    reduced_codes = reduced_members.argmax(axis=1)
    full_sizes = full_members.sum(axis=0)[full_codes]
    reduced_sizes = reduced_members.sum(axis=0)[reduced_codes]

    overlap = (full_members.T @ reduced_members)[full_codes, reduced_codes]
    apn = float(np.mean(1.0 - overlap / full_sizes))

    between = full_members.T @ D @ reduced_members
    ad = float(np.mean(between[full_codes, reduced_codes] / (full_sizes * reduced_sizes)))

    full_means = _cluster_means(X, full_members)
    reduced_means = _cluster_means(X, reduced_members)
    adm = float(
        np.mean(
            np.linalg.norm(full_means[full_codes] - reduced_means[reduced_codes], axis=1)
        )
    )

    removed = X[:, column]
    removed_means = _cluster_means(removed[:, None], reduced_members)[:, 0]
    spread = np.sum((removed - removed_means[reduced_codes]) ** 2) / n
    fom = float(np.sqrt(spread) * np.sqrt(n / (n - k)))

    return {"apn": apn, "ad": ad, "adm": adm, "fom": fom}


def stability_measures(
    data: Any,
    k: int,
    algorithm: str = "kmeans",
    algorithm_params: Optional[Dict[str, Any]] = None,
    metric: str = "euclidean",
    dissimilarity: Optional[DissimilarityMatrix] = None,
    seed: SeedLike = None,
    engine: Optional[ClusteringEngine] = None,
) -> StabilityScores:
    """
    Column-removal stability of an algorithm at k clusters.

    Args:
        data: Numeric observations (N x D), D >= 2
        k: Number of clusters, 1 <= k < N
        algorithm: Algorithm name from the engine registry
        algorithm_params: Extra algorithm parameters
        metric: Dissimilarity used for AD
        dissimilarity: Precomputed dissimilarities of the full data
        seed: Seed or generator

    Returns:
        StabilityScores with APN, AD, ADM and FOM
    """
    X = as_matrix(data)
    n, d = X.shape
    if d < 2:
        raise InvalidDataError("Stability measures need at least 2 features")
    k = check_k(k, n, maximum=n - 1)
    engine = engine or ClusteringEngine()
    D = (dissimilarity if dissimilarity is not None else compute_distance(X, metric=metric)).values

    params = dict(algorithm_params or {})
    params["n_clusters"] = k
    full_rng, *column_rngs = spawn_generators(seed, d + 1)

    with PerformanceLogger(
        "stability_measures", logger=logger, log_level="debug", algorithm=algorithm, k=k
    ):
        full = engine.cluster(X, algorithm, params, seed=full_rng, compute_quality_metrics=False).labels
        per_column = []
        for column, rng in enumerate(column_rngs):
            reduced_data = np.delete(X, column, axis=1)
            reduced = engine.cluster(
                reduced_data, algorithm, params, seed=rng, compute_quality_metrics=False
            ).labels
            per_column.append(_column_scores(X, D, full, reduced, column, k))

    return StabilityScores(
        apn=float(np.mean([s["apn"] for s in per_column])),
        ad=float(np.mean([s["ad"] for s in per_column])),
        adm=float(np.mean([s["adm"] for s in per_column])),
        fom=float(np.mean([s["fom"] for s in per_column])),
    )
