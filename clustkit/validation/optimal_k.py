"""
Choosing the number of clusters.

Three methods score a range of candidate k with any partitioning algorithm
from the engine registry:
- elbow: maximum second difference of the within-cluster sum of squares
- silhouette: maximum average silhouette width
- gap: Tibshirani's gap statistic against uniform reference data
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from clustkit.core.base_clustering import SeedLike, spawn_generators
from clustkit.core.clustering_engine import ClusteringEngine
from clustkit.core.dataset import as_matrix, uniform_reference
from clustkit.core.distance import compute_distance
from clustkit.schemas.data_models import OptimalKResult
from clustkit.utils.advanced_logging import PerformanceLogger, get_logger, timed
from clustkit.utils.error_handling import ConfigurationError, check_k
from clustkit.validation.internal import silhouette, within_cluster_ss

logger = get_logger(__name__)

DEFAULT_K_VALUES = tuple(range(1, 11))


def _check_k_values(k_values: Sequence[int], n: int, minimum: int = 1, maximum: Optional[int] = None) -> List[int]:
    values = sorted({int(k) for k in k_values})
    if not values:
        raise ConfigurationError("At least one candidate k is required")
    for k in values:
        check_k(k, n, minimum=minimum, maximum=maximum)
    return values


def _fit_labels(
    engine: ClusteringEngine,
    X: np.ndarray,
    k: int,
    algorithm: str,
    algorithm_params: Optional[Dict[str, Any]],
    seed: SeedLike,
) -> np.ndarray:
    params = dict(algorithm_params or {})
    params["n_clusters"] = k
    result = engine.cluster(
        X, algorithm, params, seed=seed, compute_quality_metrics=False
    )
    return result.labels


@timed(log_level="debug")
def elbow_method(
    data: Any,
    k_values: Sequence[int] = DEFAULT_K_VALUES,
    algorithm: str = "kmeans",
    algorithm_params: Optional[Dict[str, Any]] = None,
    seed: SeedLike = None,
    engine: Optional[ClusteringEngine] = None,
) -> OptimalKResult:
    """
    Within-cluster sum of squares per k; the elbow is the k with the largest
    second difference (first one on ties).

    Needs at least three consecutive candidate k.
    """
    X = as_matrix(data)
    values = _check_k_values(k_values, X.shape[0])
    if len(values) < 3:
        raise ConfigurationError("Elbow method needs at least 3 candidate k values")
    if values[-1] - values[0] != len(values) - 1:
        raise ConfigurationError(
            f"Elbow method needs consecutive k values, got {values}", details={"k_values": values}
        )
    engine = engine or ClusteringEngine()

    rngs = spawn_generators(seed, len(values))
    wcss = [
        within_cluster_ss(X, _fit_labels(engine, X, k, algorithm, algorithm_params, rng))
        for k, rng in zip(values, rngs)
    ]

    second = np.diff(wcss, n=2)
    best_k = values[int(np.argmax(second)) + 1]
    logger.info("elbow_method", algorithm=algorithm, best_k=best_k)
    return OptimalKResult(method="elbow", k_values=values, scores=wcss, best_k=best_k)


@timed(log_level="debug")
def silhouette_method(
    data: Any,
    k_values: Sequence[int] = tuple(range(2, 11)),
    algorithm: str = "kmeans",
    algorithm_params: Optional[Dict[str, Any]] = None,
    metric: str = "euclidean",
    seed: SeedLike = None,
    engine: Optional[ClusteringEngine] = None,
) -> OptimalKResult:
    """Average silhouette width per k; the best k maximises it (first on ties)."""
    X = as_matrix(data)
    n = X.shape[0]
    values = _check_k_values(k_values, n, minimum=2, maximum=n - 1)
    engine = engine or ClusteringEngine()
    dissimilarity = compute_distance(X, metric=metric)

    rngs = spawn_generators(seed, len(values))
    widths = [
        silhouette(_fit_labels(engine, X, k, algorithm, algorithm_params, rng), dissimilarity).average
        for k, rng in zip(values, rngs)
    ]

    best_k = values[int(np.argmax(widths))]
    logger.info("silhouette_method", algorithm=algorithm, best_k=best_k)
    return OptimalKResult(method="silhouette", k_values=values, scores=widths, best_k=best_k)


def _log_wcss(X: np.ndarray, labels: np.ndarray) -> float:
    # a perfect fit (every cluster a single point) would give log(0)
    return float(np.log(max(within_cluster_ss(X, labels), np.finfo(float).tiny)))


def gap_statistic(
    data: Any,
    k_values: Sequence[int] = DEFAULT_K_VALUES,
    n_references: int = 50,
    algorithm: str = "kmeans",
    algorithm_params: Optional[Dict[str, Any]] = None,
    seed: SeedLike = None,
    engine: Optional[ClusteringEngine] = None,
) -> OptimalKResult:
    """
    Gap statistic.

    Gap(k) = mean_b log W*_kb - log W_k, where W is the within-cluster sum
    of squares and W* is computed on reference sets drawn uniformly over
    the bounding box of the data. The standard error is
    s_k = sd_k * sqrt(1 + 1/B).

    The chosen k is the smallest k with Gap(k) >= Gap(k+1) - s(k+1) over
    consecutive candidates, or the k with the largest gap when no k
    satisfies the rule.

    Args:
        data: Numeric observations (N x D)
        k_values: Candidate cluster counts
        n_references: Number of reference sets B
        algorithm: Partitioning algorithm from the engine registry
        algorithm_params: Extra algorithm parameters
        seed: Seed or generator

    Returns:
        OptimalKResult with gaps as scores and their standard errors
    """
    X = as_matrix(data)
    n = X.shape[0]
    values = _check_k_values(k_values, n)
    if n_references < 1:
        raise ConfigurationError(f"n_references must be >= 1, got {n_references}")
    engine = engine or ClusteringEngine()

    data_rng, *reference_rngs = spawn_generators(seed, n_references + 1)

    with PerformanceLogger(
        "gap_statistic",
        logger=logger,
        item_count=n_references * len(values),
        algorithm=algorithm,
        n_references=n_references,
    ):
        log_w = np.array(
            [_log_wcss(X, _fit_labels(engine, X, k, algorithm, algorithm_params, data_rng)) for k in values]
        )

        log_w_ref = np.empty((n_references, len(values)))
        for b, rng in enumerate(reference_rngs):
            reference = uniform_reference(X, rng)
            for j, k in enumerate(values):
                labels = _fit_labels(engine, reference, k, algorithm, algorithm_params, rng)
                log_w_ref[b, j] = _log_wcss(reference, labels)

    gaps = log_w_ref.mean(axis=0) - log_w
    sd = log_w_ref.std(axis=0, ddof=1) if n_references > 1 else np.zeros(len(values))
    se = sd * np.sqrt(1.0 + 1.0 / n_references)

    best_k = None
    for j in range(len(values) - 1):
        if gaps[j] >= gaps[j + 1] - se[j + 1]:
            best_k = values[j]
            break
    if best_k is None:
        best_k = values[int(np.argmax(gaps))]

    logger.info("gap_statistic", algorithm=algorithm, best_k=best_k)
    return OptimalKResult(
        method="gap",
        k_values=values,
        scores=gaps.tolist(),
        best_k=best_k,
        standard_errors=se.tolist(),
    )
