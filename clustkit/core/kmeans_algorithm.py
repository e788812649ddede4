"""
K-Means Clustering Algorithm Implementation.

K-Means is ideal for:
- Numeric data with compact, roughly spherical clusters
- When the number of clusters is known or can be estimated
- Fast partitioning of medium to large datasets
"""

import logging
from typing import Any, List, Optional, Tuple
import numpy as np

from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    SeedLike,
    spawn_generators,
)
from clustkit.core.dataset import as_matrix
from clustkit.schemas.data_models import InitMethod, ResultWarning
from clustkit.utils.error_handling import ConfigurationError, check_k

logger = logging.getLogger(__name__)


def _squared_distances(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """(n, k) squared Euclidean distances from each row to each centroid."""
    return np.sum((X[:, None, :] - centroids[None, :, :]) ** 2, axis=2)


def _assign(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Nearest centroid per row; ties go to the lowest centroid index."""
    return np.argmin(_squared_distances(X, centroids), axis=1)


def _init_random(X: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """k distinct rows drawn uniformly."""
    return X[rng.choice(X.shape[0], size=k, replace=False)].copy()


def _init_kmeanspp(X: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """Return (k, d) initial centroids chosen by the k-means++ rule."""
    n, d = X.shape
    centroids = np.empty((k, d), dtype=X.dtype)
    centroids[0] = X[int(rng.integers(0, n))]

    for j in range(1, k):
        min_sq = _squared_distances(X, centroids[:j]).min(axis=1)
        total = min_sq.sum()
        if total == 0.0:
            centroids[j] = X[int(rng.integers(0, n))]
        else:
            centroids[j] = X[int(rng.choice(n, p=min_sq / total))]
    return centroids


def _update(
    X: np.ndarray, labels: np.ndarray, k: int
) -> Tuple[np.ndarray, np.ndarray, bool]:
    """
    Recompute centroids as member means.

    An empty cluster takes the point farthest from its own centroid
    (drawn from a cluster with more than one member) as its new centroid.

    Returns:
        Tuple of (centroids, labels, reseeded)
    """
    labels = labels.copy()
    counts = np.bincount(labels, minlength=k)
    centroids = np.zeros((k, X.shape[1]))
    for j in np.flatnonzero(counts):
        centroids[j] = X[labels == j].mean(axis=0)

    empty = np.flatnonzero(counts == 0)
    if len(empty) == 0:
        return centroids, labels, False

    for j in empty:
        counts = np.bincount(labels, minlength=k)
        spread = np.sum((X - centroids[labels]) ** 2, axis=1)
        spread[counts[labels] <= 1] = -1.0
        point = int(np.argmax(spread))
        donor = labels[point]

        labels[point] = j
        centroids[j] = X[point]
        centroids[donor] = X[labels == donor].mean(axis=0)
        logger.debug(f"Re-seeded empty cluster {j} from observation {point}")

    return centroids, labels, True


def _lloyd(
    X: np.ndarray, centroids: np.ndarray, max_iter: int
) -> Tuple[np.ndarray, np.ndarray, int, bool, List[ResultWarning]]:
    """
    Alternate assignment and mean updates until assignments are stable.

    Returns:
        Tuple of (labels, centroids, n_iter, converged, warnings)
    """
    k = centroids.shape[0]
    warnings: List[ResultWarning] = []
    labels = _assign(X, centroids)
    converged = False
    n_iter = 0

    for n_iter in range(1, max_iter + 1):
        centroids, labels, reseeded = _update(X, labels, k)
        if reseeded and ResultWarning.EMPTY_CLUSTER not in warnings:
            warnings.append(ResultWarning.EMPTY_CLUSTER)

        new_labels = _assign(X, centroids)
        if np.array_equal(new_labels, labels):
            converged = True
            break
        labels = new_labels

    if not converged:
        centroids, labels, reseeded = _update(X, labels, k)
        if reseeded and ResultWarning.EMPTY_CLUSTER not in warnings:
            warnings.append(ResultWarning.EMPTY_CLUSTER)
        warnings.append(ResultWarning.NON_CONVERGENCE)

    return labels, centroids, n_iter, converged, warnings


def _within_ss(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Within-cluster sum of squares per cluster."""
    sq = np.sum((X - centroids[labels]) ** 2, axis=1)
    return np.bincount(labels, weights=sq, minlength=centroids.shape[0])


def _build_result(
    X: np.ndarray,
    labels: np.ndarray,
    centroids: np.ndarray,
    n_iter: int,
    converged: bool,
    warnings: List[ResultWarning],
    restart_objectives: Optional[List[float]] = None,
) -> ClusteringResult:
    withinss = _within_ss(X, labels, centroids)
    tot_withinss = float(withinss.sum())
    totss = float(np.sum((X - X.mean(axis=0)) ** 2))
    return ClusteringResult(
        cluster_labels=labels,
        n_clusters=centroids.shape[0],
        objective=tot_withinss,
        centroids=centroids,
        n_iter=n_iter,
        converged=converged,
        warnings=warnings,
        details={
            "withinss": withinss,
            "tot_withinss": tot_withinss,
            "totss": totss,
            "betweenss": totss - tot_withinss,
            "restart_objectives": restart_objectives or [tot_withinss],
        },
    )


def kmeans(
    data: Any,
    k: int,
    nstart: int = 1,
    max_iter: int = 10,
    init: str = "random",
    seed: SeedLike = None,
) -> ClusteringResult:
    """
    Lloyd's k-means with random restarts.

    Args:
        data: Numeric observations (N x D)
        k: Number of clusters, 1 <= k <= N
        nstart: Number of independent restarts; the lowest WCSS wins
            (first run on ties)
        max_iter: Iteration cap per restart
        init: "random" (k distinct rows) or "kmeans++"
        seed: Seed or generator; identical seeds give identical results

    Returns:
        ClusteringResult with labels, centroids and WCSS as objective

    Raises:
        InvalidK: If k is outside [1, N]
    """
    X = as_matrix(data)
    k = check_k(k, X.shape[0])
    if nstart < 1:
        raise ConfigurationError(f"nstart must be >= 1, got {nstart}")
    if max_iter < 1:
        raise ConfigurationError(f"max_iter must be >= 1, got {max_iter}")
    try:
        init = InitMethod(init)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported init '{init}'. Supported: {[m.value for m in InitMethod]}"
        )

    best = None
    objectives = []
    for rng in spawn_generators(seed, nstart):
        if init is InitMethod.KMEANS_PLUS_PLUS:
            centroids = _init_kmeanspp(X, k, rng)
        else:
            centroids = _init_random(X, k, rng)

        run = _lloyd(X, centroids, max_iter)
        wcss = float(_within_ss(X, run[0], run[1]).sum())
        objectives.append(wcss)
        if best is None or wcss < best[0]:
            best = (wcss, run)

    _, (labels, centroids, n_iter, converged, warnings) = best
    if not converged:
        logger.warning(
            f"K-Means did not converge within {max_iter} iterations "
            f"(k={k}); returning best-effort result"
        )

    logger.info(f"K-Means created {k} clusters, WCSS={best[0]:.4f} after {nstart} restart(s)")

    return _build_result(X, labels, centroids, n_iter, converged, warnings, objectives)


def kmeans_from_centers(
    data: Any, centers: np.ndarray, max_iter: int = 10
) -> ClusteringResult:
    """
    Deterministic k-means started from the given centres.

    Args:
        data: Numeric observations (N x D)
        centers: Initial centroids (K x D)
        max_iter: Iteration cap

    Returns:
        ClusteringResult
    """
    X = as_matrix(data)
    centers = as_matrix(centers)
    check_k(centers.shape[0], X.shape[0])
    labels, centroids, n_iter, converged, warnings = _lloyd(X, centers, max_iter)
    if not converged:
        logger.warning(f"K-Means did not converge within {max_iter} iterations")
    return _build_result(X, labels, centroids, n_iter, converged, warnings)


class KMeansAlgorithm(BaseClusteringAlgorithm):
    """
    K-Means clustering implementation.

    Best for: Numeric data, compact clusters, known k
    Strengths: Fast, simple, centroids summarise clusters
    Weaknesses: Requires k as input, assumes spherical clusters, sensitive to outliers
    """

    def __init__(self, config: ClusteringConfig):
        """
        Initialize K-Means algorithm.

        Args:
            config: Clustering configuration
        """
        super().__init__(config)

        self.n_clusters = config.params.get("n_clusters", 2)
        self.nstart = config.params.get("nstart", 1)
        self.max_iter = config.params.get("max_iter", 10)
        self.init = config.params.get("init", "random")

        logger.debug(
            f"Initialized K-Means: n_clusters={self.n_clusters}, "
            f"nstart={self.nstart}, init={self.init}"
        )

    def cluster(self, data: Any) -> ClusteringResult:
        """
        Perform K-Means clustering.

        Args:
            data: Numeric observations (N x D)

        Returns:
            ClusteringResult with labels, centroids and metrics
        """
        X = as_matrix(data)
        result = kmeans(
            X,
            self.n_clusters,
            nstart=self.nstart,
            max_iter=self.max_iter,
            init=self.init,
            seed=self.config.seed,
        )

        result.quality_metrics = self._calculate_quality_metrics(result.labels, data=X)
        result.quality_metrics["inertia"] = result.objective
        result.quality_metrics["iterations"] = result.n_iter
        return result
