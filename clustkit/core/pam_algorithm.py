"""
PAM (Partitioning Around Medoids) Algorithm Implementation.

PAM is ideal for:
- Any dissimilarity (correlation, Manhattan, Gower for mixed data)
- When cluster representatives must be real observations
- Data with outliers (medoids are less sensitive than means)
"""

import logging
from typing import Any, List, Tuple
import numpy as np

from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
)
from clustkit.core.distance import DissimilarityMatrix, compute_distance
from clustkit.schemas.data_models import ResultWarning
from clustkit.utils.error_handling import ConfigurationError, check_k

logger = logging.getLogger(__name__)

# Relative improvement a swap must achieve to be applied
_SWAP_TOL = 1e-12


def _as_dissimilarity(data: Any, metric: str) -> DissimilarityMatrix:
    if isinstance(data, DissimilarityMatrix):
        return data
    return compute_distance(data, metric=metric)


def _build(D: np.ndarray, k: int) -> List[int]:
    """
    Greedy BUILD phase.

    The first medoid minimises the total dissimilarity to all points; each
    following medoid is the point whose addition lowers the total the most.
    """
    medoids = [int(np.argmin(D.sum(axis=1)))]
    nearest = D[:, medoids[0]].copy()

    for _ in range(1, k):
        gains = np.maximum(nearest[:, None] - D, 0.0).sum(axis=0)
        gains[medoids] = -1.0
        candidate = int(np.argmax(gains))
        medoids.append(candidate)
        nearest = np.minimum(nearest, D[:, candidate])

    return medoids


def _swap(
    D: np.ndarray, medoids: List[int], max_iter: int
) -> Tuple[List[int], int, bool]:
    """
    SWAP phase: apply the best improving (medoid, non-medoid) exchange
    until no exchange lowers the total dissimilarity.

    Returns:
        Tuple of (medoids, n_swaps, converged)
    """
    n = D.shape[0]
    medoids = list(medoids)
    cost = D[:, medoids].min(axis=1).sum()

    for n_swaps in range(max_iter + 1):
        to_medoids = D[:, medoids]
        order = np.argsort(to_medoids, axis=1, kind="stable")
        nearest = to_medoids[np.arange(n), order[:, 0]]
        second = (
            to_medoids[np.arange(n), order[:, 1]]
            if len(medoids) > 1
            else np.full(n, np.inf)
        )

        candidates = np.setdiff1d(np.arange(n), medoids)
        if len(candidates) == 0:
            return medoids, n_swaps, True

        best_cost, best_position, best_candidate = cost, None, None
        for position in range(len(medoids)):
            # distance to the closest medoid once this one is removed
            without = np.where(order[:, 0] == position, second, nearest)
            new_costs = np.minimum(without[:, None], D[:, candidates]).sum(axis=0)
            j = int(np.argmin(new_costs))
            if new_costs[j] < best_cost:
                best_cost, best_position, best_candidate = new_costs[j], position, int(candidates[j])

        if best_position is None or best_cost >= cost - _SWAP_TOL * max(cost, 1.0):
            return medoids, n_swaps, True

        if n_swaps == max_iter:
            break

        logger.debug(
            f"PAM swap: medoid {medoids[best_position]} -> {best_candidate}, "
            f"cost {cost:.6f} -> {best_cost:.6f}"
        )
        medoids[best_position] = best_candidate
        cost = best_cost

    return medoids, max_iter, False


def pam(
    data: Any,
    k: int,
    metric: str = "euclidean",
    max_iter: int = 100,
) -> ClusteringResult:
    """
    Partition observations around k medoids.

    Args:
        data: DissimilarityMatrix, or observations to compute one from
        k: Number of clusters, 1 <= k <= N
        metric: Metric used when data is not already a DissimilarityMatrix
        max_iter: Maximum number of swaps

    Returns:
        ClusteringResult whose medoids are observation indices; objective
        is the total dissimilarity of points to their medoid

    Raises:
        InvalidK: If k is outside [1, N]
    """
    dissimilarity = _as_dissimilarity(data, metric)
    D = dissimilarity.values
    n = dissimilarity.n
    k = check_k(k, n)
    if max_iter < 0:
        raise ConfigurationError(f"max_iter must be >= 0, got {max_iter}")

    medoids = _build(D, k)
    build_cost = float(D[:, medoids].min(axis=1).sum())
    medoids, n_swaps, converged = _swap(D, medoids, max_iter)

    # nearest medoid, ties to the earlier medoid
    labels = np.argmin(D[:, medoids], axis=1)
    labels[medoids] = np.arange(k)
    cost = float(D[np.arange(n), np.asarray(medoids)[labels]].sum())

    warnings = []
    if not converged:
        warnings.append(ResultWarning.NON_CONVERGENCE)
        logger.warning(f"PAM reached the swap limit ({max_iter}); returning best-effort medoids")

    logger.info(f"PAM selected {k} medoids, total dissimilarity {cost:.4f} after {n_swaps} swap(s)")

    return ClusteringResult(
        cluster_labels=labels,
        n_clusters=k,
        objective=cost,
        medoids=np.asarray(medoids, dtype=np.int64),
        n_iter=n_swaps,
        converged=converged,
        warnings=warnings,
        dissimilarity=dissimilarity,
        details={
            "objective_build": build_cost / n,
            "objective_swap": cost / n,
        },
    )


class PAMAlgorithm(BaseClusteringAlgorithm):
    """
    K-Medoids (PAM) clustering implementation.

    Best for: Small to medium datasets, arbitrary dissimilarities
    Strengths: Robust to outliers, representatives are real observations
    Weaknesses: O(k(n-k)^2) per swap, needs the full dissimilarity matrix
    """

    def __init__(self, config: ClusteringConfig):
        """
        Initialize PAM algorithm.

        Args:
            config: Clustering configuration
        """
        super().__init__(config)

        self.n_clusters = config.params.get("n_clusters", 2)
        self.metric = config.params.get("metric", "euclidean")
        self.max_iter = config.params.get("max_iter", 100)

        logger.debug(f"Initialized PAM: n_clusters={self.n_clusters}, metric={self.metric}")

    def cluster(self, data: Any) -> ClusteringResult:
        """
        Perform PAM clustering.

        Args:
            data: Observations or a DissimilarityMatrix

        Returns:
            ClusteringResult with medoid indices and metrics
        """
        result = pam(data, self.n_clusters, metric=self.metric, max_iter=self.max_iter)
        result.quality_metrics = self._calculate_quality_metrics(
            result.labels, dissimilarity=result.dissimilarity
        )
        result.quality_metrics["average_dissimilarity"] = result.details["objective_swap"]
        return result
