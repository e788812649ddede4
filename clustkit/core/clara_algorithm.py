"""
CLARA (Clustering LARge Applications) Algorithm Implementation.

CLARA is ideal for:
- Datasets too large for a full N x N dissimilarity matrix
- When medoid representatives are wanted at scale

Each repeat runs PAM on a random sample and scores the sample's medoids
against every observation; the medoid set with the lowest full-data cost wins.
"""

import logging
from typing import Any, Optional
import numpy as np

from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    SeedLike,
    as_generator,
)
from clustkit.core.dataset import as_matrix
from clustkit.core.distance import NUMERIC_METRICS, compute_distance, cross_distances, normalize_metric
from clustkit.core.pam_algorithm import pam
from clustkit.schemas.data_models import ResultWarning
from clustkit.utils.error_handling import ConfigurationError, UnsupportedMetric, check_k

logger = logging.getLogger(__name__)


def default_sample_size(n: int, k: int) -> int:
    """40 + 2k observations per sample, capped at N."""
    return min(n, 40 + 2 * k)


def clara(
    data: Any,
    k: int,
    samples: int = 5,
    sample_size: Optional[int] = None,
    metric: str = "euclidean",
    max_iter: int = 100,
    seed: SeedLike = None,
) -> ClusteringResult:
    """
    Sampled PAM for large datasets.

    Args:
        data: Numeric observations (N x D)
        k: Number of clusters, 1 <= k <= N
        samples: Number of samples drawn
        sample_size: Observations per sample (default min(N, 40 + 2k))
        metric: Numeric dissimilarity metric
        max_iter: Swap limit for each PAM run
        seed: Seed or generator for sampling

    Returns:
        ClusteringResult with global medoid indices; objective is the
        average dissimilarity of every observation to its nearest medoid

    Raises:
        InvalidK: If k is outside [1, N]
        UnsupportedMetric: For gower or unknown metrics
    """
    X = as_matrix(data)
    n = X.shape[0]
    k = check_k(k, n)
    metric = normalize_metric(metric)
    if metric not in NUMERIC_METRICS:
        raise UnsupportedMetric(f"CLARA supports numeric metrics only, got '{metric}'")
    if samples < 1:
        raise ConfigurationError(f"samples must be >= 1, got {samples}")

    sample_size = default_sample_size(n, k) if sample_size is None else int(sample_size)
    if sample_size < k or sample_size > n:
        raise ConfigurationError(
            f"sample_size must be in [{k}, {n}], got {sample_size}",
            details={"k": k, "n": n, "sample_size": sample_size},
        )

    rng = as_generator(seed)
    # one sample covers everything when it spans the whole dataset
    n_draws = 1 if sample_size == n else samples

    best_cost = np.inf
    best_medoids = None
    best_sample = None
    sample_costs = []
    converged = True

    for draw in range(n_draws):
        if best_medoids is None:
            sample = rng.choice(n, size=sample_size, replace=False)
        else:
            # keep the best medoids so far and fill up with fresh observations
            rest = np.setdiff1d(np.arange(n), best_medoids)
            extra = rng.choice(rest, size=sample_size - k, replace=False)
            sample = np.concatenate([best_medoids, extra])
        sample = np.sort(sample)

        sub = compute_distance(X[sample], metric=metric)
        fit = pam(sub, k, max_iter=max_iter)
        converged = converged and fit.converged
        medoids = sample[fit.medoids]

        cost = float(cross_distances(X, X[medoids], metric=metric).min(axis=1).mean())
        sample_costs.append(cost)
        logger.debug(f"CLARA sample {draw}: full-data cost {cost:.6f}")

        if cost < best_cost:
            best_cost, best_medoids, best_sample = cost, medoids, sample

    to_medoids = cross_distances(X, X[best_medoids], metric=metric)
    labels = np.argmin(to_medoids, axis=1)
    labels[best_medoids] = np.arange(k)

    warnings = [] if converged else [ResultWarning.NON_CONVERGENCE]
    logger.info(
        f"CLARA selected {k} medoids from {n_draws} sample(s) of {sample_size}; "
        f"average dissimilarity {best_cost:.4f}"
    )

    return ClusteringResult(
        cluster_labels=labels,
        n_clusters=k,
        objective=best_cost,
        medoids=np.asarray(best_medoids, dtype=np.int64),
        n_iter=n_draws,
        converged=converged,
        warnings=warnings,
        details={
            "sample_costs": sample_costs,
            "best_sample": best_sample,
            "sample_size": sample_size,
        },
    )


class CLARAAlgorithm(BaseClusteringAlgorithm):
    """
    CLARA clustering implementation.

    Best for: Large numeric datasets where PAM is too slow
    Strengths: Memory linear in N, medoid representatives
    Weaknesses: Result depends on the samples drawn
    """

    def __init__(self, config: ClusteringConfig):
        """
        Initialize CLARA algorithm.

        Args:
            config: Clustering configuration
        """
        super().__init__(config)

        self.n_clusters = config.params.get("n_clusters", 2)
        self.samples = config.params.get("samples", 5)
        self.sample_size = config.params.get("sample_size", None)
        self.metric = config.params.get("metric", "euclidean")
        self.max_iter = config.params.get("max_iter", 100)

        logger.debug(
            f"Initialized CLARA: n_clusters={self.n_clusters}, samples={self.samples}, "
            f"sample_size={self.sample_size}"
        )

    def cluster(self, data: Any) -> ClusteringResult:
        """
        Perform CLARA clustering.

        Args:
            data: Numeric observations (N x D)

        Returns:
            ClusteringResult with medoid indices and metrics
        """
        X = as_matrix(data)
        result = clara(
            X,
            self.n_clusters,
            samples=self.samples,
            sample_size=self.sample_size,
            metric=self.metric,
            max_iter=self.max_iter,
            seed=self.config.seed,
        )
        # quality metrics on the best sample keep the cost linear in N
        sample = result.details["best_sample"]
        result.quality_metrics = self._calculate_quality_metrics(
            result.labels[sample],
            dissimilarity=compute_distance(X[sample], metric=self.metric),
        )
        result.quality_metrics["average_dissimilarity"] = result.objective
        return result
