"""
Hierarchical K-Means Algorithm Implementation.

Cuts a hierarchical tree into k groups and uses the group means as the
starting centroids of k-means, removing the dependence on random starts.
"""

import logging
from typing import Any
import numpy as np

from clustkit.core.agglomerative_algorithm import build_dendrogram
from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
)
from clustkit.core.dataset import as_matrix
from clustkit.core.distance import compute_distance
from clustkit.core.kmeans_algorithm import kmeans_from_centers
from clustkit.utils.error_handling import check_k

logger = logging.getLogger(__name__)


def hkmeans(
    data: Any,
    k: int,
    linkage: str = "ward",
    metric: str = "euclidean",
    max_iter: int = 10,
) -> ClusteringResult:
    """
    Hierarchical k-means.

    Args:
        data: Numeric observations (N x D)
        k: Number of clusters
        linkage: Linkage used to build the seeding tree
        metric: Dissimilarity used to build the seeding tree
        max_iter: K-means iteration cap

    Returns:
        K-means ClusteringResult; the seeding tree is attached as dendrogram
    """
    X = as_matrix(data)
    k = check_k(k, X.shape[0])

    dissimilarity = compute_distance(X, metric=metric)
    tree = build_dendrogram(dissimilarity, linkage)
    groups = tree.cut(k)
    centers = np.vstack([X[groups == c].mean(axis=0) for c in range(k)])

    result = kmeans_from_centers(X, centers, max_iter=max_iter)
    result.dendrogram = tree
    result.details["initial_centers"] = centers
    result.details["tree_labels"] = groups

    logger.info(f"Hierarchical K-Means created {k} clusters, WCSS={result.objective:.4f}")
    return result


class HKMeansAlgorithm(BaseClusteringAlgorithm):
    """
    Hierarchical K-Means clustering implementation.

    Best for: Numeric data where reproducible k-means starts matter
    Strengths: Deterministic, refines a hierarchical partition
    Weaknesses: Inherits the O(n³) cost of the tree build
    """

    def __init__(self, config: ClusteringConfig):
        super().__init__(config)

        self.n_clusters = config.params.get("n_clusters", 2)
        self.linkage = config.params.get("linkage", "ward")
        self.metric = config.params.get("metric", "euclidean")
        self.max_iter = config.params.get("max_iter", 10)

    def cluster(self, data: Any) -> ClusteringResult:
        """Perform hierarchical K-Means clustering."""
        X = as_matrix(data)
        result = hkmeans(
            X,
            self.n_clusters,
            linkage=self.linkage,
            metric=self.metric,
            max_iter=self.max_iter,
        )
        result.quality_metrics = self._calculate_quality_metrics(result.labels, data=X)
        result.quality_metrics["inertia"] = result.objective
        return result
