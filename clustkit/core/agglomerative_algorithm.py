"""
Agglomerative Hierarchical Clustering Algorithm Implementation.

Agglomerative clustering is ideal for:
- Building hierarchical cluster trees (dendrograms)
- When cluster hierarchy is important
- Small to medium datasets
- Any dissimilarity, including Gower for mixed data

Merges are driven by Lance-Williams updates of the working dissimilarity
matrix, so every linkage shares one O(n^3) loop.
"""

import logging
from typing import Any, Union
import numpy as np

from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
)
from clustkit.core.dataset import as_matrix
from clustkit.core.dendrogram import Dendrogram
from clustkit.core.distance import DissimilarityMatrix, compute_distance
from clustkit.schemas.data_models import LinkageMethod
from clustkit.utils.error_handling import ConfigurationError, InvalidDataError, UnsupportedLinkage

logger = logging.getLogger(__name__)

# Linkages updated on squared dissimilarities; heights are reported as sqrt
SQUARED_LINKAGES = {LinkageMethod.CENTROID, LinkageMethod.MEDIAN, LinkageMethod.WARD}


def normalize_linkage(linkage: Union[str, LinkageMethod]) -> LinkageMethod:
    """
    Validate a linkage name.

    Raises:
        UnsupportedLinkage: If the linkage is unknown
    """
    if isinstance(linkage, LinkageMethod):
        return linkage
    try:
        return LinkageMethod(str(linkage).lower())
    except ValueError:
        raise UnsupportedLinkage(
            f"Unsupported linkage '{linkage}'. Supported: {[m.value for m in LinkageMethod]}",
            details={"linkage": linkage},
        )


def _lance_williams(
    linkage: LinkageMethod,
    d_ik: np.ndarray,
    d_jk: np.ndarray,
    d_ij: float,
    n_i: int,
    n_j: int,
    n_k: np.ndarray,
) -> np.ndarray:
    """Dissimilarity from the merged cluster (i + j) to every other cluster k."""
    if linkage is LinkageMethod.SINGLE:
        return np.minimum(d_ik, d_jk)
    if linkage is LinkageMethod.COMPLETE:
        return np.maximum(d_ik, d_jk)
    if linkage is LinkageMethod.AVERAGE:
        return (n_i * d_ik + n_j * d_jk) / (n_i + n_j)
    if linkage is LinkageMethod.MCQUITTY:
        return 0.5 * (d_ik + d_jk)
    if linkage is LinkageMethod.CENTROID:
        n_ij = n_i + n_j
        return (n_i * d_ik + n_j * d_jk) / n_ij - n_i * n_j * d_ij / n_ij ** 2
    if linkage is LinkageMethod.MEDIAN:
        return 0.5 * d_ik + 0.5 * d_jk - 0.25 * d_ij
    # ward
    total = n_i + n_j + n_k
    return ((n_i + n_k) * d_ik + (n_j + n_k) * d_jk - n_k * d_ij) / total


def build_dendrogram(
    dissimilarity: DissimilarityMatrix,
    linkage: Union[str, LinkageMethod] = "complete",
) -> Dendrogram:
    """
    Agglomerate n observations into a single tree.

    At each step the closest pair of active clusters is merged; ties go to
    the first pair in (row, column) order of the working matrix, where a
    merged cluster takes the slot of its lower-indexed child.

    Args:
        dissimilarity: Pairwise dissimilarities
        linkage: single, complete, average, mcquitty, centroid, median or ward

    Returns:
        Dendrogram with n-1 merges

    Raises:
        UnsupportedLinkage: If the linkage is unknown
    """
    linkage = normalize_linkage(linkage)
    n = dissimilarity.n
    squared = linkage in SQUARED_LINKAGES

    work = np.array(dissimilarity.values, dtype=float)
    if squared:
        work = work ** 2
    np.fill_diagonal(work, np.inf)

    node_ids = np.arange(n)
    sizes = np.ones(n, dtype=np.int64)
    active = np.ones(n, dtype=bool)

    merges = np.empty((max(n - 1, 0), 2), dtype=np.int64)
    heights = np.empty(max(n - 1, 0))
    merge_sizes = np.empty(max(n - 1, 0), dtype=np.int64)

    for step in range(n - 1):
        # first minimum in row-major order is always above the diagonal
        flat = int(np.argmin(work))
        i, j = divmod(flat, n)
        d_ij = work[i, j]

        a, b = sorted((int(node_ids[i]), int(node_ids[j])))
        merges[step] = (a, b)
        heights[step] = np.sqrt(max(d_ij, 0.0)) if squared else d_ij
        merge_sizes[step] = sizes[i] + sizes[j]

        updated = _lance_williams(linkage, work[i], work[j], d_ij, sizes[i], sizes[j], sizes)
        if squared:
            updated = np.maximum(updated, 0.0)
        updated[~active] = np.inf

        work[i, :] = updated
        work[:, i] = updated
        work[j, :] = np.inf
        work[:, j] = np.inf
        work[i, i] = np.inf

        active[j] = False
        sizes[i] = merge_sizes[step]
        node_ids[i] = n + step

    tree = Dendrogram(merges, heights, merge_sizes, linkage.value, labels=dissimilarity.labels)
    if linkage in (LinkageMethod.CENTROID, LinkageMethod.MEDIAN) and not tree.is_monotonic():
        logger.info(f"{linkage.value} linkage produced height inversions")
    return tree


class AgglomerativeAlgorithm(BaseClusteringAlgorithm):
    """
    Agglomerative hierarchical clustering implementation.

    Best for: Exploring cluster hierarchy, small datasets, mixed data via Gower
    Strengths: Builds hierarchy, flexible linkage criteria, any dissimilarity
    Weaknesses: Slow (O(n³)), high memory usage, not scalable
    """

    def __init__(self, config: ClusteringConfig):
        """
        Initialize Agglomerative algorithm.

        Args:
            config: Clustering configuration
        """
        super().__init__(config)

        self.n_clusters = config.params.get("n_clusters", None)
        self.distance_threshold = config.params.get("distance_threshold", None)
        self.linkage = normalize_linkage(config.params.get("linkage", "complete"))
        self.metric = config.params.get("metric", "euclidean")

        if self.n_clusters is None and self.distance_threshold is None:
            self.n_clusters = 2
            logger.warning(
                "Neither n_clusters nor distance_threshold specified, defaulting to n_clusters=2"
            )

        if self.n_clusters is not None and self.distance_threshold is not None:
            logger.warning(
                "Both n_clusters and distance_threshold specified. "
                "Setting n_clusters=None (distance_threshold takes precedence)"
            )
            self.n_clusters = None

        logger.debug(
            f"Initialized Agglomerative: n_clusters={self.n_clusters}, "
            f"distance_threshold={self.distance_threshold}, linkage={self.linkage.value}"
        )

    def cluster(self, data: Any) -> ClusteringResult:
        """
        Perform Agglomerative clustering.

        Args:
            data: Observations (N x D) or a DissimilarityMatrix

        Returns:
            ClusteringResult with labels, the dendrogram and metrics
        """
        if isinstance(data, DissimilarityMatrix):
            X = None
            dissimilarity = data
        else:
            X = as_matrix(data)
            dissimilarity = compute_distance(X, metric=self.metric)

        n = dissimilarity.n
        if n > 5000:
            logger.warning(
                f"Agglomerative clustering on {n} observations "
                "may be slow and memory-intensive. Consider using CLARA."
            )

        tree = build_dendrogram(dissimilarity, self.linkage)

        if self.distance_threshold is not None:
            if self.distance_threshold < 0:
                raise ConfigurationError(
                    f"distance_threshold must be >= 0, got {self.distance_threshold}"
                )
            labels = tree.cut_at_height(self.distance_threshold)
        else:
            labels = tree.cut(self.n_clusters)

        n_clusters = int(labels.max()) + 1
        n_merges = n - n_clusters
        cut_height = float(tree.heights[n_merges - 1]) if n_merges > 0 else 0.0

        logger.info(
            f"Agglomerative ({self.linkage.value}) created {n_clusters} clusters, "
            f"cut height {cut_height:.4f}"
        )

        centroids = None
        if X is not None:
            centroids = np.vstack([X[labels == c].mean(axis=0) for c in range(n_clusters)])

        quality_metrics = self._calculate_quality_metrics(labels, dissimilarity=dissimilarity)
        try:
            quality_metrics["cophenetic_correlation"] = tree.cophenetic_correlation(dissimilarity)
        except InvalidDataError as e:
            logger.debug(f"Skipping cophenetic correlation: {e.message}")

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=n_clusters,
            objective=cut_height,
            quality_metrics=quality_metrics,
            centroids=centroids,
            n_iter=n_merges,
            dissimilarity=dissimilarity,
            dendrogram=tree,
            details={"linkage": self.linkage.value, "cut_height": cut_height},
        )
