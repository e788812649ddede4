"""
Base Clustering Algorithm Interface.

Defines the contract for all clustering algorithms in the toolkit.
Supports pluggable algorithms with consistent API.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Union
import numpy as np
from dataclasses import dataclass, field

from clustkit.core.distance import DissimilarityMatrix, compute_distance
from clustkit.schemas.data_models import ResultWarning

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


def as_generator(seed: SeedLike) -> np.random.Generator:
    """
    Turn a caller-supplied seed into a random generator.

    A Generator is used as-is, so callers can thread one generator through
    several calls. None gives fresh OS entropy.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def spawn_generators(seed: SeedLike, count: int) -> List[np.random.Generator]:
    """
    Independent child generators for restarts, samples or reference sets.

    Each child depends only on the seed and its position, so the units of
    work can run in any order (or in parallel) with the same results.
    """
    if isinstance(seed, np.random.Generator):
        root = np.random.SeedSequence(seed.integers(0, 2 ** 63))
    elif isinstance(seed, np.random.SeedSequence):
        root = seed
    else:
        root = np.random.SeedSequence(seed)
    return [np.random.default_rng(child) for child in root.spawn(count)]


@dataclass
class ClusteringConfig:
    """Configuration for clustering algorithms."""

    algorithm_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    seed: SeedLike = None
    compute_quality_metrics: bool = True


class ClusteringResult:
    """Results from clustering operation."""

    def __init__(
        self,
        cluster_labels: np.ndarray,
        n_clusters: int,
        objective: float,
        quality_metrics: Optional[Dict[str, float]] = None,
        centroids: Optional[np.ndarray] = None,
        medoids: Optional[np.ndarray] = None,
        n_iter: int = 0,
        converged: bool = True,
        warnings: Optional[List[ResultWarning]] = None,
        dissimilarity: Optional[DissimilarityMatrix] = None,
        dendrogram: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cluster_labels = np.asarray(cluster_labels, dtype=np.int64)
        self.n_clusters = n_clusters
        self.objective = objective
        self.quality_metrics = quality_metrics or {}
        self.centroids = centroids
        self.medoids = medoids
        self.n_iter = n_iter
        self.converged = converged
        self.warnings = list(warnings or [])
        self.dissimilarity = dissimilarity
        self.dendrogram = dendrogram
        self.details = details or {}

    @property
    def labels(self) -> np.ndarray:
        """Alias for cluster_labels."""
        return self.cluster_labels

    @property
    def sizes(self) -> np.ndarray:
        """Number of observations per cluster."""
        return np.bincount(self.cluster_labels, minlength=self.n_clusters)

    @property
    def cluster_centroids(self) -> Optional[Dict[int, np.ndarray]]:
        """Return centroids as dict mapping cluster_id -> centroid_vector."""
        if self.centroids is None:
            return None
        return {i: self.centroids[i] for i in range(len(self.centroids))}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "n_clusters": self.n_clusters,
            "objective": self.objective,
            "sizes": self.sizes.tolist(),
            "n_iter": self.n_iter,
            "converged": self.converged,
            "warnings": [w.value for w in self.warnings],
            "quality_metrics": self.quality_metrics,
            "medoids": None if self.medoids is None else self.medoids.tolist(),
            "total_items": len(self.cluster_labels),
        }


class BaseClusteringAlgorithm(ABC):
    """
    Abstract base class for clustering algorithms.

    All clustering algorithms (K-Means, PAM, CLARA, Agglomerative,
    hierarchical K-Means) inherit from this class and implement cluster().
    """

    def __init__(self, config: ClusteringConfig):
        """
        Initialize clustering algorithm.

        Args:
            config: Clustering configuration
        """
        self.config = config
        self.name = config.algorithm_name

    @abstractmethod
    def cluster(self, data: Any) -> ClusteringResult:
        """
        Perform clustering on a dataset.

        Args:
            data: Observations (N x D), or a DissimilarityMatrix for
                algorithms that accept one

        Returns:
            ClusteringResult with labels and metrics
        """
        pass

    def _calculate_quality_metrics(
        self,
        labels: np.ndarray,
        dissimilarity: Optional[DissimilarityMatrix] = None,
        data: Optional[np.ndarray] = None,
    ) -> Dict[str, float]:
        """
        Calculate clustering quality metrics.

        Args:
            labels: Cluster labels
            dissimilarity: Dissimilarities the clustering is judged on
            data: Raw observations, used when no dissimilarity is given

        Returns:
            Dictionary with average silhouette width and Dunn index
        """
        from clustkit.validation.internal import dunn_index, silhouette

        if not self.config.compute_quality_metrics:
            return {}

        n_clusters = len(np.unique(labels))
        if n_clusters < 2 or n_clusters >= len(labels):
            return {}

        if dissimilarity is None:
            if data is None:
                return {}
            dissimilarity = compute_distance(data)

        return {
            "silhouette_score": silhouette(labels, dissimilarity).average,
            "dunn_index": dunn_index(labels, dissimilarity),
        }
