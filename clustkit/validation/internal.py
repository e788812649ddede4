"""
Internal validation measures.

Scores a partition using only the data (or its dissimilarities):
- silhouette widths (higher is better, in [-1, 1])
- Dunn index (higher is better)
- connectivity (lower is better)
- within-cluster sum of squares
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence

import numpy as np

from clustkit.core.dataset import as_matrix, check_labels
from clustkit.core.distance import DissimilarityMatrix
from clustkit.utils.advanced_logging import get_logger
from clustkit.utils.error_handling import ConfigurationError, InvalidK

logger = get_logger(__name__)


@dataclass
class SilhouetteResult:
    """
    Silhouette widths of a partition.

    Attributes:
        widths: Width per observation
        neighbors: Closest other cluster per observation
        cluster_averages: Mean width per cluster label
        average: Mean width over all observations
    """

    widths: np.ndarray
    neighbors: np.ndarray
    cluster_averages: Dict[int, float]
    average: float


def _encode(labels: np.ndarray):
    """Map arbitrary labels to 0..k-1; returns (unique labels, codes)."""
    unique, codes = np.unique(labels, return_inverse=True)
    return unique, codes


def silhouette(labels: Sequence[int], dissimilarity: DissimilarityMatrix) -> SilhouetteResult:
    """
    Silhouette width s(i) = (b(i) - a(i)) / max(a(i), b(i)).

    a(i) is the mean dissimilarity to the rest of the own cluster, b(i) the
    smallest mean dissimilarity to another cluster. Members of singleton
    clusters get width 0.

    Raises:
        InvalidK: Unless 2 <= k <= n - 1
    """
    D = dissimilarity.values
    n = dissimilarity.n
    labels = check_labels(labels, n)
    unique, codes = _encode(labels)
    k = len(unique)
    if k < 2 or k > n - 1:
        raise InvalidK(
            f"Silhouette needs 2 <= k <= n-1 clusters, got k={k} for n={n}",
            details={"k": k, "n": n},
        )

    members = np.zeros((n, k))
    members[np.arange(n), codes] = 1.0
    counts = members.sum(axis=0)
    sums = D @ members

    own_count = counts[codes] - 1
    a = np.divide(
        sums[np.arange(n), codes], own_count, out=np.zeros(n), where=own_count > 0
    )

    mean_to = sums / counts
    mean_to[np.arange(n), codes] = np.inf
    neighbor_codes = np.argmin(mean_to, axis=1)
    b = mean_to[np.arange(n), neighbor_codes]

    denom = np.maximum(a, b)
    widths = np.divide(b - a, denom, out=np.zeros(n), where=denom > 0)
    widths[own_count == 0] = 0.0

    cluster_averages = {
        _as_python(unique[c]): float(widths[codes == c].mean()) for c in range(k)
    }
    average = float(widths.mean())
    logger.debug("silhouette_computed", n=n, k=k, average=round(average, 6))

    return SilhouetteResult(
        widths=widths,
        neighbors=unique[neighbor_codes],
        cluster_averages=cluster_averages,
        average=average,
    )


def _as_python(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def dunn_index(labels: Sequence[int], dissimilarity: DissimilarityMatrix) -> float:
    """
    Smallest between-cluster dissimilarity over the largest cluster diameter.

    Returns ``inf`` when every cluster has diameter 0 and clusters are
    separated.

    Raises:
        InvalidK: If fewer than two clusters are present
    """
    D = dissimilarity.values
    labels = check_labels(labels, dissimilarity.n)
    if len(np.unique(labels)) < 2:
        raise InvalidK("Dunn index needs at least 2 clusters")

    same = labels[:, None] == labels[None, :]
    separation = float(D[~same].min())
    diameter = float(D[same].max())

    if diameter == 0.0:
        return np.inf if separation > 0 else 0.0
    return separation / diameter


def connectivity(
    labels: Sequence[int],
    dissimilarity: DissimilarityMatrix,
    neighbour_size: int = 10,
) -> float:
    """
    Connectivity: for each observation, add 1/j when its j-th nearest
    neighbour sits in a different cluster (j = 1..neighbour_size).

    Ranges from 0 upward; lower is better.
    """
    D = dissimilarity.values
    n = dissimilarity.n
    labels = check_labels(labels, n)
    if neighbour_size < 1:
        raise ConfigurationError(f"neighbour_size must be >= 1, got {neighbour_size}")
    size = min(neighbour_size, n - 1)
    if size == 0:
        return 0.0

    ranked = np.array(D, dtype=float)
    np.fill_diagonal(ranked, -np.inf)
    order = np.argsort(ranked, axis=1, kind="stable")[:, 1 : size + 1]

    mismatched = labels[order] != labels[:, None]
    weights = 1.0 / np.arange(1, size + 1)
    return float((mismatched * weights).sum())


def within_cluster_ss(data: Any, labels: Sequence[int]) -> float:
    """Total squared Euclidean distance of observations to their cluster mean."""
    X = as_matrix(data)
    labels = check_labels(labels, X.shape[0])
    total = 0.0
    for label in np.unique(labels):
        members = X[labels == label]
        total += float(np.sum((members - members.mean(axis=0)) ** 2))
    return total
