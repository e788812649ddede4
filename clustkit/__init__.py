"""
clustkit - a clustering analysis toolkit.

Distance computation, partitioning (k-means, PAM, CLARA) and hierarchical
clustering, plus the validation measures used to pick and compare them.
"""

__version__ = "1.0.0"

from clustkit.core import (
    ClusteringConfig,
    ClusteringEngine,
    ClusteringResult,
    Dendrogram,
    DissimilarityMatrix,
    build_dendrogram,
    clara,
    compute_distance,
    hkmeans,
    kmeans,
    pam,
)
from clustkit.core.dataset import standardize
from clustkit.core.dendrogram import cophenetic_correlation, cophenetic_matrix, cut, cut_at_height
from clustkit.validation import (
    ClusterValidator,
    adjusted_rand_index,
    compare_partitions,
    dunn_index,
    gap_statistic,
    hopkins_statistic,
    silhouette,
    variation_of_information,
)

__all__ = [
    "__version__",
    "ClusteringConfig",
    "ClusteringEngine",
    "ClusteringResult",
    "ClusterValidator",
    "Dendrogram",
    "DissimilarityMatrix",
    "adjusted_rand_index",
    "build_dendrogram",
    "clara",
    "compare_partitions",
    "compute_distance",
    "cophenetic_correlation",
    "cophenetic_matrix",
    "cut",
    "cut_at_height",
    "dunn_index",
    "gap_statistic",
    "hkmeans",
    "hopkins_statistic",
    "kmeans",
    "pam",
    "silhouette",
    "standardize",
    "variation_of_information",
]
