"""
Cluster validation: tendency, internal, external and stability measures,
cluster-count selection, and the ClusterValidator that compares algorithms.
"""

from clustkit.validation.external import (
    adjusted_rand_index,
    compare_partitions,
    contingency_table,
    rand_index,
    variation_of_information,
)
from clustkit.validation.internal import (
    SilhouetteResult,
    connectivity,
    dunn_index,
    silhouette,
    within_cluster_ss,
)
from clustkit.validation.optimal_k import elbow_method, gap_statistic, silhouette_method
from clustkit.validation.stability import stability_measures
from clustkit.validation.tendency import hopkins_statistic
from clustkit.validation.validation_engine import ClusterValidator

__all__ = [
    "adjusted_rand_index",
    "compare_partitions",
    "contingency_table",
    "rand_index",
    "variation_of_information",
    "SilhouetteResult",
    "connectivity",
    "dunn_index",
    "silhouette",
    "within_cluster_ss",
    "elbow_method",
    "gap_statistic",
    "silhouette_method",
    "stability_measures",
    "hopkins_statistic",
    "ClusterValidator",
]
