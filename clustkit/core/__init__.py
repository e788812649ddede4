"""
Core clustering module.

Exports:
- ClusteringEngine: Main orchestration class
- BaseClusteringAlgorithm: Base class for algorithms
- ClusteringResult: Result container
- ClusteringConfig: Configuration container
- DissimilarityMatrix and compute_distance: Distance engine
- Dendrogram: Merge tree with cut and cophenetic helpers
- Individual algorithm implementations
"""

from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringResult,
    ClusteringConfig,
)
from clustkit.core.clustering_engine import ClusteringEngine
from clustkit.core.distance import DissimilarityMatrix, compute_distance, cross_distances
from clustkit.core.dendrogram import Dendrogram
from clustkit.core.kmeans_algorithm import KMeansAlgorithm, kmeans
from clustkit.core.pam_algorithm import PAMAlgorithm, pam
from clustkit.core.clara_algorithm import CLARAAlgorithm, clara
from clustkit.core.agglomerative_algorithm import AgglomerativeAlgorithm, build_dendrogram
from clustkit.core.hkmeans_algorithm import HKMeansAlgorithm, hkmeans

__all__ = [
    "ClusteringEngine",
    "BaseClusteringAlgorithm",
    "ClusteringResult",
    "ClusteringConfig",
    "DissimilarityMatrix",
    "compute_distance",
    "cross_distances",
    "Dendrogram",
    "KMeansAlgorithm",
    "kmeans",
    "PAMAlgorithm",
    "pam",
    "CLARAAlgorithm",
    "clara",
    "AgglomerativeAlgorithm",
    "build_dendrogram",
    "HKMeansAlgorithm",
    "hkmeans",
]
