"""
Clustering Engine - Orchestrates clustering operations.

Main entry point for clustering functionality.
Manages algorithm selection, execution, and result handling.
"""

import logging
from typing import Dict, Any, Optional
import numpy as np

from clustkit.config.settings_loader import Settings
from clustkit.core.agglomerative_algorithm import AgglomerativeAlgorithm
from clustkit.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    SeedLike,
)
from clustkit.core.clara_algorithm import CLARAAlgorithm
from clustkit.core.dataset import standardize
from clustkit.core.distance import DissimilarityMatrix, NUMERIC_METRICS, normalize_metric
from clustkit.core.hkmeans_algorithm import HKMeansAlgorithm
from clustkit.core.kmeans_algorithm import KMeansAlgorithm
from clustkit.core.pam_algorithm import PAMAlgorithm
from clustkit.schemas.data_models import InitMethod, LinkageMethod
from clustkit.utils.error_handling import ConfigurationError, UnsupportedAlgorithm

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Main clustering engine that orchestrates different algorithms.

    Provides a unified interface for all clustering operations regardless
    of the underlying algorithm. Defaults for parameters the caller leaves
    out come from the engine's Settings.
    """

    # Registry of available algorithms
    ALGORITHMS: Dict[str, type] = {
        "kmeans": KMeansAlgorithm,
        "pam": PAMAlgorithm,
        "clara": CLARAAlgorithm,
        "agglomerative": AgglomerativeAlgorithm,
        "hkmeans": HKMeansAlgorithm,
    }

    # Algorithms that accept a DissimilarityMatrix instead of raw data
    DISSIMILARITY_ALGORITHMS = {"pam", "agglomerative"}

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize clustering engine.

        Args:
            settings: Defaults for algorithm parameters (fresh defaults if None)
        """
        self.settings = settings or Settings()
        logger.debug("Initialized ClusteringEngine")

    def _default_params(self, algorithm: str) -> Dict[str, Any]:
        s = self.settings
        metric = s.distance.metric
        if algorithm == "kmeans":
            return s.kmeans.model_dump()
        if algorithm == "pam":
            return {"metric": metric, **s.pam.model_dump()}
        if algorithm == "clara":
            return {"metric": metric, "max_iter": s.pam.max_iter, **s.clara.model_dump()}
        if algorithm == "agglomerative":
            return s.hierarchical.model_dump()
        if algorithm == "hkmeans":
            return {"max_iter": s.kmeans.max_iter}
        return {}

    def _get_algorithm(
        self,
        algorithm: str,
        algorithm_params: Optional[Dict[str, Any]],
        seed: SeedLike,
        compute_quality_metrics: bool,
    ) -> BaseClusteringAlgorithm:
        algorithm = algorithm.lower()
        if algorithm not in self.ALGORITHMS:
            raise UnsupportedAlgorithm(
                f"Unsupported algorithm '{algorithm}'. "
                f"Supported: {list(self.ALGORITHMS.keys())}",
                details={"algorithm": algorithm},
            )

        params = self._default_params(algorithm)
        params.update(algorithm_params or {})

        config = ClusteringConfig(
            algorithm_name=algorithm,
            params=params,
            seed=seed,
            compute_quality_metrics=compute_quality_metrics,
        )
        return self.ALGORITHMS[algorithm](config)

    def cluster(
        self,
        data: Any,
        algorithm: str,
        algorithm_params: Optional[Dict[str, Any]] = None,
        seed: SeedLike = None,
        compute_quality_metrics: bool = True,
    ) -> ClusteringResult:
        """
        Perform clustering using the specified algorithm.

        Args:
            data: Observations (N x D); pam and agglomerative also accept a
                DissimilarityMatrix
            algorithm: Algorithm name (kmeans/pam/clara/agglomerative/hkmeans)
            algorithm_params: Algorithm-specific parameters (n_clusters, ...)
            seed: Seed or generator for randomised algorithms
            compute_quality_metrics: Attach silhouette and Dunn scores

        Returns:
            ClusteringResult with labels and metrics

        Raises:
            UnsupportedAlgorithm: If algorithm is not supported
        """
        clusterer = self._get_algorithm(algorithm, algorithm_params, seed, compute_quality_metrics)

        if isinstance(data, DissimilarityMatrix) and clusterer.name not in self.DISSIMILARITY_ALGORITHMS:
            raise ConfigurationError(
                f"{clusterer.name} needs raw observations, not a dissimilarity matrix",
                details={"algorithm": clusterer.name},
            )

        if self.settings.distance.standardize and not isinstance(data, DissimilarityMatrix):
            data = standardize(data)

        logger.info(f"Starting {clusterer.name} clustering on {len(data)} observations")

        result = clusterer.cluster(data)

        logger.info(
            f"{clusterer.name} clustering complete: {result.n_clusters} clusters, "
            f"sizes {result.sizes.tolist()}"
        )

        return result

    def get_recommended_algorithm(
        self,
        n_observations: int,
        metric: str = "euclidean",
    ) -> str:
        """
        Recommend clustering algorithm based on dataset characteristics.

        Args:
            n_observations: Number of observations to cluster
            metric: Dissimilarity the caller wants to use

        Returns:
            Recommended algorithm name
        """
        metric = normalize_metric(metric)

        if n_observations < 100:
            # Small dataset: a full hierarchy is cheap and informative
            return "agglomerative"

        elif n_observations < 2000 or metric not in NUMERIC_METRICS:
            # Medium dataset or mixed data: medoids on the full matrix
            return "pam"

        else:
            # Large dataset: sampled medoids keep memory linear
            return "clara"

    def estimate_optimal_k(
        self,
        data: Any,
        min_k: Optional[int] = None,
        max_k: Optional[int] = None,
        method: str = "elbow",
        algorithm: str = "kmeans",
        seed: SeedLike = None,
    ) -> int:
        """
        Estimate optimal number of clusters.

        Args:
            data: Numeric observations (N x D)
            min_k: Minimum number of clusters to try
            max_k: Maximum number of clusters to try
            method: elbow, silhouette or gap
            algorithm: Partitioning algorithm scored at each k
            seed: Seed or generator

        Returns:
            Estimated optimal k
        """
        from clustkit.validation.optimal_k import elbow_method, gap_statistic, silhouette_method

        n = len(data)
        min_k = self.settings.validation.min_k if min_k is None else min_k
        max_k = self.settings.validation.max_k if max_k is None else max_k

        if method == "silhouette":
            max_k = min(max_k, n - 1)
            min_k = max(min_k, 2)
        else:
            max_k = min(max_k, n)
        if max_k < min_k:
            raise ConfigurationError(
                f"No candidate k between {min_k} and {max_k} for {n} observations"
            )
        k_values = list(range(min_k, max_k + 1))

        if method == "elbow":
            result = elbow_method(data, k_values, algorithm=algorithm, seed=seed, engine=self)
        elif method == "silhouette":
            result = silhouette_method(
                data, k_values, algorithm=algorithm, metric=self.settings.distance.metric,
                seed=seed, engine=self,
            )
        elif method == "gap":
            result = gap_statistic(
                data, k_values, n_references=self.settings.validation.gap_references,
                algorithm=algorithm, seed=seed, engine=self,
            )
        else:
            raise ConfigurationError(
                f"Unsupported method '{method}'. Supported: ['elbow', 'silhouette', 'gap']"
            )

        logger.info(f"Estimated optimal k={result.best_k} (tried k={min_k} to {max_k}, {method})")

        return result.best_k

    def validate_clustering_config(
        self,
        algorithm: str,
        params: Dict[str, Any],
    ) -> Dict[str, str]:
        """
        Validate clustering configuration.

        Args:
            algorithm: Algorithm name
            params: Algorithm parameters

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        if algorithm not in self.ALGORITHMS:
            errors["algorithm"] = f"Unsupported algorithm '{algorithm}'"
            return errors

        n_clusters = params.get("n_clusters")
        if n_clusters is not None and (not isinstance(n_clusters, (int, np.integer)) or n_clusters < 1):
            errors["n_clusters"] = "Must be an integer >= 1"

        metric = params.get("metric")
        if metric is not None and metric not in NUMERIC_METRICS | {"gower"}:
            errors["metric"] = f"Unsupported metric '{metric}'"

        # Algorithm-specific validation
        if algorithm == "kmeans":
            if params.get("nstart", 1) < 1:
                errors["nstart"] = "Must be >= 1"
            if params.get("max_iter", 10) < 1:
                errors["max_iter"] = "Must be >= 1"
            if params.get("init", "random") not in [m.value for m in InitMethod]:
                errors["init"] = f"Must be one of {[m.value for m in InitMethod]}"

        elif algorithm == "pam":
            if params.get("max_iter", 100) < 0:
                errors["max_iter"] = "Must be >= 0"

        elif algorithm == "clara":
            if params.get("samples", 5) < 1:
                errors["samples"] = "Must be >= 1"
            sample_size = params.get("sample_size")
            if sample_size is not None and n_clusters is not None and sample_size < n_clusters:
                errors["sample_size"] = "Must be >= n_clusters"
            if metric == "gower":
                errors["metric"] = "CLARA supports numeric metrics only"

        elif algorithm == "agglomerative":
            if params.get("linkage", "complete") not in [m.value for m in LinkageMethod]:
                errors["linkage"] = f"Must be one of {[m.value for m in LinkageMethod]}"
            distance_threshold = params.get("distance_threshold")
            if distance_threshold is not None and distance_threshold < 0:
                errors["distance_threshold"] = "Must be >= 0"

        elif algorithm == "hkmeans":
            if params.get("max_iter", 10) < 1:
                errors["max_iter"] = "Must be >= 1"

        return errors
