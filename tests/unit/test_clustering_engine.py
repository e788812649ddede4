"""
Unit tests for ClusteringEngine orchestration layer.

Tests the ClusteringEngine class including:
- Algorithm selection and instantiation
- Defaults taken from settings
- Parameter validation
- Algorithm recommendation
- Optimal k estimation
"""

import pytest
import numpy as np
import pandas as pd

from clustkit.config.settings_loader import Settings
from clustkit.core.clustering_engine import ClusteringEngine
from clustkit.core.distance import compute_distance
from clustkit.datasets import load_usarrests
from clustkit.utils.error_handling import ConfigurationError, UnsupportedAlgorithm
from clustkit.validation.external import adjusted_rand_index


@pytest.mark.unit
class TestClusteringEngine:
    """Test suite for ClusteringEngine."""

    def test_init(self):
        """Test ClusteringEngine initialization."""
        engine = ClusteringEngine()
        assert engine is not None
        assert engine.settings.kmeans.nstart == 1

    def test_algorithm_registry(self):
        """Test that all algorithms are registered."""
        engine = ClusteringEngine()

        expected_algorithms = ["kmeans", "pam", "clara", "agglomerative", "hkmeans"]
        for alg in expected_algorithms:
            assert alg in engine.ALGORITHMS

    @pytest.mark.parametrize("algorithm", ["pam", "clara", "agglomerative", "hkmeans"])
    def test_cluster_each_algorithm(self, clustered_data, algorithm):
        """Test every registered algorithm recovers well separated blobs."""
        data, truth = clustered_data
        engine = ClusteringEngine()

        result = engine.cluster(data, algorithm, {"n_clusters": 3}, seed=0)

        assert result.n_clusters == 3
        assert len(result.labels) == len(data)
        assert adjusted_rand_index(result.labels, truth) == pytest.approx(1.0)

    def test_cluster_kmeans(self, clustered_data):
        """Test clustering with K-Means algorithm."""
        data, _ = clustered_data
        engine = ClusteringEngine()

        result = engine.cluster(data, "kmeans", {"n_clusters": 3, "nstart": 10}, seed=0)

        assert result.n_clusters == 3
        assert "silhouette_score" in result.quality_metrics

    def test_case_insensitive_algorithm_name(self, four_points):
        """Test that algorithm names are case-insensitive."""
        engine = ClusteringEngine()

        for alg_name in ["PAM", "Pam", "pam"]:
            result = engine.cluster(four_points, alg_name, {"n_clusters": 2})
            assert result.n_clusters == 2

    def test_unsupported_algorithm(self, four_points):
        """Test that unsupported algorithm raises error."""
        engine = ClusteringEngine()

        with pytest.raises(UnsupportedAlgorithm, match="Unsupported algorithm"):
            engine.cluster(four_points, "dbscan", {"n_clusters": 2})

    def test_dissimilarity_input(self, mixed_records):
        """Test pam and agglomerative accept a precomputed matrix."""
        engine = ClusteringEngine()
        D = compute_distance(mixed_records, metric="gower")

        for algorithm in ("pam", "agglomerative"):
            result = engine.cluster(D, algorithm, {"n_clusters": 2})
            assert result.n_clusters == 2

    def test_dataframe_input(self, usarrests):
        """Test a DataFrame is clustered by its rows."""
        dataset = load_usarrests()
        frame = pd.DataFrame(usarrests, index=dataset.row_names, columns=dataset.feature_names)
        engine = ClusteringEngine()

        result = engine.cluster(frame, "pam", {"n_clusters": 4})
        expected = engine.cluster(usarrests, "pam", {"n_clusters": 4})

        assert len(result.labels) == 50
        np.testing.assert_array_equal(result.medoids, expected.medoids)

    def test_dissimilarity_rejected_for_kmeans(self, four_points):
        """Test raw-data algorithms refuse a dissimilarity matrix."""
        engine = ClusteringEngine()
        D = compute_distance(four_points)

        with pytest.raises(ConfigurationError):
            engine.cluster(D, "kmeans", {"n_clusters": 2})

    def test_defaults_from_settings(self):
        """Test missing parameters are filled from the engine settings."""
        settings = Settings(hierarchical={"linkage": "ward"}, kmeans={"nstart": 4})
        engine = ClusteringEngine(settings)

        agglomerative = engine._get_algorithm("agglomerative", {"n_clusters": 2}, None, True)
        kmeans = engine._get_algorithm("kmeans", {"n_clusters": 2}, None, True)

        assert agglomerative.linkage.value == "ward"
        assert kmeans.nstart == 4

    def test_explicit_params_override_settings(self):
        """Test caller parameters win over settings."""
        engine = ClusteringEngine(Settings(kmeans={"nstart": 4}))
        kmeans = engine._get_algorithm("kmeans", {"n_clusters": 2, "nstart": 2}, None, True)
        assert kmeans.nstart == 2

    def test_standardize_setting(self):
        """Test features are z-scored before clustering when configured."""
        # the second feature dominates unless both are rescaled
        data = np.array([[0.0, 0.0], [0.0, 100.0], [1.0, 0.0], [1.0, 100.0]])
        engine = ClusteringEngine(Settings(distance={"standardize": True}))

        result = engine.cluster(data, "pam", {"n_clusters": 2})
        raw = ClusteringEngine().cluster(data, "pam", {"n_clusters": 2})

        assert raw.labels[0] == raw.labels[2]
        assert result.n_clusters == 2
        assert result.dissimilarity[0, 1] == pytest.approx(result.dissimilarity[0, 2])

    def test_seeded_results_reproducible(self, clustered_data):
        """Test the same seed reproduces the same clustering."""
        data, _ = clustered_data
        engine = ClusteringEngine()

        first = engine.cluster(data, "clara", {"n_clusters": 4}, seed=11)
        second = engine.cluster(data, "clara", {"n_clusters": 4}, seed=11)
        np.testing.assert_array_equal(first.labels, second.labels)


@pytest.mark.unit
class TestAlgorithmRecommendation:
    """Test suite for get_recommended_algorithm."""

    def test_small_dataset(self):
        """Test small datasets get a hierarchy."""
        assert ClusteringEngine().get_recommended_algorithm(50) == "agglomerative"

    def test_medium_dataset(self):
        """Test medium datasets get PAM."""
        assert ClusteringEngine().get_recommended_algorithm(500) == "pam"

    def test_large_dataset(self):
        """Test large datasets get CLARA."""
        assert ClusteringEngine().get_recommended_algorithm(10000) == "clara"

    def test_large_mixed_dataset(self):
        """Test a non-numeric metric keeps PAM at any size."""
        assert ClusteringEngine().get_recommended_algorithm(10000, metric="gower") == "pam"


@pytest.mark.unit
class TestOptimalK:
    """Test suite for estimate_optimal_k."""

    def test_silhouette(self, clustered_data):
        """Test the silhouette method finds three blobs."""
        data, _ = clustered_data
        engine = ClusteringEngine()

        k = engine.estimate_optimal_k(data, min_k=2, max_k=6, method="silhouette", algorithm="pam")
        assert k == 3

    def test_gap(self, clustered_data):
        """Test the gap statistic finds three blobs."""
        data, _ = clustered_data
        settings = Settings(validation={"gap_references": 10}, kmeans={"nstart": 10})
        engine = ClusteringEngine(settings)

        k = engine.estimate_optimal_k(data, min_k=1, max_k=5, method="gap", seed=0)
        assert k == 3

    def test_range_clipped_to_data(self, four_points):
        """Test max_k is capped at the number of observations."""
        engine = ClusteringEngine(Settings(kmeans={"nstart": 5}))
        k = engine.estimate_optimal_k(four_points, min_k=1, max_k=10, method="elbow", seed=0)
        assert 1 <= k <= 4

    def test_unknown_method(self, clustered_data):
        """Test an unknown method is rejected."""
        data, _ = clustered_data
        with pytest.raises(ConfigurationError):
            ClusteringEngine().estimate_optimal_k(data, 2, 5, method="calinski")

    def test_empty_range(self, four_points):
        """Test an empty candidate range is rejected."""
        with pytest.raises(ConfigurationError):
            ClusteringEngine().estimate_optimal_k(four_points, min_k=5, max_k=8)


@pytest.mark.unit
class TestConfigValidation:
    """Test suite for validate_clustering_config."""

    def test_valid_kmeans(self):
        """Test a valid K-Means configuration."""
        errors = ClusteringEngine().validate_clustering_config(
            "kmeans", {"n_clusters": 3, "nstart": 10, "init": "kmeans++"}
        )
        assert errors == {}

    def test_invalid_kmeans(self):
        """Test invalid K-Means parameters are reported."""
        errors = ClusteringEngine().validate_clustering_config(
            "kmeans", {"n_clusters": 0, "nstart": 0, "init": "forgy"}
        )
        assert set(errors) == {"n_clusters", "nstart", "init"}

    def test_invalid_agglomerative(self):
        """Test invalid hierarchical parameters are reported."""
        errors = ClusteringEngine().validate_clustering_config(
            "agglomerative", {"linkage": "nearest", "distance_threshold": -1}
        )
        assert set(errors) == {"linkage", "distance_threshold"}

    def test_clara_rejects_gower(self):
        """Test CLARA is limited to numeric metrics."""
        errors = ClusteringEngine().validate_clustering_config(
            "clara", {"n_clusters": 3, "metric": "gower", "sample_size": 2}
        )
        assert set(errors) == {"metric", "sample_size"}

    def test_unknown_algorithm(self):
        """Test an unknown algorithm is reported."""
        errors = ClusteringEngine().validate_clustering_config("dbscan", {})
        assert "algorithm" in errors
