"""
Unit tests for choosing the number of clusters.
"""

import numpy as np
import pytest

from clustkit.utils.error_handling import ConfigurationError, InvalidK
from clustkit.validation.optimal_k import elbow_method, gap_statistic, silhouette_method


@pytest.mark.unit
class TestElbow:
    """Test suite for the elbow method."""

    def test_three_blobs(self, clustered_data):
        """Test the elbow sits at three blobs."""
        data, _ = clustered_data
        result = elbow_method(
            data, range(1, 7), algorithm_params={"nstart": 25}, seed=0
        )

        assert result.method == "elbow"
        assert result.k_values == [1, 2, 3, 4, 5, 6]
        assert result.best_k == 3

    def test_wcss_decreasing_with_pam(self, clustered_data):
        """Test within-cluster sums of squares shrink as k grows."""
        data, _ = clustered_data
        result = elbow_method(data, [1, 2, 3, 4], algorithm="pam")
        assert all(np.diff(result.scores) < 0)

    def test_needs_three_values(self, clustered_data):
        """Test fewer than three candidates are rejected."""
        data, _ = clustered_data
        with pytest.raises(ConfigurationError):
            elbow_method(data, [2, 3])

    def test_needs_consecutive_values(self, clustered_data):
        """Test gaps between candidate k are rejected."""
        data, _ = clustered_data
        with pytest.raises(ConfigurationError, match="consecutive"):
            elbow_method(data, [2, 4, 8])

    def test_k_beyond_n(self, four_points):
        """Test candidates above n are rejected."""
        with pytest.raises(InvalidK):
            elbow_method(four_points, [1, 2, 5])


@pytest.mark.unit
class TestSilhouetteMethod:
    """Test suite for the average silhouette method."""

    def test_three_blobs(self, clustered_data):
        """Test the best average width is at three blobs."""
        data, _ = clustered_data
        result = silhouette_method(data, range(2, 7), algorithm="pam")

        assert result.best_k == 3
        assert len(result.scores) == 5
        assert max(result.scores) == result.scores[1]

    def test_hierarchical_algorithm(self, clustered_data):
        """Test any registry algorithm can be scored."""
        data, _ = clustered_data
        result = silhouette_method(
            data, [2, 3, 4], algorithm="agglomerative", algorithm_params={"linkage": "average"}
        )
        assert result.best_k == 3

    def test_k_one_rejected(self, clustered_data):
        """Test k = 1 has no silhouette."""
        data, _ = clustered_data
        with pytest.raises(InvalidK):
            silhouette_method(data, [1, 2, 3])


@pytest.mark.unit
class TestGapStatistic:
    """Test suite for the gap statistic."""

    def test_three_blobs(self, clustered_data):
        """Test the gap rule selects three blobs."""
        data, _ = clustered_data
        result = gap_statistic(
            data, range(1, 6), n_references=10, algorithm_params={"nstart": 10}, seed=0
        )

        assert result.method == "gap"
        assert result.best_k == 3
        assert len(result.standard_errors) == 5
        assert all(se >= 0 for se in result.standard_errors)

    def test_reproducible(self, clustered_data):
        """Test the same seed gives the same gaps."""
        data, _ = clustered_data
        first = gap_statistic(data, [1, 2, 3], n_references=3, algorithm="pam", seed=4)
        second = gap_statistic(data, [1, 2, 3], n_references=3, algorithm="pam", seed=4)
        assert first.scores == second.scores

    def test_single_reference_has_zero_error(self, clustered_data):
        """Test one reference set gives zero standard errors."""
        data, _ = clustered_data
        result = gap_statistic(data, [1, 2, 3], n_references=1, algorithm="pam", seed=0)
        assert result.standard_errors == [0.0, 0.0, 0.0]

    def test_invalid_references(self, clustered_data):
        """Test at least one reference set is required."""
        data, _ = clustered_data
        with pytest.raises(ConfigurationError):
            gap_statistic(data, [1, 2], n_references=0)
