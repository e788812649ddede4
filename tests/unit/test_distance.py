"""
Unit tests for the distance engine.

Tests:
- Numeric metrics against scipy.spatial.distance
- Correlation-based metrics
- Gower dissimilarity for mixed data
- DissimilarityMatrix invariants
- Input validation and standardization
"""

import numpy as np
import pandas as pd
import pytest
from scipy.spatial.distance import pdist, squareform
from scipy.stats import kendalltau, spearmanr

from clustkit.core.dataset import as_matrix, standardize
from clustkit.core.distance import DissimilarityMatrix, compute_distance, cross_distances
from clustkit.utils.error_handling import (
    DimensionMismatch,
    InvalidDataError,
    UnsupportedMetric,
)


@pytest.mark.unit
class TestNumericMetrics:
    """Geometric metrics agree with scipy."""

    @pytest.mark.parametrize(
        "metric,scipy_metric,kwargs",
        [
            ("euclidean", "euclidean", {}),
            ("manhattan", "cityblock", {}),
            ("maximum", "chebyshev", {}),
            ("canberra", "canberra", {}),
            ("minkowski", "minkowski", {"p": 3}),
        ],
    )
    def test_matches_scipy(self, small_data, metric, scipy_metric, kwargs):
        """Test each metric against scipy's pdist."""
        D = compute_distance(small_data, metric=metric, **kwargs)
        expected = squareform(pdist(small_data, metric=scipy_metric, **kwargs))
        np.testing.assert_allclose(D.values, expected, atol=1e-10)

    def test_four_points_euclidean(self, four_points):
        """Test hand-computed distances on the four-point example."""
        D = compute_distance(four_points)
        assert D[0, 1] == pytest.approx(1.0)
        assert D[0, 2] == pytest.approx(10.0)
        assert D[0, 3] == pytest.approx(np.sqrt(101))

    def test_metric_is_case_insensitive(self, four_points):
        """Test metric names are normalized."""
        D = compute_distance(four_points, metric="Euclidean")
        assert D.metric == "euclidean"

    def test_cross_distances_shape(self, small_data):
        """Test rectangular distances between two matrices."""
        result = cross_distances(small_data, small_data[:3], metric="manhattan")
        assert result.shape == (12, 3)
        np.testing.assert_allclose(np.diag(result[:3]), 0.0)


@pytest.mark.unit
class TestCorrelationMetrics:
    """Correlation-based dissimilarities."""

    def test_pearson_matches_scipy(self, small_data):
        """Test pearson distance equals scipy's correlation distance."""
        D = compute_distance(small_data, metric="pearson")
        expected = squareform(pdist(small_data, metric="correlation"))
        np.testing.assert_allclose(D.values, expected, atol=1e-10)

    def test_spearman(self, small_data):
        """Test spearman distance is 1 minus rank correlation of rows."""
        D = compute_distance(small_data, metric="spearman")
        rho = spearmanr(small_data[0], small_data[1])[0]
        assert D[0, 1] == pytest.approx(1.0 - rho)

    def test_kendall(self, small_data):
        """Test kendall distance is 1 minus tau-b of rows."""
        D = compute_distance(small_data, metric="kendall")
        tau = kendalltau(small_data[2], small_data[5])[0]
        assert D[2, 5] == pytest.approx(1.0 - tau)

    def test_zero_variance_row_correlates_zero(self):
        """Test a constant row is treated as uncorrelated."""
        D = compute_distance([[1.0, 1.0, 1.0], [1.0, 2.0, 3.0]], metric="pearson")
        assert D[0, 1] == pytest.approx(1.0)

    def test_perfectly_correlated_rows(self):
        """Test proportional rows have distance 0 and reversed rows 2."""
        D = compute_distance(
            [[1.0, 2.0, 3.0], [2.0, 4.0, 6.0], [3.0, 2.0, 1.0]], metric="pearson"
        )
        assert D[0, 1] == pytest.approx(0.0, abs=1e-12)
        assert D[0, 2] == pytest.approx(2.0)


@pytest.mark.unit
class TestGower:
    """Gower dissimilarity for mixed-type records."""

    def test_inferred_types(self, mixed_records):
        """Test numbers are treated as numeric and strings as nominal."""
        D = compute_distance(mixed_records, metric="gower")
        # numeric 0.5, colour mismatch, level mismatch, flag range 1
        assert D[0, 1] == pytest.approx((0.5 + 1 + 1 + 1) / 4)
        assert D[0, 2] == pytest.approx((1.0 + 0 + 1 + 0) / 4)

    def test_asymmetric_binary(self):
        """Test shared absences are ignored for binary features."""
        D = compute_distance(
            [[1, 0], [0, 0], [1, 1]], metric="gower", feature_types=["binary", "binary"]
        )
        assert D[0, 1] == pytest.approx(1.0)
        assert D[0, 2] == pytest.approx(0.5)
        assert D[1, 2] == pytest.approx(1.0)

    def test_ordinal_levels_ranked(self):
        """Test ordinal values are ranked before scaling by the range."""
        D = compute_distance([["a"], ["b"], ["c"]], metric="gower", feature_types=["ordinal"])
        assert D[0, 1] == pytest.approx(0.5)
        assert D[0, 2] == pytest.approx(1.0)

    def test_weights(self):
        """Test per-feature weights."""
        D = compute_distance(
            [[0.0, "a"], [1.0, "a"], [0.5, "b"]], metric="gower", weights=[3, 1]
        )
        assert D[0, 2] == pytest.approx((3 * 0.5 + 1 * 1) / 4)

    def test_missing_values_skip_feature(self):
        """Test None skips that feature for the pair."""
        D = compute_distance([[1.0, "a"], [None, "a"], [3.0, "b"]], metric="gower")
        assert D[0, 1] == pytest.approx(0.0)
        assert D[1, 2] == pytest.approx(1.0)
        assert D[0, 2] == pytest.approx(1.0)

    def test_no_usable_feature_raises(self):
        """Test a pair sharing only absences is rejected."""
        with pytest.raises(InvalidDataError):
            compute_distance([[0], [0]], metric="gower", feature_types=["binary"])

    def test_gower_range(self, mixed_records):
        """Test every gower value lies in [0, 1]."""
        D = compute_distance(mixed_records, metric="gower")
        assert (D.values >= 0).all() and (D.values <= 1).all()

    def test_dataframe_rows(self):
        """Test a DataFrame is read row by row with its index as labels."""
        frame = pd.DataFrame(
            {"age": [20, 30, 40], "sex": ["m", "f", "m"]}, index=["ann", "bob", "cy"]
        )
        D = compute_distance(frame, metric="gower")

        assert D.n == 3
        assert D.labels == ["ann", "bob", "cy"]
        assert D[0, 1] == pytest.approx((0.5 + 1) / 2)
        assert D[0, 2] == pytest.approx((1.0 + 0) / 2)
        np.testing.assert_allclose(
            D.values, compute_distance(frame.values.tolist(), metric="gower").values
        )

    def test_dataframe_missing_values(self):
        """Test NaN cells of a DataFrame skip that feature for the pair."""
        frame = pd.DataFrame({"age": [1.0, np.nan, 3.0], "colour": ["a", "a", "b"]})
        D = compute_distance(frame, metric="gower")

        assert D[0, 1] == pytest.approx(0.0)
        assert D[0, 2] == pytest.approx(1.0)

    def test_cross_distances_rejects_gower(self, small_data):
        """Test gower cannot be computed between separate matrices."""
        with pytest.raises(UnsupportedMetric):
            cross_distances(small_data, small_data, metric="gower")


@pytest.mark.unit
class TestDissimilarityMatrix:
    """DissimilarityMatrix invariants."""

    @pytest.mark.parametrize(
        "metric", ["euclidean", "manhattan", "maximum", "canberra", "pearson", "spearman", "kendall"]
    )
    def test_symmetric_zero_diagonal_non_negative(self, small_data, metric):
        """Test every metric yields a valid dissimilarity matrix."""
        D = compute_distance(small_data, metric=metric).values
        np.testing.assert_array_equal(D, D.T)
        np.testing.assert_array_equal(np.diag(D), 0.0)
        assert (D >= 0).all()

    def test_read_only(self, four_points):
        """Test the stored array cannot be modified."""
        D = compute_distance(four_points)
        with pytest.raises(ValueError):
            D.values[0, 1] = 5.0

    def test_condensed_round_trip(self, small_data):
        """Test condensed form matches scipy's layout."""
        D = compute_distance(small_data)
        np.testing.assert_allclose(D.condensed(), pdist(small_data))
        rebuilt = DissimilarityMatrix.from_condensed(D.condensed())
        np.testing.assert_allclose(rebuilt.values, D.values)

    def test_invalid_condensed_length(self):
        """Test a condensed vector of impossible length."""
        with pytest.raises(DimensionMismatch):
            DissimilarityMatrix.from_condensed([1.0, 2.0])

    def test_rejects_asymmetric(self):
        """Test asymmetric input is rejected."""
        with pytest.raises(InvalidDataError):
            DissimilarityMatrix([[0.0, 1.0], [2.0, 0.0]])

    def test_rejects_negative(self):
        """Test negative dissimilarities are rejected."""
        with pytest.raises(InvalidDataError):
            DissimilarityMatrix([[0.0, -1.0], [-1.0, 0.0]])

    def test_rejects_non_square(self):
        """Test non-square input is rejected."""
        with pytest.raises(DimensionMismatch):
            DissimilarityMatrix([[0.0, 1.0, 2.0], [1.0, 0.0, 3.0]])

    def test_subset(self, four_points):
        """Test restricting to a subset of observations."""
        D = compute_distance(four_points, labels=["a", "b", "c", "d"])
        sub = D.subset([0, 2])
        assert sub.n == 2
        assert sub[0, 1] == pytest.approx(10.0)
        assert sub.labels == ["a", "c"]


@pytest.mark.unit
class TestInputValidation:
    """Dataset validation and standardization."""

    def test_ragged_rows(self):
        """Test rows of different length raise DimensionMismatch."""
        with pytest.raises(DimensionMismatch):
            compute_distance([[1.0, 2.0], [3.0]])

    def test_unknown_metric(self, four_points):
        """Test an unknown metric name raises UnsupportedMetric."""
        with pytest.raises(UnsupportedMetric):
            compute_distance(four_points, metric="cosine-ish")

    def test_missing_values_rejected(self):
        """Test NaN is rejected for numeric metrics."""
        with pytest.raises(InvalidDataError):
            compute_distance([[1.0, np.nan], [2.0, 3.0]])

    def test_empty_dataset(self):
        """Test zero observations are rejected."""
        with pytest.raises(InvalidDataError):
            as_matrix([])

    def test_dataframe_input(self, four_points):
        """Test a numeric DataFrame is treated as rows of observations."""
        frame = pd.DataFrame(four_points, columns=["x", "y"], index=list("abcd"))

        np.testing.assert_array_equal(as_matrix(frame), four_points)
        D = compute_distance(frame)
        assert D.n == 4
        assert D.labels == ["a", "b", "c", "d"]
        assert D[0, 2] == pytest.approx(10.0)

    def test_non_numeric_dataframe_rejected(self):
        """Test text columns are rejected for numeric metrics."""
        frame = pd.DataFrame({"age": [20, 30], "sex": ["m", "f"]})
        with pytest.raises(InvalidDataError):
            compute_distance(frame)

    def test_input_not_mutated(self, four_points):
        """Test the caller's array is left untouched."""
        original = four_points.copy()
        compute_distance(four_points)
        standardize(four_points)
        np.testing.assert_array_equal(four_points, original)

    def test_standardize(self, small_data):
        """Test z-scores use the sample standard deviation."""
        scaled = standardize(small_data)
        np.testing.assert_allclose(scaled.mean(axis=0), 0.0, atol=1e-12)
        np.testing.assert_allclose(scaled.std(axis=0, ddof=1), 1.0)

    def test_standardize_constant_column(self):
        """Test a zero-variance column is only centered."""
        scaled = standardize([[1.0, 5.0], [2.0, 5.0], [3.0, 5.0]])
        np.testing.assert_allclose(scaled[:, 1], 0.0)
