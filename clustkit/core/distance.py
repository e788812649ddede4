"""
Distance Engine.

Computes pairwise dissimilarity matrices from tabular data under a
selectable metric:
- Geometric: euclidean, manhattan, maximum, canberra, minkowski
- Correlation based: pearson, spearman, kendall (1 - correlation)
- Mixed types: gower

Standardization is not applied here; callers scale their data first
(see clustkit.core.dataset.standardize).
"""

import logging
import numbers
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.stats import kendalltau, rankdata

from clustkit.core.dataset import as_matrix
from clustkit.schemas.data_models import DistanceMetric
from clustkit.utils.error_handling import (
    DimensionMismatch,
    InvalidDataError,
    UnsupportedMetric,
)

logger = logging.getLogger(__name__)

NUMERIC_METRICS = frozenset(m.value for m in DistanceMetric if m is not DistanceMetric.GOWER)
GOWER_FEATURE_TYPES = ("numeric", "ordinal", "nominal", "binary")

# Absolute tolerance when validating a caller-supplied matrix
_SYMMETRY_TOL = 1e-9


class DissimilarityMatrix:
    """
    Symmetric, zero-diagonal, non-negative matrix of pairwise dissimilarities.

    The underlying array is read-only. Exact symmetry is enforced by
    mirroring the upper triangle.
    """

    def __init__(
        self,
        values: Any,
        metric: str = "precomputed",
        labels: Optional[Sequence[Any]] = None,
    ):
        """
        Build and validate a dissimilarity matrix.

        Args:
            values: Square matrix of pairwise dissimilarities
            metric: Name of the metric that produced the values
            labels: Optional observation names

        Raises:
            DimensionMismatch: If values are not a square matrix
            InvalidDataError: If values are negative, non-finite or asymmetric
        """
        matrix = np.array(values, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise DimensionMismatch(
                f"Dissimilarity matrix must be square, got shape {matrix.shape}"
            )
        if matrix.shape[0] == 0:
            raise InvalidDataError("Dissimilarity matrix is empty")
        if not np.isfinite(matrix).all():
            raise InvalidDataError("Dissimilarity matrix contains non-finite values")
        if (matrix < -_SYMMETRY_TOL).any():
            raise InvalidDataError("Dissimilarity matrix contains negative values")
        if not np.allclose(matrix, matrix.T, rtol=0.0, atol=_SYMMETRY_TOL * max(1.0, np.abs(matrix).max())):
            raise InvalidDataError("Dissimilarity matrix is not symmetric")
        if np.abs(np.diag(matrix)).max() > _SYMMETRY_TOL:
            raise InvalidDataError("Dissimilarity matrix has a non-zero diagonal")

        upper = np.triu(np.maximum(matrix, 0.0), k=1)
        matrix = upper + upper.T
        matrix.setflags(write=False)

        if labels is not None:
            labels = list(labels)
            if len(labels) != matrix.shape[0]:
                raise DimensionMismatch(
                    f"Got {len(labels)} labels for {matrix.shape[0]} observations"
                )

        self._values = matrix
        self.metric = metric
        self.labels = labels

    @classmethod
    def from_condensed(
        cls,
        condensed: Sequence[float],
        metric: str = "precomputed",
        labels: Optional[Sequence[Any]] = None,
    ) -> "DissimilarityMatrix":
        """Build from the upper triangle in row-major order (scipy pdist layout)."""
        condensed = np.asarray(condensed, dtype=float)
        m = condensed.shape[0]
        n = int(round((1 + np.sqrt(1 + 8 * m)) / 2))
        if n * (n - 1) // 2 != m:
            raise DimensionMismatch(f"Condensed length {m} is not n*(n-1)/2 for any n")
        matrix = np.zeros((n, n))
        rows, cols = np.triu_indices(n, k=1)
        matrix[rows, cols] = condensed
        matrix[cols, rows] = condensed
        return cls(matrix, metric=metric, labels=labels)

    @property
    def values(self) -> np.ndarray:
        """Read-only square array."""
        return self._values

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._values.shape[0]

    @property
    def shape(self) -> tuple:
        return self._values.shape

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, key):
        return self._values[key]

    def condensed(self) -> np.ndarray:
        """Upper triangle (i < j) in row-major order."""
        rows, cols = np.triu_indices(self.n, k=1)
        return self._values[rows, cols]

    def subset(self, indices: Sequence[int]) -> "DissimilarityMatrix":
        """Dissimilarities among a subset of observations."""
        indices = np.asarray(indices, dtype=int)
        labels = None if self.labels is None else [self.labels[i] for i in indices]
        return DissimilarityMatrix(
            self._values[np.ix_(indices, indices)], metric=self.metric, labels=labels
        )

    def __repr__(self) -> str:
        return f"DissimilarityMatrix(n={self.n}, metric={self.metric!r})"


def normalize_metric(metric: Union[str, DistanceMetric]) -> str:
    """
    Validate a metric name.

    Raises:
        UnsupportedMetric: If the metric is unknown
    """
    if isinstance(metric, DistanceMetric):
        return metric.value
    name = str(metric).lower()
    try:
        return DistanceMetric(name).value
    except ValueError:
        raise UnsupportedMetric(
            f"Unsupported metric '{metric}'. Supported: {[m.value for m in DistanceMetric]}",
            details={"metric": metric},
        )


def compute_distance(
    data: Any,
    metric: Union[str, DistanceMetric] = "euclidean",
    p: float = 2.0,
    feature_types: Optional[Sequence[str]] = None,
    weights: Optional[Sequence[float]] = None,
    labels: Optional[Sequence[Any]] = None,
) -> DissimilarityMatrix:
    """
    Compute the pairwise dissimilarity matrix of a dataset.

    Args:
        data: Rows of observations (numeric, or mixed types for gower); a
            DataFrame also supplies the labels from its index
        metric: Metric name
        p: Power for the minkowski metric
        feature_types: Per-column types for gower (numeric/ordinal/nominal/binary)
        weights: Per-column weights for gower
        labels: Optional observation names

    Returns:
        DissimilarityMatrix

    Raises:
        DimensionMismatch: If rows have differing lengths
        UnsupportedMetric: If the metric is unknown
    """
    metric = normalize_metric(metric)
    if labels is None and isinstance(data, pd.DataFrame):
        labels = [str(name) for name in data.index]

    if metric == DistanceMetric.GOWER.value:
        values = _gower(data, feature_types, weights)
    else:
        matrix = as_matrix(data)
        values = cross_distances(matrix, matrix, metric=metric, p=p)

    logger.debug(f"Computed {metric} dissimilarities for {values.shape[0]} observations")

    np.fill_diagonal(values, 0.0)
    return DissimilarityMatrix(values, metric=metric, labels=labels)


def cross_distances(
    x: Any,
    y: Any,
    metric: Union[str, DistanceMetric] = "euclidean",
    p: float = 2.0,
) -> np.ndarray:
    """
    Dissimilarities between every row of x and every row of y.

    Args:
        x: Numeric matrix (n, d)
        y: Numeric matrix (m, d)
        metric: Any numeric metric (not gower)
        p: Power for the minkowski metric

    Returns:
        Array of shape (n, m)
    """
    metric = normalize_metric(metric)
    if metric not in NUMERIC_METRICS:
        raise UnsupportedMetric(
            f"Metric '{metric}' needs the full dataset; use compute_distance instead"
        )

    x = as_matrix(x)
    y = as_matrix(y)
    if x.shape[1] != y.shape[1]:
        raise DimensionMismatch(
            f"Feature counts differ: {x.shape[1]} vs {y.shape[1]}",
            details={"x_features": x.shape[1], "y_features": y.shape[1]},
        )

    if metric in ("pearson", "spearman"):
        if metric == "spearman":
            x = rankdata(x, axis=1)
            y = rankdata(y, axis=1)
        return np.clip(1.0 - _row_correlation(x, y), 0.0, 2.0)

    if metric == "kendall":
        result = np.empty((x.shape[0], y.shape[0]))
        for i in range(x.shape[0]):
            for j in range(y.shape[0]):
                tau = kendalltau(x[i], y[j])[0]
                result[i, j] = 1.0 - (0.0 if np.isnan(tau) else tau)
        return np.clip(result, 0.0, 2.0)

    diff = np.abs(x[:, None, :] - y[None, :, :])

    if metric == "euclidean":
        return np.sqrt(np.sum(diff ** 2, axis=2))
    if metric == "manhattan":
        return np.sum(diff, axis=2)
    if metric == "maximum":
        return np.max(diff, axis=2)
    if metric == "minkowski":
        if p < 1:
            raise UnsupportedMetric(f"minkowski requires p >= 1, got {p}")
        return np.sum(diff ** p, axis=2) ** (1.0 / p)

    # canberra; 0/0 terms contribute nothing
    denom = np.abs(x)[:, None, :] + np.abs(y)[None, :, :]
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = np.where(denom > 0, diff / denom, 0.0)
    return np.sum(terms, axis=2)


def _row_correlation(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Pearson correlation between rows; zero-variance rows correlate 0."""
    xc = x - x.mean(axis=1, keepdims=True)
    yc = y - y.mean(axis=1, keepdims=True)
    x_norm = np.linalg.norm(xc, axis=1)
    y_norm = np.linalg.norm(yc, axis=1)
    denom = np.outer(x_norm, y_norm)
    with np.errstate(divide="ignore", invalid="ignore"):
        corr = np.where(denom > 0, (xc @ yc.T) / denom, 0.0)
    return np.clip(corr, -1.0, 1.0)


# =============================================================================
# Gower dissimilarity for mixed-type data
# =============================================================================


def _is_missing(value: Any) -> bool:
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def _as_rows(data: Any) -> list:
    """Observations as lists of Python values, one list per row."""
    if isinstance(data, pd.DataFrame):
        return data.to_numpy(dtype=object).tolist()
    if hasattr(data, "__array__"):
        array = np.asarray(data, dtype=object)
        if array.ndim == 1:
            array = array.reshape(-1, 1)
        return array.tolist()
    return [list(row) for row in data]


def _infer_feature_type(column: Sequence[Any]) -> str:
    present = [v for v in column if not _is_missing(v)]
    if present and all(
        isinstance(v, numbers.Number) and not isinstance(v, bool) for v in present
    ):
        return "numeric"
    return "nominal"


def _gower(
    data: Any,
    feature_types: Optional[Sequence[str]],
    weights: Optional[Sequence[float]],
) -> np.ndarray:
    """
    Gower's general dissimilarity coefficient.

    Each feature contributes a dissimilarity in [0, 1]; the result is the
    weighted mean over the features usable for each pair.
    """
    rows = _as_rows(data)
    if not rows:
        raise InvalidDataError("Cannot build a dataset from zero observations")
    lengths = {len(row) for row in rows}
    if len(lengths) > 1:
        raise DimensionMismatch(
            f"All observations must have the same number of features, got lengths {sorted(lengths)}",
            details={"lengths": sorted(lengths)},
        )
    n, d = len(rows), lengths.pop()
    columns = [[row[j] for row in rows] for j in range(d)]

    if feature_types is None:
        feature_types = [_infer_feature_type(col) for col in columns]
    feature_types = [str(t).lower() for t in feature_types]
    if len(feature_types) != d:
        raise DimensionMismatch(f"Got {len(feature_types)} feature types for {d} features")
    unknown = sorted(set(feature_types) - set(GOWER_FEATURE_TYPES))
    if unknown:
        raise InvalidDataError(
            f"Unknown gower feature types {unknown}. Supported: {list(GOWER_FEATURE_TYPES)}"
        )

    weights = np.ones(d) if weights is None else np.asarray(weights, dtype=float)
    if weights.shape != (d,):
        raise DimensionMismatch(f"Got {weights.shape[0]} weights for {d} features")
    if (weights < 0).any():
        raise InvalidDataError("Gower weights must be non-negative")

    numerator = np.zeros((n, n))
    denominator = np.zeros((n, n))

    for column, kind, weight in zip(columns, feature_types, weights):
        missing = np.array([_is_missing(v) for v in column])
        valid = ~missing[:, None] & ~missing[None, :]

        if kind in ("numeric", "ordinal"):
            values = np.zeros(n)
            present = [v for v, m in zip(column, missing) if not m]
            if kind == "ordinal":
                # ordinal levels are replaced by their position in sorted order
                levels = {level: rank for rank, level in enumerate(sorted(set(present)))}
                present = np.array([levels[v] for v in present], dtype=float)
            else:
                present = np.asarray(present, dtype=float)
            values[~missing] = present
            spread = np.ptp(values[~missing]) if (~missing).any() else 0.0
            delta = np.abs(values[:, None] - values[None, :])
            delta = delta / spread if spread > 0 else np.zeros_like(delta)
        else:
            codes = {}
            coded = np.array(
                [-1 if m else codes.setdefault(v, len(codes)) for v, m in zip(column, missing)]
            )
            if kind == "binary":
                flags = np.array([bool(v) and not m for v, m in zip(column, missing)])
                delta = (flags[:, None] != flags[None, :]).astype(float)
                # asymmetric binary: a shared absence carries no information
                valid &= flags[:, None] | flags[None, :]
            else:
                delta = (coded[:, None] != coded[None, :]).astype(float)

        numerator += weight * delta * valid
        denominator += weight * valid

    off_diagonal = ~np.eye(n, dtype=bool)
    if (denominator[off_diagonal] == 0).any():
        raise InvalidDataError(
            "Some observation pairs share no usable feature; gower dissimilarity is undefined"
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        values = np.where(denominator > 0, numerator / denominator, 0.0)
    return values
