"""
Dataset helpers.

Turns caller input (nested lists, numpy arrays, DataFrames) into validated numeric
matrices, and provides the z-score standardization callers apply before
computing distances.
"""

from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from clustkit.utils.error_handling import DimensionMismatch, InvalidDataError


def as_matrix(data: Any) -> np.ndarray:
    """
    Convert input rows to a 2-D float matrix.

    The result is always a fresh copy; the caller's data is never mutated.

    Args:
        data: Sequence of equal-length numeric rows, a 2-D array, or any
            array-like (pandas DataFrame, ...) with rows as observations

    Returns:
        Float array of shape (n_observations, n_features)

    Raises:
        DimensionMismatch: If rows have differing lengths or input is not 2-D
        InvalidDataError: If input is empty, non-numeric, or contains NaN/inf
    """
    if isinstance(data, pd.DataFrame):
        data = data.to_numpy()
    elif not isinstance(data, np.ndarray) and hasattr(data, "__array__"):
        data = np.asarray(data)

    if not isinstance(data, np.ndarray):
        rows = list(data)
        if len(rows) == 0:
            raise InvalidDataError("Cannot build a dataset from zero observations")
        lengths = {len(row) for row in rows}
        if len(lengths) > 1:
            raise DimensionMismatch(
                f"All observations must have the same number of features, got lengths {sorted(lengths)}",
                details={"lengths": sorted(lengths)},
            )
        data = rows

    try:
        matrix = np.array(data, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidDataError(f"Dataset must be numeric: {e}")

    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    if matrix.ndim != 2:
        raise DimensionMismatch(f"Dataset must be 2-D, got {matrix.ndim} dimensions")
    if matrix.shape[0] == 0 or matrix.shape[1] == 0:
        raise InvalidDataError(f"Dataset is empty (shape {matrix.shape})")

    if not np.isfinite(matrix).all():
        raise InvalidDataError(
            "Dataset contains missing or infinite values; impute them before clustering"
        )

    return matrix


def standardize(data: Any, ddof: int = 1) -> np.ndarray:
    """
    Z-score each feature: subtract the column mean, divide by the column
    standard deviation (sample deviation by default, like R's ``scale``).

    Columns with zero variance are only centered.

    Args:
        data: Numeric dataset
        ddof: Delta degrees of freedom for the standard deviation

    Returns:
        Standardized copy of the data
    """
    matrix = as_matrix(data)
    if matrix.shape[0] <= ddof:
        raise InvalidDataError(
            f"Need more than {ddof} observations to standardize, got {matrix.shape[0]}"
        )
    mean = matrix.mean(axis=0)
    std = matrix.std(axis=0, ddof=ddof)
    std[std == 0] = 1.0
    return (matrix - mean) / std


def bounding_box(matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Per-feature minimum and maximum."""
    return matrix.min(axis=0), matrix.max(axis=0)


def uniform_reference(
    matrix: np.ndarray, rng: np.random.Generator, n: Optional[int] = None
) -> np.ndarray:
    """
    Draw points uniformly over the bounding box of ``matrix``.

    Args:
        matrix: Observed data (n, d)
        rng: Random generator
        n: Number of points (defaults to the number of observations)

    Returns:
        Array of shape (n, d)
    """
    low, high = bounding_box(matrix)
    size = (matrix.shape[0] if n is None else n, matrix.shape[1])
    return rng.uniform(low, high, size=size)


def check_labels(labels: Sequence[int], n: int) -> np.ndarray:
    """
    Validate a cluster assignment of length n.

    Returns:
        Integer label array
    """
    labels = np.asarray(labels)
    if labels.ndim != 1 or labels.shape[0] != n:
        raise DimensionMismatch(
            f"Expected {n} labels, got array of shape {labels.shape}",
            details={"expected": n, "shape": list(labels.shape)},
        )
    return labels
