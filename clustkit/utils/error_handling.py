"""
Error Handling Module

Provides the exception hierarchy for the clustering toolkit:
- Base error carrying an error code and structured details
- Data errors (inconsistent dimensions, unusable values, unknown metrics)
- Clustering errors (invalid k, unknown algorithm or linkage)

Non-convergence and empty clusters are not exceptions: they are reported
as ResultWarning annotations on ClusteringResult.
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class ClusteringToolkitError(Exception):
    """Base exception for all clustering toolkit errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(ClusteringToolkitError):
    """Error in toolkit configuration."""
    pass


# Data Errors
class DataError(ClusteringToolkitError):
    """Base class for input data errors."""
    pass


class DimensionMismatch(DataError):
    """Rows (or matrices) with inconsistent feature counts."""
    pass


class InvalidDataError(DataError):
    """Empty input, missing values, or values a computation cannot use."""
    pass


class UnsupportedMetric(DataError):
    """Unknown or unsupported dissimilarity metric."""
    pass


# Clustering Errors
class ClusteringError(ClusteringToolkitError):
    """Base class for clustering algorithm errors."""
    pass


class InvalidK(ClusteringError):
    """Number of clusters outside the valid range."""
    pass


class UnsupportedAlgorithm(ClusteringError):
    """Unknown or unsupported clustering algorithm."""
    pass


class UnsupportedLinkage(ClusteringError):
    """Unknown or unsupported linkage method."""
    pass


# =============================================================================
# Validation Helpers
# =============================================================================


def check_k(k: int, n: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    """
    Validate a cluster count against the number of observations.

    Args:
        k: Requested number of clusters
        n: Number of observations
        minimum: Smallest allowed k
        maximum: Largest allowed k (defaults to n)

    Returns:
        k as a plain int

    Raises:
        InvalidK: If k is not an integer in [minimum, maximum]
    """
    upper = n if maximum is None else maximum
    if isinstance(k, bool) or int(k) != k:
        raise InvalidK(
            f"k must be an integer, got {k!r}",
            details={"k": k, "n": n},
        )
    k = int(k)
    if k < minimum or k > upper:
        raise InvalidK(
            f"k must be in [{minimum}, {upper}] for {n} observations, got {k}",
            details={"k": k, "n": n, "minimum": minimum, "maximum": upper},
        )
    return k
