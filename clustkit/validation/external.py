"""
External validation: agreement between two partitions of the same
observations (a clustering and reference labels, or two clusterings).
"""

from typing import Sequence, Tuple

import numpy as np

from clustkit.schemas.data_models import ExternalScores
from clustkit.utils.error_handling import DimensionMismatch, InvalidDataError


def _pair(a: Sequence, b: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a)
    b = np.asarray(b)
    if a.ndim != 1 or b.ndim != 1 or a.shape != b.shape:
        raise DimensionMismatch(
            f"Partitions must be 1-D and of equal length, got {a.shape} and {b.shape}"
        )
    if a.size == 0:
        raise InvalidDataError("Cannot compare empty partitions")
    return a, b


def contingency_table(a: Sequence, b: Sequence) -> np.ndarray:
    """
    Counts n_ij of observations in cluster i of ``a`` and cluster j of ``b``.

    Rows and columns follow the sorted unique labels of each partition.
    """
    a, b = _pair(a, b)
    _, rows = np.unique(a, return_inverse=True)
    _, cols = np.unique(b, return_inverse=True)
    table = np.zeros((rows.max() + 1, cols.max() + 1), dtype=np.int64)
    np.add.at(table, (rows, cols), 1)
    return table


def _comb2(x: np.ndarray) -> np.ndarray:
    return x * (x - 1) / 2.0


def adjusted_rand_index(a: Sequence, b: Sequence) -> float:
    """
    Hubert-Arabie corrected Rand index: 1 for identical partitions, close to
    0 for independent ones, possibly negative.
    """
    table = contingency_table(a, b)
    n = table.sum()
    sum_cells = _comb2(table).sum()
    sum_rows = _comb2(table.sum(axis=1)).sum()
    sum_cols = _comb2(table.sum(axis=0)).sum()
    total = _comb2(np.array(n, dtype=float))

    if total == 0:
        return 1.0
    expected = sum_rows * sum_cols / total
    maximum = 0.5 * (sum_rows + sum_cols)
    if maximum == expected:
        # both partitions are all-singletons or a single cluster
        return 1.0
    return float((sum_cells - expected) / (maximum - expected))


def rand_index(a: Sequence, b: Sequence) -> float:
    """Fraction of observation pairs on which the two partitions agree."""
    table = contingency_table(a, b)
    n = table.sum()
    total = n * (n - 1) / 2.0
    if total == 0:
        return 1.0
    sum_cells = _comb2(table).sum()
    sum_rows = _comb2(table.sum(axis=1)).sum()
    sum_cols = _comb2(table.sum(axis=0)).sum()
    agree = total + 2 * sum_cells - sum_rows - sum_cols
    return float(agree / total)


def _entropy(p: np.ndarray) -> float:
    p = p[p > 0]
    return float(-np.sum(p * np.log(p)))


def variation_of_information(a: Sequence, b: Sequence) -> float:
    """
    Meila's variation of information H(A) + H(B) - 2 I(A, B), in nats.

    0 for identical partitions.
    """
    table = contingency_table(a, b).astype(float)
    n = table.sum()
    joint = table / n
    p_a = joint.sum(axis=1)
    p_b = joint.sum(axis=0)

    nonzero = joint > 0
    outer = np.outer(p_a, p_b)
    mutual = float(np.sum(joint[nonzero] * np.log(joint[nonzero] / outer[nonzero])))
    return max(_entropy(p_a) + _entropy(p_b) - 2.0 * mutual, 0.0)


def compare_partitions(a: Sequence, b: Sequence) -> ExternalScores:
    """Corrected Rand, Rand and variation of information in one summary."""
    return ExternalScores(
        corrected_rand=adjusted_rand_index(a, b),
        rand=rand_index(a, b),
        variation_of_information=variation_of_information(a, b),
    )
