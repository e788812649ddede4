"""
Dendrogram - the merge tree produced by agglomerative clustering.

Node ids follow the usual convention: leaves are 0..n-1 and the cluster
created at merge step s has id n + s.
"""

import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from clustkit.core.distance import DissimilarityMatrix
from clustkit.utils.error_handling import (
    ClusteringError,
    DimensionMismatch,
    InvalidDataError,
    check_k,
)

logger = logging.getLogger(__name__)

# Height slack when checking monotonicity
_HEIGHT_TOL = 1e-10


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Dendrogram:
    """
    Binary merge tree over n observations.

    Attributes:
        merges: (n-1, 2) child node ids per step, smaller id first
        heights: (n-1,) merge heights
        sizes: (n-1,) number of observations in each new cluster
        linkage: Linkage rule that built the tree
        labels: Optional observation names
    """

    def __init__(
        self,
        merges: Any,
        heights: Any,
        sizes: Any,
        linkage: str,
        labels: Optional[Sequence[Any]] = None,
    ):
        merges = np.array(merges, dtype=np.int64).reshape(-1, 2)
        heights = np.array(heights, dtype=float)
        sizes = np.array(sizes, dtype=np.int64)
        if not (len(merges) == len(heights) == len(sizes)):
            raise DimensionMismatch(
                f"Inconsistent dendrogram arrays: {len(merges)} merges, "
                f"{len(heights)} heights, {len(sizes)} sizes"
            )

        self.merges = _read_only(merges)
        self.heights = _read_only(heights)
        self.sizes = _read_only(sizes)
        self.linkage = linkage
        self.labels = None if labels is None else list(labels)

    @property
    def n_leaves(self) -> int:
        """Number of observations."""
        return len(self.merges) + 1

    def __len__(self) -> int:
        return self.n_leaves

    def __repr__(self) -> str:
        return f"Dendrogram(n_leaves={self.n_leaves}, linkage={self.linkage!r})"

    @property
    def order(self) -> np.ndarray:
        """Leaf order of a left-to-right traversal from the root."""
        n = self.n_leaves
        if n == 1:
            return np.zeros(1, dtype=np.int64)

        leaves: List[int] = []
        stack = [2 * n - 2]
        while stack:
            node = stack.pop()
            if node < n:
                leaves.append(node)
            else:
                left, right = self.merges[node - n]
                stack.append(int(right))
                stack.append(int(left))
        return np.asarray(leaves, dtype=np.int64)

    def is_monotonic(self) -> bool:
        """True when no merge is lower than the merges that formed its children."""
        n = self.n_leaves
        for step, children in enumerate(self.merges):
            for child in children:
                if child >= n and self.heights[child - n] > self.heights[step] + _HEIGHT_TOL:
                    return False
        return True

    def to_linkage_matrix(self) -> np.ndarray:
        """(n-1, 4) array in scipy's linkage layout: [child, child, height, size]."""
        return np.column_stack(
            [self.merges.astype(float), self.heights, self.sizes.astype(float)]
        )

    def _partition(self, steps: Sequence[int]) -> np.ndarray:
        """Labels after applying the given merge steps."""
        n = self.n_leaves
        parent = np.arange(2 * n - 1)

        def root(node: int) -> int:
            while parent[node] != node:
                parent[node] = parent[parent[node]]
                node = parent[node]
            return node

        for step in steps:
            left, right = self.merges[step]
            parent[root(int(left))] = n + step
            parent[root(int(right))] = n + step

        labels = np.empty(n, dtype=np.int64)
        seen = {}
        for i in range(n):
            r = root(i)
            if r not in seen:
                seen[r] = len(seen)
            labels[i] = seen[r]
        return labels

    def cut(self, k: int) -> np.ndarray:
        """
        Partition into exactly k clusters.

        Applies the first n - k merges; clusters are numbered in order of
        their first observation.

        Raises:
            InvalidK: If k is outside [1, n]
        """
        k = check_k(k, self.n_leaves)
        return self._partition(range(self.n_leaves - k))

    def cut_at_height(self, height: float) -> np.ndarray:
        """
        Partition by applying every merge at or below ``height``.

        Raises:
            ClusteringError: If the tree has height inversions
        """
        if not self.is_monotonic():
            raise ClusteringError(
                f"Cannot cut a non-monotone {self.linkage} dendrogram at a height; "
                "cut by number of clusters instead",
                details={"linkage": self.linkage},
            )
        steps = np.flatnonzero(self.heights <= height)
        logger.debug(f"Cut at height {height}: {len(steps)} merge(s) applied")
        return self._partition(steps)

    def cophenetic_matrix(self) -> DissimilarityMatrix:
        """Height of the merge at which each pair of observations first joins."""
        n = self.n_leaves
        matrix = np.zeros((n, n))
        members: List[List[int]] = [[i] for i in range(n)]

        for step, (left, right) in enumerate(self.merges):
            a, b = members[left], members[right]
            height = max(self.heights[step], 0.0)
            matrix[np.ix_(a, b)] = height
            matrix[np.ix_(b, a)] = height
            members.append(a + b)

        return DissimilarityMatrix(matrix, metric="cophenetic", labels=self.labels)

    def cophenetic_correlation(self, dissimilarity: DissimilarityMatrix) -> float:
        """
        Pearson correlation between cophenetic and original dissimilarities.

        Raises:
            DimensionMismatch: If the matrix does not cover the same observations
            InvalidDataError: If either side is constant
        """
        if dissimilarity.n != self.n_leaves:
            raise DimensionMismatch(
                f"Dendrogram has {self.n_leaves} leaves, dissimilarity has {dissimilarity.n}"
            )
        original = dissimilarity.condensed()
        cophenetic = self.cophenetic_matrix().condensed()
        if len(original) < 2 or original.std() == 0 or cophenetic.std() == 0:
            raise InvalidDataError("Cophenetic correlation is undefined for constant dissimilarities")
        return float(np.corrcoef(original, cophenetic)[0, 1])


def cut(dendrogram: Dendrogram, k: int) -> np.ndarray:
    """Partition a dendrogram into k clusters."""
    return dendrogram.cut(k)


def cut_at_height(dendrogram: Dendrogram, height: float) -> np.ndarray:
    """Partition a monotone dendrogram at a height."""
    return dendrogram.cut_at_height(height)


def cophenetic_matrix(dendrogram: Dendrogram) -> DissimilarityMatrix:
    return dendrogram.cophenetic_matrix()


def cophenetic_correlation(
    dendrogram: Dendrogram, dissimilarity: DissimilarityMatrix
) -> float:
    return dendrogram.cophenetic_correlation(dissimilarity)
