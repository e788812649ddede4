"""
Clustering tendency: does the data contain any cluster structure at all?
"""

from typing import Any, Optional

import numpy as np
from sklearn.neighbors import NearestNeighbors

from clustkit.core.base_clustering import SeedLike, as_generator
from clustkit.core.dataset import as_matrix, uniform_reference
from clustkit.utils.advanced_logging import get_logger
from clustkit.utils.error_handling import ConfigurationError, InvalidDataError

logger = get_logger(__name__)


def default_hopkins_samples(n: int, fraction: float = 0.1) -> int:
    if not 0.0 < fraction <= 1.0:
        raise ConfigurationError(f"sample_fraction must be in (0, 1], got {fraction}")
    return max(1, int(n * fraction))


def hopkins_statistic(
    data: Any,
    n_samples: Optional[int] = None,
    seed: SeedLike = None,
    sample_fraction: float = 0.1,
) -> float:
    """
    Hopkins statistic H = sum(u) / (sum(u) + sum(w)).

    u are the nearest-neighbour distances of ``n_samples`` randomly chosen
    observations to the rest of the data; w are the nearest-neighbour
    distances of as many points drawn uniformly over the data's bounding
    box. Values near 0.5 mean no structure; values near 0 mean the data is
    clusterable.

    Args:
        data: Numeric observations (N x D), N >= 2
        n_samples: Sample size m, 1 <= m <= N
        seed: Seed or generator
        sample_fraction: Share of N sampled when n_samples is None
            (m = max(1, int(N * sample_fraction)))

    Returns:
        H in [0, 1]
    """
    X = as_matrix(data)
    n = X.shape[0]
    if n < 2:
        raise InvalidDataError("Hopkins statistic needs at least 2 observations")

    m = default_hopkins_samples(n, sample_fraction) if n_samples is None else int(n_samples)
    if m < 1 or m > n:
        raise ConfigurationError(
            f"n_samples must be in [1, {n}], got {m}", details={"n_samples": m, "n": n}
        )

    rng = as_generator(seed)
    sampled = rng.choice(n, size=m, replace=False)
    reference = uniform_reference(X, rng, n=m)

    index = NearestNeighbors(n_neighbors=2).fit(X)
    # the closest hit for a sampled observation is the observation itself
    u_dist, u_idx = index.kneighbors(X[sampled], n_neighbors=2)
    u = np.where(u_idx[:, 0] == sampled, u_dist[:, 1], u_dist[:, 0])
    w = index.kneighbors(reference, n_neighbors=1)[0][:, 0]

    total = u.sum() + w.sum()
    if total == 0:
        raise InvalidDataError("Hopkins statistic is undefined: all observations coincide")

    h = float(u.sum() / total)
    logger.info("hopkins_statistic", n=n, n_samples=m, value=round(h, 4))
    return h
