"""
Example datasets.

- USArrests: 1973 arrest rates per 100,000 residents for assault, murder
  and rape in each of the 50 US states, plus the percentage of urban
  population (bundled CSV)
- iris: Fisher's iris measurements with species labels (via scikit-learn)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
from sklearn import datasets as sklearn_datasets

DATA_DIR = Path(__file__).parent / "data"


@dataclass
class Dataset:
    """Observations with their row and feature names."""

    name: str
    values: np.ndarray
    row_names: List[str]
    feature_names: List[str]
    target: Optional[np.ndarray] = None
    target_names: Optional[List[str]] = None

    @property
    def shape(self) -> tuple:
        return self.values.shape

    def to_frame(self) -> pd.DataFrame:
        """Values as a DataFrame indexed by row name."""
        return pd.DataFrame(self.values, index=self.row_names, columns=self.feature_names)


def load_usarrests() -> Dataset:
    """Load USArrests (50 x 4: Murder, Assault, UrbanPop, Rape)."""
    frame = pd.read_csv(DATA_DIR / "usarrests.csv", index_col=0)

    return Dataset(
        name="usarrests",
        values=frame.to_numpy(dtype=float),
        row_names=frame.index.astype(str).tolist(),
        feature_names=frame.columns.tolist(),
    )


def load_iris() -> Dataset:
    """Load iris (150 x 4) with species as target."""
    bunch = sklearn_datasets.load_iris()
    return Dataset(
        name="iris",
        values=np.asarray(bunch.data, dtype=float),
        row_names=[str(i + 1) for i in range(len(bunch.data))],
        feature_names=list(bunch.feature_names),
        target=np.asarray(bunch.target),
        target_names=list(bunch.target_names),
    )


__all__ = ["Dataset", "load_usarrests", "load_iris"]
