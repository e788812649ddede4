"""
data_models.py

Enumerations and pydantic models shared across the clustering toolkit.

Schema Design:
- Enums: option values accepted by the distance, clustering and validation layers
- Models: plain-number summaries of validation runs (no numpy arrays), safe
  to hand to reporting or plotting collaborators
"""

from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class DistanceMetric(str, Enum):
    """Supported dissimilarity metrics."""

    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    MAXIMUM = "maximum"
    CANBERRA = "canberra"
    MINKOWSKI = "minkowski"
    PEARSON = "pearson"
    SPEARMAN = "spearman"
    KENDALL = "kendall"
    GOWER = "gower"


class LinkageMethod(str, Enum):
    """Supported agglomerative linkage rules."""

    SINGLE = "single"
    COMPLETE = "complete"
    AVERAGE = "average"
    MCQUITTY = "mcquitty"
    CENTROID = "centroid"
    MEDIAN = "median"
    WARD = "ward"


class InitMethod(str, Enum):
    """K-means initial centre strategies."""

    RANDOM = "random"
    KMEANS_PLUS_PLUS = "kmeans++"


class ResultWarning(str, Enum):
    """Warning-level annotations attached to a clustering result."""

    NON_CONVERGENCE = "non_convergence"
    EMPTY_CLUSTER = "empty_cluster"


class ValidationMeasure(str, Enum):
    """Measures computed by the cluster validator."""

    CONNECTIVITY = "connectivity"
    DUNN = "dunn"
    SILHOUETTE = "silhouette"
    APN = "apn"
    AD = "ad"
    ADM = "adm"
    FOM = "fom"


# Measures where a larger value is better; all others are minimised.
MAXIMIZED_MEASURES = {ValidationMeasure.DUNN, ValidationMeasure.SILHOUETTE}

INTERNAL_MEASURES = [
    ValidationMeasure.CONNECTIVITY,
    ValidationMeasure.DUNN,
    ValidationMeasure.SILHOUETTE,
]

STABILITY_MEASURES = [
    ValidationMeasure.APN,
    ValidationMeasure.AD,
    ValidationMeasure.ADM,
    ValidationMeasure.FOM,
]


# =============================================================================
# VALIDATION MODELS
# =============================================================================


class StabilityScores(BaseModel):
    """Column-removal stability measures (lower is better for all four)."""

    apn: float = Field(..., ge=0.0, le=1.0, description="Average proportion of non-overlap")
    ad: float = Field(..., ge=0.0, description="Average distance")
    adm: float = Field(..., ge=0.0, description="Average distance between means")
    fom: float = Field(..., ge=0.0, description="Figure of merit")


class ExternalScores(BaseModel):
    """Agreement between a clustering and reference labels."""

    corrected_rand: float = Field(..., le=1.0, description="Adjusted Rand index")
    rand: float = Field(..., ge=0.0, le=1.0, description="Unadjusted Rand index")
    variation_of_information: float = Field(..., ge=0.0, description="Meila's VI (nats)")


class OptimalKResult(BaseModel):
    """Scores of one cluster-count selection method across candidate k."""

    method: str = Field(..., description="elbow, silhouette or gap")
    k_values: List[int] = Field(..., description="Candidate cluster counts")
    scores: List[float] = Field(..., description="Score per candidate k")
    best_k: int = Field(..., ge=1, description="Selected number of clusters")
    standard_errors: Optional[List[float]] = Field(None, description="Gap standard errors")


class ValidationScore(BaseModel):
    """One measure for one (algorithm, k) combination."""

    algorithm: str
    k: int = Field(..., ge=1)
    measure: ValidationMeasure
    value: float


class OptimalScore(BaseModel):
    """Best (algorithm, k) for one measure."""

    measure: ValidationMeasure
    value: float
    algorithm: str
    k: int


class ValidationReport(BaseModel):
    """All scores computed by a validation run."""

    metric: str = Field(..., description="Dissimilarity metric used")
    scores: List[ValidationScore] = Field(default_factory=list)

    def get(self, algorithm: str, k: int, measure: ValidationMeasure) -> Optional[float]:
        """Look up a single score."""
        for score in self.scores:
            if score.algorithm == algorithm and score.k == k and score.measure == measure:
                return score.value
        return None

    def by_measure(self) -> Dict[ValidationMeasure, List[ValidationScore]]:
        """Group scores by measure."""
        grouped: Dict[ValidationMeasure, List[ValidationScore]] = {}
        for score in self.scores:
            grouped.setdefault(score.measure, []).append(score)
        return grouped

    def optimal_scores(self) -> List[OptimalScore]:
        """
        Best (algorithm, k) per measure.

        Dunn and silhouette are maximised, everything else minimised. Ties
        keep the first score in report order.
        """
        best = []
        for measure, scores in self.by_measure().items():
            finite = [s for s in scores if s.value == s.value]  # drop NaN
            if not finite:
                continue
            if measure in MAXIMIZED_MEASURES:
                chosen = max(finite, key=lambda s: s.value)
            else:
                chosen = min(finite, key=lambda s: s.value)
            best.append(
                OptimalScore(
                    measure=measure,
                    value=chosen.value,
                    algorithm=chosen.algorithm,
                    k=chosen.k,
                )
            )
        return best
