"""
Cluster Validator - compares clustering algorithms across cluster counts.

Runs every (algorithm, k) combination, scores it with internal and/or
stability measures, and collects the scores in a ValidationReport.
"""

from typing import Any, Iterable, List, Optional, Sequence, Union

from clustkit.config.settings_loader import Settings
from clustkit.core.base_clustering import SeedLike, spawn_generators
from clustkit.core.clustering_engine import ClusteringEngine
from clustkit.core.dataset import as_matrix, standardize
from clustkit.core.distance import DissimilarityMatrix, compute_distance
from clustkit.schemas.data_models import (
    INTERNAL_MEASURES,
    STABILITY_MEASURES,
    ValidationMeasure,
    ValidationReport,
    ValidationScore,
)
from clustkit.utils.advanced_logging import LogContext, PerformanceLogger, get_logger, log_exceptions
from clustkit.utils.error_handling import ConfigurationError, UnsupportedAlgorithm, check_k
from clustkit.validation.internal import connectivity, dunn_index, silhouette
from clustkit.validation.stability import stability_measures
from clustkit.validation.tendency import hopkins_statistic

logger = get_logger(__name__)

DEFAULT_ALGORITHMS = ("kmeans", "pam", "agglomerative")


def _parse_measures(measures: Iterable[Union[str, ValidationMeasure]]) -> List[ValidationMeasure]:
    parsed = []
    for measure in measures:
        try:
            parsed.append(ValidationMeasure(measure))
        except ValueError:
            raise ConfigurationError(
                f"Unsupported measure '{measure}'. Supported: {[m.value for m in ValidationMeasure]}"
            )
    return parsed


class ClusterValidator:
    """
    Compares algorithms and cluster counts on validation measures.

    Internal measures (connectivity, Dunn, silhouette) score each clustering
    on the dissimilarities of the data. Stability measures (APN, AD, ADM,
    FOM) re-cluster with each feature removed, so they cost one extra
    clustering per feature.
    """

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[ClusteringEngine] = None):
        """
        Initialize validator.

        Args:
            settings: Validation and algorithm defaults (fresh defaults if None)
            engine: Clustering engine (built from settings if None)
        """
        self.settings = settings or Settings()
        self.engine = engine or ClusteringEngine(self.settings)

    def assess_tendency(self, data: Any, seed: SeedLike = None) -> float:
        """
        Hopkins statistic of the data, sampling the configured fraction of
        observations. Values near 0 mean the data is worth clustering.
        """
        X = as_matrix(data)
        if self.settings.distance.standardize:
            X = standardize(X)
        return hopkins_statistic(
            X, seed=seed, sample_fraction=self.settings.validation.hopkins_sample_fraction
        )

    def _internal_score(self, measure: ValidationMeasure, labels, dissimilarity: DissimilarityMatrix) -> float:
        if measure is ValidationMeasure.CONNECTIVITY:
            return connectivity(labels, dissimilarity, self.settings.validation.neighbour_size)
        if measure is ValidationMeasure.DUNN:
            return dunn_index(labels, dissimilarity)
        return silhouette(labels, dissimilarity).average

    def validate(
        self,
        data: Any,
        algorithms: Sequence[str] = DEFAULT_ALGORITHMS,
        k_values: Sequence[int] = (2, 3, 4, 5, 6),
        measures: Optional[Iterable[Union[str, ValidationMeasure]]] = None,
        metric: Optional[str] = None,
        seed: SeedLike = None,
        run_id: Optional[str] = None,
    ) -> ValidationReport:
        """
        Score every (algorithm, k) combination.

        Args:
            data: Numeric observations (N x D)
            algorithms: Algorithm names from the engine registry
            k_values: Cluster counts, each in [2, N-1]
            measures: Measures to compute (settings default if None)
            metric: Dissimilarity metric (settings default if None)
            seed: Seed or generator
            run_id: Optional id bound to log events of this run

        Returns:
            ValidationReport with one score per (algorithm, k, measure)
        """
        X = as_matrix(data)
        n = X.shape[0]
        if self.settings.distance.standardize:
            X = standardize(X)
        metric = metric or self.settings.distance.metric
        selected = _parse_measures(self.settings.validation.measures if measures is None else measures)
        k_values = sorted({check_k(k, n, minimum=2, maximum=n - 1) for k in k_values})
        if not algorithms:
            raise ConfigurationError("At least one algorithm is required")
        for algorithm in algorithms:
            if algorithm not in self.engine.ALGORITHMS:
                raise UnsupportedAlgorithm(
                    f"Unsupported algorithm '{algorithm}'", details={"algorithm": algorithm}
                )

        internal = [m for m in selected if m in INTERNAL_MEASURES]
        stability = [m for m in selected if m in STABILITY_MEASURES]

        dissimilarity = compute_distance(X, metric=metric)
        rngs = iter(spawn_generators(seed, 2 * len(algorithms) * len(k_values)))
        report = ValidationReport(metric=metric)

        with LogContext.run_context(run_id or "validation"), PerformanceLogger(
            "cluster_validation",
            logger=logger,
            item_count=len(algorithms) * len(k_values),
            track_memory=True,
            n_observations=n,
        ), log_exceptions(logger, operation="cluster_validation"):
            for algorithm in algorithms:
                params = {"metric": metric} if algorithm in ("pam", "clara", "agglomerative") else {}
                for k in k_values:
                    cluster_rng, stability_rng = next(rngs), next(rngs)

                    if internal:
                        source = dissimilarity if algorithm in self.engine.DISSIMILARITY_ALGORITHMS else X
                        labels = self.engine.cluster(
                            source,
                            algorithm,
                            {**params, "n_clusters": k},
                            seed=cluster_rng,
                            compute_quality_metrics=False,
                        ).labels
                        for measure in internal:
                            report.scores.append(
                                ValidationScore(
                                    algorithm=algorithm,
                                    k=k,
                                    measure=measure,
                                    value=self._internal_score(measure, labels, dissimilarity),
                                )
                            )

                    if stability:
                        scores = stability_measures(
                            X,
                            k,
                            algorithm=algorithm,
                            algorithm_params=params,
                            dissimilarity=dissimilarity,
                            seed=stability_rng,
                            engine=self.engine,
                        )
                        for measure in stability:
                            report.scores.append(
                                ValidationScore(
                                    algorithm=algorithm,
                                    k=k,
                                    measure=measure,
                                    value=getattr(scores, measure.value),
                                )
                            )

                    logger.debug("combination_scored", algorithm=algorithm, k=k)

        logger.info(
            "validation_completed",
            algorithms=list(algorithms),
            k_values=k_values,
            measures=[m.value for m in selected],
        )
        return report
