"""Weighted aggregation of per-metric results into an overall graded score."""

from __future__ import annotations

import logging
from typing import Optional

from dq_orchestrator.config import QualityConfig
from dq_orchestrator.models import Metric, QualityResult, QualityScore

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Combines agent results using the configured metric weights.

    Only metrics that were actually analyzed contribute to the weighted
    average; weights of absent metrics never enter the denominator. Scores
    are not clamped.
    """

    def __init__(self, config: Optional[QualityConfig] = None) -> None:
        self._config = config or QualityConfig()

    def calculate_score(self, results: list[QualityResult]) -> QualityScore:
        logger.info("Calculating overall data quality score from %d results", len(results))

        metric_scores: dict[Metric, float] = {}
        weighted_sum = 0.0
        total_weight = 0.0
        for result in results:
            weight = self._config.weight_for(result.metric)
            metric_scores[result.metric] = result.score
            weighted_sum += result.score * weight
            total_weight += weight

        overall = weighted_sum / total_weight if total_weight > 0 else 0.0
        logger.info("Calculated overall score: %.3f", overall)
        return QualityScore(overall_score=overall, metric_scores=metric_scores)

    def calculate_improvement(
        self, pre_score: Optional[QualityScore], post_score: Optional[QualityScore]
    ) -> float:
        if pre_score is None or post_score is None:
            return 0.0
        improvement = post_score.overall_score - pre_score.overall_score
        logger.info(
            "Data quality improvement: %.3f (from %.3f to %.3f)",
            improvement,
            pre_score.overall_score,
            post_score.overall_score,
        )
        return improvement

    def calculate_metric_improvements(
        self, pre_score: Optional[QualityScore], post_score: Optional[QualityScore]
    ) -> dict[Metric, float]:
        """Per-metric score change for metrics present in both scores, in enum order."""
        if pre_score is None or post_score is None:
            return {}
        return {
            metric: post_score.metric_scores[metric] - pre_score.metric_scores[metric]
            for metric in Metric
            if metric in pre_score.metric_scores and metric in post_score.metric_scores
        }
