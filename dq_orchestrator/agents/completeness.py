"""Completeness: share of populated (non-null, non-empty) cells per column."""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from dq_orchestrator.agents.base import (
    QualityAgent,
    blank_mask,
    is_blank,
    most_frequent,
    numeric_value,
    parse_number,
)
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

IMPUTE_FALLBACK = "UNKNOWN"


class CompletenessAgent(QualityAgent):
    """Measures populated cells and imputes the blank ones.

    Only ``None``/NaN and empty strings count as blank here; placeholder
    tokens such as ``"N/A"`` are considered present.
    """

    metric = Metric.COMPLETENESS

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        total_rows = dataset.row_count
        per_column: dict[str, float] = {}

        for column in dataset.columns:
            populated = int((~blank_mask(frame[column])).sum())
            completeness = populated / total_rows
            per_column[column] = completeness

            if completeness < self.threshold:
                issues.append(f"Column '{column}' has low completeness: {completeness * 100:.2f}%")
                recommendations.append(
                    f"Consider data imputation or collection improvement for column '{column}'"
                )

        overall = sum(per_column.values()) / len(per_column)
        details = {
            "total_rows": total_rows,
            "completeness_per_column": per_column,
            "overall_completeness": overall,
        }
        return self.create_result(overall, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        frame = dataset.to_frame()
        fill_values: dict[str, Any] = {}
        for column in dataset.columns:
            if blank_mask(frame[column]).any():
                fill_values[column] = imputed_value(frame[column])

        if not fill_values:
            return dataset.with_rows([dict(row) for row in dataset.rows])

        rows: list[dict[str, Any]] = []
        filled = 0
        for row in dataset.rows:
            new_row = dict(row)
            for column, value in fill_values.items():
                if is_blank(new_row.get(column)):
                    new_row[column] = value
                    filled += 1
            rows.append(new_row)

        logger.info("Imputed %d blank cells across %d column(s)", filled, len(fill_values))
        return dataset.with_rows(rows)


def imputed_value(series: pd.Series) -> Any:
    """Value used to fill blanks in *series*.

    Mean of the numeric values when at least half of the populated values are
    numeric, otherwise the most frequent populated value, otherwise
    ``"UNKNOWN"``.
    """
    present = [v for v in series if not is_blank(v)]
    if not present:
        return IMPUTE_FALLBACK

    numbers = [n for n in (parse_number(v) for v in present) if n is not None]
    if numbers and len(numbers) >= 0.5 * len(present):
        return numeric_value(sum(numbers) / len(numbers))
    return most_frequent(present)
