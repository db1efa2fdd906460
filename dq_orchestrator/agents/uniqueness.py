"""Uniqueness: distinct populated values per column, and full-row deduplication."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

import pandas as pd

from dq_orchestrator.agents.base import QualityAgent, blank_mask
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

ROW_KEY_SEPARATOR = "|"


class UniquenessAgent(QualityAgent):
    """Scores distinct values per column; rectification drops exact duplicate rows.

    This is the only agent whose rectification changes the row count.
    """

    metric = Metric.UNIQUENESS

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        total_rows = dataset.row_count
        per_column: dict[str, float] = {}
        duplicates: dict[str, list[Any]] = {}

        for column in dataset.columns:
            series = frame[column]
            frequency: Counter[str] = Counter()
            first_seen: dict[str, Any] = {}
            for value in series[~blank_mask(series)]:
                key = value_key(value)
                frequency[key] += 1
                first_seen.setdefault(key, value)
            uniqueness = len(frequency) / total_rows
            per_column[column] = uniqueness

            repeated = [first_seen[key] for key, count in frequency.items() if count > 1]
            if repeated:
                duplicates[column] = repeated

            if uniqueness < self.threshold:
                issues.append(
                    f"Column '{column}' has low uniqueness: {uniqueness * 100:.2f}% "
                    f"({len(repeated)} duplicates)"
                )
                recommendations.append(f"Review and remove duplicate values in column '{column}'")

        duplicate_rows = int(row_keys(dataset).duplicated().sum())
        overall = sum(per_column.values()) / len(per_column)
        details = {
            "total_rows": total_rows,
            "uniqueness_per_column": per_column,
            "duplicates": duplicates,
            "duplicate_rows": duplicate_rows,
            "overall_uniqueness": overall,
        }
        return self.create_result(overall, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        keep = ~row_keys(dataset).duplicated(keep="first")
        rows = [dict(row) for row, kept in zip(dataset.rows, keep) if kept]

        removed = dataset.row_count - len(rows)
        logger.info("Removed %d duplicate rows from dataset '%s'", removed, dataset.name)
        return dataset.with_rows(rows)


def row_keys(dataset: Dataset) -> pd.Series:
    """Composite key per row: every column's string form joined by ``|``."""
    return pd.Series(
        [ROW_KEY_SEPARATOR.join(value_key(row.get(column)) for column in dataset.columns) for row in dataset.rows],
        dtype=object,
    )


def value_key(value: Any) -> str:
    """Identity used for both column counts and row keys: 1, 1.0 and True stay distinct."""
    return str(value)
