"""Blanks: empty cells plus placeholder tokens such as "N/A" or "unknown"."""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from dq_orchestrator.agents.base import (
    QualityAgent,
    as_text,
    column_matches,
    is_blank,
    median,
    most_frequent,
    numeric_value,
    parse_number,
)
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

BLANK_TOKENS = frozenset({"null", "n/a", "na", "none", "unknown", "missing", "-", "--", "?", "???"})


def is_effectively_blank(value: Any) -> bool:
    """Blank in the broad sense: empty, or one of the placeholder tokens (any case)."""
    if is_blank(value):
        return True
    return as_text(value).strip().lower() in BLANK_TOKENS


def default_value(column: str) -> Any:
    """Replacement for a column that has no usable values at all.

    "Unknown" is itself in ``BLANK_TOKENS``: a text column with no usable
    values still scores as blank after rectification.
    """
    if column_matches(column, "name"):
        return "Unknown"
    if column_matches(column, "email"):
        return "unknown@example.com"
    if column_matches(column, "phone"):
        return "000-000-0000"
    if column_matches(column, "age"):
        return 0
    if column_matches(column, "salary", "amount", "price"):
        return 0.0
    if column_matches(column, "date"):
        return "1900-01-01"
    if column_matches(column, "id", "count", "number"):
        return 0
    return "Unknown"


def replacement_value(column: str, series: pd.Series) -> Any:
    """Median for numeric-dominant columns, else the mode, else a name-based default."""
    present = [v for v in series if not is_effectively_blank(v)]
    if not present:
        return default_value(column)

    numbers = [n for n in (parse_number(v) for v in present) if n is not None]
    if numbers and len(numbers) > 0.5 * len(present):
        return numeric_value(median(numbers))
    return most_frequent(present)


class BlanksAgent(QualityAgent):
    """Scores ``1 - mean blank rate`` and fills blanks with column statistics."""

    metric = Metric.BLANKS

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        total_rows = dataset.row_count
        rates: dict[str, float] = {}
        counts: dict[str, int] = {}

        for column in dataset.columns:
            blanks = int(frame[column].map(is_effectively_blank).astype(bool).sum())
            rate = blanks / total_rows
            rates[column] = rate
            counts[column] = blanks

            if 1.0 - rate < self.threshold:
                issues.append(f"Column '{column}' has high blank rate: {rate * 100:.2f}% ({blanks} blanks)")
                recommendations.append(
                    f"Reduce blank values in column '{column}' through better data collection"
                )

        overall_rate = sum(rates.values()) / len(rates)
        details = {
            "total_rows": total_rows,
            "blank_rates_per_column": rates,
            "blank_counts": counts,
            "overall_blank_rate": overall_rate,
        }
        return self.create_result(1.0 - overall_rate, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        frame = dataset.to_frame()
        fill_values = {
            column: replacement_value(column, frame[column])
            for column in dataset.columns
            if frame[column].map(is_effectively_blank).astype(bool).any()
        }

        rows: list[dict[str, Any]] = []
        for row in dataset.rows:
            new_row = dict(row)
            for column, value in fill_values.items():
                if is_effectively_blank(new_row.get(column)):
                    new_row[column] = value
            rows.append(new_row)

        if fill_values:
            logger.info("Filled blanks in %d column(s): %s", len(fill_values), ", ".join(fill_values))
        return dataset.with_rows(rows)
