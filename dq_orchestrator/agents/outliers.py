"""Outliers: Tukey's IQR fences on numeric columns."""

from __future__ import annotations

import logging
from typing import Any, Optional

import pandas as pd

from dq_orchestrator.agents.base import QualityAgent, median, numeric_value, parse_number
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

MIN_NUMERIC_VALUES = 3
IQR_MULTIPLIER = 1.5


def iqr_bounds(values: list[float]) -> tuple[float, float]:
    """Return the ``[Q1 - 1.5*IQR, Q3 + 1.5*IQR]`` fences for *values*."""
    series = pd.Series(values, dtype="float64")
    q1 = float(series.quantile(0.25))
    q3 = float(series.quantile(0.75))
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def numeric_cells(series: pd.Series) -> dict[int, float]:
    """Map positional row index to parsed number for the numeric cells of *series*."""
    cells: dict[int, float] = {}
    for position, value in enumerate(series):
        number = parse_number(value)
        if number is not None:
            cells[position] = number
    return cells


def find_outliers(series: pd.Series) -> Optional[tuple[dict[int, float], float, float]]:
    """Locate outliers in a column.

    Returns None when the column has fewer than three numeric values,
    otherwise ``(outliers_by_position, lower_bound, upper_bound)``.
    """
    cells = numeric_cells(series)
    if len(cells) < MIN_NUMERIC_VALUES:
        return None
    lower, upper = iqr_bounds(list(cells.values()))
    outliers = {pos: n for pos, n in cells.items() if n < lower or n > upper}
    return outliers, lower, upper


class OutliersAgent(QualityAgent):
    """Flags values outside the IQR fences and replaces them with the inlier median.

    Columns with fewer than three numeric values are ignored.
    """

    metric = Metric.OUTLIERS

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        total_rows = dataset.row_count
        rates: dict[str, float] = {}
        outliers: dict[str, list[Any]] = {}
        bounds: dict[str, list[float]] = {}

        for column in dataset.columns:
            found = find_outliers(frame[column])
            if found is None:
                continue
            column_outliers, lower, upper = found

            rate = len(column_outliers) / total_rows
            rates[column] = rate
            bounds[column] = [lower, upper]
            if column_outliers:
                outliers[column] = [numeric_value(n) for n in column_outliers.values()]

            if 1.0 - rate < self.threshold:
                issues.append(
                    f"Column '{column}' has high outlier rate: {rate * 100:.2f}% "
                    f"({len(column_outliers)} outliers)"
                )
                recommendations.append(
                    f"Review outliers in column '{column}' - consider data validation or transformation"
                )

        overall_rate = sum(rates.values()) / len(rates) if rates else 0.0
        details = {
            "total_rows": total_rows,
            "numeric_columns": len(rates),
            "outlier_rates_per_column": rates,
            "outliers": outliers,
            "bounds": bounds,
            "overall_outlier_rate": overall_rate,
        }
        return self.create_result(1.0 - overall_rate, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        flagged = (result.details or {}).get("outliers")
        columns = [c for c in dataset.columns if c in flagged] if flagged else list(dataset.columns)

        frame = dataset.to_frame()
        replacements: dict[str, dict[int, Any]] = {}
        for column in columns:
            found = find_outliers(frame[column])
            if not found or not found[0]:
                continue
            column_outliers = found[0]
            inliers = [n for pos, n in numeric_cells(frame[column]).items() if pos not in column_outliers]
            replacement = numeric_value(median(inliers))
            replacements[column] = {pos: replacement for pos in column_outliers}

        if not replacements:
            return dataset.with_rows([dict(row) for row in dataset.rows])

        rows: list[dict[str, Any]] = []
        for position, row in enumerate(dataset.rows):
            new_row = dict(row)
            for column, by_position in replacements.items():
                if position in by_position:
                    new_row[column] = by_position[position]
            rows.append(new_row)

        logger.info(
            "Replaced %d outlier values with column medians",
            sum(len(v) for v in replacements.values()),
        )
        return dataset.with_rows(rows)
