"""Consistency: dominant value format per column, and format standardisation."""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

import pandas as pd

from dq_orchestrator.agents.base import QualityAgent, as_text, blank_mask, column_matches, is_blank
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

# Checked in order; the first match wins.
FORMAT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("date_iso", re.compile(r"\d{4}-\d{2}-\d{2}")),
    ("date_us", re.compile(r"\d{2}/\d{2}/\d{4}")),
    ("date_eu", re.compile(r"\d{2}-\d{2}-\d{4}")),
    ("phone_international", re.compile(r"\+\d{1,3}\s\d{3}\s\d{3}\s\d{4}")),
    ("phone_us", re.compile(r"\(\d{3}\)\s\d{3}-\d{4}")),
    ("phone_dash", re.compile(r"\d{3}-\d{3}-\d{4}")),
    ("phone_plain", re.compile(r"\d{10}")),
    ("email", re.compile(r"[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")),
    ("integer", re.compile(r"\d+")),
    ("decimal", re.compile(r"\d+\.\d+")),
    ("currency", re.compile(r"\$\d+(\.\d{2})?")),
)


def detect_format(value: Any) -> str:
    """Classify a non-blank value into one of the known format categories."""
    text = as_text(value).strip()
    if not text:
        return "empty"
    for name, pattern in FORMAT_PATTERNS:
        if pattern.fullmatch(text):
            return name
    if text == text.upper():
        return "uppercase"
    if text == text.lower():
        return "lowercase"
    if text[0].isupper():
        return "titlecase"
    return "mixed"


def to_title_case(text: str) -> str:
    """Upper-case the first letter of each whitespace-separated word, lower-case the rest."""
    return re.sub(r"\S+", lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def standardize_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return phone


def standardize_date(date: str) -> str:
    """Convert ``MM/DD/YYYY`` and ``DD-MM-YYYY`` to ``YYYY-MM-DD``."""
    if re.fullmatch(r"\d{2}/\d{2}/\d{4}", date):
        month, day, year = date.split("/")
        return f"{year}-{month}-{day}"
    if re.fullmatch(r"\d{2}-\d{2}-\d{4}", date):
        day, month, year = date.split("-")
        return f"{year}-{month}-{day}"
    return date


def standardize_value(column: str, value: Any) -> Any:
    """Normalise *value* according to what the column name suggests it holds."""
    if column_matches(column, "name"):
        return to_title_case(as_text(value).strip())
    if column_matches(column, "email"):
        return as_text(value).strip().lower()
    if column_matches(column, "phone", "mobile"):
        return standardize_phone(as_text(value).strip())
    if column_matches(column, "date"):
        return standardize_date(as_text(value).strip())
    return value.strip() if isinstance(value, str) else value


class ConsistencyAgent(QualityAgent):
    """Measures how uniformly each column's values are formatted."""

    metric = Metric.CONSISTENCY

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        per_column: dict[str, float] = {}
        dominant_formats: dict[str, str] = {}
        inconsistencies: dict[str, list[str]] = {}

        for column in dataset.columns:
            series = frame[column]
            formats = Counter(detect_format(v) for v in series[~blank_mask(series)])

            if not formats:
                per_column[column] = 1.0
                continue

            dominant, dominant_count = formats.most_common(1)[0]
            consistency = dominant_count / sum(formats.values())
            per_column[column] = consistency
            dominant_formats[column] = dominant

            others = [f"{name} format ({count} occurrences)" for name, count in formats.items() if name != dominant]
            if others:
                inconsistencies[column] = others

            if consistency < self.threshold:
                issues.append(f"Column '{column}' has low consistency: {consistency * 100:.2f}%")
                recommendations.append(f"Standardize data formats and values in column '{column}'")

        overall = sum(per_column.values()) / len(per_column)
        details = {
            "total_rows": dataset.row_count,
            "consistency_per_column": per_column,
            "dominant_formats": dominant_formats,
            "inconsistencies": inconsistencies,
            "overall_consistency": overall,
        }
        return self.create_result(overall, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        rows: list[dict[str, Any]] = []
        for row in dataset.rows:
            new_row = dict(row)
            for column in dataset.columns:
                value = new_row.get(column)
                if not is_blank(value):
                    new_row[column] = standardize_value(column, value)
            rows.append(new_row)
        return dataset.with_rows(rows)
