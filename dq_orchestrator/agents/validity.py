"""Validity: format checks chosen from column-name heuristics."""

from __future__ import annotations

import logging
import re
from typing import Any

import pandas as pd

from dq_orchestrator.agents.base import (
    QualityAgent,
    as_text,
    blank_mask,
    column_matches,
    is_blank,
    numeric_value,
    parse_number,
)
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})$")
PHONE_PATTERN = re.compile(r"^[+]?[1-9]?[0-9]{7,15}$")
PHONE_SEPARATORS = re.compile(r"[\s()-]")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$|^\d{2}/\d{2}/\d{4}$|^\d{2}-\d{2}-\d{4}$")

EMAIL_KEYWORDS = ("email", "mail")
PHONE_KEYWORDS = ("phone", "mobile", "tel")
DATE_KEYWORDS = ("date", "time")
NUMERIC_KEYWORDS = ("age", "count", "amount", "price")

INVALID_EMAIL_SENTINEL = "invalid@example.com"
INVALID_PHONE_SENTINEL = "0000000000"
MAX_INVALID_EXAMPLES = 10


def column_kind(column: str) -> str:
    """Classify a column as email, phone, date, numeric or text from its name."""
    if column_matches(column, *EMAIL_KEYWORDS):
        return "email"
    if column_matches(column, *PHONE_KEYWORDS):
        return "phone"
    if column_matches(column, *DATE_KEYWORDS):
        return "date"
    if column_matches(column, *NUMERIC_KEYWORDS):
        return "numeric"
    return "text"


def is_valid_value(column: str, value: Any) -> bool:
    text = as_text(value)
    kind = column_kind(column)
    if kind == "email":
        return bool(EMAIL_PATTERN.match(text))
    if kind == "phone":
        return bool(PHONE_PATTERN.match(PHONE_SEPARATORS.sub("", text)))
    if kind == "date":
        return bool(DATE_PATTERN.match(text))
    if kind == "numeric":
        number = parse_number(value)
        return number is not None and number >= 0
    return bool(text.strip())


def correct_value(column: str, value: Any) -> Any:
    """Best-effort correction of an invalid value for *column*."""
    text = as_text(value)
    kind = column_kind(column)
    if kind == "email":
        email = text.strip().lower()
        return email if "@" in email else INVALID_EMAIL_SENTINEL
    if kind == "phone":
        digits = re.sub(r"\D", "", text)
        return digits if len(digits) >= 7 else INVALID_PHONE_SENTINEL
    if kind == "numeric":
        number = parse_number(re.sub(r"[^0-9.-]", "", text))
        return numeric_value(abs(number)) if number is not None else "0"
    return text.strip()


class ValidityAgent(QualityAgent):
    """Checks emails, phone numbers, dates and non-negative numbers by column name."""

    metric = Metric.VALIDITY

    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        issues: list[str] = []
        recommendations: list[str] = []
        per_column: dict[str, float] = {}
        invalid_values: dict[str, list[str]] = {}

        for column in dataset.columns:
            series = frame[column]
            present = series[~blank_mask(series)]
            invalid = [as_text(v) for v in present if not is_valid_value(column, v)]

            validity = (len(present) - len(invalid)) / len(present) if len(present) else 1.0
            per_column[column] = validity

            if invalid:
                invalid_values[column] = invalid[:MAX_INVALID_EXAMPLES]

            if validity < self.threshold:
                issues.append(
                    f"Column '{column}' has low validity: {validity * 100:.2f}% ({len(invalid)} invalid values)"
                )
                recommendations.append(f"Review and correct invalid values in column '{column}'")

        overall = sum(per_column.values()) / len(per_column)
        details = {
            "total_rows": dataset.row_count,
            "validity_per_column": per_column,
            "column_kinds": {column: column_kind(column) for column in dataset.columns},
            "invalid_values": invalid_values,
            "overall_validity": overall,
        }
        return self.create_result(overall, issues, recommendations, details)

    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        rows: list[dict[str, Any]] = []
        corrected = 0
        for row in dataset.rows:
            new_row = dict(row)
            for column in dataset.columns:
                value = new_row.get(column)
                if not is_blank(value) and not is_valid_value(column, value):
                    new_row[column] = correct_value(column, value)
                    corrected += 1
            rows.append(new_row)

        logger.info("Corrected %d invalid values in dataset '%s'", corrected, dataset.name)
        return dataset.with_rows(rows)
