"""Tests for the format-consistency agent."""

from __future__ import annotations

import pytest

from dq_orchestrator.agents.consistency import (
    ConsistencyAgent,
    detect_format,
    standardize_date,
    standardize_phone,
    standardize_value,
    to_title_case,
)
from dq_orchestrator.models import Metric

from conftest import make_dataset


class TestFormatDetection:
    @pytest.mark.parametrize(
        "value, fmt",
        [
            ("2024-01-31", "date_iso"),
            ("01/31/2024", "date_us"),
            ("31-01-2024", "date_eu"),
            ("+1 555 123 4567", "phone_international"),
            ("(555) 123-4567", "phone_us"),
            ("555-123-4567", "phone_dash"),
            ("5551234567", "phone_plain"),
            ("a.b@example.com", "email"),
            ("42", "integer"),
            (42, "integer"),
            ("4.20", "decimal"),
            ("$4.20", "currency"),
            ("HR", "uppercase"),
            ("sales", "lowercase"),
            ("Sales Team", "titlecase"),
            ("sALES", "mixed"),
        ],
    )
    def test_detect_format(self, value, fmt):
        assert detect_format(value) == fmt

    def test_ten_digit_number_is_plain_phone(self):
        # Phone patterns are checked before the integer pattern.
        assert detect_format("1234567890") == "phone_plain"


class TestStandardization:
    def test_title_case(self):
        assert to_title_case("jOHN  o'neil") == "John  O'neil"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("555.123.4567", "(555) 123-4567"),
            ("1-555-123-4567", "+1 (555) 123-4567"),
            ("12345", "12345"),
        ],
    )
    def test_standardize_phone(self, raw, expected):
        assert standardize_phone(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [("01/31/2024", "2024-01-31"), ("31-01-2024", "2024-01-31"), ("2024-01-31", "2024-01-31")],
    )
    def test_standardize_date(self, raw, expected):
        assert standardize_date(raw) == expected

    @pytest.mark.parametrize(
        "column, value, expected",
        [
            ("full_name", "  jane SMITH ", "Jane Smith"),
            ("email", " Jane@Example.COM", "jane@example.com"),
            ("mobile", "555 123 4567", "(555) 123-4567"),
            ("hire_date", "12/01/2023", "2023-12-01"),
            ("city", "  Paris ", "Paris"),
            ("score", 7, 7),
        ],
    )
    def test_standardize_value(self, column, value, expected):
        assert standardize_value(column, value) == expected


class TestConsistencyAnalyze:
    def test_uniform_column(self):
        ds = make_dataset(["d"], [["2024-01-01"], ["2024-02-01"]])
        result = ConsistencyAgent().analyze(ds)
        assert result.metric is Metric.CONSISTENCY
        assert result.score == 1.0
        assert result.details["dominant_formats"] == {"d": "date_iso"}

    def test_mixed_formats(self):
        ds = make_dataset(["d"], [["2024-01-01"], ["2024-02-01"], ["01/03/2024"], [None]])
        result = ConsistencyAgent().analyze(ds)
        assert result.score == pytest.approx(2 / 3)
        assert result.details["inconsistencies"] == {"d": ["date_us format (1 occurrences)"]}
        assert result.issues == ["Column 'd' has low consistency: 66.67%"]
        assert result.recommendations == ["Standardize data formats and values in column 'd'"]

    def test_all_blank_column_is_consistent(self):
        ds = make_dataset(["a", "b"], [[None, "x"], ["", "y"]])
        assert ConsistencyAgent().analyze(ds).details["consistency_per_column"]["a"] == 1.0

    def test_sample_dataset_passes_overall(self, employees):
        result = ConsistencyAgent().analyze(employees)
        assert result.score == pytest.approx(5.5 / 6)
        assert result.passed is True
        assert result.details["dominant_formats"]["department"] == "titlecase"


class TestConsistencyRectify:
    def test_rectify_standardizes_and_preserves_rows(self):
        ds = make_dataset(
            ["name", "email", "phone", "signup_date"],
            [
                ["alice SMITH", "Alice@Example.com", "555.111.2222", "01/02/2024"],
                ["Bob Jones", "bob@example.com", "(555) 333-4444", "2024-03-04"],
                [None, "", None, None],
            ],
        )
        out = ConsistencyAgent().rectify(ds, ConsistencyAgent().analyze(ds))
        assert out.row_count == 3
        assert out.rows[0] == {
            "name": "Alice Smith",
            "email": "alice@example.com",
            "phone": "(555) 111-2222",
            "signup_date": "2024-01-02",
        }
        assert out.rows[2] == {"name": None, "email": "", "phone": None, "signup_date": None}
        assert ds.rows[0]["name"] == "alice SMITH"
