"""Tests for the validity agent."""

from __future__ import annotations

import pytest

from dq_orchestrator.agents.validity import (
    INVALID_EMAIL_SENTINEL,
    INVALID_PHONE_SENTINEL,
    MAX_INVALID_EXAMPLES,
    ValidityAgent,
    column_kind,
    correct_value,
    is_valid_value,
)
from dq_orchestrator.models import Metric

from conftest import make_dataset


class TestColumnRules:
    @pytest.mark.parametrize(
        "column, kind",
        [
            ("email", "email"),
            ("Contact_Mail", "email"),
            ("phone", "phone"),
            ("mobile_number", "phone"),
            ("telephone", "phone"),
            ("start_date", "date"),
            ("timestamp", "date"),
            ("age", "numeric"),
            ("item_count", "numeric"),
            ("price", "numeric"),
            ("name", "text"),
        ],
    )
    def test_column_kind(self, column, kind):
        assert column_kind(column) == kind

    @pytest.mark.parametrize(
        "column, value, valid",
        [
            ("email", "john.doe@example.com", True),
            ("email", "invalid-email", False),
            ("email", "a@b.c", False),
            ("phone", "(555) 123-4567", True),
            ("phone", "+15551234567", True),
            ("phone", "12", False),
            ("date", "2024-01-31", True),
            ("date", "01/31/2024", True),
            ("date", "31-01-2024", True),
            ("date", "Jan 31", False),
            ("age", 30, True),
            ("age", "0", True),
            ("age", -5, False),
            ("age", "old", False),
            ("name", "x", True),
        ],
    )
    def test_is_valid_value(self, column, value, valid):
        assert is_valid_value(column, value) is valid

    @pytest.mark.parametrize(
        "column, value, corrected",
        [
            ("email", "  John@Example.COM ", "john@example.com"),
            ("email", "invalid-email", INVALID_EMAIL_SENTINEL),
            ("phone", "555.123.4567", "5551234567"),
            ("phone", "12", INVALID_PHONE_SENTINEL),
            ("age", -5, 5),
            ("age", "-12.5", 12.5),
            ("age", "abc", "0"),
            ("date", " 2024/01/01 ", "2024/01/01"),
        ],
    )
    def test_correct_value(self, column, value, corrected):
        assert correct_value(column, value) == corrected


class TestValidityAnalyze:
    def test_valid_dataset(self):
        ds = make_dataset(["email", "age"], [["a@example.com", 3], ["b@example.org", 0]])
        result = ValidityAgent().analyze(ds)
        assert result.metric is Metric.VALIDITY
        assert result.score == 1.0
        assert result.passed is True

    def test_validity_is_over_non_blank_values(self):
        ds = make_dataset(["email"], [["a@example.com"], [None], ["bad"], [""]])
        result = ValidityAgent().analyze(ds)
        assert result.details["validity_per_column"]["email"] == pytest.approx(0.5)
        assert result.details["invalid_values"] == {"email": ["bad"]}
        assert result.issues == ["Column 'email' has low validity: 50.00% (1 invalid values)"]

    def test_all_blank_column_is_valid(self):
        ds = make_dataset(["email", "name"], [[None, "x"], ["", "y"]])
        assert ValidityAgent().analyze(ds).details["validity_per_column"]["email"] == 1.0

    def test_invalid_examples_are_capped(self):
        ds = make_dataset(["email"], [[f"bad{i}"] for i in range(25)])
        result = ValidityAgent().analyze(ds)
        assert len(result.details["invalid_values"]["email"]) == MAX_INVALID_EXAMPLES
        assert "(25 invalid values)" in result.issues[0]

    def test_sample_dataset(self, employees):
        result = ValidityAgent().analyze(employees)
        per_column = result.details["validity_per_column"]
        assert per_column["email"] == pytest.approx(5 / 6)
        assert per_column["age"] == pytest.approx(5 / 6)
        assert per_column["name"] == 1.0
        assert result.passed is False
        assert len(result.issues) == 2


class TestValidityRectify:
    def test_sample_dataset_corrected(self, employees):
        agent = ValidityAgent()
        out = agent.rectify(employees, agent.analyze(employees))
        assert out.rows[2]["email"] == INVALID_EMAIL_SENTINEL
        assert out.rows[2]["age"] == 5
        assert out.rows[2]["name"] == ""
        assert agent.analyze(out).score == 1.0
        assert employees.rows[2]["age"] == -5

    def test_valid_values_untouched(self):
        ds = make_dataset(["email"], [["Mixed@Example.com"]])
        out = ValidityAgent().rectify(ds, ValidityAgent().analyze(ds))
        assert out.rows[0]["email"] == "Mixed@Example.com"
