"""Tests for the core data models in dq_orchestrator/models.py."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import numpy as np
import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from dq_orchestrator.models import (
    Dataset,
    Metric,
    QualityReport,
    QualityResult,
    QualityScore,
    RectificationStep,
    ReportBuilder,
    grade_for,
)


# ---------------------------------------------------------------------------
# Metric
# ---------------------------------------------------------------------------


class TestMetric:
    def test_display_name_and_description(self):
        assert Metric.COMPLETENESS.display_name == "Completeness"
        assert Metric.OUTLIERS.description == "Measures presence of statistical outliers"

    def test_is_string_valued(self):
        assert Metric.VALIDITY == "VALIDITY"
        assert Metric("BLANKS") is Metric.BLANKS

    def test_eleven_metrics(self):
        assert len(Metric) == 11

    def test_from_name_case_insensitive(self):
        assert Metric.from_name("uniqueness") is Metric.UNIQUENESS
        assert Metric.from_name(" Range ") is Metric.RANGE

    def test_from_name_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown metric 'freshness'"):
            Metric.from_name("freshness")


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


class TestDataset:
    def test_counts_are_derived(self):
        ds = Dataset(name="d", columns=["a", "b"], rows=[{"a": 1, "b": 2}])
        assert ds.row_count == 1
        assert ds.column_count == 2
        ds.rows.append({"a": 3, "b": 4})
        assert ds.row_count == 2

    def test_empty_dataset(self):
        ds = Dataset(name="empty", columns=[])
        assert ds.row_count == 0
        assert ds.column_count == 0

    def test_duplicate_columns_rejected(self):
        with pytest.raises(ValueError, match="Duplicate column names: a"):
            Dataset(name="d", columns=["a", "b", "a"])

    def test_with_rows_keeps_identity(self):
        ds = Dataset(name="d", columns=["a"], rows=[{"a": 1}], metadata={"k": "v"})
        copy = ds.with_rows([{"a": 2}])
        assert copy.id == ds.id
        assert copy.name == ds.name
        assert copy.created_at == ds.created_at
        assert copy.rows == [{"a": 2}]
        assert ds.rows == [{"a": 1}]
        copy.metadata["k"] = "changed"
        assert ds.metadata["k"] == "v"

    def test_to_frame_is_object_dtype_with_missing_keys(self):
        ds = Dataset(name="d", columns=["a", "b"], rows=[{"a": 1}, {"a": 2, "b": "x"}])
        frame = ds.to_frame()
        assert list(frame.columns) == ["a", "b"]
        assert all(dtype == object for dtype in frame.dtypes)
        assert pd.isna(frame.loc[0, "b"])

    def test_from_frame_maps_nan_to_none(self):
        frame = pd.DataFrame({"a": [1.0, np.nan], "b": ["x", None]})
        ds = Dataset.from_frame(frame, name="f", metadata={"source_file": "f.csv"})
        assert ds.columns == ["a", "b"]
        assert ds.rows[1]["a"] is None
        assert ds.rows[1]["b"] is None
        assert ds.metadata == {"source_file": "f.csv"}

    def test_to_dict(self):
        ds = Dataset(name="d", columns=["a"], rows=[{"a": 1}])
        payload = ds.to_dict()
        assert payload["name"] == "d"
        assert payload["data"] == [{"a": 1}]
        assert payload["row_count"] == 1
        assert payload["column_count"] == 1


# ---------------------------------------------------------------------------
# QualityResult
# ---------------------------------------------------------------------------


class TestQualityResult:
    def test_passed_computed_on_construction(self):
        assert QualityResult(Metric.COMPLETENESS, 0.96, 0.95).passed is True
        assert QualityResult(Metric.COMPLETENESS, 0.94, 0.95).passed is False

    def test_passed_when_score_equals_threshold(self):
        assert QualityResult(Metric.VALIDITY, 0.95, 0.95).passed is True

    def test_passed_recomputed_on_assignment(self):
        result = QualityResult(Metric.VALIDITY, 0.5, 0.9)
        result.score = 0.95
        assert result.passed is True
        result.threshold = 0.99
        assert result.passed is False

    def test_failure_result(self):
        result = QualityResult.failure(Metric.OUTLIERS, "Analysis failed: boom", RuntimeError("boom"))
        assert result.score == 0.0
        assert result.threshold == 0.0
        assert result.passed is False
        assert result.issues == ["Analysis failed: boom"]
        assert result.recommendations == ["Review data format and try again"]
        assert result.details == {"error": "RuntimeError"}

    def test_mark_failed_then_rescore_recomputes(self):
        result = QualityResult.failure(Metric.BLANKS, "Analysis timed out after 1 seconds")
        result.score = 0.5
        assert result.passed is True

    def test_to_dict(self):
        payload = QualityResult(Metric.UNIQUENESS, 1.0, 0.98, issues=["x"]).to_dict()
        assert payload["metric"] == "UNIQUENESS"
        assert payload["display_name"] == "Uniqueness"
        assert payload["passed"] is True
        assert payload["issues"] == ["x"]

    @settings(max_examples=100)
    @given(
        score=st.floats(min_value=-1, max_value=2, allow_nan=False),
        threshold=st.floats(min_value=0, max_value=1, allow_nan=False),
        new_score=st.floats(min_value=-1, max_value=2, allow_nan=False),
    )
    def test_passed_always_matches_score_and_threshold(self, score, threshold, new_score):
        result = QualityResult(Metric.CONSISTENCY, score, threshold)
        assert result.passed == (score >= threshold)
        result.score = new_score
        assert result.passed == (new_score >= threshold)


# ---------------------------------------------------------------------------
# QualityScore and grades
# ---------------------------------------------------------------------------


class TestGrades:
    @pytest.mark.parametrize(
        "score, grade",
        [
            (1.0, "A+"),
            (0.95, "A+"),
            (0.9499, "A"),
            (0.90, "A"),
            (0.85, "B+"),
            (0.80, "B"),
            (0.75, "C+"),
            (0.70, "C"),
            (0.65, "D+"),
            (0.60, "D"),
            (0.5999, "F"),
            (0.0, "F"),
            (-0.2, "F"),
            (1.3, "A+"),
        ],
    )
    def test_grade_boundaries(self, score, grade):
        assert grade_for(score) == grade

    def test_default_score_is_f(self):
        assert QualityScore().grade == "F"

    def test_grade_follows_overall_score(self):
        score = QualityScore(overall_score=0.5)
        score.overall_score = 0.91
        assert score.grade == "A"

    @given(st.floats(min_value=0, max_value=1, allow_nan=False), st.floats(min_value=0, max_value=1, allow_nan=False))
    def test_grade_is_monotonic(self, a, b):
        order = ["F", "D", "D+", "C", "C+", "B", "B+", "A", "A+"]
        low, high = sorted((a, b))
        assert order.index(grade_for(low)) <= order.index(grade_for(high))

    def test_to_dict_uses_metric_values(self):
        score = QualityScore(overall_score=0.9, metric_scores={Metric.BLANKS: 0.9})
        assert score.to_dict() == {"overall_score": 0.9, "grade": "A", "metric_scores": {"BLANKS": 0.9}}


# ---------------------------------------------------------------------------
# Report and builder
# ---------------------------------------------------------------------------


def _report(**metadata) -> QualityReport:
    builder = (
        ReportBuilder("employees", report_id="r-1")
        .pre_processing_score(QualityScore(overall_score=0.8))
        .post_processing_score(QualityScore(overall_score=0.95))
        .results([QualityResult(Metric.COMPLETENESS, 1.0, 0.95)])
        .rectification_actions(["Improved Completeness by 5.0 percentage points"])
        .summary("ok")
        .processing_time_ms(12)
    )
    if metadata:
        builder.metadata(**metadata)
    return builder.build()


class TestReport:
    def test_builder_assembles_report(self):
        report = _report(original_row_count=6)
        assert report.id == "r-1"
        assert report.dataset_name == "employees"
        assert report.improvement == pytest.approx(0.15)
        assert len(report.results) == 1
        assert report.rectification_actions == ("Improved Completeness by 5.0 percentage points",)
        assert report.processing_time_ms == 12
        assert report.metadata["original_row_count"] == 6

    def test_builder_requires_scores(self):
        with pytest.raises(ValueError, match="pre- and post-processing scores"):
            ReportBuilder("x").pre_processing_score(QualityScore()).build()

    def test_report_is_frozen(self):
        report = _report()
        with pytest.raises(FrozenInstanceError):
            report.summary = "changed"  # type: ignore[misc]
        with pytest.raises(TypeError):
            report.metadata["new"] = 1  # type: ignore[index]

    def test_with_metadata_returns_new_report(self):
        report = _report(a=1)
        updated = report.with_metadata(source_file="data.csv")
        assert updated is not report
        assert updated.metadata == {"a": 1, "source_file": "data.csv"}
        assert "source_file" not in report.metadata
        assert updated.id == report.id

    def test_to_dict(self):
        payload = _report().to_dict()
        assert payload["pre_processing_score"]["grade"] == "B"
        assert payload["post_processing_score"]["grade"] == "A+"
        assert payload["results"][0]["metric"] == "COMPLETENESS"
        assert payload["rectification_actions"] == ["Improved Completeness by 5.0 percentage points"]


class TestRectificationStep:
    def test_to_dict(self):
        step = RectificationStep(Metric.UNIQUENESS, "UniquenessAgent", "applied", 6, 5)
        payload = step.to_dict()
        assert payload["metric"] == "UNIQUENESS"
        assert payload["rows_before"] == 6
        assert payload["rows_after"] == 5
        assert payload["status"] == "applied"
        assert payload["timestamp"]
