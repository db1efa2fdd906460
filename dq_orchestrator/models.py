"""Core data models for the data quality orchestrator."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

import pandas as pd
from typing_extensions import TypedDict


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Metric(str, Enum):
    """Quality dimensions a dataset can be measured against."""

    COMPLETENESS = ("COMPLETENESS", "Completeness", "Measures the percentage of non-null values")
    UNIQUENESS = ("UNIQUENESS", "Uniqueness", "Measures the percentage of unique values")
    CONSISTENCY = ("CONSISTENCY", "Consistency", "Measures data consistency across related fields")
    VALIDITY = ("VALIDITY", "Validity", "Measures adherence to defined formats and rules")
    ACCURACY = ("ACCURACY", "Accuracy", "Measures correctness of data values")
    INTEGRITY = ("INTEGRITY", "Integrity", "Measures referential and domain integrity")
    TIMELINESS = ("TIMELINESS", "Timeliness", "Measures data freshness and currency")
    CONFORMITY = ("CONFORMITY", "Conformity", "Measures adherence to data standards")
    RANGE = ("RANGE", "Range", "Measures values within expected ranges")
    BLANKS = ("BLANKS", "Blanks", "Measures presence of blank/empty values")
    OUTLIERS = ("OUTLIERS", "Outliers", "Measures presence of statistical outliers")

    def __new__(cls, value: str, display_name: str, description: str) -> "Metric":
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.display_name = display_name
        obj.description = description
        return obj

    @classmethod
    def from_name(cls, name: str) -> "Metric":
        """Look up a metric by name, case-insensitively.

        Raises:
            ValueError: If no metric has that name.
        """
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown metric '{name}'. Must be one of: "
                f"{', '.join(m.name.lower() for m in cls)}."
            ) from None


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


@dataclass
class Dataset:
    """A tabular dataset held in memory as an ordered list of row mappings.

    Rows do not need to populate every column; a missing key and an explicit
    ``None`` are both read as blank. Agents treat a Dataset as immutable and
    return new instances from ``rectify``.
    """

    name: str
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.columns = list(self.columns or [])
        self.rows = list(self.rows or [])
        seen: set[str] = set()
        duplicated = [c for c in self.columns if c in seen or seen.add(c)]
        if duplicated:
            raise ValueError(f"Duplicate column names: {', '.join(map(str, duplicated))}")

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def with_rows(self, rows: list[dict[str, Any]]) -> Dataset:
        """Return a copy of this dataset carrying *rows* instead of the current ones."""
        return Dataset(
            name=self.name,
            columns=list(self.columns),
            rows=rows,
            id=self.id,
            metadata=dict(self.metadata),
            created_at=self.created_at,
        )

    def to_frame(self) -> pd.DataFrame:
        """Return the rows as an object-dtype DataFrame (missing keys become NaN)."""
        return pd.DataFrame(self.rows, columns=self.columns, dtype=object)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        name: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Dataset:
        """Build a Dataset from a DataFrame, mapping NaN to ``None``."""
        as_objects = frame.astype(object)
        cleaned = as_objects.where(frame.notna(), None)
        rows = cleaned.to_dict(orient="records")
        return cls(
            name=name,
            columns=[str(c) for c in frame.columns],
            rows=[{str(k): v for k, v in row.items()} for row in rows],
            metadata=dict(metadata or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "columns": list(self.columns),
            "data": [dict(row) for row in self.rows],
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "row_count": self.row_count,
            "column_count": self.column_count,
        }


# ---------------------------------------------------------------------------
# Results and scores
# ---------------------------------------------------------------------------


@dataclass
class QualityResult:
    """Outcome of one agent's analysis for a single metric.

    ``passed`` is derived: it is recomputed as ``score >= threshold`` every
    time either value is assigned.
    """

    metric: Metric
    score: float
    threshold: float
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)
    passed: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.passed = self.score >= self.threshold

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in ("score", "threshold") and "score" in self.__dict__ and "threshold" in self.__dict__:
            super().__setattr__("passed", self.score >= self.threshold)

    def mark_failed(self, issue: str) -> None:
        """Flag the result as failed regardless of score, recording *issue*."""
        self.issues.append(issue)
        super().__setattr__("passed", False)

    @classmethod
    def failure(cls, metric: Metric, message: str, error: Optional[BaseException] = None) -> QualityResult:
        """Build the zero-score result used when an agent could not analyze."""
        result = cls(
            metric=metric,
            score=0.0,
            threshold=0.0,
            recommendations=["Review data format and try again"],
            details={"error": type(error).__name__} if error is not None else {},
        )
        result.mark_failed(message)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "display_name": self.metric.display_name,
            "score": self.score,
            "threshold": self.threshold,
            "passed": self.passed,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


# Inclusive lower bounds, best grade first.
GRADE_LADDER: tuple[tuple[float, str], ...] = (
    (0.95, "A+"),
    (0.90, "A"),
    (0.85, "B+"),
    (0.80, "B"),
    (0.75, "C+"),
    (0.70, "C"),
    (0.65, "D+"),
    (0.60, "D"),
)


def grade_for(score: float) -> str:
    """Map an overall score onto the letter-grade ladder (no clamping)."""
    for lower_bound, grade in GRADE_LADDER:
        if score >= lower_bound:
            return grade
    return "F"


@dataclass
class QualityScore:
    """Weighted overall score plus the per-metric scores it was built from."""

    overall_score: float = 0.0
    metric_scores: dict[Metric, float] = field(default_factory=dict)
    grade: str = field(init=False, default="F")

    def __post_init__(self) -> None:
        self.grade = grade_for(self.overall_score)

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name == "overall_score":
            super().__setattr__("grade", grade_for(value))

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "grade": self.grade,
            "metric_scores": {m.value: s for m, s in self.metric_scores.items()},
        }


@dataclass
class RectificationStep:
    """Record of a single rectify attempt made during a run."""

    metric: Metric
    agent: str
    status: str  # applied | failed | skipped
    rows_before: int
    rows_after: int
    message: str = ""
    timestamp: str = field(default_factory=lambda: _utc_now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "agent": self.agent,
            "status": self.status,
            "rows_before": self.rows_before,
            "rows_after": self.rows_after,
            "message": self.message,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QualityReport:
    """Before/after analysis artifact for one orchestration run.

    Instances are immutable; use :meth:`with_metadata` to attach extra
    metadata, which returns a new report.
    """

    id: str
    dataset_name: str
    pre_processing_score: QualityScore
    post_processing_score: QualityScore
    results: tuple[QualityResult, ...] = ()
    rectification_actions: tuple[str, ...] = ()
    summary: str = ""
    timestamp: datetime = field(default_factory=_utc_now)
    processing_time_ms: int = 0
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def improvement(self) -> float:
        return self.post_processing_score.overall_score - self.pre_processing_score.overall_score

    def with_metadata(self, **extra: Any) -> QualityReport:
        merged = {**self.metadata, **extra}
        return replace(self, metadata=MappingProxyType(merged))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "dataset_name": self.dataset_name,
            "pre_processing_score": self.pre_processing_score.to_dict(),
            "post_processing_score": self.post_processing_score.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "rectification_actions": list(self.rectification_actions),
            "summary": self.summary,
            "timestamp": self.timestamp.isoformat(),
            "processing_time_ms": self.processing_time_ms,
            "metadata": dict(self.metadata),
        }


class ReportBuilder:
    """Step-by-step assembly of a :class:`QualityReport`."""

    def __init__(self, dataset_name: str, report_id: Optional[str] = None) -> None:
        self._id = report_id or str(uuid.uuid4())
        self._dataset_name = dataset_name
        self._pre: Optional[QualityScore] = None
        self._post: Optional[QualityScore] = None
        self._results: list[QualityResult] = []
        self._actions: list[str] = []
        self._summary = ""
        self._processing_time_ms = 0
        self._metadata: dict[str, Any] = {}
        self._timestamp = _utc_now()

    def pre_processing_score(self, score: QualityScore) -> ReportBuilder:
        self._pre = score
        return self

    def post_processing_score(self, score: QualityScore) -> ReportBuilder:
        self._post = score
        return self

    def results(self, results: list[QualityResult]) -> ReportBuilder:
        self._results = list(results)
        return self

    def rectification_actions(self, actions: list[str]) -> ReportBuilder:
        self._actions = list(actions)
        return self

    def summary(self, summary: str) -> ReportBuilder:
        self._summary = summary
        return self

    def processing_time_ms(self, elapsed_ms: int) -> ReportBuilder:
        self._processing_time_ms = int(elapsed_ms)
        return self

    def metadata(self, **extra: Any) -> ReportBuilder:
        self._metadata.update(extra)
        return self

    def build(self) -> QualityReport:
        """Return the assembled report.

        Raises:
            ValueError: If either the pre- or post-processing score is missing.
        """
        if self._pre is None or self._post is None:
            raise ValueError("Both pre- and post-processing scores are required to build a report.")
        return QualityReport(
            id=self._id,
            dataset_name=self._dataset_name,
            pre_processing_score=self._pre,
            post_processing_score=self._post,
            results=tuple(self._results),
            rectification_actions=tuple(self._actions),
            summary=self._summary,
            timestamp=self._timestamp,
            processing_time_ms=self._processing_time_ms,
            metadata=MappingProxyType(dict(self._metadata)),
        )


class PipelineState(TypedDict, total=False):
    """State threaded through the orchestration graph nodes."""

    # Input
    dataset: Dataset
    cancel_event: Optional[threading.Event]
    started_at: float

    # Pre-processing analysis
    pre_results: list[QualityResult]
    pre_score: Optional[QualityScore]

    # Rectification
    rectified_dataset: Optional[Dataset]
    rectification_log: list[RectificationStep]

    # Post-processing analysis
    post_results: list[QualityResult]
    post_score: Optional[QualityScore]
    rectification_actions: list[str]

    # Output
    summary: Optional[str]
    report: Optional[QualityReport]

    # Traceability
    errors: list[str]
    stage_log: list[dict]
