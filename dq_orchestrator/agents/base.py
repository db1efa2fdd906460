"""Shared contract and cell-level helpers for the quality agents.

Every agent measures one :class:`~dq_orchestrator.models.Metric`. ``analyze``
turns a Dataset into a QualityResult and ``rectify`` turns a Dataset plus
that result into a new Dataset. Agents hold no per-run state, so a single
instance can serve concurrent runs.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from dq_orchestrator.config import QualityConfig
from dq_orchestrator.models import Dataset, Metric, QualityResult

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def is_blank(value: Any) -> bool:
    """Return True for ``None``, NaN/NA and strings that are empty after stripping."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if pd.api.types.is_scalar(value):
        return bool(pd.isna(value))
    return False


def blank_mask(series: pd.Series) -> pd.Series:
    """Boolean mask of the blank cells in *series*."""
    return series.map(is_blank).astype(bool)


def as_text(value: Any) -> str:
    """String form of a cell value as used for pattern matching."""
    return value if isinstance(value, str) else str(value)


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell into a finite float, or return None.

    Booleans are not numbers here; numeric strings may carry a sign, a
    decimal point and an exponent.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    text = as_text(value).strip()
    if not _NUMBER_PATTERN.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def is_numeric(value: Any) -> bool:
    return parse_number(value) is not None


def numeric_value(number: float) -> int | float:
    """Return *number* as an int when it is integral, otherwise as a float."""
    number = float(number)
    return int(number) if number.is_integer() else number


def median(values: Iterable[float]) -> float:
    """Median of *values*; the mean of the two middle values for even counts."""
    series = pd.Series(list(values), dtype="float64")
    if series.empty:
        return 0.0
    return float(series.median())


def most_frequent(values: Iterable[Any]) -> Any:
    """Most frequent value, ties resolved by first appearance."""
    counts = Counter(values)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def column_matches(column: str, *keywords: str) -> bool:
    """True when the lower-cased column name contains any of *keywords*."""
    lowered = str(column).lower()
    return any(keyword in lowered for keyword in keywords)


# ---------------------------------------------------------------------------
# Agent contract
# ---------------------------------------------------------------------------


class QualityAgent(ABC):
    """Base class for all metric agents.

    Subclasses set :attr:`metric` and implement ``_analyze`` / ``_rectify``.
    The public ``analyze`` and ``rectify`` handle the ``None`` and empty
    dataset cases so the concrete agents only see datasets with rows.
    """

    metric: Metric

    def __init__(self, config: Optional[QualityConfig] = None) -> None:
        self._config = config or QualityConfig()

    @property
    def agent_name(self) -> str:
        return type(self).__name__

    @property
    def threshold(self) -> float:
        return self._config.threshold_for(self.metric)

    def can_handle(self, metric: Metric) -> bool:
        return self.metric == metric

    def create_result(
        self,
        score: float,
        issues: Optional[list[str]] = None,
        recommendations: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> QualityResult:
        """Build a result for this agent's metric using the configured threshold."""
        return QualityResult(
            metric=self.metric,
            score=score,
            threshold=self.threshold,
            issues=list(issues or []),
            recommendations=list(recommendations or []),
            details=dict(details or {}),
        )

    def analyze(self, dataset: Dataset) -> QualityResult:
        """Measure this agent's metric on *dataset*.

        Raises:
            ValueError: If *dataset* is None.
        """
        _require_dataset(dataset)
        logger.info("%s analyzing dataset '%s'", self.agent_name, dataset.name)
        if dataset.row_count == 0 or dataset.column_count == 0:
            return self.create_result(1.0, details={"total_rows": dataset.row_count})
        return self._analyze(dataset, dataset.to_frame())

    def rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        """Return a new dataset with this agent's issues corrected.

        The input dataset and its rows are never modified.

        Raises:
            ValueError: If *dataset* is None.
        """
        _require_dataset(dataset)
        logger.info("%s rectifying dataset '%s'", self.agent_name, dataset.name)
        if dataset.row_count == 0:
            return dataset.with_rows([])
        return self._rectify(dataset, result)

    @abstractmethod
    def _analyze(self, dataset: Dataset, frame: pd.DataFrame) -> QualityResult:
        """Analyze a dataset that has at least one row and one column."""

    @abstractmethod
    def _rectify(self, dataset: Dataset, result: QualityResult) -> Dataset:
        """Rectify a dataset that has at least one row."""


def _require_dataset(dataset: Optional[Dataset]) -> None:
    if dataset is None:
        raise ValueError("dataset must not be None")
