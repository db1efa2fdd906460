"""Thresholds, scoring weights and processing limits for a quality run.

A single :class:`QualityConfig` value is shared by every agent, the scoring
engine and the orchestrator. It is a pydantic-settings model: values come
from keyword arguments, a nested mapping, a JSON file, or ``DQ_*``
environment variables, e.g.::

    DQ_THRESHOLDS__COMPLETENESS=0.9
    DQ_WEIGHTS__UNIQUENESS=0.2
    DQ_MAX_CONCURRENT_WORKERS=4
    DQ_TIMEOUT_SECONDS=60
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dq_orchestrator.models import Metric

logger = logging.getLogger(__name__)

# Blanks and Outliers are rate metrics: their thresholds are stored in score
# space, i.e. 1 - maximum tolerated rate (5% blanks, 10% outliers).
DEFAULT_THRESHOLDS: dict[Metric, float] = {
    Metric.COMPLETENESS: 0.95,
    Metric.UNIQUENESS: 0.98,
    Metric.CONSISTENCY: 0.90,
    Metric.VALIDITY: 0.95,
    Metric.ACCURACY: 0.90,
    Metric.INTEGRITY: 0.95,
    Metric.TIMELINESS: 0.85,
    Metric.CONFORMITY: 0.90,
    Metric.RANGE: 0.95,
    Metric.BLANKS: 0.95,
    Metric.OUTLIERS: 0.90,
}

DEFAULT_WEIGHTS: dict[Metric, float] = {
    Metric.COMPLETENESS: 0.15,
    Metric.UNIQUENESS: 0.15,
    Metric.CONSISTENCY: 0.10,
    Metric.VALIDITY: 0.15,
    Metric.ACCURACY: 0.15,
    Metric.INTEGRITY: 0.10,
    Metric.TIMELINESS: 0.05,
    Metric.CONFORMITY: 0.05,
    Metric.RANGE: 0.05,
    Metric.BLANKS: 0.03,
    Metric.OUTLIERS: 0.02,
}

WEIGHT_SUM_TOLERANCE = 0.01


class QualityConfig(BaseSettings):
    """Configuration shared by agents, scoring and orchestration.

    Partial ``thresholds`` / ``weights`` mappings are merged over the
    defaults; keys may be :class:`Metric` members or metric names in any case.
    """

    model_config = SettingsConfigDict(
        env_prefix="DQ_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    thresholds: dict[Metric, float] = Field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))
    weights: dict[Metric, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    max_concurrent_workers: int = 5
    timeout_seconds: float = 300.0

    @model_validator(mode="before")
    @classmethod
    def _flatten_processing(cls, data: Any) -> Any:
        """Accept the file layout that groups workers and timeout under ``processing``."""
        if isinstance(data, dict) and isinstance(data.get("processing"), Mapping):
            data = {**data}
            data.update(data.pop("processing"))
        return data

    @field_validator("thresholds", "weights", mode="before")
    @classmethod
    def _merge_defaults(cls, value: Any, info: ValidationInfo) -> dict[Metric, Any]:
        if not isinstance(value, Mapping):
            raise ValueError(f"{info.field_name} must be a mapping of metric name to number")
        defaults = DEFAULT_THRESHOLDS if info.field_name == "thresholds" else DEFAULT_WEIGHTS
        overrides = {key if isinstance(key, Metric) else Metric.from_name(key): v for key, v in value.items()}
        return {**defaults, **overrides}

    @field_validator("thresholds")
    @classmethod
    def _check_thresholds(cls, value: dict[Metric, float]) -> dict[Metric, float]:
        for metric, threshold in value.items():
            if not math.isfinite(threshold):
                raise ValueError(f"Threshold for {metric.display_name} must be a finite number, got {threshold}.")
        return value

    @field_validator("weights")
    @classmethod
    def _check_weights(cls, value: dict[Metric, float]) -> dict[Metric, float]:
        for metric, weight in value.items():
            if not math.isfinite(weight) or weight < 0:
                raise ValueError(f"Weight for {metric.display_name} must be a non-negative number, got {weight}.")
        return value

    @field_validator("max_concurrent_workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"max_concurrent_workers must be at least 1, got {value}.")
        return value

    @field_validator("timeout_seconds")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if not value > 0:
            raise ValueError(f"timeout_seconds must be positive, got {value}.")
        return value

    @model_validator(mode="after")
    def _warn_on_weight_sum(self) -> QualityConfig:
        total = sum(self.weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            logger.warning("Scoring weights sum to %.3f instead of 1.0; overall scores stay normalised", total)
        return self

    def threshold_for(self, metric: Metric) -> float:
        return self.thresholds[metric]

    def weight_for(self, metric: Metric) -> float:
        return self.weights[metric]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> QualityConfig:
        """Build a config from a nested mapping, ignoring the environment.

        Expected shape (every section optional)::

            {
                "thresholds": {"completeness": 0.9, ...},
                "weights": {"uniqueness": 0.2, ...},
                "processing": {"max_concurrent_workers": 4, "timeout_seconds": 60},
            }
        """
        return cls.model_validate(dict(mapping))


def load_config(path: Optional[str] = None) -> QualityConfig:
    """Load configuration from a JSON file, or from ``DQ_*`` environment variables when *path* is None.

    Raises:
        ValueError: If the file is missing, is not a valid JSON object, or
            holds invalid values (pydantic's ``ValidationError`` is a
            ``ValueError``).
    """
    if path is None:
        return QualityConfig()

    config_path = Path(path)
    if not config_path.is_file():
        raise ValueError(f"Config file not found: {path}")

    config = QualityConfig.model_validate_json(config_path.read_text(encoding="utf-8"))
    logger.info("Loaded quality configuration from %s", path)
    return config
