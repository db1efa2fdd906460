"""Exception hierarchy for the data quality orchestrator."""

from __future__ import annotations


class DataQualityError(Exception):
    """Base class for all errors raised by this package."""


class InvalidDatasetError(DataQualityError):
    """Raised when a dataset is missing or has no rows to analyze."""


class ProcessingError(DataQualityError):
    """Raised when an orchestration run cannot produce a report."""


class PipelineCancelledError(ProcessingError):
    """Raised when a run is cancelled before the report is assembled."""


class DatasetNotFoundError(DataQualityError):
    """Raised by the file-source connector when the source does not exist."""


class UnsupportedFormatError(DataQualityError):
    """Raised by the file-source connector for unreadable or unknown formats."""
