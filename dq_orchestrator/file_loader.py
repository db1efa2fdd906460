"""File-source connector: CSV/TSV, JSON and Excel files into Datasets.

Text files get automatic encoding (chardet) and delimiter (csv.Sniffer)
detection before being parsed with pandas.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import chardet
import numpy as np
import pandas as pd

from dq_orchestrator.errors import DatasetNotFoundError, UnsupportedFormatError
from dq_orchestrator.models import Dataset

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".csv", ".tsv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | EXCEL_EXTENSIONS | {".json"}

SAMPLE_DATASET_NAME = "Sample Employee Dataset"

# Only truly empty cells are missing; placeholder text such as "N/A" or
# "null" stays a string so the blanks check can see it.
CELL_NA_OPTIONS = {"keep_default_na": False, "na_values": [""]}


def _detect_encoding(raw: bytes) -> str:
    """Detect the encoding of *raw* with chardet, falling back to utf-8."""
    if not raw:
        return "utf-8"
    return chardet.detect(raw).get("encoding") or "utf-8"


def _decode(raw: bytes, encoding: str) -> tuple[str, str]:
    """Decode *raw*, trying the detected encoding, then utf-8, then latin-1."""
    for candidate in (encoding, "utf-8", "latin-1"):
        try:
            return raw.decode(candidate), candidate
        except (UnicodeDecodeError, LookupError):
            continue
    raise UnsupportedFormatError("Failed to decode file with any supported encoding")


def _detect_delimiter(text: str, default: str = ",") -> str:
    """Detect the delimiter with csv.Sniffer, falling back to *default*."""
    try:
        return csv.Sniffer().sniff(text[:8192], delimiters=",\t;|").delimiter
    except csv.Error:
        return default


def _to_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _dataset_from_frame(frame: pd.DataFrame, name: str, metadata: dict[str, Any]) -> Dataset:
    if frame.empty:
        raise UnsupportedFormatError("File contains only headers with no data rows")
    dataset = Dataset.from_frame(frame, name=name, metadata=metadata)
    return dataset.with_rows(
        [{column: _to_python(value) for column, value in row.items()} for row in dataset.rows]
    )


def _read_text(path: Path) -> tuple[pd.DataFrame, dict[str, Any]]:
    raw = path.read_bytes()
    text, encoding = _decode(raw, _detect_encoding(raw))
    if not text.strip():
        raise UnsupportedFormatError(f"File is empty: {path}")

    delimiter = _detect_delimiter(text, default="\t" if path.suffix.lower() == ".tsv" else ",")
    try:
        frame = pd.read_csv(io.StringIO(text), sep=delimiter, engine="python", **CELL_NA_OPTIONS)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
        raise UnsupportedFormatError(f"Failed to parse {path.name}: {exc}") from exc

    return frame, {"encoding": encoding, "delimiter": delimiter}


def _read_json(path: Path) -> tuple[pd.DataFrame, dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise UnsupportedFormatError(f"Failed to parse {path.name}: {exc}") from exc

    if isinstance(payload, list):
        return pd.DataFrame.from_records(payload), {}
    if isinstance(payload, dict) and "columns" in payload:
        return pd.DataFrame(payload.get("data") or [], columns=payload["columns"]), {}
    raise UnsupportedFormatError(
        f"{path.name} must contain a list of records or an object with 'columns' and 'data'"
    )


def _read_excel(path: Path) -> tuple[pd.DataFrame, dict[str, Any]]:
    try:
        return pd.read_excel(path, **CELL_NA_OPTIONS), {}
    except (ImportError, ValueError, OSError) as exc:
        raise UnsupportedFormatError(f"Failed to read spreadsheet {path.name}: {exc}") from exc


def load_dataset(file_path: Union[str, Path], name: Optional[str] = None) -> Dataset:
    """Load a tabular file into a :class:`Dataset`.

    Args:
        file_path: Path to a ``.csv``/``.tsv``/``.txt``, ``.json`` or
            ``.xlsx``/``.xls`` file.
        name: Dataset name; defaults to the file name.

    Returns:
        The loaded dataset. Its metadata records the source file and format
        (plus encoding and delimiter for text files).

    Raises:
        DatasetNotFoundError: If the path does not exist or is not a file.
        UnsupportedFormatError: For unknown extensions, unparseable content
            or files without data rows.
    """
    path = Path(file_path)
    if not path.exists():
        raise DatasetNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise DatasetNotFoundError(f"Path is not a file: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported file format '{suffix or path.name}'. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )
    if path.stat().st_size == 0:
        raise UnsupportedFormatError(f"File is empty: {path}")

    if suffix in TEXT_EXTENSIONS:
        frame, extra = _read_text(path)
    elif suffix == ".json":
        frame, extra = _read_json(path)
    else:
        frame, extra = _read_excel(path)

    metadata = {"source_file": path.name, "format": suffix.lstrip("."), **extra}
    dataset = _dataset_from_frame(frame, name or path.name, metadata)
    logger.info(
        "Loaded %s: %d rows x %d columns", path.name, dataset.row_count, dataset.column_count
    )
    return dataset


def sample_dataset() -> Dataset:
    """Small employee dataset with one of each common quality problem."""
    columns = ["id", "name", "email", "age", "salary", "department"]
    records = [
        [1, "John Doe", "john.doe@example.com", 30, 50000, "Engineering"],
        [2, "Jane Smith", "jane.smith@example.com", 25, 45000, "Marketing"],
        [3, "", "invalid-email", -5, 60000, "Engineering"],
        [4, "Bob Johnson", "bob.johnson@example.com", 35, None, "Sales"],
        [1, "John Doe", "john.doe@example.com", 30, 50000, "Engineering"],
        [5, "Alice Brown", "alice.brown@example.com", 28, 1000000, "HR"],
    ]
    return Dataset(
        name=SAMPLE_DATASET_NAME,
        columns=columns,
        rows=[dict(zip(columns, record)) for record in records],
        metadata={"source": "sample"},
    )
