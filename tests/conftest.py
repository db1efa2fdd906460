"""Shared Hypothesis strategies and fixtures.

Provides the sample employee dataset, a small dataset factory and a
strategy for messy row-oriented datasets used by the property tests.
"""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import strategies as st

from dq_orchestrator.file_loader import sample_dataset
from dq_orchestrator.models import Dataset


def make_dataset(columns: list[str], records: list[list[Any]], name: str = "test") -> Dataset:
    """Build a Dataset from column names and positional records."""
    return Dataset(name=name, columns=columns, rows=[dict(zip(columns, r)) for r in records])


@pytest.fixture
def employees() -> Dataset:
    return sample_dataset()


# ---------------------------------------------------------------------------
# messy_datasets: rows with blanks, placeholders, duplicates and extremes
# ---------------------------------------------------------------------------

_blank_values = st.sampled_from([None, "", "   ", float("nan")])
_placeholder_values = st.sampled_from(["N/A", "null", "unknown", "-", "?"])
_numbers = st.one_of(
    st.integers(min_value=-1000, max_value=1000),
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
)
_words = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), max_codepoint=127),
    min_size=1,
    max_size=12,
)
_emails = st.builds(lambda user, host: f"{user}@{host}.com", _words, _words)

_COLUMN_VALUES = {
    "id": st.integers(min_value=1, max_value=50),
    "name": _words,
    "email": st.one_of(_emails, _words),
    "age": _numbers,
    "salary": _numbers,
    "department": st.sampled_from(["Engineering", "Sales", "HR", "ENGINEERING", "sales"]),
    "phone": st.sampled_from(["555-123-4567", "(555) 987-6543", "5551234567", "12"]),
    "notes": _words,
}


@st.composite
def messy_datasets(draw: st.DrawFn, min_rows: int = 1, max_rows: int = 25) -> Dataset:
    """Generate a Dataset whose cells mix valid values, blanks and placeholders.

    Columns are drawn from a fixed pool of names so the name-driven
    heuristics of the agents (email, phone, age, ...) are exercised.
    """
    columns = draw(
        st.lists(st.sampled_from(sorted(_COLUMN_VALUES)), min_size=1, max_size=6, unique=True)
    )
    n_rows = draw(st.integers(min_value=min_rows, max_value=max_rows))

    rows: list[dict[str, Any]] = []
    for _ in range(n_rows):
        row = {}
        for column in columns:
            row[column] = draw(
                st.one_of(
                    _COLUMN_VALUES[column],
                    _COLUMN_VALUES[column],
                    _blank_values,
                    _placeholder_values,
                )
            )
        rows.append(row)

    # Exact duplicates
    if rows and draw(st.booleans()):
        rows.append(dict(rows[draw(st.integers(min_value=0, max_value=len(rows) - 1))]))

    return Dataset(name="messy", columns=columns, rows=rows)
