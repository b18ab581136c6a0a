from __future__ import annotations

from io import BytesIO
from typing import Any

import pandas as pd

from ..models.row_data import RawRow

"""Spreadsheet / CSV reader.

The first sheet is read with its first row as the header; header text is kept
verbatim as the RawRow keys. Every cell is read as text so identifiers such as
"2021-00123" or "000123" survive unchanged.
"""

__all__ = [
    "TabularReadError",
    "read_tabular",
    "frame_to_rows",
]


class TabularReadError(Exception):
    """Raised when the buffer cannot be parsed as a spreadsheet or CSV."""


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def frame_to_rows(df: pd.DataFrame) -> list[RawRow]:
    """Convert a header-applied DataFrame to RawRows, skipping fully blank rows."""
    columns = [str(c) for c in df.columns]
    rows: list[RawRow] = []
    for position, raw in enumerate(df.itertuples(index=False, name=None), start=1):
        values = {col: _cell_text(val) for col, val in zip(columns, raw, strict=False)}
        if all(v is None for v in values.values()):
            continue
        rows.append(RawRow(row_number=position, values=values))
    return rows


def read_tabular(buffer: bytes, extension: str) -> list[RawRow]:
    """Read the first sheet (or the CSV) of `buffer` into RawRows.

    Parameters
    ----------
    buffer: file contents
    extension: lower-case extension including the dot (".csv", ".xlsx", ".xls")
    """
    try:
        if extension == ".csv":
            df = pd.read_csv(
                BytesIO(buffer),
                dtype=str,
                keep_default_na=False,
                na_values=[""],
                skip_blank_lines=True,
                encoding="utf-8-sig",
            )
        else:
            df = pd.read_excel(BytesIO(buffer), sheet_name=0, dtype=str)
    except Exception as e:
        raise TabularReadError(f"cannot read {extension} data: {e}") from e
    return frame_to_rows(df)
