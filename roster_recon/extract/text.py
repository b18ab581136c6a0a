from __future__ import annotations

from io import BytesIO

import docx
import pdfplumber

from ..models.row_data import RawRow

"""Text extraction for PDF and Word documents.

These sources carry no a-priori schema: the full text is split on newlines,
trimmed, empty lines dropped, and each surviving line becomes a RawRow with
only `raw` set.
"""

__all__ = [
    "TextExtractionError",
    "lines_to_rows",
    "pdf_text",
    "docx_text",
]


class TextExtractionError(Exception):
    """Raised when a PDF or document cannot be opened or read."""


def lines_to_rows(text: str) -> list[RawRow]:
    rows: list[RawRow] = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            rows.append(RawRow(row_number=len(rows) + 1, raw=stripped))
    return rows


def pdf_text(buffer: bytes) -> str:
    try:
        with pdfplumber.open(BytesIO(buffer)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise TextExtractionError(f"cannot read PDF: {e}") from e
    return "\n".join(pages)


def docx_text(buffer: bytes) -> str:
    """Paragraph text followed by table rows (cells joined by spaces)."""
    try:
        document = docx.Document(BytesIO(buffer))
    except Exception as e:
        raise TextExtractionError(f"cannot read document: {e}") from e
    lines = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells: list[str] = []
            for cell in row.cells:
                text = cell.text.strip()
                # merged cells repeat the same text across the span
                if text and (not cells or cells[-1] != text):
                    cells.append(text)
            lines.append(" ".join(cells))
    return "\n".join(lines)
