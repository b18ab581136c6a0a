"""Format extractors: raw byte buffer -> sequence of RawRow.

extract() is the boundary where extraction failures stop: a malformed file or
a failing OCR engine is logged and yields an empty row list, so the caller
still gets a (zero-success) result instead of an error.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import PurePosixPath

from ..models.config_models import OcrConfig
from ..models.row_data import RawRow
from .ocr import OcrError, image_text
from .tabular import TabularReadError, read_tabular
from .text import TextExtractionError, docx_text, lines_to_rows, pdf_text

__all__ = [
    "SourceFormat",
    "UnsupportedFormatError",
    "SUPPORTED_EXTENSIONS",
    "detect_format",
    "extract",
]

logger = logging.getLogger(__name__)


class SourceFormat(Enum):
    TABULAR = "tabular"
    PDF = "pdf"
    DOCUMENT = "document"
    IMAGE = "image"


EXTENSION_FORMATS: dict[str, SourceFormat] = {
    ".xlsx": SourceFormat.TABULAR,
    ".xls": SourceFormat.TABULAR,
    ".csv": SourceFormat.TABULAR,
    ".pdf": SourceFormat.PDF,
    ".docx": SourceFormat.DOCUMENT,
    ".doc": SourceFormat.DOCUMENT,
    ".png": SourceFormat.IMAGE,
    ".jpg": SourceFormat.IMAGE,
    ".jpeg": SourceFormat.IMAGE,
    ".bmp": SourceFormat.IMAGE,
    ".gif": SourceFormat.IMAGE,
    ".tif": SourceFormat.IMAGE,
    ".tiff": SourceFormat.IMAGE,
    ".webp": SourceFormat.IMAGE,
}
SUPPORTED_EXTENSIONS = tuple(EXTENSION_FORMATS)


class UnsupportedFormatError(Exception):
    """Raised before any processing when a file extension is not supported."""

    def __init__(self, filename: str) -> None:
        super().__init__(
            f"Unsupported file format: {filename!r}. "
            f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
        self.filename = filename


def file_extension(filename: str) -> str:
    return PurePosixPath(filename.strip().lower()).suffix


def detect_format(filename: str) -> SourceFormat:
    """Infer the source format from the file name extension."""
    fmt = EXTENSION_FORMATS.get(file_extension(filename))
    if fmt is None:
        raise UnsupportedFormatError(filename)
    return fmt


def extract(
    buffer: bytes,
    filename: str,
    declared_format: SourceFormat | None = None,
    ocr_config: OcrConfig | None = None,
) -> list[RawRow]:
    """Turn a buffer into RawRows. Never raises for unreadable content."""
    fmt = declared_format or detect_format(filename)
    try:
        if fmt is SourceFormat.TABULAR:
            extension = file_extension(filename)
            if extension not in (".csv", ".xls", ".xlsx"):
                extension = ".xlsx"
            rows = read_tabular(buffer, extension)
        elif fmt is SourceFormat.PDF:
            rows = lines_to_rows(pdf_text(buffer))
        elif fmt is SourceFormat.DOCUMENT:
            rows = lines_to_rows(docx_text(buffer))
        else:
            rows = lines_to_rows(image_text(buffer, ocr_config or OcrConfig()))
    except (TabularReadError, TextExtractionError, OcrError) as e:
        logger.warning("extraction failed source=%s format=%s: %s", filename, fmt.value, e)
        return []
    logger.debug("extracted source=%s format=%s rows=%d", filename, fmt.value, len(rows))
    return rows
