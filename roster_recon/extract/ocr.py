from __future__ import annotations

from io import BytesIO

import pytesseract
from PIL import Image, UnidentifiedImageError

from ..models.config_models import OcrConfig

"""OCR for photographed or scanned sheets.

OCR runs once per image and is the slowest step of an import; the recognized
body text is split into lines exactly like PDF text.
"""

__all__ = [
    "OcrError",
    "configure_tesseract",
    "image_text",
]


class OcrError(Exception):
    """Raised when the image cannot be decoded or Tesseract fails."""


def configure_tesseract(config: OcrConfig) -> None:
    """Point pytesseract at a non-PATH binary. Process-wide; call once at startup."""
    if config.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd


def image_text(buffer: bytes, config: OcrConfig) -> str:
    try:
        with Image.open(BytesIO(buffer)) as img:
            # Tesseract wants a flat RGB/greyscale bitmap
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            return pytesseract.image_to_string(img, lang=config.language)
    except UnidentifiedImageError as e:
        raise OcrError(f"unrecognized image data: {e}") from e
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
        raise OcrError(f"OCR failed: {e}") from e
