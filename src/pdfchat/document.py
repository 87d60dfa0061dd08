"""Read PDFs and extract their text, page by page."""

from __future__ import annotations

import base64
import binascii
import io
import logging
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .config import PAGE_MARKER

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """Raised when a PDF cannot be read or its text cannot be extracted."""


def file_exists(path: str | Path) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        logger.error("Error checking file %s", path, exc_info=True)
        return False


def read_base64(path: str | Path) -> str:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        logger.error("Error reading PDF file %s", path, exc_info=True)
        raise DocumentError("Failed to read PDF file") from exc
    return base64.b64encode(data).decode("ascii")


def extract_text(base64_data: str) -> str:
    """Concatenate each page's text behind a ``[Page N]`` marker."""
    try:
        reader = PdfReader(io.BytesIO(base64.b64decode(base64_data, validate=True)))
        extracted = ""
        for number, page in enumerate(reader.pages, 1):
            page_text = page.extract_text() or ""
            extracted += f"{PAGE_MARKER.format(number=number)}\n{page_text}\n\n"
    except (PyPdfError, binascii.Error, ValueError, KeyError) as exc:
        logger.error("Error extracting PDF text", exc_info=True)
        raise DocumentError(f"Failed to extract text from PDF: {exc}") from exc
    return extracted


def open_document(path: str | Path) -> tuple[str, str, str]:
    """Return ``(location, display_name, text)`` for the PDF at ``path``."""
    pdf_path = Path(path).expanduser().resolve()
    if not file_exists(pdf_path):
        raise DocumentError(f"File not found: {path}")
    text = extract_text(read_base64(pdf_path))
    return pdf_path.as_uri(), pdf_path.name, text
