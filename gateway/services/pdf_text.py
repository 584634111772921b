# gateway/services/pdf_text.py
# Text extraction for uploaded PDFs (PyMuPDF).

import logging
from typing import Tuple

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


class DocumentExtractionError(ValueError):
    """The upload is not a readable PDF."""


def extract_pdf_text(file_bytes: bytes, filename: str) -> Tuple[str, int]:
    """Return ``(text, page_count)`` for a PDF payload."""
    if not filename.lower().endswith(".pdf"):
        raise DocumentExtractionError("Only PDF files are supported")
    try:
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            pages = [page.get_text() for page in doc]
    except (fitz.FileDataError, RuntimeError) as exc:
        raise DocumentExtractionError(f"Could not read PDF {filename}: {exc}") from exc
    text = "\n".join(pages).strip()
    if not text:
        raise DocumentExtractionError(f"No extractable text in {filename}")
    logger.info("Extracted %d pages from %s", len(pages), filename)
    return text, len(pages)
