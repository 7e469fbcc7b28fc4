"""PDF text loader built on PyMuPDF.

The worker only needs the plain text layer: pages are read in order and
the joined text is handed to the extractor.  An unreadable or missing
file yields empty text so that the extractor can still fall back to its
filename-based defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path

import fitz  # PyMuPDF

from compass.extraction.text import normalize_text

logger = logging.getLogger(__name__)


def read_pdf_pages(path: str | Path) -> list[str]:
    """Return the raw text of every page in *path*, in page order."""
    pages: list[str] = []
    doc = fitz.open(str(path))
    try:
        for page_num in range(len(doc)):
            page = doc.load_page(page_num)
            pages.append(page.get_text("text"))
    finally:
        doc.close()
    return pages


def load_document_text(path: str | Path) -> str:
    """Return whitespace-normalised text for the PDF at *path*.

    Never raises: parse failures are logged and produce ``""``.
    """
    try:
        pages = read_pdf_pages(path)
    except Exception:
        logger.exception("Failed to read PDF text from %s; using empty text", Path(path).name)
        return ""
    return normalize_text(" ".join(pages))
