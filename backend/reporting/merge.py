"""Final assembly: cover page first, then every body page in order."""
from __future__ import annotations

import logging
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from .errors import MergeError

logger = logging.getLogger(__name__)

# pypdf surfaces corrupt structures as any of these, not only PyPdfError
_PARSE_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, IndexError, AttributeError)


def _read(pdf_bytes: bytes, label: str) -> PdfReader:
    if not pdf_bytes:
        raise MergeError(f"{label} PDF is empty")
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        # Force the page tree to load so a broken xref fails here, not mid-write
        len(reader.pages)
    except _PARSE_ERRORS as e:
        raise MergeError(f"{label} PDF could not be parsed: {e}") from e
    return reader


def page_count(pdf_bytes: bytes) -> int:
    return len(_read(pdf_bytes, "Input").pages)


def merge_cover_and_body(cover_pdf: bytes, body_pdf: bytes) -> bytes:
    """Return one PDF: the cover's first page followed by all body pages, untouched."""
    cover = _read(cover_pdf, "Cover")
    body = _read(body_pdf, "Body")

    if len(cover.pages) == 0:
        raise MergeError("Cover PDF has no pages")
    if len(body.pages) == 0:
        raise MergeError("Body PDF has no pages")
    if len(cover.pages) > 1:
        logger.warning("[merge] cover has %d pages, using the first only", len(cover.pages))

    writer = PdfWriter()
    try:
        writer.add_page(cover.pages[0])
        for page in body.pages:
            writer.add_page(page)
        out = BytesIO()
        writer.write(out)
    except _PARSE_ERRORS as e:
        raise MergeError(f"Merging PDFs failed: {e}") from e

    logger.info("[merge] pages=%d (cover=1 body=%d)", 1 + len(body.pages), len(body.pages))
    return out.getvalue()
