"""
Knowledge Scout Backend - Document Text Extraction
==================================================

What:  Turns stored document bytes into plain text.
How:   Text formats are decoded as UTF-8 (falling back to latin-1); PDFs are
       read with pypdf in a worker thread because pypdf is synchronous and
       CPU-bound.
"""

import asyncio
import io
import logging

from pypdf import PdfReader

from scout.exceptions import ExtractionError

logger = logging.getLogger(__name__)

TEXT_MIME_TYPES = {"text/plain", "text/markdown", "text/csv", "application/json"}


def _decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def _extract_pdf(content: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        # pypdf surfaces malformed files as KeyError, TypeError, struct.error, ...
        raise ExtractionError(f"Could not read PDF: {type(e).__name__}: {e}") from e
    return "\n\n".join(page.strip() for page in pages if page.strip())


async def extract_text(content: bytes, mime_type: str) -> str:
    """
    Returns:
        The document text, stripped.

    Raises:
        ExtractionError: unsupported type, unreadable file, or no text found
        (e.g., a scanned PDF without a text layer).
    """
    if mime_type in TEXT_MIME_TYPES:
        text = _decode_text(content)
    elif mime_type == "application/pdf":
        text = await asyncio.to_thread(_extract_pdf, content)
    else:
        raise ExtractionError(f"Unsupported document type '{mime_type}'")

    text = text.strip()
    if not text:
        raise ExtractionError("No text could be extracted from the document")

    logger.debug("Extracted %d characters from %s document", len(text), mime_type)
    return text
