"""
Document text extraction for PDF and DOCX uploads, with OCR fallback.

The generation pipeline only needs plain text: the extracted document is
merged into the user's prompt before the outline request is made.  Parsing
libraries are blocking, so the work runs in a worker thread.
"""
from __future__ import annotations

import asyncio
import io
import logging
import re
from pathlib import Path
from typing import Dict, List

import fitz  # PyMuPDF
import pytesseract
from docx import Document as DocxDocument
from PIL import Image

from app.config import settings
from app.services.errors import DocumentExtractionError
from app.utils.helpers import normalize_text, truncate_text

logger = logging.getLogger(__name__)

DOCUMENT_PREAMBLE = "Use the following document content as the source material:"

_DOCX_HEADING_STYLES: Dict[str, int] = {
    "title": 1,
    "heading 1": 1,
    "heading 2": 2,
    "heading 3": 3,
}


class DocumentTextExtractor:
    """Extracts plain text from PDF and DOCX bytes."""

    def __init__(self) -> None:
        if settings.TESSERACT_CMD:
            pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD

    async def extract_text(self, filename: str, content: bytes) -> str:
        """
        Return the text of an uploaded document.

        Args:
            filename: Original file name; its extension selects the parser.
            content:  Raw file bytes.

        Raises:
            DocumentExtractionError: unsupported type, unreadable or
                password-protected file, or no extractable text.
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in settings.SUPPORTED_FILE_TYPES:
            raise DocumentExtractionError(
                f"Unsupported file type {ext or filename!r}",
                {"filename": filename, "supported": settings.SUPPORTED_FILE_TYPES},
            )
        if not content:
            raise DocumentExtractionError(
                "Uploaded document is empty", {"filename": filename}
            )

        if ext == ".pdf":
            text = await asyncio.to_thread(self._pdf_text, content)
        else:
            text = await asyncio.to_thread(self._docx_text, content)

        text = text.strip()
        if not text:
            raise DocumentExtractionError(
                "Document contains no extractable text.", {"filename": filename}
            )

        logger.info(
            "Extracted %d words from %r", len(text.split()), filename
        )
        return text

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def _pdf_text(self, content: bytes) -> str:
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as exc:
            raise DocumentExtractionError(
                f"Cannot open PDF file: {exc}"
            ) from exc

        try:
            if doc.needs_pass:
                raise DocumentExtractionError(
                    "PDF is password-protected. Please provide an unlocked copy."
                )

            page_texts: List[str] = []
            for page_num, page in enumerate(doc, start=1):
                text = page.get_text("text").strip()
                if not text:
                    # Image-only page: full-page OCR
                    text = self._ocr_page(page).strip()
                # Skip isolated page numbers
                lines = [
                    line for line in text.splitlines()
                    if line.strip() and not re.match(r"^\d{1,4}$", line.strip())
                ]
                if lines:
                    page_texts.append(f"[Page {page_num}]\n" + "\n".join(lines))
            return "\n\n".join(page_texts)
        finally:
            doc.close()

    def _ocr_page(self, page: fitz.Page) -> str:
        """Render an entire page at 2× scale and run Tesseract OCR."""
        try:
            pix = page.get_pixmap(matrix=fitz.Matrix(2, 2))
            img = Image.open(io.BytesIO(pix.tobytes("png")))
            return pytesseract.image_to_string(img)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            logger.warning("Full-page OCR failed on page %d: %s", page.number + 1, exc)
            return ""

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    def _docx_text(self, content: bytes) -> str:
        try:
            doc = DocxDocument(io.BytesIO(content))
        except Exception as exc:
            raise DocumentExtractionError(
                f"Cannot open DOCX file: {exc}"
            ) from exc

        parts: List[str] = []
        for para in doc.paragraphs:
            text = para.text.strip()
            if not text:
                continue
            style_name = (
                para.style.name.lower() if para.style and para.style.name else ""
            )
            level = _DOCX_HEADING_STYLES.get(style_name, 0)
            parts.append(f"{'#' * level} {text}" if level else text)

        for table in doc.tables:
            rows: List[str] = []
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    rows.append(" | ".join(non_empty))
            if rows:
                parts.append("\n".join(rows))

        return "\n\n".join(parts)


def merge_document_with_prompt(
    document_text: str,
    prompt: str,
    max_chars: int = settings.DOCUMENT_MAX_CHARS,
) -> str:
    """
    Combine the user's prompt with extracted document text.

    Whitespace in the document is collapsed and the text is truncated to
    *max_chars* so the instruction stays within the model's context window.
    """
    document_text = truncate_text(normalize_text(document_text), max_chars)
    prompt = prompt.strip()
    if not document_text:
        return prompt
    return f"{prompt}\n\n{DOCUMENT_PREAMBLE}\n---\n{document_text}\n---"
