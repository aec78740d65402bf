# core/document_text.py
import io
import logging
import re
from typing import List
import fitz
from docx import Document as DocxDocument
from util.timing import timed

logger = logging.getLogger(__name__)

_INLINE_WS = re.compile(r"[ \t\f\v\r]+")


def _normalize_paragraphs(paragraphs: List[str]) -> str:
    """
    Collapse runs of whitespace inside each paragraph and join paragraphs with
    a blank line; the AI scorer relies on those paragraph breaks.
    """
    out: List[str] = []
    for p in paragraphs:
        lines = [_INLINE_WS.sub(" ", ln).strip() for ln in p.splitlines()]
        text = " ".join(ln for ln in lines if ln)
        if text:
            out.append(text)
    return "\n\n".join(out)


def extract_pdf_text(file_bytes: bytes) -> str:
    """
    Return the text of every page in reading order, paragraph-separated.
    Raises on unreadable input; the caller maps that to a validation error.
    """
    paragraphs: List[str] = []
    with timed(logger, "pdf.open"):
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            pages = doc.page_count
            with timed(logger, "pdf.parse", pages=pages):
                for i in range(pages):
                    page = doc.load_page(i)
                    # blocks: (x0, y0, x1, y1, text, block_no, block_type)
                    for block in page.get_text("blocks") or []:
                        if len(block) > 6 and block[6] != 0:
                            continue
                        paragraphs.append(str(block[4] or ""))
    text = _normalize_paragraphs(paragraphs)
    logger.info("pdf.text pages=%d chars=%d", pages, len(text))
    return text


def extract_docx_text(file_bytes: bytes) -> str:
    with timed(logger, "docx.parse"):
        doc = DocxDocument(io.BytesIO(file_bytes))
        paragraphs = [p.text for p in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                paragraphs.append(" ".join(cell.text for cell in row.cells))
    text = _normalize_paragraphs(paragraphs)
    logger.info("docx.text paragraphs=%d chars=%d", len(paragraphs), len(text))
    return text


def extract_text(file_bytes: bytes, extension: str) -> str:
    """Dispatch on the (already validated) lowercase extension."""
    if extension == "pdf":
        return extract_pdf_text(file_bytes)
    if extension == "docx":
        return extract_docx_text(file_bytes)
    raise ValueError(f"unsupported extension: {extension}")
