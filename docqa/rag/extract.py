"""Text extraction for uploaded documents.

Supports PDF (pypdf), Word .docx (python-docx) and plain text. Each
extractor also reports a unit count: pages for PDF, non-empty paragraphs
for DOCX and non-empty lines for TXT.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict
import structlog
import docx
from pypdf import PdfReader

logger = structlog.get_logger()


@dataclass
class ExtractedText:
    """Text pulled out of a document file."""

    text: str
    page_count: int


def extract_pdf(path: Path) -> ExtractedText:
    reader = PdfReader(str(path))
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    return ExtractedText(
        text="\n".join(p for p in pages if p),
        page_count=len(reader.pages),
    )


def extract_docx(path: Path) -> ExtractedText:
    document = docx.Document(str(path))
    paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    return ExtractedText(text="\n".join(paragraphs), page_count=len(paragraphs))


def extract_txt(path: Path) -> ExtractedText:
    text = path.read_text(encoding="utf-8", errors="ignore")
    lines = [line for line in text.splitlines() if line.strip()]
    return ExtractedText(text=text, page_count=len(lines))


EXTRACTORS: Dict[str, Callable[[Path], ExtractedText]] = {
    ".pdf": extract_pdf,
    ".docx": extract_docx,
    ".txt": extract_txt,
}

CONTENT_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}


def extract_text(path: Path) -> ExtractedText:
    """Extract text from a supported document file.

    Args:
        path: File on disk; the suffix selects the extractor

    Returns:
        ExtractedText with the document's text and unit count

    Raises:
        KeyError: If the suffix has no extractor
        Exception: Whatever the underlying parser raises on a broken file
    """
    suffix = path.suffix.lower()
    extractor = EXTRACTORS[suffix]

    result = extractor(path)

    logger.info(
        "text_extracted",
        path=str(path),
        file_type=suffix,
        text_length=len(result.text),
        page_count=result.page_count,
    )
    return result
