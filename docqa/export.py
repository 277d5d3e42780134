"""Report export to PDF (reportlab) and Word (python-docx)."""
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape
import structlog
import docx
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from docqa import config

logger = structlog.get_logger()

FORMATS = {
    "pdf": (".pdf", "application/pdf"),
    "doc": (
        ".docx",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
}


@dataclass
class ReportItem:
    """A question/answer pair to render."""

    question: str
    answer: str
    timestamp: Optional[str] = None


@dataclass
class Report:
    """A generated report file on disk."""

    path: Path
    filename: str
    mimetype: str


def _pdf(path: Path, title: str, items: List[ReportItem]) -> None:
    styles = getSampleStyleSheet()
    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(escape(_generated_line()), styles["Italic"]),
        Spacer(1, 0.3 * inch),
    ]
    for i, item in enumerate(items, 1):
        story.append(Paragraph(f"Q{i}. {escape(item.question)}", styles["Heading3"]))
        if item.timestamp:
            story.append(Paragraph(escape(item.timestamp), styles["Italic"]))
        for paragraph in item.answer.split("\n"):
            if paragraph.strip():
                story.append(Paragraph(escape(paragraph), styles["BodyText"]))
        story.append(Spacer(1, 0.2 * inch))

    SimpleDocTemplate(str(path), pagesize=letter, title=title).build(story)


def _doc(path: Path, title: str, items: List[ReportItem]) -> None:
    document = docx.Document()
    document.add_heading(title, level=0)
    document.add_paragraph().add_run(_generated_line()).italic = True
    for i, item in enumerate(items, 1):
        document.add_heading(f"Q{i}. {item.question}", level=2)
        if item.timestamp:
            document.add_paragraph(item.timestamp)
        for paragraph in item.answer.split("\n"):
            if paragraph.strip():
                document.add_paragraph(paragraph)
    document.save(str(path))


def _generated_line() -> str:
    return f"Generated {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"


def build_report(
    fmt: str,
    title: str,
    items: List[ReportItem],
    export_dir: Optional[Path] = None,
) -> Report:
    """Render question/answer pairs into a downloadable file.

    Args:
        fmt: "pdf" or "doc"
        title: Report heading
        items: Entries to include, in order
        export_dir: Output directory (default from config)

    Returns:
        Report describing the written file

    Raises:
        KeyError: If fmt is not a supported format
    """
    suffix, mimetype = FORMATS[fmt]
    export_dir = export_dir or config.EXPORT_DIR
    export_dir.mkdir(parents=True, exist_ok=True)

    stem = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "report"
    path = export_dir / f"{uuid.uuid4().hex}{suffix}"

    if fmt == "pdf":
        _pdf(path, title, items)
    else:
        _doc(path, title, items)

    logger.info("report_generated", format=fmt, items=len(items), path=str(path))

    return Report(path=path, filename=f"{stem}{suffix}", mimetype=mimetype)
