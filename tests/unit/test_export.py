"""Tests for report generation."""
import docx
import pytest
from pypdf import PdfReader

from docqa.export import ReportItem, build_report


@pytest.fixture
def items():
    return [
        ReportItem(question="What is <b>bold</b> & brave?", answer="It is a test.\nSecond line."),
        ReportItem(question="Second?", answer="Yes.", timestamp="2026-01-01T00:00:00+00:00"),
    ]


def test_pdf_report(tmp_path, items):
    report = build_report("pdf", "Search History Report", items, export_dir=tmp_path)

    assert report.path.parent == tmp_path
    assert report.path.suffix == ".pdf"
    assert report.filename == "search-history-report.pdf"
    assert report.mimetype == "application/pdf"

    text = "".join(page.extract_text() for page in PdfReader(str(report.path)).pages)
    assert "brave" in text
    assert "Second line." in text


def test_doc_report(tmp_path, items):
    report = build_report("doc", "Document Q&A Report", items, export_dir=tmp_path)

    assert report.path.suffix == ".docx"
    assert report.filename == "document-q-a-report.docx"

    paragraphs = [p.text for p in docx.Document(str(report.path)).paragraphs]
    assert "Q1. What is <b>bold</b> & brave?" in paragraphs
    assert "Second line." in paragraphs
    assert "2026-01-01T00:00:00+00:00" in paragraphs


def test_unknown_format_rejected(tmp_path, items):
    with pytest.raises(KeyError):
        build_report("xls", "Report", items, export_dir=tmp_path)
