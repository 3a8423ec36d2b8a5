"""
Unit tests for lecture upload validation and text extraction.

Run: pytest tests/unit/test_document_service.py -v
"""
import io

import docx
import pytest

from quizcraft.config import settings
from quizcraft.exceptions import ValidationError
from quizcraft.services import document_service as document_module
from quizcraft.services.document_service import DocumentExtractionError, DocumentService


@pytest.fixture
def documents():
    return DocumentService()


class FakePage:
    def __init__(self, text):
        self.text = text

    def extract_text(self):
        return self.text


class FakePdf:
    def __init__(self, pages):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TestValidateUpload:

    def test_accepts_pdf_docx_and_txt(self, documents):
        assert documents.validate_upload("Lecture 1.PDF", 1024) == "pdf"
        assert documents.validate_upload("week3.docx", 2048) == "docx"
        assert documents.validate_upload("notes.txt", 10) == "txt"

    def test_rejects_other_types(self, documents):
        with pytest.raises(ValidationError, match="Invalid file type"):
            documents.validate_upload("slides.pptx", 1024)

    def test_rejects_missing_extension(self, documents):
        with pytest.raises(ValidationError):
            documents.validate_upload("README", 1024)

    def test_rejects_empty_file(self, documents):
        with pytest.raises(ValidationError, match="empty"):
            documents.validate_upload("notes.txt", 0)

    def test_rejects_oversized_file(self, documents):
        with pytest.raises(ValidationError, match="too large"):
            documents.validate_upload("notes.txt", settings.MAX_UPLOAD_BYTES + 1)


class TestExtractText:

    def test_txt_decoded(self, documents):
        assert documents.extract_text("notes.txt", "Cells divide.".encode("utf-8")) == "Cells divide."

    def test_invalid_utf8_raises(self, documents):
        with pytest.raises(DocumentExtractionError):
            documents.extract_text("notes.txt", b"\xff\xfe\xfa")

    def test_pdf_pages_joined(self, documents, monkeypatch):
        pdf = FakePdf([FakePage("Page one"), FakePage(None), FakePage("Page two")])
        monkeypatch.setattr(document_module.pdfplumber, "open", lambda stream: pdf)

        assert documents.extract_text("lecture.pdf", b"%PDF-1.4") == "Page one\nPage two"

    def test_docx_paragraphs_and_tables(self, documents):
        document = docx.Document()
        document.add_paragraph("Cell membranes")
        document.add_paragraph("")
        document.add_paragraph("Organelles have roles.")
        table = document.add_table(rows=1, cols=2)
        table.cell(0, 0).text = "Mitochondria"
        table.cell(0, 1).text = "ATP"
        buffer = io.BytesIO()
        document.save(buffer)

        text = documents.extract_text("week3.docx", buffer.getvalue())

        assert text == "Cell membranes\nOrganelles have roles.\nMitochondria\tATP"

    def test_corrupt_docx_raises(self, documents):
        with pytest.raises(DocumentExtractionError):
            documents.extract_text("week3.docx", b"PK not really a zip")

    def test_corrupt_pdf_raises(self, documents):
        with pytest.raises(DocumentExtractionError):
            documents.extract_text("lecture.pdf", b"not a pdf at all")

    def test_unsupported_extension_raises(self, documents):
        with pytest.raises(DocumentExtractionError, match="Unsupported"):
            documents.extract_text("slides.pptx", b"data")
