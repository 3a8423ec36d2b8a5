"""
Lecture document text extraction
"""
import io
import logging
import os

import docx
import pdfplumber

from quizcraft.config import settings
from quizcraft.exceptions import ValidationError

logger = logging.getLogger(__name__)


class DocumentExtractionError(Exception):
    """A supported document could not be read"""


class DocumentService:
    """Converts uploaded lecture files to plain text"""

    def file_extension(self, filename: str) -> str:
        return os.path.splitext(filename or "")[1].lstrip(".").lower()

    def validate_upload(self, filename: str, size: int) -> str:
        """
        Check name and size of an upload

        Returns:
            Lower-case file extension

        Raises:
            ValidationError: unsupported type, empty or oversized file
        """
        extension = self.file_extension(filename)

        if extension not in settings.ALLOWED_UPLOAD_EXTENSIONS:
            allowed = ", ".join(ext.upper() for ext in settings.ALLOWED_UPLOAD_EXTENSIONS)
            raise ValidationError(f"Invalid file type. Only {allowed} files are allowed.")

        if size == 0:
            raise ValidationError("Uploaded file is empty")

        if size > settings.MAX_UPLOAD_BYTES:
            raise ValidationError(
                f"File too large. Limit is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
            )

        return extension

    def extract_text(self, filename: str, content: bytes) -> str:
        """
        Extract plain text from an uploaded lecture

        Raises:
            DocumentExtractionError: the file is of a supported type but unreadable
        """
        extension = self.file_extension(filename)

        try:
            if extension == "pdf":
                return self._extract_pdf(content)
            if extension == "docx":
                return self._extract_docx(content)
            if extension == "txt":
                return content.decode("utf-8")
        except Exception as e:
            logger.error(f"Text extraction failed for {filename}: {str(e)}")
            raise DocumentExtractionError(f"Failed to extract text from {filename}") from e

        raise DocumentExtractionError(f"Unsupported file format: {extension}")

    def _extract_pdf(self, content: bytes) -> str:
        extracted_text = ""
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    extracted_text += text + "\n"
        return extracted_text.strip()

    def _extract_docx(self, content: bytes) -> str:
        """Paragraph text, then table cells row by row"""
        document = docx.Document(io.BytesIO(content))
        lines = [paragraph.text for paragraph in document.paragraphs]

        for table in document.tables:
            for row in table.rows:
                lines.append("\t".join(cell.text for cell in row.cells))

        return "\n".join(line for line in lines if line.strip()).strip()


# Global instance
document_service = DocumentService()
