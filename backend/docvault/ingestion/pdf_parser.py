"""
PDF text extraction.

Turns PDF bytes into one cleaned text string per page, keeping line
breaks so footers (and the page numbers printed in them) stay on their
own lines.
"""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from docvault.core.errors import ParseFailure

logger = logging.getLogger(__name__)


class PDFParser:
    """
    PDF parser using PyMuPDF for per-page text extraction.

    Usage:
        parser = PDFParser()
        pages = parser.parse_pages(pdf_bytes, "guide.pdf")
        print(f"{len(pages)} pages")
    """

    def __init__(self, preserve_layout: bool = True):
        self.preserve_layout = preserve_layout

    def parse_pages(self, data: bytes, filename: str = "document.pdf") -> list[str]:
        """
        Extract text from every page of a PDF.

        Args:
            data: PDF file content as bytes
            filename: Name used in log and error messages

        Returns:
            Cleaned text per page, in page order

        Raises:
            ParseFailure: if the bytes are not a readable PDF
        """
        logger.info(f"Parsing PDF from bytes: {filename}")

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {e}")
            raise ParseFailure(filename, str(e)) from e

        try:
            pages = [self._extract_page(doc[page_num]) for page_num in range(len(doc))]
        except Exception as e:
            logger.error(f"Failed to extract text from {filename}: {e}")
            raise ParseFailure(filename, str(e)) from e
        finally:
            doc.close()

        logger.info(f"Parsed {len(pages)} pages, {sum(len(p) for p in pages)} characters")
        return pages

    def parse_file(self, file_path: str | Path) -> list[str]:
        """Extract per-page text from a PDF on disk."""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"PDF file not found: {file_path}")

        if not file_path.suffix.lower() == ".pdf":
            raise ValueError(f"Not a PDF file: {file_path}")

        return self.parse_pages(file_path.read_bytes(), file_path.name)

    def _extract_page(self, page: fitz.Page) -> str:
        """Extract content from a single page."""
        if self.preserve_layout:
            text = page.get_text("text", sort=True)
        else:
            text = page.get_text("text")
        return self._clean_text(text)

    def _clean_text(self, text: str) -> str:
        """Clean extracted text."""
        lines = text.split("\n")
        cleaned_lines = []

        for line in lines:
            # Strip trailing whitespace
            line = line.rstrip()
            # Skip completely empty lines if previous was also empty
            if line or (cleaned_lines and cleaned_lines[-1]):
                cleaned_lines.append(line)

        text = "\n".join(cleaned_lines)

        # Replace multiple spaces with single space
        while "  " in text:
            text = text.replace("  ", " ")

        return text.strip()
