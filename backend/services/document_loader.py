"""Document loading service for PDF text extraction."""
import logging
import os
from typing import List
import fitz  # PyMuPDF

from models.document import Page

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


class DocumentLoader:
    """Extracts plain text from PDF files, one page after another."""

    def load_pages(self, pdf_bytes: bytes, file_name: str = "document.pdf") -> List[Page]:
        """
        Extract text page-by-page from an in-memory PDF.

        Args:
            pdf_bytes: Raw PDF file contents
            file_name: Name used in log messages

        Returns:
            List of Page objects in page order

        Raises:
            ValueError: If the bytes are empty or not a readable PDF
        """
        if not pdf_bytes:
            raise ValueError("PDF file is empty")

        try:
            pdf_document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {file_name}: {str(e)}")
            raise ValueError(f"Could not read PDF {file_name}: {str(e)}") from e

        pages = []
        try:
            for page_num in range(len(pdf_document)):
                text = pdf_document[page_num].get_text()
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split())
                ))
        finally:
            pdf_document.close()

        blank_pages = [page.page_number for page in pages if page.is_blank]
        if blank_pages:
            logger.warning(
                f"{file_name}: {len(blank_pages)} of {len(pages)} pages have no extractable text",
                extra={"file_name": file_name, "blank_pages": blank_pages}
            )

        logger.info(f"Loaded {file_name}: {len(pages)} pages")
        return pages

    def extract_text(self, pdf_bytes: bytes, file_name: str = "document.pdf") -> str:
        """
        Extract the whole text of a PDF as a single string.

        Pages keep their order and are separated by a blank line.

        Args:
            pdf_bytes: Raw PDF file contents
            file_name: Name used in log messages

        Returns:
            Document text
        """
        pages = self.load_pages(pdf_bytes, file_name)
        return PAGE_SEPARATOR.join(page.text.rstrip("\n") for page in pages)

    def extract_file(self, filepath: str) -> str:
        """
        Extract the text of a PDF on disk.

        Args:
            filepath: Path to the PDF file

        Returns:
            Document text
        """
        with open(filepath, "rb") as pdf_file:
            return self.extract_text(pdf_file.read(), os.path.basename(filepath))

    def list_pdfs(self, directory: str) -> List[str]:
        """
        List the PDF files in a directory, sorted by name.

        Args:
            directory: Directory to scan

        Returns:
            Full paths of the PDF files, empty if the directory doesn't exist
        """
        if not os.path.exists(directory):
            logger.error(f"Documents directory not found: {directory}")
            return []

        pdf_files = sorted(f for f in os.listdir(directory) if f.lower().endswith(".pdf"))
        logger.info(f"Found {len(pdf_files)} PDF files in {directory}")
        return [os.path.join(directory, f) for f in pdf_files]
