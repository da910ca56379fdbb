"""Document loading service for PDF text extraction."""
import logging
from typing import List
import fitz  # PyMuPDF

from models.document import Page

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Raised when an uploaded document cannot be read as a PDF."""


class DocumentLoader:
    """Extracts page text from PDF bytes."""

    def extract_text(self, file_bytes: bytes) -> List[Page]:
        """
        Extract text page-by-page from an in-memory PDF.

        Pages with no extractable text are skipped, so the returned page
        numbers may have gaps but are always ascending and 1-indexed.

        Args:
            file_bytes: Raw PDF file contents

        Returns:
            List of Page objects in page order

        Raises:
            ParseError: If the input is empty, unreadable or corrupt
        """
        if not file_bytes:
            raise ParseError("Document is empty")

        try:
            pdf_document = fitz.open(stream=file_bytes, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF: {str(e)}")
            raise ParseError(f"Unable to read PDF: {str(e)}") from e

        if pdf_document.page_count == 0:
            pdf_document.close()
            raise ParseError("Unable to read PDF: document has no pages")

        pages = []
        try:
            for page_num in range(len(pdf_document)):
                text = pdf_document[page_num].get_text()

                if not text.strip():
                    logger.debug(f"Skipping page {page_num + 1}: no extractable text")
                    continue

                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text
                ))
        except Exception as e:
            logger.error(f"Failed to extract text from PDF: {str(e)}")
            raise ParseError(f"Unable to extract text: {str(e)}") from e
        finally:
            pdf_document.close()

        logger.info(f"Extracted text from {len(pages)} pages")
        return pages
