from abc import ABC, abstractmethod

from docpreview.pdf.models import DocumentMetadata, PageDimensions


class BaseDocumentIntrospector(ABC):
    """Contract for all PDF introspection adapters."""

    def __init__(self, excerpt_length: int = 1000) -> None:
        self._excerpt_length = excerpt_length

    @abstractmethod
    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        """Read page count, document info and a leading text excerpt.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Metadata with the excerpt truncated to the configured length.

        Raises:
            InvalidDocumentError: if the bytes are not a PDF with at least one page.
        """

    @abstractmethod
    def get_first_page_dimensions(self, pdf_bytes: bytes) -> PageDimensions:
        """Return the size of page 1 in PDF points.

        Raises:
            InvalidDocumentError: if the bytes are not a PDF with at least one page.
        """
