import io
from collections.abc import Generator
from contextlib import contextmanager

import pdfplumber
from pdfplumber.pdf import PDF

from docpreview.pdf.base import BaseDocumentIntrospector
from docpreview.pdf.models import DocumentMetadata, PageDimensions, build_excerpt, build_metadata
from docpreview.processor.exceptions import InvalidDocumentError


class PdfPlumberIntrospector(BaseDocumentIntrospector):
    """Introspects PDFs using pdfplumber."""

    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        with self._open(pdf_bytes) as pdf:
            try:
                excerpt = build_excerpt(
                    (page.extract_text() or "" for page in pdf.pages), self._excerpt_length
                )
                return build_metadata(pdf.metadata or {}, len(pdf.pages), excerpt)
            except Exception as exc:
                raise InvalidDocumentError(f"pdfplumber metadata extraction failed: {exc}") from exc

    def get_first_page_dimensions(self, pdf_bytes: bytes) -> PageDimensions:
        with self._open(pdf_bytes) as pdf:
            page = pdf.pages[0]
            return PageDimensions(width=float(page.width), height=float(page.height))

    @contextmanager
    def _open(self, pdf_bytes: bytes) -> Generator[PDF, None, None]:
        if not pdf_bytes:
            raise InvalidDocumentError("PDF buffer is empty")
        try:
            pdf = pdfplumber.open(io.BytesIO(pdf_bytes))
        except Exception as exc:
            raise InvalidDocumentError(f"pdfplumber could not parse document: {exc}") from exc
        try:
            try:
                page_count = len(pdf.pages)
            except Exception as exc:
                raise InvalidDocumentError(f"pdfplumber could not read pages: {exc}") from exc
            if page_count == 0:
                raise InvalidDocumentError("PDF has no pages")
            yield pdf
        finally:
            pdf.close()
