from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import pymupdf

from docpreview.pdf.base import BaseDocumentIntrospector
from docpreview.pdf.models import DocumentMetadata, PageDimensions, build_excerpt, build_metadata
from docpreview.processor.exceptions import InvalidDocumentError

# PyMuPDF exposes document info under its own lower-camel keys.
INFO_KEYS = {
    "title": "Title",
    "author": "Author",
    "subject": "Subject",
    "keywords": "Keywords",
    "creator": "Creator",
    "producer": "Producer",
    "creationDate": "CreationDate",
    "modDate": "ModDate",
}


class PyMuPdfIntrospector(BaseDocumentIntrospector):
    """Introspects PDFs using PyMuPDF."""

    def extract_metadata(self, pdf_bytes: bytes) -> DocumentMetadata:
        with self._open(pdf_bytes) as doc:
            try:
                info = {INFO_KEYS[key]: value for key, value in (doc.metadata or {}).items() if key in INFO_KEYS}
                excerpt = build_excerpt((page.get_text() for page in doc), self._excerpt_length)
                return build_metadata(info, doc.page_count, excerpt)
            except Exception as exc:
                raise InvalidDocumentError(f"pymupdf metadata extraction failed: {exc}") from exc

    def get_first_page_dimensions(self, pdf_bytes: bytes) -> PageDimensions:
        with self._open(pdf_bytes) as doc:
            rect = doc[0].rect
            return PageDimensions(width=float(rect.width), height=float(rect.height))

    @contextmanager
    def _open(self, pdf_bytes: bytes) -> Generator[Any, None, None]:
        if not pdf_bytes:
            raise InvalidDocumentError("PDF buffer is empty")
        try:
            doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")  # type: ignore[no-untyped-call]
        except Exception as exc:
            raise InvalidDocumentError(f"pymupdf could not parse document: {exc}") from exc
        try:
            if doc.page_count == 0:
                raise InvalidDocumentError("PDF has no pages")
            yield doc
        finally:
            doc.close()
