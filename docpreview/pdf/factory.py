from docpreview.config.settings import Settings
from docpreview.pdf.base import BaseDocumentIntrospector
from docpreview.pdf.pdfplumber_adapter import PdfPlumberIntrospector
from docpreview.pdf.pymupdf_adapter import PyMuPdfIntrospector


class IntrospectorFactory:
    """Creates the correct document introspector based on settings."""

    ADAPTERS: dict[str, type[BaseDocumentIntrospector]] = {
        "pdfplumber": PdfPlumberIntrospector,
        "pymupdf": PyMuPdfIntrospector,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentIntrospector:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls(excerpt_length=settings.text_excerpt_length)
