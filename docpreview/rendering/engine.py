import io
from collections.abc import Generator
from contextlib import contextmanager

import pdfplumber
from pdfplumber.pdf import PDF

from docpreview.logging.logger import Log
from docpreview.rendering.exceptions import PageRenderError, RenderingUnavailableError
from docpreview.surface.factory import SurfaceFactory


class RenderingEngine:
    """Opens documents with the in-process rendering library (pdfplumber/pdfminer)."""

    def __init__(self, surface_factory: SurfaceFactory) -> None:
        self._surface_factory = surface_factory

    @property
    def surface_factory(self) -> SurfaceFactory:
        return self._surface_factory

    @contextmanager
    def open(self, pdf_bytes: bytes) -> Generator[PDF, None, None]:
        """Yield an open document.

        Raises:
            RenderingUnavailableError: if the library cannot load the document.
        """
        try:
            document = pdfplumber.open(io.BytesIO(pdf_bytes))
        except Exception as exc:
            raise RenderingUnavailableError(f"Rendering library failed to load document: {exc}") from exc
        try:
            yield document
        finally:
            document.close()

    def check(self, pdf_bytes: bytes) -> None:
        """Verify the library can reach page 1 and a surface can be allocated.

        Raises:
            RenderingUnavailableError: on any initialization failure.
        """
        try:
            with self.open(pdf_bytes) as document:
                if not document.pages:
                    raise RenderingUnavailableError("Rendering library found no pages")
                page = document.pages[0]
                probe = self._surface_factory.create(
                    max(1.0, min(float(page.width), 8.0)), max(1.0, min(float(page.height), 8.0))
                )
                probe.context.fill_rect(0, 0, 1, 1)
        except RenderingUnavailableError:
            raise
        except Exception as exc:
            raise RenderingUnavailableError(f"Rendering initialization failed: {exc}") from exc
        Log.debug("Rendering engine check passed")


def get_page(document: PDF, page_number: int):  # type: ignore[no-untyped-def]
    """Return a 1-based page.

    Raises:
        PageRenderError: if the page number is out of range.
    """
    total = len(document.pages)
    if page_number < 1 or page_number > total:
        raise PageRenderError(f"Requested page {page_number} exceeds total pages {total}")
    return document.pages[page_number - 1]
