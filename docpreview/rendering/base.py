from abc import ABC, abstractmethod

from docpreview.rendering.raster import RasterCandidate


class BaseRenderStrategy(ABC):
    """Contract for one page-to-raster conversion strategy."""

    name: str = "base"

    @abstractmethod
    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        """Rasterize one page.

        Args:
            pdf_bytes: Raw PDF file content.
            page_number: 1-based page index.
            scale: Pixels per PDF point.

        Returns:
            Encoded raster of the page.

        Raises:
            RenderingError: if this strategy cannot produce a raster.
        """
