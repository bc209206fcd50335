from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.raster import RasterCandidate
from docpreview.surface.factory import SurfaceFactory

LETTER_WIDTH = 612
LETTER_HEIGHT = 792
LAYOUT_FACTOR = 0.75
LINE_SPACING = 18


class SyntheticLayoutStrategy(BaseRenderStrategy):
    """Draw a generic document outline without touching the rendering library."""

    name = "synthetic-layout"

    def __init__(self, surface_factory: SurfaceFactory, quality: int) -> None:
        self._surface_factory = surface_factory
        self._quality = quality

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        factor = scale * LAYOUT_FACTOR
        surface = self._surface_factory.create(LETTER_WIDTH * factor, LETTER_HEIGHT * factor)
        context = surface.context
        width, height = surface.width, surface.height

        context.stroke_style = "#999999"
        context.line_width = max(1.0, factor)
        context.stroke_rect(1, 1, width - 2, height - 2)

        margin = 50 * factor
        context.stroke_style = "#dddddd"
        context.stroke_rect(margin, margin, width - 2 * margin, height - 2 * margin)

        context.fill_style = "#333333"
        context.font = f"bold {max(8, round(24 * factor))}px sans-serif"
        context.text_align = "center"
        context.text_baseline = "top"
        context.fill_text("PDF Document", width / 2, margin + 20 * factor)

        context.stroke_style = "#e0e0e0"
        context.line_width = max(1.0, factor / 2)
        top = margin + 80 * factor
        bottom = height - margin - 60 * factor
        y = top
        row = 0
        while y < bottom:
            # Every fifth row is shorter, like a paragraph end.
            right = width - margin - 20 * factor - (120 * factor if row % 5 == 4 else 0)
            context.begin_path()
            context.move_to(margin + 20 * factor, y)
            context.line_to(right, y)
            context.stroke()
            y += LINE_SPACING * factor
            row += 1

        context.fill_style = "#666666"
        context.font = f"{max(8, round(14 * factor))}px sans-serif"
        context.text_baseline = "bottom"
        context.fill_text(f"Page {page_number}", width / 2, height - margin - 10 * factor)

        return RasterCandidate(data=surface.encode_jpeg(self._quality), width=width, height=height)
