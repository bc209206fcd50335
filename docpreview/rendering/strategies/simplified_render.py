from docpreview.logging.logger import Log
from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.engine import RenderingEngine, get_page
from docpreview.rendering.page_renderer import SIMPLIFIED_RENDER, PdfPageRenderer
from docpreview.rendering.raster import RasterCandidate
from docpreview.surface.context import DrawingContext

PLACEHOLDER_BORDER = "#cccccc"
PLACEHOLDER_TEXT = "#666666"
PLACEHOLDER_LABEL = "Document content"


def draw_content_placeholder(context: DrawingContext) -> None:
    """Neutral bordered frame with a centered label."""
    width, height = context.width, context.height
    margin = max(2, min(width, height) // 20)
    context.reset_transform()
    context.fill_style = "#ffffff"
    context.fill_rect(0, 0, width, height)
    context.stroke_style = PLACEHOLDER_BORDER
    context.line_width = 2
    context.stroke_rect(margin, margin, width - 2 * margin, height - 2 * margin)
    context.fill_style = PLACEHOLDER_TEXT
    context.font = f"{max(8, width // 25)}px sans-serif"
    context.text_align = "center"
    context.text_baseline = "middle"
    context.fill_text(PLACEHOLDER_LABEL, width / 2, height / 2)


class SimplifiedRenderStrategy(BaseRenderStrategy):
    """Render text and basic shapes only; degrade to a labelled frame on render errors."""

    name = "simplified-render"

    def __init__(self, engine: RenderingEngine, renderer: PdfPageRenderer, quality: int) -> None:
        self._engine = engine
        self._renderer = renderer
        self._quality = quality

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        with self._engine.open(pdf_bytes) as document:
            page = get_page(document, page_number)
            surface = self._engine.surface_factory.create(page.width * scale, page.height * scale)
            try:
                self._renderer.render(page, surface.context, scale, SIMPLIFIED_RENDER)
            except Exception as exc:
                Log.warning("Simplified render failed, drawing placeholder", page=page_number, error=exc)
                draw_content_placeholder(surface.context)
        return RasterCandidate(
            data=surface.encode_jpeg(self._quality),
            width=surface.width,
            height=surface.height,
        )
