from dataclasses import dataclass

from docpreview.logging.logger import Log
from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.engine import RenderingEngine, get_page
from docpreview.rendering.exceptions import SurfaceIncompatibleError
from docpreview.rendering.page_renderer import FULL_RENDER, PdfPageRenderer
from docpreview.rendering.raster import RasterCandidate
from docpreview.surface.context import DrawingContext
from docpreview.surface.factory import Surface

SAMPLE_SIZE = 20
TEST_DRAW_SIZE = 50
WHITE = (255, 255, 255, 255)


@dataclass(frozen=True)
class BlankAnalysis:
    sampled_pixels: int
    non_white_pixels: int

    @property
    def content_ratio(self) -> float:
        return self.non_white_pixels / self.sampled_pixels if self.sampled_pixels else 0.0


def sample_regions(width: int, height: int) -> list[tuple[str, int, int, int]]:
    """Corner and center sample squares as ``(name, x, y, size)``."""
    size = min(SAMPLE_SIZE, width, height)
    center_x, center_y = width // 2 - size // 2, height // 2 - size // 2
    return [
        ("top-left", 0, 0, size),
        ("top-right", width - size, 0, size),
        ("center", center_x, center_y, size),
        ("bottom-left", 0, height - size, size),
        ("bottom-right", width - size, height - size, size),
    ]


def analyze_blankness(context: DrawingContext) -> BlankAnalysis:
    sampled = non_white = 0
    for _name, x, y, size in sample_regions(context.width, context.height):
        for pixel in context.get_image_data(x, y, size, size).pixels():
            sampled += 1
            if pixel != WHITE:
                non_white += 1
    return BlankAnalysis(sampled_pixels=sampled, non_white_pixels=non_white)


def surface_accepts_drawing(context: DrawingContext) -> bool:
    """Draw a test mark into a scratch region and put the original pixels back."""
    size = min(TEST_DRAW_SIZE, context.width, context.height)
    original = context.get_image_data(0, 0, size, size)
    context.save()
    try:
        context.reset_transform()
        context.fill_style = "#ff0000"
        context.fill_rect(0, 0, size, size)
        probe = context.get_image_data(0, 0, size, size)
    finally:
        context.restore()
        context.put_image_data(original, 0, 0)
    return any(pixel != WHITE for pixel in probe.pixels())


class FullRenderStrategy(BaseRenderStrategy):
    """Full-fidelity in-process render with blank-output detection."""

    name = "full-render"

    def __init__(
        self,
        engine: RenderingEngine,
        renderer: PdfPageRenderer,
        quality: int,
        blank_pixel_threshold: int,
    ) -> None:
        self._engine = engine
        self._renderer = renderer
        self._quality = quality
        self._blank_pixel_threshold = blank_pixel_threshold

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        with self._engine.open(pdf_bytes) as document:
            page = get_page(document, page_number)
            surface = self._engine.surface_factory.create(page.width * scale, page.height * scale)
            stats = self._renderer.render(page, surface.context, scale, FULL_RENDER)
        Log.debug(
            "Full render drew page",
            page=page_number,
            objects=stats.total,
            skipped=stats.skipped,
            **surface.context.diagnostics.summary(),
        )
        self._verify_not_blank(surface, page_number)
        return RasterCandidate(
            data=surface.encode_jpeg(self._quality),
            width=surface.width,
            height=surface.height,
        )

    def _verify_not_blank(self, surface: Surface, page_number: int) -> None:
        analysis = analyze_blankness(surface.context)
        if analysis.non_white_pixels >= self._blank_pixel_threshold:
            return
        Log.warning(
            "Render looks blank, testing drawing surface",
            page=page_number,
            non_white=analysis.non_white_pixels,
            sampled=analysis.sampled_pixels,
        )
        if not surface_accepts_drawing(surface.context):
            raise SurfaceIncompatibleError("Drawing surface test draw left no pixels")
