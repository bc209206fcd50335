import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docpreview.rendering.engine import RenderingEngine
from docpreview.rendering.exceptions import (
    PageRenderError,
    RenderingUnavailableError,
    SurfaceIncompatibleError,
)
from docpreview.rendering.page_renderer import PdfPageRenderer, curve_path
from docpreview.rendering.raster import has_image_header
from docpreview.rendering.strategies.full_render import (
    FullRenderStrategy,
    analyze_blankness,
    sample_regions,
    surface_accepts_drawing,
)
from docpreview.rendering.strategies.minimal_placeholder import MinimalPlaceholderStrategy
from docpreview.rendering.strategies.simplified_render import SimplifiedRenderStrategy
from docpreview.rendering.strategies.synthetic_layout import SyntheticLayoutStrategy
from docpreview.surface.factory import SurfaceFactory
from docpreview.surface.geometry import ClosePath, CubicTo

WHITE = (255, 255, 255, 255)


@pytest.fixture()
def surface_factory() -> SurfaceFactory:
    return SurfaceFactory(max_pixels=40_000_000)


@pytest.fixture()
def engine(surface_factory: SurfaceFactory) -> RenderingEngine:
    return RenderingEngine(surface_factory)


class TestBlankDetection:
    def test_sample_regions_cover_corners_and_center(self) -> None:
        regions = sample_regions(100, 80)
        assert [name for name, *_ in regions] == [
            "top-left",
            "top-right",
            "center",
            "bottom-left",
            "bottom-right",
        ]
        assert all(size == 20 for *_, size in regions)

    def test_sample_size_shrinks_for_tiny_surfaces(self) -> None:
        assert {size for *_, size in sample_regions(8, 30)} == {8}

    def test_white_surface_has_no_content(self, surface_factory: SurfaceFactory) -> None:
        surface = surface_factory.create(100, 100)
        analysis = analyze_blankness(surface.context)
        assert analysis.sampled_pixels == 5 * 20 * 20
        assert analysis.non_white_pixels == 0

    def test_counts_drawn_pixels(self, surface_factory: SurfaceFactory) -> None:
        surface = surface_factory.create(100, 100)
        surface.context.fill_rect(0, 0, 10, 10)
        assert analyze_blankness(surface.context).non_white_pixels >= 100

    def test_test_draw_restores_original_pixels(self, surface_factory: SurfaceFactory) -> None:
        surface = surface_factory.create(100, 100)
        assert surface_accepts_drawing(surface.context) is True
        pixels = surface.context.get_image_data(0, 0, 100, 100).pixels()
        assert all(pixel == WHITE for pixel in pixels)
        assert surface.context.fill_style == (0, 0, 0, 255)

    def test_test_draw_fails_when_drawing_has_no_effect(self, surface_factory: SurfaceFactory) -> None:
        surface = surface_factory.create(100, 100)
        with patch.object(surface.context, "fill_rect"):
            assert surface_accepts_drawing(surface.context) is False


class TestFullRenderStrategy:
    def test_renders_page_at_scale(self, engine: RenderingEngine, sample_pdf_bytes: bytes) -> None:
        strategy = FullRenderStrategy(engine, PdfPageRenderer(), quality=90, blank_pixel_threshold=10)

        raster = strategy.render(sample_pdf_bytes, 1, 1.5)

        assert has_image_header(raster.data)
        assert (raster.width, raster.height) == (918, 1188)

    def test_genuinely_blank_page_passes(self, engine: RenderingEngine, empty_pdf_bytes: bytes) -> None:
        strategy = FullRenderStrategy(engine, PdfPageRenderer(), quality=90, blank_pixel_threshold=10)

        raster = strategy.render(empty_pdf_bytes, 1, 1.0)

        assert has_image_header(raster.data)
        with Image.open(io.BytesIO(raster.data)) as image:
            rgb = image.convert("RGB")
            for point in [(0, 50), (50, 0), (50, 50), (49, 49), (25, 25)]:
                assert min(rgb.getpixel(point)) >= 245

    def test_incompatible_surface_raises(self, engine: RenderingEngine, empty_pdf_bytes: bytes) -> None:
        strategy = FullRenderStrategy(engine, PdfPageRenderer(), quality=90, blank_pixel_threshold=10)

        with patch(
            "docpreview.rendering.strategies.full_render.surface_accepts_drawing",
            return_value=False,
        ):
            with pytest.raises(SurfaceIncompatibleError):
                strategy.render(empty_pdf_bytes, 1, 1.0)

    def test_page_out_of_range_raises(self, engine: RenderingEngine, sample_pdf_bytes: bytes) -> None:
        strategy = FullRenderStrategy(engine, PdfPageRenderer(), quality=90, blank_pixel_threshold=10)

        with pytest.raises(PageRenderError, match="exceeds total pages 1"):
            strategy.render(sample_pdf_bytes, 2, 1.0)

    def test_draws_page_content(self, engine: RenderingEngine, three_page_pdf_bytes: bytes) -> None:
        renderer = PdfPageRenderer()
        with engine.open(three_page_pdf_bytes) as document:
            page = document.pages[0]
            surface = engine.surface_factory.create(page.width, page.height)
            stats = renderer.render(page, surface.context, 1.0)

        assert stats.drawn["char"] > 0
        assert stats.drawn["rect"] == 1
        # Filled box spans 72..372 x 192..392 in top-down page space.
        red, green, blue = surface.image.getpixel((200, 300))
        assert blue > red and blue > green

    def test_draws_curves_along_their_bezier_segments(self, engine: RenderingEngine) -> None:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=letter)
        c.circle(300, 392, 100, stroke=0, fill=1)
        c.save()

        with engine.open(buf.getvalue()) as document:
            page = document.pages[0]
            surface = engine.surface_factory.create(page.width, page.height)
            stats = PdfPageRenderer().render(page, surface.context, 1.0)

        assert stats.drawn["curve"] == 1
        # Centre is (300, 400) in top-down page space; both points lie inside the circle
        # but outside the diamond joining its four extreme points.
        assert surface.image.getpixel((360, 340)) == (0, 0, 0)
        assert surface.image.getpixel((240, 460)) == (0, 0, 0)
        assert surface.image.getpixel((380, 320)) == (255, 255, 255)


class TestCurvePath:
    def test_shorthand_curves_reuse_current_and_end_points(self) -> None:
        path = curve_path(
            [("m", (0, 0)), ("v", (5, 0), (10, 10)), ("y", (15, 10), (20, 0)), ("h",)]
        )

        _move, first, second, close = path.segments
        assert first == CubicTo(0, 0, 5, 0, 10, 10)
        assert second == CubicTo(15, 10, 20, 0, 20, 0)
        assert isinstance(close, ClosePath)

    def test_curve_without_current_point_raises(self) -> None:
        with pytest.raises(ValueError, match="without a current point"):
            curve_path([("c", (0, 0), (1, 1), (2, 2))])

    def test_unknown_operator_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown path operator"):
            curve_path([("m", (0, 0)), ("re", (0, 0), (5, 5))])


class TestSimplifiedRenderStrategy:
    def test_renders_page(self, engine: RenderingEngine, sample_pdf_bytes: bytes) -> None:
        strategy = SimplifiedRenderStrategy(engine, PdfPageRenderer(), quality=90)

        raster = strategy.render(sample_pdf_bytes, 1, 1.0)

        assert (raster.width, raster.height) == (612, 792)

    def test_render_error_draws_placeholder(self, engine: RenderingEngine, sample_pdf_bytes: bytes) -> None:
        renderer = MagicMock(spec=PdfPageRenderer)
        renderer.render.side_effect = PageRenderError("broken content stream")
        strategy = SimplifiedRenderStrategy(engine, renderer, quality=90)

        raster = strategy.render(sample_pdf_bytes, 1, 1.0)

        assert has_image_header(raster.data)

    def test_unexpected_drawing_error_draws_placeholder(
        self, engine: RenderingEngine, sample_pdf_bytes: bytes
    ) -> None:
        strategy = SimplifiedRenderStrategy(engine, PdfPageRenderer(), quality=90)

        with (
            patch.object(PdfPageRenderer, "_draw_char", side_effect=AttributeError("strip")),
            patch(
                "docpreview.rendering.strategies.simplified_render.draw_content_placeholder"
            ) as mock_placeholder,
        ):
            raster = strategy.render(sample_pdf_bytes, 1, 1.0)

        assert has_image_header(raster.data)
        assert (raster.width, raster.height) == (612, 792)
        mock_placeholder.assert_called_once()

    def test_library_failure_propagates(self, engine: RenderingEngine) -> None:
        strategy = SimplifiedRenderStrategy(engine, PdfPageRenderer(), quality=90)

        with pytest.raises(RenderingUnavailableError):
            strategy.render(b"not a pdf", 1, 1.0)


class TestSyntheticLayoutStrategy:
    def test_letter_canvas_scaled_by_three_quarters(self, surface_factory: SurfaceFactory) -> None:
        raster = SyntheticLayoutStrategy(surface_factory, quality=90).render(b"", 2, 2.0)

        assert (raster.width, raster.height) == (918, 1188)
        assert has_image_header(raster.data)

    def test_does_not_need_a_valid_document(self, surface_factory: SurfaceFactory) -> None:
        raster = SyntheticLayoutStrategy(surface_factory, quality=90).render(b"garbage", 1, 1.0)

        assert raster.byte_size > 0


class TestMinimalPlaceholderStrategy:
    def test_fixed_size_jpeg(self) -> None:
        raster = MinimalPlaceholderStrategy(quality=90).render(b"", 1, 3.0)

        assert (raster.width, raster.height) == (100, 100)
        assert has_image_header(raster.data)
