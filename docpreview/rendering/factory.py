from pathlib import Path

from docpreview.config.settings import Settings
from docpreview.logging.logger import Log
from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.capabilities import ToolCapability
from docpreview.rendering.chain import RenderStrategyChain
from docpreview.rendering.engine import RenderingEngine
from docpreview.rendering.page_renderer import PdfPageRenderer
from docpreview.rendering.strategies.external_tool import ExternalToolStrategy
from docpreview.rendering.strategies.full_render import FullRenderStrategy
from docpreview.rendering.strategies.minimal_placeholder import MinimalPlaceholderStrategy
from docpreview.rendering.strategies.simplified_render import SimplifiedRenderStrategy
from docpreview.rendering.strategies.synthetic_layout import SyntheticLayoutStrategy
from docpreview.surface.factory import SurfaceFactory


def build_strategy_chain(
    settings: Settings,
    capability: ToolCapability,
    engine: RenderingEngine,
) -> RenderStrategyChain:
    """Assemble the full chain; the external tool leads only when it can read PDFs."""
    quality = settings.render_jpeg_quality
    renderer = PdfPageRenderer()
    strategies: list[BaseRenderStrategy] = []
    if capability.available and capability.supports_pdf:
        strategies.append(
            ExternalToolStrategy(
                capability,
                temp_dir=Path(settings.temp_dir),
                timeout_seconds=settings.external_tool_timeout_seconds,
                quality=quality,
            )
        )
    elif capability.available:
        Log.warning("External converter lacks PDF support, skipping it", binary=capability.binary)
    strategies.extend(
        [
            FullRenderStrategy(
                engine,
                renderer,
                quality=quality,
                blank_pixel_threshold=settings.blank_pixel_threshold,
            ),
            SimplifiedRenderStrategy(engine, renderer, quality=quality),
        ]
    )
    strategies.extend(_fallback_strategies(settings, engine.surface_factory))
    return RenderStrategyChain(strategies, min_raster_bytes=settings.min_raster_bytes)


def build_fallback_chain(settings: Settings, surface_factory: SurfaceFactory) -> RenderStrategyChain:
    """Chain of strategies that never touch the rendering library."""
    return RenderStrategyChain(
        _fallback_strategies(settings, surface_factory),
        min_raster_bytes=settings.min_raster_bytes,
    )


def _fallback_strategies(settings: Settings, surface_factory: SurfaceFactory) -> list[BaseRenderStrategy]:
    return [
        SyntheticLayoutStrategy(surface_factory, quality=settings.render_jpeg_quality),
        MinimalPlaceholderStrategy(quality=settings.render_jpeg_quality),
    ]
