from docpreview.processor.exceptions import ProcessorError


class RenderingError(ProcessorError):
    """Base exception for page rasterization errors."""

    error_code = "RENDERING_FAILED"


class RenderingUnavailableError(RenderingError):
    """Raised when the rendering library cannot be initialized in this environment."""

    error_code = "RENDERING_UNAVAILABLE"


class SurfaceIncompatibleError(RenderingUnavailableError):
    """Raised when the drawing surface accepts operations but produces no pixels."""


class AllStrategiesExhaustedError(RenderingError):
    """Raised when even the minimal placeholder strategy fails."""

    error_code = "ALL_STRATEGIES_EXHAUSTED"


class SurfaceAllocationError(RenderingError):
    """Raised when a drawing surface cannot be allocated (size or memory)."""


class ExternalToolError(RenderingError):
    """Raised when the external raster converter fails or times out."""


class PageRenderError(RenderingError):
    """Raised when a page cannot be drawn through the rendering library."""


class RasterValidationError(RenderingError):
    """Raised when a produced buffer is not a recognizable image."""
