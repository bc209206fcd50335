from PIL import Image, ImageDraw

from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.raster import RasterCandidate

PLACEHOLDER_SIZE = 100
SQUARE_INSET = 25


class MinimalPlaceholderStrategy(BaseRenderStrategy):
    """Last resort: a fixed 100x100 image with a dark square."""

    name = "minimal-placeholder"

    def __init__(self, quality: int) -> None:
        self._quality = quality

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        image = Image.new("RGB", (PLACEHOLDER_SIZE, PLACEHOLDER_SIZE), (255, 255, 255))
        draw = ImageDraw.Draw(image)
        far = PLACEHOLDER_SIZE - SQUARE_INSET - 1
        draw.rectangle((SQUARE_INSET, SQUARE_INSET, far, far), fill=(51, 51, 51))
        return RasterCandidate.from_image(image, self._quality)
