import io
import math
import uuid
from dataclasses import dataclass, field

from PIL import Image

from docpreview.logging.logger import Log
from docpreview.rendering.exceptions import SurfaceAllocationError
from docpreview.surface.context import DrawingContext

BACKGROUND = (255, 255, 255)


@dataclass
class Surface:
    """An in-memory pixel buffer plus the context that draws on it."""

    image: Image.Image
    context: DrawingContext
    surface_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def encode_jpeg(self, quality: int) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="JPEG", quality=quality)
        return buf.getvalue()


class SurfaceFactory:
    """Creates independent drawing surfaces; one instance per processing run."""

    def __init__(self, max_pixels: int) -> None:
        self._max_pixels = max_pixels

    def create(self, width: float, height: float) -> Surface:
        """Allocate a white surface with default drawing state.

        Raises:
            SurfaceAllocationError: on non-positive dimensions or ones above max_pixels.
        """
        pixel_width, pixel_height = math.ceil(width), math.ceil(height)
        if pixel_width <= 0 or pixel_height <= 0:
            raise SurfaceAllocationError(
                f"Invalid surface size {pixel_width}x{pixel_height}"
            )
        if pixel_width * pixel_height > self._max_pixels:
            raise SurfaceAllocationError(
                f"Surface {pixel_width}x{pixel_height} exceeds {self._max_pixels} pixels"
            )
        try:
            image = Image.new("RGB", (pixel_width, pixel_height), BACKGROUND)
        except MemoryError as exc:
            raise SurfaceAllocationError(
                f"Out of memory allocating {pixel_width}x{pixel_height} surface"
            ) from exc
        surface = Surface(image=image, context=DrawingContext(image))
        Log.debug(
            "Surface created",
            surface=surface.surface_id,
            width=pixel_width,
            height=pixel_height,
        )
        return surface
