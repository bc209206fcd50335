import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from docpreview.rendering.exceptions import RasterValidationError

JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

CONTENT_TYPES = {JPEG_MAGIC: "image/jpeg", PNG_MAGIC: "image/png"}


@dataclass(frozen=True)
class RasterCandidate:
    """An encoded raster produced by a rendering strategy."""

    data: bytes
    width: int
    height: int
    content_type: str = "image/jpeg"

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterCandidate":
        """Build a candidate from encoded bytes, reading dimensions from the header.

        Raises:
            RasterValidationError: if the bytes are not a decodable JPEG or PNG.
        """
        content_type = sniff_content_type(data)
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            raise RasterValidationError(f"Undecodable raster: {exc}") from exc
        return cls(data=data, width=width, height=height, content_type=content_type)

    @classmethod
    def from_image(cls, image: Image.Image, quality: int) -> "RasterCandidate":
        buf = io.BytesIO()
        image.convert("RGB").save(buf, format="JPEG", quality=quality)
        return cls(data=buf.getvalue(), width=image.width, height=image.height)


def sniff_content_type(data: bytes) -> str:
    """Return the content type implied by the magic bytes.

    Raises:
        RasterValidationError: if no known image header is present.
    """
    for magic, content_type in CONTENT_TYPES.items():
        if data.startswith(magic):
            return content_type
    raise RasterValidationError(
        f"Missing image header (first bytes: {data[:4].hex() or 'empty'})"
    )


def has_image_header(data: bytes) -> bool:
    return any(data.startswith(magic) for magic in CONTENT_TYPES)


def validate_raster(candidate: RasterCandidate, min_bytes: int) -> bool:
    """Check a candidate before acceptance.

    Returns True when the raster is well-formed but smaller than ``min_bytes``
    (suspect, still acceptable).

    Raises:
        RasterValidationError: if the header check fails.
    """
    sniff_content_type(candidate.data)
    return candidate.byte_size < min_bytes
