import io
from dataclasses import dataclass, field

from PIL import Image, UnidentifiedImageError

from docpreview.logging.logger import Log
from docpreview.processor.exceptions import StorageError
from docpreview.rendering.chain import RenderStrategyChain, StrategyOutcome
from docpreview.rendering.exceptions import RasterValidationError, SurfaceIncompatibleError
from docpreview.rendering.raster import has_image_header
from docpreview.storage.base import BaseObjectStore

CONTENT_TYPE = "image/jpeg"

PREVIEW_SIZES: dict[str, tuple[int, int]] = {
    "small": (200, 283),
    "medium": (400, 566),
    "large": (800, 1131),
}
THUMBNAIL_SIZE = (150, 200)


def preview_path(file_id: str, size: str) -> str:
    return f"previews/{file_id}/page-1-{size}.jpg"


def thumbnail_path(file_id: str, page_number: int) -> str:
    return f"thumbnails/{file_id}/page-{page_number}.jpg"


@dataclass
class PreviewSet:
    paths: dict[str, str]
    strategy: str
    outcomes: list[StrategyOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class ThumbnailRef:
    page: int
    url: str
    strategy: str

    def to_dict(self) -> dict[str, object]:
        return {"page": self.page, "url": self.url}


class PreviewGenerator:
    """Derives resized JPEG previews and thumbnails and uploads them."""

    def __init__(
        self,
        store: BaseObjectStore,
        preview_scale: float = 3.0,
        thumbnail_scale: float = 1.5,
        max_thumbnails: int = 5,
        preview_quality: int = 85,
        thumbnail_quality: int = 80,
    ) -> None:
        self._store = store
        self._preview_scale = preview_scale
        self._thumbnail_scale = thumbnail_scale
        self._max_thumbnails = max_thumbnails
        self._preview_quality = preview_quality
        self._thumbnail_quality = thumbnail_quality

    def generate_previews(self, pdf_bytes: bytes, file_id: str, chain: RenderStrategyChain) -> PreviewSet:
        """Render page 1 once and upload the small, medium and large previews.

        Raises:
            SurfaceIncompatibleError: if the rendered raster cannot be decoded.
            StorageError: if any upload fails.
        """
        result = chain.render(pdf_bytes, 1, self._preview_scale)
        source = _decode(result.raster.data)
        paths: dict[str, str] = {}
        for size, box in PREVIEW_SIZES.items():
            data = _resize_jpeg(source, box, self._preview_quality)
            paths[size] = self._upload(data, preview_path(file_id, size))
        Log.info("Previews generated", file_id=file_id, strategy=result.strategy)
        return PreviewSet(paths=paths, strategy=result.strategy, outcomes=result.outcomes)

    def generate_thumbnails(
        self,
        pdf_bytes: bytes,
        file_id: str,
        page_count: int,
        chain: RenderStrategyChain,
    ) -> list[ThumbnailRef]:
        """Render and upload one thumbnail per page, capped at ``max_thumbnails``."""
        refs: list[ThumbnailRef] = []
        for page_number in range(1, min(page_count, self._max_thumbnails) + 1):
            result = chain.render(pdf_bytes, page_number, self._thumbnail_scale)
            data = _resize_jpeg(_decode(result.raster.data), THUMBNAIL_SIZE, self._thumbnail_quality)
            url = self._upload(data, thumbnail_path(file_id, page_number))
            refs.append(ThumbnailRef(page=page_number, url=url, strategy=result.strategy))
        Log.info("Thumbnails generated", file_id=file_id, count=len(refs))
        return refs

    def _upload(self, data: bytes, path: str) -> str:
        if not has_image_header(data):
            raise RasterValidationError(f"Refusing to store non-image buffer at {path}")
        try:
            return self._store.upload(data, path, CONTENT_TYPE)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Upload failed for {path}: {exc}") from exc


def _decode(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise SurfaceIncompatibleError(f"Rendered raster could not be decoded: {exc}") from exc


def _resize_jpeg(source: Image.Image, box: tuple[int, int], quality: int) -> bytes:
    image = source.copy()
    # thumbnail() fits inside the box, keeps the aspect ratio and never upscales.
    image.thumbnail(box, Image.Resampling.LANCZOS)
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()
