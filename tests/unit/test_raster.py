import io

import pytest
from PIL import Image

from docpreview.rendering.exceptions import RasterValidationError
from docpreview.rendering.raster import (
    RasterCandidate,
    has_image_header,
    sniff_content_type,
    validate_raster,
)


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 3), (10, 20, 30)).save(buf, format="PNG")
    return buf.getvalue()


class TestRasterCandidate:
    def test_from_image_encodes_jpeg(self) -> None:
        candidate = RasterCandidate.from_image(Image.new("RGB", (30, 20)), quality=80)
        assert candidate.content_type == "image/jpeg"
        assert (candidate.width, candidate.height) == (30, 20)
        assert has_image_header(candidate.data)

    def test_from_bytes_reads_png_dimensions(self) -> None:
        candidate = RasterCandidate.from_bytes(_png_bytes())
        assert candidate.content_type == "image/png"
        assert (candidate.width, candidate.height) == (4, 3)

    def test_from_bytes_rejects_non_image(self) -> None:
        with pytest.raises(RasterValidationError, match="Missing image header"):
            RasterCandidate.from_bytes(b"%PDF-1.4 not an image")

    def test_from_bytes_rejects_truncated_header_only(self) -> None:
        with pytest.raises(RasterValidationError, match="Undecodable raster"):
            RasterCandidate.from_bytes(b"\xff\xd8\xff" + b"\x00" * 10)


class TestValidateRaster:
    def test_small_but_valid_raster_is_suspect(self) -> None:
        candidate = RasterCandidate.from_image(Image.new("RGB", (2, 2)), quality=50)
        assert validate_raster(candidate, min_bytes=100_000) is True

    def test_large_enough_raster_is_not_suspect(self) -> None:
        candidate = RasterCandidate.from_image(Image.new("RGB", (2, 2)), quality=50)
        assert validate_raster(candidate, min_bytes=10) is False

    def test_missing_header_raises(self) -> None:
        candidate = RasterCandidate(data=b"garbage" * 500, width=1, height=1)
        with pytest.raises(RasterValidationError):
            validate_raster(candidate, min_bytes=10)

    def test_sniff_empty_buffer(self) -> None:
        with pytest.raises(RasterValidationError, match="empty"):
            sniff_content_type(b"")
