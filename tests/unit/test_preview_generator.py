import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from docpreview.previews.generator import (
    PREVIEW_SIZES,
    PreviewGenerator,
    preview_path,
    thumbnail_path,
)
from docpreview.processor.exceptions import StorageError
from docpreview.rendering.chain import ChainResult, RenderStrategyChain, StrategyOutcome
from docpreview.rendering.exceptions import SurfaceIncompatibleError
from docpreview.rendering.raster import RasterCandidate
from docpreview.storage.base import BaseObjectStore
from docpreview.storage.local_store import LocalObjectStore


def _chain_result(width: int, height: int, strategy: str = "full-render") -> ChainResult:
    raster = RasterCandidate.from_image(Image.new("RGB", (width, height), (30, 60, 90)), quality=90)
    outcome = StrategyOutcome(strategy=strategy, success=True, elapsed_ms=1.0, byte_size=raster.byte_size)
    return ChainResult(raster=raster, strategy=strategy, outcomes=[outcome])


def _chain(width: int = 1836, height: int = 2376) -> MagicMock:
    chain = MagicMock(spec=RenderStrategyChain)
    chain.render.return_value = _chain_result(width, height)
    return chain


def _size_of(store: LocalObjectStore, path: str) -> tuple[int, int]:
    with Image.open(io.BytesIO(store.download(path))) as image:
        return image.size


class TestPaths:
    def test_preview_path(self) -> None:
        assert preview_path("abc", "medium") == "previews/abc/page-1-medium.jpg"

    def test_thumbnail_path(self) -> None:
        assert thumbnail_path("abc", 3) == "thumbnails/abc/page-3.jpg"


class TestGeneratePreviews:
    def test_uploads_three_sizes_from_one_render(self, tmp_path: Path) -> None:
        store = LocalObjectStore(root=tmp_path)
        chain = _chain()

        previews = PreviewGenerator(store).generate_previews(b"%PDF", "abc", chain)

        chain.render.assert_called_once_with(b"%PDF", 1, 3.0)
        assert previews.paths == {size: preview_path("abc", size) for size in PREVIEW_SIZES}
        assert previews.strategy == "full-render"
        assert len(previews.outcomes) == 1

    def test_previews_fit_their_boxes(self, tmp_path: Path) -> None:
        store = LocalObjectStore(root=tmp_path)

        previews = PreviewGenerator(store).generate_previews(b"%PDF", "abc", _chain())

        for size, (box_w, box_h) in PREVIEW_SIZES.items():
            width, height = _size_of(store, previews.paths[size])
            assert width <= box_w and height <= box_h
            assert width == box_w or height == box_h

    def test_small_render_is_never_upscaled(self, tmp_path: Path) -> None:
        store = LocalObjectStore(root=tmp_path)

        previews = PreviewGenerator(store).generate_previews(b"%PDF", "abc", _chain(100, 100))

        assert _size_of(store, previews.paths["large"]) == (100, 100)

    def test_undecodable_raster_raises(self, tmp_path: Path) -> None:
        chain = MagicMock(spec=RenderStrategyChain)
        chain.render.return_value = ChainResult(
            raster=RasterCandidate(data=b"\xff\xd8\xff" + b"\x00" * 20, width=1, height=1),
            strategy="full-render",
        )

        with pytest.raises(SurfaceIncompatibleError):
            PreviewGenerator(LocalObjectStore(root=tmp_path)).generate_previews(b"%PDF", "abc", chain)

    def test_upload_failure_is_fatal(self) -> None:
        store = MagicMock(spec=BaseObjectStore)
        store.upload.side_effect = OSError("disk full")

        with pytest.raises(StorageError, match="disk full"):
            PreviewGenerator(store).generate_previews(b"%PDF", "abc", _chain())

    def test_storage_error_passes_through(self) -> None:
        store = MagicMock(spec=BaseObjectStore)
        store.upload.side_effect = StorageError("bucket unavailable")

        with pytest.raises(StorageError, match="bucket unavailable"):
            PreviewGenerator(store).generate_previews(b"%PDF", "abc", _chain())

    def test_uploads_use_jpeg_content_type(self) -> None:
        store = MagicMock(spec=BaseObjectStore)
        store.upload.side_effect = lambda data, path, content_type: path

        PreviewGenerator(store).generate_previews(b"%PDF", "abc", _chain())

        assert {call.args[2] for call in store.upload.call_args_list} == {"image/jpeg"}


class TestGenerateThumbnails:
    def test_one_thumbnail_per_page(self, tmp_path: Path) -> None:
        store = LocalObjectStore(root=tmp_path)
        chain = _chain(918, 1188)

        refs = PreviewGenerator(store).generate_thumbnails(b"%PDF", "abc", 3, chain)

        assert [ref.to_dict() for ref in refs] == [
            {"page": n, "url": thumbnail_path("abc", n)} for n in (1, 2, 3)
        ]
        assert [call.args for call in chain.render.call_args_list] == [
            (b"%PDF", 1, 1.5),
            (b"%PDF", 2, 1.5),
            (b"%PDF", 3, 1.5),
        ]
        width, height = _size_of(store, refs[0].url)
        assert width <= 150 and height <= 200

    def test_caps_thumbnail_count(self, tmp_path: Path) -> None:
        refs = PreviewGenerator(LocalObjectStore(root=tmp_path)).generate_thumbnails(
            b"%PDF", "abc", 12, _chain(300, 400)
        )

        assert [ref.page for ref in refs] == [1, 2, 3, 4, 5]

    def test_custom_cap(self, tmp_path: Path) -> None:
        generator = PreviewGenerator(LocalObjectStore(root=tmp_path), max_thumbnails=2)

        refs = generator.generate_thumbnails(b"%PDF", "abc", 4, _chain(300, 400))

        assert len(refs) == 2

    def test_records_strategy_per_thumbnail(self, tmp_path: Path) -> None:
        chain = MagicMock(spec=RenderStrategyChain)
        chain.render.side_effect = [
            _chain_result(300, 400, "full-render"),
            _chain_result(300, 400, "synthetic-layout"),
        ]

        refs = PreviewGenerator(LocalObjectStore(root=tmp_path)).generate_thumbnails(
            b"%PDF", "abc", 2, chain
        )

        assert [ref.strategy for ref in refs] == ["full-render", "synthetic-layout"]
