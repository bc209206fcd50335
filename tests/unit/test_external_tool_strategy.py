import io
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from docpreview.rendering.capabilities import ToolCapability
from docpreview.rendering.exceptions import ExternalToolError
from docpreview.rendering.strategies.external_tool import ExternalToolStrategy, density_for_scale

CAPABILITY = ToolCapability(available=True, binary="/usr/bin/magick", supports_pdf=True)


def _jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (120, 160), (200, 200, 200)).save(buf, format="JPEG")
    return buf.getvalue()


def _strategy(temp_dir: Path) -> ExternalToolStrategy:
    return ExternalToolStrategy(CAPABILITY, temp_dir=temp_dir, timeout_seconds=30, quality=90)


def _write_output(command: list[str], **_kwargs: Any) -> MagicMock:
    Path(command[-1]).write_bytes(_jpeg_bytes())
    return MagicMock(returncode=0)


class TestDensity:
    def test_density_tracks_scale(self) -> None:
        assert density_for_scale(1.0) == 72
        assert density_for_scale(3.0) == 216


class TestExternalToolStrategy:
    def test_requires_available_capability(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="available converter"):
            ExternalToolStrategy(
                ToolCapability(available=False), temp_dir=tmp_path, timeout_seconds=30, quality=90
            )

    def test_build_command_selects_zero_based_page(self, tmp_path: Path) -> None:
        command = _strategy(tmp_path).build_command(Path("/t/in.pdf"), Path("/t/out.jpg"), 2, 1.5)
        assert command[:2] == ["/usr/bin/magick", "/t/in.pdf[1]"]
        assert command[command.index("-density") + 1] == "108"
        assert command[command.index("-quality") + 1] == "90"
        assert command[-1] == "/t/out.jpg"

    @patch("docpreview.rendering.strategies.external_tool.subprocess.run", side_effect=_write_output)
    def test_returns_raster_and_removes_temp_files(self, mock_run: MagicMock, tmp_path: Path) -> None:
        raster = _strategy(tmp_path).render(b"%PDF-1.4", 1, 2.0)

        assert (raster.width, raster.height) == (120, 160)
        assert raster.content_type == "image/jpeg"
        assert mock_run.call_args.kwargs["timeout"] == 30
        assert list(tmp_path.iterdir()) == []

    @patch("docpreview.rendering.strategies.external_tool.subprocess.run")
    def test_timeout_raises_and_cleans_up(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="magick", timeout=30)

        with pytest.raises(ExternalToolError, match="timed out"):
            _strategy(tmp_path).render(b"%PDF-1.4", 1, 2.0)

        assert list(tmp_path.iterdir()) == []

    @patch("docpreview.rendering.strategies.external_tool.subprocess.run")
    def test_non_zero_exit_raises(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(
            1, "magick", stderr="no decode delegate for this image format"
        )

        with pytest.raises(ExternalToolError, match="no decode delegate"):
            _strategy(tmp_path).render(b"%PDF-1.4", 1, 2.0)

        assert list(tmp_path.iterdir()) == []

    @patch("docpreview.rendering.strategies.external_tool.subprocess.run")
    def test_missing_output_raises(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = MagicMock(returncode=0)

        with pytest.raises(ExternalToolError, match="no output"):
            _strategy(tmp_path).render(b"%PDF-1.4", 1, 2.0)

    @patch("docpreview.rendering.strategies.external_tool.subprocess.run")
    def test_non_image_output_raises(self, mock_run: MagicMock, tmp_path: Path) -> None:
        def write_garbage(command: list[str], **_kwargs: Any) -> MagicMock:
            Path(command[-1]).write_bytes(b"not an image")
            return MagicMock(returncode=0)

        mock_run.side_effect = write_garbage

        with pytest.raises(ExternalToolError, match="not an image"):
            _strategy(tmp_path).render(b"%PDF-1.4", 1, 2.0)

        assert list(tmp_path.iterdir()) == []
