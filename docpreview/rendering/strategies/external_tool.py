import subprocess
import uuid
from pathlib import Path

from docpreview.logging.logger import Log
from docpreview.rendering.base import BaseRenderStrategy
from docpreview.rendering.capabilities import ToolCapability
from docpreview.rendering.exceptions import ExternalToolError, RasterValidationError
from docpreview.rendering.raster import RasterCandidate

POINTS_PER_INCH = 72


def density_for_scale(scale: float) -> int:
    return max(1, round(POINTS_PER_INCH * scale))


class ExternalToolStrategy(BaseRenderStrategy):
    """Rasterize a page with the system ImageMagick binary."""

    name = "external-tool"

    def __init__(
        self,
        capability: ToolCapability,
        temp_dir: Path,
        timeout_seconds: int,
        quality: int,
    ) -> None:
        if not capability.available or capability.binary is None:
            raise ValueError("ExternalToolStrategy requires an available converter")
        self._binary = capability.binary
        self._temp_dir = temp_dir
        self._timeout_seconds = timeout_seconds
        self._quality = quality

    def build_command(self, input_path: Path, output_path: Path, page_number: int, scale: float) -> list[str]:
        return [
            self._binary,
            f"{input_path}[{page_number - 1}]",
            "-density",
            str(density_for_scale(scale)),
            "-quality",
            str(self._quality),
            "-background",
            "white",
            "-alpha",
            "remove",
            "-colorspace",
            "RGB",
            str(output_path),
        ]

    def render(self, pdf_bytes: bytes, page_number: int, scale: float) -> RasterCandidate:
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        token = uuid.uuid4().hex
        input_path = self._temp_dir / f"input-{token}.pdf"
        output_path = self._temp_dir / f"output-{token}.jpg"
        try:
            input_path.write_bytes(pdf_bytes)
            command = self.build_command(input_path, output_path, page_number, scale)
            Log.debug("Running external converter", command=" ".join(command))
            try:
                subprocess.run(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=self._timeout_seconds,
                    check=True,
                )
            except subprocess.TimeoutExpired as exc:
                raise ExternalToolError(
                    f"Converter timed out after {self._timeout_seconds}s"
                ) from exc
            except subprocess.CalledProcessError as exc:
                raise ExternalToolError(
                    f"Converter exited with {exc.returncode}: {(exc.stderr or '').strip()[:300]}"
                ) from exc
            except OSError as exc:
                raise ExternalToolError(f"Converter could not be executed: {exc}") from exc

            if not output_path.exists():
                raise ExternalToolError("Converter produced no output file")
            data = output_path.read_bytes()
            try:
                return RasterCandidate.from_bytes(data)
            except RasterValidationError as exc:
                raise ExternalToolError(f"Converter output is not an image: {exc}") from exc
        finally:
            input_path.unlink(missing_ok=True)
            output_path.unlink(missing_ok=True)
