"""Runtime detection of the optional external raster converter (ImageMagick)."""

import shutil
import subprocess
from dataclasses import dataclass
from functools import lru_cache

from docpreview.logging.logger import Log

GHOSTSCRIPT_BINARIES = ("gs", "gswin64c", "gswin32c")
PDF_DELEGATES = ("pdf", "gs", "gslib")
JPEG_DELEGATES = ("jpeg", "jpg")


@dataclass(frozen=True)
class ToolCapability:
    """Result of probing the external converter."""

    available: bool
    binary: str | None = None
    version: str | None = None
    delegates: str = ""
    supports_pdf: bool = False
    supports_jpeg: bool = False
    error: str | None = None

    def summary(self) -> dict[str, object]:
        return {
            "available": self.available,
            "binary": self.binary,
            "version": self.version,
            "supportsPdf": self.supports_pdf,
            "supportsJpeg": self.supports_jpeg,
        }


UNAVAILABLE = ToolCapability(available=False, error="external tool disabled")


class CapabilityProber:
    """Probes the configured converter candidates, cached per process."""

    def __init__(self, candidates: list[str], timeout_seconds: int, enabled: bool = True) -> None:
        self._candidates = tuple(candidates)
        self._timeout_seconds = timeout_seconds
        self._enabled = enabled

    def probe(self) -> ToolCapability:
        if not self._enabled:
            return UNAVAILABLE
        return probe_external_tool(self._candidates, self._timeout_seconds)


@lru_cache(maxsize=8)
def probe_external_tool(candidates: tuple[str, ...], timeout_seconds: int) -> ToolCapability:
    """Run ``<candidate> -version`` for each candidate until one answers."""
    errors: list[str] = []
    for candidate in candidates:
        binary = shutil.which(candidate)
        if binary is None:
            errors.append(f"{candidate}: not on PATH")
            continue
        try:
            completed = subprocess.run(
                [binary, "-version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=timeout_seconds,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            errors.append(f"{candidate}: {exc}")
            continue
        capability = _parse_version_output(binary, completed.stdout)
        if capability is None:
            errors.append(f"{candidate}: unrecognized -version output")
            continue
        Log.info(
            "External converter available",
            binary=binary,
            version=capability.version,
            supports_pdf=capability.supports_pdf,
        )
        return capability

    error = "; ".join(errors) or "no candidates configured"
    Log.info("External converter unavailable", reason=error)
    return ToolCapability(available=False, error=error)


def _parse_version_output(binary: str, stdout: str) -> ToolCapability | None:
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines or "ImageMagick" not in lines[0]:
        return None
    delegates = next((line for line in lines if line.startswith("Delegates")), "")
    lowered = delegates.lower().split()
    supports_pdf = any(name in lowered for name in PDF_DELEGATES) or any(
        shutil.which(gs) for gs in GHOSTSCRIPT_BINARIES
    )
    return ToolCapability(
        available=True,
        binary=binary,
        version=lines[0],
        delegates=delegates,
        supports_pdf=supports_pdf,
        supports_jpeg=any(name in lowered for name in JPEG_DELEGATES),
    )
