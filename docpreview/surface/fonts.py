import re
from dataclasses import dataclass
from functools import lru_cache

from PIL import ImageFont

from docpreview.logging.logger import Log

DEFAULT_FONT = "10px sans-serif"
FALLBACK_CHAR_WIDTH_RATIO = 0.5
FALLBACK_ASCENT_RATIO = 0.8
FALLBACK_DESCENT_RATIO = 0.2

TRUETYPE_CANDIDATES: dict[tuple[str, bool], tuple[str, ...]] = {
    ("sans-serif", False): ("DejaVuSans.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    ("sans-serif", True): (
        "DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    ),
    ("serif", False): ("DejaVuSerif.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf"),
    ("serif", True): (
        "DejaVuSerif-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf",
    ),
    ("monospace", False): (
        "DejaVuSansMono.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    ),
    ("monospace", True): (
        "DejaVuSansMono-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
    ),
}

_FONT_RE = re.compile(r"^\s*(?P<prefix>.*?)(?P<size>\d+(?:\.\d+)?)px\s+(?P<family>.+?)\s*$")
_SERIF_NAMES = ("serif", "times", "georgia", "garamond")
_MONO_NAMES = ("mono", "courier", "consolas")


@dataclass(frozen=True)
class FontSpec:
    """Parsed CSS-like font shorthand, e.g. ``bold 48px Arial``."""

    size: float = 10.0
    family: str = "sans-serif"
    bold: bool = False

    @property
    def css(self) -> str:
        weight = "bold " if self.bold else ""
        return f"{weight}{self.size:g}px {self.family}"

    @property
    def generic_family(self) -> str:
        lowered = self.family.lower()
        if any(name in lowered for name in _MONO_NAMES):
            return "monospace"
        if any(name in lowered for name in _SERIF_NAMES) and "sans" not in lowered:
            return "serif"
        return "sans-serif"


@dataclass(frozen=True)
class TextMetrics:
    width: float
    ascent: float
    descent: float
    fallback: bool = False


def parse_font(value: str) -> FontSpec:
    """Parse a font shorthand. Raises ValueError when no ``<n>px`` size is present."""
    match = _FONT_RE.match(value)
    if match is None:
        raise ValueError(f"Unparseable font: {value!r}")
    size = float(match.group("size"))
    if size <= 0:
        raise ValueError(f"Font size must be positive: {value!r}")
    family = match.group("family").split(",")[0].strip().strip("'\"") or "sans-serif"
    bold = "bold" in match.group("prefix").lower()
    return FontSpec(size=size, family=family, bold=bold)


@lru_cache(maxsize=128)
def load_font(
    generic_family: str, bold: bool, pixel_size: int
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont | None:
    """Resolve a Pillow font for the given family and size.

    Returns None when no scalable font engine is available; callers then fall
    back to approximate metrics and Pillow's built-in bitmap font.
    """
    for candidate in TRUETYPE_CANDIDATES.get((generic_family, bold), ()):
        try:
            return ImageFont.truetype(candidate, pixel_size)
        except OSError:
            continue
    try:
        return ImageFont.load_default(size=pixel_size)
    except (OSError, TypeError, ImportError, AttributeError) as exc:
        Log.debug("Scalable default font unavailable", error=exc)
        return None


def measure(spec: FontSpec, text: str, scale: float = 1.0) -> TextMetrics:
    """Measure ``text`` in user-space units for the given font."""
    pixel_size = max(1, round(spec.size * scale))
    font = load_font(spec.generic_family, spec.bold, pixel_size)
    if font is not None:
        try:
            width = font.getlength(text)
            ascent, descent = _font_extents(font, pixel_size)
            return TextMetrics(width=width / scale, ascent=ascent / scale, descent=descent / scale)
        except Exception as exc:
            Log.debug("Font metrics failed, using fallback", font=spec.css, error=exc)
    return fallback_metrics(spec, text)


def fallback_metrics(spec: FontSpec, text: str) -> TextMetrics:
    return TextMetrics(
        width=len(text) * spec.size * FALLBACK_CHAR_WIDTH_RATIO,
        ascent=spec.size * FALLBACK_ASCENT_RATIO,
        descent=spec.size * FALLBACK_DESCENT_RATIO,
        fallback=True,
    )


def _font_extents(
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont, pixel_size: int
) -> tuple[float, float]:
    if isinstance(font, ImageFont.FreeTypeFont):
        ascent, descent = font.getmetrics()
        return float(ascent), float(descent)
    return pixel_size * FALLBACK_ASCENT_RATIO, pixel_size * FALLBACK_DESCENT_RATIO
