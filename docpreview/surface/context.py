"""Headless 2D drawing context backed by a Pillow image.

Mirrors the subset of the canvas 2D API that the page renderer relies on.
Drawing operations never raise: failures are logged, counted in
:class:`SurfaceDiagnostics` and the operation becomes a no-op, so a partially
drawn page survives a single bad primitive.
"""

import functools
import math
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from PIL import Image, ImageChops, ImageColor, ImageDraw

from docpreview.logging.logger import Log
from docpreview.surface import fonts
from docpreview.surface.geometry import IDENTITY, Matrix, Path, Point, Subpath

RGBA = tuple[int, int, int, int]
BBox = tuple[int, int, int, int]

F = TypeVar("F", bound=Callable[..., Any])
MaskBuilder = Callable[[tuple[int, int], int, int], Image.Image]

# Subpixel grid used to rasterize non-rectangular fills.
SUPERSAMPLE = 4

TEXT_ALIGNS = ("start", "end", "left", "right", "center")
TEXT_BASELINES = ("top", "hanging", "middle", "alphabetic", "ideographic", "bottom")


@dataclass
class SurfaceDiagnostics:
    """Counters describing what the context had to absorb during a render."""

    operations: int = 0
    suppressed_errors: int = 0
    unsupported: Counter[str] = field(default_factory=Counter)
    last_error: str | None = None

    def record_failure(self, operation: str, exc: Exception) -> None:
        self.suppressed_errors += 1
        self.last_error = f"{operation}: {exc}"

    def record_unsupported(self, operation: str) -> None:
        self.unsupported[operation] += 1

    def summary(self) -> dict[str, object]:
        return {
            "operations": self.operations,
            "suppressedErrors": self.suppressed_errors,
            "unsupported": dict(self.unsupported),
        }


@dataclass(frozen=True)
class ImageData:
    """RGBA pixel block, row-major, 4 bytes per pixel."""

    width: int
    height: int
    data: bytes

    def pixels(self) -> list[RGBA]:
        raw = self.data
        return [
            (raw[i], raw[i + 1], raw[i + 2], raw[i + 3]) for i in range(0, len(raw), 4)
        ]


@dataclass(frozen=True)
class _State:
    matrix: Matrix = IDENTITY
    clip: Image.Image | None = None
    fill_style: RGBA = (0, 0, 0, 255)
    stroke_style: RGBA = (0, 0, 0, 255)
    line_width: float = 1.0
    global_alpha: float = 1.0
    font: fonts.FontSpec = fonts.FontSpec()
    text_align: str = "start"
    text_baseline: str = "alphabetic"


def guarded(method: F) -> F:
    """Swallow and count exceptions raised by a drawing operation."""

    @functools.wraps(method)
    def wrapper(self: "DrawingContext", *args: Any, **kwargs: Any) -> Any:
        self.diagnostics.operations += 1
        try:
            return method(self, *args, **kwargs)
        except Exception as exc:
            self.diagnostics.record_failure(method.__name__, exc)
            Log.debug("Drawing operation suppressed", operation=method.__name__, error=exc)
            return None

    return wrapper  # type: ignore[return-value]


def parse_color(value: str | tuple[int, ...]) -> RGBA:
    """Parse CSS color strings or RGB(A) tuples into an RGBA tuple."""
    if isinstance(value, str):
        parsed = ImageColor.getrgb(value)
    else:
        parsed = tuple(int(channel) for channel in value)
    if len(parsed) == 3:
        return (parsed[0], parsed[1], parsed[2], 255)
    if len(parsed) == 4:
        return (parsed[0], parsed[1], parsed[2], parsed[3])
    raise ValueError(f"Unsupported color: {value!r}")


class DrawingContext:
    """Canvas-like drawing API over an RGB :class:`PIL.Image.Image`."""

    def __init__(self, image: Image.Image) -> None:
        if image.mode != "RGB":
            raise ValueError(f"DrawingContext requires an RGB image, got {image.mode}")
        self._image = image
        self._state = _State()
        self._stack: list[_State] = []
        self._path = Path()
        self.diagnostics = SurfaceDiagnostics()

    def __getattr__(self, name: str) -> Callable[..., None]:
        # Only reached for attributes that do not exist: degrade to a counted no-op.
        if name.startswith("_"):
            raise AttributeError(name)

        def unsupported(*_args: Any, **_kwargs: Any) -> None:
            self.diagnostics.record_unsupported(name)
            Log.debug("Unsupported drawing operation ignored", operation=name)

        return unsupported

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def save_depth(self) -> int:
        return len(self._stack)

    # -- state ---------------------------------------------------------------

    @property
    def fill_style(self) -> RGBA:
        return self._state.fill_style

    @fill_style.setter
    def fill_style(self, value: str | tuple[int, ...]) -> None:
        self._set_style("fill_style", value)

    @property
    def stroke_style(self) -> RGBA:
        return self._state.stroke_style

    @stroke_style.setter
    def stroke_style(self, value: str | tuple[int, ...]) -> None:
        self._set_style("stroke_style", value)

    @property
    def line_width(self) -> float:
        return self._state.line_width

    @line_width.setter
    def line_width(self, value: float) -> None:
        if value > 0 and math.isfinite(value):
            self._state = replace(self._state, line_width=float(value))

    @property
    def global_alpha(self) -> float:
        return self._state.global_alpha

    @global_alpha.setter
    def global_alpha(self, value: float) -> None:
        if 0.0 <= value <= 1.0:
            self._state = replace(self._state, global_alpha=float(value))

    @property
    def font(self) -> str:
        return self._state.font.css

    @font.setter
    def font(self, value: str) -> None:
        try:
            self._state = replace(self._state, font=fonts.parse_font(value))
        except ValueError as exc:
            self.diagnostics.record_failure("font", exc)

    @property
    def text_align(self) -> str:
        return self._state.text_align

    @text_align.setter
    def text_align(self, value: str) -> None:
        if value in TEXT_ALIGNS:
            self._state = replace(self._state, text_align=value)

    @property
    def text_baseline(self) -> str:
        return self._state.text_baseline

    @text_baseline.setter
    def text_baseline(self, value: str) -> None:
        if value in TEXT_BASELINES:
            self._state = replace(self._state, text_baseline=value)

    def save(self) -> None:
        self._stack.append(self._state)

    def restore(self) -> None:
        if not self._stack:
            self.diagnostics.record_unsupported("restore_without_save")
            return
        self._state = self._stack.pop()

    # -- transforms ----------------------------------------------------------

    def translate(self, tx: float, ty: float) -> None:
        self._state = replace(self._state, matrix=self._state.matrix.translate(tx, ty))

    def scale(self, sx: float, sy: float) -> None:
        self._state = replace(self._state, matrix=self._state.matrix.scale(sx, sy))

    def transform(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None:
        matrix = self._state.matrix.multiply(Matrix(a, b, c, d, e, f))
        self._state = replace(self._state, matrix=matrix)

    def set_transform(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None:
        self._state = replace(self._state, matrix=Matrix(a, b, c, d, e, f))

    def reset_transform(self) -> None:
        self._state = replace(self._state, matrix=IDENTITY)

    def get_transform(self) -> Matrix:
        return self._state.matrix

    # -- path construction ---------------------------------------------------

    def begin_path(self) -> None:
        self._path = Path()

    def move_to(self, x: float, y: float) -> None:
        self._path.move_to(x, y)

    def line_to(self, x: float, y: float) -> None:
        self._path.line_to(x, y)

    def bezier_curve_to(
        self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float
    ) -> None:
        self._path.bezier_curve_to(cp1x, cp1y, cp2x, cp2y, x, y)

    def quadratic_curve_to(self, cpx: float, cpy: float, x: float, y: float) -> None:
        self._path.quadratic_curve_to(cpx, cpy, x, y)

    @guarded
    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> None:
        self._path.arc(x, y, radius, start_angle, end_angle, anticlockwise)

    @guarded
    def ellipse(
        self,
        x: float,
        y: float,
        radius_x: float,
        radius_y: float,
        rotation: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> None:
        self._path.ellipse(
            x, y, radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise
        )

    def rect(self, x: float, y: float, width: float, height: float) -> None:
        self._path.rect(x, y, width, height)

    def close_path(self) -> None:
        self._path.close_path()

    # -- drawing -------------------------------------------------------------

    @guarded
    def fill(self, path: Path | None = None) -> None:
        subpaths = (path if path is not None else self._path).flatten(self._state.matrix)
        polygons = [sub.points for sub in subpaths if len(sub.points) >= 3]
        if not polygons:
            return
        bbox = _bbox_of(point for polygon in polygons for point in polygon)
        self._composite(bbox, self._state.fill_style, functools.partial(coverage_mask, polygons))

    @guarded
    def stroke(self, path: Path | None = None) -> None:
        subpaths = (path if path is not None else self._path).flatten(self._state.matrix)
        width = max(1, round(self._state.line_width * self._state.matrix.scale_factor))
        lines = [_closed_points(sub) for sub in subpaths if sub.points]
        if not lines:
            return
        bbox = _bbox_of((point for line in lines for point in line), pad=width)

        def draw(canvas: ImageDraw.ImageDraw, dx: int, dy: int) -> None:
            for line in lines:
                shifted = _offset(line, dx, dy)
                if len(shifted) == 1:
                    shifted = shifted * 2
                canvas.line(shifted, fill=255, width=width, joint="curve")

        self._composite(bbox, self._state.stroke_style, _drawn_mask(draw))

    @guarded
    def clip(self, path: Path | None = None) -> None:
        subpaths = (path if path is not None else self._path).flatten(self._state.matrix)
        polygons = [sub.points for sub in subpaths if len(sub.points) >= 3]
        mask = Image.new("L", self._image.size, 0)
        box = _clamp(_bbox_of(point for polygon in polygons for point in polygon), self._image.size)
        if box is not None:
            region = coverage_mask(polygons, (box[2] - box[0], box[3] - box[1]), box[0], box[1])
            mask.paste(region, box[:2])
        if self._state.clip is not None:
            mask = ImageChops.multiply(mask, self._state.clip)
        self._state = replace(self._state, clip=mask)

    def clip_rect(self, x: float, y: float, width: float, height: float) -> None:
        path = Path()
        path.rect(x, y, width, height)
        self.clip(path)

    def fill_rect(self, x: float, y: float, width: float, height: float) -> None:
        path = Path()
        path.rect(x, y, width, height)
        self.fill(path)

    def stroke_rect(self, x: float, y: float, width: float, height: float) -> None:
        path = Path()
        path.rect(x, y, width, height)
        self.stroke(path)

    @guarded
    def clear_rect(self, x: float, y: float, width: float, height: float) -> None:
        path = Path()
        path.rect(x, y, width, height)
        polygons = [sub.points for sub in path.flatten(self._state.matrix)]
        bbox = _bbox_of(point for polygon in polygons for point in polygon)
        self._composite(
            bbox, (255, 255, 255, 255), functools.partial(coverage_mask, polygons), use_alpha=False
        )

    @guarded
    def draw_image(
        self,
        image: Image.Image,
        dx: float,
        dy: float,
        dw: float | None = None,
        dh: float | None = None,
    ) -> None:
        matrix = self._state.matrix
        width = image.width if dw is None else dw
        height = image.height if dh is None else dh
        x0, y0 = matrix.apply(dx, dy)
        x1, y1 = matrix.apply(dx + width, dy + height)
        left, top = round(min(x0, x1)), round(min(y0, y1))
        size = (max(1, round(abs(x1 - x0))), max(1, round(abs(y1 - y0))))
        source = image.convert("RGBA").resize(size)
        if x1 < x0:
            source = source.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if y1 < y0:
            source = source.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        box = _clamp((left, top, left + size[0], top + size[1]), self._image.size)
        if box is None:
            return
        crop = source.crop((box[0] - left, box[1] - top, box[2] - left, box[3] - top))
        mask = self._apply_clip_and_alpha(crop.getchannel("A"), box)
        self._image.paste(crop.convert("RGB"), box, mask)

    @guarded
    def fill_text(self, text: str, x: float, y: float) -> None:
        if not text:
            return
        matrix = self._state.matrix
        spec = self._state.font
        scale = matrix.scale_factor
        metrics = fonts.measure(spec, text, scale)
        origin_x = x + _align_offset(self._state.text_align, metrics.width)
        origin_y = y - _baseline_offset(self._state.text_baseline, metrics)
        px, py = matrix.apply(origin_x, origin_y)
        pixel_size = max(1, round(spec.size * scale))
        font = fonts.load_font(spec.generic_family, spec.bold, pixel_size)
        width = math.ceil(metrics.width * scale) + pixel_size
        height = math.ceil((metrics.ascent + metrics.descent) * scale) + pixel_size
        bbox = (math.floor(px), math.floor(py), math.floor(px) + width, math.floor(py) + height)

        def draw(canvas: ImageDraw.ImageDraw, dx: int, dy: int) -> None:
            canvas.text((px - dx, py - dy), text, fill=255, font=font)

        self._composite(bbox, self._state.fill_style, _drawn_mask(draw))

    def measure_text(self, text: str) -> fonts.TextMetrics:
        try:
            return fonts.measure(self._state.font, text, self._state.matrix.scale_factor)
        except Exception as exc:
            self.diagnostics.record_failure("measure_text", exc)
            return fonts.fallback_metrics(self._state.font, text)

    # -- pixels --------------------------------------------------------------

    def create_image_data(self, width: int, height: int) -> ImageData:
        width, height = max(0, int(width)), max(0, int(height))
        return ImageData(width=width, height=height, data=bytes(width * height * 4))

    def get_image_data(self, x: int, y: int, width: int, height: int) -> ImageData:
        """Read a pixel block; areas outside the surface read as transparent black."""
        x, y, width, height = int(x), int(y), max(0, int(width)), max(0, int(height))
        block = self._image.crop((x, y, x + width, y + height)).convert("RGBA")
        outside = Image.new("L", (width, height), 0)
        visible = _clamp((x, y, x + width, y + height), self._image.size)
        if visible is not None:
            outside.paste(255, (visible[0] - x, visible[1] - y, visible[2] - x, visible[3] - y))
        block.putalpha(outside)
        return ImageData(width=width, height=height, data=block.tobytes())

    @guarded
    def put_image_data(self, image_data: ImageData, x: int, y: int) -> None:
        block = Image.frombytes(
            "RGBA", (image_data.width, image_data.height), image_data.data
        ).convert("RGB")
        self._image.paste(block, (int(x), int(y)))

    # -- internals -----------------------------------------------------------

    def _set_style(self, attribute: str, value: str | tuple[int, ...]) -> None:
        try:
            color = parse_color(value)
        except (ValueError, TypeError) as exc:
            self.diagnostics.record_failure(attribute, exc)
            return
        self._state = replace(self._state, **{attribute: color})

    def _composite(
        self,
        bbox: BBox,
        color: RGBA,
        mask_for: MaskBuilder,
        use_alpha: bool = True,
    ) -> None:
        box = _clamp(bbox, self._image.size)
        if box is None:
            return
        mask = mask_for((box[2] - box[0], box[3] - box[1]), box[0], box[1])
        if use_alpha:
            mask = self._apply_clip_and_alpha(mask, box, color[3] / 255)
        elif self._state.clip is not None:
            mask = ImageChops.multiply(mask, self._state.clip.crop(box))
        self._image.paste(color[:3], box, mask)

    def _apply_clip_and_alpha(
        self, mask: Image.Image, box: BBox, color_alpha: float = 1.0
    ) -> Image.Image:
        if self._state.clip is not None:
            mask = ImageChops.multiply(mask, self._state.clip.crop(box))
        alpha = self._state.global_alpha * color_alpha
        if alpha < 1.0:
            mask = mask.point(lambda value: round(value * alpha))
        return mask


def coverage_mask(
    polygons: list[list[Point]], size: tuple[int, int], dx: int, dy: int
) -> Image.Image:
    """Fill mask for ``polygons`` with the top and left edges inclusive, bottom and right exclusive.

    A pixel is painted when at least half of its area lies inside a polygon,
    so ``fill_rect(0, 0, 10, 10)`` paints exactly 100 pixels. Axis-aligned
    rectangles are pasted directly; other shapes are rasterized on a
    ``SUPERSAMPLE`` grid and reduced.
    """
    mask = Image.new("L", size, 0)
    shapes: list[list[Point]] = []
    for polygon in polygons:
        box = _axis_aligned_box(polygon)
        if box is None:
            shapes.append(polygon)
            continue
        left, top, right, bottom = (round(value) for value in box)
        visible = _clamp((left - dx, top - dy, right - dx, bottom - dy), size)
        if visible is not None:
            mask.paste(255, visible)
    if shapes:
        fine = Image.new("L", (size[0] * SUPERSAMPLE, size[1] * SUPERSAMPLE), 0)
        canvas = ImageDraw.Draw(fine)
        for polygon in shapes:
            canvas.polygon(
                [((x - dx) * SUPERSAMPLE, (y - dy) * SUPERSAMPLE) for x, y in polygon], fill=255
            )
        covered = fine.reduce(SUPERSAMPLE).point(lambda value: 255 if value >= 128 else 0)
        mask = ImageChops.lighter(mask, covered)
    return mask


def _axis_aligned_box(polygon: list[Point]) -> tuple[float, float, float, float] | None:
    points = polygon[:-1] if len(polygon) == 5 and polygon[0] == polygon[-1] else polygon
    if len(points) != 4:
        return None
    horizontal = []
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        if (x0 == x1) == (y0 == y1):
            return None
        horizontal.append(y0 == y1)
    if horizontal not in ([True, False, True, False], [False, True, False, True]):
        return None
    xs = [x for x, _ in points]
    ys = [y for _, y in points]
    return (min(xs), min(ys), max(xs), max(ys))


def _drawn_mask(draw: Callable[[ImageDraw.ImageDraw, int, int], None]) -> MaskBuilder:
    def build(size: tuple[int, int], dx: int, dy: int) -> Image.Image:
        mask = Image.new("L", size, 0)
        draw(ImageDraw.Draw(mask), dx, dy)
        return mask

    return build


def _bbox_of(points: Any, pad: float = 1) -> BBox:
    xs: list[float] = []
    ys: list[float] = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return (0, 0, 0, 0)
    return (
        math.floor(min(xs) - pad),
        math.floor(min(ys) - pad),
        math.ceil(max(xs) + pad) + 1,
        math.ceil(max(ys) + pad) + 1,
    )


def _clamp(bbox: BBox, size: tuple[int, int]) -> BBox | None:
    left, top = max(0, bbox[0]), max(0, bbox[1])
    right, bottom = min(size[0], bbox[2]), min(size[1], bbox[3])
    if right <= left or bottom <= top:
        return None
    return (left, top, right, bottom)


def _offset(points: list[Point], dx: int, dy: int) -> list[Point]:
    return [(x - dx, y - dy) for x, y in points]


def _closed_points(subpath: Subpath) -> list[Point]:
    if subpath.closed and subpath.points and subpath.points[0] != subpath.points[-1]:
        return [*subpath.points, subpath.points[0]]
    return list(subpath.points)


def _align_offset(align: str, width: float) -> float:
    if align in ("center",):
        return -width / 2
    if align in ("end", "right"):
        return -width
    return 0.0


def _baseline_offset(baseline: str, metrics: fonts.TextMetrics) -> float:
    """Distance from the requested y to the top of the glyph box."""
    if baseline in ("top", "hanging"):
        return 0.0
    if baseline == "middle":
        return (metrics.ascent + metrics.descent) / 2
    if baseline in ("bottom", "ideographic"):
        return metrics.ascent + metrics.descent
    return metrics.ascent
