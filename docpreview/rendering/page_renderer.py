"""Draws pdfplumber page objects onto a :class:`DrawingContext`.

This is the in-process "rendering library" path: pdfminer parses the content
stream, pdfplumber exposes positioned objects (chars, rects, lines, curves,
images, annotations), and this module issues the corresponding drawing
operations. Coordinates are pdfplumber's top-down page space; the context is
scaled so one PDF point maps to ``scale`` pixels.
"""

import io
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from PIL import Image

from docpreview.logging.logger import Log
from docpreview.rendering.exceptions import PageRenderError
from docpreview.surface.context import DrawingContext
from docpreview.surface.geometry import Path

FALLBACK_IMAGE_FILL = (220, 220, 220)
ANNOTATION_STROKE = (200, 160, 0)
FORM_WIDGET_SUBTYPE = "Widget"
OPTIONAL_CONTENT_TAG = "OC"

Color = tuple[int, int, int]


@dataclass(frozen=True)
class RenderOptions:
    draw_images: bool = True
    draw_curves: bool = True
    draw_annotations: bool = False
    draw_forms: bool = False
    draw_optional_content: bool = True


FULL_RENDER = RenderOptions()
SIMPLIFIED_RENDER = RenderOptions(
    draw_images=False,
    draw_curves=False,
    draw_annotations=False,
    draw_forms=False,
    draw_optional_content=False,
)


@dataclass
class RenderStats:
    drawn: Counter[str] = field(default_factory=Counter)
    skipped: int = 0

    @property
    def total(self) -> int:
        return sum(self.drawn.values())


def to_rgb(color: Any) -> Color | None:
    """Convert a pdfminer color value (gray, RGB or CMYK floats) to 8-bit RGB."""
    if color is None or isinstance(color, str):
        return None
    if isinstance(color, (int, float)):
        components: tuple[float, ...] = (float(color),)
    else:
        try:
            components = tuple(float(value) for value in color)
        except (TypeError, ValueError):
            return None
    if len(components) == 1:
        gray = _channel(components[0])
        return (gray, gray, gray)
    if len(components) == 3:
        return (_channel(components[0]), _channel(components[1]), _channel(components[2]))
    if len(components) == 4:
        c, m, y, k = components
        return (
            _channel((1 - c) * (1 - k)),
            _channel((1 - m) * (1 - k)),
            _channel((1 - y) * (1 - k)),
        )
    return None


def _channel(value: float) -> int:
    return max(0, min(255, round(value * 255)))


def font_for_char(char: dict[str, Any]) -> str:
    """Build a font shorthand from a pdfplumber char's ``fontname`` and ``size``."""
    fontname = str(char.get("fontname") or "sans-serif")
    base = fontname.split("+", 1)[-1]
    family = base.split("-", 1)[0].split(",", 1)[0] or "sans-serif"
    bold = "bold" in base.lower() or "black" in base.lower()
    size = max(float(char.get("size") or 10.0), 0.5)
    return f"{'bold ' if bold else ''}{size:.2f}px {family}"


class PdfPageRenderer:
    """Render one pdfplumber page through the drawing-surface shim."""

    def render(
        self,
        page: Any,
        context: DrawingContext,
        scale: float,
        options: RenderOptions = FULL_RENDER,
    ) -> RenderStats:
        """Draw ``page`` onto ``context``.

        Raises:
            PageRenderError: if the page's content stream cannot be parsed.
        """
        stats = RenderStats()
        try:
            layers = [
                ("image", page.images if options.draw_images else [], self._draw_image),
                ("rect", page.rects, self._draw_rect),
                ("curve", page.curves if options.draw_curves else [], self._draw_curve),
                ("line", page.lines, self._draw_line),
                ("char", page.chars, self._draw_char),
            ]
            annotations = list(page.annots) if (options.draw_annotations or options.draw_forms) else []
        except Exception as exc:
            raise PageRenderError(f"Page content could not be parsed: {exc}") from exc

        x_offset, y_offset = float(page.bbox[0]), float(page.bbox[1])
        context.save()
        try:
            context.scale(scale, scale)
            context.translate(-x_offset, -y_offset)
            for kind, objects, draw in layers:
                for obj in objects:
                    if not options.draw_optional_content and obj.get("tag") == OPTIONAL_CONTENT_TAG:
                        stats.skipped += 1
                        continue
                    try:
                        draw(context, obj)
                    except (KeyError, TypeError, ValueError):
                        stats.skipped += 1
                        continue
                    stats.drawn[kind] += 1
            for annot in annotations:
                is_form = _annotation_subtype(annot) == FORM_WIDGET_SUBTYPE
                if (is_form and not options.draw_forms) or (
                    not is_form and not options.draw_annotations
                ):
                    continue
                self._draw_annotation(context, annot)
                stats.drawn["form" if is_form else "annotation"] += 1
        finally:
            context.restore()
        return stats

    def _draw_rect(self, context: DrawingContext, obj: dict[str, Any]) -> None:
        path = Path()
        path.rect(obj["x0"], obj["top"], obj["x1"] - obj["x0"], obj["bottom"] - obj["top"])
        self._paint(context, obj, path, default_stroke=not obj.get("fill"))

    def _draw_curve(self, context: DrawingContext, obj: dict[str, Any]) -> None:
        if obj.get("path"):
            path = curve_path(obj["path"])
        else:
            points = obj["pts"]
            if len(points) < 2:
                return
            path = Path()
            path.move_to(*points[0])
            for point in points[1:]:
                path.line_to(*point)
        if obj.get("fill"):
            path.close_path()
        self._paint(context, obj, path, default_stroke=True)

    def _draw_line(self, context: DrawingContext, obj: dict[str, Any]) -> None:
        points = obj.get("pts") or [(obj["x0"], obj["top"]), (obj["x1"], obj["bottom"])]
        path = Path()
        path.move_to(*points[0])
        for point in points[1:]:
            path.line_to(*point)
        context.line_width = float(obj.get("linewidth") or 1.0)
        context.stroke_style = to_rgb(obj.get("stroking_color")) or (0, 0, 0)
        context.stroke(path)

    def _draw_char(self, context: DrawingContext, obj: dict[str, Any]) -> None:
        text = obj["text"]
        if not text.strip():
            return
        context.font = font_for_char(obj)
        context.fill_style = to_rgb(obj.get("non_stroking_color")) or (0, 0, 0)
        context.text_baseline = "top"
        context.text_align = "left"
        context.fill_text(text, obj["x0"], obj["top"])

    def _draw_image(self, context: DrawingContext, obj: dict[str, Any]) -> None:
        x0, top = obj["x0"], obj["top"]
        width, height = obj["x1"] - x0, obj["bottom"] - top
        image = _decode_image(obj.get("stream"), obj.get("srcsize"))
        if image is None:
            context.fill_style = FALLBACK_IMAGE_FILL
            context.fill_rect(x0, top, width, height)
            return
        context.draw_image(image, x0, top, width, height)

    def _draw_annotation(self, context: DrawingContext, annot: dict[str, Any]) -> None:
        context.line_width = 1.0
        context.stroke_style = ANNOTATION_STROKE
        context.stroke_rect(
            annot["x0"], annot["top"], annot["x1"] - annot["x0"], annot["bottom"] - annot["top"]
        )

    @staticmethod
    def _paint(context: DrawingContext, obj: dict[str, Any], path: Path, default_stroke: bool) -> None:
        if obj.get("fill"):
            context.fill_style = to_rgb(obj.get("non_stroking_color")) or (0, 0, 0)
            context.fill(path)
        if obj.get("stroke", default_stroke):
            context.line_width = float(obj.get("linewidth") or 1.0)
            context.stroke_style = to_rgb(obj.get("stroking_color")) or (0, 0, 0)
            context.stroke(path)


def curve_path(segments: list[tuple[Any, ...]]) -> Path:
    """Replay pdfplumber ``path`` segments (``m l c v y h``) as a :class:`Path`.

    ``v`` reuses the current point as the first control point and ``y`` reuses
    the end point as the second, as in the PDF path operators.

    Raises:
        ValueError: on an unknown operator or a curve without a current point.
    """
    path = Path()
    current: tuple[float, float] | None = None
    start: tuple[float, float] | None = None
    for command, *points in segments:
        if command == "m":
            current = start = points[0]
            path.move_to(*current)
        elif command == "l":
            current = points[0]
            path.line_to(*current)
        elif command in ("c", "v", "y"):
            if current is None:
                raise ValueError(f"Curve segment '{command}' without a current point")
            if command == "c":
                control1, control2, end = points
            elif command == "v":
                control2, end = points
                control1 = current
            else:
                control1, end = points
                control2 = end
            path.bezier_curve_to(*control1, *control2, *end)
            current = end
        elif command == "h":
            path.close_path()
            current = start
        else:
            raise ValueError(f"Unknown path operator: {command!r}")
    return path


def _decode_image(stream: Any, srcsize: Any) -> Image.Image | None:
    """Decode an embedded image stream when it is JPEG or raw 8-bit Gray/RGB."""
    if stream is None:
        return None
    try:
        raw = stream.get_rawdata()
        if raw and raw.startswith(b"\xff\xd8"):
            with Image.open(io.BytesIO(raw)) as image:
                return image.convert("RGB")
        data = stream.get_data()
        width, height = (int(value) for value in srcsize)
        if len(data) == width * height * 3:
            return Image.frombytes("RGB", (width, height), data)
        if len(data) == width * height:
            return Image.frombytes("L", (width, height), data).convert("RGB")
    except Exception as exc:
        Log.debug("Embedded image not decodable, drawing a placeholder box", error=exc)
        return None
    return None


def _annotation_subtype(annot: dict[str, Any]) -> str:
    data = annot.get("data") or {}
    subtype = data.get("Subtype")
    return str(getattr(subtype, "name", subtype) or "")
