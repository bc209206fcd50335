"""Path and transform value types used by the drawing context.

A :class:`Path` is an ordered list of segment variants recorded in user space.
It is only turned into device-space polylines at fill/stroke/clip time, under
whatever :class:`Matrix` is current on the context at that moment.
"""

import math
from dataclasses import dataclass, field

Point = tuple[float, float]

CURVE_STEPS = 16
ARC_STEPS_PER_QUADRANT = 8


@dataclass(frozen=True)
class Matrix:
    """2D affine transform ``[a c e; b d f; 0 0 1]`` (canvas convention)."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    def multiply(self, other: "Matrix") -> "Matrix":
        """Return ``self x other`` (``other`` is applied first)."""
        return Matrix(
            a=self.a * other.a + self.c * other.b,
            b=self.b * other.a + self.d * other.b,
            c=self.a * other.c + self.c * other.d,
            d=self.b * other.c + self.d * other.d,
            e=self.a * other.e + self.c * other.f + self.e,
            f=self.b * other.e + self.d * other.f + self.f,
        )

    def translate(self, tx: float, ty: float) -> "Matrix":
        return self.multiply(Matrix(e=tx, f=ty))

    def scale(self, sx: float, sy: float) -> "Matrix":
        return self.multiply(Matrix(a=sx, d=sy))

    def apply(self, x: float, y: float) -> Point:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    @property
    def scale_factor(self) -> float:
        """Uniform scale approximation used for line widths and font sizes."""
        return math.sqrt(abs(self.a * self.d - self.b * self.c)) or 1.0


IDENTITY = Matrix()


@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class CubicTo:
    cp1x: float
    cp1y: float
    cp2x: float
    cp2y: float
    x: float
    y: float


@dataclass(frozen=True)
class QuadTo:
    cpx: float
    cpy: float
    x: float
    y: float


@dataclass(frozen=True)
class Arc:
    x: float
    y: float
    radius: float
    start_angle: float
    end_angle: float
    anticlockwise: bool = False


@dataclass(frozen=True)
class Ellipse:
    x: float
    y: float
    radius_x: float
    radius_y: float
    rotation: float
    start_angle: float
    end_angle: float
    anticlockwise: bool = False


@dataclass(frozen=True)
class ClosePath:
    pass


Segment = MoveTo | LineTo | CubicTo | QuadTo | Arc | Ellipse | ClosePath


@dataclass
class Subpath:
    """A flattened, device-space polyline."""

    points: list[Point] = field(default_factory=list)
    closed: bool = False


class Path:
    """Mutable builder accumulating path segments."""

    def __init__(self, segments: list[Segment] | None = None) -> None:
        self._segments: list[Segment] = list(segments or [])

    @property
    def segments(self) -> tuple[Segment, ...]:
        return tuple(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def copy(self) -> "Path":
        return Path(self._segments)

    def clear(self) -> None:
        self._segments.clear()

    def add_path(self, other: "Path") -> None:
        self._segments.extend(other.segments)

    def move_to(self, x: float, y: float) -> None:
        self._segments.append(MoveTo(x, y))

    def line_to(self, x: float, y: float) -> None:
        self._segments.append(LineTo(x, y))

    def bezier_curve_to(
        self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float
    ) -> None:
        self._segments.append(CubicTo(cp1x, cp1y, cp2x, cp2y, x, y))

    def quadratic_curve_to(self, cpx: float, cpy: float, x: float, y: float) -> None:
        self._segments.append(QuadTo(cpx, cpy, x, y))

    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> None:
        if radius < 0:
            raise ValueError(f"Negative arc radius: {radius}")
        self._segments.append(Arc(x, y, radius, start_angle, end_angle, anticlockwise))

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
        if radius_x < 0 or radius_y < 0:
            raise ValueError(f"Negative ellipse radius: {radius_x}, {radius_y}")
        self._segments.append(
            Ellipse(x, y, radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise)
        )

    def rect(self, x: float, y: float, width: float, height: float) -> None:
        self.move_to(x, y)
        self.line_to(x + width, y)
        self.line_to(x + width, y + height)
        self.line_to(x, y + height)
        self.close_path()

    def close_path(self) -> None:
        self._segments.append(ClosePath())

    def flatten(self, matrix: Matrix = IDENTITY) -> list[Subpath]:
        """Convert segments into device-space polylines under ``matrix``."""
        subpaths: list[Subpath] = []
        current: Subpath | None = None
        cursor: Point | None = None
        start: Point | None = None

        def emit(point: Point) -> None:
            nonlocal current
            if current is None:
                current = Subpath()
                subpaths.append(current)
            current.points.append(matrix.apply(*point))

        for segment in self._segments:
            if isinstance(segment, MoveTo):
                current = None
                cursor = start = (segment.x, segment.y)
                emit(cursor)
            elif isinstance(segment, LineTo):
                if cursor is None:
                    start = (segment.x, segment.y)
                cursor = (segment.x, segment.y)
                emit(cursor)
            elif isinstance(segment, CubicTo):
                origin = cursor or (segment.cp1x, segment.cp1y)
                if cursor is None:
                    start = origin
                    emit(origin)
                for point in _cubic_points(origin, segment):
                    emit(point)
                cursor = (segment.x, segment.y)
            elif isinstance(segment, QuadTo):
                origin = cursor or (segment.cpx, segment.cpy)
                if cursor is None:
                    start = origin
                    emit(origin)
                for point in _quad_points(origin, segment):
                    emit(point)
                cursor = (segment.x, segment.y)
            elif isinstance(segment, (Arc, Ellipse)):
                points = _ellipse_points(segment)
                if cursor is None:
                    start = points[0]
                for point in points:
                    emit(point)
                cursor = points[-1]
            elif isinstance(segment, ClosePath):
                if current is not None and current.points:
                    current.closed = True
                current = None
                cursor = start
        return [subpath for subpath in subpaths if subpath.points]


def _cubic_points(origin: Point, seg: CubicTo) -> list[Point]:
    x0, y0 = origin
    points = []
    for step in range(1, CURVE_STEPS + 1):
        t = step / CURVE_STEPS
        mt = 1 - t
        x = mt**3 * x0 + 3 * mt**2 * t * seg.cp1x + 3 * mt * t**2 * seg.cp2x + t**3 * seg.x
        y = mt**3 * y0 + 3 * mt**2 * t * seg.cp1y + 3 * mt * t**2 * seg.cp2y + t**3 * seg.y
        points.append((x, y))
    return points


def _quad_points(origin: Point, seg: QuadTo) -> list[Point]:
    x0, y0 = origin
    points = []
    for step in range(1, CURVE_STEPS + 1):
        t = step / CURVE_STEPS
        mt = 1 - t
        x = mt**2 * x0 + 2 * mt * t * seg.cpx + t**2 * seg.x
        y = mt**2 * y0 + 2 * mt * t * seg.cpy + t**2 * seg.y
        points.append((x, y))
    return points


def _sweep(start: float, end: float, anticlockwise: bool) -> float:
    tau = 2 * math.pi
    if not anticlockwise:
        if end - start >= tau:
            return tau
        sweep = (end - start) % tau
        return sweep if sweep or end == start else tau
    if start - end >= tau:
        return -tau
    sweep = (start - end) % tau
    return -(sweep if sweep or end == start else tau)


def _ellipse_points(seg: Arc | Ellipse) -> list[Point]:
    if isinstance(seg, Arc):
        rx = ry = seg.radius
        rotation = 0.0
    else:
        rx, ry, rotation = seg.radius_x, seg.radius_y, seg.rotation
    sweep = _sweep(seg.start_angle, seg.end_angle, seg.anticlockwise)
    steps = max(1, int(math.ceil(abs(sweep) / (math.pi / 2) * ARC_STEPS_PER_QUADRANT)))
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    points = []
    for step in range(steps + 1):
        angle = seg.start_angle + sweep * step / steps
        ex, ey = rx * math.cos(angle), ry * math.sin(angle)
        points.append((seg.x + ex * cos_r - ey * sin_r, seg.y + ex * sin_r + ey * cos_r))
    return points
