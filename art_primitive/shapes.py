import math
from dataclasses import dataclass, replace
from typing import Callable, ClassVar, Dict, NamedTuple, Tuple, Union

import numpy as np
from numba import njit

from .config import MAX_PERTURB_ATTEMPTS, RANDOM_EXTENT
from .types import BoundingBox, Coverage, ShapeJSON
from .utils import clamp

Point = Tuple[float, float]

# triangles thinner than this (px^2) count as collapsed
MIN_AREA = 0.25


# ────────────────────────────────────────────────────────────
# Shape variants (pure values, coordinates in canvas pixels)
# ────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Triangle:
    kind: ClassVar[str] = "triangle"
    points: Tuple[Point, Point, Point]


@dataclass(frozen=True)
class Rectangle:
    kind: ClassVar[str] = "rectangle"
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Ellipse:
    kind: ClassVar[str] = "ellipse"
    cx: float
    cy: float
    rx: float
    ry: float


Shape = Union[Triangle, Rectangle, Ellipse]


def _uniform(rng, lo, hi) -> float:
    return float(rng.uniform(lo, hi))


def _offset(rng, step) -> float:
    return float(rng.uniform(-step, step))


def _extent(w, h) -> float:
    return max(1.0, RANDOM_EXTENT * max(w, h))


def _box(x_lo, y_lo, x_hi, y_hi, w, h) -> BoundingBox:
    return BoundingBox(int(clamp(math.floor(x_lo), 0, w)),
                       int(clamp(math.floor(y_lo), 0, h)),
                       int(clamp(math.ceil(x_hi), 0, w)),
                       int(clamp(math.ceil(y_hi), 0, h)))


# ────────────────────────────────────────────────────────────
# Coverage kernels
# ────────────────────────────────────────────────────────────
@njit(cache=True, nogil=True)
def _triangle_coverage_numba(ax, ay, bx, by, cx, cy, x0, y0, bw, bh, samples):
    mask = np.zeros((bh, bw))
    area2 = (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)
    if area2 == 0.0:
        return mask
    sign = 1.0 if area2 > 0.0 else -1.0
    step = 1.0 / samples
    inv = 1.0 / (samples * samples)
    for i in range(bh):
        for j in range(bw):
            hits = 0
            for si in range(samples):
                py = y0 + i + (si + 0.5) * step
                for sj in range(samples):
                    px = x0 + j + (sj + 0.5) * step
                    e0 = sign * ((bx - ax) * (py - ay) - (by - ay) * (px - ax))
                    e1 = sign * ((cx - bx) * (py - by) - (cy - by) * (px - bx))
                    e2 = sign * ((ax - cx) * (py - cy) - (ay - cy) * (px - cx))
                    if e0 >= 0.0 and e1 >= 0.0 and e2 >= 0.0:
                        hits += 1
            mask[i, j] = hits * inv
    return mask


@njit(cache=True, nogil=True)
def _ellipse_coverage_numba(cx, cy, rx, ry, x0, y0, bw, bh, samples):
    mask = np.zeros((bh, bw))
    if rx <= 0.0 or ry <= 0.0:
        return mask
    step = 1.0 / samples
    inv = 1.0 / (samples * samples)
    for i in range(bh):
        for j in range(bw):
            hits = 0
            for si in range(samples):
                dy = (y0 + i + (si + 0.5) * step - cy) / ry
                for sj in range(samples):
                    dx = (x0 + j + (sj + 0.5) * step - cx) / rx
                    if dx * dx + dy * dy <= 1.0:
                        hits += 1
            mask[i, j] = hits * inv
    return mask


def _span_overlap(lo, hi, start, count) -> np.ndarray:
    # exact overlap of [lo, hi] with unit cells start..start+count-1
    cells = np.arange(start, start + count, dtype=np.float64)
    return np.clip(np.minimum(hi, cells + 1.0) - np.maximum(lo, cells), 0.0, 1.0)


# ────────────────────────────────────────────────────────────
# Triangle
# ────────────────────────────────────────────────────────────
def _triangle_area(t: Triangle) -> float:
    (ax, ay), (bx, by), (cx, cy) = t.points
    return abs((bx - ax) * (cy - ay) - (by - ay) * (cx - ax)) / 2.0


def _random_triangle(w, h, rng) -> Triangle:
    ext = _extent(w, h)
    x0, y0 = _uniform(rng, 0, w), _uniform(rng, 0, h)
    pts = [(x0, y0)]
    for _ in range(2):
        pts.append((clamp(x0 + _offset(rng, ext), 0.0, float(w)),
                    clamp(y0 + _offset(rng, ext), 0.0, float(h))))
    return Triangle(tuple(pts))


def _perturb_triangle(t: Triangle, w, h, rng, step) -> Triangle:
    idx = int(rng.integers(3))
    pts = list(t.points)
    x, y = pts[idx]
    pts[idx] = (clamp(x + _offset(rng, step), 0.0, float(w)),
                clamp(y + _offset(rng, step), 0.0, float(h)))
    return Triangle(tuple(pts))


def _triangle_coverage(t: Triangle, w, h, samples) -> Coverage:
    xs = [p[0] for p in t.points]
    ys = [p[1] for p in t.points]
    box = _box(min(xs), min(ys), max(xs), max(ys), w, h)
    if box.is_empty or _triangle_area(t) < MIN_AREA:
        return Coverage(box, np.zeros((box.height, box.width)))
    (ax, ay), (bx, by), (cx, cy) = t.points
    mask = _triangle_coverage_numba(float(ax), float(ay), float(bx), float(by),
                                    float(cx), float(cy), box.x0, box.y0,
                                    box.width, box.height, samples)
    return Coverage(box, mask)


def _scale_triangle(t: Triangle, sx, sy) -> Triangle:
    return Triangle(tuple((x * sx, y * sy) for x, y in t.points))


def _canvas_triangle(w, h) -> Triangle:
    return Triangle(((0.0, 0.0), (float(w), 0.0), (0.0, float(h))))


def _triangle_json(t: Triangle) -> ShapeJSON:
    return {"type": "triangle", "points": [list(p) for p in t.points]}


# ────────────────────────────────────────────────────────────
# Rectangle (axis aligned, corners in any order)
# ────────────────────────────────────────────────────────────
def _random_rectangle(w, h, rng) -> Rectangle:
    ext = _extent(w, h)
    x1, y1 = _uniform(rng, 0, w), _uniform(rng, 0, h)
    x2 = clamp(x1 + _offset(rng, ext), 0.0, float(w))
    y2 = clamp(y1 + _offset(rng, ext), 0.0, float(h))
    return Rectangle(x1, y1, x2, y2)


def _perturb_rectangle(r: Rectangle, w, h, rng, step) -> Rectangle:
    attr = ("x1", "y1", "x2", "y2")[int(rng.integers(4))]
    lim = w if "x" in attr else h
    val = clamp(getattr(r, attr) + _offset(rng, step), 0.0, float(lim))
    return replace(r, **{attr: val})


def _rectangle_coverage(r: Rectangle, w, h, samples) -> Coverage:
    x1, x2 = sorted((r.x1, r.x2))
    y1, y2 = sorted((r.y1, r.y2))
    box = _box(x1, y1, x2, y2, w, h)
    if box.is_empty:
        return Coverage(box, np.zeros((0, 0)))
    cols = _span_overlap(x1, x2, box.x0, box.width)
    rows = _span_overlap(y1, y2, box.y0, box.height)
    return Coverage(box, np.outer(rows, cols))


def _scale_rectangle(r: Rectangle, sx, sy) -> Rectangle:
    return Rectangle(r.x1 * sx, r.y1 * sy, r.x2 * sx, r.y2 * sy)


def _canvas_rectangle(w, h) -> Rectangle:
    return Rectangle(0.0, 0.0, float(w), float(h))


def _rectangle_json(r: Rectangle) -> ShapeJSON:
    x1, x2 = sorted((r.x1, r.x2))
    y1, y2 = sorted((r.y1, r.y2))
    return {"type": "rectangle", "x1": x1, "y1": y1, "x2": x2, "y2": y2}


# ────────────────────────────────────────────────────────────
# Ellipse (axis aligned, centre kept on the canvas)
# ────────────────────────────────────────────────────────────
def _random_ellipse(w, h, rng) -> Ellipse:
    ext = _extent(w, h) / 2.0
    return Ellipse(_uniform(rng, 0, w), _uniform(rng, 0, h),
                   _uniform(rng, 0.5, ext + 0.5), _uniform(rng, 0.5, ext + 0.5))


def _perturb_ellipse(e: Ellipse, w, h, rng, step) -> Ellipse:
    which = int(rng.integers(3))
    if which == 0:
        return replace(e, cx=clamp(e.cx + _offset(rng, step), 0.0, float(w)),
                       cy=clamp(e.cy + _offset(rng, step), 0.0, float(h)))
    attr = "rx" if which == 1 else "ry"
    return replace(e, **{attr: clamp(getattr(e, attr) + _offset(rng, step),
                                     0.5, float(max(w, h)))})


def _ellipse_coverage(e: Ellipse, w, h, samples) -> Coverage:
    box = _box(e.cx - e.rx, e.cy - e.ry, e.cx + e.rx, e.cy + e.ry, w, h)
    if box.is_empty:
        return Coverage(box, np.zeros((0, 0)))
    mask = _ellipse_coverage_numba(float(e.cx), float(e.cy), float(e.rx),
                                   float(e.ry), box.x0, box.y0,
                                   box.width, box.height, samples)
    return Coverage(box, mask)


def _scale_ellipse(e: Ellipse, sx, sy) -> Ellipse:
    return Ellipse(e.cx * sx, e.cy * sy, e.rx * sx, e.ry * sy)


def _canvas_ellipse(w, h) -> Ellipse:
    return Ellipse(w / 2.0, h / 2.0, w / 2.0, h / 2.0)


def _ellipse_json(e: Ellipse) -> ShapeJSON:
    return {"type": "ellipse", "cx": e.cx, "cy": e.cy, "rx": e.rx, "ry": e.ry}


# ────────────────────────────────────────────────────────────
# Dispatch table
# ────────────────────────────────────────────────────────────
class ShapeOps(NamedTuple):
    random: Callable
    perturb: Callable
    coverage: Callable
    scale: Callable
    canvas: Callable
    to_json: Callable


SHAPE_OPS: Dict[str, ShapeOps] = {
    "triangle": ShapeOps(_random_triangle, _perturb_triangle, _triangle_coverage,
                         _scale_triangle, _canvas_triangle, _triangle_json),
    "rectangle": ShapeOps(_random_rectangle, _perturb_rectangle, _rectangle_coverage,
                          _scale_rectangle, _canvas_rectangle, _rectangle_json),
    "ellipse": ShapeOps(_random_ellipse, _perturb_ellipse, _ellipse_coverage,
                        _scale_ellipse, _canvas_ellipse, _ellipse_json),
}


def _ops(kind: str) -> ShapeOps:
    try:
        return SHAPE_OPS[kind]
    except KeyError:
        raise ValueError(f"Unknown shape type: {kind}") from None


# ────────────────────────────────────────────────────────────
# Public operations
# ────────────────────────────────────────────────────────────
def random_shape(kind: str, width: int, height: int, rng) -> Shape:
    """Draw a shape of *kind* uniformly within a width×height canvas."""
    return _ops(kind).random(width, height, rng)


def perturb(shape: Shape, width: int, height: int, rng, step: float) -> Shape:
    """Nudge one geometric parameter of *shape* by at most *step* pixels.

    The result keeps the shape's kind and stays on the canvas. A nudge that
    collapses the shape is retried a few times; if every retry collapses,
    the shape comes back unchanged.
    """
    ops = _ops(shape.kind)
    for _ in range(MAX_PERTURB_ATTEMPTS):
        out = ops.perturb(shape, width, height, rng, step)
        if not _collapsed(out):
            return out
    return shape


def rasterize(shape: Shape, width: int, height: int, samples: int = 4) -> Coverage:
    """Anti-aliased coverage of *shape* over its clipped bounding box."""
    return _ops(shape.kind).coverage(shape, width, height, samples)


def scale_shape(shape: Shape, sx: float, sy: float) -> Shape:
    return _ops(shape.kind).scale(shape, sx, sy)


def canvas_shape(kind: str, width: int, height: int) -> Shape:
    """A shape of *kind* spanning the canvas; never degenerate."""
    return _ops(kind).canvas(width, height)


def shape_to_json(shape: Shape) -> ShapeJSON:
    return _ops(shape.kind).to_json(shape)


def _collapsed(shape: Shape) -> bool:
    if isinstance(shape, Triangle):
        return _triangle_area(shape) < MIN_AREA
    if isinstance(shape, Rectangle):
        return shape.x1 == shape.x2 or shape.y1 == shape.y2
    return False
