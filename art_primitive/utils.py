import numpy as np
from numba import njit

from .types import RGB, BoundingBox, Coverage

# ────────────────────────────────────────────────────────────
# Utility helpers
# ────────────────────────────────────────────────────────────
def clamp(v, mn, mx):
    """Restrict *v* to the closed interval [mn, mx]."""
    return max(mn, min(v, mx))


def as_raster(arr) -> np.ndarray:
    """Float64 (H, W, 3) copy of an RGB(A) or grey uint8/float array."""
    a = np.asarray(arr)
    if a.ndim == 2:
        a = np.repeat(a[:, :, None], 3, axis=2)
    elif a.ndim == 3 and a.shape[2] == 4:
        a = a[:, :, :3]
    if a.ndim != 3 or a.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) raster, got shape {a.shape}")
    return np.array(a, dtype=np.float64)


def to_uint8(raster: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(raster), 0, 255).astype(np.uint8)


def average_color(raster: np.ndarray) -> RGB:
    r, g, b = (int(round(float(v))) for v in raster.reshape(-1, 3).mean(axis=0))
    return (r, g, b)


# ────────────────────────────────────────────────────────────
# Error kernels (heavy loops → numba-compiled)
# ────────────────────────────────────────────────────────────
@njit(cache=True, nogil=True)
def _region_difference_numba(a, b, y0, y1, x0, x1):
    diff = 0.0
    for i in range(y0, y1):
        for j in range(x0, x1):
            for k in range(a.shape[2]):
                d = a[i, j, k] - b[i, j, k]
                diff += d * d
    return diff


@njit(cache=True, nogil=True)
def _blended_difference_numba(target, canvas, mask, y0, x0, color, a):
    # error of target vs (canvas with color blended in at a * mask)
    diff = 0.0
    for i in range(mask.shape[0]):
        for j in range(mask.shape[1]):
            w = a * mask[i, j]
            for k in range(target.shape[2]):
                c = canvas[y0 + i, x0 + j, k]
                d = target[y0 + i, x0 + j, k] - (c + (color[k] - c) * w)
                diff += d * d
    return diff


@njit(cache=True, nogil=True)
def _solve_color_numba(target, canvas, mask, y0, x0, a):
    # minimiser of sum (t - (1 - w) * c - w * x)^2 over x, per channel
    num = np.zeros(target.shape[2])
    den = 0.0
    for i in range(mask.shape[0]):
        for j in range(mask.shape[1]):
            w = a * mask[i, j]
            if w == 0.0:
                continue
            den += w * w
            for k in range(target.shape[2]):
                num[k] += w * (target[y0 + i, x0 + j, k]
                               - (1.0 - w) * canvas[y0 + i, x0 + j, k])
    if den > 0.0:
        for k in range(num.shape[0]):
            num[k] /= den
    return num


# ────────────────────────────────────────────────────────────
# Error Evaluator
# ────────────────────────────────────────────────────────────
def image_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Sum of squared per-channel differences over the whole raster."""
    h, w = a.shape[:2]
    return region_difference(a, b, BoundingBox.from_dimensions(w, h))


def region_difference(a: np.ndarray, b: np.ndarray, region: BoundingBox) -> float:
    """Squared-error distance between *a* and *b* restricted to *region*."""
    if region.is_empty:
        return 0.0
    return float(_region_difference_numba(a, b, region.y0, region.y1,
                                          region.x0, region.x1))


def blended_difference(target: np.ndarray, canvas: np.ndarray,
                       coverage: Coverage, color, alpha: int) -> float:
    """Error over the coverage box if *color* were composited there."""
    if coverage.bbox.is_empty:
        return 0.0
    return float(_blended_difference_numba(
        target, canvas, coverage.mask, coverage.bbox.y0, coverage.bbox.x0,
        np.asarray(color, dtype=np.float64), alpha / 255.0))


def solve_color(target: np.ndarray, canvas: np.ndarray,
                coverage: Coverage, alpha: int) -> RGB:
    raw = _solve_color_numba(target, canvas, coverage.mask,
                             coverage.bbox.y0, coverage.bbox.x0, alpha / 255.0)
    r, g, b = (int(clamp(round(float(v)), 0, 255)) for v in raw)
    return (r, g, b)


# ────────────────────────────────────────────────────────────
# Compositing (the only writer of a canvas)
# ────────────────────────────────────────────────────────────
def composite(canvas: np.ndarray, coverage: Coverage, color, alpha: int) -> BoundingBox:
    """Alpha-blend *color* into *canvas* in place, weighted by the mask."""
    box = coverage.bbox
    if box.is_empty:
        return box
    rows, cols = box.slices
    region = canvas[rows, cols]
    w = (alpha / 255.0) * coverage.mask[:, :, None]
    region += (np.asarray(color, dtype=np.float64) - region) * w
    return box
