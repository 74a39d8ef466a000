import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .config import GeometrizeConfig, GeometrizeError, parse_color
from .processing import evaluate_shape, search_round
from .shapes import scale_shape
from .types import RGB, ApproximationResult, Candidate
from .utils import as_raster, average_color, composite, image_difference, to_uint8

logger = logging.getLogger(__name__)


class _Layer:
    """A target and the canvas being built against it, at one resolution."""

    def __init__(self, target: np.ndarray, background: RGB):
        self.target = target
        self.canvas = np.empty_like(target)
        self.canvas[:, :] = background
        self.total = image_difference(target, self.canvas)

    @property
    def size(self) -> Tuple[int, int]:
        return self.target.shape[1], self.target.shape[0]

    def snapshot(self) -> np.ndarray:
        view = self.canvas.view()
        view.flags.writeable = False
        return view

    def commit(self, cand: Candidate) -> None:
        composite(self.canvas, cand.coverage, cand.color, cand.alpha)
        self.total = cand.score


def _working_target(target: np.ndarray, factor: float) -> np.ndarray:
    h, w = target.shape[:2]
    dw, dh = max(1, int(round(w / factor))), max(1, int(round(h / factor)))
    if (dw, dh) == (w, h):
        return target
    small = Image.fromarray(to_uint8(target)).resize((dw, dh), Image.LANCZOS)
    return as_raster(small)


def _prepare_target(target) -> np.ndarray:
    if isinstance(target, Image.Image):
        target = np.asarray(target.convert("RGB"))
    try:
        raster = as_raster(target)
    except ValueError as exc:
        raise GeometrizeError(str(exc)) from None
    if raster.shape[0] == 0 or raster.shape[1] == 0:
        raise GeometrizeError("Target raster is empty")
    return raster


# ────────────────────────────────────────────────────────────
# Public function
# ────────────────────────────────────────────────────────────
def geometrize(target, config: Optional[GeometrizeConfig] = None,
               background: Optional[RGB] = None) -> ApproximationResult:
    """Approximate *target* with ``config.shape_count`` shapes.

    *target* is a Pillow image or an (H, W, 3|4) / (H, W) array. Each round
    searches the best shape against the current canvas (at the working
    resolution when ``scale_down`` > 1), maps it back to full resolution
    and composites it. A round whose winner would raise the total error is
    left out, so the error history never increases.
    """
    config = config or GeometrizeConfig()
    full = _prepare_target(target)

    if background is None:
        background = config.background
    background = parse_color(background) or average_color(full)
    seed = config.rng_seed
    if seed is None:
        seed = int(np.random.SeedSequence().entropy)

    layer = _Layer(full, background)
    work = layer
    if config.scale_down > 1:
        small = _working_target(full, config.scale_down)
        if small is not full:
            work = _Layer(small, background)
    (W, H), (dw, dh) = layer.size, work.size
    sx, sy = W / dw, H / dh

    logger.info("geometrize %dx%d (working %dx%d), %d shapes x %d mutations, seed=%d",
                W, H, dw, dh, config.shape_count, config.mutations_per_shape, seed)

    records, errors = [], [layer.total]
    pool = (ThreadPoolExecutor(max_workers=config.workers)
            if config.workers > 1 and config.restarts > 1 else nullcontext())
    with pool as executor:
        for i in range(config.shape_count):
            best = search_round(work.target, work.snapshot(), work.total,
                                config, seed, i, executor)
            cand = best
            if work is not layer:
                cand = evaluate_shape(scale_shape(best.shape, sx, sy),
                                      layer.target, layer.canvas, layer.total,
                                      (best.alpha,), config.antialias)

            if cand is None or cand.score > layer.total:
                logger.debug("round %d: no improving %s, skipped", i + 1,
                             best.shape.kind)
                errors.append(layer.total)
                continue

            layer.commit(cand)
            if work is not layer:
                work.commit(best)
            records.append(cand.record())
            errors.append(layer.total)
            logger.debug("round %d: %s error=%.1f", i + 1, cand.shape.kind, layer.total)

    result = ApproximationResult(records, to_uint8(layer.canvas), background,
                                 seed, errors)
    logger.info("geometrize done: %d shapes, rmse=%.4f", len(records), result.rmse())
    return result
