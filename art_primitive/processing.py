import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import COARSE_FRACTION, MAX_INIT_ATTEMPTS, MUTATION_STEP, GeometrizeConfig
from .shapes import Shape, canvas_shape, perturb, random_shape, rasterize
from .types import RGB, Candidate, Coverage
from .utils import blended_difference, region_difference, solve_color

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────
# Colour solver
# ────────────────────────────────────────────────────────────
def _solve_fill(target, canvas, coverage: Coverage,
                alphas: Sequence[int]) -> Tuple[RGB, int, float]:
    best = None
    for alpha in alphas:
        color = solve_color(target, canvas, coverage, alpha)
        local = blended_difference(target, canvas, coverage, color, alpha)
        if best is None or local < best[2]:
            best = (color, alpha, local)
    return best


def best_fill(target: np.ndarray, canvas: np.ndarray, coverage: Coverage,
              alphas: Sequence[int] = (128,)) -> Tuple[RGB, int]:
    """Closed-form fill colour (and alpha) for a shape's coverage.

    For a fixed alpha the error over the box is quadratic in the fill colour,
    so each channel's optimum is the coverage-weighted average of the target
    minus what the canvas already contributes, clipped to 0..255. With more
    than one alpha, the alpha giving the lowest local error wins (first one
    on ties).
    """
    color, alpha, _ = _solve_fill(target, canvas, coverage, alphas)
    return color, alpha


# ────────────────────────────────────────────────────────────
# Hill-climbing helpers
# ────────────────────────────────────────────────────────────
def evaluate_shape(shape: Shape, target: np.ndarray, canvas: np.ndarray,
                   total: float, alphas: Sequence[int],
                   samples: int = 4) -> Optional[Candidate]:
    """Rasterize, solve the fill and score *shape*; None when degenerate.

    The score is the total error the canvas would have with the shape
    committed: the error outside the shape's box is unchanged, so only
    the box is re-evaluated.
    """
    h, w = target.shape[:2]
    coverage = rasterize(shape, w, h, samples)
    if coverage.is_empty:
        return None
    color, alpha, local = _solve_fill(target, canvas, coverage, alphas)
    baseline = total - region_difference(target, canvas, coverage.bbox)
    return Candidate(shape, color, alpha, coverage, max(0.0, baseline + local))


def accepts(new_score: float, best_score: float, accept_ties: bool = False) -> bool:
    if accept_ties:
        return new_score <= best_score
    return new_score < best_score


def _initial_candidate(kind, target, canvas, total, alphas, samples, rng) -> Candidate:
    h, w = target.shape[:2]
    for _ in range(MAX_INIT_ATTEMPTS):
        cand = evaluate_shape(random_shape(kind, w, h, rng),
                              target, canvas, total, alphas, samples)
        if cand is not None:
            return cand
    logger.debug("no non-degenerate random %s on %dx%d, using full canvas",
                 kind, w, h)
    return evaluate_shape(canvas_shape(kind, w, h),
                          target, canvas, total, alphas, samples)


def hill_climb(kind: str, target: np.ndarray, canvas: np.ndarray, total: float,
               mutations: int, rng, alphas: Sequence[int] = (128,),
               accept_ties: bool = False, samples: int = 4) -> Candidate:
    """Optimise a single shape via greedy hill climbing.

    Starts from a random shape of *kind* and runs *mutations* perturbation
    trials, each from the current best. The first part of the trials uses
    a coarse step and the rest a fine one (half of it).
    """
    h, w = target.shape[:2]
    best = _initial_candidate(kind, target, canvas, total, alphas, samples, rng)

    coarse_step = max(1.0, MUTATION_STEP * max(w, h))
    coarse_trials = int(round(mutations * COARSE_FRACTION))
    for i in range(mutations):
        step = coarse_step if i < coarse_trials else coarse_step * 0.5
        shape = perturb(best.shape, w, h, rng, step)
        cand = evaluate_shape(shape, target, canvas, total, alphas, samples)
        if cand is not None and accepts(cand.score, best.score, accept_ties):
            best = cand
    return best


def trial_rng(seed: int, round_index: int, restart: int) -> np.random.Generator:
    """Private stream for one restart of one round, independent of scheduling."""
    return np.random.default_rng([seed, round_index, restart])


def run_restart(target, canvas, total, config: GeometrizeConfig,
                seed: int, round_index: int, restart: int) -> Candidate:
    rng = trial_rng(seed, round_index, restart)
    kinds = config.shape_kinds
    kind = kinds[int(rng.integers(len(kinds)))] if len(kinds) > 1 else kinds[0]
    return hill_climb(kind, target, canvas, total, config.mutations_per_shape,
                      rng, config.alphas, config.accept_ties, config.antialias)


def search_round(target, canvas, total, config: GeometrizeConfig, seed: int,
                 round_index: int, executor=None) -> Candidate:
    """Best candidate over ``config.restarts`` independent hill climbs.

    Restarts may run on *executor*; results are compared in restart order
    and the earliest wins ties, so the outcome does not depend on scheduling.
    """
    restarts = range(config.restarts)
    if executor is None or config.restarts == 1:
        results = [run_restart(target, canvas, total, config, seed, round_index, r)
                   for r in restarts]
    else:
        futures = [executor.submit(run_restart, target, canvas, total, config,
                                   seed, round_index, r) for r in restarts]
        results = [f.result() for f in futures]

    best = results[0]
    for cand in results[1:]:
        if cand.score < best.score:
            best = cand
    return best
