from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .types import RGB

SHAPE_KINDS: Tuple[str, ...] = ("ellipse", "rectangle", "triangle")

# alpha=0 in the config means "pick the best of these per candidate"
ALPHA_CHOICES: Tuple[int, ...] = (32, 64, 96, 128, 160, 192, 224, 255)

# random geometry spans this fraction of the longer canvas side
RANDOM_EXTENT = 0.5
# perturbation offset bound, as a fraction of the longer side (>= 1 px)
MUTATION_STEP = 0.05
# share of the trials run at the coarse step; the rest use half of it
COARSE_FRACTION = 2 / 3
# attempts at a non-degenerate random shape before falling back
MAX_INIT_ATTEMPTS = 100
# perturbations retried when the nudge collapses the shape
MAX_PERTURB_ATTEMPTS = 8


class GeometrizeError(ValueError):
    """Invalid input raster or configuration, reported before any work."""


def _normalize_kinds(kinds: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    if isinstance(kinds, str):
        kinds = kinds.split(",")
    out = sorted({k.strip().lower() for k in kinds if k and k.strip()})
    if not out:
        raise GeometrizeError("shape_kinds must name at least one shape")
    unknown = [k for k in out if k not in SHAPE_KINDS]
    if unknown:
        raise GeometrizeError(
            f"Unknown shape type(s): {', '.join(unknown)} "
            f"(expected {', '.join(SHAPE_KINDS)})")
    return tuple(out)


def parse_color(value: Union[str, Iterable[int], None]) -> Optional[RGB]:
    """Accept "#RRGGBB", "RRGGBB", "r,g,b" or a 3-sequence of ints."""
    if value is None:
        return None
    if isinstance(value, str):
        txt = value.strip().lstrip("#")
        try:
            if "," in txt:
                parts = [int(p) for p in txt.split(",")]
            elif len(txt) == 6:
                parts = [int(txt[i:i + 2], 16) for i in (0, 2, 4)]
            else:
                raise ValueError(txt)
        except ValueError:
            raise GeometrizeError(f"Cannot parse colour: {value!r}") from None
    else:
        parts = [int(p) for p in value]
    if len(parts) != 3 or any(not 0 <= p <= 255 for p in parts):
        raise GeometrizeError(f"Colour must be three channels in 0..255: {value!r}")
    return (parts[0], parts[1], parts[2])


@dataclass(frozen=True)
class GeometrizeConfig:
    """Validated settings for one approximation run."""

    shape_count: int = 100
    mutations_per_shape: int = 100
    shape_kinds: Tuple[str, ...] = ("triangle",)
    scale_down: float = 1.0
    rng_seed: Optional[int] = None
    alpha: int = 128
    restarts: int = 1
    accept_ties: bool = False
    workers: int = 1
    antialias: int = 4
    background: Optional[RGB] = None

    def __post_init__(self) -> None:
        # frozen: normalized values go through object.__setattr__
        object.__setattr__(self, "shape_kinds", _normalize_kinds(self.shape_kinds))
        object.__setattr__(self, "background", parse_color(self.background))

        if int(self.shape_count) < 0:
            raise GeometrizeError("shape_count must be >= 0")
        for name in ("mutations_per_shape", "restarts", "workers", "antialias"):
            if int(getattr(self, name)) < 1:
                raise GeometrizeError(f"{name} must be >= 1")
        if not 0 <= int(self.alpha) <= 255:
            raise GeometrizeError("alpha must be in 0..255 (0 = searched)")
        if self.rng_seed is not None and int(self.rng_seed) < 0:
            raise GeometrizeError("rng_seed must be >= 0")
        if not float(self.scale_down) >= 1.0:
            raise GeometrizeError("scale_down must be >= 1")

    @property
    def alphas(self) -> Tuple[int, ...]:
        return ALPHA_CHOICES if self.alpha == 0 else (int(self.alpha),)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "GeometrizeConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise GeometrizeError(f"Unknown config key(s): {', '.join(unknown)}")
        return cls(**dict(payload))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
