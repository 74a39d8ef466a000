from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np
from PIL import Image

if TYPE_CHECKING:
    from .shapes import Shape

RGB = Tuple[int, int, int]
ShapeJSON = dict   # quick alias for readability


@dataclass(frozen=True)
class BoundingBox:
    """Integer pixel box, half-open: columns x0..x1-1, rows y0..y1-1."""
    x0: int
    y0: int
    x1: int
    y1: int

    @classmethod
    def from_dimensions(cls, width: int, height: int) -> "BoundingBox":
        return cls(0, 0, width, height)

    @property
    def width(self) -> int:
        return max(0, self.x1 - self.x0)

    @property
    def height(self) -> int:
        return max(0, self.y1 - self.y0)

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    @property
    def slices(self) -> Tuple[slice, slice]:
        return slice(self.y0, self.y1), slice(self.x0, self.x1)

    def contains(self, other: "BoundingBox") -> bool:
        return (self.x0 <= other.x0 and other.x1 <= self.x1 and
                self.y0 <= other.y0 and other.y1 <= self.y1)


@dataclass
class Coverage:
    """Per-pixel weights in [0, 1] of a shape, restricted to its box."""
    bbox: BoundingBox
    mask: np.ndarray   # float64, (bbox.height, bbox.width)

    @property
    def is_empty(self) -> bool:
        return self.bbox.is_empty or not self.mask.any()


@dataclass
class Candidate:
    shape: "Shape"
    color: RGB
    alpha: int
    coverage: Coverage
    score: float          # total error if this candidate were committed

    @property
    def bbox(self) -> BoundingBox:
        return self.coverage.bbox

    def record(self) -> "ShapeRecord":
        return ShapeRecord(self.shape, self.color, self.alpha)


@dataclass(frozen=True)
class ShapeRecord:
    shape: "Shape"
    color: RGB
    alpha: int

    def to_json(self) -> ShapeJSON:
        from .shapes import shape_to_json
        data = shape_to_json(self.shape)
        data["color"] = [*self.color, self.alpha]
        return data


@dataclass
class ApproximationResult:
    shapes: List[ShapeRecord]
    image: np.ndarray                 # uint8, (height, width, 3)
    background: RGB
    seed: int
    errors: List[float] = field(default_factory=list)

    @property
    def error(self) -> Optional[float]:
        return self.errors[-1] if self.errors else None

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.shape[1], self.image.shape[0]

    def rmse(self) -> float:
        """Root-mean-square error per channel sample, scaled to [0, 1]."""
        samples = self.image.size
        if not self.errors or samples == 0:
            return 0.0
        return float(np.sqrt(self.errors[-1] / samples) / 255.0)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.image)

    def shapes_json(self) -> List[ShapeJSON]:
        return [rec.to_json() for rec in self.shapes]
