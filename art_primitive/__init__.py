"""Top-level package interface for art_primitive.

Expose the main API: geometrize plus the config and result types.
"""
from .config import GeometrizeConfig, GeometrizeError  # re-export
from .geometrize import geometrize
from .processing import best_fill, hill_climb
from .shapes import Ellipse, Rectangle, Triangle, perturb, random_shape, rasterize
from .types import ApproximationResult, ShapeRecord
from .utils import composite, image_difference, region_difference

__all__ = [
    "geometrize", "GeometrizeConfig", "GeometrizeError",
    "ApproximationResult", "ShapeRecord",
    "Triangle", "Rectangle", "Ellipse",
    "random_shape", "perturb", "rasterize",
    "best_fill", "hill_climb",
    "composite", "image_difference", "region_difference",
]
