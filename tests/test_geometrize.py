"""End-to-end tests for the approximation driver."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from art_primitive import GeometrizeConfig, GeometrizeError, geometrize
from art_primitive.shapes import Rectangle, rasterize
from art_primitive.types import BoundingBox
from art_primitive.processing import evaluate_shape
from art_primitive.utils import as_raster, average_color, composite, image_difference


def test_zero_shapes_returns_background(noisy_target) -> None:
    result = geometrize(noisy_target, GeometrizeConfig(shape_count=0, rng_seed=1))

    bg = average_color(noisy_target.astype(np.float64))
    assert result.shapes == []
    assert result.background == bg
    assert (result.image == np.array(bg, dtype=np.uint8)).all()
    assert len(result.errors) == 1


def test_background_override(noisy_target) -> None:
    result = geometrize(noisy_target, GeometrizeConfig(shape_count=0), background="#102030")
    assert result.image[0, 0].tolist() == [16, 32, 48]

    result = geometrize(noisy_target, GeometrizeConfig(shape_count=0, background=(1, 2, 3)))
    assert result.background == (1, 2, 3)


def test_error_never_increases(noisy_target) -> None:
    config = GeometrizeConfig(shape_count=8, mutations_per_shape=30, rng_seed=1,
                              shape_kinds=("triangle", "rectangle", "ellipse"))
    result = geometrize(noisy_target, config)

    assert len(result.errors) == 9
    assert all(b <= a for a, b in zip(result.errors, result.errors[1:]))
    assert len(result.shapes) <= 8
    assert result.error < result.errors[0]

    bounds = BoundingBox.from_dimensions(20, 16)
    for rec in result.shapes:
        assert bounds.contains(rasterize(rec.shape, 20, 16).bbox)
        assert all(0 <= c <= 255 for c in rec.color)


def test_runs_are_reproducible(noisy_target) -> None:
    config = GeometrizeConfig(shape_count=4, mutations_per_shape=20, rng_seed=99,
                              restarts=3, shape_kinds="ellipse,triangle")
    a = geometrize(noisy_target, config)
    b = geometrize(noisy_target, config)
    threaded = geometrize(noisy_target, GeometrizeConfig(
        **{**config.to_dict(), "workers": 3}))

    for other in (b, threaded):
        assert np.array_equal(a.image, other.image)
        assert a.shapes == other.shapes
        assert a.errors == other.errors


def test_unseeded_run_records_its_seed(noisy_target) -> None:
    config = GeometrizeConfig(shape_count=2, mutations_per_shape=5)
    first = geometrize(noisy_target, config)
    replay = geometrize(noisy_target, GeometrizeConfig(
        shape_count=2, mutations_per_shape=5, rng_seed=first.seed))

    assert isinstance(first.seed, int)
    assert np.array_equal(first.image, replay.image)


def test_white_target_single_rectangle() -> None:
    target = np.full((4, 4, 3), 255, dtype=np.uint8)
    config = GeometrizeConfig(shape_count=1, mutations_per_shape=50,
                              shape_kinds=("rectangle",), rng_seed=0)
    result = geometrize(target, config)

    assert len(result.shapes) == 1
    assert isinstance(result.shapes[0].shape, Rectangle)
    assert result.shapes[0].color == (255, 255, 255)
    assert result.error == pytest.approx(0.0)
    assert result.rmse() == pytest.approx(0.0)
    assert (result.image == 255).all()


def test_whole_canvas_rectangle_takes_average_colour(half_black_red) -> None:
    target = as_raster(half_black_red)
    canvas = np.full_like(target, 255.0)
    total = image_difference(target, canvas)

    cand = evaluate_shape(Rectangle(0, 0, 8, 8), target, canvas, total, (255,))

    assert cand.bbox == BoundingBox(0, 0, 8, 8)
    assert (cand.coverage.mask == 1.0).all()
    assert abs(cand.color[0] - 128) <= 1
    assert cand.color[1:] == (0, 0)
    assert cand.score < total

    composite(canvas, cand.coverage, cand.color, cand.alpha)
    assert image_difference(target, canvas) == pytest.approx(cand.score)


def test_split_target_rectangle_spans_canvas(half_black_red) -> None:
    config = GeometrizeConfig(shape_count=1, mutations_per_shape=1500, alpha=255,
                              restarts=4, shape_kinds=("rectangle",), rng_seed=4)
    result = geometrize(half_black_red, config, background=(255, 255, 255))

    assert len(result.shapes) == 1
    record = result.shapes[0]
    coverage = rasterize(record.shape, 8, 8)
    assert coverage.bbox == BoundingBox(0, 0, 8, 8)
    # the red edge column settles just short of full cover, pulling red down
    assert coverage.mask.sum() >= 60
    assert abs(record.color[0] - 128) <= 8
    assert record.color[1:] == (0, 0)

    target = as_raster(half_black_red)
    white = np.full_like(target, 255.0)
    whole = evaluate_shape(Rectangle(0, 0, 8, 8), target, white,
                           image_difference(target, white), (255,))
    assert result.error <= 1.1 * whole.score


def test_scale_down_maps_shapes_to_full_resolution() -> None:
    rng = np.random.default_rng(8)
    target = np.zeros((24, 32, 3), dtype=np.uint8)
    target[6:18, 8:24] = rng.integers(100, 256, size=3)
    config = GeometrizeConfig(shape_count=5, mutations_per_shape=40, rng_seed=2,
                              scale_down=4, shape_kinds=("rectangle",))
    result = geometrize(target, config)

    assert result.image.shape == (24, 32, 3)
    assert result.size == (32, 24)
    assert all(b <= a for a, b in zip(result.errors, result.errors[1:]))
    for rec in result.shapes:
        s = rec.shape
        assert 0 <= min(s.x1, s.x2) and max(s.x1, s.x2) <= 32 + 1e-9
        assert 0 <= min(s.y1, s.y2) and max(s.y1, s.y2) <= 24 + 1e-9


def test_accepts_pillow_images() -> None:
    img = Image.new("RGBA", (6, 5), (10, 200, 30, 128))
    result = geometrize(img, GeometrizeConfig(shape_count=1, mutations_per_shape=3,
                                              rng_seed=0))

    assert result.size == (6, 5)
    assert result.background == (10, 200, 30)
    assert result.to_image().mode == "RGB"


def test_shapes_json(noisy_target) -> None:
    result = geometrize(noisy_target, GeometrizeConfig(
        shape_count=3, mutations_per_shape=5, rng_seed=3, alpha=0))
    payload = result.shapes_json()

    assert len(payload) == len(result.shapes)
    for item, rec in zip(payload, result.shapes):
        assert item["type"] == rec.shape.kind
        assert item["color"] == [*rec.color, rec.alpha]


@pytest.mark.parametrize("bad", [
    np.zeros((0, 4, 3), dtype=np.uint8),
    np.zeros((4, 0, 3), dtype=np.uint8),
    np.zeros((4, 4, 2), dtype=np.uint8),
])
def test_invalid_target_is_rejected(bad) -> None:
    with pytest.raises(GeometrizeError):
        geometrize(bad, GeometrizeConfig(shape_count=1))
