"""Tests for configuration validation."""

from __future__ import annotations

import pytest

from art_primitive.config import ALPHA_CHOICES, GeometrizeConfig, GeometrizeError, parse_color


def test_defaults() -> None:
    config = GeometrizeConfig()

    assert config.shape_kinds == ("triangle",)
    assert config.alphas == (128,)
    assert config.rng_seed is None
    assert config.to_dict()["shape_count"] == 100


def test_kinds_are_normalized() -> None:
    assert GeometrizeConfig(shape_kinds="Triangle, ellipse").shape_kinds == ("ellipse", "triangle")
    assert GeometrizeConfig(shape_kinds={"rectangle", "ellipse"}).shape_kinds == ("ellipse", "rectangle")


@pytest.mark.parametrize("kwargs", [
    {"shape_count": -1},
    {"mutations_per_shape": -5},
    {"restarts": 0},
    {"workers": 0},
    {"antialias": 0},
    {"alpha": 256},
    {"scale_down": 0.5},
    {"rng_seed": -1},
    {"shape_kinds": ()},
    {"shape_kinds": "hexagon"},
    {"background": "not-a-colour"},
])
def test_invalid_values(kwargs) -> None:
    with pytest.raises(GeometrizeError):
        GeometrizeConfig(**kwargs)


def test_zero_shapes_allowed() -> None:
    config = GeometrizeConfig(shape_count=0)
    assert config.shape_count == 0


@pytest.mark.parametrize("mutations", [0, -1])
def test_non_positive_mutations_rejected(mutations) -> None:
    with pytest.raises(GeometrizeError, match="mutations_per_shape must be >= 1"):
        GeometrizeConfig(mutations_per_shape=mutations)


def test_searched_alpha() -> None:
    assert GeometrizeConfig(alpha=0).alphas == ALPHA_CHOICES


def test_from_mapping() -> None:
    config = GeometrizeConfig.from_mapping({"shape_count": 5, "background": [1, 2, 3]})
    assert config.shape_count == 5
    assert config.background == (1, 2, 3)

    with pytest.raises(GeometrizeError, match="shapes"):
        GeometrizeConfig.from_mapping({"shapes": 5})


def test_parse_color() -> None:
    assert parse_color("#FF8000") == (255, 128, 0)
    assert parse_color("1,2,3") == (1, 2, 3)
    assert parse_color(None) is None
    with pytest.raises(GeometrizeError):
        parse_color("1,2,300")
    with pytest.raises(GeometrizeError):
        parse_color((1, 2))
