"""Shared rasters for the approximation tests."""

from __future__ import annotations

import numpy as np
import pytest


@pytest.fixture
def noisy_target() -> np.ndarray:
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(16, 20, 3)).astype(np.uint8)


@pytest.fixture
def half_black_red() -> np.ndarray:
    img = np.zeros((8, 8, 3), dtype=np.uint8)
    img[:, 4:, 0] = 255
    return img
