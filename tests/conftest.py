from __future__ import annotations

import os
from typing import List, Tuple

import numpy as np
import pytest

from pixelcloud.config import POSITION_SCALE
from pixelcloud.model.raster import Raster
from pixelcloud.model.sampling import SamplingConfig


def make_raster(width: int, height: int, rgba: Tuple[int, int, int, int] = (255, 255, 255, 255)) -> Raster:
    """Uniformly colored raster."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return Raster(pixels)


def gradient_raster(width: int, height: int) -> Raster:
    """Raster where every pixel is distinguishable: r=x, g=y, b=x+y, alpha varies."""
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.stack(
        [xs * 7 % 256, ys * 11 % 256, (xs + ys) * 5 % 256, (xs * 13 + ys * 17) % 256],
        axis=-1,
    ).astype(np.uint8)
    return Raster(pixels)


def naive_sample_origins(raster: Raster, config: SamplingConfig) -> List[Tuple[int, int]]:
    """Straight nested-loop scan returning the (x, y) of every pixel that passes the filter."""
    step = max(1, int(np.floor(config.step)))
    origins = []
    for y in range(0, raster.height, step):
        for x in range(0, raster.width, step):
            if raster.pixels[y, x, 3] >= config.alpha_threshold:
                origins.append((x, y))
    return origins


def origin_of(position, raster: Raster, config: SamplingConfig) -> Tuple[int, int]:
    """Invert the XY mapping of the sampler back to source pixel coordinates."""
    scale = config.particle_size * POSITION_SCALE
    x = position[0] / scale + raster.width / 2
    y = -position[1] / scale + raster.height / 2
    return int(round(x)), int(round(y))


@pytest.fixture
def white_pixel() -> Raster:
    return make_raster(1, 1)


@pytest.fixture
def transparent_4x4() -> Raster:
    return make_raster(4, 4, (0, 0, 0, 0))


@pytest.fixture
def gradient() -> Raster:
    return gradient_raster(9, 7)


@pytest.fixture(scope="session")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    yield app
