import io

import numpy as np
import pytest
from PIL import Image

from smartcrop import Raster

GRAY = (128, 128, 128)
SKIN = (224, 172, 105)


def solid_raster(width, height, color=GRAY, channels=3):
    pixel = list(color)[:3] + ([255] if channels == 4 else [])
    array = np.empty((height, width, channels), dtype=np.uint8)
    array[:, :] = pixel
    return Raster.from_array(array)


def scene_array(width, height, subject_box, seed=7):
    """Gray backdrop with a saturated, high-contrast checkerboard subject."""
    array = np.empty((height, width, 3), dtype=np.uint8)
    array[:, :] = GRAY
    x1, y1, x2, y2 = subject_box
    rng = np.random.default_rng(seed)
    palette = np.array([[230, 30, 40], [20, 200, 60], [30, 60, 220], [250, 220, 10]], dtype=np.uint8)
    for y in range(y1, y2, 8):
        for x in range(x1, x2, 8):
            array[y:min(y + 8, y2), x:min(x + 8, x2)] = palette[rng.integers(0, len(palette))]
    return array


def scene_raster(width, height, subject_box, seed=7):
    return Raster.from_array(scene_array(width, height, subject_box, seed))


def png_bytes(array, mode=None):
    image = Image.fromarray(array) if mode is None else Image.fromarray(array).convert(mode)
    output = io.BytesIO()
    image.save(output, format='PNG')
    return output.getvalue()


@pytest.fixture
def landscape_scene():
    """800x600 with the subject in the right-hand third."""
    return scene_raster(800, 600, (560, 200, 720, 400))


@pytest.fixture
def wide_scene():
    return scene_raster(1200, 400, (100, 100, 260, 300), seed=11)


@pytest.fixture
def tall_scene():
    return scene_raster(400, 1200, (120, 850, 300, 1050), seed=13)
