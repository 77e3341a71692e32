"""
Shared fixtures for CropSight tests.
"""

import numpy as np
import pytest
from PIL import Image

from cropsight.core import CropEngine

FILL_COLOR = (200, 30, 60)


@pytest.fixture
def uniform_array():
    """1000x1000 RGB array filled with FILL_COLOR."""
    return np.full((1000, 1000, 3), FILL_COLOR, dtype=np.uint8)


@pytest.fixture
def uniform_pil():
    """1000x1000 RGB Pillow image filled with FILL_COLOR."""
    return Image.new("RGB", (1000, 1000), FILL_COLOR)


@pytest.fixture
def example_engine():
    """Engine for a 300x300 viewport with a 100px mask at scale 1."""
    engine = CropEngine(mask_radius=100, max_magnification_scale=4.0)
    engine.set_viewport_size(300, 300)
    return engine
