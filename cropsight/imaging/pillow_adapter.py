"""
Pillow adapter: crop primitives over ``PIL.Image.Image``.
"""

from typing import Tuple
import logging
import math

import numpy as np
from PIL import Image, ImageOps

from .base import ImageAdapter
from .orientation import EXIF_ORIENTATION_TAG, UPRIGHT

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


class PillowAdapter(ImageAdapter):
    """Adapter for Pillow images."""

    image_types = (Image.Image,)

    def size(self, image: Image.Image) -> Tuple[int, int]:
        return image.size

    def orientation(self, image: Image.Image) -> int:
        return int(image.getexif().get(EXIF_ORIENTATION_TAG, UPRIGHT))

    def copy(self, image: Image.Image) -> Image.Image:
        return image.copy()

    def _transpose_upright(self, image: Image.Image) -> Image.Image:
        return ImageOps.exif_transpose(image)

    def _crop_pixels(self, image: Image.Image, box: Tuple[int, int, int, int]) -> Image.Image:
        return image.crop(box)

    def _clip_to_mask(self, image: Image.Image, mask: np.ndarray) -> Image.Image:
        rgba = image.convert("RGBA")
        mask_image = Image.fromarray(mask.astype(np.uint8) * 255)

        # Paste through the mask onto a fully transparent canvas
        clipped = Image.new("RGBA", rgba.size, TRANSPARENT)
        clipped.paste(rgba, (0, 0), mask=mask_image)
        return clipped

    def _rotate_pixels(self, image: Image.Image, degrees_ccw: float, zoom: float) -> Image.Image:
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        width, height = rgba.size
        center_x, center_y = width / 2, height / 2

        # Inverse map, output pixel -> source pixel, as Image.rotate builds it
        # but with the zoom folded in
        theta = -math.radians(degrees_ccw)
        a = round(math.cos(theta), 15) / zoom
        b = round(math.sin(theta), 15) / zoom
        matrix = (
            a, b, center_x - a * center_x - b * center_y,
            -b, a, center_y + b * center_x - a * center_y,
        )

        return rgba.transform(
            (width, height),
            Image.Transform.AFFINE,
            matrix,
            resample=Image.Resampling.BICUBIC,
            fillcolor=TRANSPARENT,
        )
