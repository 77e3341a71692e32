"""
OpenCV/numpy adapter: crop primitives over pixel arrays.

Arrays are treated as RGB(A) or grayscale in (H, W[, C]) layout, the same
convention the rest of the pipeline uses. A bare ``numpy.ndarray`` has no
orientation metadata and is always upright; wrap it in ``RasterImage`` to
carry an EXIF orientation flag.
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union
import logging

import cv2
import numpy as np

from .base import ImageAdapter
from .orientation import UPRIGHT, orient_array

logger = logging.getLogger(__name__)


@dataclass
class RasterImage:
    """Pixel array plus the EXIF orientation it was stored with."""
    pixels: np.ndarray
    orientation: int = UPRIGHT

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def has_alpha(self) -> bool:
        return self.pixels.ndim == 3 and self.pixels.shape[2] == 4


ArrayLike = Union[RasterImage, np.ndarray]


# Depths cv2.cvtColor and cv2.warpAffine accept
_CV_COLOR_DEPTHS = (np.uint8, np.uint16, np.float32)
_CV_WARP_DEPTHS = (np.uint8, np.uint16, np.int16, np.float32, np.float64)


def opaque_value(dtype: np.dtype) -> Any:
    """Fully opaque alpha for a pixel dtype."""
    if dtype == np.bool_:
        return True
    if np.issubdtype(dtype, np.integer):
        return np.iinfo(dtype).max
    return 1.0


def cast_like(pixels: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Convert a float working copy back to the caller's dtype."""
    if pixels.dtype == dtype:
        return pixels
    if dtype == np.bool_:
        return pixels >= 0.5
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        rounded = np.rint(pixels)
        # float64 can not hold the extremes of 64-bit integers, saturate them explicitly
        low = np.nextafter(float(info.min), 0)
        high = np.nextafter(float(info.max), 0)
        result = np.clip(rounded, low, high).astype(dtype)
        result[rounded <= low] = info.min
        result[rounded >= high] = info.max
        return result
    return pixels.astype(dtype)


def to_rgba(pixels: np.ndarray) -> np.ndarray:
    """
    Convert a grayscale, RGB or RGBA array to a new RGBA array.

    The dtype is kept. OpenCV handles the depths it supports; other dtypes
    (int32, int64, float64, bool) get their alpha plane stacked with numpy.

    Args:
        pixels: (H, W), (H, W, 1), (H, W, 3) or (H, W, 4) array

    Returns:
        (H, W, 4) array with opaque alpha where the input had none

    Raises:
        ValueError: For any other channel layout
    """
    if pixels.ndim == 3 and pixels.shape[2] == 1:
        pixels = pixels[:, :, 0]

    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return pixels.copy()
    if not (pixels.ndim == 2 or (pixels.ndim == 3 and pixels.shape[2] == 3)):
        raise ValueError(f"Unsupported pixel layout: {pixels.shape}")

    if pixels.dtype.type in _CV_COLOR_DEPTHS:
        code = cv2.COLOR_GRAY2RGBA if pixels.ndim == 2 else cv2.COLOR_RGB2RGBA
        return cv2.cvtColor(np.ascontiguousarray(pixels), code)

    rgb = np.dstack((pixels,) * 3) if pixels.ndim == 2 else pixels
    alpha = np.full(pixels.shape[:2], opaque_value(pixels.dtype), dtype=pixels.dtype)
    return np.dstack((rgb, alpha))


class ArrayAdapter(ImageAdapter):
    """Adapter for RasterImage and bare numpy arrays."""

    image_types = (RasterImage, np.ndarray)
    allocation_errors = (MemoryError, cv2.error)

    @staticmethod
    def _pixels(image: ArrayLike) -> np.ndarray:
        return image.pixels if isinstance(image, RasterImage) else image

    @staticmethod
    def _wrap(like: ArrayLike, pixels: np.ndarray) -> ArrayLike:
        # Results keep the caller's type; any orientation is baked in by now
        if isinstance(like, RasterImage):
            return RasterImage(pixels=pixels, orientation=UPRIGHT)
        return pixels

    def size(self, image: ArrayLike) -> Tuple[int, int]:
        pixels = self._pixels(image)
        return (int(pixels.shape[1]), int(pixels.shape[0]))

    def orientation(self, image: ArrayLike) -> int:
        if isinstance(image, RasterImage):
            return image.orientation
        return UPRIGHT

    def copy(self, image: ArrayLike) -> Any:
        return self._wrap(image, self._pixels(image).copy())

    def _transpose_upright(self, image: ArrayLike) -> Any:
        return self._wrap(image, orient_array(self._pixels(image), self.orientation(image)))

    def _crop_pixels(self, image: ArrayLike, box: Tuple[int, int, int, int]) -> Any:
        left, top, right, bottom = box
        return self._wrap(image, self._pixels(image)[top:bottom, left:right].copy())

    def _clip_to_mask(self, image: ArrayLike, mask: np.ndarray) -> Any:
        rgba = to_rgba(self._pixels(image))
        rgba[~mask] = 0
        return self._wrap(image, rgba)

    def _rotate_pixels(self, image: ArrayLike, degrees_ccw: float, zoom: float) -> Any:
        rgba = to_rgba(self._pixels(image))
        working = rgba if rgba.dtype.type in _CV_WARP_DEPTHS else rgba.astype(np.float64)
        h, w = rgba.shape[:2]

        # Pixel-centre pivot so quarter turns land exactly on the grid
        center = ((w - 1) / 2, (h - 1) / 2)
        rotation_matrix = cv2.getRotationMatrix2D(center, degrees_ccw, zoom)

        # The zoom covers the canvas; replicate only fills the sub-pixel rim
        rotated = cv2.warpAffine(
            working,
            rotation_matrix,
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )
        return self._wrap(image, cast_like(rotated, rgba.dtype))
