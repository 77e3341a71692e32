"""
Image adapter interface.

The crop engine works against one set of pixel primitives (size,
orientation, normalize, crop, circular clip, rotate). Each supported image
type gets an adapter that implements the small ``_``-prefixed hooks; the
bounds checks and error mapping live here so both adapters fail the same way.
"""

from abc import ABC, abstractmethod
from typing import Any, Tuple
import logging
import math

import numpy as np

from ..core.errors import (
    CropRectangleOutOfBoundsError, ExtractionAllocationError,
    OrientationNormalizationError, RotationError
)
from ..core.models import CropRectangle
from .orientation import TRANSPOSING_ORIENTATIONS, UPRIGHT, is_valid_orientation

logger = logging.getLogger(__name__)


def circle_mask(size: int) -> np.ndarray:
    """
    Boolean mask of the circle inscribed in a ``size`` x ``size`` square.

    A pixel is inside when its centre lies within the circle.

    Args:
        size: Side length of the square in pixels

    Returns:
        Boolean array of shape (size, size)
    """
    radius = size / 2
    y, x = np.ogrid[:size, :size]
    dist_sq = (x + 0.5 - radius) ** 2 + (y + 0.5 - radius) ** 2
    return dist_sq <= radius ** 2


def straighten_zoom(width: float, height: float, angle: float) -> float:
    """
    Scale that makes an image rotated by ``angle`` cover its own canvas.

    Rotating about the centre and scaling by this factor leaves no uncovered
    corners on a ``width`` x ``height`` canvas.

    Args:
        width: Canvas width
        height: Canvas height
        angle: Rotation in degrees (either direction)

    Returns:
        Zoom factor, 1.0 for multiples of 180 degrees
    """
    theta = math.radians(angle)
    # Rounded like Pillow does so quarter turns stay exact
    cos = abs(round(math.cos(theta), 15))
    sin = abs(round(math.sin(theta), 15))
    return cos + sin * max(width, height) / min(width, height)


class ImageAdapter(ABC):
    """Pixel primitives for one family of image objects."""

    #: Image classes this adapter accepts
    image_types: Tuple[type, ...] = ()

    #: Exceptions from the underlying library that mean "could not allocate"
    allocation_errors: Tuple[type, ...] = (MemoryError,)

    def handles(self, image: Any) -> bool:
        return isinstance(image, self.image_types)

    # -- hooks -------------------------------------------------------------

    @abstractmethod
    def size(self, image: Any) -> Tuple[int, int]:
        """(width, height) in pixels."""
        pass

    @abstractmethod
    def orientation(self, image: Any) -> int:
        """EXIF orientation flag (1 = upright)."""
        pass

    @abstractmethod
    def copy(self, image: Any) -> Any:
        pass

    @abstractmethod
    def _transpose_upright(self, image: Any) -> Any:
        """Bake the orientation flag into the pixels and reset it."""
        pass

    @abstractmethod
    def _crop_pixels(self, image: Any, box: Tuple[int, int, int, int]) -> Any:
        """Crop to an integer box already known to be inside the image."""
        pass

    @abstractmethod
    def _clip_to_mask(self, image: Any, mask: np.ndarray) -> Any:
        """Return an alpha-capable copy, transparent where ``mask`` is False."""
        pass

    @abstractmethod
    def _rotate_pixels(self, image: Any, degrees_ccw: float, zoom: float) -> Any:
        """Rotate counter-clockwise and scale by ``zoom`` about the centre, same-size canvas."""
        pass

    # -- operations --------------------------------------------------------

    def upright_size(self, image: Any) -> Tuple[int, int]:
        """(width, height) the image will have once its orientation is baked in."""
        width, height = self.size(image)
        if self.orientation(image) in TRANSPOSING_ORIENTATIONS:
            return (height, width)
        return (width, height)

    def normalize_orientation(self, image: Any) -> Any:
        """
        Return an upright equivalent of ``image``.

        Images already upright are returned as-is, without a copy.

        Raises:
            OrientationNormalizationError: If the flag is unknown or the
                pixels can not be re-encoded
        """
        orientation = self.orientation(image)
        if orientation == UPRIGHT:
            return image
        if not is_valid_orientation(orientation):
            raise OrientationNormalizationError(f"Unsupported orientation flag: {orientation}")

        try:
            upright = self._transpose_upright(image)
        except self.allocation_errors + (OSError, ValueError) as e:
            raise OrientationNormalizationError(f"Could not normalize orientation {orientation}: {e}") from e

        if upright is None:
            raise OrientationNormalizationError(f"Normalizing orientation {orientation} produced no image")
        return upright

    def crop(self, image: Any, rect: CropRectangle) -> Any:
        """
        Crop ``image`` to the pixel box of ``rect``.

        Raises:
            CropRectangleOutOfBoundsError: If the box is not fully inside
            ExtractionAllocationError: If the output can not be allocated
        """
        size = self.size(image)
        if not rect.is_within(size):
            raise CropRectangleOutOfBoundsError(
                f"Crop rectangle {rect.pixel_box()} outside image of size {size[0]}x{size[1]}"
            )

        try:
            return self._crop_pixels(image, rect.pixel_box())
        except self.allocation_errors as e:
            raise ExtractionAllocationError(f"Could not allocate cropped image: {e}") from e

    def crop_circle(self, image: Any, rect: CropRectangle) -> Any:
        """
        Crop to ``rect`` and make everything outside the inscribed circle
        fully transparent.
        """
        square = self.crop(image, rect)
        width, _ = self.size(square)

        try:
            return self._clip_to_mask(square, circle_mask(width))
        except self.allocation_errors + (ValueError,) as e:
            raise ExtractionAllocationError(f"Could not allocate alpha buffer: {e}") from e

    def rotate(self, image: Any, angle: float) -> Any:
        """
        Rotate ``angle`` degrees clockwise (screen convention) about the centre.

        The canvas keeps its size. Like a straighten filter, the image is
        scaled up about its centre just enough that no corner of the canvas is
        left uncovered, so any crop inside the canvas is fully backed by image
        data.

        Raises:
            RotationError: For a non-finite angle, an empty image or a failed
                rotation
        """
        if not math.isfinite(angle):
            raise RotationError(f"Degenerate rotation angle: {angle}")

        width, height = self.size(image)
        if width <= 0 or height <= 0:
            raise RotationError(f"Can not rotate an empty image ({width}x{height})")

        if angle == 0:
            return self.copy(image)

        zoom = straighten_zoom(width, height, angle)

        try:
            # Libraries rotate counter-clockwise for positive angles
            return self._rotate_pixels(image, -angle, zoom)
        except self.allocation_errors + (ValueError,) as e:
            raise RotationError(f"Could not rotate image by {angle} degrees: {e}") from e
