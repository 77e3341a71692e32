"""
Image adapters for CropSight

One adapter interface with a Pillow implementation and an OpenCV/numpy
implementation; ``adapter_for`` picks the right one for an image object.
"""

from typing import Any

from .base import ImageAdapter, circle_mask, straighten_zoom
from .array_adapter import ArrayAdapter, RasterImage, to_rgba
from .pillow_adapter import PillowAdapter
from .orientation import EXIF_ORIENTATION_TAG, UPRIGHT, orient_array

_ADAPTERS = [PillowAdapter(), ArrayAdapter()]


def adapter_for(image: Any) -> ImageAdapter:
    """
    Find the adapter for an image object.

    Raises:
        TypeError: If no adapter supports the object's type
    """
    for adapter in _ADAPTERS:
        if adapter.handles(image):
            return adapter
    raise TypeError(f"Unsupported image type: {type(image).__name__}")


__all__ = [
    "ImageAdapter",
    "PillowAdapter",
    "ArrayAdapter",
    "RasterImage",
    "adapter_for",
    "circle_mask",
    "straighten_zoom",
    "to_rgba",
    "orient_array",
    "EXIF_ORIENTATION_TAG",
    "UPRIGHT",
]
