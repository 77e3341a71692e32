"""
CropSight: interactive square and circle image cropping

Maps pan/zoom/rotate gesture state on a displayed image back onto the
full-resolution source and extracts the region under a square or circular
mask.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .core import CropEngine, CropDispatcher, GestureTracker, MaskShape, CropResult, CropFailure
from .config import load_config, CropConfiguration
from .imaging import RasterImage

__all__ = [
    "CropEngine",
    "CropDispatcher",
    "GestureTracker",
    "MaskShape",
    "CropResult",
    "CropFailure",
    "CropConfiguration",
    "RasterImage",
    "load_config",
]
