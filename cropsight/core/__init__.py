"""
Crop geometry engine for CropSight

Gesture state, view-to-source geometry, the crop commit pipeline and its
background dispatcher.
"""

from .models import (
    CropFailure, CropRectangle, CropResult, DragLimit, GestureState,
    MagnificationBounds, MaskShape, Offset, Size
)
from .errors import (
    CropError, CropRectangleOutOfBoundsError, ExtractionAllocationError,
    OrientationNormalizationError, RotationError
)
from .geometry import (
    compute_crop_rectangle, compute_drag_limit, compute_magnification_bounds,
    fit_size
)
from .engine import CropEngine, run_crop
from .gestures import GestureTracker
from .dispatcher import CropDispatcher

__all__ = [
    "CropEngine",
    "CropDispatcher",
    "GestureTracker",
    "GestureState",
    "CropRectangle",
    "CropResult",
    "CropFailure",
    "MaskShape",
    "DragLimit",
    "MagnificationBounds",
    "Offset",
    "Size",
    "CropError",
    "OrientationNormalizationError",
    "RotationError",
    "CropRectangleOutOfBoundsError",
    "ExtractionAllocationError",
    "compute_crop_rectangle",
    "compute_drag_limit",
    "compute_magnification_bounds",
    "fit_size",
    "run_crop",
]
