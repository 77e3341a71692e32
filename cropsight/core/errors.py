"""
Exceptions raised by crop pipeline stages.

Every stage raises a subclass of CropError; CropEngine.commit_crop turns the
first one into a failed CropResult so callers never see a fatal fault.
"""

from .models import CropFailure


class CropError(Exception):
    """Base exception for crop operations."""
    failure: CropFailure = None


class OrientationNormalizationError(CropError):
    """Raised when an oriented image cannot be re-encoded upright."""
    failure = CropFailure.ORIENTATION_NORMALIZATION_FAILED


class RotationError(CropError):
    """Raised when a rotation angle is degenerate or rotation fails."""
    failure = CropFailure.ROTATION_FAILED


class CropRectangleOutOfBoundsError(CropError):
    """Raised when the crop rectangle extends beyond the source image."""
    failure = CropFailure.CROP_RECTANGLE_OUT_OF_BOUNDS


class ExtractionAllocationError(CropError):
    """Raised when an output buffer cannot be allocated."""
    failure = CropFailure.EXTRACTION_ALLOCATION_FAILED
