"""
EXIF orientation handling for raw pixel arrays.

Camera and scanner images often store pixels in sensor order and record how
to display them in the EXIF Orientation tag (0x0112). The transforms below
turn such an array into its upright equivalent.
"""

from typing import Callable, Dict
import numpy as np

EXIF_ORIENTATION_TAG = 0x0112
UPRIGHT = 1

# Orientations whose upright form swaps width and height
TRANSPOSING_ORIENTATIONS = frozenset({5, 6, 7, 8})

# Orientation value -> transform that makes the stored array upright
_ARRAY_TRANSFORMS: Dict[int, Callable[[np.ndarray], np.ndarray]] = {
    1: lambda a: a,
    2: np.fliplr,                                   # Mirrored horizontally
    3: lambda a: np.rot90(a, 2),                    # Rotated 180
    4: np.flipud,                                   # Mirrored vertically
    5: lambda a: a.swapaxes(0, 1),                  # Transposed
    6: lambda a: np.rot90(a, -1),                   # Needs 90 CW
    7: lambda a: np.rot90(a, 2).swapaxes(0, 1),     # Transversed
    8: lambda a: np.rot90(a, 1),                    # Needs 90 CCW
}


def is_valid_orientation(orientation: int) -> bool:
    return orientation in _ARRAY_TRANSFORMS


def orient_array(pixels: np.ndarray, orientation: int) -> np.ndarray:
    """
    Apply an EXIF orientation to a (H, W) or (H, W, C) array.

    Args:
        pixels: Image array in stored order
        orientation: EXIF orientation value 1-8

    Returns:
        New contiguous array in upright order
    """
    try:
        transform = _ARRAY_TRANSFORMS[orientation]
    except KeyError:
        raise ValueError(f"Unsupported orientation flag: {orientation}") from None
    return np.ascontiguousarray(transform(pixels))
