"""
Data models for the crop geometry engine.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Tuple
import math


class MaskShape(Enum):
    """Shape of the mask laid over the image."""
    SQUARE = "square"
    CIRCLE = "circle"

    @classmethod
    def parse(cls, value: Any) -> 'MaskShape':
        """Accept a MaskShape or its (case-insensitive) string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown mask shape: {value!r}") from None


class CropFailure(Enum):
    """Reasons a crop commit can fail. All are recoverable by the caller."""
    ORIENTATION_NORMALIZATION_FAILED = "orientation_normalization_failed"
    ROTATION_FAILED = "rotation_failed"
    CROP_RECTANGLE_OUT_OF_BOUNDS = "crop_rectangle_out_of_bounds"
    EXTRACTION_ALLOCATION_FAILED = "extraction_allocation_failed"


@dataclass(frozen=True)
class Size:
    """Width/height pair in either view or source pixels."""
    width: float = 0.0
    height: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def shortest_side(self) -> float:
        return min(self.width, self.height)


@dataclass(frozen=True)
class Offset:
    """Pan translation in view-space pixels."""
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class DragLimit:
    """Maximum absolute pan offset per axis."""
    x: float
    y: float

    def clamp(self, offset: Offset) -> Offset:
        """Clamp an offset into [-limit, +limit] on each axis."""
        return Offset(
            x=min(max(offset.x, -self.x), self.x),
            y=min(max(offset.y, -self.y), self.y),
        )


@dataclass(frozen=True)
class MagnificationBounds:
    """Allowed zoom range."""
    minimum: float
    maximum: float

    def clamp(self, scale: float) -> float:
        return min(max(scale, self.minimum), self.maximum)

    def __iter__(self):
        # Allows ``low, high = engine.magnification_bounds()``
        return iter((self.minimum, self.maximum))


@dataclass(frozen=True)
class CropRectangle:
    """
    Square crop region in source-image pixel coordinates.

    The rectangle is not clamped to the image; use ``is_within`` or
    ``pixel_box`` to check it against the source dimensions.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_box(self) -> Tuple[float, float, float, float]:
        """(left, top, right, bottom) as floats."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def pixel_box(self) -> Tuple[int, int, int, int]:
        """
        Round the rectangle onto the pixel grid.

        Origin and side length are rounded independently so the box stays
        square even when the origin lands on a half pixel.

        Returns:
            (left, top, right, bottom) integer box
        """
        left = int(round(self.x))
        top = int(round(self.y))
        width = int(round(self.width))
        height = int(round(self.height))
        return (left, top, left + width, top + height)

    def is_within(self, size: Tuple[int, int]) -> bool:
        """Check that the rounded pixel box is non-empty and inside ``size``."""
        if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
            return False
        width, height = size
        left, top, right, bottom = self.pixel_box()
        return 0 <= left < right <= width and 0 <= top < bottom <= height


@dataclass(frozen=True)
class GestureState:
    """
    Immutable snapshot of the interactive crop state.

    Setters on CropEngine replace the whole snapshot, so a reference to an
    instance can be handed to a worker thread without copying.
    """
    max_magnification_scale: float
    mask_radius: float
    scale: float = 1.0
    offset: Offset = Offset()
    angle: float = 0.0  # Degrees, positive = clockwise on screen
    viewport_size: Size = Size()

    @property
    def angle_radians(self) -> float:
        return math.radians(self.angle)

    def with_changes(self, **changes) -> 'GestureState':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class CropResult:
    """Outcome of a crop commit: either an image or the first failure."""
    image: Optional[Any] = None
    failure: Optional[CropFailure] = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.failure is None and self.image is not None

    @classmethod
    def ok(cls, image: Any) -> 'CropResult':
        return cls(image=image)

    @classmethod
    def failed(cls, failure: CropFailure, message: str = "") -> 'CropResult':
        return cls(failure=failure, message=message)
