"""
Crop geometry engine.

Owns the interactive gesture state and turns it, together with a source
image, into a square or circular crop at full source resolution.
"""

from typing import Any, Optional
import logging

from ..imaging import adapter_for
from .errors import CropError, CropRectangleOutOfBoundsError
from .geometry import (
    clamp_mask_radius, compute_crop_rectangle, compute_drag_limit,
    compute_magnification_bounds
)
from .models import (
    CropRectangle, CropResult, DragLimit, GestureState, MagnificationBounds,
    MaskShape, Offset, Size
)

logger = logging.getLogger(__name__)


class CropEngine:
    """
    Interactive crop state plus the commit pipeline.

    The interaction layer calls the setters as gestures progress and queries
    ``drag_limit`` / ``magnification_bounds`` to clamp its own recognizers.
    The engine clamps mask radius and scale, never the pan offset.

    ``commit_crop`` normalizes orientation, optionally rotates, computes the
    crop rectangle and extracts pixels. It is a pure function of the current
    snapshot and the image, so it can run on a worker via ``snapshot()``.
    """

    def __init__(self, mask_radius: float, max_magnification_scale: float):
        """
        Initialize crop engine

        Args:
            mask_radius: Half-width of the mask in view pixels
            max_magnification_scale: Upper bound for zoom, fixed for the session
        """
        if max_magnification_scale <= 0:
            raise ValueError(f"max_magnification_scale must be positive, got {max_magnification_scale}")
        if mask_radius <= 0:
            raise ValueError(f"mask_radius must be positive, got {mask_radius}")

        self._state = GestureState(
            max_magnification_scale=float(max_magnification_scale),
            mask_radius=float(mask_radius),
        )

    @classmethod
    def from_configuration(cls, configuration) -> 'CropEngine':
        """Build an engine from a CropConfiguration."""
        return cls(
            mask_radius=configuration.mask_radius,
            max_magnification_scale=configuration.max_magnification_scale,
        )

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> GestureState:
        return self._state

    def snapshot(self) -> GestureState:
        """Current state; immutable, so safe to hand to another thread."""
        return self._state

    def restore(self, state: GestureState) -> None:
        """Replace the whole state, e.g. with an earlier snapshot."""
        self._state = self._reclamp(state)

    def set_viewport_size(self, width: float, height: float) -> None:
        """Set the size the image is displayed at. Re-clamps mask radius and scale."""
        self._update(viewport_size=Size(float(width), float(height)))

    def set_scale(self, scale: float) -> None:
        self._update(scale=float(scale))

    def set_offset(self, dx: float, dy: float) -> None:
        self._update(offset=Offset(float(dx), float(dy)))

    def set_angle(self, angle: float) -> None:
        """Set the on-screen rotation in degrees (positive = clockwise)."""
        self._update(angle=float(angle))

    def set_mask_radius(self, radius: float) -> None:
        self._update(mask_radius=float(radius))

    def _update(self, **changes) -> None:
        self._state = self._reclamp(self._state.with_changes(**changes))

    @staticmethod
    def _reclamp(state: GestureState) -> GestureState:
        """Re-derive the clamps that depend on viewport and mask radius."""
        mask_radius = clamp_mask_radius(state.mask_radius, state.viewport_size)
        state = state.with_changes(mask_radius=mask_radius)

        if state.viewport_size.is_empty:
            scale = min(state.scale, state.max_magnification_scale)
        else:
            scale = compute_magnification_bounds(state).clamp(state.scale)
        return state.with_changes(scale=scale)

    # -- derived bounds ----------------------------------------------------

    def drag_limit(self) -> DragLimit:
        return compute_drag_limit(self._state)

    def magnification_bounds(self) -> MagnificationBounds:
        return compute_magnification_bounds(self._state)

    def crop_rectangle(self, image: Any) -> CropRectangle:
        """Crop rectangle for ``image`` under the current state, in upright pixels."""
        return compute_crop_rectangle(self._state, adapter_for(image).upright_size(image))

    # -- pixel operations --------------------------------------------------

    def normalize_orientation(self, image: Any) -> Optional[Any]:
        """
        Bake the image's orientation flag into its pixels.

        Returns:
            Upright image (the input itself when already upright), or None on
            failure
        """
        try:
            return adapter_for(image).normalize_orientation(image)
        except CropError as e:
            logger.debug(f"Orientation normalization failed: {e}")
            return None

    def crop_to_square(self, image: Any) -> Optional[Any]:
        """
        Crop the image to the part under the mask. Result is a square.

        Returns:
            Cropped image, or None on failure
        """
        return self.commit_crop(image, MaskShape.SQUARE).image

    def crop_to_circle(self, image: Any) -> Optional[Any]:
        """
        Crop the image to the part under the mask, transparent outside the
        inscribed circle.

        Returns:
            Cropped RGBA image, or None on failure
        """
        return self.commit_crop(image, MaskShape.CIRCLE).image

    def rotate(self, image: Any, angle: Optional[float] = None) -> Optional[Any]:
        """
        Rotate an image by ``angle`` degrees (default: current angle).

        Returns:
            Rotated image, or None on failure
        """
        if angle is None:
            angle = self._state.angle
        adapter = adapter_for(image)
        try:
            return adapter.rotate(adapter.normalize_orientation(image), angle)
        except CropError as e:
            logger.debug(f"Rotation failed: {e}")
            return None

    def commit_crop(self, image: Any, shape: MaskShape = MaskShape.SQUARE,
                    rotate: bool = False,
                    state: Optional[GestureState] = None) -> CropResult:
        """
        Run the full crop pipeline.

        Args:
            image: Source image (PIL image, RasterImage or numpy array)
            shape: Output mask shape
            rotate: Whether to apply the current rotation angle first
            state: Snapshot to use instead of the live state

        Returns:
            CropResult holding the new image or the first failure
        """
        snapshot = state if state is not None else self._state
        return run_crop(image, snapshot, MaskShape.parse(shape), rotate)


def run_crop(image: Any, state: GestureState, shape: MaskShape, rotate: bool) -> CropResult:
    """
    Crop pipeline for one snapshot: normalize → rotate → rectangle → extract.

    Each stage short-circuits; only the first failure is reported.
    """
    adapter = adapter_for(image)

    try:
        upright = adapter.normalize_orientation(image)

        if rotate:
            upright = adapter.rotate(upright, state.angle)

        try:
            rect = compute_crop_rectangle(state, adapter.size(upright))
        except ValueError as e:
            raise CropRectangleOutOfBoundsError(str(e)) from e

        if shape == MaskShape.CIRCLE:
            cropped = adapter.crop_circle(upright, rect)
        else:
            cropped = adapter.crop(upright, rect)

    except CropError as e:
        logger.debug(f"Crop failed ({e.failure.value}): {e}")
        return CropResult.failed(e.failure, str(e))

    return CropResult.ok(cropped)
