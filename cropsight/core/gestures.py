"""
Gesture tracking for the interaction layer.

Pinch, drag and rotate recognizers report values relative to where the
gesture started. GestureTracker keeps the committed values from the end of
the previous gesture and enforces the engine's drag limit and magnification
bounds while a gesture is in progress.
"""

import logging

from .engine import CropEngine
from .models import Offset

logger = logging.getLogger(__name__)


class GestureTracker:
    """
    Applies relative gesture updates to a CropEngine.

    Usage:
        tracker = GestureTracker(engine, zoom_sensitivity=1.0)
        tracker.magnify(1.4)      # while pinching
        tracker.end_magnification()
        tracker.drag(25, -10)     # while dragging
        tracker.end_drag()
    """

    def __init__(self, engine: CropEngine, zoom_sensitivity: float = 1.0):
        self.engine = engine
        self.zoom_sensitivity = zoom_sensitivity

        state = engine.state
        self.last_scale = state.scale
        self.last_offset = state.offset
        self.last_angle = state.angle

    @classmethod
    def from_configuration(cls, engine: CropEngine, configuration) -> 'GestureTracker':
        """Build a tracker using a CropConfiguration's zoom sensitivity."""
        return cls(engine, zoom_sensitivity=configuration.zoom_sensitivity)

    def magnify(self, magnitude: float) -> float:
        """
        Update scale from a pinch magnitude (1.0 = no change).

        The change is damped by ``zoom_sensitivity``, clamped to the
        magnification bounds, and the pan offset is pulled back inside the new
        drag limit.

        Returns:
            The applied scale
        """
        sensitivity = 0.1 * self.zoom_sensitivity
        scaled_value = (magnitude - 1) * sensitivity + 1

        bounds = self.engine.magnification_bounds()
        self.engine.set_scale(bounds.clamp(scaled_value * self.last_scale))
        self._clamp_offset()
        return self.engine.state.scale

    def end_magnification(self) -> None:
        self.last_scale = self.engine.state.scale
        self.last_offset = self.engine.state.offset

    def drag(self, dx: float, dy: float) -> Offset:
        """
        Update offset from a drag translation since the gesture began.

        Returns:
            The applied (clamped) offset
        """
        proposed = Offset(self.last_offset.x + dx, self.last_offset.y + dy)
        offset = self.engine.drag_limit().clamp(proposed)
        self.engine.set_offset(offset.x, offset.y)
        return offset

    def end_drag(self) -> None:
        self.last_offset = self.engine.state.offset

    def rotate(self, degrees: float) -> float:
        """Update angle from a rotation since the gesture began."""
        self.engine.set_angle(self.last_angle + degrees)
        return self.engine.state.angle

    def end_rotation(self) -> None:
        self.last_angle = self.engine.state.angle

    def _clamp_offset(self) -> None:
        offset = self.engine.drag_limit().clamp(self.engine.state.offset)
        self.engine.set_offset(offset.x, offset.y)
        self.last_offset = offset
