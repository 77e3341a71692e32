"""
Pure geometry for mapping view-space gesture state onto source-image pixels.

Nothing here touches pixel data. Every function is recomputed from the state
it is given, since viewport size and mask radius change independently.
"""

from typing import Tuple
import logging

from .models import (
    CropRectangle, DragLimit, GestureState, MagnificationBounds, Size
)

logger = logging.getLogger(__name__)


def clamp_mask_radius(mask_radius: float, viewport_size: Size) -> float:
    """
    Keep the mask inside the viewport.

    An empty viewport (not laid out yet) leaves the radius untouched.
    """
    if viewport_size.is_empty:
        return mask_radius
    return min(mask_radius, viewport_size.shortest_side / 2)


def compute_drag_limit(state: GestureState) -> DragLimit:
    """
    Calculate how far the image can be panned on each axis.

    Beyond this offset the mask would show area outside the rendered image.

    Args:
        state: Current gesture state

    Returns:
        DragLimit with the maximum absolute offset per axis
    """
    viewport = state.viewport_size
    x_limit = (viewport.width / 2) * state.scale - state.mask_radius
    y_limit = (viewport.height / 2) * state.scale - state.mask_radius
    return DragLimit(x=x_limit, y=y_limit)


def compute_magnification_bounds(state: GestureState) -> MagnificationBounds:
    """
    Calculate the zoom range.

    The minimum is the scale at which the mask diameter exactly spans the
    shorter side of the displayed image, so the image can not be zoomed out
    past its own extent. The maximum is the configured cap.

    Args:
        state: Current gesture state

    Returns:
        MagnificationBounds(minimum, maximum)

    Raises:
        ValueError: If the viewport size has not been set
    """
    if state.viewport_size.is_empty:
        raise ValueError("Viewport size must be set before computing magnification bounds")

    min_scale = (state.mask_radius * 2) / state.viewport_size.shortest_side
    return MagnificationBounds(minimum=min_scale, maximum=state.max_magnification_scale)


def compute_crop_rectangle(state: GestureState, source_size: Tuple[int, int]) -> CropRectangle:
    """
    Calculate the square region of the source image under the mask.

    Args:
        state: Gesture state snapshot
        source_size: (width, height) of the upright source image

    Returns:
        CropRectangle in source pixels. It is not clamped to the image.

    Raises:
        ValueError: If the viewport is empty or the scale is not positive
    """
    viewport = state.viewport_size
    if viewport.is_empty:
        raise ValueError("Viewport size must be set before computing a crop rectangle")
    if state.scale <= 0:
        raise ValueError(f"Scale must be positive, got {state.scale}")

    source_width, source_height = source_size

    # Ratio between source resolution and displayed resolution; the fitting
    # dimension dominates so the square never exceeds either source side
    factor = min(source_width / viewport.width, source_height / viewport.height)

    center_x = source_width / 2
    center_y = source_height / 2

    # Zooming in shrinks the source region under a fixed on-screen mask
    radius = (state.mask_radius * factor) / state.scale

    offset_x = state.offset.x * factor
    offset_y = state.offset.y * factor

    rect_x = (center_x - radius) - (offset_x / state.scale)
    rect_y = (center_y - radius) - (offset_y / state.scale)
    dimension = radius * 2

    rect = CropRectangle(x=rect_x, y=rect_y, width=dimension, height=dimension)
    logger.debug(f"Crop rectangle {rect} for source {source_width}x{source_height} (factor {factor:.4f})")
    return rect


def fit_size(image_size: Tuple[float, float], container_size: Tuple[float, float]) -> Size:
    """
    Size of an image displayed aspect-fit inside a container.

    Useful to derive the viewport size when the caller only knows the
    container the image is shown in.

    Args:
        image_size: (width, height) of the source image
        container_size: (width, height) of the available display area

    Returns:
        Displayed image size
    """
    image_width, image_height = image_size
    container_width, container_height = container_size
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image size must be positive, got {image_size}")

    ratio = min(container_width / image_width, container_height / image_height)
    return Size(width=image_width * ratio, height=image_height * ratio)
