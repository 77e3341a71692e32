"""
Tests for the Pillow and OpenCV image adapters.
"""

import numpy as np
import pytest
from PIL import Image

from cropsight.core import (
    CropRectangle, CropRectangleOutOfBoundsError, ExtractionAllocationError, RotationError
)
from cropsight.imaging import (
    ArrayAdapter, PillowAdapter, RasterImage, adapter_for, circle_mask, straighten_zoom, to_rgba
)

from conftest import FILL_COLOR


def marker_array(size=5):
    """Black square with one white pixel at the top centre."""
    pixels = np.zeros((size, size, 3), dtype=np.uint8)
    pixels[0, size // 2] = 255
    return pixels


class TestAdapterLookup:
    """Test adapter selection."""

    def test_pillow_image(self, uniform_pil):
        assert isinstance(adapter_for(uniform_pil), PillowAdapter)

    def test_arrays(self, uniform_array):
        assert isinstance(adapter_for(uniform_array), ArrayAdapter)
        assert isinstance(adapter_for(RasterImage(uniform_array)), ArrayAdapter)

    def test_unsupported(self):
        with pytest.raises(TypeError):
            adapter_for([[0, 0], [0, 0]])


class TestCircleMask:
    """Test the inscribed-circle mask."""

    def test_mask_shape_and_symmetry(self):
        mask = circle_mask(101)

        assert mask.shape == (101, 101)
        assert mask.dtype == bool
        assert mask[50, 50]
        assert not mask[0, 0]
        assert not mask[100, 100]
        np.testing.assert_array_equal(mask, mask.T)
        np.testing.assert_array_equal(mask, mask[::-1, ::-1])

    def test_area_close_to_circle(self):
        mask = circle_mask(200)
        assert mask.sum() == pytest.approx(np.pi * 100 ** 2, rel=0.01)


class TestSquareExtraction:
    """Test square crops."""

    @pytest.mark.parametrize("adapter_image", ["array", "pil"])
    def test_uniform_square(self, adapter_image, uniform_array, uniform_pil):
        image = uniform_array if adapter_image == "array" else uniform_pil
        adapter = adapter_for(image)

        cropped = adapter.crop(image, CropRectangle(100, 200, 300, 300))

        assert adapter.size(cropped) == (300, 300)
        corner = cropped[0, 0] if adapter_image == "array" else cropped.getpixel((0, 0))
        assert tuple(corner) == FILL_COLOR

    def test_array_crop_is_a_copy(self, uniform_array):
        cropped = ArrayAdapter().crop(uniform_array, CropRectangle(0, 0, 10, 10))
        cropped[:] = 0
        assert tuple(uniform_array[0, 0]) == FILL_COLOR

    def test_raster_image_keeps_type(self, uniform_array):
        cropped = ArrayAdapter().crop(RasterImage(uniform_array), CropRectangle(0, 0, 10, 10))
        assert isinstance(cropped, RasterImage)
        assert (cropped.width, cropped.height) == (10, 10)

    @pytest.mark.parametrize("rect", [
        CropRectangle(-1, 0, 100, 100),
        CropRectangle(0, 950, 100, 100),
        CropRectangle(901, 0, 100, 100),
    ])
    def test_out_of_bounds_not_clamped(self, rect, uniform_array, uniform_pil):
        for image in (uniform_array, uniform_pil):
            with pytest.raises(CropRectangleOutOfBoundsError):
                adapter_for(image).crop(image, rect)

    def test_allocation_error_mapped(self, monkeypatch, uniform_pil):
        def exhausted(self, image, box):
            raise MemoryError("no room")

        monkeypatch.setattr(PillowAdapter, "_crop_pixels", exhausted)
        with pytest.raises(ExtractionAllocationError):
            PillowAdapter().crop(uniform_pil, CropRectangle(0, 0, 10, 10))


class TestCircleExtraction:
    """Test circular crops."""

    def test_array_circle(self, uniform_array):
        clipped = ArrayAdapter().crop_circle(uniform_array, CropRectangle(0, 0, 400, 400))

        assert clipped.shape == (400, 400, 4)
        assert clipped[0, 0, 3] == 0
        assert tuple(clipped[0, 0, :3]) == (0, 0, 0)
        assert tuple(clipped[200, 200]) == FILL_COLOR + (255,)

    def test_pillow_circle(self, uniform_pil):
        clipped = PillowAdapter().crop_circle(uniform_pil, CropRectangle(0, 0, 400, 400))

        assert clipped.mode == "RGBA"
        assert clipped.getpixel((0, 0)) == (0, 0, 0, 0)
        assert clipped.getpixel((399, 0))[3] == 0
        assert clipped.getpixel((200, 200)) == FILL_COLOR + (255,)

    def test_adapters_agree_on_alpha(self, uniform_array, uniform_pil):
        rect = CropRectangle(10, 10, 64, 64)
        from_array = ArrayAdapter().crop_circle(uniform_array, rect)
        from_pil = np.asarray(PillowAdapter().crop_circle(uniform_pil, rect))

        np.testing.assert_array_equal(from_array[:, :, 3], from_pil[:, :, 3])

    def test_grayscale_circle(self):
        pixels = np.full((50, 50), 90, dtype=np.uint8)
        clipped = ArrayAdapter().crop_circle(pixels, CropRectangle(0, 0, 50, 50))

        assert clipped.shape == (50, 50, 4)
        assert tuple(clipped[25, 25]) == (90, 90, 90, 255)


class TestRotation:
    """Test rotation direction and canvas handling."""

    def test_array_clockwise(self):
        """Positive angles turn the top edge to the right."""
        rotated = ArrayAdapter().rotate(marker_array(), 90)

        assert rotated.shape == (5, 5, 4)
        assert rotated[2, 4, 0] > 200
        assert rotated[0, 2, 0] < 50

    def test_pillow_clockwise(self):
        rotated = PillowAdapter().rotate(Image.fromarray(marker_array()), 90)

        assert rotated.size == (5, 5)
        assert rotated.getpixel((4, 2))[0] == 255
        assert rotated.getpixel((2, 0))[0] == 0

    def test_negative_angle_is_counter_clockwise(self):
        rotated = PillowAdapter().rotate(Image.fromarray(marker_array()), -90)
        assert rotated.getpixel((0, 2))[0] == 255

    @pytest.mark.parametrize("adapter_image", ["array", "pil"])
    @pytest.mark.parametrize("angle", [30, 45, -70])
    @pytest.mark.parametrize("size", [(100, 100), (120, 80)])
    def test_rotated_canvas_fully_covered(self, adapter_image, angle, size):
        """The straighten zoom leaves no transparent corners."""
        width, height = size
        pixels = np.full((height, width, 3), 128, dtype=np.uint8)
        image = pixels if adapter_image == "array" else Image.fromarray(pixels)

        rotated = np.asarray(adapter_for(image).rotate(image, angle))

        assert rotated.shape == (height, width, 4)
        assert rotated[:, :, 3].min() > 250

    def test_straighten_zoom(self):
        assert straighten_zoom(100, 100, 0) == 1.0
        assert straighten_zoom(100, 100, 90) == 1.0
        assert straighten_zoom(100, 50, 180) == 1.0
        assert straighten_zoom(100, 100, 45) == pytest.approx(2 ** 0.5)
        assert straighten_zoom(120, 80, -30) == pytest.approx(np.cos(np.pi / 6) + 0.5 * 1.5)

    def test_rotation_zooms_about_centre(self):
        """A centred dot stays centred and grows with the zoom."""
        pixels = np.zeros((101, 101), dtype=np.uint8)
        pixels[45:56, 45:56] = 255

        rotated = ArrayAdapter().rotate(pixels, 45)

        assert rotated[50, 50, 0] == 255
        lit = np.argwhere(rotated[:, :, 0] > 127)
        assert lit.mean(axis=0) == pytest.approx((50, 50), abs=0.5)
        assert len(lit) > 121

    def test_rotate_keeps_unusual_dtypes(self):
        pixels = np.full((40, 60, 3), 7, dtype=np.int32)
        rotated = ArrayAdapter().rotate(pixels, 30)

        assert rotated.dtype == np.int32
        assert rotated.shape == (40, 60, 4)
        assert np.all(rotated[:, :, :3] == 7)
        assert np.all(rotated[:, :, 3] == np.iinfo(np.int32).max)

    def test_rotate_unsupported_layout(self):
        with pytest.raises(RotationError):
            ArrayAdapter().rotate(np.zeros((10, 10, 2), dtype=np.uint8), 15)

    def test_zero_angle_returns_copy(self, uniform_array):
        rotated = ArrayAdapter().rotate(uniform_array, 0)

        assert rotated is not uniform_array
        np.testing.assert_array_equal(rotated, uniform_array)

    @pytest.mark.parametrize("angle", [float("nan"), float("inf")])
    def test_degenerate_angle(self, angle, uniform_pil):
        with pytest.raises(RotationError):
            PillowAdapter().rotate(uniform_pil, angle)

    def test_empty_image(self):
        with pytest.raises(RotationError):
            ArrayAdapter().rotate(np.zeros((0, 10, 3), dtype=np.uint8), 10)


class TestToRgba:
    """Test channel conversion."""

    def test_rgb(self):
        rgba = to_rgba(np.full((2, 2, 3), 7, dtype=np.uint8))
        assert rgba.shape == (2, 2, 4)
        assert rgba[0, 0, 3] == 255

    def test_single_channel(self):
        rgba = to_rgba(np.full((2, 2, 1), 7, dtype=np.uint8))
        assert tuple(rgba[1, 1]) == (7, 7, 7, 255)

    def test_rgba_copied(self):
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba = to_rgba(source)
        rgba[:] = 1
        assert source.max() == 0

    @pytest.mark.parametrize("dtype, opaque", [
        (np.int64, np.iinfo(np.int64).max),
        (np.int32, np.iinfo(np.int32).max),
        (np.float64, 1.0),
        (bool, True),
    ])
    def test_dtypes_without_cv_support(self, dtype, opaque):
        rgba = to_rgba(np.ones((3, 3, 3), dtype=dtype))

        assert rgba.dtype == dtype
        assert rgba.shape == (3, 3, 4)
        assert np.all(rgba[:, :, 3] == opaque)
        assert np.all(rgba[:, :, :3] == 1)

    def test_unsupported_layout(self):
        with pytest.raises(ValueError):
            to_rgba(np.zeros((2, 2, 2), dtype=np.uint8))
