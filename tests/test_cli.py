"""
Tests for the command line interface.
"""

import logging

import pytest
from click.testing import CliRunner
from PIL import Image

from cli import main
from cropsight.imaging import EXIF_ORIENTATION_TAG


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI installs a console handler bound to the runner's stderr."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def landscape(tmp_path):
    path = tmp_path / "landscape.png"
    Image.new("RGB", (400, 300), (10, 120, 200)).save(path)
    return path


class TestCropCommand:
    """Test single image cropping."""

    def test_default_crop(self, runner, landscape):
        """Defaults fit the image into the mask and keep the square under it."""
        result = runner.invoke(main, ['crop', str(landscape)])

        assert result.exit_code == 0, result.output
        output = landscape.with_name("landscape_crop.png")
        assert output.exists()
        assert "(300x300)" in result.output

        with Image.open(output) as cropped:
            assert cropped.size == (300, 300)
            assert cropped.getpixel((0, 0))[:3] == (10, 120, 200)

    def test_circle_crop(self, runner, landscape, tmp_path):
        output = tmp_path / "avatar.png"
        result = runner.invoke(main, ['crop', str(landscape), '-o', str(output), '--shape', 'circle'])

        assert result.exit_code == 0, result.output
        with Image.open(output) as cropped:
            assert cropped.mode == "RGBA"
            assert cropped.getpixel((0, 0))[3] == 0
            assert cropped.getpixel((150, 150))[3] == 255

    def test_zoomed_crop(self, runner, landscape, tmp_path):
        output = tmp_path / "zoomed.png"
        result = runner.invoke(main, [
            'crop', str(landscape), '-o', str(output),
            '--viewport', '400x300', '--mask-radius', '100', '--scale', '2',
        ])

        assert result.exit_code == 0, result.output
        with Image.open(output) as cropped:
            assert cropped.size == (100, 100)

    def test_out_of_bounds_fails(self, runner, landscape, tmp_path):
        output = tmp_path / "nope.png"
        result = runner.invoke(main, ['crop', str(landscape), '-o', str(output), '--offset', '500', '0'])

        assert result.exit_code != 0
        assert "crop_rectangle_out_of_bounds" in result.output
        assert not output.exists()

    def test_orientation_applied(self, runner, tmp_path):
        """A portrait photo stored sideways is cropped upright."""
        path = tmp_path / "sideways.jpg"
        exif = Image.Exif()
        exif[EXIF_ORIENTATION_TAG] = 6
        Image.new("RGB", (400, 200), (255, 255, 255)).save(path, exif=exif)

        output = tmp_path / "upright.png"
        result = runner.invoke(main, ['crop', str(path), '-o', str(output), '--viewport', '100x200',
                                      '--mask-radius', '50'])

        assert result.exit_code == 0, result.output
        with Image.open(output) as cropped:
            assert cropped.size == (200, 200)

    def test_invalid_size_option(self, runner, landscape):
        result = runner.invoke(main, ['crop', str(landscape), '--viewport', 'wide'])
        assert result.exit_code != 0
        assert "is not a size" in result.output


class TestBatchCommand:
    """Test directory cropping."""

    def test_batch(self, runner, tmp_path):
        source = tmp_path / "in"
        source.mkdir()
        for name, size in [("a.png", (400, 300)), ("b.jpg", (300, 500)), ("c.png", (64, 64))]:
            Image.new("RGB", size, (50, 50, 50)).save(source / name)
        (source / "notes.txt").write_text("not an image")

        output = tmp_path / "out"
        result = runner.invoke(main, ['batch', str(source), '-o', str(output), '--workers', '2'])

        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in output.iterdir()) == ["a.png", "b.png", "c.png"]
        assert "Cropped:          3" in result.output

        with Image.open(output / "b.png") as cropped:
            assert cropped.size == (300, 300)

    def test_batch_reports_failures(self, runner, tmp_path):
        source = tmp_path / "in"
        source.mkdir()
        Image.new("RGB", (200, 200)).save(source / "a.png")

        result = runner.invoke(main, ['batch', str(source), '-o', str(tmp_path / "out"),
                                      '--offset', '1000', '0'])

        assert result.exit_code == 0, result.output
        assert "Failed:           1" in result.output
        assert "crop_rectangle_out_of_bounds: 1" in result.output

    def test_empty_directory(self, runner, tmp_path):
        result = runner.invoke(main, ['batch', str(tmp_path), '-o', str(tmp_path / "out")])

        assert result.exit_code == 0
        assert "No images found" in result.output


class TestBoundsCommand:
    """Test the geometry report."""

    def test_bounds(self, runner):
        result = runner.invoke(main, ['bounds', '--viewport', '300x300', '--mask-radius', '100',
                                      '--scale', '2'])

        assert result.exit_code == 0, result.output
        assert "Drag limit:     x=200.00 y=200.00" in result.output
        assert "Magnification:  min=0.6667 max=4.0000" in result.output

    def test_bounds_with_source(self, runner):
        result = runner.invoke(main, ['bounds', '--viewport', '300x300', '--mask-radius', '100',
                                      '--source', '1000x1000'])

        assert result.exit_code == 0, result.output
        assert "Crop rectangle: x=166.67 y=166.67 size=666.67 (inside: yes)" in result.output

    def test_bounds_outside(self, runner):
        result = runner.invoke(main, ['bounds', '--viewport', '300x300', '--mask-radius', '100',
                                      '--source', '1000x1000', '--offset', '100', '0'])

        assert "(inside: no)" in result.output

    def test_bounds_requires_size(self, runner):
        result = runner.invoke(main, ['bounds'])
        assert result.exit_code != 0
        assert "--viewport or --source" in result.output


class TestConfigOption:
    """Test --config handling."""

    def test_config_file_changes_defaults(self, runner, landscape, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("crop:\n  crop_image_circular: true\n")
        output = tmp_path / "circle.png"

        result = runner.invoke(main, ['-c', str(config), 'crop', str(landscape), '-o', str(output)])

        assert result.exit_code == 0, result.output
        with Image.open(output) as cropped:
            assert cropped.mode == "RGBA"
            assert cropped.getpixel((0, 0))[3] == 0
