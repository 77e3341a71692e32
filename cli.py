#!/usr/bin/env python3
"""
CropSight Command Line Interface

Crops images the way the interactive cropper does: a gesture state (viewport
size, zoom, pan, rotation, mask radius) is mapped back onto the
full-resolution source and the square or circle under the mask is saved.
"""

import time
import click
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image
from tqdm import tqdm

from cropsight.config import load_config, get_config_value, CropConfiguration
from cropsight.core import (
    CropEngine, GestureState, MaskShape, compute_crop_rectangle, fit_size, run_crop
)
from cropsight.imaging import adapter_for
from cropsight.utils.logging import CropStats, setup_console_logging

logger = logging.getLogger(__name__)


class SizeType(click.ParamType):
    """WIDTHxHEIGHT, e.g. 300x300."""
    name = "size"

    def convert(self, value, param, ctx):
        if isinstance(value, tuple):
            return value
        try:
            width, height = (float(part) for part in str(value).lower().split('x'))
        except ValueError:
            self.fail(f"{value!r} is not a size like 300x200", param, ctx)
        if width <= 0 or height <= 0:
            self.fail(f"{value!r} must have positive width and height", param, ctx)
        return (width, height)


SIZE = SizeType()


def _gesture_options(func):
    """Options shared by commands that build a gesture state."""
    options = [
        click.option('--viewport', type=SIZE,
                     help='Size the image is displayed at (default: fit into the mask)'),
        click.option('--container', type=SIZE,
                     help='Display area to aspect-fit the image into instead of --viewport'),
        click.option('--scale', type=float, default=1.0, show_default=True, help='Zoom scale'),
        click.option('--offset', type=(float, float), default=(0.0, 0.0), show_default=True,
                     help='Pan offset in view pixels (DX DY)'),
        click.option('--angle', type=float, default=0.0, show_default=True,
                     help='Rotation in degrees, positive is clockwise'),
        click.option('--mask-radius', type=float, help='Mask radius in view pixels'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_engine(crop_config: CropConfiguration, image_size: Tuple[int, int],
                  viewport: Optional[Tuple[float, float]], container: Optional[Tuple[float, float]],
                  scale: float, offset: Tuple[float, float], angle: float,
                  mask_radius: Optional[float]) -> CropEngine:
    """Replay CLI gesture options onto a fresh engine."""
    radius = mask_radius if mask_radius is not None else crop_config.mask_radius
    engine = CropEngine(mask_radius=radius, max_magnification_scale=crop_config.max_magnification_scale)

    if viewport is None:
        if container is None:
            container = (radius * 2, radius * 2)
        fitted = fit_size(image_size, container)
        viewport = (fitted.width, fitted.height)

    engine.set_viewport_size(*viewport)
    engine.set_mask_radius(radius)
    engine.set_scale(scale)
    engine.set_offset(*offset)
    engine.set_angle(angle)
    return engine


def _resolve_shape(crop_config: CropConfiguration, shape: Optional[str]) -> MaskShape:
    if shape is None:
        return crop_config.output_shape
    return MaskShape.parse(shape)


def _save(image, output: Path, image_format: str) -> None:
    if image_format.upper() in ('JPEG', 'JPG') and image.mode == 'RGBA':
        logger.warning(f"{image_format} has no alpha channel; flattening {output.name}")
        image = image.convert('RGB')
    output.parent.mkdir(parents=True, exist_ok=True)
    image.save(output, format=image_format)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    CropSight - square and circle image cropping from gesture state
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(
        level=level,
        color=get_config_value(ctx.obj['config'], 'logging.color', True),
        fmt=get_config_value(ctx.obj['config'], 'logging.format',
                             '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )

    ctx.obj['crop'] = CropConfiguration.from_config(ctx.obj['config'])
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Output file (default: next to the input)')
@click.option('--shape', type=click.Choice(['square', 'circle'], case_sensitive=False),
              help='Output shape (default: from configuration)')
@click.option('--rotate/--no-rotate', default=None, help='Apply the rotation angle')
@_gesture_options
@click.pass_context
def crop(ctx, image_path: Path, output: Optional[Path], shape: Optional[str],
         rotate: Optional[bool], viewport, container, scale, offset, angle, mask_radius):
    """
    Crop a single image.

    IMAGE_PATH: Image to crop
    """
    config = ctx.obj['config']
    crop_config = ctx.obj['crop']
    image_format = get_config_value(config, 'output.format', 'PNG')

    with Image.open(image_path) as source:
        source.load()
        image_size = adapter_for(source).upright_size(source)
        engine = _build_engine(crop_config, image_size, viewport, container,
                               scale, offset, angle, mask_radius)
        if rotate is None:
            rotate = crop_config.rotate_image

        result = engine.commit_crop(source, _resolve_shape(crop_config, shape), rotate=rotate)

    if not result.success:
        raise click.ClickException(f"Could not crop image ({result.failure.value}): {result.message}")

    if output is None:
        suffix = get_config_value(config, 'output.suffix', '_crop')
        output = image_path.with_name(f"{image_path.stem}{suffix}.{image_format.lower()}")

    _save(result.image, output, image_format)
    if not ctx.obj['quiet']:
        width, height = result.image.size
        click.echo(f"Saved {output} ({width}x{height})")


@main.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path),
              required=True, help='Directory for cropped images')
@click.option('--shape', type=click.Choice(['square', 'circle'], case_sensitive=False),
              help='Output shape (default: from configuration)')
@click.option('--rotate/--no-rotate', default=None, help='Apply the rotation angle')
@click.option('--workers', '-w', type=int, help='Number of worker threads')
@click.option('--recursive/--no-recursive', default=False, help='Process subdirectories')
@_gesture_options
@click.pass_context
def batch(ctx, directory: Path, output_dir: Path, shape: Optional[str], rotate: Optional[bool],
          workers: Optional[int], recursive: bool, viewport, container, scale, offset, angle,
          mask_radius):
    """
    Crop every image in a directory with the same gesture state.

    The viewport is fitted per image, so portrait and landscape images get the
    same relative crop.

    DIRECTORY: Directory containing images
    """
    config = ctx.obj['config']
    crop_config = ctx.obj['crop']
    image_format = get_config_value(config, 'output.format', 'PNG')
    extensions = {ext.lower() for ext in get_config_value(config, 'processing.image_extensions', [])}
    workers = workers or get_config_value(config, 'processing.max_workers', 4)
    output_shape = _resolve_shape(crop_config, shape)
    if rotate is None:
        rotate = crop_config.rotate_image

    pattern = '**/*' if recursive else '*'
    files = sorted(p for p in directory.glob(pattern) if p.is_file() and p.suffix.lower() in extensions)
    if not files:
        click.echo(f"No images found in {directory}")
        return

    stats = CropStats()
    stats.set_total(len(files))

    def crop_file(path: Path):
        started = time.time()
        with Image.open(path) as source:
            source.load()
            image_size = adapter_for(source).upright_size(source)
            engine = _build_engine(crop_config, image_size, viewport, container,
                                   scale, offset, angle, mask_radius)
            state: GestureState = engine.snapshot()
            result = run_crop(source, state, output_shape, rotate)

        if result.success:
            relative = path.relative_to(directory)
            destination = (output_dir / relative).with_suffix(f".{image_format.lower()}")
            _save(result.image, destination, image_format)
        return result, time.time() - started

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(crop_file, f): f for f in files}

        for future in tqdm(as_completed(futures), total=len(futures), desc="Cropping",
                           disable=ctx.obj['quiet']):
            file_path = futures[future]
            try:
                result, elapsed = future.result()
                failure = result.failure.value if result.failure else None
                stats.add_result(result.success, failure, elapsed)
                if failure:
                    logger.warning(f"Could not crop {file_path}: {result.message}")
            except Exception as e:
                logger.error(f"Error processing {file_path}: {e}")
                stats.add_error(str(file_path), str(e))

    if not ctx.obj['quiet']:
        click.echo(stats.format_summary())


@main.command()
@click.option('--source', type=SIZE, help='Source image size, to also print the crop rectangle')
@_gesture_options
@click.pass_context
def bounds(ctx, source, viewport, container, scale, offset, angle, mask_radius):
    """
    Print the drag limit and magnification bounds for a gesture state.
    """
    crop_config = ctx.obj['crop']
    if viewport is None and source is None:
        raise click.UsageError("Pass --viewport or --source")

    image_size = source or viewport
    engine = _build_engine(crop_config, image_size, viewport, container,
                           scale, offset, angle, mask_radius)
    state = engine.state
    drag = engine.drag_limit()
    low, high = engine.magnification_bounds()

    click.echo(f"Viewport:       {state.viewport_size.width:.2f}x{state.viewport_size.height:.2f}")
    click.echo(f"Mask radius:    {state.mask_radius:.2f}")
    click.echo(f"Scale:          {state.scale:.4f}")
    click.echo(f"Drag limit:     x={drag.x:.2f} y={drag.y:.2f}")
    click.echo(f"Magnification:  min={low:.4f} max={high:.4f}")

    if source is not None:
        rect = compute_crop_rectangle(state, source)
        inside = "yes" if rect.is_within((int(source[0]), int(source[1]))) else "no"
        click.echo(f"Crop rectangle: x={rect.x:.2f} y={rect.y:.2f} size={rect.width:.2f} (inside: {inside})")


if __name__ == '__main__':
    main()
