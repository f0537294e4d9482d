# -*- coding: utf-8 -*-
"""
Crop applier: the public entry points of the engine.

analyze*     -> CropWindow (coordinates and score only)
crop_raster* -> CropResult (window plus a byte-exact sub-raster)
crop*        -> encoded bytes (lossless PNG unless another encoder is given)

The *_bytes variants decode container bytes first; the *_async variants run
the very same synchronous function in the event loop's default executor.
"""
import asyncio
import logging
import functools
from typing import Callable, Optional

from .aspect import AspectRatio
from .boost import apply_boosts
from .codec import decode_image, encode_image, encode_png
from .config import Config
from .errors import InternalError, ValidationError
from .options import OptionsLike, SmartCropOptions, coerce_options
from .raster import Raster, CropWindow, CropResult
from .saliency import compute_saliency_grid
from .search import find_best_window

logger = logging.getLogger(__name__)

Encoder = Callable[[Raster], bytes]


def _check_window(window: CropWindow, raster: Raster, options: SmartCropOptions) -> CropWindow:
    """
    Re-validates a chosen window against the raster and the requested ratio.

    A fitted window takes one side from the raster and derives the other by
    rounding, so the ratio holds when either side is within 1px of the value
    implied by the other: for 1000:1 on a 10px wide raster only 10x1 passes.
    """
    if window.width <= 0 or window.height <= 0:
        raise InternalError(f"window {window} has a non-positive size")
    if window.x < 0 or window.y < 0 or window.x + window.width > raster.width or window.y + window.height > raster.height:
        raise InternalError(f"window {window} is not contained in the {raster.width}x{raster.height} raster")
    ratio = options.aspect_ratio
    if ratio is None and options.width is not None and options.height is not None:
        ratio = AspectRatio.of(options.width, options.height)
    if ratio is not None:
        expected_width = window.height * ratio.width / ratio.height
        expected_height = window.width * ratio.height / ratio.width
        if abs(window.width - expected_width) > 1 and abs(window.height - expected_height) > 1:
            raise InternalError(f"window {window.width}x{window.height} does not match aspect ratio {ratio} within 1px")
    return window


def _analyze(raster: Raster, options: SmartCropOptions, config: Optional[Config]) -> CropWindow:
    crop_width, crop_height = options.target_size(raster.width, raster.height)
    logger.debug(f"Target window {crop_width}x{crop_height} for {raster.width}x{raster.height} raster.")
    grid = compute_saliency_grid(raster, config)
    if options.boost:
        grid = apply_boosts(grid, options.boost)
    window = find_best_window(grid, crop_width, crop_height, config)
    return _check_window(window, raster, options)


def analyze(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None) -> CropWindow:
    """Best crop window for the raster. No pixels are copied."""
    return _analyze(raster, coerce_options(options), config)


def extract_region(raster: Raster, x: int, y: int, width: int, height: int) -> Raster:
    """Byte-exact copy of a sub-rectangle (all channels, alpha included)."""
    for name, value in (('x', x), ('y', y), ('width', width), ('height', height)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"crop {name} must be an integer, got {value!r}")
    if width <= 0 or height <= 0:
        raise ValidationError(f"crop width and height must be positive, got {width}x{height}")
    if x < 0 or y < 0 or x + width > raster.width or y + height > raster.height:
        raise ValidationError(
            f"crop rectangle ({x}, {y}, {width}x{height}) must lie inside the {raster.width}x{raster.height} raster")
    region = raster.to_array()[y:y + height, x:x + width]
    return Raster.from_array(region)


def crop_region(raster: Raster, x: int, y: int, width: int, height: int,
                output_format: str = 'png', quality: int = 95) -> bytes:
    """Crop by explicit coordinates and encode to the caller's chosen format."""
    return encode_image(extract_region(raster, x, y, width, height), output_format, quality)


def crop_raster(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None) -> CropResult:
    window = analyze(raster, options, config)
    return CropResult(window=window, raster=extract_region(raster, window.x, window.y, window.width, window.height))


def crop(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None,
         encoder: Encoder = encode_png) -> bytes:
    return encoder(crop_raster(raster, options, config).raster)


def analyze_bytes(data: bytes, options: OptionsLike = None, config: Optional[Config] = None) -> CropWindow:
    """Decode then analyze. Options are validated before any decoding happens."""
    parsed = coerce_options(options)
    return _analyze(decode_image(data), parsed, config)


def crop_bytes(data: bytes, options: OptionsLike = None, config: Optional[Config] = None,
               encoder: Encoder = encode_png) -> bytes:
    parsed = coerce_options(options)
    return crop(decode_image(data), parsed, config, encoder)


async def _run_in_executor(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


async def analyze_async(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None) -> CropWindow:
    return await _run_in_executor(analyze, raster, options, config)


async def crop_raster_async(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None) -> CropResult:
    return await _run_in_executor(crop_raster, raster, options, config)


async def crop_async(raster: Raster, options: OptionsLike = None, config: Optional[Config] = None,
                     encoder: Encoder = encode_png) -> bytes:
    return await _run_in_executor(crop, raster, options, config, encoder)


async def analyze_bytes_async(data: bytes, options: OptionsLike = None, config: Optional[Config] = None) -> CropWindow:
    return await _run_in_executor(analyze_bytes, data, options, config)


async def crop_bytes_async(data: bytes, options: OptionsLike = None, config: Optional[Config] = None,
                           encoder: Encoder = encode_png) -> bytes:
    return await _run_in_executor(crop_bytes, data, options, config, encoder)
