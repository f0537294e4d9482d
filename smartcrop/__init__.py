# -*- coding: utf-8 -*-
"""Content-aware crop engine: saliency grid, boost overlay and window search."""
import logging

from .errors import SmartCropError, ParseError, ValidationError, DecodeError, InternalError
from .config import Config, load_config_from_file
from .raster import Raster, CropWindow, CropResult
from .aspect import AspectRatio, parse_aspect_ratio, resolve_target_size
from .boost import BoostRegion, apply_boosts
from .saliency import SaliencyGrid, compute_saliency_grid
from .search import find_best_window, get_rule_points
from .options import SmartCropOptions
from .codec import decode_image, encode_image, encode_png, load_image_file
from .applier import (
    analyze,
    analyze_async,
    analyze_bytes,
    analyze_bytes_async,
    crop,
    crop_async,
    crop_bytes,
    crop_bytes_async,
    crop_raster,
    crop_raster_async,
    crop_region,
    extract_region,
)

__version__ = "0.1.0"

log_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(processName)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')

log_handler = logging.StreamHandler()
log_handler.setFormatter(log_formatter)

logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(log_handler)
    logger.setLevel(logging.WARNING)


def setup_logging(level: int):
    logger.setLevel(level)


__all__ = [
    'SmartCropError', 'ParseError', 'ValidationError', 'DecodeError', 'InternalError',
    'Config', 'load_config_from_file',
    'Raster', 'CropWindow', 'CropResult',
    'AspectRatio', 'parse_aspect_ratio', 'resolve_target_size',
    'BoostRegion', 'apply_boosts',
    'SaliencyGrid', 'compute_saliency_grid',
    'find_best_window', 'get_rule_points',
    'SmartCropOptions',
    'decode_image', 'encode_image', 'encode_png', 'load_image_file',
    'analyze', 'analyze_async', 'analyze_bytes', 'analyze_bytes_async',
    'crop', 'crop_async', 'crop_bytes', 'crop_bytes_async',
    'crop_raster', 'crop_raster_async', 'crop_region', 'extract_region',
    'setup_logging',
]
