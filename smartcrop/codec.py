# -*- coding: utf-8 -*-
"""Pillow adapters that turn container bytes into rasters and back."""
import io
import os
import logging
from typing import Dict, Any

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, ValidationError
from .raster import Raster

logger = logging.getLogger(__name__)

SUPPORTED_OUTPUT_FORMATS: Dict[str, str] = {
    'png': 'PNG',
    'jpg': 'JPEG',
    'jpeg': 'JPEG',
    'webp': 'WEBP',
    'bmp': 'BMP',
    'tiff': 'TIFF',
    'tif': 'TIFF',
}
SUPPORTED_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tiff', '.tif', '.webp', '.gif')

_ALPHA_MODES = ('RGBA', 'LA', 'PA', 'RGBa', 'La')


def decode_image(data: bytes) -> Raster:
    """Decodes container bytes (JPEG, PNG, WebP, ...) into an RGB or RGBA raster."""
    if not data:
        raise DecodeError("input buffer is empty")
    try:
        with Image.open(io.BytesIO(data)) as pil_img:
            pil_img.load()
            has_alpha = pil_img.mode in _ALPHA_MODES or (pil_img.mode == 'P' and 'transparency' in pil_img.info)
            converted = pil_img.convert('RGBA' if has_alpha else 'RGB')
    except UnidentifiedImageError:
        raise DecodeError("cannot identify image format (unsupported or corrupt input)")
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"failed to decode image: {e}")
    return Raster.from_array(np.asarray(converted, dtype=np.uint8))


def load_image_file(image_path: str) -> Raster:
    filename = os.path.basename(image_path)
    try:
        with open(image_path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise DecodeError(f"{filename}: cannot read image file: {e}")
    return decode_image(data)


def encode_image(raster: Raster, output_format: str = 'png', quality: int = 95) -> bytes:
    """Encodes a raster with Pillow. JPEG output drops the alpha channel."""
    key = str(output_format).lower().lstrip('.')
    pil_format = SUPPORTED_OUTPUT_FORMATS.get(key)
    if pil_format is None:
        raise ValidationError(
            f"unsupported output format '{output_format}' (expected one of: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))})")
    if not 1 <= quality <= 100:
        raise ValidationError(f"quality must be between 1 and 100, got {quality}")

    pil_img = Image.fromarray(np.array(raster.to_array()))
    save_options: Dict[str, Any] = {}
    if pil_format == 'JPEG':
        pil_img = pil_img.convert('RGB')
        save_options['quality'] = quality
        save_options['optimize'] = True
    elif pil_format == 'WEBP':
        save_options['quality'] = quality

    output = io.BytesIO()
    pil_img.save(output, format=pil_format, **save_options)
    return output.getvalue()


def encode_png(raster: Raster) -> bytes:
    return encode_image(raster, 'png')
