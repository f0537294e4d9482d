# -*- coding: utf-8 -*-
"""Raster and crop window value types."""
from dataclasses import dataclass, field
from typing import Tuple, Dict, Any

import numpy as np

from .errors import ValidationError

SUPPORTED_CHANNELS: Tuple[int, ...] = (3, 4)


@dataclass(frozen=True)
class Raster:
    """Decoded 8-bit image, row-major, RGB or RGBA. Never mutated by the engine."""
    width: int
    height: int
    channels: int
    data: bytes = field(repr=False)

    def __post_init__(self):
        for name in ('width', 'height'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"raster {name} must be a positive integer, got {value!r}")
        if self.channels not in SUPPORTED_CHANNELS:
            raise ValidationError(f"raster channel count must be 3 or 4, got {self.channels!r}")
        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, 'data', bytes(self.data))
        if not isinstance(self.data, bytes):
            raise ValidationError(f"raster data must be bytes, got {type(self.data).__name__}")
        expected = self.width * self.height * self.channels
        if len(self.data) != expected:
            raise ValidationError(
                f"raster data length must equal width*height*channels ({expected}), got {len(self.data)}")

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'Raster':
        """Builds a raster from an HxWx3 or HxWx4 uint8 array (RGB/RGBA order)."""
        if array.ndim != 3 or array.shape[2] not in SUPPORTED_CHANNELS:
            raise ValidationError(f"array must have shape (height, width, 3|4), got {array.shape}")
        if array.dtype != np.uint8:
            raise ValidationError(f"array dtype must be uint8, got {array.dtype}")
        height, width, channels = array.shape
        return cls(width=int(width), height=int(height), channels=int(channels),
                   data=np.ascontiguousarray(array).tobytes())

    def to_array(self) -> np.ndarray:
        """Read-only HxWxC view over the pixel bytes."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, self.channels)

    def rgb(self) -> np.ndarray:
        """Read-only HxWx3 view, alpha dropped."""
        return self.to_array()[:, :, :3]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class CropWindow:
    x: int
    y: int
    width: int
    height: int
    score: float = 0.0

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(x1, y1, x2, y2) form, exclusive right/bottom edge."""
        return self.x, self.y, self.x + self.width, self.y + self.height

    def to_dict(self) -> Dict[str, Any]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height, 'score': self.score}


@dataclass(frozen=True)
class CropResult:
    window: CropWindow
    raster: Raster
