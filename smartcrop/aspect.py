# -*- coding: utf-8 -*-
import math
import logging
from fractions import Fraction
from dataclasses import dataclass
from typing import Tuple, Optional, Any

from .errors import ParseError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AspectRatio:
    """Width:height ratio kept as a rational in lowest terms."""
    width: int
    height: int

    @classmethod
    def of(cls, width: Any, height: Any) -> 'AspectRatio':
        ratio = Fraction(width) / Fraction(height)
        return cls(ratio.numerator, ratio.denominator)

    @property
    def value(self) -> float:
        return self.width / self.height

    def __str__(self) -> str:
        return f"{self.width}:{self.height}"


def _parse_component(text: str, label: str, ratio_str: str) -> Fraction:
    text = text.strip()
    if not text:
        raise ParseError(f"aspect ratio {label} is missing in '{ratio_str}'")
    if '/' in text or '_' in text:
        raise ParseError(f"aspect ratio {label} must be numeric, got '{text}' in '{ratio_str}'")
    try:
        value = Fraction(text)
    except (ValueError, ZeroDivisionError):
        raise ParseError(f"aspect ratio {label} must be numeric, got '{text}' in '{ratio_str}'")
    if value <= 0:
        raise ParseError(f"aspect ratio must be positive, got {label} '{text}' in '{ratio_str}'")
    return value


def parse_aspect_ratio(ratio_str: Any) -> AspectRatio:
    """
    Parses 'W:H' (e.g. '16:9', '1.5:1') or a bare positive number ('1.777').
    Raises ParseError naming the violated constraint.
    """
    if not isinstance(ratio_str, str):
        raise ParseError(f"aspect ratio must be a 'W:H' string, got {type(ratio_str).__name__}")
    text = ratio_str.strip()
    if not text:
        raise ParseError("aspect ratio must not be empty")

    if ':' in text:
        parts = text.split(':')
        if len(parts) != 2:
            raise ParseError(f"aspect ratio must have exactly one ':' separator, got '{ratio_str}'")
        w = _parse_component(parts[0], 'width', ratio_str)
        h = _parse_component(parts[1], 'height', ratio_str)
    else:
        w = _parse_component(text, 'value', ratio_str)
        h = Fraction(1)
    return AspectRatio.of(w, h)


def to_dimension(value: Any, name: str) -> Optional[int]:
    """Validates an explicit crop dimension. None stays None."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a positive number, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        raise ValidationError(f"{name} is too large to be a pixel dimension")
    if not finite:
        raise ValidationError(f"{name} must be finite, got {value!r}")
    dimension = int(round(value))
    if dimension <= 0:
        raise ValidationError(f"{name} must be positive, got {value!r}")
    return dimension


def fit_ratio(ratio: AspectRatio, max_width: int, max_height: int) -> Tuple[int, int]:
    """Largest width x height of the given ratio that fits inside max_width x max_height."""
    if max_width <= 0 or max_height <= 0:
        raise ValidationError(f"cannot fit a window into a {max_width}x{max_height} area")
    rw, rh = ratio.width, ratio.height
    if max_width * rh >= max_height * rw:
        height = max_height
        width = (2 * height * rw + rh) // (2 * rh)
    else:
        width = max_width
        height = (2 * width * rh + rw) // (2 * rw)
    width = max(1, min(max_width, width))
    height = max(1, min(max_height, height))
    return width, height


def resolve_target_size(aspect_ratio: Optional[AspectRatio], width: Optional[int], height: Optional[int],
                        raster_width: int, raster_height: int) -> Tuple[int, int]:
    """
    Turns the caller's crop specification into the window size to search with.

    Exactly one style is honoured: an aspect ratio yields the largest fitting
    window; explicit width and height yield that exact size when it fits,
    otherwise the largest window of the implied ratio; a single dimension keeps
    the source's other dimension; nothing at all yields the full frame.
    """
    if aspect_ratio is not None:
        if width is not None or height is not None:
            logger.warning(f"  -> Warning: Both aspect ratio '{aspect_ratio}' and width/height given. Ignoring width/height.")
        return fit_ratio(aspect_ratio, raster_width, raster_height)

    if width is not None and height is not None:
        if width <= raster_width and height <= raster_height:
            return width, height
        logger.debug(f"Requested {width}x{height} exceeds {raster_width}x{raster_height}; fitting the implied ratio instead.")
        return fit_ratio(AspectRatio.of(width, height), raster_width, raster_height)
    if width is not None:
        return min(width, raster_width), raster_height
    if height is not None:
        return raster_width, min(height, raster_height)
    return raster_width, raster_height
