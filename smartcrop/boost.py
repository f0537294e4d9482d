# -*- coding: utf-8 -*-
import math
import logging
from dataclasses import dataclass
from typing import Iterable, Any, Mapping, Union

import numpy as np

from .errors import ValidationError
from .saliency import SaliencyGrid

logger = logging.getLogger(__name__)

BOOST_FIELDS = ('x', 'y', 'width', 'height', 'weight')


@dataclass(frozen=True)
class BoostRegion:
    """Caller-supplied rectangle (raster pixels) whose cells get +weight*overlap."""
    x: float
    y: float
    width: float
    height: float
    weight: float = 1.0

    def __post_init__(self):
        for name in BOOST_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"boost region {name} must be numeric, got {value!r}")

    @classmethod
    def from_value(cls, value: Union['BoostRegion', Mapping[str, Any]]) -> 'BoostRegion':
        if isinstance(value, BoostRegion):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(f"boost region must be a mapping with {', '.join(BOOST_FIELDS)}, got {value!r}")
        missing = [name for name in BOOST_FIELDS[:4] if name not in value]
        if missing:
            raise ValidationError(f"boost region is missing field(s): {', '.join(missing)}")
        return cls(x=value['x'], y=value['y'], width=value['width'], height=value['height'],
                   weight=value.get('weight', 1.0))

    @property
    def clamped_weight(self) -> float:
        try:
            weight = float(self.weight)
        except OverflowError:
            # ints beyond float range still clamp by sign
            return 1.0 if self.weight > 0 else 0.0
        if not math.isfinite(weight):
            return 0.0
        return max(0.0, min(1.0, weight))

    def is_degenerate(self) -> bool:
        try:
            if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
                return True
        except OverflowError:
            return True
        return self.clamped_weight <= 0 or self.width <= 0 or self.height <= 0


def _axis_overlap(start: float, length: float, cell_starts: np.ndarray, cell_ends: np.ndarray) -> np.ndarray:
    """Overlap length of [start, start+length) with each cell span."""
    start = float(start)
    low = np.maximum(cell_starts.astype(np.float64), start)
    high = np.minimum(cell_ends.astype(np.float64), start + float(length))
    return np.clip(high - low, 0.0, None)


def apply_boosts(grid: SaliencyGrid, boosts: Iterable[BoostRegion]) -> SaliencyGrid:
    """Returns a new grid with every boost region merged in, clamped to [0, 1]."""
    boosts = list(boosts)
    if not boosts:
        return grid

    col_starts, col_ends = grid.column_bounds()
    row_starts, row_ends = grid.row_bounds()
    col_spans = (col_ends - col_starts).astype(np.float64)
    row_spans = (row_ends - row_starts).astype(np.float64)

    values = grid.values.astype(np.float64, copy=True)
    applied = 0
    for region in boosts:
        if region.is_degenerate():
            logger.debug(f"Skipping degenerate boost region {region}.")
            continue
        col_fraction = _axis_overlap(region.x, region.width, col_starts, col_ends) / col_spans
        row_fraction = _axis_overlap(region.y, region.height, row_starts, row_ends) / row_spans
        if not col_fraction.any() or not row_fraction.any():
            logger.debug(f"Skipping boost region {region} outside the {grid.raster_width}x{grid.raster_height} raster.")
            continue
        values += region.clamped_weight * np.outer(row_fraction, col_fraction)
        applied += 1

    logger.debug(f"Applied {applied} of {len(boosts)} boost region(s).")
    return grid.with_values(np.clip(values, 0.0, 1.0))
