# -*- coding: utf-8 -*-
"""
Window search.

The window size is fixed by the caller; only its position is searched, at
grid-cell granularity. Each candidate is scored as

    coverage-weighted mean saliency + thirds_weight * thirds bonus

where the thirds bonus is the coverage-weighted mean saliency re-weighted by
Gaussian bumps centred on the four rule-of-thirds intersections of the
candidate window. Ties (within Config.score_epsilon) are broken by
    1. window centre closest to the raster centre,
    2. smallest y,
    3. smallest x.
A zero-saliency raster therefore always yields the centred window.
"""
import logging
from typing import List, Tuple, Optional

import numpy as np

from .config import Config
from .errors import ValidationError
from .raster import CropWindow
from .saliency import SaliencyGrid

logger = logging.getLogger(__name__)


def get_rule_points(width: int, height: int) -> List[Tuple[float, float]]:
    """The four rule-of-thirds intersections of a width x height frame."""
    if width <= 0 or height <= 0:
        raise ValidationError(f"cannot compute rule points for invalid size {width}x{height}")
    return [(w, h) for w in (width / 3, 2 * width / 3) for h in (height / 3, 2 * height / 3)]


def candidate_positions(max_offset: int, step: int) -> np.ndarray:
    """Offsets 0, step, 2*step ... plus the last valid and the centred offset."""
    if max_offset <= 0:
        return np.zeros(1, dtype=np.int64)
    positions = set(range(0, max_offset + 1, max(1, step)))
    positions.add(max_offset)
    positions.add(max_offset // 2)
    return np.array(sorted(positions), dtype=np.int64)


def _coverage(positions: np.ndarray, length: int, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
    """(candidates x cells) fraction of each cell covered by [pos, pos+length)."""
    low = np.maximum(starts[None, :], positions[:, None])
    high = np.minimum(ends[None, :], positions[:, None] + length)
    overlap = np.clip(high - low, 0, None).astype(np.float64)
    return overlap / (ends - starts).astype(np.float64)[None, :]


def _thirds_bumps(positions: np.ndarray, length: int, starts: np.ndarray, ends: np.ndarray, sigma: float) -> np.ndarray:
    """(candidates x cells) sum of the Gaussian bumps of the two third-lines along one axis."""
    centres = (starts + ends).astype(np.float64) / 2.0
    spread = sigma * length
    bumps = np.zeros((positions.shape[0], centres.shape[0]), dtype=np.float64)
    for fraction in (1.0 / 3.0, 2.0 / 3.0):
        line = positions.astype(np.float64)[:, None] + fraction * length
        bumps += np.exp(-0.5 * ((centres[None, :] - line) / spread) ** 2)
    return bumps


def _weighted_mean(row_weights: np.ndarray, values: np.ndarray, col_weights: np.ndarray) -> np.ndarray:
    """(ys x xs) mean of values weighted by outer(row_weights[y], col_weights[x])."""
    partial = np.einsum('yr,rc->yc', row_weights, values)
    mass = np.einsum('yc,xc->yx', partial, col_weights)
    total = np.outer(row_weights.sum(axis=1), col_weights.sum(axis=1))
    result = np.zeros_like(mass)
    np.divide(mass, total, out=result, where=total > 0)
    return result


def score_candidates(grid: SaliencyGrid, crop_width: int, crop_height: int,
                     config: Optional[Config] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Composite scores for every candidate position: (xs, ys, scores[ys, xs])."""
    config = config or Config()
    width, height = grid.raster_width, grid.raster_height
    xs = candidate_positions(width - crop_width, grid.block_size)
    ys = candidate_positions(height - crop_height, grid.block_size)

    col_starts, col_ends = grid.column_bounds()
    row_starts, row_ends = grid.row_bounds()
    col_cover = _coverage(xs, crop_width, col_starts, col_ends)
    row_cover = _coverage(ys, crop_height, row_starts, row_ends)

    scores = _weighted_mean(row_cover, grid.values, col_cover)
    if config.thirds_weight > 0:
        col_thirds = col_cover * _thirds_bumps(xs, crop_width, col_starts, col_ends, config.thirds_sigma)
        row_thirds = row_cover * _thirds_bumps(ys, crop_height, row_starts, row_ends, config.thirds_sigma)
        scores = scores + config.thirds_weight * _weighted_mean(row_thirds, grid.values, col_thirds)
    return xs, ys, scores


def find_best_window(grid: SaliencyGrid, crop_width: int, crop_height: int,
                     config: Optional[Config] = None) -> CropWindow:
    config = config or Config()
    width, height = grid.raster_width, grid.raster_height
    if not (0 < crop_width <= width and 0 < crop_height <= height):
        raise ValidationError(f"crop size {crop_width}x{crop_height} must be positive and fit inside {width}x{height}")

    xs, ys, scores = score_candidates(grid, crop_width, crop_height, config)
    best_score = float(scores.max())
    tied = np.argwhere(scores >= best_score - config.score_epsilon)

    def tie_key(index: np.ndarray) -> Tuple[int, int, int]:
        x = int(xs[index[1]])
        y = int(ys[index[0]])
        centre_distance = (2 * x + crop_width - width) ** 2 + (2 * y + crop_height - height) ** 2
        return centre_distance, y, x

    best_index = min(tied, key=tie_key)
    _, best_y, best_x = tie_key(best_index)
    window = CropWindow(x=best_x, y=best_y, width=crop_width, height=crop_height,
                        score=float(scores[best_index[0], best_index[1]]))
    logger.debug(f"Searched {xs.size}x{ys.size} positions for a {crop_width}x{crop_height} window; "
                 f"best {window} ({len(tied)} tied)")
    return window
