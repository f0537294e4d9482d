# -*- coding: utf-8 -*-
"""
Saliency mapper.

Reduces a raster to a coarse grid of interest scores. Each grid cell covers a
square block of pixels and is scored from four signals in [0, 1]:

  * edge       - mean Sobel gradient magnitude of luma
  * contrast   - luma standard deviation relative to the neighbourhood mean
  * saturation - mean HSV saturation
  * skin       - fraction of pixels inside the YCrCb skin region

Signals are measured on a working copy area-downscaled so its long side is at
most Config.analysis_max_side pixels; cells stay in raster coordinates and are
mapped onto the working copy, so the cost is bounded whatever the raster size.

The weighted sum of the signals is min-max normalized over the whole grid, so
the final ordering of cells always follows the ordering of their raw scores.
"""
import math
import logging
from dataclasses import dataclass
from typing import Tuple, Optional

import cv2
import numpy as np

from .config import Config
from .raster import Raster

logger = logging.getLogger(__name__)

# Mean gradient magnitude produced by a full-range (0 -> 255) step edge with a 3x3 Sobel kernel.
EDGE_NORMALIZER: float = 4.0 * 255.0
FLAT_GRID_TOLERANCE: float = 1e-9


@dataclass(frozen=True)
class SaliencyGrid:
    """Grid of scores in [0, 1]; cell (r, c) covers pixels [r*b, (r+1)*b) x [c*b, (c+1)*b) clipped to the raster."""
    values: np.ndarray
    block_size: int
    raster_width: int
    raster_height: int

    @property
    def rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def cols(self) -> int:
        return int(self.values.shape[1])

    def column_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return _cell_bounds(self.cols, self.block_size, self.raster_width)

    def row_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return _cell_bounds(self.rows, self.block_size, self.raster_height)

    def with_values(self, values: np.ndarray) -> 'SaliencyGrid':
        return SaliencyGrid(values=values, block_size=self.block_size,
                            raster_width=self.raster_width, raster_height=self.raster_height)


def _cell_bounds(count: int, block_size: int, limit: int) -> Tuple[np.ndarray, np.ndarray]:
    starts = np.arange(count, dtype=np.int64) * block_size
    ends = np.minimum(starts + block_size, limit)
    return starts, ends


def choose_block_size(width: int, height: int, max_grid_cells: int) -> int:
    return max(1, int(math.ceil(max(width, height) / float(max_grid_cells))))


def grid_shape(width: int, height: int, block_size: int) -> Tuple[int, int]:
    return int(math.ceil(height / float(block_size))), int(math.ceil(width / float(block_size)))


def analysis_size(width: int, height: int, max_side: int) -> Tuple[int, int]:
    """Working resolution for the signal pass: the raster scaled so its long side is at most max_side."""
    scale = float(max_side) / float(max(width, height))
    if scale >= 1.0:
        return width, height
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def working_image(raster: Raster, config: Optional[Config] = None) -> np.ndarray:
    """Contiguous RGB copy of the raster, area-downscaled to the analysis size."""
    config = config or Config()
    rgb = np.array(raster.rgb(), dtype=np.uint8, order='C')
    work_w, work_h = analysis_size(raster.width, raster.height, config.analysis_max_side)
    if (work_w, work_h) == (raster.width, raster.height):
        return rgb
    return cv2.resize(rgb, (work_w, work_h), interpolation=cv2.INTER_AREA)


def _pixel_ranges(count: int, block_size: int, limit: int, working: int) -> Tuple[np.ndarray, np.ndarray]:
    """Working-image pixel span [lo, hi) of each cell; never empty."""
    starts, ends = _cell_bounds(count, block_size, limit)
    scale = working / float(limit)
    lo = np.clip(np.floor(starts * scale).astype(np.int64), 0, working - 1)
    hi = np.minimum(np.maximum(np.ceil(ends * scale).astype(np.int64), lo + 1), working)
    return lo, hi


@dataclass(frozen=True)
class _BlockLayout:
    rows: Tuple[np.ndarray, np.ndarray]
    cols: Tuple[np.ndarray, np.ndarray]
    counts: np.ndarray

    @classmethod
    def build(cls, raster: Raster, block_size: int, work_w: int, work_h: int) -> '_BlockLayout':
        n_rows, n_cols = grid_shape(raster.width, raster.height, block_size)
        rows = _pixel_ranges(n_rows, block_size, raster.height, work_h)
        cols = _pixel_ranges(n_cols, block_size, raster.width, work_w)
        counts = np.outer(rows[1] - rows[0], cols[1] - cols[0]).astype(np.float64)
        return cls(rows=rows, cols=cols, counts=counts)

    def block_sum(self, values: np.ndarray) -> np.ndarray:
        height, width = values.shape
        integral = np.zeros((height + 1, width + 1), dtype=np.float64)
        integral[1:, 1:] = values.astype(np.float64).cumsum(axis=0).cumsum(axis=1)
        (r0, r1), (c0, c1) = self.rows, self.cols
        return (integral[np.ix_(r1, c1)] - integral[np.ix_(r0, c1)]
                - integral[np.ix_(r1, c0)] + integral[np.ix_(r0, c0)])

    def block_mean(self, values: np.ndarray) -> np.ndarray:
        return self.block_sum(values) / self.counts


def edge_signal(luma: np.ndarray, layout: _BlockLayout) -> np.ndarray:
    # float64 throughout: cv2.magnitude is not bit-stable across threads
    gx = cv2.Sobel(luma, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(luma, cv2.CV_64F, 0, 1, ksize=3)
    mean = layout.block_mean(np.hypot(gx, gy))
    return np.clip(mean / EDGE_NORMALIZER, 0.0, 1.0)


def _neighbourhood_mean(values: np.ndarray) -> np.ndarray:
    """3x3 mean with replicated borders."""
    padded = np.pad(values, 1, mode='edge')
    rows, cols = values.shape
    total = np.zeros_like(values, dtype=np.float64)
    for dy in range(3):
        for dx in range(3):
            total += padded[dy:dy + rows, dx:dx + cols]
    return total / 9.0


def contrast_signal(luma: np.ndarray, layout: _BlockLayout) -> np.ndarray:
    luma64 = luma.astype(np.float64)
    mean = layout.block_mean(luma64)
    mean_sq = layout.block_mean(luma64 * luma64)
    std = np.sqrt(np.maximum(mean_sq - mean * mean, 0.0))
    return std / (std + _neighbourhood_mean(mean) + 1.0)


def saturation_signal(rgb: np.ndarray, layout: _BlockLayout) -> np.ndarray:
    hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
    return layout.block_mean(hsv[:, :, 1]) / 255.0


def skin_signal(ycrcb: np.ndarray, layout: _BlockLayout,
                cr_range: Tuple[int, int], cb_range: Tuple[int, int]) -> np.ndarray:
    lower = np.array([0, cr_range[0], cb_range[0]], dtype=np.uint8)
    upper = np.array([255, cr_range[1], cb_range[1]], dtype=np.uint8)
    mask = cv2.inRange(ycrcb, lower, upper) > 0
    return layout.block_mean(mask)


def normalize_scores(raw: np.ndarray) -> np.ndarray:
    """Min-max rescale to [0, 1]. A flat grid carries no preference and becomes all zeros."""
    low = float(raw.min())
    high = float(raw.max())
    if high - low <= FLAT_GRID_TOLERANCE:
        return np.zeros_like(raw, dtype=np.float64)
    return np.clip((raw - low) / (high - low), 0.0, 1.0)


def raw_block_scores(raster: Raster, config: Optional[Config] = None) -> Tuple[np.ndarray, int]:
    """Weighted, un-normalized block scores and the block size used (in raster pixels)."""
    config = config or Config()
    block_size = choose_block_size(raster.width, raster.height, config.max_grid_cells)

    rgb = working_image(raster, config)
    work_h, work_w = rgb.shape[:2]
    layout = _BlockLayout.build(raster, block_size, work_w, work_h)
    ycrcb = cv2.cvtColor(rgb, cv2.COLOR_RGB2YCrCb)
    luma = ycrcb[:, :, 0]

    raw = np.zeros(layout.counts.shape, dtype=np.float64)
    if config.edge_weight > 0:
        raw += config.edge_weight * edge_signal(luma, layout)
    if config.contrast_weight > 0:
        raw += config.contrast_weight * contrast_signal(luma, layout)
    if config.saturation_weight > 0:
        raw += config.saturation_weight * saturation_signal(rgb, layout)
    if config.skin_weight > 0:
        raw += config.skin_weight * skin_signal(ycrcb, layout, config.skin_cr_range, config.skin_cb_range)
    return raw, block_size


def compute_saliency_grid(raster: Raster, config: Optional[Config] = None) -> SaliencyGrid:
    raw, block_size = raw_block_scores(raster, config)
    values = normalize_scores(raw)
    logger.debug(f"Saliency grid {values.shape[1]}x{values.shape[0]} (block {block_size}px) "
                 f"for {raster.width}x{raster.height} raster, raw range [{raw.min():.4f}, {raw.max():.4f}]")
    return SaliencyGrid(values=values, block_size=block_size,
                        raster_width=raster.width, raster_height=raster.height)
