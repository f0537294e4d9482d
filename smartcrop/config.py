# -*- coding: utf-8 -*-
import os
import json
import math
import logging
from dataclasses import dataclass, fields, asdict
from typing import Dict, Any, Mapping, Tuple

from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_GRID_CELLS: int = 64
DEFAULT_ANALYSIS_MAX_SIDE: int = 512
# (Cr, Cb) bounds of the skin region in YCrCb space.
DEFAULT_SKIN_CR_RANGE: Tuple[int, int] = (133, 173)
DEFAULT_SKIN_CB_RANGE: Tuple[int, int] = (77, 127)


@dataclass(frozen=True)
class Config:
    """Tunable constants of the saliency mapper and the window search."""
    edge_weight: float = 0.4
    contrast_weight: float = 0.2
    saturation_weight: float = 0.2
    skin_weight: float = 0.2
    skin_cr_range: Tuple[int, int] = DEFAULT_SKIN_CR_RANGE
    skin_cb_range: Tuple[int, int] = DEFAULT_SKIN_CB_RANGE
    max_grid_cells: int = DEFAULT_MAX_GRID_CELLS
    analysis_max_side: int = DEFAULT_ANALYSIS_MAX_SIDE
    thirds_weight: float = 0.2
    thirds_sigma: float = 0.15
    score_epsilon: float = 1e-9

    def __post_init__(self):
        weights = (self.edge_weight, self.contrast_weight, self.saturation_weight, self.skin_weight)
        for name, value in zip(('edge_weight', 'contrast_weight', 'saturation_weight', 'skin_weight'), weights):
            if not _is_finite_number(value) or value < 0:
                raise ValidationError(f"{name} must be a non-negative number, got {value!r}")
        if sum(weights) <= 0:
            raise ValidationError("at least one saliency weight must be positive")
        for name in ('skin_cr_range', 'skin_cb_range'):
            low, high = _as_range(name, getattr(self, name))
            object.__setattr__(self, name, (low, high))
        if not isinstance(self.max_grid_cells, int) or isinstance(self.max_grid_cells, bool) or self.max_grid_cells <= 0:
            raise ValidationError(f"max_grid_cells must be a positive integer, got {self.max_grid_cells!r}")
        if (not isinstance(self.analysis_max_side, int) or isinstance(self.analysis_max_side, bool)
                or self.analysis_max_side < self.max_grid_cells):
            raise ValidationError(f"analysis_max_side must be an integer >= max_grid_cells ({self.max_grid_cells}), "
                                  f"got {self.analysis_max_side!r}")
        if not _is_finite_number(self.thirds_weight) or self.thirds_weight < 0:
            raise ValidationError(f"thirds_weight must be a non-negative number, got {self.thirds_weight!r}")
        if not _is_finite_number(self.thirds_sigma) or self.thirds_sigma <= 0:
            raise ValidationError(f"thirds_sigma must be positive, got {self.thirds_sigma!r}")
        if not _is_finite_number(self.score_epsilon) or self.score_epsilon < 0:
            raise ValidationError(f"score_epsilon must be a non-negative number, got {self.score_epsilon!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Config':
        """Builds a Config from a mapping, ignoring (and warning about) unknown keys."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"  -> Warning: Unknown engine configuration key '{key}' ignored.")
                continue
            if key in ('skin_cr_range', 'skin_cb_range') and isinstance(value, list):
                value = tuple(value)
            values[key] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_finite_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _as_range(name: str, value: Any) -> Tuple[int, int]:
    try:
        low, high = value
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a (low, high) pair, got {value!r}")
    if not (_is_finite_number(low) and _is_finite_number(high)) or not (0 <= low <= high <= 255):
        raise ValidationError(f"{name} must satisfy 0 <= low <= high <= 255, got {value!r}")
    return int(low), int(high)


def load_config_from_file(config_path: str) -> Dict[str, Any]:
    """
    Loads a JSON configuration file and returns its top-level object.
    Raises ValidationError when the file is missing, unreadable or not a JSON object.
    """
    abs_config_path = os.path.abspath(config_path)
    try:
        with open(abs_config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except FileNotFoundError:
        raise ValidationError(f"configuration file not found: {abs_config_path}")
    except json.JSONDecodeError as e:
        raise ValidationError(f"configuration file parsing error ({abs_config_path}): {e}")
    except OSError as e:
        raise ValidationError(f"cannot read configuration file ({abs_config_path}): {e}")
    if not isinstance(config_data, dict):
        raise ValidationError(f"configuration file must contain a JSON object: {abs_config_path}")
    logger.info(f"  -> Info: Configuration file loaded successfully: {abs_config_path}")
    return config_data
