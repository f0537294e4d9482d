# -*- coding: utf-8 -*-
from dataclasses import dataclass, field
from typing import Optional, Tuple, Mapping, Any, Union

from .aspect import AspectRatio, parse_aspect_ratio, to_dimension, resolve_target_size
from .boost import BoostRegion
from .errors import ValidationError

_OPTION_KEYS = {
    'width': 'width',
    'height': 'height',
    'aspect_ratio': 'aspect_ratio',
    'aspectRatio': 'aspect_ratio',
    'ratio': 'aspect_ratio',
    'boost': 'boost',
}


@dataclass(frozen=True)
class SmartCropOptions:
    """What the caller asked for: a ratio, explicit dimensions or neither, plus boosts."""
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[AspectRatio] = None
    boost: Tuple[BoostRegion, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'width', to_dimension(self.width, 'width'))
        object.__setattr__(self, 'height', to_dimension(self.height, 'height'))
        if isinstance(self.aspect_ratio, str):
            object.__setattr__(self, 'aspect_ratio', parse_aspect_ratio(self.aspect_ratio))
        elif self.aspect_ratio is not None and not isinstance(self.aspect_ratio, AspectRatio):
            raise ValidationError(f"aspect_ratio must be a 'W:H' string, got {self.aspect_ratio!r}")
        boosts = self.boost if self.boost is not None else ()
        if isinstance(boosts, (Mapping, BoostRegion)):
            boosts = (boosts,)
        object.__setattr__(self, 'boost', tuple(BoostRegion.from_value(b) for b in boosts))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'SmartCropOptions':
        """Accepts snake_case keys and the camelCase 'aspectRatio' key."""
        if data is None:
            return cls()
        values = {}
        for key, value in data.items():
            target = _OPTION_KEYS.get(key)
            if target is None:
                raise ValidationError(f"unknown smart crop option '{key}'")
            if value is not None:
                values[target] = value
        return cls(**values)

    def target_size(self, raster_width: int, raster_height: int) -> Tuple[int, int]:
        return resolve_target_size(self.aspect_ratio, self.width, self.height, raster_width, raster_height)


OptionsLike = Union[SmartCropOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsLike) -> SmartCropOptions:
    if isinstance(options, SmartCropOptions):
        return options
    if options is None or isinstance(options, Mapping):
        return SmartCropOptions.from_mapping(options)
    raise ValidationError(f"options must be SmartCropOptions or a mapping, got {type(options).__name__}")
