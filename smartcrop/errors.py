# -*- coding: utf-8 -*-
"""Error hierarchy shared by the smart crop pipeline."""


class SmartCropError(Exception):
    """Base class for every error raised by the smart crop engine."""
    pass


class ParseError(SmartCropError):
    """Malformed aspect ratio specification (e.g. 'invalid', '0:1', '16:-9')."""
    pass


class ValidationError(SmartCropError):
    """Non-positive or degenerate dimensions, or malformed option values."""
    pass


class DecodeError(SmartCropError):
    """Input bytes are empty, corrupt or in an unsupported container format."""
    pass


class InternalError(SmartCropError):
    """An invariant of the engine was violated. Should be unreachable."""
    pass
