"""Exceptions raised by the pipeline stages.

Every stage failure is fatal; the CLI catches ``FireMapError`` and exits.
"""


class FireMapError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationError(FireMapError):
    """Missing or invalid configuration (e.g. no MAP_KEY)."""


class BoundaryDataError(FireMapError):
    """Boundary polygons could not be downloaded or read."""


class FireDataError(FireMapError):
    """FIRMS request failed or returned an unusable body."""


class BasemapError(FireMapError):
    """Basemap tiles could not be fetched."""


class AnimationError(FireMapError):
    """Frames could not be encoded into the output file."""
