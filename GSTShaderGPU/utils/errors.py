"""
GSTShaderGPU/utils/errors.py
Exception hierarchy shared by the tile shading pipeline.
"""


class ShadingError(Exception):
    """Base class for all shading pipeline errors."""


class InvalidPaddingError(ShadingError, ValueError):
    """Padding is negative or larger than the tile size."""


class UnsupportedEncodingError(ShadingError, NotImplementedError):
    """The elevation encoding is known but not implemented."""


class MissingCenterTileError(ShadingError):
    """The mandatory center tile of a mosaic could not be loaded."""


class TileUnavailableError(ShadingError):
    """A source tile could not be fetched or decoded."""


class TileCanceledError(ShadingError):
    """The request was canceled before a result was produced."""


class BackendResourceError(ShadingError, RuntimeError):
    """A compute backend could not allocate what it needs."""


class BufferConsumedError(ShadingError, RuntimeError):
    """A transferred buffer was taken twice."""
