"""
GSTShaderGPU/core/tile_index.py
XYZ tile index arithmetic: antimeridian wrap and 8-way neighbors.
"""
from typing import NamedTuple


class TileIndex(NamedTuple):
    z: int
    x: int
    y: int


# Order of the neighbors around the center tile of a mosaic
NEIGHBOR_ORDER = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

_OFFSETS = {
    "N": (0, -1),
    "NE": (1, -1),
    "E": (1, 0),
    "SE": (1, 1),
    "S": (0, 1),
    "SW": (-1, 1),
    "W": (-1, 0),
    "NW": (-1, -1),
}

_OPPOSITES = {
    "N": "S",
    "NE": "SW",
    "E": "W",
    "SE": "NW",
    "S": "N",
    "SW": "NE",
    "W": "E",
    "NW": "SE",
}


def wrap_tile_index(index: TileIndex) -> TileIndex:
    """Bring x back into [0, 2**z). y and z are left untouched."""
    tiles_per_axis = 2 ** index.z
    # Python's modulo is already non-negative for a positive divisor
    return TileIndex(index.z, index.x % tiles_per_axis, index.y)


def is_valid_tile_index(index: TileIndex) -> bool:
    """y never wraps, so anything above the pole or below it has no tile."""
    if index.z < 0:
        return False
    return 0 <= index.y < 2 ** index.z


def neighbor_index(index: TileIndex, direction: str) -> TileIndex:
    """
    Neighbor of a tile in one of the 8 directions.

    The result is neither wrapped nor validated, callers do that before
    fetching.
    """
    try:
        dx, dy = _OFFSETS[direction]
    except KeyError:
        raise ValueError(f"Unknown tile direction: {direction}") from None
    return TileIndex(index.z, index.x + dx, index.y + dy)


def opposite(direction: str) -> str:
    try:
        return _OPPOSITES[direction]
    except KeyError:
        raise ValueError(f"Unknown tile direction: {direction}") from None


def format_source_url(pattern: str, index: TileIndex) -> str:
    """Substitute {z}/{x}/{y} of a locator template with the wrapped index."""
    wrapped = wrap_tile_index(index)
    return (
        pattern
        .replace("{x}", str(wrapped.x))
        .replace("{y}", str(wrapped.y))
        .replace("{z}", str(wrapped.z))
    )
