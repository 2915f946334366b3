"""
GSTShaderGPU/algorithms/mosaic.py
Stitch a 3x3 tile neighborhood into one padded RGBA raster and crop it back.

The mosaic is given as the center tile plus its neighbors in the order
N, NE, E, SE, S, SW, W, NW. Only the ``padding`` wide strip of each
neighbor that touches the center tile is copied.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..core.tile_index import NEIGHBOR_ORDER
from ..utils.errors import InvalidPaddingError, MissingCenterTileError

logger = logging.getLogger(__name__)


def validate_padding(padding: int, tile_size: int) -> None:
    if padding < 0 or padding > tile_size:
        raise InvalidPaddingError(
            f"The padding ({padding}) cannot be lower than 0 or greater than the tile size ({tile_size})"
        )


def _regions(ts: int, p: int):
    """
    For every direction: (source rows, source cols) inside the neighbor and
    (destination rows, destination cols) inside the padded canvas.
    """
    near = slice(0, p)          # first p rows/cols of a neighbor
    far = slice(ts - p, ts)     # last p rows/cols of a neighbor
    full = slice(0, ts)
    before = slice(0, p)        # canvas border above / left of the center
    center = slice(p, p + ts)
    after = slice(p + ts, ts + 2 * p)
    return {
        "N": ((far, full), (before, center)),
        "NE": ((far, near), (before, after)),
        "E": ((full, near), (center, after)),
        "SE": ((near, near), (after, after)),
        "S": ((near, full), (after, center)),
        "SW": ((near, far), (after, before)),
        "W": ((full, far), (center, before)),
        "NW": ((far, far), (before, before)),
    }


def assemble_padded_mosaic(center: Optional[np.ndarray],
                           neighbors: Sequence[Optional[np.ndarray]],
                           padding: int = 60) -> np.ndarray:
    """
    Build a (ts + 2p, ts + 2p, 4) uint8 canvas from a center tile and its
    8 neighbors. A missing neighbor leaves its border region transparent
    black; a missing center tile is an error.
    """
    if center is None:
        raise MissingCenterTileError("The center tile must be non-null")
    if len(neighbors) != len(NEIGHBOR_ORDER):
        raise ValueError(f"Expected {len(NEIGHBOR_ORDER)} neighbors, got {len(neighbors)}")

    ts = int(center.shape[0])
    validate_padding(padding, ts)

    final_size = ts + 2 * padding
    canvas = np.zeros((final_size, final_size, 4), dtype=np.uint8)
    canvas[padding:padding + ts, padding:padding + ts] = center[:, :, :4]

    if padding == 0:
        return canvas

    regions = _regions(ts, padding)
    for direction, tile in zip(NEIGHBOR_ORDER, neighbors):
        if tile is None:
            continue
        if tile.shape[:2] != (ts, ts):
            logger.warning(
                f"Neighbor {direction} is {tile.shape[1]}x{tile.shape[0]}, expected {ts}x{ts}; leaving a gap"
            )
            continue
        (src_rows, src_cols), (dst_rows, dst_cols) = regions[direction]
        canvas[dst_rows, dst_cols] = tile[src_rows, src_cols, :4]

    return canvas


def trim_padded_tile(padded: np.ndarray, tile_size: int, padding: int) -> np.ndarray:
    """Crop the padding border, returning a (tile_size, tile_size, ...) copy."""
    trimmed = padded[padding:padding + tile_size, padding:padding + tile_size]
    if trimmed.shape[0] != tile_size or trimmed.shape[1] != tile_size:
        raise ValueError(
            f"Cannot trim a {padded.shape[1]}x{padded.shape[0]} raster to {tile_size} with padding {padding}"
        )
    return np.ascontiguousarray(trimmed)
