"""
GSTShaderGPU/core/raster_tile.py
Decoded source tile shared read-only between concurrent requests.
"""
from __future__ import annotations

import threading
import logging

import numpy as np

from ..utils.errors import TileUnavailableError

logger = logging.getLogger(__name__)


class RasterTile:
    """
    Immutable RGBA bitmap owned by the tile cache.

    Readers that hold on to the pixels across an eviction (mosaic assembly
    running on another thread) call ``retain`` / ``release``. ``close`` asks
    for the buffer to be freed; it happens immediately when nobody retains
    the tile, otherwise when the last retainer releases it.
    """

    def __init__(self, pixels: np.ndarray, url: str = ""):
        pixels = np.asarray(pixels, dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an RGBA array, got shape {pixels.shape}")
        if pixels.shape[0] != pixels.shape[1]:
            raise ValueError(f"Tiles must be square, got {pixels.shape[1]}x{pixels.shape[0]}")
        # Own a private copy only when the caller kept write access
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.flags.writeable = False
        self._pixels = pixels
        self.url = url
        self.size = int(pixels.shape[0])
        self._retained = 0
        self._close_requested = False
        self._lock = threading.Lock()

    @property
    def pixels(self) -> np.ndarray:
        pixels = self._pixels
        if pixels is None:
            raise TileUnavailableError(f"Tile {self.url} was already released")
        return pixels

    @property
    def closed(self) -> bool:
        return self._pixels is None

    def retain(self) -> "RasterTile":
        with self._lock:
            if self._pixels is None:
                raise TileUnavailableError(f"Tile {self.url} was already released")
            self._retained += 1
        return self

    def release(self) -> None:
        with self._lock:
            if self._retained == 0:
                return
            self._retained -= 1
            if self._retained == 0 and self._close_requested:
                self._free()

    def close(self) -> None:
        with self._lock:
            self._close_requested = True
            if self._retained == 0:
                self._free()

    def _free(self):
        if self._pixels is not None:
            logger.debug(f"Freeing tile buffer {self.url}")
        self._pixels = None

    def __repr__(self):
        return f"RasterTile(url={self.url!r}, size={self.size}, closed={self.closed})"
