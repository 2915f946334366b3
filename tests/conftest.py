"""Shared fixtures: synthetic terrarium tiles and an in-memory tile loader."""
import sys
import threading
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from GSTShaderGPU.algorithms.codec import encode_elevation_rgba8  # noqa: E402
from GSTShaderGPU.core.tile_index import NEIGHBOR_ORDER, TileIndex, format_source_url, neighbor_index  # noqa: E402
from GSTShaderGPU.utils.errors import TileUnavailableError  # noqa: E402

MEMORY_PATTERN = "mem://{z}/{x}/{y}"


def terrarium_tile(elevation) -> np.ndarray:
    """RGBA uint8 terrarium tile of an elevation array"""
    return encode_elevation_rgba8(np.asarray(elevation, dtype=np.float32))


class MemoryLoader:
    """Loader serving tiles from a dict keyed by resolved locator"""

    def __init__(self, tiles=None, on_load=None):
        self.tiles = dict(tiles or {})
        self.calls = []
        self.on_load = on_load
        self._lock = threading.Lock()

    def add(self, index, pixels, pattern=MEMORY_PATTERN):
        self.tiles[format_source_url(pattern, TileIndex(*index))] = pixels

    def add_neighborhood(self, center, center_pixels, neighbor_pixels=None, pattern=MEMORY_PATTERN):
        center = TileIndex(*center)
        self.add(center, center_pixels, pattern)
        for direction in NEIGHBOR_ORDER:
            pixels = neighbor_pixels if neighbor_pixels is not None else center_pixels
            if callable(pixels):
                pixels = pixels(direction)
            if pixels is not None:
                self.add(neighbor_index(center, direction), pixels, pattern)

    def __call__(self, url, cancel_token=None):
        with self._lock:
            self.calls.append(url)
        if self.on_load is not None:
            self.on_load(url, cancel_token)
        try:
            return self.tiles[url]
        except KeyError:
            raise TileUnavailableError(f"No tile at {url}") from None


@pytest.fixture
def memory_loader():
    return MemoryLoader()
