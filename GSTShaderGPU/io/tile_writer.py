"""
GSTShaderGPU/io/tile_writer.py
Write shaded RGBA tiles as PNG through rasterio.
"""
from __future__ import annotations

import logging
import warnings

import numpy as np
import rasterio
from rasterio.errors import NotGeoreferencedWarning
from rasterio.io import MemoryFile

logger = logging.getLogger(__name__)


def _png_profile(rgba: np.ndarray) -> dict:
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"Expected an (H, W, 4) RGBA array, got {rgba.shape}")
    height, width = rgba.shape[:2]
    return {
        "driver": "PNG",
        "width": width,
        "height": height,
        "count": 4,
        "dtype": "uint8",
    }


def write_tile_png(path: str, rgba: np.ndarray) -> None:
    profile = _png_profile(rgba)
    bands = np.transpose(np.asarray(rgba, dtype=np.uint8), (2, 0, 1))
    # XYZ tiles carry no georeferencing of their own
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(bands)
    logger.info(f"Wrote {profile['width']}x{profile['height']} tile to {path}")


def encode_tile_png(rgba: np.ndarray) -> bytes:
    """PNG bytes of a tile, for hosts serving tiles over HTTP"""
    profile = _png_profile(rgba)
    bands = np.transpose(np.asarray(rgba, dtype=np.uint8), (2, 0, 1))
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with MemoryFile() as memfile:
            with memfile.open(**profile) as dst:
                dst.write(bands)
            return bytes(memfile.getbuffer())
