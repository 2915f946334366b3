"""
GSTShaderGPU/algorithms/codec.py
RGBA <-> elevation (meters) codecs.

Terrarium encoding:
elevation_m = (R * 256 + G + B / 256) - 32768
"""
from __future__ import annotations

import numpy as np

from ..utils.errors import UnsupportedEncodingError

TERRARIUM_OFFSET = 32768.0

SUPPORTED_ENCODINGS = ("terrarium",)
# Recognized in configuration but not implemented yet
RECOGNIZED_ENCODINGS = ("terrarium", "mapbox")


def validate_encoding(encoding: str) -> str:
    """Fail fast on an encoding the pipeline cannot decode."""
    if encoding in SUPPORTED_ENCODINGS:
        return encoding
    if encoding in RECOGNIZED_ENCODINGS:
        raise UnsupportedEncodingError(f"Elevation encoding '{encoding}' is not supported yet")
    raise ValueError(
        f"Unknown elevation encoding '{encoding}', expected one of {RECOGNIZED_ENCODINGS}"
    )


def decode_elevation(rgba: np.ndarray, encoding: str = "terrarium") -> np.ndarray:
    """(H, W, 3|4) uint8 pixels -> (H, W) float32 elevation in meters."""
    validate_encoding(encoding)
    rgb = rgba[..., :3].astype(np.float32)
    r = rgb[..., 0]
    g = rgb[..., 1]
    b = rgb[..., 2]
    return (r * 256.0 + g + b / 256.0 - TERRARIUM_OFFSET).astype(np.float32)


def encode_elevation(elevation: np.ndarray) -> np.ndarray:
    """
    Inverse of ``decode_elevation`` with channels normalized to [0, 1].

    Returns an (H, W, 3) float32 array, the form a color texture receives
    from a shader.
    """
    e = np.asarray(elevation, dtype=np.float64) + TERRARIUM_OFFSET
    r = np.floor(e / 256.0)
    g = np.floor(e - r * 256.0)
    b = (e - r * 256.0 - g) * 256.0
    rgb = np.stack([r, g, b], axis=-1) / 255.0
    return rgb.astype(np.float32)


def encode_elevation_rgba8(elevation: np.ndarray) -> np.ndarray:
    """
    Elevation stored as an 8-bit RGBA texel (opaque alpha).

    Normalized channels are quantized the way a unorm8 render target does,
    round to nearest then clamp, which bounds the round-trip error to one
    blue step (1/256 m).
    """
    rgb = encode_elevation(elevation)
    quantized = np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)
    alpha = np.full(quantized.shape[:-1] + (1,), 255, dtype=np.uint8)
    return np.concatenate([quantized, alpha], axis=-1)
