"""
GSTShaderGPU/core/protocol.py
Custom tile-source protocol callback for host map renderers.

A host registers a scheme (``gsts://``) whose tile URLs carry the index as
query parameters, e.g. ``gsts://info?z={z}&x={x}&y={y}``.
"""
from __future__ import annotations

from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import numpy as np

from .cancellation import CancelToken
from .tile_index import TileIndex
from ..utils.errors import TileCanceledError

PROTOCOL_SCHEME = "gsts"
PROTOCOL_URL_TEMPLATE = "gsts://info?z={z}&x={x}&y={y}"

ProtocolHandler = Callable[[str, Optional[CancelToken]], Optional[np.ndarray]]


def parse_protocol_url(url: str) -> TileIndex:
    """Tile index carried by a protocol URL"""
    params = parse_qs(urlparse(url).query)
    try:
        return TileIndex(int(params["z"][0]), int(params["x"][0]), int(params["y"][0]))
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(f"Malformed tile URL {url!r}: expected z, x and y parameters") from e


def make_protocol_handler(shader, gl: bool = False) -> ProtocolHandler:
    """
    Wrap a ``TerrainShader`` as ``handler(url, cancel_token)``.

    The handler returns the RGBA tile, or None when there is no tile.
    Cancellation is raised as ``TileCanceledError`` so the host can tell an
    aborted request from a failed one.
    """
    backend = "gpu" if gl else None

    def handler(url: str, cancel_token: Optional[CancelToken] = None) -> Optional[np.ndarray]:
        index = parse_protocol_url(url)
        result = shader.compute_tile_result(index, cancel_token, backend=backend)
        if result.canceled or (cancel_token is not None and cancel_token.canceled):
            raise TileCanceledError(f"Tile {tuple(index)} request aborted")
        return result.data

    return handler
