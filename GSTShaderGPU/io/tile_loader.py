"""
GSTShaderGPU/io/tile_loader.py
Fetch and decode source tiles (HTTP or local files) into RGBA arrays.
"""
from __future__ import annotations

import logging
import os
import warnings
from typing import Optional
from urllib.parse import urlparse, unquote

import numpy as np
import requests
from rasterio.errors import NotGeoreferencedWarning
from rasterio.io import MemoryFile

from ..core.cancellation import CancelToken, check_canceled
from ..utils.errors import TileUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
_CHUNK_SIZE = 64 * 1024


def decode_tile_image(content: bytes, url: str = "") -> np.ndarray:
    """
    Decode an encoded image (PNG, WebP, JPEG ...) into an (H, W, 4) uint8
    array using GDAL through rasterio.
    """
    try:
        # XYZ tiles carry no georeferencing of their own
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with MemoryFile(content) as memfile:
                with memfile.open() as src:
                    bands = src.read(out_dtype=np.uint8)
    except Exception as e:
        raise TileUnavailableError(f"Could not decode tile {url}: {e}") from e

    count, height, width = bands.shape
    if count == 4:
        rgba = bands
    elif count == 3:
        alpha = np.full((1, height, width), 255, dtype=np.uint8)
        rgba = np.concatenate([bands, alpha], axis=0)
    else:
        raise TileUnavailableError(f"Tile {url} has {count} band(s), expected RGB or RGBA")

    return np.ascontiguousarray(np.transpose(rgba, (1, 2, 0)))


class TileLoader:
    """
    Default source tile loader.

    ``http(s)://`` locators go through a shared ``requests.Session``;
    ``file://`` locators and bare paths are read from disk. Any failure is
    reported as ``TileUnavailableError`` so the cache can memoize it.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, url: str, cancel_token: Optional[CancelToken] = None) -> np.ndarray:
        content = self.fetch(url, cancel_token)
        check_canceled(cancel_token)
        return decode_tile_image(content, url)

    def fetch(self, url: str, cancel_token: Optional[CancelToken] = None) -> bytes:
        scheme = urlparse(url).scheme.lower()
        if scheme in ("http", "https"):
            return self._fetch_http(url, cancel_token)
        if scheme == "file":
            return self._read_file(unquote(urlparse(url).path))
        if scheme == "" or (len(scheme) == 1 and os.name == "nt"):
            return self._read_file(url)
        raise TileUnavailableError(f"Unsupported tile locator scheme: {url}")

    def _fetch_http(self, url: str, cancel_token: Optional[CancelToken]) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise TileUnavailableError(f"Fetch failed: {url} ({e})") from e

        with response:
            if not response.ok:
                raise TileUnavailableError(f"Fetch failed: {response.status_code} {url}")
            chunks = []
            try:
                # The body is streamed so that a cancel aborts the download
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    check_canceled(cancel_token)
                    chunks.append(chunk)
            except requests.RequestException as e:
                raise TileUnavailableError(f"Fetch failed: {url} ({e})") from e
        return b"".join(chunks)

    @staticmethod
    def _read_file(path: str) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise TileUnavailableError(f"Could not read tile file {path}: {e}") from e

    def close(self):
        self.session.close()
