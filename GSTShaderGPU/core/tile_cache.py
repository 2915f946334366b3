"""
GSTShaderGPU/core/tile_cache.py
LRU cache of decoded source tiles with memoization of unavailable tiles.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

import numpy as np

from .cancellation import CancelToken, is_canceled
from .raster_tile import RasterTile
from .tile_index import TileIndex, format_source_url, is_valid_tile_index
from ..utils.errors import TileCanceledError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1000
DEFAULT_MAX_UNAVAILABLE = 10000

# loader(url, cancel_token) -> (H, W, 4) uint8 array, raises on failure
TileLoaderFunc = Callable[[str, Optional[CancelToken]], np.ndarray]


class UnavailableSet:
    """
    Locators known to have no tile.

    Bounded by item count (oldest forgotten first) and optionally by a
    time-to-live, after which a locator may be tried again.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_UNAVAILABLE, ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[str, float]" = OrderedDict()

    def add(self, url: str) -> None:
        self._entries[url] = self._clock()
        self._entries.move_to_end(url)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __contains__(self, url: str) -> bool:
        added = self._entries.get(url)
        if added is None:
            return False
        if self.ttl is not None and self._clock() - added >= self.ttl:
            del self._entries[url]
            return False
        return True

    def __len__(self):
        return len(self._entries)

    def clear(self):
        self._entries.clear()


class TileCache:
    """
    Cache of decoded tiles keyed by resolved locator (pattern + wrapped index).

    ``get`` never raises for a missing tile: load failures, decode failures
    and cancellation all come back as ``None``. Loads run outside the lock
    and concurrent misses for the same key are not deduplicated.
    """

    def __init__(self, loader: TileLoaderFunc, cache_size: int = DEFAULT_CACHE_SIZE,
                 max_unavailable: int = DEFAULT_MAX_UNAVAILABLE,
                 unavailable_ttl: Optional[float] = None):
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")
        self.loader = loader
        self.cache_size = cache_size
        self._tiles: "OrderedDict[str, RasterTile]" = OrderedDict()
        self._unavailable = UnavailableSet(max_unavailable, unavailable_ttl)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, index: TileIndex, source_pattern: str,
            cancel_token: Optional[CancelToken] = None,
            retain: bool = False) -> Optional[RasterTile]:
        """
        Tile at ``index`` for ``source_pattern`` or None.

        With ``retain=True`` the returned tile is retained on behalf of the
        caller, who must ``release`` it; eviction then cannot free its
        pixels while they are in use.
        """
        if not is_valid_tile_index(index):
            return None

        url = format_source_url(source_pattern, index)

        with self._lock:
            if url in self._unavailable:
                return None
            tile = self._tiles.get(url)
            if tile is not None:
                self._tiles.move_to_end(url)
                self._hits += 1
                return tile.retain() if retain else tile
            self._misses += 1

        if is_canceled(cancel_token):
            return None

        try:
            pixels = self.loader(url, cancel_token)
            tile = RasterTile(pixels, url)
        except TileCanceledError:
            return None
        except Exception as e:
            if is_canceled(cancel_token):
                return None
            logger.debug(f"Tile unavailable {url}: {e}")
            with self._lock:
                self._unavailable.add(url)
            return None

        # A load finishing after a cancel is dropped, not cached
        if is_canceled(cancel_token):
            tile.close()
            return None

        with self._lock:
            existing = self._tiles.get(url)
            if existing is not None:
                # Another caller inserted the same key while we were loading
                tile.close()
                tile = existing
                self._tiles.move_to_end(url)
            else:
                self._tiles[url] = tile
                self._evict_locked()
            return tile.retain() if retain else tile

    def _evict_locked(self):
        while len(self._tiles) > self.cache_size:
            url, evicted = self._tiles.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicting tile {url}")
            evicted.close()

    def is_unavailable(self, index: TileIndex, source_pattern: str) -> bool:
        url = format_source_url(source_pattern, index)
        with self._lock:
            return url in self._unavailable

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._tiles

    def __len__(self):
        with self._lock:
            return len(self._tiles)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "tiles": len(self._tiles),
                "unavailable": len(self._unavailable),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def clear(self):
        """Drop every cached tile and every unavailable marker."""
        with self._lock:
            tiles = list(self._tiles.values())
            self._tiles.clear()
            self._unavailable.clear()
        for tile in tiles:
            tile.close()
        logger.debug(f"Cleared tile cache ({len(tiles)} tiles)")

