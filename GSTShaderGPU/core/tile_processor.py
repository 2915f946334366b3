"""
GSTShaderGPU/core/tile_processor.py
Per-tile orchestration: 3x3 fetch fan-out, mosaic assembly and dispatch to
a CPU or GPU backend.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional

import numpy as np

from .cancellation import CancelToken, check_canceled
from .raster_tile import RasterTile
from .tile_cache import TileCache, TileLoaderFunc
from .tile_index import NEIGHBOR_ORDER, TileIndex, is_valid_tile_index, neighbor_index
from .transfer import TransferBuffer
from ..algorithms.base import ShadingBackend
from ..algorithms.cpu_backend import CpuBackend
from ..algorithms.mosaic import assemble_padded_mosaic
from ..config.shading_config import ShadingConfig
from ..config.system_config import recommended_cache_size, recommended_workers
from ..io.tile_loader import TileLoader
from ..utils.errors import (
    BackendResourceError,
    InvalidPaddingError,
    MissingCenterTileError,
    TileCanceledError,
    UnsupportedEncodingError,
)
from ..utils.types import TileResult

logger = logging.getLogger(__name__)


def _load_backend(name: str, config: ShadingConfig) -> ShadingBackend:
    """Instantiate a backend; the GPU one is imported only when asked for"""
    curve = config.make_response_curve()
    if name == "cpu":
        return CpuBackend(
            encoding=config.elevation_encoding,
            curve=curve,
            color=config.tint_color,
            combine=config.combine,
            max_workers=config.compute_workers or recommended_workers(),
        )
    if name == "gpu":
        try:
            from ..algorithms.gpu_backend import GpuBackend
        except ImportError as e:
            raise BackendResourceError(f"GPU backend is not available: {e}") from e
        return GpuBackend(
            encoding=config.elevation_encoding,
            curve=curve,
            color=config.tint_color,
            combine=config.combine,
            intermediate=config.gpu_intermediate,
        )
    raise ValueError(f"Backend {name} not found")


class TerrainShader:
    """
    Gaussian scale-space terrain shading of XYZ elevation tiles.

    ``compute_tile`` / ``compute_tile_gl`` return a (tile_size, tile_size, 4)
    uint8 RGBA array, or None when there is nothing to return (out of range,
    missing center tile, canceled). ``compute_tile_result`` gives the full
    outcome so a host can tell a cancellation from an error.
    """

    def __init__(self, config: ShadingConfig, loader: Optional[TileLoaderFunc] = None,
                 cache: Optional[TileCache] = None):
        self.config = config.validate()
        self.weights_table = config.weights_table()
        self._owns_loader = loader is None and cache is None
        if cache is None:
            loader = loader or TileLoader(timeout=config.request_timeout)
            cache = TileCache(
                loader,
                cache_size=config.cache_size or recommended_cache_size(),
                max_unavailable=config.max_unavailable,
                unavailable_ttl=config.unavailable_ttl,
            )
        self.cache = cache
        self._fetch_executor = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="gsts-fetch"
        )
        self._request_executor: Optional[ThreadPoolExecutor] = None
        self._backends: Dict[str, ShadingBackend] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # public entry points
    # ------------------------------------------------------------------

    def compute_tile(self, index, cancel_token: Optional[CancelToken] = None) -> Optional[np.ndarray]:
        return self.compute_tile_result(index, cancel_token).data

    def compute_tile_gl(self, index, cancel_token: Optional[CancelToken] = None) -> Optional[np.ndarray]:
        return self.compute_tile_result(index, cancel_token, backend="gpu").data

    def submit_tile(self, index, cancel_token: Optional[CancelToken] = None,
                    backend: Optional[str] = None) -> Future:
        """Compute a tile in the background; the future yields a TileResult"""
        with self._lock:
            if self._request_executor is None:
                self._request_executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers, thread_name_prefix="gsts-request"
                )
            executor = self._request_executor
        return executor.submit(self.compute_tile_result, index, cancel_token, backend)

    def compute_tile_result(self, index, cancel_token: Optional[CancelToken] = None,
                            backend: Optional[str] = None) -> TileResult:
        index = TileIndex(*index)
        backend_name = backend or self.config.backend

        if not self.config.zoom_in_range(index.z):
            return TileResult(index, False, skipped_reason=(
                f"zoom {index.z} outside [{self.config.min_zoom}, {self.config.max_zoom}]"
            ))
        if not is_valid_tile_index(index):
            return TileResult(index, False, skipped_reason=f"row {index.y} outside zoom {index.z}")

        started = time.perf_counter()
        try:
            data = self._process(index, backend_name, cancel_token)
        except TileCanceledError:
            logger.debug(f"Tile {index} canceled")
            return TileResult(index, False, canceled=True)
        except MissingCenterTileError as e:
            logger.debug(f"Tile {index}: {e}")
            return TileResult(index, False, error_message=str(e))
        except (InvalidPaddingError, UnsupportedEncodingError):
            raise
        except BackendResourceError as e:
            logger.error(f"Tile {index} failed on the {backend_name} backend: {e}")
            return TileResult(index, False, error_message=str(e))
        except Exception as e:
            logger.error(f"Tile {index} processing failed: {e}")
            return TileResult(index, False, error_message=str(e))

        logger.debug(f"Tile {index} shaded on {backend_name} in {time.perf_counter() - started:.3f}s")
        return TileResult(index, True, data=data)

    # ------------------------------------------------------------------
    # pipeline
    # ------------------------------------------------------------------

    def _process(self, index: TileIndex, backend_name: str,
                 cancel_token: Optional[CancelToken]) -> np.ndarray:
        backend = self.get_backend(backend_name)

        check_canceled(cancel_token)
        tiles = self._fetch_neighborhood(index, cancel_token)
        try:
            check_canceled(cancel_token)
            center = tiles[0]
            if center is None:
                raise MissingCenterTileError(f"No center tile for {index}")
            mosaic = assemble_padded_mosaic(
                center.pixels,
                [tile.pixels if tile is not None else None for tile in tiles[1:]],
                self.config.padding,
            )
            tile_size = center.size
        finally:
            for tile in tiles:
                if tile is not None:
                    tile.release()

        weights = self.weights_table.for_zoom(index.z).as_tuple()
        shaded = backend.compute(
            TransferBuffer(mosaic), tile_size, self.config.padding, weights, cancel_token
        )
        return shaded.take()

    def _fetch_neighborhood(self, index: TileIndex,
                            cancel_token: Optional[CancelToken]) -> List[Optional[RasterTile]]:
        """
        Center + 8 neighbors, all retained. Every load settles before this
        returns, failures included.
        """
        indices = [index] + [neighbor_index(index, d) for d in NEIGHBOR_ORDER]
        futures = [
            self._fetch_executor.submit(
                self.cache.get, idx, self.config.source_pattern, cancel_token, True
            )
            for idx in indices
        ]
        wait(futures)

        tiles: List[Optional[RasterTile]] = []
        for idx, future in zip(indices, futures):
            try:
                tiles.append(future.result())
            except Exception as e:
                logger.warning(f"Loading tile {idx} failed: {e}")
                tiles.append(None)
        return tiles

    def get_backend(self, name: str) -> ShadingBackend:
        with self._lock:
            backend = self._backends.get(name)
            if backend is None:
                backend = _load_backend(name, self.config)
                self._backends[name] = backend
            return backend

    # ------------------------------------------------------------------

    def clear_cache(self):
        self.cache.clear()

    def close(self):
        with self._lock:
            backends = list(self._backends.values())
            self._backends.clear()
            request_executor, self._request_executor = self._request_executor, None
        if request_executor is not None:
            request_executor.shutdown(wait=True)
        self._fetch_executor.shutdown(wait=True)
        for backend in backends:
            backend.close()
        if self._owns_loader and isinstance(self.cache.loader, TileLoader):
            self.cache.loader.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
