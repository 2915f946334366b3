"""
GSTShaderGPU/algorithms/cpu_backend.py
Numeric shading pipeline running on a worker thread pool.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from .base import ShadingBackend
from .codec import decode_elevation, validate_encoding
from .composite import RGBColor, ResponseCurve, make_response_curve, shade_elevation
from .mosaic import trim_padded_tile
from ..core.cancellation import CancelToken, check_canceled
from ..core.transfer import TransferBuffer

logger = logging.getLogger(__name__)


class CpuBackend(ShadingBackend):
    """
    Runs decode -> blur x5 -> delta -> combine -> respond -> tint -> trim
    off the calling thread. numpy / scipy release the GIL inside the
    convolutions, so several tiles progress in parallel.
    """

    name = "cpu"

    def __init__(self, encoding: str = "terrarium", curve: Optional[ResponseCurve] = None,
                 color: RGBColor = (0, 0, 0), combine: str = "sum", max_workers: int = 2):
        self.encoding = validate_encoding(encoding)
        self.curve = curve or make_response_curve()
        self.color = tuple(color)
        self.combine = combine
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gsts-cpu")

    def submit(self, mosaic: TransferBuffer, tile_size: int, padding: int,
               weights: Sequence[float], cancel_token: Optional[CancelToken] = None) -> Future:
        return self._executor.submit(
            self._run, mosaic, tile_size, padding, tuple(weights), cancel_token
        )

    def compute(self, mosaic, tile_size, padding, weights, cancel_token=None):
        return self.submit(mosaic, tile_size, padding, weights, cancel_token).result()

    def _run(self, mosaic: TransferBuffer, tile_size: int, padding: int,
             weights: Sequence[float], cancel_token: Optional[CancelToken]) -> TransferBuffer:
        pixels = mosaic.take()
        check_canceled(cancel_token)

        elevation = decode_elevation(pixels, self.encoding)
        del pixels

        shaded = shade_elevation(
            elevation, weights, self.curve, self.color,
            combine=self.combine, cancel_token=cancel_token,
        )
        check_canceled(cancel_token)
        return TransferBuffer(trim_padded_tile(shaded, tile_size, padding))

    def close(self):
        self._executor.shutdown(wait=True, cancel_futures=True)
