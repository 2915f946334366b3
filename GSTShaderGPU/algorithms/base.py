"""
GSTShaderGPU/algorithms/base.py
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..core.cancellation import CancelToken
from ..core.transfer import TransferBuffer


class ShadingBackend(ABC):
    """Common seam of the CPU and GPU shading backends"""

    name = ""

    @abstractmethod
    def compute(self, mosaic: TransferBuffer, tile_size: int, padding: int,
                weights: Sequence[float],
                cancel_token: Optional[CancelToken] = None) -> TransferBuffer:
        """
        Shade a padded RGBA mosaic.

        Parameters
        ----------
        mosaic : TransferBuffer
            Padded (tile_size + 2*padding)^2 RGBA uint8 mosaic; ownership
            moves to the backend.
        tile_size, padding : int
            Geometry used to trim the result.
        weights : sequence of float
            One weight per blur radius, in ``BLUR_RADII`` order.
        cancel_token : CancelToken, optional
            Polled between stages; a canceled token raises
            ``TileCanceledError``.

        Returns
        -------
        TransferBuffer
            (tile_size, tile_size, 4) uint8 shaded tile.
        """
        pass

    def close(self):
        """Release worker threads / device resources"""
        pass
