"""
GSTShaderGPU/core/transfer.py
Move-only handoff of large pixel buffers between the orchestrator and a
compute backend.
"""
from __future__ import annotations

import threading

import numpy as np

from ..utils.errors import BufferConsumedError


class TransferBuffer:
    """
    Wraps an array whose ownership moves to whoever calls ``take``.

    No copy is made. After ``take`` the wrapper no longer references the
    array and a second ``take`` raises, so a buffer is never visible to two
    owners at once.
    """

    __slots__ = ("_array", "_lock", "shape", "dtype")

    def __init__(self, array: np.ndarray):
        self._array = array
        self._lock = threading.Lock()
        self.shape = array.shape
        self.dtype = array.dtype

    @property
    def consumed(self) -> bool:
        return self._array is None

    def take(self) -> np.ndarray:
        with self._lock:
            if self._array is None:
                raise BufferConsumedError("Buffer was already transferred")
            array, self._array = self._array, None
        return array

    def __repr__(self):
        state = "consumed" if self.consumed else "live"
        return f"TransferBuffer(shape={self.shape}, dtype={self.dtype}, {state})"
