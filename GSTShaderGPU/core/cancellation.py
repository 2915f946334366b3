"""
GSTShaderGPU/core/cancellation.py
Cooperative cancellation shared between the orchestrator and the backends.
"""
from __future__ import annotations

import threading
from typing import Optional

from ..utils.errors import TileCanceledError


class CancelToken:
    """
    Thread-safe cancellation flag.

    The token travels alongside a work item. Compute stages poll it at
    their boundaries through ``raise_if_canceled`` and the GPU backend also
    checks it before tearing down its per-call resources.
    """

    def __init__(self, parent: Optional["CancelToken"] = None):
        self._event = threading.Event()
        self._parent = parent
        self._reason: Optional[str] = None

    @classmethod
    def linked(cls, parent: Optional["CancelToken"]) -> "CancelToken":
        """A child token that is also canceled whenever ``parent`` is."""
        return cls(parent=parent)

    def cancel(self, reason: str = "canceled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def canceled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.canceled

    @property
    def reason(self) -> Optional[str]:
        if self._event.is_set():
            return self._reason
        if self._parent is not None:
            return self._parent.reason
        return None

    def raise_if_canceled(self) -> None:
        if self.canceled:
            raise TileCanceledError(self.reason or "canceled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until canceled or until ``timeout`` elapses."""
        if self._parent is None:
            return self._event.wait(timeout)
        # Parent chains are short, poll them in small slices
        step = 0.05 if timeout is None else min(0.05, timeout)
        waited = 0.0
        while not self.canceled:
            if timeout is not None and waited >= timeout:
                return False
            self._event.wait(step)
            waited += step
        return True


def is_canceled(token: Optional[CancelToken]) -> bool:
    return token is not None and token.canceled


def check_canceled(token: Optional[CancelToken]) -> None:
    if token is not None:
        token.raise_if_canceled()
