import threading

import numpy as np
import pytest

from GSTShaderGPU.algorithms.cpu_backend import CpuBackend
from GSTShaderGPU.core.cancellation import CancelToken, check_canceled, is_canceled
from GSTShaderGPU.core.transfer import TransferBuffer
from GSTShaderGPU.utils.errors import BufferConsumedError, TileCanceledError

from conftest import terrarium_tile


def test_token_reason_and_raise():
    token = CancelToken()
    assert not token.canceled
    token.raise_if_canceled()

    token.cancel('viewport moved')

    assert token.canceled
    assert token.reason == 'viewport moved'
    with pytest.raises(TileCanceledError, match='viewport moved'):
        token.raise_if_canceled()


def test_linked_token_follows_parent():
    parent = CancelToken()
    child = CancelToken.linked(parent)

    parent.cancel('shutdown')

    assert child.canceled
    assert child.reason == 'shutdown'


def test_child_cancel_does_not_reach_parent():
    parent = CancelToken()
    child = CancelToken.linked(parent)

    child.cancel()

    assert not parent.canceled


def test_wait_wakes_on_cancel():
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()

    assert token.wait(timeout=5)
    timer.join()


def test_wait_times_out():
    assert not CancelToken().wait(timeout=0.01)
    assert not CancelToken.linked(CancelToken()).wait(timeout=0.1)


def test_none_token_helpers():
    assert not is_canceled(None)
    check_canceled(None)


def test_transfer_moves_without_copy():
    array = np.arange(12, dtype=np.uint8).reshape(3, 4)
    buffer = TransferBuffer(array)

    taken = buffer.take()

    assert taken is array
    assert buffer.consumed
    assert buffer.shape == (3, 4)
    with pytest.raises(BufferConsumedError):
        buffer.take()


def test_cpu_backend_consumes_mosaic():
    mosaic = TransferBuffer(terrarium_tile(np.full((20, 20), 10.0, dtype=np.float32)))
    backend = CpuBackend()
    try:
        result = backend.compute(mosaic, 8, 6, (1, 1, 1, 1, 1))
    finally:
        backend.close()

    assert mosaic.consumed
    assert result.take().shape == (8, 8, 4)


def test_cpu_backend_canceled():
    token = CancelToken()
    token.cancel()
    backend = CpuBackend()
    try:
        with pytest.raises(TileCanceledError):
            backend.compute(TransferBuffer(np.zeros((20, 20, 4), dtype=np.uint8)), 8, 6, (1,) * 5, token)
    finally:
        backend.close()
