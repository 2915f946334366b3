"""
GSTShaderGPU/core/gpu_memory.py
CuPy memory pools used by the GPU shading backend.
"""
import contextlib, logging, threading
import cupy as cp

logger = logging.getLogger(__name__)

# Share of device memory the pool may grow to
POOL_LIMIT_FRACTION = 0.9

_thread_local = threading.local()

def get_gpu_context():
    """Memory pools of the calling thread, capped when GPUtil reports the device size"""
    if not hasattr(_thread_local, 'mempool'):
        _thread_local.mempool = cp.get_default_memory_pool()
        _thread_local.pinned_mempool = cp.get_default_pinned_memory_pool()

        try:
            import GPUtil
            gpu = GPUtil.getGPUs()[0]
            limit = int(gpu.memoryTotal * POOL_LIMIT_FRACTION * 1024**2)
            _thread_local.mempool.set_limit(size=limit)
            logger.debug(f"GPU pool limit {limit / 1024**2:.0f}MB on {gpu.name}")
        except Exception as e:
            logger.debug(f"GPU pool left uncapped: {e}")
    return _thread_local.mempool, _thread_local.pinned_mempool

@contextlib.contextmanager
def gpu_memory_pool():
    """Releases the intermediate textures of one render once the device is idle"""
    mempool, pinned_mempool = get_gpu_context()
    try:
        yield
    finally:
        cp.cuda.Stream.null.synchronize()  # last kernel must finish before its buffers go
        held = mempool.total_bytes()
        mempool.free_all_blocks()
        pinned_mempool.free_all_blocks()
        logger.debug(f"Released {(held - mempool.total_bytes()) / 1024**2:.1f}MB of GPU intermediates")

def used_device_bytes() -> int:
    """Bytes currently handed out by the pool (render contexts, in-flight textures)"""
    mempool, _ = get_gpu_context()
    return mempool.used_bytes()
