"""
GSTShaderGPU/config/system_config.py
"""

import multiprocessing, psutil, logging

logger = logging.getLogger(__name__)

# Share of physical memory the decoded tile cache may use
CACHE_MEMORY_FRACTION = 0.05
MIN_CACHE_TILES = 64
MAX_CACHE_TILES = 4000


def detect_system_config() -> dict:
    """CPU and memory figures used to size worker pools and caches."""
    memory = psutil.virtual_memory()
    config = {
        "cpu_count": multiprocessing.cpu_count(),
        "memory_gb": memory.total / (1024**3),
        "available_memory_gb": memory.available / (1024**3),
    }
    logger.debug(
        f"System: {config['cpu_count']} CPU, RAM {config['memory_gb']:.1f}GB "
        f"({config['available_memory_gb']:.1f}GB available)"
    )
    return config


def recommended_cache_size(tile_size: int = 512, sys_config: dict = None) -> int:
    """Number of decoded RGBA tiles fitting in the cache memory budget."""
    if sys_config is None:
        sys_config = detect_system_config()
    tile_bytes = tile_size * tile_size * 4
    budget = sys_config["memory_gb"] * (1024**3) * CACHE_MEMORY_FRACTION
    size = int(budget // tile_bytes)
    return max(MIN_CACHE_TILES, min(MAX_CACHE_TILES, size))


def recommended_workers(sys_config: dict = None) -> int:
    """Compute workers: one per core, keeping one core for the fetch fan-out."""
    if sys_config is None:
        sys_config = detect_system_config()
    return max(1, min(8, sys_config["cpu_count"] - 1))
