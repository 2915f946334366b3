"""
GSTShaderGPU
Gaussian scale-space terrain shading of XYZ elevation tiles on CPU or GPU.
"""
from .config.shading_config import ShadingConfig
from .core.cancellation import CancelToken
from .core.protocol import make_protocol_handler
from .core.tile_index import TileIndex
from .core.tile_processor import TerrainShader
from .utils.errors import TileCanceledError
from .utils.types import TileResult

__version__ = "0.1.0"

__all__ = [
    "CancelToken",
    "ShadingConfig",
    "TerrainShader",
    "TileCanceledError",
    "TileIndex",
    "TileResult",
    "make_protocol_handler",
]
