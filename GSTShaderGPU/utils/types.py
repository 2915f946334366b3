"""
GSTShaderGPU/utils/types.py
"""
from typing import Optional, NamedTuple

import numpy as np


class TileResult(NamedTuple):
    """Outcome of one shaded tile request"""
    index: tuple
    success: bool
    data: Optional[np.ndarray] = None
    canceled: bool = False
    error_message: Optional[str] = None
    skipped_reason: Optional[str] = None
