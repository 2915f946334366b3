"""
GSTShaderGPU/algorithms/gpu_backend.py
Shading pipeline as CuPy RawKernel passes.

Each blur radius is two passes (horizontal, vertical) rendering into
textures; the combine pass reads the original texture and the five blurred
ones and evaluates delta, weights, response curve and tint per pixel.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import cupy as cp

from .base import ShadingBackend
from .codec import validate_encoding
from .composite import COMBINE_MODES, RGBColor, ResponseCurve, make_response_curve
from .kernels import BLUR_KERNEL_MASS, BLUR_RADII, gaussian_kernel
from .shaders import TEXTURE_TYPES, blur_kernel_name, build_shader_source
from ..core.cancellation import CancelToken, is_canceled
from ..core.gpu_memory import gpu_memory_pool
from ..core.transfer import TransferBuffer
from ..utils.errors import BackendResourceError, TileCanceledError

logger = logging.getLogger(__name__)

BLOCK = (16, 16)

# Device failures surfaced as BackendResourceError
CUDA_ERRORS = (
    cp.cuda.memory.OutOfMemoryError,
    cp.cuda.runtime.CUDARuntimeError,
    cp.cuda.driver.CUDADriverError,
)


class GpuRenderContext:
    """
    Compiled passes and blur weights for one padded texture size.

    Built once and reused for every tile of that size. It is not safe for
    two concurrent renders, ``GpuBackend`` serializes access.
    """

    def __init__(self, size: int, curve: ResponseCurve, radii: Sequence[int] = BLUR_RADII,
                 intermediate: str = "rgba8", combine: str = "sum"):
        self.size = size
        self.radii = tuple(radii)
        self.intermediate = intermediate
        try:
            self.module = cp.RawModule(
                code=build_shader_source(curve, self.radii, intermediate, combine)
            )
            self.blur_h = self.module.get_function(blur_kernel_name(True, "rgba8", intermediate))
            self.blur_v = self.module.get_function(blur_kernel_name(False, intermediate, intermediate))
            self.combine = self.module.get_function("combine_scales")
            self.kernels = {
                r: cp.asarray(gaussian_kernel(r, BLUR_KERNEL_MASS), dtype=cp.float32)
                for r in self.radii
            }
        except CUDA_ERRORS as e:
            raise BackendResourceError(f"Could not allocate a GPU render context of {size}px: {e}") from e
        logger.debug(f"GPU render context ready: {size}x{size}, intermediate={intermediate}")

    @property
    def grid(self) -> Tuple[int, int]:
        return ((self.size + BLOCK[0] - 1) // BLOCK[0], (self.size + BLOCK[1] - 1) // BLOCK[1])

    def texture(self, count: Optional[int] = None):
        """Empty intermediate texture(s) in the context's format"""
        shape = (self.size, self.size)
        if count is not None:
            shape = (count,) + shape
        if self.intermediate == "rgba8":
            return cp.empty(shape + (4,), dtype=cp.uint8)
        return cp.empty(shape, dtype=cp.float32)


class GpuBackend(ShadingBackend):
    """
    GPU implementation of the shading pipeline.

    Render contexts are cached per padded size; intermediate textures are
    released after every call. A lock makes sure two requests never render
    into the same context at once.
    """

    name = "gpu"

    def __init__(self, encoding: str = "terrarium", curve: Optional[ResponseCurve] = None,
                 color: RGBColor = (0, 0, 0), combine: str = "sum", intermediate: str = "rgba8"):
        self.encoding = validate_encoding(encoding)
        if combine not in COMBINE_MODES:
            raise ValueError(f"Unknown combine mode '{combine}'")
        if intermediate not in TEXTURE_TYPES:
            raise ValueError(f"Unknown texture format '{intermediate}'")
        self.curve = curve or make_response_curve()
        self.color = tuple(int(c) for c in color)
        self.combine_mode = combine
        self.intermediate = intermediate
        self._contexts: Dict[int, GpuRenderContext] = {}
        self._lock = threading.Lock()

    def _context_for(self, size: int) -> GpuRenderContext:
        context = self._contexts.get(size)
        if context is None:
            context = GpuRenderContext(size, self.curve, BLUR_RADII, self.intermediate, self.combine_mode)
            self._contexts[size] = context
        return context

    def compute(self, mosaic, tile_size, padding, weights, cancel_token=None):
        pixels = mosaic.take()
        if len(weights) != len(BLUR_RADII):
            raise ValueError(f"Got {len(weights)} weights for {len(BLUR_RADII)} radii")
        size = int(pixels.shape[0])

        with self._lock:
            if is_canceled(cancel_token):
                raise TileCanceledError("Canceled before GPU rendering")
            context = self._context_for(size)
            with gpu_memory_pool():
                try:
                    result = self._render(context, pixels, tile_size, padding, weights, cancel_token)
                except CUDA_ERRORS as e:
                    raise BackendResourceError(f"GPU failure rendering a {size}px tile: {e}") from e

        # Checked once more after the intermediates are gone
        if result is None or is_canceled(cancel_token):
            raise TileCanceledError("Canceled during GPU rendering")
        return TransferBuffer(result)

    def _render(self, context: GpuRenderContext, pixels: np.ndarray, tile_size: int, padding: int,
                weights: Sequence[float], cancel_token: Optional[CancelToken]) -> Optional[np.ndarray]:
        """Returns the trimmed tile on the host, or None when canceled"""
        size = context.size
        width = np.int32(size)
        height = np.int32(size)

        original = cp.asarray(np.ascontiguousarray(pixels[:, :, :4]), dtype=cp.uint8)
        pass_h = context.texture()
        blurred = context.texture(count=len(context.radii))

        for k, radius in enumerate(context.radii):
            if is_canceled(cancel_token):
                return None
            kernel = context.kernels[radius]
            context.blur_h(context.grid, BLOCK, (original, pass_h, kernel, np.int32(radius), width, height))
            context.blur_v(context.grid, BLOCK, (pass_h, blurred[k], kernel, np.int32(radius), width, height))

        if is_canceled(cancel_token):
            return None

        weights_gpu = cp.asarray(np.asarray(weights, dtype=np.float32))
        out = cp.empty((size, size, 4), dtype=cp.uint8)
        context.combine(
            context.grid, BLOCK,
            (original, blurred, weights_gpu, out, width, height,
             np.int32(self.color[0]), np.int32(self.color[1]), np.int32(self.color[2])),
        )
        trimmed = out[padding:padding + tile_size, padding:padding + tile_size]
        return np.ascontiguousarray(cp.asnumpy(trimmed))

    def close(self):
        with self._lock:
            self._contexts.clear()
