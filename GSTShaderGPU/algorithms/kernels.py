"""
GSTShaderGPU/algorithms/kernels.py
Gaussian kernels and separable clamp-to-edge blur.
"""
from __future__ import annotations

import math
from typing import Optional

import numpy as np
from scipy.ndimage import correlate1d
from scipy.special import ndtri

from ..core.cancellation import CancelToken, check_canceled

# Half sizes of the blur kernels making up the scale space, small to large
BLUR_RADII = (3, 7, 15, 30, 60)

# z-score covering a central mass fraction of a normal distribution
Z_FOR_CENTRAL_MASS = {
    0.90: 1.644854,
    0.95: 1.959964,
    0.98: 2.326348,
    0.99: 2.575829,
    0.995: 2.807034,
    0.997: 3.0,  # rule of thumb, ~99.73%
    0.999: 3.290527,
}

DEFAULT_KERNEL_MASS = 0.95
BLUR_KERNEL_MASS = 0.99


def z_for_central_mass(central_mass: float) -> float:
    if central_mass in Z_FOR_CENTRAL_MASS:
        return Z_FOR_CENTRAL_MASS[central_mass]
    if not 0.0 < central_mass < 1.0:
        raise ValueError(f"central_mass must be in (0, 1), got {central_mass}")
    return float(ndtri(0.5 + central_mass / 2.0))


def sigma_from_radius(radius: int, central_mass: float = BLUR_KERNEL_MASS) -> float:
    """Sigma placing ``central_mass`` of the Gaussian inside +/- radius."""
    if radius <= 0:
        return 1e-6
    return radius / z_for_central_mass(central_mass)


def build_gaussian_kernel(radius: int, sigma: float) -> np.ndarray:
    """Discrete Gaussian sampled at integer offsets, normalized to sum 1."""
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
    kernel /= kernel.sum()
    return kernel.astype(np.float32)


def gaussian_kernel(radius: int, central_mass: float = DEFAULT_KERNEL_MASS) -> np.ndarray:
    return build_gaussian_kernel(radius, sigma_from_radius(radius, central_mass))


def convolve_1d(field: np.ndarray, kernel: np.ndarray, horizontal: bool) -> np.ndarray:
    """
    One blur pass. Sampling positions outside the field are clamped to the
    nearest edge pixel. Kernels are symmetric, so correlation == convolution.
    """
    axis = 1 if horizontal else 0
    return correlate1d(field, kernel, axis=axis, mode="nearest", output=np.float32)


def gaussian_blur(field: np.ndarray, radius: int, central_mass: float = BLUR_KERNEL_MASS,
                  cancel_token: Optional[CancelToken] = None) -> np.ndarray:
    """Two-pass separable Gaussian blur, horizontal then vertical."""
    kernel = gaussian_kernel(radius, central_mass)
    if kernel.size == 1:
        return np.array(field, dtype=np.float32, copy=True)
    blurred = convolve_1d(field, kernel, horizontal=True)
    check_canceled(cancel_token)
    return convolve_1d(blurred, kernel, horizontal=False)


def required_padding(max_radius: int = BLUR_RADII[-1]) -> int:
    """Padding giving the largest blur full context at tile edges."""
    return int(math.ceil(max_radius))
