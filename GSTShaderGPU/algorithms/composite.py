"""
GSTShaderGPU/algorithms/composite.py
Scale-space concavity compositing: elevation deltas, per-zoom weighting,
response curve and tint.

The math here is the single definition of the shading. The CPU backend
calls ``shade_elevation`` directly; the GPU combine shader is generated from
the same radii, weights and ``ResponseCurve.cuda_source``.
"""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Tuple, Type

import numpy as np

from .kernels import BLUR_RADII, gaussian_blur
from ..core.cancellation import CancelToken, check_canceled

RGBColor = Tuple[int, int, int]

DEFAULT_RESPONSE_MAX = 3000.0
DEFAULT_RESPONSE_SCALE = 255.0
COMBINE_MODES = ("sum", "max")


class ResponseCurve(ABC):
    """
    Saturating map from the unbounded weighted delta to an alpha value.

    Input is clamped to [0, max_value] and normalized to t in [0, 1];
    subclasses only provide the easing shape f(t) with f(0) = 0 and
    f(1) = 1, both in numpy and as a CUDA expression of ``t``.
    """

    name = ""

    def __init__(self, max_value: float = DEFAULT_RESPONSE_MAX, scale: float = DEFAULT_RESPONSE_SCALE):
        if max_value <= 0:
            raise ValueError(f"Response max_value must be > 0, got {max_value}")
        self.max_value = float(max_value)
        self.scale = float(scale)

    @abstractmethod
    def shape(self, t: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def cuda_shape(self) -> str:
        """Body of f(t) as a CUDA float expression"""
        pass

    def __call__(self, values):
        v = np.asarray(values, dtype=np.float32)
        t = np.minimum(np.maximum(v, 0.0), self.max_value) / self.max_value
        return (self.shape(t) * self.scale).astype(np.float32)

    def cuda_source(self, function_name: str = "respond") -> str:
        return (
            f"__device__ float {function_name}(float v) {{\n"
            f"    float t = fminf(fmaxf(v, 0.0f), {self.max_value:.8e}f) / {self.max_value:.8e}f;\n"
            f"    return ({self.cuda_shape()}) * {self.scale:.8e}f;\n"
            f"}}\n"
        )

    def __repr__(self):
        return f"{type(self).__name__}(max_value={self.max_value}, scale={self.scale})"


class EaseOutSineCurve(ResponseCurve):
    name = "ease_out_sine"

    def shape(self, t):
        return np.sin(t * (math.pi / 2.0))

    def cuda_shape(self):
        return "sinf(t * 1.5707963267948966f)"


class LinearCurve(ResponseCurve):
    name = "linear"

    def shape(self, t):
        return t

    def cuda_shape(self):
        return "t"


class EaseOutQuadCurve(ResponseCurve):
    name = "ease_out_quad"

    def shape(self, t):
        return 1.0 - (1.0 - t) * (1.0 - t)

    def cuda_shape(self):
        return "1.0f - (1.0f - t) * (1.0f - t)"


class EaseOutCubicCurve(ResponseCurve):
    name = "ease_out_cubic"

    def shape(self, t):
        return 1.0 - (1.0 - t) ** 3

    def cuda_shape(self):
        return "1.0f - (1.0f - t) * (1.0f - t) * (1.0f - t)"


class EaseInOutSineCurve(ResponseCurve):
    name = "ease_in_out_sine"

    def shape(self, t):
        return -(np.cos(math.pi * t) - 1.0) / 2.0

    def cuda_shape(self):
        return "-(cosf(3.141592653589793f * t) - 1.0f) / 2.0f"


RESPONSE_CURVES: Dict[str, Type[ResponseCurve]] = {
    cls.name: cls
    for cls in (EaseOutSineCurve, LinearCurve, EaseOutQuadCurve, EaseOutCubicCurve, EaseInOutSineCurve)
}


def make_response_curve(name: str = "ease_out_sine", max_value: float = DEFAULT_RESPONSE_MAX,
                        scale: float = DEFAULT_RESPONSE_SCALE) -> ResponseCurve:
    try:
        cls = RESPONSE_CURVES[name]
    except KeyError:
        raise ValueError(
            f"Unknown response curve '{name}', expected one of {list(RESPONSE_CURVES)}"
        ) from None
    return cls(max_value, scale)


def elevation_delta(blurred: np.ndarray, original: np.ndarray, keep_positive_only: bool = True) -> np.ndarray:
    """
    blurred - original. With ``keep_positive_only`` only concavities
    (terrain below its smoothed surroundings) are kept, ridges go to 0.
    """
    delta = np.subtract(blurred, original, dtype=np.float32)
    if keep_positive_only:
        np.maximum(delta, 0.0, out=delta)
    return delta


def _check_layers(layers: Sequence[Tuple[np.ndarray, float]]):
    if len(layers) < 2:
        raise ValueError("Need at least 2 float images")
    shape = layers[0][0].shape
    for image, _ in layers:
        if image.shape != shape:
            raise ValueError(f"Float images differ in shape: {image.shape} != {shape}")


def weighted_sum(layers: Sequence[Tuple[np.ndarray, float]]) -> np.ndarray:
    """Pixel-wise sum of image * weight over (image, weight) pairs."""
    _check_layers(layers)
    out = np.zeros(layers[0][0].shape, dtype=np.float32)
    for image, weight in layers:
        out += image * np.float32(weight)
    return out


def weighted_max(layers: Sequence[Tuple[np.ndarray, float]]) -> np.ndarray:
    """Pixel-wise max of image * weight, an alternative to ``weighted_sum``."""
    _check_layers(layers)
    image, weight = layers[0]
    out = image * np.float32(weight)
    for image, weight in layers[1:]:
        np.maximum(out, image * np.float32(weight), out=out)
    return out.astype(np.float32, copy=False)


def tint(alpha: np.ndarray, color: RGBColor) -> np.ndarray:
    """Constant RGB color with the shading carried in the alpha channel."""
    height, width = alpha.shape
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., 0] = color[0]
    rgba[..., 1] = color[1]
    rgba[..., 2] = color[2]
    rgba[..., 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)
    return rgba


def shade_elevation(elevation: np.ndarray,
                    weights: Sequence[float],
                    curve: ResponseCurve,
                    color: RGBColor = (0, 0, 0),
                    combine: str = "sum",
                    radii: Sequence[int] = BLUR_RADII,
                    cancel_token: Optional[CancelToken] = None) -> np.ndarray:
    """
    Full scale-space shading of an elevation field.

    ``weights`` line up with ``radii``. Returns an RGBA uint8 raster of the
    same footprint as ``elevation``; cancellation is checked between stages.
    """
    if len(weights) != len(radii):
        raise ValueError(f"Got {len(weights)} weights for {len(radii)} radii")
    if combine not in COMBINE_MODES:
        raise ValueError(f"Unknown combine mode '{combine}', expected one of {COMBINE_MODES}")

    layers = []
    for radius, weight in zip(radii, weights):
        check_canceled(cancel_token)
        blurred = gaussian_blur(elevation, radius, cancel_token=cancel_token)
        layers.append((elevation_delta(blurred, elevation), float(weight)))
        del blurred

    check_canceled(cancel_token)
    combined = weighted_sum(layers) if combine == "sum" else weighted_max(layers)
    del layers
    return tint(curve(combined), color)
