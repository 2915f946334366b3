"""
GSTShaderGPU/config/shading_config.py
Deployment configuration of the terrain shader.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .weights_manager import ScaleSpaceWeightsTable, WeightsManager
from ..algorithms.codec import validate_encoding
from ..algorithms.composite import (
    COMBINE_MODES,
    DEFAULT_RESPONSE_MAX,
    DEFAULT_RESPONSE_SCALE,
    ResponseCurve,
    make_response_curve,
)
from ..algorithms.kernels import BLUR_RADII, required_padding
from ..utils.errors import InvalidPaddingError

logger = logging.getLogger(__name__)

BACKENDS = ("cpu", "gpu")
GPU_INTERMEDIATE_FORMATS = ("rgba8", "float32")
DEFAULT_RESPONSE_CURVE = "ease_out_sine"

# Environment overrides, applied on top of file / keyword values
_ENV_OVERRIDES = {
    "GSTS_CACHE_SIZE": ("cache_size", int),
    "GSTS_PADDING": ("padding", int),
    "GSTS_MAX_WORKERS": ("max_workers", int),
    "GSTS_BACKEND": ("backend", str),
}


@dataclass
class ShadingConfig:
    source_pattern: str
    elevation_encoding: str = "terrarium"
    scale_space_weights: Optional[Dict[int, Dict[str, float]]] = None
    tint_color: Tuple[int, int, int] = (0, 0, 0)
    padding: int = 60
    min_zoom: int = 0
    max_zoom: int = 22
    backend: str = "cpu"
    cache_size: Optional[int] = 1000
    max_unavailable: int = 10000
    unavailable_ttl: Optional[float] = None
    response_preset: Optional[str] = None
    # None means "from the preset, else the built-in default"
    response_curve: Optional[str] = None
    response_max: Optional[float] = None
    response_scale: Optional[float] = None
    combine: str = "sum"
    max_workers: int = 9
    compute_workers: Optional[int] = None
    request_timeout: float = 30.0
    gpu_intermediate: str = "rgba8"
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.tint_color = tuple(int(c) for c in self.tint_color)
        preset = WeightsManager().get_response_preset(self.response_preset) if self.response_preset else {}
        if self.response_curve is None:
            self.response_curve = preset.get("curve", DEFAULT_RESPONSE_CURVE)
        if self.response_max is None:
            self.response_max = preset.get("max_value", DEFAULT_RESPONSE_MAX)
        if self.response_scale is None:
            self.response_scale = preset.get("scale", DEFAULT_RESPONSE_SCALE)
        self.response_max = float(self.response_max)
        self.response_scale = float(self.response_scale)

    def validate(self) -> "ShadingConfig":
        """Raise on any configuration error before a tile is computed."""
        if not self.source_pattern:
            raise ValueError("source_pattern is required")
        for placeholder in ("{z}", "{x}", "{y}"):
            if placeholder not in self.source_pattern:
                raise ValueError(f"source_pattern is missing the {placeholder} placeholder")
        validate_encoding(self.elevation_encoding)
        if self.padding < 0:
            raise InvalidPaddingError(f"The padding cannot be lower than 0, got {self.padding}")
        if self.padding < required_padding():
            logger.warning(
                f"Padding {self.padding} is smaller than the largest blur radius {BLUR_RADII[-1]}, "
                f"tile seams may be visible"
            )
        if len(self.tint_color) != 3 or not all(0 <= c <= 255 for c in self.tint_color):
            raise ValueError(f"tint_color must be three 0-255 values, got {self.tint_color}")
        if self.min_zoom > self.max_zoom:
            raise ValueError(f"min_zoom ({self.min_zoom}) is greater than max_zoom ({self.max_zoom})")
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}', expected one of {BACKENDS}")
        if self.combine not in COMBINE_MODES:
            raise ValueError(f"Unknown combine mode '{self.combine}', expected one of {COMBINE_MODES}")
        if self.gpu_intermediate not in GPU_INTERMEDIATE_FORMATS:
            raise ValueError(
                f"Unknown gpu_intermediate '{self.gpu_intermediate}', expected one of {GPU_INTERMEDIATE_FORMATS}"
            )
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.make_response_curve()
        self.weights_table()
        return self

    def make_response_curve(self) -> ResponseCurve:
        return make_response_curve(self.response_curve, self.response_max, self.response_scale)

    def weights_table(self) -> ScaleSpaceWeightsTable:
        return WeightsManager().default_table().with_overrides(self.scale_space_weights)

    def zoom_in_range(self, zoom: int) -> bool:
        return self.min_zoom <= zoom <= self.max_zoom

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], apply_env: bool = True) -> "ShadingConfig":
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs = {k: v for k, v in values.items() if k in known}
        extra = {k: v for k, v in values.items() if k not in known}
        if extra:
            logger.warning(f"Ignoring unknown configuration keys: {sorted(extra)}")
        config = cls(**kwargs, extra=extra)
        if apply_env:
            config = config.with_env_overrides()
        return config

    @classmethod
    def from_yaml(cls, path: str, apply_env: bool = True, **overrides) -> "ShadingConfig":
        with open(path, encoding="utf-8-sig") as f:
            values = yaml.safe_load(f) or {}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_mapping(values, apply_env=apply_env)

    def with_env_overrides(self) -> "ShadingConfig":
        updates = {}
        for env_name, (attr, cast) in _ENV_OVERRIDES.items():
            if raw := os.getenv(env_name):
                updates[attr] = cast(raw)
                logger.info(f"Overriding {attr} to {raw} from env")
        return replace(self, **updates) if updates else self
