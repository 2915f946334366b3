"""
GSTShaderGPU/config/weights_manager.py
Per-zoom scale-space weights and response presets loaded from YAML.
"""
from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from ..algorithms.kernels import BLUR_RADII

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS_PATH = Path(__file__).parent / "scale_space_weights.yaml"


@dataclass(frozen=True)
class ScaleSpaceWeights:
    """Weight of each blur radius (k<radius>)."""
    k60: float
    k30: float
    k15: float
    k7: float
    k3: float

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ScaleSpaceWeights":
        names = [f.name for f in fields(cls)]
        unknown = set(values) - set(names)
        if unknown:
            raise ValueError(f"Unknown scale-space weight keys: {sorted(unknown)}")
        missing = [n for n in names if n not in values]
        if missing:
            raise ValueError(f"Missing scale-space weight keys: {missing}")
        return cls(**{n: float(values[n]) for n in names})

    def for_radius(self, radius: int) -> float:
        return getattr(self, f"k{radius}")

    def as_tuple(self, radii=BLUR_RADII) -> Tuple[float, ...]:
        """Weights in the order of ``radii``."""
        return tuple(self.for_radius(r) for r in radii)


class ScaleSpaceWeightsTable:
    """
    Zoom -> ScaleSpaceWeights. A zoom outside the defined range uses the
    nearest defined entry.
    """

    def __init__(self, table: Mapping[int, ScaleSpaceWeights]):
        if not table:
            raise ValueError("The scale-space weights table is empty")
        self._table = {int(z): w for z, w in table.items()}
        self._zooms = sorted(self._table)

    @classmethod
    def from_mapping(cls, raw: Mapping[Any, Mapping[str, Any]]) -> "ScaleSpaceWeightsTable":
        return cls({int(z): ScaleSpaceWeights.from_mapping(v) for z, v in raw.items()})

    @property
    def zooms(self):
        return list(self._zooms)

    def for_zoom(self, zoom: int) -> ScaleSpaceWeights:
        if zoom in self._table:
            return self._table[zoom]
        if zoom <= self._zooms[0]:
            return self._table[self._zooms[0]]
        if zoom >= self._zooms[-1]:
            return self._table[self._zooms[-1]]
        # A hole inside the range: take the closest defined zoom, lower on ties
        pos = bisect.bisect_left(self._zooms, zoom)
        lower, upper = self._zooms[pos - 1], self._zooms[pos]
        nearest = lower if zoom - lower <= upper - zoom else upper
        return self._table[nearest]

    def with_overrides(self, overrides: Optional[Mapping[Any, Any]]) -> "ScaleSpaceWeightsTable":
        """A copy where the given zooms are replaced."""
        if not overrides:
            return self
        table = dict(self._table)
        for zoom, weights in overrides.items():
            if not isinstance(weights, ScaleSpaceWeights):
                weights = ScaleSpaceWeights.from_mapping(weights)
            table[int(zoom)] = weights
        return ScaleSpaceWeightsTable(table)

    def __len__(self):
        return len(self._table)


class WeightsManager:
    """Loads the packaged YAML once and hands out tables and presets."""

    _instance = None
    _config = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config(DEFAULT_WEIGHTS_PATH)
        return cls._instance

    def _load_config(self, config_path: Path):
        with open(config_path, encoding="utf-8-sig") as f:
            self._config = yaml.safe_load(f)
        logger.debug(f"Loaded scale-space weights from {config_path}")

    def default_table(self) -> ScaleSpaceWeightsTable:
        return ScaleSpaceWeightsTable.from_mapping(self._config["scale_space_weights"])

    def get_response_preset(self, name: str) -> Dict[str, Any]:
        presets = self._config.get("response_presets", {})
        if name not in presets:
            raise ValueError(f"Unknown response preset '{name}', expected one of {list(presets)}")
        return dict(presets[name])

    def response_preset_names(self):
        return list(self._config.get("response_presets", {}))


def load_weights_table(path: Optional[str] = None) -> ScaleSpaceWeightsTable:
    """Table from a YAML file with a ``scale_space_weights`` key, or the default."""
    if path is None:
        return WeightsManager().default_table()
    with open(path, encoding="utf-8-sig") as f:
        raw = yaml.safe_load(f)
    return ScaleSpaceWeightsTable.from_mapping(raw["scale_space_weights"])
