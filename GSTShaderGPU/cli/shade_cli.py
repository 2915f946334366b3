"""
GSTShaderGPU/cli/shade_cli.py
Shade one XYZ tile and write it as PNG.
"""
import argparse

from .base import BaseCLI
from ..algorithms.composite import RESPONSE_CURVES
from ..config.shading_config import BACKENDS, ShadingConfig
from ..config.weights_manager import WeightsManager
from ..core.tile_index import TileIndex
from ..core.tile_processor import TerrainShader
from ..io.tile_writer import write_tile_png


def _parse_color(value: str):
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Expected R,G,B, got {value!r}")
    try:
        color = tuple(int(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected integers in R,G,B, got {value!r}") from None
    if not all(0 <= c <= 255 for c in color):
        raise argparse.ArgumentTypeError(f"Color channels must be 0-255, got {value!r}")
    return color


class ShadeCLI(BaseCLI):
    """Single-tile shading command"""

    def get_description(self) -> str:
        return "GSTShaderGPU - Gaussian scale-space terrain shading of elevation tiles"

    def get_epilog(self) -> str:
        return """
Examples:
  # Shade one tile on the CPU
  gstshadergpu out.png 12 2143 1456 --source "https://tiles.mapterhorn.com/{z}/{x}/{y}.webp"

  # Same tile through the CUDA passes, tinted blue
  gstshadergpu out.png 12 2143 1456 --source "tiles/{z}/{x}/{y}.png" --backend gpu --tint 36,70,125

  # Everything from a YAML file
  gstshadergpu out.png 12 2143 1456 --config shading.yaml
"""

    def _add_command_args(self, parser: argparse.ArgumentParser):
        parser.add_argument("z", type=int, help="Zoom level")
        parser.add_argument("x", type=int, help="Tile column")
        parser.add_argument("y", type=int, help="Tile row")

        parser.add_argument("--source", help="Elevation tile locator with {z}/{x}/{y}")
        parser.add_argument("--config", help="YAML configuration file")
        parser.add_argument(
            "--encoding",
            default=None,
            help="Elevation encoding (default: terrarium)",
        )
        parser.add_argument("--backend", choices=list(BACKENDS), default=None,
                            help="Compute backend (default: cpu)")
        parser.add_argument("--padding", type=int, default=None,
                            help="Padding around the tile in pixels (default: 60)")
        parser.add_argument("--tint", type=_parse_color, default=None,
                            help="Shading color as R,G,B (default: 0,0,0)")
        parser.add_argument("--response-curve", choices=list(RESPONSE_CURVES), default=None,
                            help="Response curve shape (default: ease_out_sine)")
        parser.add_argument("--response-preset", choices=WeightsManager().response_preset_names(),
                            default=None, help="Named response curve preset")
        parser.add_argument("--timeout", type=float, default=None,
                            help="Tile fetch timeout in seconds (default: 30)")

    def _validate_args(self, args: argparse.Namespace):
        if not args.config and not args.source:
            self.parser.error("--source is required unless --config is given")

    def build_config(self, args: argparse.Namespace) -> ShadingConfig:
        overrides = {
            "source_pattern": args.source,
            "elevation_encoding": args.encoding,
            "backend": args.backend,
            "padding": args.padding,
            "tint_color": args.tint,
            "response_curve": args.response_curve,
            "response_preset": args.response_preset,
            "request_timeout": args.timeout,
        }
        if args.config:
            return ShadingConfig.from_yaml(args.config, **overrides)
        return ShadingConfig.from_mapping({k: v for k, v in overrides.items() if v is not None})

    def execute(self, args: argparse.Namespace) -> int:
        config = self.build_config(args)
        index = TileIndex(args.z, args.x, args.y)

        with TerrainShader(config) as shader:
            result = shader.compute_tile_result(index)

        if result.success:
            write_tile_png(args.output, result.data)
            return 0
        if result.skipped_reason:
            self.logger.warning(f"Tile {tuple(index)} skipped: {result.skipped_reason}")
        else:
            self.logger.error(f"Tile {tuple(index)} failed: {result.error_message}")
        return 1
