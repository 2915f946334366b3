import argparse

import numpy as np
import pytest

from GSTShaderGPU.cli.shade_cli import ShadeCLI, _parse_color
from GSTShaderGPU.core.tile_index import NEIGHBOR_ORDER, TileIndex, neighbor_index
from GSTShaderGPU.io.tile_loader import TileLoader
from GSTShaderGPU.io.tile_writer import write_tile_png

from conftest import terrarium_tile


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ('GSTS_CACHE_SIZE', 'GSTS_PADDING', 'GSTS_MAX_WORKERS', 'GSTS_BACKEND'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tile_dir(tmp_path):
    center = TileIndex(3, 2, 3)
    tile = terrarium_tile(np.full((64, 64), 250.0, dtype=np.float32))
    for index in [center] + [neighbor_index(center, d) for d in NEIGHBOR_ORDER]:
        folder = tmp_path / 'tiles' / str(index.z) / str(index.x)
        folder.mkdir(parents=True, exist_ok=True)
        write_tile_png(str(folder / f'{index.y}.png'), tile)
    return tmp_path


def test_shades_one_tile(tile_dir):
    output = tile_dir / 'out.png'
    source = str(tile_dir / 'tiles' / '{z}' / '{x}' / '{y}.png')

    status = ShadeCLI().run([str(output), '3', '2', '3', '--source', source, '--tint', '36,70,125'])

    assert status == 0
    rgba = TileLoader()(str(output))
    assert rgba.shape == (64, 64, 4)
    assert np.all(rgba[..., :3] == [36, 70, 125])
    assert np.all(rgba[..., 3] == 0)


def test_missing_center_returns_error_status(tile_dir):
    output = tile_dir / 'out.png'
    source = str(tile_dir / 'tiles' / '{z}' / '{x}' / '{y}.png')

    status = ShadeCLI().run([str(output), '3', '6', '6', '--source', source])

    assert status == 1
    assert not output.exists()


def test_refuses_to_overwrite(tile_dir):
    output = tile_dir / 'out.png'
    output.write_bytes(b'')
    source = str(tile_dir / 'tiles' / '{z}' / '{x}' / '{y}.png')

    with pytest.raises(FileExistsError):
        ShadeCLI().run([str(output), '3', '2', '3', '--source', source])


def test_config_file_and_flags_merge(tmp_path):
    config_path = tmp_path / 'shading.yaml'
    config_path.write_text('source_pattern: "tiles/{z}/{x}/{y}.png"\npadding: 60\n')
    cli = ShadeCLI()
    args = cli.parse_args([str(tmp_path / 'o.png'), '1', '0', '0', '--config', str(config_path),
                           '--padding', '32', '--response-preset', 'linear'])

    config = cli.build_config(args)

    assert config.source_pattern == 'tiles/{z}/{x}/{y}.png'
    assert config.padding == 32
    assert config.response_curve == 'linear'


def test_source_or_config_required(tmp_path):
    with pytest.raises(SystemExit):
        ShadeCLI().parse_args([str(tmp_path / 'o.png'), '1', '0', '0'])


@pytest.mark.parametrize('value', ['1,2', 'a,b,c', '0,0,256'])
def test_bad_tint(value):
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_color(value)


def test_curve_flag_overrides_preset_in_config_file(tmp_path):
    config_path = tmp_path / 'shading.yaml'
    config_path.write_text('source_pattern: "tiles/{z}/{x}/{y}.png"\nresponse_preset: linear\n')
    cli = ShadeCLI()
    args = cli.parse_args([str(tmp_path / 'o.png'), '1', '0', '0', '--config', str(config_path),
                           '--response-curve', 'ease_out_quad'])

    assert cli.build_config(args).response_curve == 'ease_out_quad'
