import numpy as np
import pytest

from GSTShaderGPU.algorithms.codec import (
    decode_elevation,
    encode_elevation,
    encode_elevation_rgba8,
    validate_encoding,
)
from GSTShaderGPU.utils.errors import UnsupportedEncodingError


def test_decode_known_values():
    rgba = np.array([[[128, 0, 0, 255], [131, 232, 0, 255], [0, 0, 0, 0]]], dtype=np.uint8)

    elevation = decode_elevation(rgba)

    assert elevation.dtype == np.float32
    assert elevation.tolist() == [[0.0, 1000.0, -32768.0]]


def test_decode_ignores_alpha():
    rgb = np.array([[[130, 10, 128]]], dtype=np.uint8)
    rgba = np.concatenate([rgb, np.zeros((1, 1, 1), dtype=np.uint8)], axis=-1)

    assert decode_elevation(rgba)[0, 0] == decode_elevation(rgb)[0, 0] == pytest.approx(522.5)


def test_encode_sea_level_is_normalized_half_red():
    rgb = encode_elevation(np.zeros((1, 1), dtype=np.float32))

    assert rgb.shape == (1, 1, 3)
    assert rgb[0, 0, 0] == pytest.approx(128.0 / 255.0)
    assert rgb[0, 0, 1] == 0.0
    assert rgb[0, 0, 2] == 0.0


def test_rgba8_round_trip_within_one_blue_step():
    rng = np.random.default_rng(7)
    elevation = rng.uniform(-11000.0, 8848.0, size=(32, 32)).astype(np.float32)

    decoded = decode_elevation(encode_elevation_rgba8(elevation))

    assert np.max(np.abs(decoded - elevation)) <= 1.0 / 256.0 + 1e-3


def test_rgba8_is_opaque():
    rgba = encode_elevation_rgba8(np.full((4, 4), 123.25, dtype=np.float32))

    assert rgba.dtype == np.uint8
    assert np.all(rgba[..., 3] == 255)


def test_mapbox_is_recognized_but_unsupported():
    assert validate_encoding('terrarium') == 'terrarium'
    with pytest.raises(UnsupportedEncodingError):
        validate_encoding('mapbox')
    with pytest.raises(NotImplementedError):
        decode_elevation(np.zeros((1, 1, 4), dtype=np.uint8), 'mapbox')


def test_unknown_encoding():
    with pytest.raises(ValueError):
        validate_encoding('lerc')
