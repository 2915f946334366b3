import logging

import numpy as np
import pytest

from GSTShaderGPU.algorithms.mosaic import assemble_padded_mosaic, trim_padded_tile
from GSTShaderGPU.core.tile_index import NEIGHBOR_ORDER
from GSTShaderGPU.utils.errors import InvalidPaddingError, MissingCenterTileError


def _tile(value, size=8):
    tile = np.zeros((size, size, 4), dtype=np.uint8)
    tile[..., 0] = value
    tile[..., 3] = 255
    return tile


def _neighbors(size=8):
    # red channel encodes the position in NEIGHBOR_ORDER
    return [_tile(10 * (i + 1), size) for i in range(len(NEIGHBOR_ORDER))]


def test_regions_land_where_they_belong():
    ts, p = 8, 3
    canvas = assemble_padded_mosaic(_tile(1, ts), _neighbors(ts), p)
    red = canvas[..., 0]

    assert canvas.shape == (ts + 2 * p, ts + 2 * p, 4)
    assert np.all(red[p:p + ts, p:p + ts] == 1)
    expected = {
        'N': red[:p, p:p + ts],
        'NE': red[:p, p + ts:],
        'E': red[p:p + ts, p + ts:],
        'SE': red[p + ts:, p + ts:],
        'S': red[p + ts:, p:p + ts],
        'SW': red[p + ts:, :p],
        'W': red[p:p + ts, :p],
        'NW': red[:p, :p],
    }
    for i, direction in enumerate(NEIGHBOR_ORDER):
        assert np.all(expected[direction] == 10 * (i + 1)), direction


def test_border_strips_come_from_the_adjacent_edge():
    ts, p = 8, 2
    north = np.zeros((ts, ts, 4), dtype=np.uint8)
    north[..., 0] = np.arange(ts, dtype=np.uint8)[:, None]
    east = np.zeros((ts, ts, 4), dtype=np.uint8)
    east[..., 0] = np.arange(ts, dtype=np.uint8)[None, :]
    neighbors = [None] * 8
    neighbors[NEIGHBOR_ORDER.index('N')] = north
    neighbors[NEIGHBOR_ORDER.index('E')] = east

    canvas = assemble_padded_mosaic(_tile(200, ts), neighbors, p)

    # last rows of the north tile sit right above the center
    assert canvas[:p, p, 0].tolist() == [ts - 2, ts - 1]
    # first columns of the east tile sit right after the center
    assert canvas[p, p + ts:, 0].tolist() == [0, 1]


def test_full_neighborhood_paints_every_pixel():
    canvas = assemble_padded_mosaic(_tile(1), _neighbors(), 8)

    assert np.all(canvas[..., 3] == 255)


def test_missing_neighbor_leaves_transparent_gap():
    neighbors = _neighbors()
    neighbors[NEIGHBOR_ORDER.index('SW')] = None

    canvas = assemble_padded_mosaic(_tile(1), neighbors, 3)

    assert np.all(canvas[11:, :3] == 0)
    assert np.all(canvas[:3, :3, 3] == 255)


def test_mismatched_neighbor_is_skipped(caplog):
    neighbors = _neighbors()
    neighbors[0] = _tile(99, size=16)

    with caplog.at_level(logging.WARNING):
        canvas = assemble_padded_mosaic(_tile(1), neighbors, 3)

    assert np.all(canvas[:3, 3:11] == 0)
    assert 'leaving a gap' in caplog.text


def test_missing_center_is_an_error():
    with pytest.raises(MissingCenterTileError):
        assemble_padded_mosaic(None, _neighbors(), 3)


@pytest.mark.parametrize('padding', [-1, 9])
def test_invalid_padding(padding):
    with pytest.raises(InvalidPaddingError):
        assemble_padded_mosaic(_tile(1), _neighbors(), padding)


def test_zero_padding_is_the_center_tile():
    center = _tile(5)

    np.testing.assert_array_equal(assemble_padded_mosaic(center, _neighbors(), 0), center)


def test_padding_equal_to_tile_size_copies_whole_neighbors():
    canvas = assemble_padded_mosaic(_tile(1), _neighbors(), 8)

    assert canvas.shape == (24, 24, 4)
    assert np.all(canvas[:8, :8, 0] == 80)


def test_trim_recovers_center():
    center = _tile(42)
    canvas = assemble_padded_mosaic(center, _neighbors(), 3)

    trimmed = trim_padded_tile(canvas, 8, 3)

    np.testing.assert_array_equal(trimmed, center)
    assert trimmed.flags.c_contiguous


def test_trim_rejects_too_small_raster():
    with pytest.raises(ValueError):
        trim_padded_tile(np.zeros((10, 10, 4), dtype=np.uint8), 8, 3)
