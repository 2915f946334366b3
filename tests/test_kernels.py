import numpy as np
import pytest

from GSTShaderGPU.algorithms.composite import elevation_delta
from GSTShaderGPU.algorithms.kernels import (
    BLUR_KERNEL_MASS,
    BLUR_RADII,
    build_gaussian_kernel,
    convolve_1d,
    gaussian_blur,
    gaussian_kernel,
    required_padding,
    sigma_from_radius,
    z_for_central_mass,
)
from GSTShaderGPU.core.cancellation import CancelToken
from GSTShaderGPU.utils.errors import TileCanceledError


@pytest.mark.parametrize('radius', (0,) + BLUR_RADII)
def test_kernel_shape_and_normalization(radius):
    kernel = gaussian_kernel(radius)

    assert kernel.dtype == np.float32
    assert kernel.shape == (2 * radius + 1,)
    assert np.all(kernel >= 0)
    assert float(kernel.sum()) == pytest.approx(1.0, abs=1e-5)
    np.testing.assert_allclose(kernel, kernel[::-1])
    assert int(np.argmax(kernel)) == radius


def test_sigma_uses_central_mass():
    assert sigma_from_radius(60, 0.95) == pytest.approx(60 / 1.959964)
    assert sigma_from_radius(30, 0.99) == pytest.approx(30 / 2.575829)
    assert sigma_from_radius(0) > 0


def test_z_outside_table_is_computed():
    assert z_for_central_mass(0.6827) == pytest.approx(1.0, abs=1e-3)
    with pytest.raises(ValueError):
        z_for_central_mass(1.5)


def test_negative_radius_rejected():
    with pytest.raises(ValueError):
        build_gaussian_kernel(-1, 1.0)


def test_radius_zero_blur_is_identity():
    rng = np.random.default_rng(1)
    field = rng.normal(size=(16, 16)).astype(np.float32)

    np.testing.assert_array_equal(gaussian_blur(field, 0), field)


def test_constant_field_is_unchanged():
    field = np.full((40, 40), 1234.5, dtype=np.float32)

    for radius in BLUR_RADII:
        np.testing.assert_allclose(gaussian_blur(field, radius), field, rtol=1e-5)


def test_clamp_to_edge_matches_edge_padding():
    rng = np.random.default_rng(3)
    field = rng.uniform(0, 100, size=(12, 20)).astype(np.float32)
    kernel = gaussian_kernel(7)
    r = 7

    padded = np.pad(field.astype(np.float64), ((0, 0), (r, r)), mode='edge')
    expected = np.zeros_like(field, dtype=np.float64)
    for k, w in enumerate(kernel.astype(np.float64)):
        expected += w * padded[:, k:k + field.shape[1]]

    np.testing.assert_allclose(convolve_1d(field, kernel, horizontal=True), expected, rtol=1e-4, atol=1e-3)


def test_vertical_pass_is_transpose_of_horizontal():
    rng = np.random.default_rng(4)
    field = rng.uniform(0, 100, size=(18, 18)).astype(np.float32)
    kernel = gaussian_kernel(3)

    np.testing.assert_allclose(
        convolve_1d(field, kernel, horizontal=False),
        convolve_1d(field.T, kernel, horizontal=True).T,
        rtol=1e-5,
    )


def test_delta_is_non_negative_and_marks_pits():
    field = np.full((31, 31), 100.0, dtype=np.float32)
    field[15, 15] = 50.0
    field[5, 5] = 150.0

    delta = elevation_delta(gaussian_blur(field, 3), field)

    assert np.all(delta >= 0)
    assert delta[15, 15] > 0
    assert delta[5, 5] == 0


def test_blur_checks_cancel_between_passes():
    token = CancelToken()
    token.cancel()

    with pytest.raises(TileCanceledError):
        gaussian_blur(np.zeros((8, 8), dtype=np.float32), 3, cancel_token=token)


def test_required_padding_covers_largest_radius():
    assert required_padding() == 60


def test_blur_uses_the_wider_central_mass():
    impulse = np.zeros((1, 41), dtype=np.float32)
    impulse[0, 20] = 1.0

    response = gaussian_blur(impulse, 7)[0, 13:28]

    assert BLUR_KERNEL_MASS == 0.99
    np.testing.assert_allclose(response, gaussian_kernel(7, 0.99), atol=1e-6)
    assert not np.allclose(response, gaussian_kernel(7, 0.95), atol=1e-4)
