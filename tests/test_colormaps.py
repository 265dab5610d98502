import math

import numpy as np
import pytest

from fractalviz.colormaps import (
    HUE_ANIMATION_RATE,
    NEWTON_TINTS,
    PALETTES,
    TWO_PI,
    animated_hue_phase,
    color_for_result,
    color_index_to_rgb,
    colorize,
    desaturate,
    downscale_2x,
    get_default_palette,
    get_palette,
    list_palette_names,
    palette_channel,
    shade_point,
    smooth_iteration,
    to_rgb8,
)
from fractalviz.compute import (
    FRACTAL_MANDELBROT,
    RESULT_CONVERGED,
    RESULT_ESCAPED,
    RESULT_INTERIOR,
    RESULT_NOT_CONVERGED,
    evaluate,
)


CLASSIC = get_default_palette()


def test_smooth_iteration_renormalizes():
    # |z| = 4 gives log2(log2|z|) = 1, so nu = n
    assert smooth_iteration(7, 16.0) == pytest.approx(7.0)
    assert smooth_iteration(7, 256.0) < 7.0


@pytest.mark.parametrize("abs_z2", [0.5, 1.0, float("inf")])
def test_smooth_iteration_falls_back_to_count(abs_z2):
    assert smooth_iteration(5, abs_z2) == 5.0


@pytest.mark.parametrize("k", range(-3, 12))
def test_palette_continuous_across_integers(k):
    below = color_index_to_rgb(k - 1e-9, *CLASSIC)
    above = color_index_to_rgb(k + 1e-9, *CLASSIC)
    assert below == pytest.approx(above, abs=1e-6)


def test_palette_at_integer_hits_sample():
    r, g, b = color_index_to_rgb(3.0, *CLASSIC)
    assert r == pytest.approx(palette_channel(3.0, CLASSIC[0]))
    assert g == pytest.approx(palette_channel(3.0, CLASSIC[1]))
    assert b == pytest.approx(palette_channel(3.0, CLASSIC[2]))


def test_zero_saturation_is_gray():
    r, g, b = desaturate(0.9, 0.2, 0.4, 0.0)
    assert r == pytest.approx(g) and g == pytest.approx(b)
    assert desaturate(0.9, 0.2, 0.4, 1.0) == pytest.approx((0.9, 0.2, 0.4))


@pytest.mark.parametrize("status", [RESULT_INTERIOR, RESULT_NOT_CONVERGED])
def test_non_escaped_points_are_black(status):
    assert shade_point(status, 100, 0.1, 0.1, 100, 0.0, 1.0, 1.0, *CLASSIC) == (0.0, 0.0, 0.0)


def test_newton_tint_dims_with_iterations():
    fast = shade_point(RESULT_CONVERGED, 2, 1.0, 0.0, 10, 0.0, 1.0, 1.0, *CLASSIC)
    slow = shade_point(RESULT_CONVERGED, 8, 1.0, 0.0, 10, 0.0, 1.0, 1.0, *CLASSIC)
    assert fast == pytest.approx(tuple(NEWTON_TINTS[0] * 0.8))
    assert sum(slow) < sum(fast)


def test_escaped_color_in_range():
    r, g, b = shade_point(RESULT_ESCAPED, 3, 5.0, 5.0, 100, 0.5, 0.3, 1.0, *CLASSIC)
    for channel in (r, g, b):
        assert 0.0 <= channel <= 1.0


def test_colorize_writes_opaque_rgba():
    status = np.array([[RESULT_ESCAPED, RESULT_INTERIOR]], dtype=np.int8)
    iterations = np.array([[4, 100]], dtype=np.int32)
    zr = np.array([[10.0, 0.0]])
    zi = np.array([[0.0, 0.0]])
    out = np.zeros((1, 2, 4), dtype=np.float32)
    colorize(status, iterations, zr, zi, 100, 0.0, 1.0, 1.0, *CLASSIC, out)
    assert (out[..., 3] == 1.0).all()
    assert (out[0, 1, :3] == 0.0).all()
    assert out[0, 0, :3].max() > 0.0


def test_downscale_2x_averages_blocks():
    src = np.zeros((4, 4, 4), dtype=np.float32)
    src[0, 0] = 1.0
    dst = np.empty((2, 2, 4), dtype=np.float32)
    downscale_2x(src, dst)
    assert dst[0, 0, 0] == pytest.approx(0.25)
    assert dst[1, 1, 0] == 0.0


def test_to_rgb8():
    rgba = np.array([[[0.0, 0.5, 1.0, 1.0], [2.0, -1.0, 1.0, 1.0]]], dtype=np.float32)
    rgb = to_rgb8(rgba)
    assert rgb.dtype == np.uint8
    assert rgb.shape == (1, 2, 3)
    assert rgb[0, 0].tolist() == [0, 128, 255]
    assert rgb[0, 1].tolist() == [255, 0, 255]


def test_animated_hue_phase():
    assert animated_hue_phase(1.5, 100.0, 0.3, False) == 1.5
    phase = animated_hue_phase(0.0, 1.0, 0.3, True)
    assert phase == pytest.approx(HUE_ANIMATION_RATE * 0.3 % TWO_PI)
    assert 0.0 <= animated_hue_phase(0.0, 1234.5, 1.0, True) < TWO_PI


def test_color_for_result():
    result = evaluate(FRACTAL_MANDELBROT, 2 + 2j, max_iter=50)
    rgb = color_for_result(result, 50, palette=get_palette("Ocean"))
    assert len(rgb) == 3
    assert all(0.0 <= c <= 1.0 for c in rgb)
    interior = evaluate(FRACTAL_MANDELBROT, 0j, max_iter=50)
    assert color_for_result(interior, 50) == (0.0, 0.0, 0.0)


def test_palette_registry():
    assert list_palette_names() == list(PALETTES.keys())
    assert get_default_palette() == PALETTES["Classic"]
    assert get_palette("Classic")[1] == pytest.approx(2.0 * math.pi / 3.0)
    with pytest.raises(KeyError):
        get_palette("Nope")
