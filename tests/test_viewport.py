from decimal import Decimal

import pytest

from fractalviz.viewport import (
    DEEP_ZOOM_BAILOUT,
    MIN_ZOOM,
    PAN_SENSITIVITY,
    IterationBudget,
    ViewportState,
    adapted_iterations,
    clamp_zoom,
    kernel_coordinate,
    pinch_ratio,
    pixel_to_ndc,
    tune_for_zoom,
    wheel_ratio,
)


TOLERANCE = Decimal("1e-30")


@pytest.mark.parametrize("ratio", [1, 1.1, 1 / 1.1, 1e-6, 1e6, 1e12, Decimal("1.0000001")])
def test_zoom_keeps_cursor_point_fixed(ratio):
    view = ViewportState(800, 600, zoom=1, pan_x="-0.5", pan_y="0.25")
    before = view.pixel_to_fractal(123, 45)
    view.zoom_at(123, 45, ratio)
    after = view.pixel_to_fractal(123, 45)
    assert abs(after[0] - before[0]) < TOLERANCE
    assert abs(after[1] - before[1]) < TOLERANCE


def test_zoom_invariant_holds_when_clamped():
    view = ViewportState(640, 480, zoom=1)
    before = view.pixel_to_fractal(10, 470)
    view.zoom_at(10, 470, 1e-20)
    assert view.zoom == MIN_ZOOM
    after = view.pixel_to_fractal(10, 470)
    assert abs(after[0] - before[0]) < Decimal("1e-20")
    assert abs(after[1] - before[1]) < Decimal("1e-20")


def test_repeated_wheel_zoom_into_deep_region():
    view = ViewportState(800, 800, zoom=1, pan_x="-0.743643887037158704752191506114774")
    target = view.pixel_to_fractal(400, 400)
    for _ in range(300):
        view.zoom_at(400, 400, wheel_ratio(1))
    assert view.zoom > Decimal("1e12")
    after = view.pixel_to_fractal(400, 400)
    assert abs(after[0] - target[0]) < TOLERANCE


def test_non_finite_ratio_is_ignored():
    view = ViewportState(100, 100, zoom=2, pan_x=1)
    view.zoom_at(10, 10, float("inf"))
    assert view.zoom == 2
    assert view.pan_x == 1


def test_pan_direction():
    view = ViewportState(100, 100, zoom=2)
    view.pan_by(10, 20)
    assert view.pan_x == -10 * PAN_SENSITIVITY / 2
    assert view.pan_y == 20 * PAN_SENSITIVITY / 2


def test_pan_is_scaled_by_zoom():
    shallow = ViewportState(100, 100, zoom=1)
    deep = ViewportState(100, 100, zoom=1000)
    shallow.pan_by(5, 0)
    deep.pan_by(5, 0)
    assert deep.pan_x * 1000 == shallow.pan_x


def test_wheel_and_pinch_ratios():
    assert wheel_ratio(1) == Decimal("1.1")
    assert abs(wheel_ratio(-1) * Decimal("1.1") - 1) < Decimal("1e-40")
    assert wheel_ratio(0) == 1
    assert pinch_ratio(100, 150) == Decimal("1.5")
    with pytest.raises(ValueError):
        pinch_ratio(0, 10)


@pytest.mark.parametrize("value", [0, -1, Decimal("NaN"), Decimal("1e-30")])
def test_clamp_zoom(value):
    assert clamp_zoom(value) == MIN_ZOOM


def test_pixel_to_ndc():
    assert pixel_to_ndc(400.0, 300.0, 800, 600) == pytest.approx((0.0, 0.0))
    assert pixel_to_ndc(0.0, 0.0, 800, 600) == pytest.approx((-800 / 600, 1.0))
    assert pixel_to_ndc(800.0, 600.0, 800, 600) == pytest.approx((800 / 600, -1.0))


def test_kernel_coordinate_matches_host_mapping():
    view = ViewportState(320, 200, zoom=2, pan_x="-0.75", pan_y="0.1")
    frame = view.frame_parameters()
    x, y = kernel_coordinate(37.5, 150.5, frame.width, frame.height, frame.zoom,
                             frame.pan_x.high, frame.pan_x.low,
                             frame.pan_y.high, frame.pan_y.low)
    hx, hy = view.pixel_to_fractal(Decimal("37.5"), Decimal("150.5"))
    assert x == pytest.approx(float(hx), abs=1e-12)
    assert y == pytest.approx(float(hy), abs=1e-12)


def test_kernel_coordinate_clamps_zoom():
    x, y = kernel_coordinate(0.0, 0.0, 10, 10, 0.0, 0.0, 0.0, 0.0, 0.0)
    assert x == pytest.approx(-1e12)
    assert y == pytest.approx(1e12)


def test_frame_parameters_split_pan():
    view = ViewportState(64, 48, zoom="1e8", pan_x="-0.74364388703715870475", pan_y="0.13182590420531")
    frame = view.frame_parameters()
    assert frame.zoom == 1e8
    assert frame.pan_x.reconstruct() == pytest.approx(-0.74364388703715870475, abs=1e-16)
    assert abs(frame.pan_y.to_decimal() - Decimal("0.13182590420531")) < Decimal("1e-16")


def test_resize_reset_copy():
    view = ViewportState(10, 10, zoom=3, pan_x=1, pan_y=2)
    clone = view.copy()
    view.resize(0, 40)
    assert (view.width, view.height) == (1, 40)
    view.reset()
    assert (view.zoom, view.pan_x, view.pan_y) == (1, 0, 0)
    assert (clone.width, clone.zoom, clone.pan_y) == (10, 3, 2)


@pytest.mark.parametrize("zoom, base, expected", [
    (1, 50, 100),
    (1, 500, 500),
    (1024, 50, 300),
    (Decimal("1e30"), 50, 1000),
    (Decimal("1e30"), 5000, 5000),
    (0.5, 10, 80),
])
def test_adapted_iterations(zoom, base, expected):
    assert adapted_iterations(zoom, base) == expected


def test_tune_for_zoom_deep():
    tuning = tune_for_zoom(Decimal("1e5"), 100, 4.0, True)
    assert tuning.bailout == DEEP_ZOOM_BAILOUT
    assert tuning.use_stabilization is False
    shallow = tune_for_zoom(10, 100, 4.0, True)
    assert shallow.bailout == 4.0
    assert shallow.use_stabilization is True
    fixed = tune_for_zoom(Decimal("1e5"), 100, 4.0, True, adaptive=False)
    assert fixed == (100, 4.0, True)


def test_tune_for_zoom_iteration_floor():
    assert tune_for_zoom(1, 0, 4.0, True, adaptive=False).max_iterations == 1


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_iteration_budget_caching():
    clock = FakeClock()
    budget = IterationBudget(zoom_ratio_threshold=1.25, min_interval=0.25, clock=clock)
    budget.tuning(1, 100, 4.0, True)
    budget.tuning(1, 100, 4.0, True)
    assert budget.recomputations == 1

    # Small zoom change right away: cached
    budget.tuning(Decimal("1.1"), 100, 4.0, True)
    assert budget.recomputations == 1

    # Same small change after the interval: recomputed
    clock.now = 0.3
    budget.tuning(Decimal("1.1"), 100, 4.0, True)
    assert budget.recomputations == 2

    # Large zoom change: recomputed immediately
    budget.tuning(Decimal("2.0"), 100, 4.0, True)
    assert budget.recomputations == 3

    # Settings change: recomputed immediately
    budget.tuning(Decimal("2.0"), 200, 4.0, True)
    assert budget.recomputations == 4
