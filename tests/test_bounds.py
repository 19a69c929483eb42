import math

import numpy as np
import pytest

from ggb2tikz.bounds import (
    Bounds,
    clip_line,
    clip_ray,
    compute_bounds,
    continuous_runs,
    find_visible_param_segments,
)
from ggb2tikz.solvers import LineCoeffs


def test_smart_bounds_pad_visible_points():
    bounds = compute_bounds([(0, 0, True), (10, 5, True), (100, 100, False)])

    # pad = max(0.8, 0.2 * extent)
    assert bounds.as_tuple() == pytest.approx((-2.0, 12.0, -1.0, 6.0))


def test_smart_bounds_single_point_uses_minimum_padding():
    bounds = compute_bounds([(1, 1, True)])

    assert bounds.as_tuple() == pytest.approx((0.2, 1.8, 0.2, 1.8))


def test_smart_bounds_fall_back_to_defaults_without_visible_points():
    defaults = Bounds(-3, 3, -2, 2)

    assert compute_bounds([(5, 5, False)], defaults) == defaults
    assert compute_bounds([(math.nan, 1, True)], defaults) == defaults


def test_disabled_smart_bounds_return_defaults():
    defaults = Bounds(-1, 1, -1, 1)

    assert compute_bounds([(50, 50, True)], defaults, smart=False) == defaults


def test_explicit_axis_overrides_win_over_smart_bounds():
    defaults = Bounds(-20, 10, -10, 10)
    bounds = compute_bounds([(0, 0, True), (10, 5, True)], defaults, overrides=["xmin"])

    assert bounds.xmin == -20
    assert bounds.xmax == pytest.approx(12.0)


def test_smart_bounds_are_idempotent():
    points = [(0.5, -1, True), (3, 2.25, True), (-4, 7, True), (9, 9, False)]
    defaults = Bounds(-20, 10, -10, 10)

    first = compute_bounds(points, defaults, overrides=["ymax"])
    second = compute_bounds(points, defaults, overrides=["ymax"])

    assert first == second
    assert compute_bounds(points) == compute_bounds(points)


def test_clip_line_crosses_viewport_border():
    bounds = Bounds(-5, 5, -5, 5)

    horizontal = clip_line(LineCoeffs(0, 1, -1), bounds)
    assert sorted(horizontal) == [(-5.0, 1.0), (5.0, 1.0)]

    diagonal = clip_line(LineCoeffs(1, -1, 0), bounds)
    assert sorted(diagonal) == [(-5.0, -5.0), (5.0, 5.0)]


def test_clip_line_outside_viewport():
    assert clip_line(LineCoeffs(0, 1, -50), Bounds()) is None


def test_clip_ray_keeps_start_and_farthest_exit():
    bounds = Bounds(-5, 5, -5, 5)

    start, end = clip_ray((0, 0), (1, 0), bounds)
    assert start == (0, 0)
    assert end == pytest.approx((5.0, 0.0))

    assert clip_ray((0, 0), (0, 0), bounds) is None
    assert clip_ray((10, 10), (11, 11), bounds) is None


def test_continuous_runs_split_on_gaps():
    ts = np.linspace(0, 10, 11)
    ok = np.array([True] * 4 + [False] + [True] * 6)

    assert continuous_runs(ts, ok, 10.0) == [(0.0, 3.0), (5.0, 10.0)]


def test_continuous_runs_drop_short_spans():
    ts = np.linspace(0, 10, 11)
    ok = np.array([True] + [False] * 10)

    assert continuous_runs(ts, ok, 10.0) == []


def test_visible_param_segments_of_a_parabola():
    bounds = Bounds(-5, 5, -5, 5)
    segments = find_visible_param_segments(lambda t: (t, t * t), -5, 5, bounds, samples=200)

    assert len(segments) == 1
    start, end = segments[0]
    assert start == pytest.approx(-math.sqrt(5), abs=0.06)
    assert end == pytest.approx(math.sqrt(5), abs=0.06)


def test_visible_param_segments_with_invalid_range():
    assert find_visible_param_segments(lambda t: (t, t), 1, 1, Bounds()) == []
