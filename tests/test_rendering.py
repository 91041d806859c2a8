"""Tests for the render pipeline, drawn against a recording surface."""

import numpy as np
import pytest

from interp_plotter import rendering
from interp_plotter.errors import DuplicateXError
from interp_plotter.interpolation import LAGRANGE_FORMULA_TEXT, NEWTON_ERROR_TEXT, InterpolationMethod
from interp_plotter.points import Point
from interp_plotter.rendering import (
    HIDDEN_TEXT,
    NEED_UNIQUE_TEXT,
    NOT_ENOUGH_POINTS_TEXT,
    CurveState,
    RecordingSurface,
    marker_radius,
    render_scene,
    sample_curve,
    sample_segments,
)
from interp_plotter.viewport import ViewportTracker, ViewportTransform

# Unit grid over [-10, 10]^2: 21 vertical + 21 horizontal lines, plus 2 axes.
GRID_AND_AXES = 44

PARABOLA = [Point(0.0, 1.0), Point(1.0, 2.0), Point(2.0, 5.0)]


def shown(method=InterpolationMethod.NEWTON):
    state = CurveState(method=method)
    state.commit()
    return state


class TestSampling:

    @pytest.mark.parametrize("width,expected", [
        (50, 100), (200, 100), (201, 100), (400, 200), (599, 299), (600, 300), (2000, 300),
    ])
    def test_segment_count(self, width, expected):
        assert sample_segments(width) == expected

    def test_segment_count_is_monotonic(self):
        counts = [sample_segments(w) for w in range(0, 1000, 7)]
        assert counts == sorted(counts)

    def test_samples_whole_visible_range(self, viewport):
        paths = sample_curve(lambda x: 0.5 * x, viewport)
        assert len(paths) == 1
        assert paths[0].shape == (sample_segments(800) + 1, 2)
        assert paths[0][0, 0] == pytest.approx(0.0)
        assert paths[0][-1, 0] == pytest.approx(800.0)

    def test_nan_breaks_path(self, viewport):
        paths = sample_curve(lambda x: np.where(np.abs(x) < 1.0, np.nan, 0.0), viewport)
        assert len(paths) == 2
        assert paths[0][-1, 0] < 400.0 < paths[1][0, 0]

    def test_far_off_surface_breaks_path(self, viewport):
        paths = sample_curve(lambda x: np.where(np.abs(x) < 1.0, 1e6, 0.0), viewport)
        assert len(paths) == 2

    def test_below_surface_breaks_path(self, viewport):
        paths = sample_curve(lambda x: np.where(x > 0.0, -1e6, 0.0), viewport)
        assert len(paths) == 1
        assert paths[0][-1, 0] <= 400.0

    def test_generous_bounds_keep_near_excursions(self, viewport):
        # y = 20 sits above the surface (pixel y = -240) but within 2 heights
        paths = sample_curve(lambda x: np.full_like(x, 20.0), viewport)
        assert len(paths) == 1

    def test_overflow_is_soft(self, viewport):
        paths = sample_curve(lambda x: np.exp(np.where(x > 5.0, 1e4, 0.0)), viewport)
        assert len(paths) == 1

    def test_all_out_of_bounds(self, viewport):
        assert sample_curve(lambda x: np.full_like(x, np.nan), viewport) == []


class TestRenderScene:

    def test_invalid_viewport_draws_nothing(self):
        surface = RecordingSurface()
        result = render_scene(surface, PARABOLA, ViewportTransform.from_size(0, 0), shown())
        assert result.formula is None
        assert [c.op for c in surface.commands] == ["clear"]

    def test_hidden_curve(self, viewport):
        surface = RecordingSurface()
        result = render_scene(surface, PARABOLA, viewport, CurveState())
        assert result.formula == HIDDEN_TEXT
        assert len(surface.ops("line")) == GRID_AND_AXES
        assert len(surface.ops("circle")) == 3
        assert surface.ops("polyline") == []

    def test_markers_sit_on_points(self, viewport):
        surface = RecordingSurface()
        render_scene(surface, [Point(1.0, 1.0)], viewport, CurveState())
        cx, cy, radius, _ = surface.ops("circle")[0].args
        assert (cx, cy) == pytest.approx((437.0, 273.0))
        assert radius == marker_radius(800)

    def test_not_enough_points(self, viewport):
        result = render_scene(RecordingSurface(), PARABOLA[:1], viewport, shown())
        assert result.formula == NOT_ENOUGH_POINTS_TEXT

    def test_hidden_wins_over_not_enough(self, viewport):
        result = render_scene(RecordingSurface(), [], viewport, CurveState())
        assert result.formula == HIDDEN_TEXT

    def test_method_change_keeps_hidden_text(self, viewport):
        state = CurveState()
        state.set_method(InterpolationMethod.LAGRANGE)
        result = render_scene(RecordingSurface(), [], viewport, state)
        assert result.formula == HIDDEN_TEXT

    def test_needs_unique_x(self, viewport):
        surface = RecordingSurface()
        result = render_scene(surface, [Point(1.0, 1.0), Point(1.0, 3.0)], viewport, shown())
        assert result.formula == NEED_UNIQUE_TEXT
        assert surface.ops("polyline") == []

    def test_newton_curve(self, viewport):
        surface = RecordingSurface()
        result = render_scene(surface, PARABOLA, viewport, shown())
        assert result.formula == "P(x) = 1.00 + 1.00(x - 0.0) + 1.00(x - 0.0)(x - 1.0)"
        assert result.fit is not None
        polylines = surface.ops("polyline")
        assert len(polylines) == 1
        pts = polylines[0].args[0]
        assert np.all(pts[:, 1] >= -2 * 600) and np.all(pts[:, 1] <= 3 * 600)
        # the curve passes through (2, 5), i.e. pixel (474, 165)
        nearest = np.argmin(np.abs(pts[:, 0] - 474.0))
        assert pts[nearest, 1] == pytest.approx(165.0, abs=6.0)

    def test_lagrange_curve_matches_newton(self, viewport):
        newton, lagrange = RecordingSurface(), RecordingSurface()
        render_scene(newton, PARABOLA, viewport, shown())
        result = render_scene(lagrange, PARABOLA, viewport, shown(InterpolationMethod.LAGRANGE))
        assert result.formula == LAGRANGE_FORMULA_TEXT
        np.testing.assert_allclose(lagrange.ops("polyline")[0].args[0],
                                   newton.ops("polyline")[0].args[0], atol=1e-6)

    def test_duplicate_points_are_filtered_before_fit(self, viewport):
        points = PARABOLA + [Point(1.0, -7.0)]
        result = render_scene(RecordingSurface(), points, viewport, shown())
        assert result.fit is not None
        np.testing.assert_array_equal(result.fit.nodes.ys, [1.0, 2.0, 5.0])

    def test_newton_failure_is_a_placeholder(self, viewport, monkeypatch):
        def broken(*args, **kwargs):
            raise DuplicateXError(1.0)

        monkeypatch.setattr(rendering, "fit_curve", broken)
        surface = RecordingSurface()
        result = render_scene(surface, PARABOLA, viewport, shown())
        assert result.formula == NEWTON_ERROR_TEXT
        assert surface.ops("polyline") == []

    def test_redraw_is_idempotent(self, viewport):
        first, second = RecordingSurface(), RecordingSurface()
        state = shown()
        r1 = render_scene(first, PARABOLA, viewport, state)
        r2 = render_scene(second, PARABOLA, viewport, state)
        assert r1.formula == r2.formula
        assert len(first.commands) == len(second.commands)
        for a, b in zip(first.commands, second.commands):
            assert a.op == b.op
            if a.op == "polyline":
                np.testing.assert_array_equal(a.args[0], b.args[0])
            else:
                assert a.args == b.args

    def test_drawing_resumes_after_collapse(self):
        tracker = ViewportTracker(width=800, height=600)
        state = shown()

        tracker.observe(0, 0)
        surface = RecordingSurface()
        assert render_scene(surface, PARABOLA, tracker.transform, state).formula is None
        assert len(surface.commands) == 1

        tracker.observe(640, 480)
        surface = RecordingSurface()
        result = render_scene(surface, PARABOLA, tracker.transform, state)
        assert result.formula.startswith("P(x) = 1.00")
        assert len(surface.ops("polyline")) == 1


class TestCurveState:

    def test_commit_shows_and_bumps(self):
        state = CurveState()
        state.commit()
        assert state.visible
        assert state.generation == 1

    def test_method_change_bumps(self):
        state = CurveState()
        state.set_method(InterpolationMethod.NEWTON)
        assert state.generation == 0
        state.set_method(InterpolationMethod.LAGRANGE)
        assert state.generation == 1

    def test_hide_and_recompute(self):
        state = CurveState()
        state.commit()
        state.hide()
        assert not state.visible
        state.recompute()
        assert state.generation == 2


@pytest.mark.parametrize("width,radius", [(100, 3.0), (400, 4.0), (1000, 5.0)])
def test_marker_radius(width, radius):
    assert marker_radius(width) == radius
