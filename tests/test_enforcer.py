"""Tests for the PlayabilityEnforcer passes."""

import numpy as np
import pytest

from wattbeat.core.difficulty import Difficulty, profile_for
from wattbeat.core.enforcer import (
    PASSES,
    PassContext,
    PlayabilityEnforcer,
    TunnelBounds,
    _fit_scalar,
    detect_problem_zones,
    enforce_floor,
    expand_to_playable,
    fit_band,
    limit_growth_backward,
    limit_shrink_forward,
    local_center_mean,
    smooth_centerline,
)

H = 600.0


def context(difficulty: Difficulty = Difficulty.NORMAL, height: float = H) -> PassContext:
    return PassContext(height=height, profile=profile_for(difficulty))


def bounds_from(center, gap) -> TunnelBounds:
    center = np.asarray(center, dtype=np.float64)
    gap = np.broadcast_to(np.asarray(gap, dtype=np.float64), center.shape)
    return TunnelBounds.from_raw(center - gap / 2, center + gap / 2)


class TestFitBand:
    """Tests for band placement inside the playfield."""

    def test_band_inside_untouched(self):
        top, bot = fit_band(300.0, 100.0, 8.0, 592.0)
        assert (top, bot) == (250.0, 350.0)

    def test_band_shifted_off_edge(self):
        """A band crossing an edge is shifted inward, keeping its width."""
        top, bot = fit_band(10.0, 100.0, 8.0, 592.0)

        assert top == pytest.approx(8.0)
        assert bot == pytest.approx(108.0)

    def test_band_never_leaves_playfield(self):
        """Shifted bands stay inside the margins despite float rounding."""
        rng = np.random.default_rng(3)
        center = rng.uniform(-50, 650, 5000)
        gap = rng.uniform(0, 600, 5000)

        top, bot = fit_band(center, gap, 8.0, 592.0)

        assert np.all(top >= 8.0)
        assert np.all(bot <= 592.0)
        for c, g in zip(center[:500], gap[:500]):
            t, b = _fit_scalar(float(c), float(g), 8.0, 592.0)
            assert t >= 8.0 and b <= 592.0

    def test_band_wider_than_playfield(self):
        top, bot = fit_band(np.array([100.0]), np.array([1000.0]), 8.0, 592.0)

        assert top[0] == pytest.approx(8.0)
        assert bot[0] == pytest.approx(592.0)


class TestTunnelBounds:
    """Tests for the immutable bounds container."""

    def test_arrays_read_only(self):
        bounds = bounds_from(np.full(10, 300.0), 100.0)

        with pytest.raises(ValueError):
            bounds.top_y[0] = 0.0

    def test_from_raw_copies_input(self):
        top = np.full(5, 250.0)
        bounds = TunnelBounds.from_raw(top, np.full(5, 350.0))

        top[0] = 0.0
        assert bounds.top_y[0] == 250.0
        assert np.all(bounds.danger == 0.0)


class TestPasses:
    """Tests for each enforcement pass in isolation."""

    def test_expand_to_playable(self):
        """Narrow columns widen to the playable gap and record danger."""
        ctx = context(Difficulty.EASY)
        bounds = bounds_from(np.full(3, 300.0), np.array([30.0, 250.0, 179.0]))

        result = expand_to_playable(bounds, ctx)

        assert result.gap[0] == pytest.approx(0.30 * H)
        assert result.center[0] == pytest.approx(300.0)
        assert result.danger[0] == pytest.approx(1 - 30.0 / 180.0)
        assert result.gap[1] == pytest.approx(250.0)
        assert result.danger[1] == 0.0
        assert result.danger[2] > 0.0

    def test_floor_forces_exact_minimum(self):
        """A collapsed column is forced to exactly the absolute floor."""
        ctx = context(Difficulty.EASY)
        bounds = bounds_from(np.full(5, 300.0), np.array([265.0, 265.0, 0.5, 265.0, 265.0]))

        result = enforce_floor(bounds, ctx)

        assert result.gap[2] == pytest.approx(168.0)
        assert result.danger[2] == 1.0
        assert result.gap[0] == pytest.approx(265.0)
        assert result.danger[0] == 0.0

    def test_floor_near_edge_keeps_width(self):
        ctx = context(Difficulty.EASY)
        bounds = TunnelBounds.from_raw(np.array([8.0]), np.array([12.0]))

        result = enforce_floor(bounds, ctx)

        assert result.top_y[0] >= 8.0
        assert result.gap[0] == pytest.approx(168.0)

    def test_floor_returns_same_when_satisfied(self):
        bounds = bounds_from(np.full(5, 300.0), 200.0)
        assert enforce_floor(bounds, context()) is bounds

    def test_forward_caps_shrink(self):
        """The gap may shrink by at most the per-column cap."""
        ctx = context(Difficulty.EASY)
        bounds = bounds_from(np.array([300.0, 300.0, 300.0]), np.array([200.0, 100.0, 100.0]))

        result = limit_shrink_forward(bounds, ctx)

        assert result.gap[1] == pytest.approx(198.0)
        assert result.gap[2] == pytest.approx(196.0)
        assert result.center[1] == pytest.approx(300.0)

    def test_forward_allows_growth(self):
        bounds = bounds_from(np.full(3, 300.0), np.array([100.0, 200.0, 300.0]))
        result = limit_shrink_forward(bounds, context())

        assert np.allclose(result.gap, [100.0, 200.0, 300.0])

    def test_backward_pre_widens(self):
        """A column before a sudden opening grows by one cap step."""
        ctx = context(Difficulty.EASY)
        bounds = bounds_from(np.full(3, 300.0), np.array([100.0, 100.0, 200.0]))

        result = limit_growth_backward(bounds, ctx)

        assert result.gap[1] == pytest.approx(102.0)
        assert result.gap[0] == pytest.approx(100.0)
        assert result.gap[2] == pytest.approx(200.0)

    def test_backward_ignores_small_steps(self):
        ctx = context(Difficulty.EASY)
        bounds = bounds_from(np.full(2, 300.0), np.array([100.0, 103.9]))

        result = limit_growth_backward(bounds, ctx)
        assert result.gap[0] == pytest.approx(100.0)

    def test_passes_do_not_mutate_input(self):
        ctx = context(Difficulty.HARD)
        bounds = bounds_from(np.linspace(200, 400, 50), np.linspace(10, 300, 50))
        top_before = bounds.top_y.copy()

        for fn in (expand_to_playable, enforce_floor, limit_shrink_forward, limit_growth_backward, smooth_centerline):
            fn(bounds, ctx)

        assert np.array_equal(bounds.top_y, top_before)

    def test_problem_zone_detection(self):
        """A narrow column with a centerline jump marks a ±15 neighbourhood."""
        ctx = context(Difficulty.NORMAL)
        center = np.full(100, 300.0)
        center[50:] = 310.0
        bounds = bounds_from(center, 100.0)

        zones = detect_problem_zones(bounds, ctx)

        assert zones[35] and zones[50] and zones[65]
        assert not zones[34]
        assert not zones[66]

    def test_wide_columns_not_problematic(self):
        center = np.full(100, 300.0)
        center[50:] = 310.0
        bounds = bounds_from(center, 400.0)

        assert not detect_problem_zones(bounds, context()).any()

    def test_local_center_mean_truncates(self):
        result = local_center_mean(np.array([0.0, 3.0, 6.0, 9.0]), 1)
        assert np.allclose(result, [1.5, 3.0, 6.0, 7.5])

    def test_smoothing_reduces_jump_and_keeps_gap(self):
        ctx = context(Difficulty.NORMAL)
        center = np.full(100, 300.0)
        center[50:] = 310.0
        bounds = bounds_from(center, 100.0)

        result = smooth_centerline(bounds, ctx)

        assert np.abs(np.diff(result.center)).max() < 10.0
        assert np.allclose(result.gap, 100.0)
        assert result.center[0] == 300.0


class TestPlayabilityEnforcer:
    """Tests for the composed pass sequence."""

    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_floor_invariant_random_raw(self, difficulty):
        rng = np.random.default_rng(int(difficulty))
        n = 2000
        center = 300.0 + np.cumsum(rng.normal(0, 6, n)).clip(-250, 250)
        gap = rng.uniform(0, 400, n)
        top = np.clip(center - gap / 2, 8, H - 8)
        bot = np.clip(center + gap / 2, 8, H - 8)

        result = PlayabilityEnforcer(H, difficulty).enforce(top, bot)
        floor = profile_for(difficulty).absolute_min_gap * H

        assert np.all(result.gap >= floor - 1e-6)
        assert np.all(result.top_y >= 8.0)
        assert np.all(result.bot_y <= H - 8.0)
        assert np.all((result.danger >= 0.0) & (result.danger <= 1.0))

    def test_spike_column(self):
        """An isolated collapsed column ends up at least at the Easy floor."""
        n = 200
        top = np.full(n, 300.0 - 132.6)
        bot = np.full(n, 300.0 + 132.6)
        top[100] = 299.5
        bot[100] = 300.5

        result = PlayabilityEnforcer(H, Difficulty.EASY).enforce(top, bot)

        assert result.gap[100] >= 168.0 - 1e-6
        assert result.danger[100] == pytest.approx(1 - 1.0 / 180.0)
        assert result.danger[0] == 0.0

    def test_pass_order(self):
        assert PASSES == (
            expand_to_playable,
            enforce_floor,
            limit_shrink_forward,
            limit_growth_backward,
            enforce_floor,
            smooth_centerline,
            enforce_floor,
        )

    def test_deterministic(self):
        rng = np.random.default_rng(5)
        top = rng.uniform(8, 300, 500)
        bot = top + rng.uniform(0, 200, 500)

        a = PlayabilityEnforcer(H, Difficulty.HARD).enforce(top, bot)
        b = PlayabilityEnforcer(H, Difficulty.HARD).enforce(top, bot)

        assert np.array_equal(a.top_y, b.top_y)
        assert np.array_equal(a.bot_y, b.bot_y)
        assert np.array_equal(a.danger, b.danger)
