"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from wattbeat.core.difficulty import Difficulty
from wattbeat.core.geometry import LevelGeometry, LevelStats

# Default playfield height for tests
TEST_HEIGHT = 600.0


@pytest.fixture
def height() -> float:
    return TEST_HEIGHT


@pytest.fixture
def flat_prices() -> np.ndarray:
    """Constant price series (no trend, no volatility)."""
    return np.full(500, 80.0)


@pytest.fixture
def spike_prices() -> np.ndarray:
    """Flat series with a single extreme outlier."""
    prices = np.full(200, 50.0)
    prices[100] = 10000.0
    return prices


@pytest.fixture
def year_prices() -> np.ndarray:
    """
    A synthetic year of hourly prices.

    Daily cycle plus a random walk, with a calm first half and a
    volatile second half.
    """
    rng = np.random.default_rng(42)  # Reproducible
    hours = np.arange(24 * 365)
    daily = 20.0 * np.sin(2 * np.pi * hours / 24.0)
    scale = np.where(hours < len(hours) // 2, 1.0, 8.0)
    walk = np.cumsum(rng.normal(0.0, 1.0, len(hours)) * scale)
    return 90.0 + daily + walk


@pytest.fixture
def volatile_prices() -> np.ndarray:
    """Heavy-tailed price jumps, several weeks long."""
    rng = np.random.default_rng(7)
    jumps = rng.standard_t(df=2, size=24 * 40) * 15.0
    return 100.0 + np.cumsum(jumps)


@pytest.fixture
def make_geometry():
    """Factory for hand-built geometries with uniform or explicit bounds."""

    def _make(
        top,
        bot,
        danger=None,
        height: float = TEST_HEIGHT,
        difficulty: Difficulty = Difficulty.NORMAL,
    ) -> LevelGeometry:
        top = np.asarray(top, dtype=np.float64)
        bot = np.asarray(bot, dtype=np.float64)
        danger = np.zeros_like(top) if danger is None else np.asarray(danger, dtype=np.float64)
        stats = LevelStats(
            n=len(top),
            price_min=0.0,
            price_median=0.0,
            price_max=0.0,
            vol_avg=0.0,
            gap_avg=float(np.mean(bot - top)),
        )
        return LevelGeometry(
            top_y=top.copy(),
            bot_y=bot.copy(),
            orig_top_y=top.copy(),
            orig_bot_y=bot.copy(),
            danger=danger.copy(),
            stats=stats,
            height=height,
            difficulty=difficulty,
        )

    return _make
