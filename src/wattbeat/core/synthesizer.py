"""
Raw tunnel synthesis.

Converts resampled trend and volatility into per-column top/bottom
boundaries. The result is not guaranteed to be playable; it is the
reference the enforcer measures its corrections against.
"""

from dataclasses import dataclass

import numpy as np

from wattbeat.core.difficulty import Difficulty, profile_for
from wattbeat.core.resampler import ResampledSignal

EDGE_MARGIN = 8.0

CENTER_FRACTION = 0.50
AMPLITUDE_FRACTION = 0.18
GAP_MAX_FRACTION = 0.34
GAP_MIN_FRACTION = 0.16
RIPPLE_FRACTION = 0.018
RIPPLE_FREQUENCY = 0.12

# Start-of-level and start-of-phase gap boosts
LEVEL_EASE_BOOST = 0.30
LEVEL_EASE_HOLD = 0.05
LEVEL_EASE_END = 0.20
PHASE_EASE_BOOST = 0.20
PHASE_EASE_SPAN = 0.03
N_PHASES = 3


def ease_in_bonus(progress: np.ndarray) -> np.ndarray:
    """
    Multiplicative gap bonus for a level progress in [0, 1].

    A 30% boost holds over the first 5% of the level and fades out by the
    20% mark. Each phase (third of the level) also opens with a 20% boost
    fading over its first 3%. The larger bonus wins.
    """
    progress = np.asarray(progress, dtype=np.float64)
    fade = LEVEL_EASE_BOOST * (1.0 - (progress - LEVEL_EASE_HOLD) / (LEVEL_EASE_END - LEVEL_EASE_HOLD))
    level_ease = np.where(
        progress < LEVEL_EASE_HOLD,
        LEVEL_EASE_BOOST,
        np.where(progress < LEVEL_EASE_END, fade, 0.0),
    )

    phase_progress = np.mod(progress, 1.0 / N_PHASES)
    phase_ease = np.where(
        phase_progress < PHASE_EASE_SPAN,
        PHASE_EASE_BOOST * (1.0 - phase_progress / PHASE_EASE_SPAN),
        0.0,
    )
    return np.maximum(level_ease, phase_ease)


@dataclass
class RawTunnel:
    """Synthesized boundaries before any playability correction."""

    orig_top_y: np.ndarray
    orig_bot_y: np.ndarray
    target_gap: np.ndarray  # Gap after ease-in, before ripple and clipping
    ease_bonus: np.ndarray

    @property
    def gap(self) -> np.ndarray:
        return self.orig_bot_y - self.orig_top_y


class TunnelSynthesizer:
    """Builds raw tunnel boundaries for one playfield height and difficulty."""

    def __init__(self, height: float, difficulty: Difficulty = Difficulty.NORMAL):
        self.height = float(height)
        self.difficulty = Difficulty.coerce(difficulty)
        self.profile = profile_for(self.difficulty)

    @property
    def gap_max(self) -> float:
        return self.height * GAP_MAX_FRACTION * self.profile.gap_multiplier

    @property
    def gap_min(self) -> float:
        return self.height * GAP_MIN_FRACTION * self.profile.gap_multiplier

    def synthesize(self, resampled: ResampledSignal, price_range: float) -> RawTunnel:
        """
        Compute raw boundaries per column.

        Args:
            resampled: Column-aligned trend/volatility/difference signals.
            price_range: Width of the preprocessing clip band, used to
                normalize price differences for the ripple.

        Returns:
            RawTunnel clipped to the playfield margins.
        """
        H = self.height
        n = resampled.n_columns
        columns = np.arange(n, dtype=np.float64)

        center = H * CENTER_FRACTION + H * AMPLITUDE_FRACTION * resampled.z

        ease = ease_in_bonus(columns / (n - 1))
        g_base = self.gap_max - (self.gap_max - self.gap_min) * resampled.vol
        gap = g_base * (1.0 + ease)

        d_norm = np.clip(resampled.diff / max(1e-6, price_range), -1.0, 1.0)
        ripple = np.sin(columns * RIPPLE_FREQUENCY + d_norm * 3.0) * (H * RIPPLE_FRACTION) * np.abs(d_norm)

        low, high = EDGE_MARGIN, H - EDGE_MARGIN
        return RawTunnel(
            orig_top_y=np.clip(center - gap / 2 + ripple, low, high),
            orig_bot_y=np.clip(center + gap / 2 - ripple, low, high),
            target_gap=gap,
            ease_bonus=ease,
        )
