"""
Runtime tunnel breathing.

Each simulation tick the tunnel around the player is temporarily widened
where it is still tighter than a comfortable gap. The widening is computed
fresh from the immutable base geometry every tick and only ever opens the
tunnel, never closes it.
"""

from dataclasses import dataclass

import numpy as np

from wattbeat.core.difficulty import Difficulty, profile_for
from wattbeat.core.geometry import COLUMNS_PER_PIXEL, LevelGeometry
from wattbeat.core.synthesizer import EDGE_MARGIN


@dataclass
class BreathingView:
    """Widened boundaries for the columns in ``[start, start + len(top_y))``."""

    start: int
    top_y: np.ndarray
    bot_y: np.ndarray
    breathe_intensity: np.ndarray
    base: LevelGeometry

    @property
    def stop(self) -> int:
        return self.start + len(self.top_y)

    def __contains__(self, column: int) -> bool:
        return self.start <= column < self.stop

    def bounds_at(self, column: int) -> tuple[float, float]:
        """Boundaries at a column, falling back to the base outside the window."""
        if column in self:
            i = column - self.start
            return float(self.top_y[i]), float(self.bot_y[i])
        return self.base.bounds_at(column)

    def intensity_at(self, column: int) -> float:
        if column in self:
            return float(self.breathe_intensity[column - self.start])
        return 0.0


class BreathingAdjuster:
    """Computes a per-tick BreathingView around the player."""

    def __init__(
        self,
        behind: int = 20,
        ahead: int = 120,
        proximity_peak: float = 30.0,
        proximity_width: float = 60.0,
    ):
        """
        Initialize the adjuster.

        Args:
            behind: Columns behind the player that may still breathe.
            ahead: Look-ahead window in columns.
            proximity_peak: Distance ahead with the strongest widening.
            proximity_width: Width of the look-ahead falloff.
        """
        self.behind = behind
        self.ahead = ahead
        self.proximity_peak = proximity_peak
        self.proximity_width = proximity_width

    def proximity_weight(self, dist: np.ndarray) -> np.ndarray:
        """
        Weight in [0, 1] by signed column distance from the player.

        Behind the player it falls off linearly; ahead it is a Gaussian
        peaking a little in front, so reaction time is rewarded over
        widening right under the player.
        """
        dist = np.asarray(dist, dtype=np.float64)
        behind = np.maximum(0.0, 1.0 + dist / self.behind)
        ahead = np.exp(-(((dist - self.proximity_peak) / self.proximity_width) ** 2))
        return np.where(dist < 0, behind, ahead)

    def compute(
        self,
        geometry: LevelGeometry,
        player_world_x: float,
        radius: float,
        difficulty: Difficulty | None = None,
        height: float | None = None,
    ) -> BreathingView:
        """
        Widen the tunnel near the player for one tick.

        Args:
            geometry: Enforced level geometry (not modified).
            player_world_x: Player's horizontal world position.
            radius: Player hitbox radius in pixels.
            difficulty: Defaults to the geometry's difficulty.
            height: Playfield height; defaults to the geometry's height.

        Returns:
            BreathingView covering the look-ahead window.
        """
        difficulty = geometry.difficulty if difficulty is None else Difficulty.coerce(difficulty)
        H = geometry.height if height is None else float(height)
        profile = profile_for(difficulty)

        player_col = int(np.floor(player_world_x * COLUMNS_PER_PIXEL))
        start = min(max(0, player_col - self.behind), geometry.n_columns)
        stop = max(start, min(geometry.n_columns, player_col + self.ahead))

        top = geometry.top_y[start:stop]
        bot = geometry.bot_y[start:stop]
        danger = geometry.danger[start:stop]

        min_safe_gap = radius * 2.0 + profile.safe_gap_base * H
        gap = bot - top
        tight = gap < min_safe_gap

        weight = self.proximity_weight(np.arange(start, stop) - player_col)
        expansion = np.maximum(0.0, min_safe_gap - gap) * weight * profile.expansion_strength
        expansion = np.where(tight, expansion, 0.0)

        low, high = EDGE_MARGIN, H - EDGE_MARGIN
        return BreathingView(
            start=start,
            top_y=np.minimum(top, np.clip(top - expansion, low, high)),
            bot_y=np.maximum(bot, np.clip(bot + expansion, low, high)),
            breathe_intensity=np.where(tight, np.clip(weight * danger, 0.0, 1.0), 0.0),
            base=geometry,
        )
