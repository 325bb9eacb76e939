"""Immutable level geometry shared by rendering, collision and breathing."""

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from wattbeat.core.difficulty import Difficulty

# World pixels advance two per column
COLUMNS_PER_PIXEL = 0.5


@dataclass(frozen=True)
class LevelStats:
    """Summary shown on the HUD."""

    n: int
    price_min: float
    price_median: float
    price_max: float
    vol_avg: float
    gap_avg: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LevelGeometry:
    """
    Enforced tunnel plus the raw tunnel it was derived from.

    All arrays are read-only; any parameter change means building a new
    geometry rather than editing this one.
    """

    top_y: np.ndarray
    bot_y: np.ndarray
    orig_top_y: np.ndarray
    orig_bot_y: np.ndarray
    danger: np.ndarray
    stats: LevelStats
    height: float
    difficulty: Difficulty

    def __post_init__(self):
        for arr in (self.top_y, self.bot_y, self.orig_top_y, self.orig_bot_y, self.danger):
            arr.setflags(write=False)

    @property
    def n_columns(self) -> int:
        return len(self.top_y)

    @property
    def gap(self) -> np.ndarray:
        return self.bot_y - self.top_y

    @property
    def center(self) -> np.ndarray:
        return (self.top_y + self.bot_y) / 2.0

    def column_at(self, world_x: float) -> int:
        """Column under a world x position, clamped to the level."""
        idx = int(np.floor(world_x * COLUMNS_PER_PIXEL))
        return min(max(idx, 0), self.n_columns - 1)

    def bounds_at(self, column: int) -> tuple[float, float]:
        return float(self.top_y[column]), float(self.bot_y[column])
