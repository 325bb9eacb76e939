"""
Difficulty levels and their tuning tables.

Every threshold used by synthesis, enforcement and breathing lives here so
that a single lookup parametrizes the whole pipeline.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from wattbeat.errors import InvalidDifficultyError


class Difficulty(IntEnum):
    """Closed set of difficulty levels."""

    EASY = 0
    NORMAL = 1
    HARD = 2

    @classmethod
    def coerce(cls, value: Union["Difficulty", int, str]) -> "Difficulty":
        """
        Resolve a member, its integer value or its name.

        Raises:
            InvalidDifficultyError: For anything outside the three levels.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidDifficultyError(f"Unknown difficulty: {value!r}") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDifficultyError(f"Unknown difficulty: {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise InvalidDifficultyError(f"Unknown difficulty: {value!r}") from None


@dataclass(frozen=True)
class DifficultyProfile:
    """Per-difficulty constants. Fractions are relative to playfield height."""

    stretch_base: float
    gap_multiplier: float
    min_playable_gap: float
    absolute_min_gap: float
    max_gap_change_per_col: float  # px
    narrow_threshold: float
    max_center_change_per_col: float  # px
    smooth_radius: int  # columns
    safe_gap_base: float
    expansion_strength: float


PROFILES: dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        stretch_base=2.5,
        gap_multiplier=1.30,
        min_playable_gap=0.30,
        absolute_min_gap=0.28,
        max_gap_change_per_col=2.0,
        narrow_threshold=0.38,
        max_center_change_per_col=1.5,
        smooth_radius=20,
        safe_gap_base=0.26,
        expansion_strength=1.0,
    ),
    Difficulty.NORMAL: DifficultyProfile(
        stretch_base=2.0,
        gap_multiplier=1.15,
        min_playable_gap=0.24,
        absolute_min_gap=0.22,
        max_gap_change_per_col=3.0,
        narrow_threshold=0.32,
        max_center_change_per_col=2.2,
        smooth_radius=14,
        safe_gap_base=0.20,
        expansion_strength=0.6,
    ),
    Difficulty.HARD: DifficultyProfile(
        stretch_base=1.5,
        gap_multiplier=0.95,
        min_playable_gap=0.18,
        absolute_min_gap=0.16,
        max_gap_change_per_col=4.0,
        narrow_threshold=0.26,
        max_center_change_per_col=3.0,
        smooth_radius=10,
        safe_gap_base=0.14,
        expansion_strength=0.4,
    ),
}


def profile_for(difficulty: Union[Difficulty, int, str]) -> DifficultyProfile:
    """Return the tuning table for a difficulty, failing fast on bad input."""
    return PROFILES[Difficulty.coerce(difficulty)]


def absolute_min_gap(difficulty: Union[Difficulty, int, str], height: float) -> float:
    """Hard floor on the gap, in pixels."""
    return profile_for(difficulty).absolute_min_gap * height


def min_playable_gap(difficulty: Union[Difficulty, int, str], height: float) -> float:
    """Gap every raw column is first expanded to, in pixels."""
    return profile_for(difficulty).min_playable_gap * height
