"""
Playability enforcement.

A fixed sequence of corrective passes that turns raw synthesized
boundaries into a tunnel with a guaranteed minimum gap everywhere. Each
pass is a pure function from one TunnelBounds to a new one, so passes can
be run and tested in isolation. Order matters: rate limiting can undo the
floor, so the floor is re-applied after it and once more at the very end.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy import ndimage

from wattbeat.core.difficulty import Difficulty, DifficultyProfile, profile_for
from wattbeat.core.synthesizer import EDGE_MARGIN

logger = logging.getLogger(__name__)

PROBLEM_ZONE_RADIUS = 15
MIN_BLEND = 0.3
MAX_BLEND = 0.9


def fit_band(center, gap, low: float, high: float):
    """
    Place a band of width ``gap`` around ``center`` inside [low, high].

    The center is shifted inward when the band would cross an edge, so the
    width survives clamping whenever it fits the playfield at all.

    Returns:
        Tuple of (top, bottom), scalars or arrays matching the inputs.
    """
    half = np.minimum(gap, high - low) / 2.0
    center = np.clip(center, low + half, high - half)
    # Rounding in the shift can land a hair outside the playfield
    return np.maximum(center - half, low), np.minimum(center + half, high)


def _fit_scalar(center: float, gap: float, low: float, high: float) -> tuple[float, float]:
    half = min(gap, high - low) / 2.0
    center = min(max(center, low + half), high - half)
    return max(center - half, low), min(center + half, high)


@dataclass(frozen=True)
class TunnelBounds:
    """Immutable per-column boundaries plus the danger byproduct."""

    top_y: np.ndarray
    bot_y: np.ndarray
    danger: np.ndarray

    def __post_init__(self):
        for arr in (self.top_y, self.bot_y, self.danger):
            arr.setflags(write=False)

    @classmethod
    def from_raw(cls, top_y: np.ndarray, bot_y: np.ndarray) -> "TunnelBounds":
        top = np.array(top_y, dtype=np.float64)
        return cls(top_y=top, bot_y=np.array(bot_y, dtype=np.float64), danger=np.zeros_like(top))

    @property
    def gap(self) -> np.ndarray:
        return self.bot_y - self.top_y

    @property
    def center(self) -> np.ndarray:
        return (self.top_y + self.bot_y) / 2.0

    def replace(self, top_y=None, bot_y=None, danger=None) -> "TunnelBounds":
        return TunnelBounds(
            top_y=self.top_y if top_y is None else top_y,
            bot_y=self.bot_y if bot_y is None else bot_y,
            danger=self.danger if danger is None else danger,
        )


@dataclass(frozen=True)
class PassContext:
    """Pixel-space thresholds for one playfield height and difficulty."""

    height: float
    profile: DifficultyProfile
    low: float = field(init=False)
    high: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "low", EDGE_MARGIN)
        object.__setattr__(self, "high", self.height - EDGE_MARGIN)

    @property
    def min_playable_gap(self) -> float:
        return self.profile.min_playable_gap * self.height

    @property
    def absolute_min_gap(self) -> float:
        return self.profile.absolute_min_gap * self.height

    @property
    def narrow_threshold(self) -> float:
        return self.profile.narrow_threshold * self.height

    @property
    def max_gap_change(self) -> float:
        return self.profile.max_gap_change_per_col

    @property
    def max_center_change(self) -> float:
        return self.profile.max_center_change_per_col


def expand_to_playable(bounds: TunnelBounds, ctx: PassContext) -> TunnelBounds:
    """Pass 1: widen columns below the playable gap about their own center."""
    gap = bounds.gap
    needs = gap < ctx.min_playable_gap

    top, bot = fit_band(bounds.center, ctx.min_playable_gap, ctx.low, ctx.high)
    danger = np.where(needs, np.clip(1.0 - gap / ctx.min_playable_gap, 0.0, 1.0), 0.0)

    return bounds.replace(
        top_y=np.where(needs, top, bounds.top_y),
        bot_y=np.where(needs, bot, bounds.bot_y),
        danger=danger,
    )


def enforce_floor(bounds: TunnelBounds, ctx: PassContext) -> TunnelBounds:
    """Passes 2, 5 and 8: force every gap up to the absolute floor."""
    below = bounds.gap < ctx.absolute_min_gap
    if not below.any():
        return bounds

    top, bot = fit_band(bounds.center, ctx.absolute_min_gap, ctx.low, ctx.high)
    return bounds.replace(
        top_y=np.where(below, top, bounds.top_y),
        bot_y=np.where(below, bot, bounds.bot_y),
        danger=np.where(below, 1.0, bounds.danger),
    )


def limit_shrink_forward(bounds: TunnelBounds, ctx: PassContext) -> TunnelBounds:
    """Pass 3: left to right, cap how fast the gap may shrink per column."""
    top = bounds.top_y.tolist()
    bot = bounds.bot_y.tolist()
    cap = ctx.max_gap_change

    for i in range(1, len(top)):
        prev_gap = bot[i - 1] - top[i - 1]
        curr_gap = bot[i] - top[i]
        if prev_gap - curr_gap > cap:
            center = (top[i] + bot[i]) / 2.0
            top[i], bot[i] = _fit_scalar(center, prev_gap - cap, ctx.low, ctx.high)

    return bounds.replace(top_y=np.array(top), bot_y=np.array(bot))


def limit_growth_backward(bounds: TunnelBounds, ctx: PassContext) -> TunnelBounds:
    """Pass 4: right to left, pre-widen columns ahead of a sudden opening."""
    top = bounds.top_y.tolist()
    bot = bounds.bot_y.tolist()
    cap = ctx.max_gap_change

    for i in range(len(top) - 2, -1, -1):
        next_gap = bot[i + 1] - top[i + 1]
        curr_gap = bot[i] - top[i]
        if next_gap - curr_gap > cap * 2:
            target = min(curr_gap + cap, next_gap)
            center = (top[i] + bot[i]) / 2.0
            top[i], bot[i] = _fit_scalar(center, target, ctx.low, ctx.high)

    return bounds.replace(top_y=np.array(top), bot_y=np.array(bot))


def detect_problem_zones(bounds: TunnelBounds, ctx: PassContext) -> np.ndarray:
    """
    Pass 6: mark narrow columns whose centerline jumps too fast.

    Returns:
        Boolean mask including a neighbourhood of PROBLEM_ZONE_RADIUS
        columns on both sides of every trigger.
    """
    gap = bounds.gap
    center = bounds.center

    trigger = np.zeros(len(gap), dtype=bool)
    jump = np.abs(np.diff(center))
    trigger[1:] = (gap[1:] < ctx.narrow_threshold) & (jump > ctx.max_center_change)

    if not trigger.any():
        return trigger
    structure = np.ones(2 * PROBLEM_ZONE_RADIUS + 1, dtype=bool)
    return ndimage.binary_dilation(trigger, structure=structure)


def local_center_mean(center: np.ndarray, radius: int) -> np.ndarray:
    """Mean over [i - radius, i + radius], truncated at the array ends."""
    n = len(center)
    cum = np.zeros(n + 1, dtype=np.float64)
    np.cumsum(center, out=cum[1:])
    idx = np.arange(n)
    lo = np.maximum(0, idx - radius)
    hi = np.minimum(n, idx + radius + 1)
    return (cum[hi] - cum[lo]) / (hi - lo)


def smooth_centerline(
    bounds: TunnelBounds,
    ctx: PassContext,
    zones: np.ndarray | None = None,
) -> TunnelBounds:
    """
    Pass 7: pull the centerline toward its local mean inside problem zones.

    Narrower columns blend harder. Gap widths are kept as they are.
    """
    if zones is None:
        zones = detect_problem_zones(bounds, ctx)
    if not zones.any():
        return bounds

    gap = bounds.gap
    center = bounds.center
    smoothed = local_center_mean(center, ctx.profile.smooth_radius)

    blend = np.clip(1.0 - gap / ctx.narrow_threshold, MIN_BLEND, MAX_BLEND)
    blended = center + (smoothed - center) * blend
    top, bot = fit_band(blended, gap, ctx.low, ctx.high)

    return bounds.replace(
        top_y=np.where(zones, top, bounds.top_y),
        bot_y=np.where(zones, bot, bounds.bot_y),
    )


# Detection (pass 6) runs inside smooth_centerline
PASSES = (
    expand_to_playable,
    enforce_floor,
    limit_shrink_forward,
    limit_growth_backward,
    enforce_floor,
    smooth_centerline,
    enforce_floor,
)


class PlayabilityEnforcer:
    """Runs every correction pass in order for one height and difficulty."""

    def __init__(self, height: float, difficulty: Difficulty = Difficulty.NORMAL):
        self.difficulty = Difficulty.coerce(difficulty)
        self.context = PassContext(height=float(height), profile=profile_for(self.difficulty))

    def enforce(self, orig_top_y: np.ndarray, orig_bot_y: np.ndarray) -> TunnelBounds:
        """
        Make a raw tunnel playable.

        Args:
            orig_top_y: Raw top boundary per column.
            orig_bot_y: Raw bottom boundary per column.

        Returns:
            TunnelBounds whose every gap is at least the absolute floor.
        """
        ctx = self.context
        bounds = TunnelBounds.from_raw(orig_top_y, orig_bot_y)

        for enforce_pass in PASSES:
            bounds = enforce_pass(bounds, ctx)

        logger.debug(
            "Enforced %d columns: %d expanded, %d forced to the floor",
            len(bounds.gap),
            int(np.count_nonzero(bounds.danger)),
            int(np.count_nonzero(bounds.danger >= 1.0)),
        )
        return bounds
