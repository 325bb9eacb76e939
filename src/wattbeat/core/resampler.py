"""
Volatility-driven time warping.

Maps a preprocessed signal of arbitrary length onto a fixed number of
tunnel columns. Volatile stretches of the source get more columns so
that fast price swings stay navigable without changing their shape.
"""

from dataclasses import dataclass

import numpy as np

from wattbeat.core.preprocessor import PreprocessedSignal


@dataclass
class ResampledSignal:
    """Signals resampled onto the tunnel's column grid."""

    z: np.ndarray
    vol: np.ndarray
    diff: np.ndarray
    source_index: np.ndarray  # Lower source sample per column, non-decreasing

    @property
    def n_columns(self) -> int:
        return len(self.z)


class TimeWarpResampler:
    """
    Resamples through a monotonic, piecewise-linear warp.

    The warp is the running sum of per-sample stretch weights; each output
    column picks an evenly spaced target along it and interpolates within
    the source segment that contains the target.
    """

    def __init__(self, n_columns: int = 7000, stretch_base: float = 2.0):
        """
        Initialize the resampler.

        Args:
            n_columns: Number of output columns (at least 2).
            stretch_base: Weight given to maximally volatile samples;
                calm samples always weigh 1.
        """
        if n_columns < 2:
            raise ValueError(f"n_columns must be at least 2, got {n_columns}")
        self.n_columns = n_columns
        self.stretch_base = stretch_base

    def stretch_weights(self, vol: np.ndarray) -> np.ndarray:
        """Per-sample weight, 1 for calm samples up to ``stretch_base``."""
        return 1.0 + (self.stretch_base - 1.0) * np.power(vol, 1.5)

    def cumulative_stretch(self, vol: np.ndarray) -> np.ndarray:
        """Warp function C with C[0] = 0 and len(vol) + 1 entries."""
        cum = np.zeros(len(vol) + 1, dtype=np.float64)
        np.cumsum(self.stretch_weights(vol), out=cum[1:])
        return cum

    def source_positions(self, cum: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Locate every output column on the warp.

        Args:
            cum: Cumulative stretch array of length M + 1.

        Returns:
            Tuple of (lower source index, fractional offset in [0, 1]).
        """
        n_source = len(cum) - 1
        total = cum[-1]
        targets = np.arange(self.n_columns, dtype=np.float64) / (self.n_columns - 1) * total

        # Largest lo in [0, M - 1] with cum[lo] <= target
        lo = np.searchsorted(cum[:n_source], targets, side="right") - 1
        lo = np.clip(lo, 0, n_source - 1)

        seg_len = cum[lo + 1] - cum[lo]
        offset = np.where(seg_len > 0, (targets - cum[lo]) / np.where(seg_len > 0, seg_len, 1.0), 0.0)
        return lo, np.clip(offset, 0.0, 1.0)

    def resample(self, signal: PreprocessedSignal) -> ResampledSignal:
        """
        Resample trend, volatility and differences onto the column grid.

        Args:
            signal: Output of SignalPreprocessor.

        Returns:
            ResampledSignal with ``n_columns`` entries per array.
        """
        cum = self.cumulative_stretch(signal.vol)
        lo, offset = self.source_positions(cum)
        hi = np.minimum(lo + 1, signal.n_samples - 1)

        def lerp(values: np.ndarray) -> np.ndarray:
            return values[lo] + (values[hi] - values[lo]) * offset

        return ResampledSignal(
            z=lerp(signal.z),
            vol=lerp(signal.vol),
            diff=lerp(signal.diff),
            source_index=lo,
        )
