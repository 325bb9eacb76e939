"""
Price signal preprocessing module.

Turns a raw price series into the robust trend and volatility signals
that drive tunnel synthesis: outlier clipping, trailing smoothing,
median/MAD normalization and rolling volatility.
"""

from dataclasses import dataclass

import numpy as np
from scipy import signal as scipy_signal

from wattbeat.errors import InsufficientDataError

# Scales the MAD to approximate a standard deviation for normal data
MAD_TO_STD = 1.4826
EPSILON = 1e-9


def quantile(sorted_values: np.ndarray, q: float) -> float:
    """
    Linearly interpolated quantile of an already sorted array.

    quantile(s, 0) is the minimum and quantile(s, 1) the maximum.
    """
    values = np.asarray(sorted_values, dtype=np.float64)
    pos = (len(values) - 1) * q
    base = int(np.floor(pos))
    rest = pos - base
    if base + 1 >= len(values):
        return float(values[base])
    return float(values[base] + rest * (values[base + 1] - values[base]))


def median(values: np.ndarray) -> float:
    return float(np.median(values))


def mad(values: np.ndarray, center: float) -> float:
    """Median absolute deviation around ``center``."""
    return float(np.median(np.abs(values - center)))


def _trailing_counts(n: int, window: int) -> np.ndarray:
    """Number of samples inside a trailing window, shorter at the start."""
    return np.minimum(np.arange(1, n + 1), window).astype(np.float64)


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """
    Trailing moving average.

    The first ``window - 1`` outputs average over the samples seen so far
    instead of padding, so the output has the same length as the input.
    """
    values = np.asarray(values, dtype=np.float64)
    sums = scipy_signal.lfilter(np.ones(window), 1.0, values)
    return sums / _trailing_counts(len(values), window)


def rolling_std(values: np.ndarray, window: int) -> np.ndarray:
    """Trailing population standard deviation with partial leading windows."""
    values = np.asarray(values, dtype=np.float64)
    kernel = np.ones(window)
    counts = _trailing_counts(len(values), window)
    mean = scipy_signal.lfilter(kernel, 1.0, values) / counts
    mean_sq = scipy_signal.lfilter(kernel, 1.0, values * values) / counts
    return np.sqrt(np.maximum(0.0, mean_sq - mean * mean))


@dataclass
class PreprocessedSignal:
    """Per-source-sample signals, all the same length as ``prices``."""

    prices: np.ndarray  # Finite input samples
    clipped: np.ndarray
    smoothed: np.ndarray
    z: np.ndarray  # Trend in [-1, 1]
    vol: np.ndarray  # Volatility in [0, 1]
    diff: np.ndarray  # First differences of the clipped series, diff[0] == 0

    clip_low: float
    clip_high: float
    median: float
    spread: float

    @property
    def n_samples(self) -> int:
        return len(self.prices)

    @property
    def price_range(self) -> float:
        """Width of the clip band, floored so it can be used as a divisor."""
        return max(1e-6, self.clip_high - self.clip_low)


class SignalPreprocessor:
    """
    Robust statistics over a price series.

    Clipping to inner percentiles keeps a single price spike from
    dominating either the trend or the volatility normalization.
    """

    def __init__(
        self,
        min_samples: int = 48,
        clip_quantiles: tuple[float, float] = (0.02, 0.98),
        smoothing_window: int = 6,
        volatility_window: int = 12,
    ):
        """
        Initialize the preprocessor.

        Args:
            min_samples: Fewest finite samples accepted.
            clip_quantiles: Lower/upper quantiles used for outlier clipping.
            smoothing_window: Trailing moving-average window for the trend.
            volatility_window: Rolling window for the volatility estimate.
        """
        self.min_samples = min_samples
        self.clip_quantiles = clip_quantiles
        self.smoothing_window = smoothing_window
        self.volatility_window = volatility_window

    def filter_finite(self, prices) -> np.ndarray:
        """Drop NaN/inf samples, raising if too few remain."""
        values = np.asarray(prices, dtype=np.float64).ravel()
        finite = values[np.isfinite(values)]
        if len(finite) < self.min_samples:
            raise InsufficientDataError(len(finite), self.min_samples)
        return finite

    def normalize_volatility(self, vol: np.ndarray) -> np.ndarray:
        """Min-max normalize to [0, 1]; a flat input maps to zeros."""
        vmin = np.min(vol)
        vmax = np.max(vol)
        return (vol - vmin) / (vmax - vmin + EPSILON)

    def process(self, prices) -> PreprocessedSignal:
        """
        Run the full preprocessing chain.

        Args:
            prices: Ordered price samples; non-finite values are ignored.

        Returns:
            PreprocessedSignal aligned to the finite samples.

        Raises:
            InsufficientDataError: Fewer than ``min_samples`` finite samples.
        """
        finite = self.filter_finite(prices)

        ordered = np.sort(finite)
        low_q, high_q = self.clip_quantiles
        clip_low = quantile(ordered, low_q)
        clip_high = quantile(ordered, high_q)
        clipped = np.clip(finite, clip_low, clip_high)

        smoothed = moving_average(clipped, self.smoothing_window)

        center = median(smoothed)
        spread = (mad(smoothed, center) + EPSILON) * MAD_TO_STD
        z = np.clip((smoothed - center) / spread, -3.0, 3.0) / 3.0

        diff = np.zeros_like(clipped)
        diff[1:] = np.diff(clipped)
        vol = self.normalize_volatility(rolling_std(diff, self.volatility_window))

        return PreprocessedSignal(
            prices=finite,
            clipped=clipped,
            smoothed=smoothed,
            z=z,
            vol=vol,
            diff=diff,
            clip_low=clip_low,
            clip_high=clip_high,
            median=center,
            spread=spread,
        )
