"""
Main level generation pipeline.

Orchestrates the complete flow from a price series to playable level
geometry, and derives the content hash that identifies a generated level.
"""

import hashlib
import json
import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import numpy as np

from wattbeat.core.difficulty import Difficulty, profile_for
from wattbeat.core.enforcer import PlayabilityEnforcer, TunnelBounds
from wattbeat.core.geometry import LevelGeometry, LevelStats
from wattbeat.core.preprocessor import PreprocessedSignal, SignalPreprocessor
from wattbeat.core.resampler import ResampledSignal, TimeWarpResampler
from wattbeat.core.synthesizer import EDGE_MARGIN, RawTunnel, TunnelSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelRequest:
    """Everything that identifies one generated level."""

    difficulty: Difficulty = Difficulty.NORMAL
    height: float = 600.0
    n_columns: int = 7000
    season: str = "2025"
    dataset: str = "daprices-epex-elec.csv"
    start: str = "2025-01-01"
    end: str = "2025-12-31"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def content_hash(request: LevelRequest, algorithm_version: str) -> str:
    """
    SHA-256 fingerprint of the generation parameters.

    The payload is compact JSON with a fixed key order and the height
    rounded half-up, so identical requests hash identically everywhere.
    """
    payload = {
        "season": request.season,
        "ds": request.dataset,
        "start": request.start,
        "end": request.end,
        "diff": int(Difficulty.coerce(request.difficulty)),
        "algo": algorithm_version,
        "N": int(request.n_columns),
        "H": _round_half_up(request.height),
    }
    encoded = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class LevelPipeline:
    """
    Complete price-to-geometry processing pipeline.

    Combines preprocessing, time warping, synthesis and playability
    enforcement into a single interface.
    """

    # Version of the generation algorithm. Increment whenever any stage
    # changes its output so that content hashes and cached levels change too.
    ALGORITHM_VERSION = "v1"

    def __init__(
        self,
        n_columns: int = 7000,
        preprocessor: SignalPreprocessor | None = None,
        cache_size: int = 8,
    ):
        """
        Initialize the pipeline.

        Args:
            n_columns: Default number of tunnel columns.
            preprocessor: Custom preprocessor (defaults to standard settings).
            cache_size: Generated levels kept in memory, keyed by content hash.
        """
        self.n_columns = n_columns
        self.preprocessor = preprocessor or SignalPreprocessor()
        self.cache_size = cache_size
        self._cache: OrderedDict[str, LevelGeometry] = OrderedDict()
        self._cache_lock = threading.Lock()

    def content_hash(self, request: LevelRequest) -> str:
        return content_hash(request, self.ALGORITHM_VERSION)

    def clear_cache(self):
        """Forget every cached level."""
        with self._cache_lock:
            self._cache.clear()

    def _cached(self, level_hash: str) -> LevelGeometry | None:
        with self._cache_lock:
            geometry = self._cache.get(level_hash)
            if geometry is not None:
                self._cache.move_to_end(level_hash)
            return geometry

    def _store(self, level_hash: str, geometry: LevelGeometry):
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._cache[level_hash] = geometry
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def preprocess(self, prices) -> PreprocessedSignal:
        """Stage 1: clip, smooth, normalize and estimate volatility."""
        return self.preprocessor.process(prices)

    def resample(
        self,
        signal: PreprocessedSignal,
        difficulty: Difficulty,
        n_columns: int | None = None,
    ) -> ResampledSignal:
        """Stage 2: volatility-driven time warp onto the column grid."""
        resampler = TimeWarpResampler(
            n_columns=n_columns or self.n_columns,
            stretch_base=profile_for(difficulty).stretch_base,
        )
        return resampler.resample(signal)

    def synthesize(
        self,
        resampled: ResampledSignal,
        signal: PreprocessedSignal,
        height: float,
        difficulty: Difficulty,
    ) -> RawTunnel:
        """Stage 3: raw top/bottom boundaries."""
        return TunnelSynthesizer(height, difficulty).synthesize(resampled, signal.price_range)

    def enforce(self, raw: RawTunnel, height: float, difficulty: Difficulty) -> TunnelBounds:
        """Stage 4: make the raw tunnel playable."""
        return PlayabilityEnforcer(height, difficulty).enforce(raw.orig_top_y, raw.orig_bot_y)

    def generate(
        self,
        prices,
        height: float,
        difficulty: Difficulty | int | str = Difficulty.NORMAL,
        n_columns: int | None = None,
    ) -> LevelGeometry:
        """
        Run stages 1-4 and assemble the level geometry.

        Args:
            prices: Ordered price samples.
            height: Playfield height in pixels.
            difficulty: Difficulty level.
            n_columns: Column count (defaults to the pipeline's).

        Returns:
            Immutable LevelGeometry.

        Raises:
            InsufficientDataError: Too few finite prices.
            InvalidDifficultyError: Unknown difficulty.
            ValueError: Playfield too small to hold a tunnel.
        """
        difficulty = Difficulty.coerce(difficulty)
        height = float(height)
        if not math.isfinite(height) or height <= 2 * EDGE_MARGIN:
            raise ValueError(f"Playfield height must exceed {2 * EDGE_MARGIN:g}px, got {height:g}")
        floor = profile_for(difficulty).absolute_min_gap * height
        if floor > height - 2 * EDGE_MARGIN:
            raise ValueError(
                f"Playfield height {height:g}px cannot fit the {difficulty.name.lower()} "
                f"minimum gap of {floor:.1f}px"
            )

        t0 = time.perf_counter()
        signal = self.preprocess(prices)
        resampled = self.resample(signal, difficulty, n_columns)
        raw = self.synthesize(resampled, signal, height, difficulty)
        bounds = self.enforce(raw, height, difficulty)

        stats = LevelStats(
            n=signal.n_samples,
            price_min=float(np.min(signal.prices)),
            price_median=float(np.median(signal.prices)),
            price_max=float(np.max(signal.prices)),
            vol_avg=float(np.mean(resampled.vol)),
            gap_avg=float(np.mean(raw.target_gap)),
        )
        logger.debug(
            "Generated %d columns from %d samples (%s, H=%g) in %.3fs",
            resampled.n_columns,
            signal.n_samples,
            difficulty.name,
            height,
            time.perf_counter() - t0,
        )

        return LevelGeometry(
            top_y=np.array(bounds.top_y),
            bot_y=np.array(bounds.bot_y),
            orig_top_y=raw.orig_top_y,
            orig_bot_y=raw.orig_bot_y,
            danger=np.array(bounds.danger),
            stats=stats,
            height=height,
            difficulty=difficulty,
        )

    def process(
        self,
        prices,
        request: LevelRequest,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """
        Generate (or reuse) the level identified by ``request``.

        Args:
            prices: Price samples already filtered to the request's range.
            request: Generation parameters.
            use_cache: Whether to reuse an in-memory level with the same hash.

        Returns:
            Dictionary with the geometry, its content hash and summary info.
        """
        level_hash = self.content_hash(request)

        geometry = self._cached(level_hash) if use_cache else None
        if geometry is not None:
            logger.info("Loaded level %s from cache", level_hash[:10])
        else:
            geometry = self.generate(
                prices,
                height=request.height,
                difficulty=request.difficulty,
                n_columns=request.n_columns,
            )
            if use_cache:
                self._store(level_hash, geometry)

        return {
            "geometry": geometry,
            "hash": level_hash,
            "stats": geometry.stats,
            "n_columns": geometry.n_columns,
            "height": geometry.height,
            "difficulty": geometry.difficulty,
        }
