"""Core level generation stages."""

from wattbeat.core.breathing import BreathingAdjuster, BreathingView
from wattbeat.core.difficulty import Difficulty, DifficultyProfile, profile_for
from wattbeat.core.enforcer import PlayabilityEnforcer, TunnelBounds
from wattbeat.core.geometry import LevelGeometry, LevelStats
from wattbeat.core.preprocessor import PreprocessedSignal, SignalPreprocessor
from wattbeat.core.resampler import ResampledSignal, TimeWarpResampler
from wattbeat.core.synthesizer import RawTunnel, TunnelSynthesizer

__all__ = [
    "BreathingAdjuster",
    "BreathingView",
    "Difficulty",
    "DifficultyProfile",
    "profile_for",
    "PlayabilityEnforcer",
    "TunnelBounds",
    "LevelGeometry",
    "LevelStats",
    "PreprocessedSignal",
    "SignalPreprocessor",
    "ResampledSignal",
    "TimeWarpResampler",
    "RawTunnel",
    "TunnelSynthesizer",
]
