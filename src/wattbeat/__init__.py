"""Playable tunnel levels from electricity price series."""

from wattbeat.core.breathing import BreathingAdjuster, BreathingView
from wattbeat.core.difficulty import Difficulty
from wattbeat.core.enforcer import PlayabilityEnforcer
from wattbeat.core.geometry import LevelGeometry, LevelStats
from wattbeat.core.preprocessor import SignalPreprocessor
from wattbeat.core.resampler import TimeWarpResampler
from wattbeat.core.synthesizer import TunnelSynthesizer
from wattbeat.errors import InsufficientDataError, InvalidDifficultyError
from wattbeat.io.exporter import GeometryExporter
from wattbeat.pipeline import LevelPipeline, LevelRequest, content_hash
from wattbeat.session import LevelSession, SessionContext

__version__ = "0.1.0"
__all__ = [
    "BreathingAdjuster",
    "BreathingView",
    "Difficulty",
    "PlayabilityEnforcer",
    "LevelGeometry",
    "LevelStats",
    "SignalPreprocessor",
    "TimeWarpResampler",
    "TunnelSynthesizer",
    "InsufficientDataError",
    "InvalidDifficultyError",
    "GeometryExporter",
    "LevelPipeline",
    "LevelRequest",
    "content_hash",
    "LevelSession",
    "SessionContext",
]
