"""
Game-session helpers around a generated level.

SessionContext carries the per-tick player state explicitly into breathing
and collision queries. LevelSession owns level generation for one running
game: requests may overlap, and only the most recent one may commit.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from wattbeat.core.breathing import BreathingAdjuster, BreathingView
from wattbeat.core.difficulty import Difficulty
from wattbeat.core.geometry import LevelGeometry
from wattbeat.pipeline import LevelPipeline, LevelRequest

logger = logging.getLogger(__name__)

N_PHASES = 3
SEASON_START = datetime(2025, 1, 1)
SEASON_END = datetime(2025, 12, 31)


def level_progress(column: int, n_columns: int) -> float:
    """Fraction of the level covered at a column, in [0, 1]."""
    return min(max(column / max(1, n_columns - 1), 0.0), 1.0)


def phase_for_column(column: int, n_columns: int, phases: int = N_PHASES) -> int:
    """1-based phase (season third) a column falls in."""
    progress = level_progress(column, n_columns)
    return min(phases, int(progress * phases) + 1)


def is_level_finished(column: int, n_columns: int) -> bool:
    return column >= n_columns - 2


def season_date_from_progress(
    progress: float,
    start: datetime = SEASON_START,
    end: datetime = SEASON_END,
) -> datetime:
    """Calendar date the player has reached, for HUD display."""
    progress = min(max(progress, 0.0), 1.0)
    return start + (end - start) * progress


def safe_spawn_y(
    geometry: LevelGeometry | None,
    world_x: float,
    height: float = 600.0,
    margin: float = 14.0,
) -> float:
    """Vertical spawn point on the tunnel centerline, kept off the walls."""
    if geometry is None:
        return 0.5 * height
    top, bot = geometry.bounds_at(geometry.column_at(world_x))
    center = (top + bot) * 0.5
    return min(max(center, top + margin), bot - margin)


@dataclass(frozen=True)
class SessionContext:
    """Everything a tick needs to query the level, passed explicitly."""

    geometry: LevelGeometry
    player_world_x: float
    player_y: float
    radius: float = 9.0
    difficulty: Difficulty | None = None
    height: float | None = None

    def level_index(self) -> int:
        return self.geometry.column_at(self.player_world_x)

    def with_player(self, world_x: float, y: float) -> "SessionContext":
        return replace(self, player_world_x=world_x, player_y=y)

    def breathing(self, adjuster: BreathingAdjuster | None = None) -> BreathingView:
        """Fresh breathing view for this tick."""
        adjuster = adjuster or BreathingAdjuster()
        return adjuster.compute(
            self.geometry,
            self.player_world_x,
            self.radius,
            difficulty=self.difficulty,
            height=self.height,
        )

    def collides(self, view: BreathingView | None = None, margin: float = 2.0) -> bool:
        """
        Whether the player's hitbox touches a wall this tick.

        Samples the breathing view when one is given, else the base tunnel.
        """
        column = self.level_index()
        top, bot = (view or self.geometry).bounds_at(column)
        y, r = self.player_y, self.radius
        return (y - r <= top + margin) or (y + r >= bot - margin)


@dataclass(frozen=True)
class GenerationTicket:
    """Handle for one generation request."""

    generation: int
    request: LevelRequest
    content_hash: str


class LevelSession:
    """
    Generation state for one running game.

    Every ``begin`` supersedes all earlier tickets. Results arriving for a
    superseded ticket are discarded, never merged.
    """

    def __init__(
        self,
        pipeline: LevelPipeline | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.pipeline = pipeline or LevelPipeline()
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._generation = 0
        self._future: Future | None = None

        self.geometry: LevelGeometry | None = None
        self.content_hash: str | None = None
        self.request: LevelRequest | None = None
        self.error: BaseException | None = None
        self.pending = False

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="wattbeat-level")
        return self._executor

    def is_current(self, ticket: GenerationTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation

    def begin(self, request: LevelRequest) -> GenerationTicket:
        """Start a new generation, superseding any in flight."""
        with self._lock:
            self._generation += 1
            self.pending = True
            self.error = None
            ticket = GenerationTicket(
                generation=self._generation,
                request=request,
                content_hash=self.pipeline.content_hash(request),
            )
        logger.debug("Generation %d started (%s)", ticket.generation, ticket.content_hash[:10])
        return ticket

    def complete(self, ticket: GenerationTicket, result: dict[str, Any]) -> bool:
        """
        Commit a finished result if its ticket is still the latest.

        Returns:
            True if committed, False if the result was stale and dropped.
        """
        with self._lock:
            if ticket.generation != self._generation:
                logger.debug("Discarding stale generation %d", ticket.generation)
                return False
            self.geometry = result["geometry"]
            self.content_hash = result["hash"]
            self.request = ticket.request
            self.pending = False
        logger.info("Level %s committed", ticket.content_hash[:10])
        return True

    def fail(self, ticket: GenerationTicket, error: BaseException) -> bool:
        """Record a generation error for the latest ticket; stale errors are dropped."""
        with self._lock:
            if ticket.generation != self._generation:
                return False
            self.error = error
            self.pending = False
        logger.warning("Level generation failed: %s", error)
        return True

    def _on_done(self, ticket: GenerationTicket, future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.fail(ticket, error)
        else:
            self.complete(ticket, future.result())

    def submit(self, prices, request: LevelRequest) -> Future:
        """
        Generate in the background without blocking the caller.

        The previous request's future is cancelled if it has not started;
        if it has, its result is discarded on arrival.
        """
        ticket = self.begin(request)
        with self._lock:
            previous = self._future
            if previous is not None:
                previous.cancel()
            future = self._get_executor().submit(self.pipeline.process, prices, request)
            self._future = future
        future.add_done_callback(lambda f: self._on_done(ticket, f))
        return future

    def generate(self, prices, request: LevelRequest) -> LevelGeometry | None:
        """Generate synchronously; returns None if superseded meanwhile."""
        ticket = self.begin(request)
        try:
            result = self.pipeline.process(prices, request)
        except Exception as e:
            self.fail(ticket, e)
            raise
        return result["geometry"] if self.complete(ticket, result) else None

    def context(self, player_world_x: float, player_y: float, radius: float = 9.0) -> SessionContext:
        """SessionContext over the committed level."""
        if self.geometry is None:
            raise RuntimeError("No level has been committed yet")
        return SessionContext(
            geometry=self.geometry,
            player_world_x=player_world_x,
            player_y=player_y,
            radius=radius,
        )

    def shutdown(self, wait: bool = True):
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=wait)
            self._executor = None
