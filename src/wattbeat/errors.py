"""Exceptions raised by the level generator."""


class WattbeatError(Exception):
    """Base class for all wattbeat errors."""


class InsufficientDataError(WattbeatError, ValueError):
    """Raised when a price series is too short to build a level from."""

    def __init__(self, n_samples: int, required: int):
        self.n_samples = n_samples
        self.required = required
        super().__init__(
            f"Range too small: {n_samples} finite samples, need at least {required}."
        )


class InvalidDifficultyError(WattbeatError, ValueError):
    """Raised when a difficulty is outside Easy/Normal/Hard."""
