"""Exception hierarchy for season ranking."""

from __future__ import annotations


class SeasonRankingError(Exception):
    """Base class for all season-ranking failures."""


class ConfigurationError(SeasonRankingError, ValueError):
    """Invalid SeasonConfig or RankTier bands. Fatal for a whole pass."""


class SignalRecordError(SeasonRankingError, ValueError):
    """A malformed engagement record. Recovered per creator."""


class LifecycleError(SeasonRankingError):
    """A season lifecycle transition that is not allowed."""


class SeasonNotFoundError(LifecycleError, LookupError):
    """No season with the requested id."""


class RecalculationConflictError(SeasonRankingError):
    """Another recalculation already holds the season lock."""

    def __init__(self, season_id: int, started_at: object | None = None) -> None:
        self.season_id = season_id
        self.started_at = started_at
        message = f"season_id={season_id} already has a recalculation in flight"
        if started_at is not None:
            message += f" (started_at={started_at})"
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "LifecycleError",
    "RecalculationConflictError",
    "SeasonNotFoundError",
    "SeasonRankingError",
    "SignalRecordError",
]
