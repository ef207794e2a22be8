"""Shared types for season ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from domain.protocol import BattleType, SeasonStatus

if TYPE_CHECKING:
    from domain.season.config import SeasonConfig
    from domain.season.tiers import TierBand


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the DateTime(timezone=False) columns."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class GiftSignal:
    """One confirmed gift attributed to a creator."""

    creator_id: str
    supporter_id: str
    value: float
    occurred_at: datetime
    record_id: int | None = None


@dataclass(frozen=True)
class BattleSignal:
    """One creator's participation in a team battle."""

    creator_id: str
    match_id: str
    team_size: int
    battle_type: BattleType
    is_winner: bool
    score: float
    occurred_at: datetime
    record_id: int | None = None

    @property
    def counts_for_season(self) -> bool:
        return self.battle_type != BattleType.CASUAL


@dataclass(frozen=True)
class ActivitySignal:
    """A recent-activity timestamp used only for momentum."""

    creator_id: str
    activity_type: str
    occurred_at: datetime
    record_id: int | None = None


@dataclass(frozen=True)
class CreatorSignals:
    """All non-excluded SignalStore records for one creator in one season."""

    creator_id: str
    gifts: tuple[GiftSignal, ...] = ()
    battles: tuple[BattleSignal, ...] = ()
    activities: tuple[ActivitySignal, ...] = ()


@dataclass(frozen=True)
class SubTotals:
    """The four normalized sub-totals plus battle counters."""

    gift: float = 0.0
    battle: float = 0.0
    unique_supporters: int = 0
    momentum: float = 0.0
    battles_won: int = 0
    battles_participated: int = 0


@dataclass(frozen=True)
class ScoredCreator:
    """Result of scoring one creator within a pass."""

    creator_id: str
    subtotals: SubTotals
    composite_score: float
    tier_name: str


@dataclass(frozen=True)
class RankingSnapshot:
    """Read-only view of a RankingEntry used by the rank sequencer."""

    creator_id: str
    composite_score: float
    unique_supporters: int
    last_recalculated_at: datetime | None


@dataclass(frozen=True)
class SeasonContext:
    """Season state resolved once per pass and passed to every component."""

    season_id: int
    season_number: int
    label: str
    status: SeasonStatus
    starts_at: datetime
    ends_at: datetime
    config: SeasonConfig
    tiers: tuple[TierBand, ...]
    as_of_time: datetime

    @property
    def is_active(self) -> bool:
        return self.status == SeasonStatus.ACTIVE


__all__ = [
    "ActivitySignal",
    "BattleSignal",
    "CreatorSignals",
    "GiftSignal",
    "RankingSnapshot",
    "ScoredCreator",
    "SeasonContext",
    "SubTotals",
    "utc_now",
]
