"""Shared enums and protocols for season ranking."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from domain.common import CreatorSignals


class SeasonStatus(str, Enum):
    """Lifecycle state of a season."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class BattleType(str, Enum):
    """How a battle was matched; casual battles never count."""

    CASUAL = "casual"
    RANKED = "ranked"
    TOURNAMENT = "tournament"


class SignalRecordKind(str, Enum):
    """Which SignalStore table a record lives in."""

    GIFT = "gift"
    BATTLE = "battle"
    ACTIVITY = "activity"


@runtime_checkable
class SignalReader(Protocol):
    """Read side of the SignalStore used by the aggregator."""

    def fetch_creator_signals(self, season_id: int, creator_id: str) -> CreatorSignals: ...


@runtime_checkable
class RankableEntry(Protocol):
    """Anything the rank sequencer can order."""

    creator_id: str
    composite_score: float
    unique_supporters: int
    last_recalculated_at: datetime | None


__all__ = [
    "BattleType",
    "RankableEntry",
    "SeasonStatus",
    "SignalReader",
    "SignalRecordKind",
]
