"""Season-ranking domain modules."""

from domain.common import SeasonContext, SubTotals
from domain.protocol import BattleType, SeasonStatus, SignalRecordKind

__all__ = ["BattleType", "SeasonContext", "SeasonStatus", "SignalRecordKind", "SubTotals"]
