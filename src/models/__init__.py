"""ORM models."""

from models.base import Base
from models.moderation import ContributionExclusion, ModerationAction
from models.ranking import RankingEntry, SeasonalReward
from models.season import RankTier, Season, SeasonConfigRecord
from models.signals import ActivityEvent, BattleParticipation, GiftContribution

__all__ = [
    "ActivityEvent",
    "Base",
    "BattleParticipation",
    "ContributionExclusion",
    "GiftContribution",
    "ModerationAction",
    "RankTier",
    "RankingEntry",
    "Season",
    "SeasonConfigRecord",
    "SeasonalReward",
]
