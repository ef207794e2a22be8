"""Season scoring, tiering and ranking."""

from domain.season.aggregator import ScoreAggregator
from domain.season.calculator import CompositeScoreCalculator, dampen_supporter_totals, decay_factor
from domain.season.config import (
    ScoringWeights,
    SeasonConfig,
    SeasonDefinition,
    WinBonuses,
    load_season_definitions,
)
from domain.season.sequencer import RankSequencer
from domain.season.tiers import DEFAULT_TIER_BANDS, TierAssigner, TierBand, validate_tier_bands

__all__ = [
    "CompositeScoreCalculator",
    "DEFAULT_TIER_BANDS",
    "RankSequencer",
    "ScoreAggregator",
    "ScoringWeights",
    "SeasonConfig",
    "SeasonDefinition",
    "TierAssigner",
    "TierBand",
    "WinBonuses",
    "dampen_supporter_totals",
    "decay_factor",
    "load_season_definitions",
    "validate_tier_bands",
]
