"""Composite season score: weights, time decay and whale dampening."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from domain.common import BattleSignal, SubTotals
from domain.protocol import BattleType
from domain.season.config import SeasonConfig

SECONDS_PER_HOUR = 3_600.0
HOURS_PER_DAY = 24.0


def decay_factor(age_hours: float, config: SeasonConfig) -> float:
    """Weight of a contribution that is `age_hours` old.

    Inside the recent window the weight is the freshness boost
    (`recent_hours_weight`, >= 1). Past it the weight falls geometrically from
    1.0 to `decay_floor` at `decay_days`, and stays at the floor afterwards.
    """
    age_hours = max(age_hours, 0.0)
    if age_hours <= config.recent_hours:
        return config.recent_hours_weight

    decay_hours = config.decay_days * HOURS_PER_DAY
    if age_hours >= decay_hours:
        return config.decay_floor

    progress = (age_hours - config.recent_hours) / (decay_hours - config.recent_hours)
    return max(config.decay_floor, config.decay_floor**progress)


def dampen_supporter_totals(
    supporter_totals: Iterable[float],
    *,
    threshold_percent: float,
    diminishing_multiplier: float,
) -> float:
    """Sum per-supporter gift totals, shrinking each supporter's excess over the whale threshold."""
    amounts = [max(amount, 0.0) for amount in supporter_totals]
    pool = sum(amounts)
    if pool <= 0.0:
        return 0.0

    threshold = pool * threshold_percent
    dampened = 0.0
    for amount in amounts:
        if amount > threshold:
            dampened += threshold + ((amount - threshold) * diminishing_multiplier)
        else:
            dampened += amount
    return dampened


class CompositeScoreCalculator:
    """Stateless scorer bound to one season's config."""

    def __init__(self, config: SeasonConfig) -> None:
        self.config = config

    def age_hours(self, occurred_at: datetime, as_of_time: datetime) -> float:
        return (as_of_time - occurred_at).total_seconds() / SECONDS_PER_HOUR

    def decay(self, occurred_at: datetime, as_of_time: datetime) -> float:
        return decay_factor(self.age_hours(occurred_at, as_of_time), self.config)

    def within_momentum_window(self, occurred_at: datetime, as_of_time: datetime) -> bool:
        return self.age_hours(occurred_at, as_of_time) <= self.config.decay_days * HOURS_PER_DAY

    def dampen(self, supporter_totals: Iterable[float]) -> float:
        return dampen_supporter_totals(
            supporter_totals,
            threshold_percent=self.config.whale_threshold_percent,
            diminishing_multiplier=self.config.whale_diminishing_multiplier,
        )

    def battle_value(self, battle: BattleSignal) -> float:
        """Undecayed value of one counted battle: cap, then tournament boost, then win bonus."""
        if not battle.counts_for_season:
            return 0.0

        value = min(max(battle.score, 0.0), self.config.max_score_per_battle)
        if battle.battle_type == BattleType.TOURNAMENT:
            value *= self.config.tournament_multiplier
        if battle.is_winner:
            value += self.config.win_bonuses.for_team_size(battle.team_size)
        return value

    def composite(self, subtotals: SubTotals) -> float:
        weights = self.config.weights
        score = (
            (weights.gift * subtotals.gift)
            + (weights.battle * subtotals.battle)
            + (weights.unique * subtotals.unique_supporters)
            + (weights.momentum * subtotals.momentum)
        )
        return max(score, 0.0)


__all__ = ["CompositeScoreCalculator", "dampen_supporter_totals", "decay_factor"]
