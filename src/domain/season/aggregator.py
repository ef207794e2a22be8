"""Per-creator sub-totals from raw SignalStore records."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from domain.common import CreatorSignals, SeasonContext, SubTotals
from domain.errors import SignalRecordError
from domain.protocol import SignalReader
from domain.season.calculator import CompositeScoreCalculator

MIN_TEAM_SIZE = 1
MAX_TEAM_SIZE = 5


class ScoreAggregator:
    """Reads one creator's signals and reduces them to the four sub-totals."""

    def __init__(self, reader: SignalReader, calculator: CompositeScoreCalculator) -> None:
        self.reader = reader
        self.calculator = calculator

    def aggregate(self, context: SeasonContext, creator_id: str) -> SubTotals:
        signals = self.reader.fetch_creator_signals(context.season_id, creator_id)
        return self.summarize(signals, as_of_time=context.as_of_time)

    def summarize(self, signals: CreatorSignals, *, as_of_time: datetime) -> SubTotals:
        _validate_signals(signals)
        calculator = self.calculator

        supporter_totals: dict[str, float] = defaultdict(float)
        momentum_activity = 0.0
        for gift in signals.gifts:
            supporter_totals[gift.supporter_id] += gift.value * calculator.decay(
                gift.occurred_at, as_of_time
            )
            if calculator.within_momentum_window(gift.occurred_at, as_of_time):
                momentum_activity += calculator.decay(gift.occurred_at, as_of_time)

        battle_total = 0.0
        battles_won = 0
        battles_participated = 0
        for battle in signals.battles:
            if not battle.counts_for_season:
                continue
            battles_participated += 1
            if battle.is_winner:
                battles_won += 1
            weight = calculator.decay(battle.occurred_at, as_of_time)
            battle_total += calculator.battle_value(battle) * weight
            if calculator.within_momentum_window(battle.occurred_at, as_of_time):
                momentum_activity += weight

        for activity in signals.activities:
            if calculator.within_momentum_window(activity.occurred_at, as_of_time):
                momentum_activity += calculator.decay(activity.occurred_at, as_of_time)

        return SubTotals(
            gift=calculator.dampen(supporter_totals.values()),
            battle=battle_total,
            unique_supporters=len(supporter_totals),
            momentum=momentum_activity * calculator.config.momentum_points_per_activity,
            battles_won=battles_won,
            battles_participated=battles_participated,
        )


def _validate_signals(signals: CreatorSignals) -> None:
    creator_id = signals.creator_id
    for gift in signals.gifts:
        if gift.creator_id != creator_id:
            raise SignalRecordError(
                f"gift record_id={gift.record_id} belongs to creator_id={gift.creator_id}, "
                f"not {creator_id}"
            )
        if gift.value < 0.0:
            raise SignalRecordError(f"gift record_id={gift.record_id} has negative value={gift.value}")
        if not gift.supporter_id:
            raise SignalRecordError(f"gift record_id={gift.record_id} has no supporter_id")

    for battle in signals.battles:
        if battle.creator_id != creator_id:
            raise SignalRecordError(
                f"battle record_id={battle.record_id} belongs to creator_id={battle.creator_id}, "
                f"not {creator_id}"
            )
        if battle.score < 0.0:
            raise SignalRecordError(
                f"battle record_id={battle.record_id} has negative score={battle.score}"
            )
        if not MIN_TEAM_SIZE <= battle.team_size <= MAX_TEAM_SIZE:
            raise SignalRecordError(
                f"battle record_id={battle.record_id} has unsupported team_size={battle.team_size}"
            )


__all__ = ["ScoreAggregator"]
