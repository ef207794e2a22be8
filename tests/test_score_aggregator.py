"""Unit tests for per-creator sub-total aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.common import ActivitySignal, BattleSignal, CreatorSignals, GiftSignal, SeasonContext
from domain.errors import SignalRecordError
from domain.protocol import BattleType, SeasonStatus
from domain.season.aggregator import ScoreAggregator
from domain.season.calculator import CompositeScoreCalculator
from domain.season.config import SeasonConfig
from domain.season.tiers import DEFAULT_TIER_BANDS

AS_OF = datetime(2026, 3, 15, 12, 0, 0)


class InMemoryReader:
    def __init__(self, signals: dict[str, CreatorSignals]) -> None:
        self.signals = signals

    def fetch_creator_signals(self, season_id: int, creator_id: str) -> CreatorSignals:
        return self.signals.get(creator_id, CreatorSignals(creator_id=creator_id))


def _context() -> SeasonContext:
    return SeasonContext(
        season_id=1,
        season_number=1,
        label="Season 1",
        status=SeasonStatus.ACTIVE,
        starts_at=AS_OF - timedelta(days=14),
        ends_at=AS_OF + timedelta(days=1),
        config=SeasonConfig(),
        tiers=DEFAULT_TIER_BANDS,
        as_of_time=AS_OF,
    )


def _gift(supporter_id: str, value: float, age: timedelta, creator_id: str = "creator-a") -> GiftSignal:
    return GiftSignal(
        creator_id=creator_id,
        supporter_id=supporter_id,
        value=value,
        occurred_at=AS_OF - age,
    )


def _battle(
    battle_type: BattleType,
    *,
    team_size: int,
    is_winner: bool,
    score: float,
    age: timedelta,
) -> BattleSignal:
    return BattleSignal(
        creator_id="creator-a",
        match_id=f"match-{battle_type.value}-{team_size}",
        team_size=team_size,
        battle_type=battle_type,
        is_winner=is_winner,
        score=score,
        occurred_at=AS_OF - age,
    )


def _aggregator(signals: dict[str, CreatorSignals]) -> ScoreAggregator:
    return ScoreAggregator(InMemoryReader(signals), CompositeScoreCalculator(SeasonConfig()))


def test_creator_without_records_scores_zero() -> None:
    subtotals = _aggregator({}).aggregate(_context(), "nobody")
    assert subtotals.gift == 0.0
    assert subtotals.battle == 0.0
    assert subtotals.unique_supporters == 0
    assert subtotals.momentum == 0.0


def test_full_aggregation_applies_decay_dampening_and_battle_rules() -> None:
    signals = CreatorSignals(
        creator_id="creator-a",
        gifts=(
            _gift("supporter-1", 100.0, timedelta(hours=1)),
            _gift("supporter-2", 50.0, timedelta(days=10)),
        ),
        battles=(
            _battle(BattleType.RANKED, team_size=1, is_winner=True, score=1000.0, age=timedelta(hours=1)),
            _battle(BattleType.CASUAL, team_size=2, is_winner=True, score=9000.0, age=timedelta(hours=1)),
            _battle(
                BattleType.TOURNAMENT,
                team_size=2,
                is_winner=False,
                score=20_000.0,
                age=timedelta(hours=30),
            ),
        ),
        activities=(
            ActivitySignal(
                creator_id="creator-a",
                activity_type="stream_session",
                occurred_at=AS_OF - timedelta(hours=72),
            ),
        ),
    )

    subtotals = _aggregator({"creator-a": signals}).aggregate(_context(), "creator-a")

    # supporter-1: 100 * 2.0 = 200 (above the 35% threshold of 225), supporter-2: 50 * 0.5 = 25
    threshold = 225.0 * 0.35
    assert subtotals.gift == pytest.approx(threshold + (200.0 - threshold) * 0.5 + 25.0)
    assert subtotals.unique_supporters == 2
    # ranked win (1000 + 500) * 2.0, tournament loss capped 10000 * 1.2 * 2.0, casual ignored
    assert subtotals.battle == pytest.approx(3000.0 + 24_000.0)
    assert subtotals.battles_participated == 2
    assert subtotals.battles_won == 1
    # recent gift, two counted battles and one 72h-old activity inside the momentum window
    assert subtotals.momentum == pytest.approx(10.0 * (2.0 + 2.0 + 2.0 + 0.5**0.2))


def test_repeat_gifts_count_one_unique_supporter() -> None:
    signals = CreatorSignals(
        creator_id="creator-a",
        gifts=tuple(_gift("supporter-1", 10.0, timedelta(days=9)) for _ in range(3)),
    )
    subtotals = _aggregator({"creator-a": signals}).aggregate(_context(), "creator-a")
    assert subtotals.unique_supporters == 1
    # Single supporter: the pool equals their total, dampened above 35%.
    assert subtotals.gift == pytest.approx(15.0 * 0.35 + 15.0 * 0.65 * 0.5)


def test_negative_gift_value_is_rejected() -> None:
    signals = CreatorSignals(
        creator_id="creator-a",
        gifts=(_gift("supporter-1", -5.0, timedelta(hours=1)),),
    )
    with pytest.raises(SignalRecordError, match="negative value"):
        _aggregator({"creator-a": signals}).aggregate(_context(), "creator-a")


def test_unknown_team_size_is_rejected() -> None:
    signals = CreatorSignals(
        creator_id="creator-a",
        battles=(
            _battle(BattleType.RANKED, team_size=6, is_winner=True, score=10.0, age=timedelta(hours=1)),
        ),
    )
    with pytest.raises(SignalRecordError, match="team_size"):
        _aggregator({"creator-a": signals}).aggregate(_context(), "creator-a")


def test_records_of_another_creator_are_rejected() -> None:
    signals = CreatorSignals(
        creator_id="creator-a",
        gifts=(_gift("supporter-1", 5.0, timedelta(hours=1), creator_id="creator-b"),),
    )
    with pytest.raises(SignalRecordError, match="belongs to creator_id=creator-b"):
        _aggregator({"creator-a": signals}).aggregate(_context(), "creator-a")
