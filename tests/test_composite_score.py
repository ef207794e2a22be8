"""Unit tests for decay, whale dampening and the composite score."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.common import BattleSignal, SubTotals
from domain.protocol import BattleType
from domain.season.calculator import CompositeScoreCalculator, dampen_supporter_totals, decay_factor
from domain.season.config import ScoringWeights, SeasonConfig

AS_OF = datetime(2026, 3, 15, 12, 0, 0)


def _battle(
    *,
    team_size: int = 1,
    battle_type: BattleType = BattleType.RANKED,
    is_winner: bool = False,
    score: float = 100.0,
) -> BattleSignal:
    return BattleSignal(
        creator_id="creator-a",
        match_id="match-1",
        team_size=team_size,
        battle_type=battle_type,
        is_winner=is_winner,
        score=score,
        occurred_at=AS_OF,
    )


def test_literal_composite_scenario_is_671() -> None:
    calculator = CompositeScoreCalculator(
        SeasonConfig(weights=ScoringWeights(gift=0.5, battle=0.3, unique=0.1, momentum=0.1))
    )
    subtotals = SubTotals(gift=1000.0, battle=500.0, unique_supporters=10, momentum=200.0)
    assert calculator.composite(subtotals) == pytest.approx(671.0)


def test_whale_dampening_scenario_is_725() -> None:
    dampened = dampen_supporter_totals(
        [900.0, 100.0],
        threshold_percent=0.35,
        diminishing_multiplier=0.5,
    )
    assert dampened == pytest.approx(725.0)


def test_dampening_never_increases_the_pool() -> None:
    pools = [
        [1000.0],
        [10.0, 10.0, 10.0],
        [500.0, 300.0, 1.0],
        [0.0, 42.0],
    ]
    for pool in pools:
        dampened = dampen_supporter_totals(pool, threshold_percent=0.35, diminishing_multiplier=0.5)
        assert 0.0 <= dampened <= sum(pool)


def test_dampening_leaves_supporters_under_threshold_untouched() -> None:
    pool = [10.0, 10.0, 10.0, 10.0]
    assert dampen_supporter_totals(
        pool, threshold_percent=0.35, diminishing_multiplier=0.5
    ) == pytest.approx(40.0)


def test_dampening_zero_pool_returns_zero() -> None:
    assert dampen_supporter_totals([], threshold_percent=0.35, diminishing_multiplier=0.5) == 0.0
    assert dampen_supporter_totals([0.0], threshold_percent=0.35, diminishing_multiplier=0.5) == 0.0


def test_decay_is_monotonic_and_bounded_by_floor() -> None:
    config = SeasonConfig()
    ages = [0.0, 1.0, 24.0, 48.0, 48.5, 72.0, 100.0, 167.9, 168.0, 500.0, 10_000.0]
    factors = [decay_factor(age, config) for age in ages]

    for earlier, later in zip(factors, factors[1:]):
        assert later <= earlier
    assert all(factor >= config.decay_floor for factor in factors)
    assert all(factor > 0.0 for factor in factors)


def test_decay_recent_window_and_floor_values() -> None:
    config = SeasonConfig()
    assert decay_factor(0.0, config) == pytest.approx(2.0)
    assert decay_factor(48.0, config) == pytest.approx(2.0)
    assert decay_factor(72.0, config) == pytest.approx(0.5**0.2)
    assert decay_factor(168.0, config) == pytest.approx(0.5)
    assert decay_factor(24.0 * 365, config) == pytest.approx(0.5)


def test_future_timestamps_are_treated_as_fresh() -> None:
    config = SeasonConfig()
    assert decay_factor(-5.0, config) == pytest.approx(config.recent_hours_weight)


def test_calculator_decay_uses_timestamps() -> None:
    calculator = CompositeScoreCalculator(SeasonConfig())
    assert calculator.decay(AS_OF - timedelta(hours=1), AS_OF) == pytest.approx(2.0)
    assert calculator.decay(AS_OF - timedelta(days=30), AS_OF) == pytest.approx(0.5)
    assert calculator.within_momentum_window(AS_OF - timedelta(days=6), AS_OF)
    assert not calculator.within_momentum_window(AS_OF - timedelta(days=8), AS_OF)


def test_battle_value_caps_before_tournament_boost() -> None:
    calculator = CompositeScoreCalculator(SeasonConfig())
    value = calculator.battle_value(_battle(battle_type=BattleType.TOURNAMENT, score=25_000.0))
    assert value == pytest.approx(12_000.0)


def test_battle_value_adds_win_bonus_by_team_size() -> None:
    calculator = CompositeScoreCalculator(SeasonConfig())
    assert calculator.battle_value(_battle(team_size=1, is_winner=True)) == pytest.approx(600.0)
    assert calculator.battle_value(_battle(team_size=3, is_winner=True)) == pytest.approx(450.0)
    assert calculator.battle_value(_battle(team_size=5, is_winner=False)) == pytest.approx(100.0)


def test_casual_battles_are_worth_nothing() -> None:
    calculator = CompositeScoreCalculator(SeasonConfig())
    value = calculator.battle_value(
        _battle(battle_type=BattleType.CASUAL, is_winner=True, score=5000.0)
    )
    assert value == 0.0


def test_composite_is_non_negative_and_monotonic_in_each_subtotal() -> None:
    calculator = CompositeScoreCalculator(SeasonConfig())
    base = SubTotals(gift=100.0, battle=50.0, unique_supporters=3, momentum=20.0)
    base_score = calculator.composite(base)
    assert base_score >= 0.0

    raised = [
        SubTotals(gift=101.0, battle=50.0, unique_supporters=3, momentum=20.0),
        SubTotals(gift=100.0, battle=51.0, unique_supporters=3, momentum=20.0),
        SubTotals(gift=100.0, battle=50.0, unique_supporters=4, momentum=20.0),
        SubTotals(gift=100.0, battle=50.0, unique_supporters=3, momentum=21.0),
    ]
    for subtotals in raised:
        assert calculator.composite(subtotals) >= base_score

    assert calculator.composite(SubTotals()) == 0.0


@pytest.mark.parametrize(
    ("concentrated", "spread"),
    [
        ([900.0, 100.0], [450.0, 450.0, 100.0]),
        ([450.0, 450.0, 100.0], [350.0, 350.0, 300.0]),
        ([1000.0], [500.0, 500.0]),
        ([600.0, 300.0, 100.0], [250.0, 250.0, 250.0, 250.0]),
    ],
)
def test_spreading_the_same_total_never_lowers_the_gift_subtotal(
    concentrated: list[float], spread: list[float]
) -> None:
    assert sum(concentrated) == pytest.approx(sum(spread))
    before = dampen_supporter_totals(concentrated, threshold_percent=0.35, diminishing_multiplier=0.5)
    after = dampen_supporter_totals(spread, threshold_percent=0.35, diminishing_multiplier=0.5)
    assert after >= before
