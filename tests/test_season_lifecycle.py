"""Integration tests for season creation, termination and config overrides."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from domain.common import GiftSignal, ScoredCreator, SubTotals
from domain.errors import LifecycleError, SeasonNotFoundError
from domain.lifecycle import SeasonLifecycleManager
from domain.pipeline import RecalculationOrchestrator
from domain.protocol import SeasonStatus
from domain.season.config import ScoringWeights, SeasonConfig
from domain.season.tiers import DEFAULT_TIER_BANDS, TierBand
from models import ModerationAction, RankTier, RankingEntry, Season, SeasonalReward
from repositories.rankings import write_scored_chunk
from repositories.rewards import rewards_for_creator
from repositories.seasons import load_season_config
from repositories.signals import SignalStore


def _seed_three_creators(store: SignalStore, season_id: int, as_of: datetime) -> None:
    store.record_gifts(
        season_id,
        [
            GiftSignal("creator-a", "supporter-1", 6000.0, as_of - timedelta(hours=1)),
            GiftSignal("creator-a", "supporter-2", 6000.0, as_of - timedelta(hours=1)),
            GiftSignal("creator-a", "supporter-3", 6000.0, as_of - timedelta(hours=1)),
            GiftSignal("creator-b", "supporter-1", 200.0, as_of - timedelta(hours=1)),
            GiftSignal("creator-c", "supporter-2", 20.0, as_of - timedelta(days=9)),
        ],
    )


def test_create_season_uses_defaults(
    lifecycle: SeasonLifecycleManager,
    session_factory: sessionmaker[Session],
) -> None:
    season = lifecycle.create_season()

    assert season.season_number == 1
    assert season.label == "Season 1"
    assert season.status == SeasonStatus.ACTIVE.value
    assert season.duration_days == 14
    assert season.ends_at - season.starts_at == timedelta(days=14)

    with session_factory() as session:
        assert load_season_config(session, season.id) == SeasonConfig()
        tier_names = session.execute(
            select(RankTier.tier_name)
            .where(RankTier.season_id == season.id)
            .order_by(RankTier.tier_order)
        ).scalars().all()
    assert tier_names == [band.name for band in DEFAULT_TIER_BANDS]


def test_create_season_fails_while_another_is_active(lifecycle: SeasonLifecycleManager) -> None:
    lifecycle.create_season(7)

    with pytest.raises(LifecycleError, match="still ACTIVE"):
        lifecycle.create_season(7)


def test_create_season_rejects_non_positive_duration(lifecycle: SeasonLifecycleManager) -> None:
    with pytest.raises(ValueError, match="duration_days"):
        lifecycle.create_season(0)


def test_end_season_freezes_one_reward_per_entry(
    lifecycle: SeasonLifecycleManager,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed_three_creators(signal_store, active_season.id, as_of)

    result = lifecycle.end_season(active_season.id)

    assert result.rewards_granted == 3
    assert result.final_pass.trigger == "season_end"

    with session_factory() as session:
        season = session.get(Season, active_season.id)
        assert season is not None
        assert season.status == SeasonStatus.ENDED.value
        assert season.ended_at is not None

        entries = {
            entry.creator_id: entry
            for entry in session.execute(
                select(RankingEntry).where(RankingEntry.season_id == active_season.id)
            ).scalars()
        }
        rewards = session.execute(
            select(SeasonalReward)
            .where(SeasonalReward.season_id == active_season.id)
            .order_by(SeasonalReward.final_rank)
        ).scalars().all()

    assert [reward.creator_id for reward in rewards] == ["creator-a", "creator-b", "creator-c"]
    for reward in rewards:
        entry = entries[reward.creator_id]
        assert reward.final_rank == entry.rank
        assert reward.final_score == pytest.approx(entry.composite_score)
        assert reward.tier_name == entry.tier_name
        assert reward.seasonal_title == f"Season 1 {entry.tier_name}"
        assert reward.is_top_tier is True

    assert rewards[0].tier_name == "Legendary Menace"
    assert rewards[0].badge_color == "#FF0000"


def test_ended_season_rejects_further_writes(
    lifecycle: SeasonLifecycleManager,
    orchestrator: RecalculationOrchestrator,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed_three_creators(signal_store, active_season.id, as_of)
    lifecycle.end_season(active_season.id)

    with pytest.raises(LifecycleError):
        lifecycle.end_season(active_season.id)
    with pytest.raises(LifecycleError):
        orchestrator.recalculate(active_season.id)
    with pytest.raises(LifecycleError):
        signal_store.record_gifts(
            active_season.id,
            [GiftSignal("creator-a", "supporter-9", 1.0, as_of)],
        )
    with session_factory() as session:
        with pytest.raises(LifecycleError):
            write_scored_chunk(
                session,
                season_id=active_season.id,
                scored=[
                    ScoredCreator(
                        creator_id="creator-a",
                        subtotals=SubTotals(gift=1.0),
                        composite_score=0.5,
                        tier_name="Bronze Mouth",
                    )
                ],
                recalculated_at=as_of,
            )

    with session_factory() as session:
        frozen = session.execute(
            select(RankingEntry).where(RankingEntry.season_id == active_season.id)
        ).scalars().all()
    assert len(frozen) == 3
    assert all(entry.rank is not None for entry in frozen)


def test_new_season_can_start_after_the_previous_one_ends(
    lifecycle: SeasonLifecycleManager,
    active_season: Season,
) -> None:
    lifecycle.end_season(active_season.id)

    season = lifecycle.create_season(label="Spring Showdown")
    assert season.season_number == 2
    assert season.label == "Spring Showdown"


def test_reward_history_spans_seasons(
    lifecycle: SeasonLifecycleManager,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed_three_creators(signal_store, active_season.id, as_of)
    lifecycle.end_season(active_season.id)

    second = lifecycle.create_season()
    signal_store.record_gifts(
        second.id,
        [GiftSignal("creator-b", "supporter-1", 10.0, as_of)],
    )
    lifecycle.end_season(second.id)

    with session_factory() as session:
        history = rewards_for_creator(session, "creator-b")
    assert [reward.season_id for reward in history] == [active_season.id, second.id]
    assert history[1].final_rank == 1
    assert history[1].seasonal_title.startswith("Season 2 ")


def test_unknown_season_raises_not_found(lifecycle: SeasonLifecycleManager) -> None:
    with pytest.raises(SeasonNotFoundError):
        lifecycle.end_season(404)
    with pytest.raises(SeasonNotFoundError):
        lifecycle.season_status(404)


def test_status_views(
    lifecycle: SeasonLifecycleManager,
    signal_store: SignalStore,
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed_three_creators(signal_store, active_season.id, as_of)

    current = lifecycle.current_season()
    assert current is not None
    assert current.season_id == active_season.id
    assert current.status == SeasonStatus.ACTIVE
    assert current.total_entries == 3
    assert current.recalculation_in_flight is False

    with lifecycle.orchestrator.hold_lock(active_season.id):
        assert lifecycle.season_status(active_season.id).recalculation_in_flight is True

    lifecycle.end_season(active_season.id)
    assert lifecycle.current_season() is None
    assert lifecycle.season_status(active_season.id).status == SeasonStatus.ENDED


def test_override_config_persists_audits_and_recalculates(
    lifecycle: SeasonLifecycleManager,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed_three_creators(signal_store, active_season.id, as_of)
    gift_only = SeasonConfig(weights=ScoringWeights(gift=1.0, battle=0.0, unique=0.0, momentum=0.0))
    tiers = (
        TierBand("Rookie", 1, 0.0, 100.0),
        TierBand("Star", 2, 100.0, None),
    )

    summary = lifecycle.override_config(
        active_season.id, gift_only, tiers=tiers, reason="gift-only weekend"
    )

    assert summary is not None
    assert summary.trigger == "config_override"
    with session_factory() as session:
        assert load_season_config(session, active_season.id) == gift_only
        tier_names = {
            entry.creator_id: entry.tier_name
            for entry in session.execute(
                select(RankingEntry).where(RankingEntry.season_id == active_season.id)
            ).scalars()
        }
        actions = session.execute(select(ModerationAction)).scalars().all()

    assert tier_names["creator-a"] == "Star"
    assert tier_names["creator-c"] == "Rookie"
    assert [action.action_type for action in actions] == ["config_override"]
    assert actions[0].details_json["config"]["weights"]["gift"] == pytest.approx(1.0)


def test_override_config_is_deferred_while_a_pass_is_running(
    lifecycle: SeasonLifecycleManager,
    active_season: Season,
) -> None:
    with lifecycle.orchestrator.hold_lock(active_season.id):
        summary = lifecycle.override_config(active_season.id, SeasonConfig(decay_floor=0.25))
    assert summary is None
