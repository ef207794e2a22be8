"""Integration tests for moderation exclusions and their audit trail."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from domain.common import ActivitySignal, GiftSignal
from domain.errors import LifecycleError
from domain.lifecycle import SeasonLifecycleManager
from domain.moderation import ModerationService
from domain.pipeline import RecalculationOrchestrator
from domain.protocol import SignalRecordKind
from models import GiftContribution, RankingEntry, Season
from repositories.moderation import list_moderation_actions
from repositories.rankings import get_entry
from repositories.signals import SignalStore


@pytest.fixture
def moderation(
    session_factory: sessionmaker[Session],
    orchestrator: RecalculationOrchestrator,
) -> ModerationService:
    return ModerationService(session_factory, orchestrator=orchestrator)


def _seed(store: SignalStore, season_id: int, as_of: datetime) -> None:
    store.record_gifts(
        season_id,
        [
            GiftSignal("creator-a", "supporter-1", 500.0, as_of - timedelta(hours=3)),
            GiftSignal("creator-a", "supporter-2", 500.0, as_of - timedelta(hours=3)),
            GiftSignal("creator-a", "supporter-3", 500.0, as_of - timedelta(hours=3)),
            GiftSignal("creator-b", "supporter-1", 100.0, as_of - timedelta(hours=3)),
        ],
    )
    store.record_activities(
        season_id,
        [ActivitySignal("creator-b", "stream_session", as_of - timedelta(hours=1))],
    )


def _entry(session_factory: sessionmaker[Session], season_id: int, creator_id: str) -> RankingEntry:
    with session_factory() as session:
        entry = get_entry(session, season_id=season_id, creator_id=creator_id)
    assert entry is not None
    return entry


def test_excluded_creator_scores_zero_and_drops_to_last(
    moderation: ModerationService,
    orchestrator: RecalculationOrchestrator,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed(signal_store, active_season.id, as_of)
    orchestrator.recalculate(active_season.id, as_of_time=as_of)
    assert _entry(session_factory, active_season.id, "creator-a").rank == 1

    summary = moderation.exclude_creator(active_season.id, "creator-a", "gift fraud")

    assert summary is not None
    assert summary.trigger == "exclude_creator"
    excluded = _entry(session_factory, active_season.id, "creator-a")
    assert excluded.composite_score == 0.0
    assert excluded.unique_supporters == 0
    assert excluded.rank == 2

    with session_factory() as session:
        actions = list_moderation_actions(session, season_id=active_season.id)
    assert [action.action_type for action in actions] == ["exclude_creator"]
    assert actions[0].creator_id == "creator-a"
    assert actions[0].reason == "gift fraud"


def test_restore_creator_brings_the_score_back(
    moderation: ModerationService,
    orchestrator: RecalculationOrchestrator,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed(signal_store, active_season.id, as_of)
    orchestrator.recalculate(active_season.id, as_of_time=as_of)
    original = _entry(session_factory, active_season.id, "creator-a").composite_score

    moderation.exclude_creator(active_season.id, "creator-a", "under review", recalculate=False)
    moderation.restore_creator(active_season.id, "creator-a", "review cleared", recalculate=False)
    orchestrator.recalculate(active_season.id, as_of_time=as_of)

    assert _entry(session_factory, active_season.id, "creator-a").composite_score == pytest.approx(
        original
    )
    with session_factory() as session:
        actions = list_moderation_actions(
            session, season_id=active_season.id, creator_id="creator-a"
        )
    assert [action.action_type for action in actions] == ["exclude_creator", "restore_creator"]
    assert actions[1].details_json["lifted_exclusions"] == 1


def test_excluding_one_gift_lowers_the_score(
    moderation: ModerationService,
    orchestrator: RecalculationOrchestrator,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed(signal_store, active_season.id, as_of)
    orchestrator.recalculate(active_season.id, as_of_time=as_of)
    before = _entry(session_factory, active_season.id, "creator-a")

    with session_factory() as session:
        gift_id = session.execute(
            select(GiftContribution.id).where(
                GiftContribution.creator_id == "creator-a",
                GiftContribution.supporter_id == "supporter-3",
            )
        ).scalar_one()

    moderation.exclude_record(
        active_season.id, SignalRecordKind.GIFT, gift_id, "refunded", recalculate=False
    )
    orchestrator.recalculate(active_season.id, as_of_time=as_of)
    after = _entry(session_factory, active_season.id, "creator-a")

    assert after.unique_supporters == before.unique_supporters - 1
    assert after.composite_score < before.composite_score
    with session_factory() as session:
        assert session.get(GiftContribution, gift_id) is not None
        actions = list_moderation_actions(session, season_id=active_season.id)
    assert actions[0].details_json["record_kind"] == "gift"
    assert actions[0].details_json["record_id"] == gift_id


def test_excluding_a_missing_record_raises_lookup_error(
    moderation: ModerationService,
    active_season: Season,
) -> None:
    with pytest.raises(LookupError):
        moderation.exclude_record(active_season.id, SignalRecordKind.BATTLE, 9999, "typo")


def test_moderation_requires_an_active_season(
    moderation: ModerationService,
    lifecycle: SeasonLifecycleManager,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed(signal_store, active_season.id, as_of)
    lifecycle.end_season(active_season.id)

    with pytest.raises(LifecycleError):
        moderation.exclude_creator(active_season.id, "creator-a", "too late")
    with session_factory() as session:
        assert list_moderation_actions(session, season_id=active_season.id) == []


def test_moderation_requires_a_reason(
    moderation: ModerationService,
    active_season: Season,
) -> None:
    with pytest.raises(ValueError, match="reason"):
        moderation.exclude_creator(active_season.id, "creator-a", "   ")


def test_recalculation_is_deferred_when_a_pass_holds_the_lock(
    moderation: ModerationService,
    orchestrator: RecalculationOrchestrator,
    signal_store: SignalStore,
    session_factory: sessionmaker[Session],
    active_season: Season,
    as_of: datetime,
) -> None:
    _seed(signal_store, active_season.id, as_of)

    with orchestrator.hold_lock(active_season.id):
        summary = moderation.exclude_creator(active_season.id, "creator-b", "spam")

    assert summary is None
    with session_factory() as session:
        assert len(list_moderation_actions(session, season_id=active_season.id)) == 1
