"""SignalStore: append-only gift, battle and activity records."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from domain.common import ActivitySignal, BattleSignal, CreatorSignals, GiftSignal
from domain.protocol import BattleType, SignalRecordKind
from models import ActivityEvent, BattleParticipation, GiftContribution
from repositories.base import BaseSignalRepository
from repositories.moderation import load_exclusions
from repositories.rankings import ensure_ranking_entries

logger = logging.getLogger(__name__)

GIFT_COPY_SQL = """
    COPY gift_contributions (
        season_id,
        creator_id,
        supporter_id,
        value,
        occurred_at
    ) FROM STDIN
"""

BATTLE_COPY_SQL = """
    COPY battle_participations (
        season_id,
        creator_id,
        match_id,
        team_size,
        battle_type,
        is_winner,
        score,
        occurred_at
    ) FROM STDIN
"""


def _gift_to_row(signal: GiftSignal, season_id: int) -> dict[str, Any]:
    return {
        "season_id": season_id,
        "creator_id": signal.creator_id,
        "supporter_id": signal.supporter_id,
        "value": signal.value,
        "occurred_at": signal.occurred_at,
    }


def _gift_to_copy_row(signal: GiftSignal, season_id: int) -> tuple[Any, ...]:
    return (season_id, signal.creator_id, signal.supporter_id, signal.value, signal.occurred_at)


def _gift_from_row(row: GiftContribution) -> GiftSignal:
    return GiftSignal(
        creator_id=row.creator_id,
        supporter_id=row.supporter_id,
        value=float(row.value),
        occurred_at=row.occurred_at,
        record_id=row.id,
    )


def _battle_to_row(signal: BattleSignal, season_id: int) -> dict[str, Any]:
    return {
        "season_id": season_id,
        "creator_id": signal.creator_id,
        "match_id": signal.match_id,
        "team_size": signal.team_size,
        "battle_type": BattleType(signal.battle_type).value,
        "is_winner": signal.is_winner,
        "score": signal.score,
        "occurred_at": signal.occurred_at,
    }


def _battle_to_copy_row(signal: BattleSignal, season_id: int) -> tuple[Any, ...]:
    return (
        season_id,
        signal.creator_id,
        signal.match_id,
        signal.team_size,
        BattleType(signal.battle_type).value,
        signal.is_winner,
        signal.score,
        signal.occurred_at,
    )


def _battle_from_row(row: BattleParticipation) -> BattleSignal:
    return BattleSignal(
        creator_id=row.creator_id,
        match_id=row.match_id,
        team_size=int(row.team_size),
        battle_type=BattleType(row.battle_type),
        is_winner=bool(row.is_winner),
        score=float(row.score),
        occurred_at=row.occurred_at,
        record_id=row.id,
    )


def _activity_to_row(signal: ActivitySignal, season_id: int) -> dict[str, Any]:
    return {
        "season_id": season_id,
        "creator_id": signal.creator_id,
        "activity_type": signal.activity_type,
        "occurred_at": signal.occurred_at,
    }


def _activity_from_row(row: ActivityEvent) -> ActivitySignal:
    return ActivitySignal(
        creator_id=row.creator_id,
        activity_type=row.activity_type,
        occurred_at=row.occurred_at,
        record_id=row.id,
    )


GIFT_REPOSITORY: BaseSignalRepository[GiftContribution, GiftSignal] = BaseSignalRepository(
    kind=SignalRecordKind.GIFT,
    model=GiftContribution,
    signal_to_row=_gift_to_row,
    row_to_signal=_gift_from_row,
    copy_sql=GIFT_COPY_SQL,
    signal_to_copy_row=_gift_to_copy_row,
)

BATTLE_REPOSITORY: BaseSignalRepository[BattleParticipation, BattleSignal] = BaseSignalRepository(
    kind=SignalRecordKind.BATTLE,
    model=BattleParticipation,
    signal_to_row=_battle_to_row,
    row_to_signal=_battle_from_row,
    copy_sql=BATTLE_COPY_SQL,
    signal_to_copy_row=_battle_to_copy_row,
)

ACTIVITY_REPOSITORY: BaseSignalRepository[ActivityEvent, ActivitySignal] = BaseSignalRepository(
    kind=SignalRecordKind.ACTIVITY,
    model=ActivityEvent,
    signal_to_row=_activity_to_row,
    row_to_signal=_activity_from_row,
)

SIGNAL_REPOSITORIES: dict[SignalRecordKind, BaseSignalRepository[Any, Any]] = {
    SignalRecordKind.GIFT: GIFT_REPOSITORY,
    SignalRecordKind.BATTLE: BATTLE_REPOSITORY,
    SignalRecordKind.ACTIVITY: ACTIVITY_REPOSITORY,
}


class SignalStore:
    """Session-per-call SignalStore; safe to share across chunk worker threads."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def fetch_creator_signals(self, season_id: int, creator_id: str) -> CreatorSignals:
        with self.session_factory() as session:
            exclusions = load_exclusions(session, season_id=season_id, creator_id=creator_id)
            if exclusions.creator_excluded:
                return CreatorSignals(creator_id=creator_id)

            return CreatorSignals(
                creator_id=creator_id,
                gifts=GIFT_REPOSITORY.fetch_for_creator(
                    session,
                    season_id=season_id,
                    creator_id=creator_id,
                    excluded_ids=exclusions.record_ids(SignalRecordKind.GIFT),
                ),
                battles=BATTLE_REPOSITORY.fetch_for_creator(
                    session,
                    season_id=season_id,
                    creator_id=creator_id,
                    excluded_ids=exclusions.record_ids(SignalRecordKind.BATTLE),
                ),
                activities=ACTIVITY_REPOSITORY.fetch_for_creator(
                    session,
                    season_id=season_id,
                    creator_id=creator_id,
                    excluded_ids=exclusions.record_ids(SignalRecordKind.ACTIVITY),
                ),
            )

    def record_gifts(self, season_id: int, gifts: Sequence[GiftSignal], *, region: str = "global") -> int:
        return self._append(SignalRecordKind.GIFT, season_id, gifts, region=region)

    def record_battles(
        self,
        season_id: int,
        battles: Sequence[BattleSignal],
        *,
        region: str = "global",
    ) -> int:
        return self._append(SignalRecordKind.BATTLE, season_id, battles, region=region)

    def record_activities(
        self,
        season_id: int,
        activities: Sequence[ActivitySignal],
        *,
        region: str = "global",
    ) -> int:
        return self._append(SignalRecordKind.ACTIVITY, season_id, activities, region=region)

    def _append(
        self,
        kind: SignalRecordKind,
        season_id: int,
        signals: Sequence[Any],
        *,
        region: str,
    ) -> int:
        if not signals:
            return 0

        repository = SIGNAL_REPOSITORIES[kind]
        with self.session_factory() as session:
            try:
                repository.insert_signals(session, signals, season_id=season_id)
                ensure_ranking_entries(
                    session,
                    season_id=season_id,
                    creator_ids={signal.creator_id for signal in signals},
                    region=region,
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

        logger.debug("appended %d %s records to season_id=%s", len(signals), kind.value, season_id)
        return len(signals)


__all__ = [
    "ACTIVITY_REPOSITORY",
    "BATTLE_REPOSITORY",
    "GIFT_REPOSITORY",
    "SIGNAL_REPOSITORIES",
    "SignalStore",
]
