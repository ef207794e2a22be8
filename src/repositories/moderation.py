"""Persistence helpers for moderation audit rows and scoring exclusions."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from domain.protocol import SignalRecordKind
from models import ContributionExclusion, ModerationAction


@dataclass(frozen=True)
class CreatorExclusions:
    """Active exclusions affecting one creator in one season."""

    creator_excluded: bool = False
    excluded_records: dict[SignalRecordKind, frozenset[int]] = field(default_factory=dict)

    def record_ids(self, kind: SignalRecordKind) -> frozenset[int]:
        return self.excluded_records.get(kind, frozenset())


def load_exclusions(session: Session, *, season_id: int, creator_id: str) -> CreatorExclusions:
    rows = session.execute(
        select(ContributionExclusion.record_kind, ContributionExclusion.record_id).where(
            ContributionExclusion.season_id == season_id,
            ContributionExclusion.creator_id == creator_id,
            ContributionExclusion.active.is_(True),
        )
    ).all()

    creator_excluded = False
    records: dict[SignalRecordKind, set[int]] = defaultdict(set)
    for record_kind, record_id in rows:
        if record_kind is None:
            creator_excluded = True
        elif record_id is not None:
            records[SignalRecordKind(record_kind)].add(int(record_id))

    return CreatorExclusions(
        creator_excluded=creator_excluded,
        excluded_records={kind: frozenset(ids) for kind, ids in records.items()},
    )


def add_exclusion(
    session: Session,
    *,
    season_id: int,
    creator_id: str,
    record_kind: SignalRecordKind | None = None,
    record_id: int | None = None,
) -> ContributionExclusion:
    exclusion = ContributionExclusion(
        season_id=season_id,
        creator_id=creator_id,
        record_kind=None if record_kind is None else record_kind.value,
        record_id=record_id,
        active=True,
    )
    session.add(exclusion)
    session.flush()
    return exclusion


def deactivate_exclusions(
    session: Session,
    *,
    season_id: int,
    creator_id: str,
    include_records: bool = False,
) -> int:
    """Lift creator-level exclusions (and optionally per-record ones); returns rows changed."""
    statement = update(ContributionExclusion).where(
        ContributionExclusion.season_id == season_id,
        ContributionExclusion.creator_id == creator_id,
        ContributionExclusion.active.is_(True),
    )
    if not include_records:
        statement = statement.where(ContributionExclusion.record_kind.is_(None))
    result = session.execute(
        statement.values(active=False).execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


def log_moderation_action(
    session: Session,
    *,
    season_id: int,
    action_type: str,
    reason: str,
    creator_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> ModerationAction:
    action = ModerationAction(
        season_id=season_id,
        creator_id=creator_id,
        action_type=action_type,
        reason=reason,
        details_json=dict(details or {}),
    )
    session.add(action)
    session.flush()
    return action


def list_moderation_actions(
    session: Session,
    *,
    season_id: int,
    creator_id: str | None = None,
) -> list[ModerationAction]:
    statement = select(ModerationAction).where(ModerationAction.season_id == season_id)
    if creator_id is not None:
        statement = statement.where(ModerationAction.creator_id == creator_id)
    return list(session.execute(statement.order_by(ModerationAction.id)).scalars().all())


__all__ = [
    "CreatorExclusions",
    "add_exclusion",
    "deactivate_exclusions",
    "list_moderation_actions",
    "load_exclusions",
    "log_moderation_action",
]
