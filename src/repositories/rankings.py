"""Persistence helpers for ranking entries and the leaderboard read model."""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from domain.common import RankingSnapshot, ScoredCreator
from models import RankingEntry
from repositories.seasons import assert_season_writable


def ensure_ranking_entries(
    session: Session,
    *,
    season_id: int,
    creator_ids: Collection[str],
    region: str = "global",
) -> int:
    """Create missing (season, creator) entries; returns how many were created."""
    if not creator_ids:
        return 0
    assert_season_writable(session, season_id)

    existing = set(
        session.execute(
            select(RankingEntry.creator_id).where(
                RankingEntry.season_id == season_id,
                RankingEntry.creator_id.in_(list(creator_ids)),
            )
        ).scalars()
    )
    missing = sorted(set(creator_ids) - existing)
    session.add_all(
        RankingEntry(season_id=season_id, creator_id=creator_id, region=region)
        for creator_id in missing
    )
    session.flush()
    return len(missing)


def list_creator_ids(session: Session, season_id: int) -> list[str]:
    return list(
        session.execute(
            select(RankingEntry.creator_id)
            .where(RankingEntry.season_id == season_id)
            .order_by(RankingEntry.creator_id)
        ).scalars()
    )


def count_entries(session: Session, season_id: int) -> int:
    result = session.scalar(
        select(func.count(RankingEntry.id)).where(RankingEntry.season_id == season_id)
    )
    return int(result or 0)


def write_scored_chunk(
    session: Session,
    *,
    season_id: int,
    scored: Sequence[ScoredCreator],
    recalculated_at: datetime,
) -> int:
    """Write sub-totals, score and tier for one chunk; the caller commits once per chunk."""
    if not scored:
        return 0
    assert_season_writable(session, season_id)

    rows = session.execute(
        select(RankingEntry.id, RankingEntry.creator_id, RankingEntry.last_recalculated_at).where(
            RankingEntry.season_id == season_id,
            RankingEntry.creator_id.in_([item.creator_id for item in scored]),
        )
    ).all()
    by_creator = {row.creator_id: row for row in rows}

    payload: list[dict[str, Any]] = []
    for item in scored:
        row = by_creator.get(item.creator_id)
        if row is None:
            raise LookupError(
                f"creator_id={item.creator_id} has no ranking entry in season_id={season_id}"
            )
        previous = row.last_recalculated_at
        payload.append(
            {
                "id": row.id,
                "gift_subtotal": item.subtotals.gift,
                "battle_subtotal": item.subtotals.battle,
                "unique_supporters": item.subtotals.unique_supporters,
                "momentum_subtotal": item.subtotals.momentum,
                "battles_won": item.subtotals.battles_won,
                "battles_participated": item.subtotals.battles_participated,
                "composite_score": item.composite_score,
                "tier_name": item.tier_name,
                "last_recalculated_at": (
                    recalculated_at if previous is None else max(previous, recalculated_at)
                ),
            }
        )

    session.execute(update(RankingEntry), payload)
    return len(payload)


def ranking_snapshots(session: Session, season_id: int) -> list[RankingSnapshot]:
    rows = session.execute(
        select(
            RankingEntry.creator_id,
            RankingEntry.composite_score,
            RankingEntry.unique_supporters,
            RankingEntry.last_recalculated_at,
        ).where(RankingEntry.season_id == season_id)
    ).all()
    return [
        RankingSnapshot(
            creator_id=row.creator_id,
            composite_score=float(row.composite_score),
            unique_supporters=int(row.unique_supporters),
            last_recalculated_at=row.last_recalculated_at,
        )
        for row in rows
    ]


def write_ranks(session: Session, *, season_id: int, ranks: Mapping[str, int]) -> int:
    """Write dense ranks in one statement batch.

    Entries created after `ranks` was computed keep a NULL rank until the next pass.
    """
    assert_season_writable(session, season_id)
    ids_by_creator = {
        row.creator_id: row.id
        for row in session.execute(
            select(RankingEntry.creator_id, RankingEntry.id).where(
                RankingEntry.season_id == season_id
            )
        )
    }
    payload = [
        {"id": ids_by_creator[creator_id], "rank": rank}
        for creator_id, rank in ranks.items()
        if creator_id in ids_by_creator
    ]
    if payload:
        session.execute(update(RankingEntry), payload)
    return len(payload)


def get_entry(session: Session, *, season_id: int, creator_id: str) -> RankingEntry | None:
    return session.execute(
        select(RankingEntry).where(
            RankingEntry.season_id == season_id,
            RankingEntry.creator_id == creator_id,
        )
    ).scalar_one_or_none()


def list_entries_by_rank(session: Session, season_id: int) -> list[RankingEntry]:
    return list(
        session.execute(
            select(RankingEntry)
            .where(RankingEntry.season_id == season_id)
            .order_by(RankingEntry.rank.is_(None), RankingEntry.rank, RankingEntry.creator_id)
        ).scalars()
    )


def top_entries(
    session: Session,
    *,
    season_id: int,
    limit: int = 100,
    region: str | None = None,
) -> list[RankingEntry]:
    """Leaderboard read: ranked entries only, best first."""
    statement = (
        select(RankingEntry)
        .where(RankingEntry.season_id == season_id, RankingEntry.rank.is_not(None))
        .order_by(RankingEntry.rank)
        .limit(limit)
    )
    if region is not None:
        statement = statement.where(RankingEntry.region == region)
    return list(session.execute(statement).scalars())


__all__ = [
    "count_entries",
    "ensure_ranking_entries",
    "get_entry",
    "list_creator_ids",
    "list_entries_by_rank",
    "ranking_snapshots",
    "top_entries",
    "write_ranks",
    "write_scored_chunk",
]
