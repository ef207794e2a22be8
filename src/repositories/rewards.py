"""Persistence helpers for the seasonal reward ledger."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from models import SeasonalReward


@dataclass(frozen=True)
class RewardGrant:
    """Frozen rank and tier for one creator at season end."""

    creator_id: str
    final_rank: int
    final_score: float
    tier_name: str
    seasonal_title: str
    is_top_tier: bool
    badge_icon: str | None = None
    badge_color: str | None = None


def insert_rewards(session: Session, *, season_id: int, grants: Sequence[RewardGrant]) -> int:
    """Append one ledger row per grant; the (season, creator) constraint rejects duplicates."""
    if not grants:
        return 0

    payload = [
        {
            "season_id": season_id,
            "creator_id": grant.creator_id,
            "final_rank": grant.final_rank,
            "final_score": grant.final_score,
            "tier_name": grant.tier_name,
            "badge_icon": grant.badge_icon,
            "badge_color": grant.badge_color,
            "seasonal_title": grant.seasonal_title,
            "is_top_tier": grant.is_top_tier,
        }
        for grant in grants
    ]
    session.execute(insert(SeasonalReward), payload)
    return len(payload)


def rewards_for_season(session: Session, season_id: int) -> list[SeasonalReward]:
    return list(
        session.execute(
            select(SeasonalReward)
            .where(SeasonalReward.season_id == season_id)
            .order_by(SeasonalReward.final_rank)
        ).scalars()
    )


def rewards_for_creator(session: Session, creator_id: str) -> list[SeasonalReward]:
    return list(
        session.execute(
            select(SeasonalReward)
            .where(SeasonalReward.creator_id == creator_id)
            .order_by(SeasonalReward.season_id)
        ).scalars()
    )


__all__ = ["RewardGrant", "insert_rewards", "rewards_for_creator", "rewards_for_season"]
