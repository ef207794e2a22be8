"""ranking_entries and seasonal_rewards table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class RankingEntry(Base):
    """Current standing of one creator in one season."""

    __tablename__ = "ranking_entries"
    __table_args__ = (
        UniqueConstraint("season_id", "creator_id", name="uq_ranking_entries_season_creator"),
        CheckConstraint("composite_score >= 0.0", name="ck_ranking_entries_composite"),
        CheckConstraint("rank IS NULL OR rank >= 1", name="ck_ranking_entries_rank"),
        Index("idx_ranking_entries_season_rank", "season_id", "rank"),
        Index("idx_ranking_entries_season_creator", "season_id", "creator_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    region: Mapped[str] = mapped_column(String(32), nullable=False, default="global")
    gift_subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    battle_subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unique_supporters: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    momentum_subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    composite_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    battles_won: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    battles_participated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_recalculated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class SeasonalReward(Base):
    """Ledger row frozen at season end; never updated."""

    __tablename__ = "seasonal_rewards"
    __table_args__ = (
        UniqueConstraint("season_id", "creator_id", name="uq_seasonal_rewards_season_creator"),
        CheckConstraint("final_rank >= 1", name="ck_seasonal_rewards_rank"),
        Index("idx_seasonal_rewards_creator", "creator_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    final_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    final_score: Mapped[float] = mapped_column(Float, nullable=False)
    tier_name: Mapped[str] = mapped_column(String(64), nullable=False)
    badge_icon: Mapped[str | None] = mapped_column(String(32), nullable=True)
    badge_color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    seasonal_title: Mapped[str] = mapped_column(String(160), nullable=False)
    is_top_tier: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
