"""seasons, season_configs and rank_tiers table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class Season(Base):
    """One competitive period; carries the per-season recalculation lock."""

    __tablename__ = "seasons"
    __table_args__ = (
        UniqueConstraint("season_number", name="uq_seasons_number"),
        CheckConstraint("ends_at > starts_at", name="ck_seasons_window"),
        Index(
            "uq_seasons_single_active",
            "status",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_number: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(
            "PENDING",
            "ACTIVE",
            "ENDED",
            name="season_status",
            native_enum=False,
        ),
        nullable=False,
    )
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    recalculation_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recalculation_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class SeasonConfigRecord(Base):
    """Serialized SeasonConfig for one season."""

    __tablename__ = "season_configs"

    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    config_json: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class RankTier(Base):
    """One [min_score, max_score) reward band of a season."""

    __tablename__ = "rank_tiers"
    __table_args__ = (
        UniqueConstraint("season_id", "tier_order", name="uq_rank_tiers_season_order"),
        UniqueConstraint("season_id", "tier_name", name="uq_rank_tiers_season_name"),
        CheckConstraint("min_score >= 0.0", name="ck_rank_tiers_min_score"),
        CheckConstraint(
            "max_score IS NULL OR max_score > min_score",
            name="ck_rank_tiers_band",
        ),
        Index("idx_rank_tiers_season", "season_id", "tier_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    tier_name: Mapped[str] = mapped_column(String(64), nullable=False)
    tier_order: Mapped[int] = mapped_column(Integer, nullable=False)
    min_score: Mapped[float] = mapped_column(Float, nullable=False)
    max_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    badge_icon: Mapped[str | None] = mapped_column(String(32), nullable=True)
    badge_color: Mapped[str | None] = mapped_column(String(16), nullable=True)
