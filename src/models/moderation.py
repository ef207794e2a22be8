"""moderation_actions and contribution_exclusions table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class ModerationAction(Base):
    """Append-only audit log of moderation and administrative actions."""

    __tablename__ = "moderation_actions"
    __table_args__ = (
        Index("idx_moderation_actions_season_creator", "season_id", "creator_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    creator_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(String(512), nullable=False)
    details_json: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class ContributionExclusion(Base):
    """Excludes a creator, or a single signal record, from scoring in a season."""

    __tablename__ = "contribution_exclusions"
    __table_args__ = (
        Index("idx_contribution_exclusions_season_creator", "season_id", "creator_id", "active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    record_kind: Mapped[str | None] = mapped_column(
        Enum(
            "gift",
            "battle",
            "activity",
            name="signal_record_kind",
            native_enum=False,
        ),
        nullable=True,
    )
    record_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
