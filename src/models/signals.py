"""gift_contributions, battle_participations and activity_events table models."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Enum, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.mixins import SignalRecordMixin


class GiftContribution(SignalRecordMixin, Base):
    """One confirmed gift from a supporter to a creator."""

    __tablename__ = "gift_contributions"
    __table_args__ = (
        CheckConstraint("value >= 0.0", name="ck_gift_contributions_value"),
        Index("idx_gift_contributions_season_creator", "season_id", "creator_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    supporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)


class BattleParticipation(SignalRecordMixin, Base):
    """One creator's contribution to one team battle."""

    __tablename__ = "battle_participations"
    __table_args__ = (
        CheckConstraint("score >= 0.0", name="ck_battle_participations_score"),
        CheckConstraint("team_size >= 1 AND team_size <= 5", name="ck_battle_participations_team_size"),
        Index("idx_battle_participations_season_creator", "season_id", "creator_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[str] = mapped_column(String(64), nullable=False)
    team_size: Mapped[int] = mapped_column(Integer, nullable=False)
    battle_type: Mapped[str] = mapped_column(
        Enum(
            "casual",
            "ranked",
            "tournament",
            name="battle_type",
            native_enum=False,
        ),
        nullable=False,
    )
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)


class ActivityEvent(SignalRecordMixin, Base):
    """Recent-activity timestamp (stream session, hype peak) used for momentum."""

    __tablename__ = "activity_events"
    __table_args__ = (
        Index("idx_activity_events_season_creator", "season_id", "creator_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
