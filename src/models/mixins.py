"""SQLAlchemy mixins for common signal-record columns."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column


class SignalRecordMixin:
    """Columns every append-only engagement record carries (no id; add in concrete class)."""

    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
