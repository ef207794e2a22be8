"""Schema bootstrap for the season ranking tables."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from models import Base


def ensure_season_ranking_schema(engine: Engine) -> None:
    """Create season ranking tables and indexes if they do not exist."""
    with engine.begin() as connection:
        Base.metadata.create_all(bind=connection, checkfirst=True)


__all__ = ["ensure_season_ranking_schema"]
