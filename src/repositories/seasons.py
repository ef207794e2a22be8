"""Persistence helpers for seasons, their configs, tier bands and the recalculation lock."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.orm import Session

from domain.common import SeasonContext, utc_now
from domain.errors import ConfigurationError, LifecycleError, SeasonNotFoundError
from domain.protocol import SeasonStatus
from domain.season.config import SeasonConfig
from domain.season.tiers import TierBand, validate_tier_bands
from models import RankTier, Season, SeasonConfigRecord


def get_season(session: Session, season_id: int) -> Season:
    season = session.get(Season, season_id)
    if season is None:
        raise SeasonNotFoundError(f"season_id={season_id} does not exist")
    return season


def get_active_season(session: Session) -> Season | None:
    return session.execute(
        select(Season).where(Season.status == SeasonStatus.ACTIVE.value)
    ).scalar_one_or_none()


def list_seasons(session: Session) -> list[Season]:
    return list(session.execute(select(Season).order_by(Season.season_number)).scalars().all())


def next_season_number(session: Session) -> int:
    current = session.scalar(select(func.max(Season.season_number)))
    return int(current or 0) + 1


def writable_season_statement(
    season_id: int, *, exclusive: bool = False
) -> Select[tuple[Season]]:
    """Row-locking read of one season: FOR SHARE for writers, FOR UPDATE for finalize."""
    return (
        select(Season)
        .where(Season.id == season_id)
        .with_for_update(read=not exclusive)
        .execution_options(populate_existing=True)
    )


def assert_season_writable(session: Session, season_id: int, *, exclusive: bool = False) -> Season:
    """Ranking rows of an ENDED (or not yet started) season must not change.

    The season row stays locked until the transaction ends, so a writer cannot
    commit against a season that a concurrent finalize has just ENDED.
    """
    season = session.execute(
        writable_season_statement(season_id, exclusive=exclusive)
    ).scalar_one_or_none()
    if season is None:
        raise SeasonNotFoundError(f"season_id={season_id} does not exist")
    if season.status != SeasonStatus.ACTIVE.value:
        raise LifecycleError(
            f"season_id={season_id} is {season.status}; its ranking rows are read-only"
        )
    return season


def save_season_config(
    session: Session,
    *,
    season_id: int,
    name: str,
    config: SeasonConfig,
) -> SeasonConfigRecord:
    """Create or replace the config row for one season."""
    record = session.get(SeasonConfigRecord, season_id)
    if record is None:
        record = SeasonConfigRecord(
            season_id=season_id,
            name=name,
            config_json=config.as_config_json(),
        )
        session.add(record)
    else:
        record.name = name
        record.config_json = config.as_config_json()
        record.updated_at = utc_now()
    session.flush()
    return record


def load_season_config(session: Session, season_id: int) -> SeasonConfig:
    record = session.get(SeasonConfigRecord, season_id)
    if record is None:
        raise ConfigurationError(f"season_id={season_id} has no season config")
    return SeasonConfig.from_config_json(dict(record.config_json))


def replace_rank_tiers(session: Session, *, season_id: int, bands: Sequence[TierBand]) -> None:
    ordered = validate_tier_bands(bands)
    session.execute(delete(RankTier).where(RankTier.season_id == season_id))
    session.add_all(
        RankTier(
            season_id=season_id,
            tier_name=band.name,
            tier_order=band.order,
            min_score=band.min_score,
            max_score=band.max_score,
            badge_icon=band.badge_icon,
            badge_color=band.badge_color,
        )
        for band in ordered
    )
    session.flush()


def load_rank_tiers(session: Session, season_id: int) -> tuple[TierBand, ...]:
    rows = session.execute(
        select(RankTier).where(RankTier.season_id == season_id).order_by(RankTier.tier_order)
    ).scalars()
    bands = [
        TierBand(
            name=row.tier_name,
            order=row.tier_order,
            min_score=float(row.min_score),
            max_score=None if row.max_score is None else float(row.max_score),
            badge_icon=row.badge_icon,
            badge_color=row.badge_color,
        )
        for row in rows
    ]
    if not bands:
        raise ConfigurationError(f"season_id={season_id} has no rank tiers")
    return validate_tier_bands(bands)


def default_as_of_time(now: datetime, ends_at: datetime) -> datetime:
    return min(now.replace(minute=0, second=0, microsecond=0), ends_at)


def load_season_context(
    session: Session,
    season_id: int,
    *,
    as_of_time: datetime | None = None,
    now: datetime | None = None,
) -> SeasonContext:
    """Resolve status, config and tiers once for a pass.

    Without an explicit `as_of_time` the pass decays against the start of the
    current UTC hour (capped at `ends_at`), so passes inside the same hour agree.
    """
    season = get_season(session, season_id)
    config = load_season_config(session, season_id)
    tiers = load_rank_tiers(session, season_id)
    if as_of_time is None:
        as_of_time = default_as_of_time(now or utc_now(), season.ends_at)

    return SeasonContext(
        season_id=season.id,
        season_number=season.season_number,
        label=season.label,
        status=SeasonStatus(season.status),
        starts_at=season.starts_at,
        ends_at=season.ends_at,
        config=config,
        tiers=tiers,
        as_of_time=as_of_time,
    )


def try_acquire_recalculation_lock(
    session: Session,
    *,
    season_id: int,
    token: str,
    now: datetime,
    stale_before: datetime,
) -> bool:
    """Atomically claim the season lock when it is free or older than `stale_before`."""
    result = session.execute(
        update(Season)
        .where(
            Season.id == season_id,
            or_(
                Season.recalculation_token.is_(None),
                Season.recalculation_started_at.is_(None),
                Season.recalculation_started_at < stale_before,
            ),
        )
        .values(recalculation_token=token, recalculation_started_at=now)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0) == 1


def release_recalculation_lock(session: Session, *, season_id: int, token: str) -> bool:
    result = session.execute(
        update(Season)
        .where(Season.id == season_id, Season.recalculation_token == token)
        .values(recalculation_token=None, recalculation_started_at=None)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0) == 1


__all__ = [
    "assert_season_writable",
    "default_as_of_time",
    "get_active_season",
    "get_season",
    "list_seasons",
    "load_rank_tiers",
    "load_season_config",
    "load_season_context",
    "next_season_number",
    "release_recalculation_lock",
    "replace_rank_tiers",
    "save_season_config",
    "try_acquire_recalculation_lock",
    "writable_season_statement",
]
