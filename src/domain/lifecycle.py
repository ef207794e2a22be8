"""Season creation, termination and administrative overrides."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import utc_now
from domain.errors import LifecycleError, RecalculationConflictError
from domain.pipeline import RecalculationOrchestrator, RecalculationSummary
from domain.protocol import SeasonStatus
from domain.season.config import SeasonConfig, SeasonDefinition
from domain.season.sequencer import RankSequencer
from domain.season.tiers import DEFAULT_TIER_BANDS, TierAssigner, TierBand, validate_tier_bands
from models import Season
from repositories.moderation import log_moderation_action
from repositories.rankings import count_entries, list_entries_by_rank, ranking_snapshots, write_ranks
from repositories.rewards import RewardGrant, insert_rewards
from repositories.seasons import (
    assert_season_writable,
    get_active_season,
    get_season,
    load_rank_tiers,
    next_season_number,
    replace_rank_tiers,
    save_season_config,
)

logger = logging.getLogger(__name__)

DEFAULT_SEASON_DURATION_DAYS = 14
TOP_TIER_RANK_CUTOFF = 10


@dataclass(frozen=True)
class SeasonStatusView:
    """Read-only season status for callers."""

    season_id: int
    season_number: int
    label: str
    status: SeasonStatus
    starts_at: datetime
    ends_at: datetime
    ended_at: datetime | None
    total_entries: int
    recalculation_in_flight: bool
    recalculation_started_at: datetime | None


@dataclass(frozen=True)
class SeasonEndSummary:
    season_id: int
    season_number: int
    rewards_granted: int
    final_pass: RecalculationSummary
    ended_at: datetime


class SeasonLifecycleManager:
    """Creates and ends seasons around the recalculation pipeline."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        orchestrator: RecalculationOrchestrator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session_factory = session_factory
        self.orchestrator = orchestrator or RecalculationOrchestrator(session_factory, clock=clock)
        self.clock = clock

    def create_season(
        self,
        duration_days: int | None = None,
        *,
        label: str | None = None,
        config: SeasonConfig | None = None,
        tiers: Sequence[TierBand] | None = None,
        definition: SeasonDefinition | None = None,
    ) -> Season:
        """Open the next season as ACTIVE; fails while another season is ACTIVE.

        Explicit arguments win over `definition`; anything left unset falls back
        to the default config, the default tier bands and a 14 day duration.
        """
        if definition is not None:
            duration_days = definition.duration_days if duration_days is None else duration_days
            config = definition.config if config is None else config
            tiers = definition.tiers if tiers is None else tiers
        if duration_days is None:
            duration_days = DEFAULT_SEASON_DURATION_DAYS
        if duration_days <= 0:
            raise ValueError("duration_days must be greater than 0")

        config = config or SeasonConfig()
        bands = validate_tier_bands(tiers or DEFAULT_TIER_BANDS)
        config_name = definition.name if definition is not None else "default"
        now = self.clock()

        with self.session_factory() as session:
            try:
                active = get_active_season(session)
                if active is not None:
                    raise LifecycleError(
                        f"season_number={active.season_number} is still ACTIVE; end it first"
                    )

                season_number = next_season_number(session)
                season = Season(
                    season_number=season_number,
                    label=label or f"Season {season_number}",
                    status=SeasonStatus.ACTIVE.value,
                    duration_days=duration_days,
                    starts_at=now,
                    ends_at=now + timedelta(days=duration_days),
                )
                session.add(season)
                session.flush()
                save_season_config(session, season_id=season.id, name=config_name, config=config)
                replace_rank_tiers(session, season_id=season.id, bands=bands)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise LifecycleError("another season became ACTIVE concurrently") from exc
            except Exception:
                session.rollback()
                raise

        logger.info(
            "season created season_id=%s season_number=%s duration_days=%s ends_at=%s",
            season.id,
            season.season_number,
            duration_days,
            season.ends_at.isoformat(),
        )
        return season

    def end_season(self, season_id: int) -> SeasonEndSummary:
        """Final pass, one reward per entry, then ENDED; rewards and status commit together."""
        with self.session_factory() as session:
            season = get_season(session, season_id)
            if season.status != SeasonStatus.ACTIVE.value:
                raise LifecycleError(f"season_id={season_id} is {season.status}; cannot end it")

        with self.orchestrator.hold_lock(season_id):
            final_pass = self.orchestrator.run_pass(season_id, trigger="season_end")
            if not final_pass.fully_succeeded:
                logger.warning(
                    "final pass for season_id=%s left %d creators and %d chunks with stale values",
                    season_id,
                    len(final_pass.failed_creator_ids),
                    len(final_pass.failed_chunks),
                )

            ended_at = self.clock()
            with self.session_factory() as session:
                try:
                    season = assert_season_writable(session, season_id, exclusive=True)
                    # Entries appended after the final rank write still need a rank.
                    ranks = RankSequencer().sequence(ranking_snapshots(session, season_id))
                    write_ranks(session, season_id=season_id, ranks=ranks)

                    grants = self._reward_grants(session, season)
                    rewards_granted = insert_rewards(session, season_id=season_id, grants=grants)
                    season.status = SeasonStatus.ENDED.value
                    season.ended_at = ended_at
                    season_number = season.season_number
                    session.commit()
                except Exception:
                    session.rollback()
                    raise

        logger.info(
            "season ended season_id=%s season_number=%s rewards=%d",
            season_id,
            season_number,
            rewards_granted,
        )
        return SeasonEndSummary(
            season_id=season_id,
            season_number=season_number,
            rewards_granted=rewards_granted,
            final_pass=final_pass,
            ended_at=ended_at,
        )

    def override_config(
        self,
        season_id: int,
        config: SeasonConfig,
        *,
        tiers: Sequence[TierBand] | None = None,
        reason: str = "administrative config override",
    ) -> RecalculationSummary | None:
        """Replace an ACTIVE season's config (and optionally tiers), then recalculate.

        Returns None when a pass is already in flight; the next scheduled pass
        picks the new config up.
        """
        bands = None if tiers is None else validate_tier_bands(tiers)
        with self.session_factory() as session:
            try:
                assert_season_writable(session, season_id)
                save_season_config(session, season_id=season_id, name="override", config=config)
                details: dict[str, Any] = {"config": config.as_config_json()}
                if bands is not None:
                    replace_rank_tiers(session, season_id=season_id, bands=bands)
                    details["tiers"] = [band.as_config_json() for band in bands]
                log_moderation_action(
                    session,
                    season_id=season_id,
                    action_type="config_override",
                    reason=reason,
                    details=details,
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

        logger.info("config overridden season_id=%s", season_id)
        try:
            return self.orchestrator.recalculate(season_id, trigger="config_override")
        except RecalculationConflictError as exc:
            logger.warning("recalculation after config override deferred: %s", exc)
            return None

    def current_season(self) -> SeasonStatusView | None:
        with self.session_factory() as session:
            season = get_active_season(session)
            if season is None:
                return None
            return self._status_view(session, season)

    def season_status(self, season_id: int) -> SeasonStatusView:
        with self.session_factory() as session:
            return self._status_view(session, get_season(session, season_id))

    def _status_view(self, session: Session, season: Season) -> SeasonStatusView:
        started_at = season.recalculation_started_at
        in_flight = (
            season.recalculation_token is not None
            and started_at is not None
            and started_at >= self.clock() - self.orchestrator.lock_timeout
        )
        return SeasonStatusView(
            season_id=season.id,
            season_number=season.season_number,
            label=season.label,
            status=SeasonStatus(season.status),
            starts_at=season.starts_at,
            ends_at=season.ends_at,
            ended_at=season.ended_at,
            total_entries=count_entries(session, season.id),
            recalculation_in_flight=in_flight,
            recalculation_started_at=started_at if in_flight else None,
        )

    def _reward_grants(self, session: Session, season: Season) -> list[RewardGrant]:
        bands = load_rank_tiers(session, season.id)
        assigner = TierAssigner(bands)
        bands_by_name = {band.name: band for band in bands}

        grants: list[RewardGrant] = []
        for entry in list_entries_by_rank(session, season.id):
            if entry.rank is None:
                raise LifecycleError(
                    f"creator_id={entry.creator_id} has no rank in season_id={season.id}"
                )
            band = bands_by_name.get(entry.tier_name or "") or assigner.band_for(
                entry.composite_score
            )
            grants.append(
                RewardGrant(
                    creator_id=entry.creator_id,
                    final_rank=entry.rank,
                    final_score=entry.composite_score,
                    tier_name=band.name,
                    seasonal_title=f"Season {season.season_number} {band.name}",
                    is_top_tier=entry.rank <= TOP_TIER_RANK_CUTOFF,
                    badge_icon=band.badge_icon,
                    badge_color=band.badge_color,
                )
            )
        return grants


__all__ = [
    "DEFAULT_SEASON_DURATION_DAYS",
    "SeasonEndSummary",
    "SeasonLifecycleManager",
    "SeasonStatusView",
    "TOP_TIER_RANK_CUTOFF",
]
