"""Chunked recalculation pipeline for one season."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from domain.common import ScoredCreator, SeasonContext, utc_now
from domain.errors import ConfigurationError, LifecycleError, RecalculationConflictError
from domain.protocol import SignalReader
from domain.season.aggregator import ScoreAggregator
from domain.season.calculator import CompositeScoreCalculator
from domain.season.sequencer import RankSequencer
from domain.season.tiers import TierAssigner
from repositories.rankings import (
    list_creator_ids,
    ranking_snapshots,
    write_ranks,
    write_scored_chunk,
)
from repositories.seasons import (
    get_season,
    load_season_context,
    release_recalculation_lock,
    try_acquire_recalculation_lock,
)
from repositories.signals import SignalStore

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_LOCK_TIMEOUT = timedelta(minutes=30)


@dataclass(frozen=True)
class ChunkFailure:
    """A chunk whose write did not commit; its creators keep their previous values."""

    chunk_index: int
    first_creator_id: str
    last_creator_id: str
    creator_ids: tuple[str, ...]
    error: str


@dataclass(frozen=True)
class RecalculationSummary:
    """Outcome of one full pass over a season."""

    season_id: int
    trigger: str
    as_of_time: datetime
    recalculated_at: datetime
    total_entries: int
    chunk_count: int
    processed_creators: int
    failed_creator_ids: tuple[str, ...]
    failed_chunks: tuple[ChunkFailure, ...]
    ranked_entries: int
    duration_seconds: float

    @property
    def fully_succeeded(self) -> bool:
        return not self.failed_creator_ids and not self.failed_chunks


@dataclass
class _ChunkOutcome:
    written: int = 0
    failed_creator_ids: list[str] = field(default_factory=list)
    failure: ChunkFailure | None = None


class RecalculationOrchestrator:
    """Drives aggregator, calculator, tier assigner and rank sequencer over a season.

    The scheduler and administrative triggers share `recalculate`; the season
    row lock serializes passes per season.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        signal_reader: SignalReader | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: int = 1,
        lock_timeout: timedelta = DEFAULT_LOCK_TIMEOUT,
        echo: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")
        if max_workers <= 0:
            raise ValueError("max_workers must be greater than 0")

        self.session_factory = session_factory
        self.signal_reader = signal_reader or SignalStore(session_factory)
        self.chunk_size = chunk_size
        self.max_workers = max_workers
        self.lock_timeout = lock_timeout
        self.echo = echo
        self.clock = clock

    @contextmanager
    def hold_lock(self, season_id: int) -> Iterator[str]:
        """Hold the per-season recalculation lock for the duration of the block."""
        token = uuid4().hex
        now = self.clock()
        with self.session_factory() as session:
            try:
                season = get_season(session, season_id)
                previous_token = season.recalculation_token
                previous_started_at = season.recalculation_started_at
                acquired = try_acquire_recalculation_lock(
                    session,
                    season_id=season_id,
                    token=token,
                    now=now,
                    stale_before=now - self.lock_timeout,
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

        if not acquired:
            raise RecalculationConflictError(season_id, previous_started_at)
        if previous_token is not None:
            logger.warning(
                "reclaimed stale recalculation lock season_id=%s previous_started_at=%s",
                season_id,
                previous_started_at,
            )

        try:
            yield token
        finally:
            with self.session_factory() as session:
                try:
                    release_recalculation_lock(session, season_id=season_id, token=token)
                    session.commit()
                except Exception:
                    session.rollback()
                    raise

    def recalculate(
        self,
        season_id: int,
        *,
        chunk_size: int | None = None,
        as_of_time: datetime | None = None,
        trigger: str = "manual",
    ) -> RecalculationSummary:
        """Run one locked, full pass. Raises RecalculationConflictError if a pass is in flight."""
        with self.hold_lock(season_id):
            return self.run_pass(
                season_id,
                chunk_size=chunk_size,
                as_of_time=as_of_time,
                trigger=trigger,
            )

    def run_pass(
        self,
        season_id: int,
        *,
        chunk_size: int | None = None,
        as_of_time: datetime | None = None,
        trigger: str = "manual",
    ) -> RecalculationSummary:
        """Run one full pass; the caller must already hold the season lock."""
        chunk_size = self.chunk_size if chunk_size is None else chunk_size
        if chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")

        started = time.perf_counter()
        with self.session_factory() as session:
            context = load_season_context(
                session, season_id, as_of_time=as_of_time, now=self.clock()
            )
            creator_ids = list_creator_ids(session, season_id)

        if not context.is_active:
            raise LifecycleError(
                f"season_id={season_id} is {context.status.value}; only ACTIVE seasons are recalculated"
            )

        calculator = CompositeScoreCalculator(context.config)
        assigner = TierAssigner(context.tiers)
        aggregator = ScoreAggregator(self.signal_reader, calculator)
        recalculated_at = self.clock()

        chunks = [
            tuple(creator_ids[start : start + chunk_size])
            for start in range(0, len(creator_ids), chunk_size)
        ]
        logger.info(
            "recalculation started season_id=%s trigger=%s entries=%d chunks=%d as_of=%s",
            season_id,
            trigger,
            len(creator_ids),
            len(chunks),
            context.as_of_time.isoformat(),
        )

        outcomes = self._run_chunks(
            chunks,
            context=context,
            aggregator=aggregator,
            calculator=calculator,
            assigner=assigner,
            recalculated_at=recalculated_at,
        )

        ranked_entries = self._write_final_ranks(season_id)

        failed_creator_ids = tuple(
            creator_id for outcome in outcomes for creator_id in outcome.failed_creator_ids
        )
        failed_chunks = tuple(outcome.failure for outcome in outcomes if outcome.failure is not None)
        summary = RecalculationSummary(
            season_id=season_id,
            trigger=trigger,
            as_of_time=context.as_of_time,
            recalculated_at=recalculated_at,
            total_entries=len(creator_ids),
            chunk_count=len(chunks),
            processed_creators=sum(outcome.written for outcome in outcomes),
            failed_creator_ids=failed_creator_ids,
            failed_chunks=failed_chunks,
            ranked_entries=ranked_entries,
            duration_seconds=time.perf_counter() - started,
        )

        logger.info(
            "recalculation completed season_id=%s trigger=%s processed=%d failed_creators=%d "
            "failed_chunks=%d ranked=%d duration=%.3fs",
            season_id,
            trigger,
            summary.processed_creators,
            len(failed_creator_ids),
            len(failed_chunks),
            ranked_entries,
            summary.duration_seconds,
        )
        if self.echo is not None:
            self.echo(
                "completed "
                f"season_id={season_id} "
                f"trigger={trigger} "
                f"as_of={context.as_of_time.isoformat()} "
                f"entries={summary.total_entries} "
                f"processed={summary.processed_creators} "
                f"failed_creators={len(failed_creator_ids)} "
                f"failed_chunks={len(failed_chunks)} "
                f"ranked={ranked_entries}"
            )
        return summary

    def _run_chunks(
        self,
        chunks: Sequence[tuple[str, ...]],
        *,
        context: SeasonContext,
        aggregator: ScoreAggregator,
        calculator: CompositeScoreCalculator,
        assigner: TierAssigner,
        recalculated_at: datetime,
    ) -> list[_ChunkOutcome]:
        def process(index: int, chunk: tuple[str, ...]) -> _ChunkOutcome:
            return self._process_chunk(
                index,
                chunk,
                context=context,
                aggregator=aggregator,
                calculator=calculator,
                assigner=assigner,
                recalculated_at=recalculated_at,
            )

        if self.max_workers == 1 or len(chunks) <= 1:
            return [process(index, chunk) for index, chunk in enumerate(chunks)]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(process, index, chunk) for index, chunk in enumerate(chunks)]
            return [future.result() for future in futures]

    def _process_chunk(
        self,
        chunk_index: int,
        creator_ids: tuple[str, ...],
        *,
        context: SeasonContext,
        aggregator: ScoreAggregator,
        calculator: CompositeScoreCalculator,
        assigner: TierAssigner,
        recalculated_at: datetime,
    ) -> _ChunkOutcome:
        outcome = _ChunkOutcome()
        first_creator_id, last_creator_id = creator_ids[0], creator_ids[-1]

        scored: list[ScoredCreator] = []
        for creator_id in creator_ids:
            try:
                subtotals = aggregator.aggregate(context, creator_id)
                composite = calculator.composite(subtotals)
                scored.append(
                    ScoredCreator(
                        creator_id=creator_id,
                        subtotals=subtotals,
                        composite_score=composite,
                        tier_name=assigner.assign(composite),
                    )
                )
            except ConfigurationError:
                raise
            except Exception:
                logger.exception(
                    "creator recalculation failed season_id=%s chunk=%d boundaries=%s..%s creator_id=%s",
                    context.season_id,
                    chunk_index,
                    first_creator_id,
                    last_creator_id,
                    creator_id,
                )
                outcome.failed_creator_ids.append(creator_id)

        with self.session_factory() as session:
            try:
                outcome.written = write_scored_chunk(
                    session,
                    season_id=context.season_id,
                    scored=scored,
                    recalculated_at=recalculated_at,
                )
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.exception(
                    "chunk write failed season_id=%s chunk=%d boundaries=%s..%s creator_ids=%s",
                    context.season_id,
                    chunk_index,
                    first_creator_id,
                    last_creator_id,
                    ",".join(creator_ids),
                )
                outcome.written = 0
                outcome.failure = ChunkFailure(
                    chunk_index=chunk_index,
                    first_creator_id=first_creator_id,
                    last_creator_id=last_creator_id,
                    creator_ids=creator_ids,
                    error=f"{type(exc).__name__}: {exc}",
                )

        if self.echo is not None:
            self.echo(
                f"season_id={context.season_id} "
                f"chunk={chunk_index} "
                f"boundaries={first_creator_id}..{last_creator_id} "
                f"written={outcome.written} "
                f"failed_creators={len(outcome.failed_creator_ids)}"
            )
        return outcome

    def _write_final_ranks(self, season_id: int) -> int:
        """Single-threaded global ordering over every entry, stale ones included."""
        sequencer = RankSequencer()
        with self.session_factory() as session:
            try:
                ranks = sequencer.sequence(ranking_snapshots(session, season_id))
                written = write_ranks(session, season_id=season_id, ranks=ranks)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return written


__all__ = [
    "ChunkFailure",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_LOCK_TIMEOUT",
    "RecalculationOrchestrator",
    "RecalculationSummary",
]
