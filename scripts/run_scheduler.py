#!/usr/bin/env python3
"""Daily recalculation scheduler for the ACTIVE season."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, resolve_db_url
from domain.errors import RecalculationConflictError
from domain.lifecycle import SeasonLifecycleManager
from domain.pipeline import RecalculationOrchestrator
from logging_setup import configure_logging
from repositories.schema import ensure_season_ranking_schema

logger = logging.getLogger("run_scheduler")

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help="Run the daily season recalculation on a cron schedule.",
)


def run_daily_recalculation(manager: SeasonLifecycleManager) -> None:
    """Recalculate the ACTIVE season; a pass already in flight is skipped, not queued."""
    current = manager.current_season()
    if current is None:
        logger.info("no ACTIVE season; nothing to recalculate")
        return

    try:
        summary = manager.orchestrator.recalculate(current.season_id, trigger="scheduled")
    except RecalculationConflictError as exc:
        logger.warning("scheduled recalculation skipped: %s", exc)
        return

    if not summary.fully_succeeded:
        logger.warning(
            "scheduled recalculation season_id=%s finished with %d failed creators and %d failed chunks",
            summary.season_id,
            len(summary.failed_creator_ids),
            len(summary.failed_chunks),
        )


@app.command()
def run_scheduler(
    hour: Annotated[int, typer.Option("--hour", help="UTC hour of the daily run.")] = 0,
    minute: Annotated[int, typer.Option("--minute", help="UTC minute of the daily run.")] = 0,
    chunk_size: Annotated[int, typer.Option("--chunk-size", help="Creators per chunk.")] = 100,
    workers: Annotated[int, typer.Option("--workers", help="Chunk worker threads.")] = 1,
    once: Annotated[bool, typer.Option("--once", help="Run one pass now and exit.")] = False,
    db_url: Annotated[
        str | None,
        typer.Option(
            "--db-url",
            help="Database URL. Defaults to $SEASON_RANKING_DB_URL, then the local postgres instance.",
        ),
    ] = None,
    log_level: Annotated[str, typer.Option("--log-level", help="Python logging level.")] = "INFO",
) -> None:
    """Block and recalculate the ACTIVE season every day at HH:MM UTC."""
    if not 0 <= hour <= 23:
        raise typer.BadParameter("--hour must be within 0..23")
    if not 0 <= minute <= 59:
        raise typer.BadParameter("--minute must be within 0..59")
    if chunk_size <= 0:
        raise typer.BadParameter("--chunk-size must be greater than 0")
    if workers <= 0:
        raise typer.BadParameter("--workers must be greater than 0")

    configure_logging(log_level)
    engine = create_db_engine(resolve_db_url(db_url))
    ensure_season_ranking_schema(engine)
    session_factory = create_session_factory(engine)
    orchestrator = RecalculationOrchestrator(
        session_factory,
        chunk_size=chunk_size,
        max_workers=workers,
        echo=typer.echo,
    )
    manager = SeasonLifecycleManager(session_factory, orchestrator=orchestrator)

    if once:
        run_daily_recalculation(manager)
        return

    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        run_daily_recalculation,
        CronTrigger(hour=hour, minute=minute, timezone="UTC"),
        args=[manager],
        id="season_recalculation",
        name="Daily season recalculation",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    typer.echo(f"scheduler=started trigger=cron hour={hour:02d} minute={minute:02d} tz=UTC")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("scheduler stopped")


if __name__ == "__main__":
    app()
