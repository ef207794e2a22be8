#!/usr/bin/env python3
"""Administrative CLI for season lifecycle, recalculation and moderation."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, resolve_db_url
from domain.config_base import select_config
from domain.errors import SeasonRankingError
from domain.lifecycle import SeasonLifecycleManager
from domain.moderation import ModerationService
from domain.pipeline import RecalculationOrchestrator, RecalculationSummary
from domain.protocol import SignalRecordKind
from domain.season.config import SeasonDefinition, load_season_definitions
from logging_setup import configure_logging
from repositories.schema import ensure_season_ranking_schema

DEFAULT_CONFIG_DIR = ROOT_DIR / "configs" / "season"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Season ranking lifecycle, recalculation and moderation commands.",
)

DbUrlOption = Annotated[
    str | None,
    typer.Option(
        "--db-url",
        help="Database URL. Defaults to $SEASON_RANKING_DB_URL, then the local postgres instance.",
    ),
]
LogLevelOption = Annotated[str, typer.Option("--log-level", help="Python logging level.")]
ChunkSizeOption = Annotated[
    int,
    typer.Option("--chunk-size", help="Creators per chunk; each chunk commits atomically."),
]
WorkersOption = Annotated[
    int,
    typer.Option("--workers", help="Chunk worker threads for the recalculation pass."),
]
ConfigDirOption = Annotated[
    Path,
    typer.Option("--config-dir", help="Directory containing season TOML configs."),
]
ConfigNameOption = Annotated[
    str | None,
    typer.Option("--config-name", help="Season TOML file name. Defaults to default.toml."),
]


def _build_orchestrator(
    db_url: str | None,
    *,
    log_level: str,
    chunk_size: int = 100,
    workers: int = 1,
) -> RecalculationOrchestrator:
    if chunk_size <= 0:
        raise typer.BadParameter("--chunk-size must be greater than 0")
    if workers <= 0:
        raise typer.BadParameter("--workers must be greater than 0")

    configure_logging(log_level)
    engine = create_db_engine(resolve_db_url(db_url))
    ensure_season_ranking_schema(engine)
    session_factory = create_session_factory(engine)
    return RecalculationOrchestrator(
        session_factory,
        chunk_size=chunk_size,
        max_workers=workers,
        echo=typer.echo,
    )


def _select_definition(config_dir: Path, config_name: str | None) -> SeasonDefinition:
    try:
        return select_config(load_season_definitions(config_dir), config_name or "default.toml")
    except LookupError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config-name") from exc


def _echo_summary(summary: RecalculationSummary | None) -> None:
    if summary is None:
        typer.echo("recalculation=deferred reason=lock_held")
        return
    typer.echo(
        f"season_id={summary.season_id} "
        f"trigger={summary.trigger} "
        f"processed={summary.processed_creators}/{summary.total_entries} "
        f"failed_creators={len(summary.failed_creator_ids)} "
        f"failed_chunks={len(summary.failed_chunks)} "
        f"ranked={summary.ranked_entries} "
        f"duration={summary.duration_seconds:.3f}s"
    )
    for failure in summary.failed_chunks:
        typer.echo(
            f"failed_chunk={failure.chunk_index} "
            f"boundaries={failure.first_creator_id}..{failure.last_creator_id} "
            f"error={failure.error}"
        )


def _fail(exc: SeasonRankingError | LookupError) -> None:
    typer.echo(f"error={type(exc).__name__} message={exc}", err=True)
    raise typer.Exit(code=1) from exc


@app.command("create-season")
def create_season(
    duration_days: Annotated[
        int | None,
        typer.Option("--duration-days", help="Season length. Defaults to the config's duration."),
    ] = None,
    label: Annotated[str | None, typer.Option("--label", help="Display label.")] = None,
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Open the next season as ACTIVE."""
    definition = _select_definition(config_dir, config_name)
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    manager = SeasonLifecycleManager(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        season = manager.create_season(duration_days, label=label, definition=definition)
    except SeasonRankingError as exc:
        _fail(exc)
        return

    typer.echo(
        f"season_id={season.id} "
        f"season_number={season.season_number} "
        f"label={season.label!r} "
        f"config={definition.file_name} "
        f"starts_at={season.starts_at.isoformat()} "
        f"ends_at={season.ends_at.isoformat()}"
    )


@app.command("end-season")
def end_season(
    season_id: Annotated[int, typer.Argument(help="Season id to end.")],
    chunk_size: ChunkSizeOption = 100,
    workers: WorkersOption = 1,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Run the final pass, grant rewards and mark the season ENDED."""
    orchestrator = _build_orchestrator(
        db_url, log_level=log_level, chunk_size=chunk_size, workers=workers
    )
    manager = SeasonLifecycleManager(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        result = manager.end_season(season_id)
    except SeasonRankingError as exc:
        _fail(exc)
        return

    _echo_summary(result.final_pass)
    typer.echo(
        f"season_id={result.season_id} "
        f"season_number={result.season_number} "
        f"status=ENDED "
        f"rewards_granted={result.rewards_granted} "
        f"ended_at={result.ended_at.isoformat()}"
    )


@app.command("recalculate")
def recalculate(
    season_id: Annotated[
        int | None,
        typer.Argument(help="Season id. Defaults to the ACTIVE season."),
    ] = None,
    chunk_size: ChunkSizeOption = 100,
    workers: WorkersOption = 1,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Run one full recalculation pass."""
    orchestrator = _build_orchestrator(
        db_url, log_level=log_level, chunk_size=chunk_size, workers=workers
    )
    if season_id is None:
        current = SeasonLifecycleManager(
            orchestrator.session_factory, orchestrator=orchestrator
        ).current_season()
        if current is None:
            typer.echo("No ACTIVE season.")
            return
        season_id = current.season_id

    try:
        summary = orchestrator.recalculate(season_id, trigger="manual")
    except SeasonRankingError as exc:
        _fail(exc)
        return
    _echo_summary(summary)


@app.command("status")
def status(
    season_id: Annotated[
        int | None,
        typer.Argument(help="Season id. Defaults to the ACTIVE season."),
    ] = None,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Print season status, including whether a recalculation is in flight."""
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    manager = SeasonLifecycleManager(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        view = manager.current_season() if season_id is None else manager.season_status(season_id)
    except SeasonRankingError as exc:
        _fail(exc)
        return

    if view is None:
        typer.echo("No ACTIVE season.")
        return
    typer.echo(
        f"season_id={view.season_id} "
        f"season_number={view.season_number} "
        f"label={view.label!r} "
        f"status={view.status.value} "
        f"starts_at={view.starts_at.isoformat()} "
        f"ends_at={view.ends_at.isoformat()} "
        f"entries={view.total_entries} "
        f"recalculation_in_flight={view.recalculation_in_flight}"
    )


@app.command("override-config")
def override_config(
    season_id: Annotated[int, typer.Argument(help="ACTIVE season id.")],
    reason: Annotated[str, typer.Option("--reason", help="Audit reason.")],
    config_dir: ConfigDirOption = DEFAULT_CONFIG_DIR,
    config_name: ConfigNameOption = None,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Replace a season's scoring config and tiers from TOML, then recalculate."""
    definition = _select_definition(config_dir, config_name)
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    manager = SeasonLifecycleManager(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        summary = manager.override_config(
            season_id,
            definition.config,
            tiers=definition.tiers,
            reason=reason,
        )
    except SeasonRankingError as exc:
        _fail(exc)
        return
    _echo_summary(summary)


@app.command("exclude-creator")
def exclude_creator(
    season_id: Annotated[int, typer.Argument(help="ACTIVE season id.")],
    creator_id: Annotated[str, typer.Argument(help="Creator to exclude from scoring.")],
    reason: Annotated[str, typer.Option("--reason", help="Audit reason.")],
    recalculate_now: Annotated[
        bool,
        typer.Option("--recalculate/--no-recalculate", help="Trigger a pass afterwards."),
    ] = True,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Exclude every signal of one creator for the season."""
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    service = ModerationService(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        summary = service.exclude_creator(
            season_id, creator_id, reason, recalculate=recalculate_now
        )
    except SeasonRankingError as exc:
        _fail(exc)
        return
    typer.echo(f"action=exclude_creator season_id={season_id} creator_id={creator_id}")
    if recalculate_now:
        _echo_summary(summary)


@app.command("exclude-record")
def exclude_record(
    season_id: Annotated[int, typer.Argument(help="ACTIVE season id.")],
    record_kind: Annotated[
        SignalRecordKind,
        typer.Argument(help="Record table: gift, battle or activity."),
    ],
    record_id: Annotated[int, typer.Argument(help="Record id within that table.")],
    reason: Annotated[str, typer.Option("--reason", help="Audit reason.")],
    recalculate_now: Annotated[
        bool,
        typer.Option("--recalculate/--no-recalculate", help="Trigger a pass afterwards."),
    ] = True,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Exclude a single gift, battle or activity record from scoring."""
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    service = ModerationService(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        summary = service.exclude_record(
            season_id, record_kind, record_id, reason, recalculate=recalculate_now
        )
    except (SeasonRankingError, LookupError) as exc:
        _fail(exc)
        return
    typer.echo(
        f"action=exclude_record season_id={season_id} "
        f"record_kind={record_kind.value} record_id={record_id}"
    )
    if recalculate_now:
        _echo_summary(summary)


@app.command("restore-creator")
def restore_creator(
    season_id: Annotated[int, typer.Argument(help="ACTIVE season id.")],
    creator_id: Annotated[str, typer.Argument(help="Creator to restore.")],
    reason: Annotated[str, typer.Option("--reason", help="Audit reason.")],
    include_records: Annotated[
        bool,
        typer.Option("--include-records", help="Also lift per-record exclusions."),
    ] = False,
    recalculate_now: Annotated[
        bool,
        typer.Option("--recalculate/--no-recalculate", help="Trigger a pass afterwards."),
    ] = True,
    db_url: DbUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Lift a creator's exclusions."""
    orchestrator = _build_orchestrator(db_url, log_level=log_level)
    service = ModerationService(orchestrator.session_factory, orchestrator=orchestrator)
    try:
        summary = service.restore_creator(
            season_id,
            creator_id,
            reason,
            include_records=include_records,
            recalculate=recalculate_now,
        )
    except SeasonRankingError as exc:
        _fail(exc)
        return
    typer.echo(f"action=restore_creator season_id={season_id} creator_id={creator_id}")
    if recalculate_now:
        _echo_summary(summary)


if __name__ == "__main__":
    app()
