#!/usr/bin/env python3
"""Show the season leaderboard, one creator's standing, or a creator's past rewards."""

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
from models import RankingEntry
from repositories.rankings import get_entry, top_entries
from repositories.rewards import rewards_for_creator
from repositories.seasons import get_active_season

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help="Query season leaderboards and reward history.",
)


def _render_entry(entry: RankingEntry) -> str:
    rank = "-" if entry.rank is None else f"{entry.rank:3d}"
    return (
        f"{rank}. {entry.creator_id:<24} "
        f"score={entry.composite_score:10.2f} "
        f"tier={entry.tier_name or '-':<20} "
        f"gift={entry.gift_subtotal:9.2f} "
        f"battle={entry.battle_subtotal:9.2f} "
        f"supporters={entry.unique_supporters:4d} "
        f"momentum={entry.momentum_subtotal:8.2f} "
        f"last_recalculated={entry.last_recalculated_at}"
    )


@app.command()
def show_season_top(
    season_id: Annotated[
        int | None,
        typer.Option("--season-id", help="Season id. Defaults to the ACTIVE season."),
    ] = None,
    top_n: Annotated[int, typer.Option("--top-n", help="Number of creators to return.")] = 20,
    region: Annotated[
        str | None,
        typer.Option("--region", help="Only creators in this region."),
    ] = None,
    creator_id: Annotated[
        str | None,
        typer.Option("--creator-id", help="Show one creator's entry and reward history instead."),
    ] = None,
    db_url: Annotated[
        str | None,
        typer.Option(
            "--db-url",
            help="Database URL. Defaults to $SEASON_RANKING_DB_URL, then the local postgres instance.",
        ),
    ] = None,
) -> None:
    """Print ranked creators for a season."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")

    engine = create_db_engine(resolve_db_url(db_url))
    session_factory = create_session_factory(engine)

    with session_factory() as session:
        if season_id is None:
            season = get_active_season(session)
            if season is None:
                typer.echo("No ACTIVE season; pass --season-id.")
                return
            season_id = season.id

        if creator_id is not None:
            entry = get_entry(session, season_id=season_id, creator_id=creator_id)
            if entry is None:
                typer.echo(f"No ranking entry for creator_id={creator_id} in season_id={season_id}.")
            else:
                typer.echo(_render_entry(entry))
            for reward in rewards_for_creator(session, creator_id):
                typer.echo(
                    f"reward season_id={reward.season_id} rank={reward.final_rank} "
                    f"tier={reward.tier_name} title={reward.seasonal_title!r} "
                    f"top_tier={reward.is_top_tier}"
                )
            return

        entries = top_entries(session, season_id=season_id, limit=top_n, region=region)

    if not entries:
        typer.echo(f"No ranked entries for season_id={season_id} region={region or 'all'}.")
        return

    typer.echo(f"season_id={season_id} top_n={top_n} region={region or 'all'}")
    for entry in entries:
        typer.echo(_render_entry(entry))


if __name__ == "__main__":
    app()
