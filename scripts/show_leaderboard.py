#!/usr/bin/env python3
"""Show leaderboards and rating history from the stored ratings."""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from domain.ratings.common import HistoryEntry, RatingType, TimeWindow, entity_key
from domain.ratings.elo.config import DEFAULT_CONFIG_PATH, load_elo_system_config
from domain.ratings.leaderboard import LeaderboardRow
from domain.ratings.smart_score import SmartScore
from rebuild_ratings import DEFAULT_DB_URL, build_service

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Query leaderboards and history for a rating type.",
)

RatingTypeArgument = Annotated[
    str,
    typer.Argument(help="Rating type (global, 1v1, 2v2, pair)."),
]
PageOption = Annotated[int, typer.Option("--page", help="1-based page number.")]
PageSizeOption = Annotated[int, typer.Option("--page-size", help="Rows per page.")]
DbUrlOption = Annotated[
    str,
    typer.Option(
        "--db-url",
        help="Database URL. Defaults to the local foosball postgres instance.",
    ),
]
ConfigOption = Annotated[
    Path,
    typer.Option("--config", help="Elo system TOML config file."),
]


def _render_row(row: LeaderboardRow) -> str:
    return (
        f"{row.rank:3d}. {entity_key(row.entity):<20} "
        f"rating={row.rating:5d} matches={row.matches_played:4d} "
        f"wins={row.wins:4d} winrate={row.winrate:6.2f}%"
    )


def _render_smart(rank: int, score: SmartScore) -> str:
    return (
        f"{rank:3d}. {entity_key(score.entity):<20} "
        f"smart={score.smart_score:8.2f} rating={score.historical_rating:5d} "
        f"winrate={score.winrate:6.2f}% consistency={score.consistency:6.2f} "
        f"activity={score.activity:6.2f} matches={score.matches_count:3d}"
    )


def _render_entry(entry: HistoryEntry) -> str:
    return (
        f"match_id={entry.match_id:<6d} {entry.event_time:%Y-%m-%d %H:%M} "
        f"{entry.display_result:<11} {entry.rating_before:5d} -> {entry.rating_after:5d} "
        f"({entry.rating_change:+d}) k={entry.k_factor} bonus={entry.goal_bonus}"
    )


def _check_paging(page: int, page_size: int) -> None:
    if page <= 0:
        raise typer.BadParameter("--page must be greater than 0")
    if page_size <= 0:
        raise typer.BadParameter("--page-size must be greater than 0")


@app.command()
def leaderboard(
    rating_type: RatingTypeArgument = RatingType.GLOBAL.value,
    page: PageOption = 1,
    page_size: PageSizeOption = 20,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Print current ratings, highest first."""
    _check_paging(page, page_size)
    result = build_service(db_url, config).get_leaderboard(rating_type, page, page_size)
    if not result.items:
        typer.echo(f"No ratings found for rating_type='{rating_type}' page={page}.")
        return

    typer.echo(f"rating_type={rating_type} page={page} page_size={page_size} total={result.total}")
    for row in result.items:
        typer.echo(_render_row(row))


@app.command()
def smart(
    rating_type: RatingTypeArgument = RatingType.GLOBAL.value,
    start: Annotated[
        datetime | None,
        typer.Option("--start", formats=["%Y-%m-%d"], help="Window start date (inclusive)."),
    ] = None,
    end: Annotated[
        datetime | None,
        typer.Option("--end", formats=["%Y-%m-%d"], help="Window end date (inclusive)."),
    ] = None,
    page: PageOption = 1,
    page_size: PageSizeOption = 20,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Print the smart leaderboard for a date window.

    The window defaults to the config's lookback_days ending today.
    """
    _check_paging(page, page_size)
    end_date: date = end.date() if end is not None else date.today()
    if start is not None:
        start_date = start.date()
    else:
        lookback_days = load_elo_system_config(config).lookback_days
        start_date = end_date - timedelta(days=lookback_days)
    if end_date < start_date:
        raise typer.BadParameter("--end must not be before --start")

    window = TimeWindow.from_dates(start_date, end_date)
    result = build_service(db_url, config).get_smart_leaderboard(rating_type, window, page, page_size)
    if not result.items:
        typer.echo(f"No active entities for rating_type='{rating_type}' between {start_date} and {end_date}.")
        return

    typer.echo(
        f"rating_type={rating_type} start={start_date} end={end_date} "
        f"page={page} page_size={page_size} total={result.total}"
    )
    first_rank = (page - 1) * page_size + 1
    for rank, score in enumerate(result.items, start=first_rank):
        typer.echo(_render_smart(rank, score))


@app.command()
def history(
    username: Annotated[str, typer.Argument(help="Username to show history for.")],
    partner: Annotated[
        str | None,
        typer.Option("--partner", help="Second username; shows the pair's history instead."),
    ] = None,
    rating_type: Annotated[
        str,
        typer.Option("--rating-type", help="Rating type for single-player history."),
    ] = RatingType.GLOBAL.value,
    page: PageOption = 1,
    page_size: PageSizeOption = 20,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Print rating history, newest match first."""
    _check_paging(page, page_size)
    service = build_service(db_url, config)
    if partner is None:
        result = service.get_history_for_username(username, rating_type, page, page_size)
        subject = username
    else:
        result = service.get_pair_history_for_usernames(username, partner, page, page_size)
        subject = f"{username} & {partner}"

    if not result.items:
        typer.echo(f"No history found for {subject}.")
        return

    typer.echo(f"history for {subject} page={page} page_size={page_size} total={result.total}")
    for entry in result.items:
        typer.echo(_render_entry(entry))


if __name__ == "__main__":
    app()
