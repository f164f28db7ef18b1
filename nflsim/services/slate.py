"""
Batch slate input/output.

A slate file lists one game per row.  Headers are normalised to lowercase
alphanumerics, so "Home Team", "home_team" and "HOMETEAM" are the same
column.  Recognised columns:

    home | hometeam          away | awayteam
    spread | line            total | ou | overunder
    hometotal | homett       awaytotal | awaytt
    dome (y / yes / 1 / true)

Missing lines are left as None (that market is skipped); a line that is
present but not a number is a data error.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import pandas as pd

from nflsim.core.errors import SourceDataError
from nflsim.schemas import GameConditionsModel
from nflsim.services.aggregation import SimulationSummary
from nflsim.services.team_stats import TeamTable, parse_number, read_table_frame

logger = logging.getLogger(__name__)

_COLUMN_ALIASES = {
    "home": ("home", "hometeam"),
    "away": ("away", "awayteam"),
    "spread": ("spread", "line"),
    "total": ("total", "ou", "overunder"),
    "home_total": ("hometotal", "homett"),
    "away_total": ("awaytotal", "awaytt"),
    "dome": ("dome",),
}

_TRUTHY = {"y", "yes", "1", "true"}


@dataclass(slots=True, frozen=True)
class SlateGame:
    """One scheduled game with its market lines."""

    home: str
    away: str
    market_spread: float | None = None
    market_total: float | None = None
    home_team_total: float | None = None
    away_team_total: float | None = None
    dome: bool = False

    def request_updates(self, seed: int | None = None) -> dict[str, Any]:
        """Fields to lay over a base SimulationRequest for this game."""
        updates: dict[str, Any] = {
            "market_spread": self.market_spread,
            "market_total": self.market_total,
            "home_team_total": self.home_team_total,
            "away_team_total": self.away_team_total,
            "seed": seed,
        }
        if self.dome:
            updates["conditions"] = GameConditionsModel(dome=True)
        return updates


def _normalize_header(header: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def _line(row: Mapping[str, str], columns: dict[str, str], key: str, row_number: int) -> float | None:
    column = columns.get(key)
    if column is None:
        return None
    cell = (row.get(column) or "").strip()
    if not cell:
        return None
    value = parse_number(cell)
    if value is None:
        raise SourceDataError(f"Row {row_number}: {column}={cell!r} is not a number")
    return value


def load_games(source: str | os.PathLike | Any) -> list[SlateGame]:
    """Read a slate CSV (path or file-like).

    Raises:
        SourceDataError: unreadable file, no home/away columns, bad line value.
    """
    frame, label = read_table_frame(source)
    by_key = {_normalize_header(c): c for c in frame.columns}
    columns: dict[str, str] = {}
    for field_name, aliases in _COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in by_key:
                columns[field_name] = by_key[alias]
                break
    if "home" not in columns or "away" not in columns:
        raise SourceDataError(
            f"{label}: slate needs home and away columns, got {list(frame.columns)}"
        )

    games = []
    for i, row in enumerate(frame.to_dict(orient="records"), start=2):
        home = (row.get(columns["home"]) or "").strip()
        away = (row.get(columns["away"]) or "").strip()
        if not home or not away:
            continue
        dome_cell = (row.get(columns["dome"]) or "") if "dome" in columns else ""
        games.append(SlateGame(
            home=home,
            away=away,
            market_spread=_line(row, columns, "spread", i),
            market_total=_line(row, columns, "total", i),
            home_team_total=_line(row, columns, "home_total", i),
            away_team_total=_line(row, columns, "away_total", i),
            dome=dome_cell.strip().lower() in _TRUTHY,
        ))
    logger.info("Loaded %d game(s) from %s", len(games), label)
    return games


def resolve_games(games: Iterable[SlateGame], table: TeamTable) -> list[SlateGame]:
    """Map slate team names onto table names; unresolved games are logged and skipped."""
    resolved = []
    for game in games:
        home = table.resolve(game.home)
        away = table.resolve(game.away)
        if home is None or away is None:
            logger.warning("Could not find teams: %s vs %s; skipping", game.home, game.away)
            continue
        resolved.append(SlateGame(
            home=home,
            away=away,
            market_spread=game.market_spread,
            market_total=game.market_total,
            home_team_total=game.home_team_total,
            away_team_total=game.away_team_total,
            dome=game.dome,
        ))
    return resolved


def slate_to_frame(summaries: Iterable[SimulationSummary]) -> pd.DataFrame:
    """One row per simulated game."""
    return pd.DataFrame([s.to_row() for s in summaries])


def write_results(summaries: Iterable[SimulationSummary], path: str | os.PathLike) -> pd.DataFrame:
    frame = slate_to_frame(summaries)
    frame.to_csv(path, index=False)
    logger.info("Wrote %d result row(s) to %s", len(frame), path)
    return frame
