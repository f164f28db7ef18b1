"""
Team record normalizer.

Turns raw tabular rows (header -> string cell) into fully-populated
TeamStats.  This is the only module that knows about source header text;
everything downstream sees canonical metric names.

Rules:
  * Each canonical metric has an alias list.  The first alias present in
    the row with a non-empty cell wins.  Header comparison ignores case and
    surrounding/duplicate whitespace.
  * Rate metrics accept "43%" (-> 0.43) as well as 0.43.
  * Numbers may carry thousands separators or stray spaces.
  * A metric with no usable cell gets the league default and is recorded
    in TeamStats.defaulted.
"""

from __future__ import annotations

import io
import logging
import math
import os
import re
from typing import Any, Iterable, Iterator, Mapping

import pandas as pd
from rapidfuzz import fuzz, process

from nflsim.core.baseline import LeagueBaseline
from nflsim.core.errors import SimulationInputError, SourceDataError
from nflsim.core.sim_interface import METRIC_DEFAULTS, METRIC_NAMES, PERCENT_METRICS, TeamStats

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Header aliases
# ---------------------------------------------------------------------------

HEADER_ALIASES: dict[str, list[str]] = {
    # Offense
    "off_ppd": ["off_ppd", "Off PPD", "Off. PPD", "PPD Offense", "Off Points/Drive", "Off Pts/Drive"],
    "off_epa": [
        "off_epa", "Off EPA", "Off EPA/Play", "Off EPA per Play", "EPA/play Offense",
        "EPA per Play Off",
    ],
    "off_sr": [
        "off_sr", "Off SR", "Off Success Rate", "Off Success %", "Off Success%", "Off SR%",
        "Success Rate Off",
    ],
    "off_xpl": [
        "off_xpl", "Off Explosive %", "Off Xpl%", "Explosive Rate Off", "% Explosive Plays Off",
        "Off Explosive Rate",
    ],
    "off_rz": ["off_rz", "Off Red-Zone TD%", "Off RZ TD%", "Off RZ%", "Red Zone TD% Off"],
    "off_3out": [
        "off_3out", "Off 3-Out %", "Off Three-And-Out %", "Off 3&Out %", "3 and out % Off",
        "3-Out% Off",
    ],
    "off_penalties": [
        "off_penalties", "Off Penalties", "Off Pen Yds/G", "Off Pen Yds/GM", "Off Penalty Yds",
        "Off Penalties per Drive",
    ],
    "off_to_epa": ["off_to_epa", "Off TO EPA", "Turnover EPA Off", "TO EPA (Off)", "Off TO EPA per Drive"],
    "off_fp": [
        "off_fp", "Off FP", "Off Field Position", "Avg Start Ydline Off", "Starting FP Off",
        "Off Avg Starting FP",
    ],
    "off_dvoa": ["off_dvoa", "Off DVOA", "Off DVOA %", "Offense DVOA"],
    "off_drives": ["off_drives", "Off Drives/G", "Off Drives per G", "Off. Drives/G"],
    "off_plays": ["off_plays", "Off Plays/G", "Off Plays per G", "Off Plays/Drive"],
    "ed_pass": [
        "ed_pass", "ED Pass Rate", "Early Down Pass%", "Early-Down Pass %", "ED Pass%",
        "Neutral Early-Down Pass %",
    ],
    "no_huddle": ["no_huddle", "No-Huddle %", "No Huddle%", "NoHuddle%"],
    # Defense
    "def_ppd_allowed": ["def_ppd_allowed", "Def PPD Allowed", "Def PPD", "PPD Defense Allowed", "Points/Drive Allowed"],
    "def_epa_allowed": [
        "def_epa_allowed", "Def EPA", "Def EPA/Play Allowed", "EPA per Play Allowed", "EPA/play Def",
    ],
    "def_sr": [
        "def_sr", "Def SR", "Def Success Rate Allowed", "Def Success %", "Success Rate Allowed",
        "Def Success Rate",
    ],
    "def_xpl": ["def_xpl", "Def Explosive % Allowed", "Def Xpl%", "Explosive Allowed %", "Def Explosive Rate"],
    "def_rz": ["def_rz", "Def Red-Zone TD% Allowed", "Def RZ TD%", "Red Zone TD% Allowed", "Def Red Zone TD %"],
    "def_3out": ["def_3out", "Def 3-Out %", "Def Three-And-Out %", "Def 3&Out %", "3-Out% Def"],
    "def_penalties": [
        "def_penalties", "Def Penalties", "Def Pen Yds/G", "Def Pen Yds/GM", "Def Penalty Yds",
        "Def Penalties per Drive",
    ],
    "def_dvoa": ["def_dvoa", "Def DVOA", "Def DVOA %", "Defense DVOA"],
    "def_drives": ["def_drives", "Def Drives/G", "Def Drives per G", "Def. Drives/G"],
    "def_plays": ["def_plays", "Def Plays/G", "Def Plays per G", "Def Plays/Drive Allowed"],
}

TEAM_COLUMN_CANDIDATES = ("Team", "team", "TEAM", "Name", "name")

# Minimum rapidfuzz token_set_ratio accepted when resolving a team name
FUZZY_CUTOFF = 80


def _header_key(header: Any) -> str:
    return re.sub(r"\s+", " ", str(header or "")).strip().lower()


# ---------------------------------------------------------------------------
# Cell parsing
# ---------------------------------------------------------------------------


def parse_number(value: Any) -> float | None:
    """Parse a numeric cell; commas and spaces are stripped. None if unusable."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return number if math.isfinite(number) else None
    text = re.sub(r"[,\s]", "", str(value))
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_percent(value: Any) -> float | None:
    """Parse a rate cell. "43%" -> 0.43, "0.43" -> 0.43. None if unusable."""
    if value is None:
        return None
    if not isinstance(value, str):
        return parse_number(value)
    has_pct = "%" in value
    number = parse_number(value.replace("%", ""))
    if number is None:
        return None
    return number / 100.0 if has_pct else number


def find_team_column(headers: Iterable[str]) -> str:
    """Locate the team-identifier column.

    Exact match on Team/team/TEAM/Name/name first, then the first header
    containing "team" (any case).

    Raises:
        SourceDataError: If no header qualifies.
    """
    header_list = [str(h) for h in headers]
    stripped = {h.strip(): h for h in header_list}
    for candidate in TEAM_COLUMN_CANDIDATES:
        if candidate in stripped:
            return stripped[candidate]
    for header in header_list:
        if "team" in header.lower():
            return header
    raise SourceDataError(
        f"No team column found; expected one of {list(TEAM_COLUMN_CANDIDATES)} "
        f"or a header containing 'team'. Got headers: {header_list}"
    )


def normalize_row(row: Mapping[str, Any], team_column: str) -> TeamStats | None:
    """Build TeamStats from one raw row; returns None when the team cell is empty."""
    raw_name = row.get(team_column)
    team_name = "" if raw_name is None else str(raw_name).strip()
    if not team_name or team_name.lower() == "nan":
        return None

    lookup = {_header_key(header): cell for header, cell in row.items()}
    values: dict[str, float] = {}
    defaulted: list[str] = []
    for metric in METRIC_NAMES:
        parser = parse_percent if metric in PERCENT_METRICS else parse_number
        parsed = None
        for alias in HEADER_ALIASES.get(metric, [metric]):
            cell = lookup.get(_header_key(alias))
            if cell is None or (isinstance(cell, str) and not cell.strip()):
                continue
            parsed = parser(cell)
            break
        if parsed is None:
            values[metric] = METRIC_DEFAULTS[metric]
            defaulted.append(metric)
        else:
            values[metric] = parsed

    return TeamStats(team_name=team_name, defaulted=tuple(defaulted), **values)


# ---------------------------------------------------------------------------
# Team table
# ---------------------------------------------------------------------------


class TeamTable:
    """Team-name keyed collection of TeamStats built from one load event."""

    def __init__(self, teams: Iterable[TeamStats], source: str = ""):
        self._teams: dict[str, TeamStats] = {}
        self.source = source
        for team in teams:
            if team.team_name in self._teams:
                logger.warning("Duplicate team %r in %s; keeping the last row", team.team_name, source or "input")
            self._teams[team.team_name] = team
        if not self._teams:
            raise SourceDataError(f"No teams found in {source or 'input'}")

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], source: str = "") -> TeamTable:
        """Normalize raw rows (header -> cell) into a table."""
        rows = list(records)
        if not rows:
            raise SourceDataError(f"No rows found in {source or 'input'}")
        headers: list[str] = []
        for row in rows:
            for header in row:
                if header not in headers:
                    headers.append(header)
        team_column = find_team_column(headers)

        teams = []
        skipped = 0
        for row in rows:
            team = normalize_row(row, team_column)
            if team is None:
                skipped += 1
                continue
            if team.defaulted:
                logger.warning(
                    "%s: %d metric(s) defaulted: %s",
                    team.team_name, len(team.defaulted), ", ".join(team.defaulted),
                )
            teams.append(team)
        if skipped:
            logger.info("Skipped %d row(s) with an empty team name", skipped)
        return cls(teams, source=source)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, source: str = "") -> TeamTable:
        records = frame.to_dict(orient="records")
        return cls.from_records(records, source=source)

    # Mapping-style access

    def __len__(self) -> int:
        return len(self._teams)

    def __contains__(self, name: object) -> bool:
        return name in self._teams

    def __iter__(self) -> Iterator[str]:
        return iter(self._teams)

    def names(self) -> list[str]:
        return sorted(self._teams)

    def values(self) -> list[TeamStats]:
        return list(self._teams.values())

    def get(self, name: str) -> TeamStats:
        """Return a team by exact name.

        Raises:
            SimulationInputError: If the name is blank or not loaded.
        """
        if not name or not str(name).strip():
            raise SimulationInputError("Pick both teams: a team name is empty")
        try:
            return self._teams[str(name).strip()]
        except KeyError:
            raise SimulationInputError(
                f"Missing team data for {name!r}; {len(self._teams)} teams loaded"
            ) from None

    def resolve(self, name: str, score_cutoff: int = FUZZY_CUTOFF) -> str | None:
        """Match a free-text team name to a loaded team.

        Exact, then case-insensitive, then rapidfuzz token_set_ratio at
        ``score_cutoff``.  Returns None if nothing qualifies.
        """
        name = (name or "").strip()
        if not name:
            return None
        if name in self._teams:
            return name
        for team_name in self._teams:
            if team_name.lower() == name.lower():
                return team_name
        result = process.extractOne(
            name, list(self._teams), scorer=fuzz.token_set_ratio, score_cutoff=score_cutoff
        )
        if result:
            logger.debug("Fuzzy matched %r to %r (score %.1f)", name, result[0], result[1])
            return result[0]
        return None

    def data_health(self) -> dict[str, list[str]]:
        """Team -> metrics that fell back to the league default (only teams with any)."""
        return {
            name: list(team.defaulted)
            for name, team in sorted(self._teams.items())
            if team.defaulted
        }

    def baseline(self, sd_floor: float = 0.001) -> LeagueBaseline:
        """League baseline recomputed from every loaded team."""
        return LeagueBaseline.from_team_stats(self._teams.values(), sd_floor=sd_floor)

    def __repr__(self) -> str:
        return f"TeamTable(teams={len(self._teams)}, source={self.source!r})"


# ---------------------------------------------------------------------------
# CSV loading
# ---------------------------------------------------------------------------


def _read_text(source: Any) -> tuple[str, str]:
    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, encoding="utf-8-sig") as fh:
                return fh.read(), str(source)
        except OSError as exc:
            raise SourceDataError(f"Cannot read team stats file {source}: {exc}") from exc
    text = source.read()
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    return text.lstrip("\ufeff"), getattr(source, "name", "buffer")


def read_table_frame(source: Any) -> tuple[pd.DataFrame, str]:
    """Read a comma- or tab-delimited file into an all-string DataFrame."""
    text, label = _read_text(source)
    if not text.strip():
        raise SourceDataError(f"{label} is empty")
    first_line = text.splitlines()[0]
    delimiter = "\t" if "\t" in first_line and "," not in first_line else ","
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise SourceDataError(f"Cannot parse {label}: {exc}") from exc
    frame.columns = [str(c).strip() for c in frame.columns]
    return frame.apply(lambda col: col.str.strip()), label


def load_team_table(source: Any) -> TeamTable:
    """Load a team stats CSV (path or file-like) into a TeamTable.

    Raises:
        SourceDataError: Unreadable/unparseable file, no team column, or no teams.
    """
    frame, label = read_table_frame(source)
    table = TeamTable.from_frame(frame, source=label)
    logger.info("Loaded %d teams from %s", len(table), label)
    return table
