"""
Tests for batch slate loading and result export
Run with: pytest tests/test_slate.py -v
"""

import io

import pandas as pd
import pytest

from nflsim.core.errors import SourceDataError
from nflsim.services.aggregation import summarize
from nflsim.services.slate import SlateGame, load_games, resolve_games, write_results
from nflsim.services.team_stats import load_team_table

TEAMS_CSV = (
    "Team,Off EPA\n"
    "Kansas City Chiefs,0.11\n"
    "Buffalo Bills,0.09\n"
    "Detroit Lions,0.12\n"
)


class TestLoadGames:
    """Slate CSV parsing"""

    def test_header_variants(self):
        text = (
            "Home Team,AWAY_TEAM,Line,O/U,Home TT,awaytt,Dome\n"
            "Kansas City,Buffalo,-2.5,47.5,25,22.5,y\n"
            "Detroit,Kansas City,,,,,\n"
        )
        games = load_games(io.StringIO(text))
        assert len(games) == 2
        first, second = games
        assert first == SlateGame(
            home="Kansas City", away="Buffalo", market_spread=-2.5, market_total=47.5,
            home_team_total=25.0, away_team_total=22.5, dome=True,
        )
        assert second.market_spread is None
        assert second.market_total is None
        assert second.dome is False

    def test_rows_missing_a_team_skipped(self):
        games = load_games(io.StringIO("home,away\nKansas City,\nDetroit,Buffalo\n"))
        assert [(g.home, g.away) for g in games] == [("Detroit", "Buffalo")]

    def test_missing_columns(self):
        with pytest.raises(SourceDataError):
            load_games(io.StringIO("team,opponent\nKC,BUF\n"))

    def test_bad_line_value(self):
        with pytest.raises(SourceDataError) as exc_info:
            load_games(io.StringIO("home,away,total\nKC,BUF,high\n"))
        assert "Row 2" in str(exc_info.value)

    def test_request_updates(self):
        updates = SlateGame(home="A", away="B", market_total=44.0).request_updates(seed=9)
        assert updates["market_total"] == 44.0
        assert updates["seed"] == 9
        assert "conditions" not in updates
        dome = SlateGame(home="A", away="B", dome=True).request_updates()
        assert dome["conditions"].dome is True


class TestResolveGames:
    """Team name matching against the table"""

    def test_fuzzy_resolution_and_skip(self):
        table = load_team_table(io.StringIO(TEAMS_CSV))
        games = [
            SlateGame(home="Kansas City", away="buffalo bills", market_total=47.5),
            SlateGame(home="Detroit", away="Dallas Cowboys"),
        ]
        resolved = resolve_games(games, table)
        assert len(resolved) == 1
        assert resolved[0].home == "Kansas City Chiefs"
        assert resolved[0].away == "Buffalo Bills"
        assert resolved[0].market_total == 47.5


class TestWriteResults:
    """CSV export"""

    def test_round_trip_columns(self, tmp_path):
        summary = summarize(
            [24, 17, 31], [20, 20, 10], home_team="KC", away_team="BUF", market_total=44.5,
        )
        path = tmp_path / "results.csv"
        frame = write_results([summary], path)
        assert list(frame["home"]) == ["KC"]
        loaded = pd.read_csv(path)
        assert loaded.loc[0, "away"] == "BUF"
        assert loaded.loc[0, "market_total"] == 44.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
