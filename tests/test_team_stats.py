"""
Tests for the team record normalizer and CSV loading
Run with: pytest tests/test_team_stats.py -v
"""

import io

import pytest

from nflsim.core.errors import SimulationInputError, SourceDataError
from nflsim.core.sim_interface import METRIC_DEFAULTS
from nflsim.services.team_stats import (
    TeamTable,
    find_team_column,
    load_team_table,
    normalize_row,
    parse_number,
    parse_percent,
)

TEAMS_CSV = (
    "Team,Off EPA/Play,Off Success Rate,Def EPA/Play Allowed,Off Drives/G,Def Drives/G\n"
    "Kansas City Chiefs,0.11,47%,-0.02,11.8,11.5\n"
    "Buffalo Bills,0.09,46.5%,0.01,11.6,11.9\n"
    ",0.05,40%,0.03,12,12\n"
    "San Francisco 49ers,0.08,45%,-0.04,11.4,11.7\n"
)


class TestCellParsing:
    """Numeric and percent cells"""

    @pytest.mark.parametrize("cell, expected", [
        ("2.31", 2.31),
        (" 1,234.5 ", 1234.5),
        ("-0.04", -0.04),
        (7, 7.0),
        ("", None),
        ("n/a", None),
        (None, None),
        (float("nan"), None),
    ])
    def test_parse_number(self, cell, expected):
        assert parse_number(cell) == expected

    def test_percent_sign_divides(self):
        assert parse_percent("43%") == pytest.approx(0.43)
        assert parse_percent("46.5 %") == pytest.approx(0.465)

    def test_plain_rate_kept(self):
        assert parse_percent("0.43") == pytest.approx(0.43)
        assert parse_percent(0.43) == pytest.approx(0.43)

    def test_bad_percent(self):
        assert parse_percent("%") is None


class TestTeamColumn:
    """Team-identifier column detection"""

    def test_exact_candidates(self):
        assert find_team_column(["Off EPA", "Name"]) == "Name"
        assert find_team_column(["Team", "Name"]) == "Team"

    def test_contains_team(self):
        assert find_team_column(["Rank", "NFL Team", "Off EPA"]) == "NFL Team"

    def test_missing_team_column(self):
        with pytest.raises(SourceDataError):
            find_team_column(["Rank", "Off EPA"])


class TestNormalizeRow:
    """Alias lookup and default substitution"""

    def test_aliases_resolved(self):
        row = {"Team": "KC", "Off EPA/Play": "0.11", "Off Success %": "47%", "Def 3-Out %": "26%"}
        team = normalize_row(row, "Team")
        assert team.team_name == "KC"
        assert team.off_epa == pytest.approx(0.11)
        assert team.off_sr == pytest.approx(0.47)
        assert team.def_3out == pytest.approx(0.26)

    def test_header_case_and_spacing_ignored(self):
        team = normalize_row({"Team": "KC", "  off   epa/PLAY ": "0.2"}, "Team")
        assert team.off_epa == pytest.approx(0.2)

    def test_missing_metrics_defaulted(self):
        team = normalize_row({"Team": "KC", "off_epa": "0.11"}, "Team")
        assert team.off_ppd == METRIC_DEFAULTS["off_ppd"]
        assert "off_ppd" in team.defaulted
        assert "off_epa" not in team.defaulted

    def test_unparseable_cell_defaulted(self):
        team = normalize_row({"Team": "KC", "Off PPD": "--"}, "Team")
        assert team.off_ppd == METRIC_DEFAULTS["off_ppd"]
        assert "off_ppd" in team.defaulted

    def test_empty_name_skipped(self):
        assert normalize_row({"Team": "  ", "off_epa": "0.1"}, "Team") is None


class TestTeamTable:
    """Team table built from a CSV"""

    def _table(self):
        return load_team_table(io.StringIO(TEAMS_CSV))

    def test_rows_with_empty_name_skipped(self):
        table = self._table()
        assert len(table) == 3
        assert table.names() == ["Buffalo Bills", "Kansas City Chiefs", "San Francisco 49ers"]

    def test_values_parsed(self):
        kc = self._table().get("Kansas City Chiefs")
        assert kc.off_epa == pytest.approx(0.11)
        assert kc.off_sr == pytest.approx(0.47)
        assert kc.def_epa_allowed == pytest.approx(-0.02)
        assert kc.off_drives == pytest.approx(11.8)

    def test_tab_delimited(self):
        tsv = "Team\tOff EPA\nDetroit Lions\t0.12\n"
        table = load_team_table(io.StringIO(tsv))
        assert table.get("Detroit Lions").off_epa == pytest.approx(0.12)

    def test_byte_order_mark_stripped(self):
        table = load_team_table(io.StringIO("\ufeffTeam,Off EPA\nDetroit Lions,0.12\n"))
        assert "Detroit Lions" in table

    def test_path_input(self, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text(TEAMS_CSV, encoding="utf-8")
        assert len(load_team_table(path)) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceDataError):
            load_team_table(tmp_path / "nope.csv")

    def test_no_team_column(self):
        with pytest.raises(SourceDataError):
            load_team_table(io.StringIO("Rank,Off EPA\n1,0.1\n"))

    def test_no_teams(self):
        with pytest.raises(SourceDataError):
            load_team_table(io.StringIO("Team,Off EPA\n,0.1\n"))

    def test_empty_file(self):
        with pytest.raises(SourceDataError):
            load_team_table(io.StringIO(""))

    def test_get_missing_team(self):
        with pytest.raises(SimulationInputError):
            self._table().get("Dallas Cowboys")

    def test_get_blank_name(self):
        with pytest.raises(SimulationInputError):
            self._table().get("")

    def test_data_health(self):
        health = self._table().data_health()
        assert "off_ppd" in health["Kansas City Chiefs"]
        assert "off_epa" not in health["Kansas City Chiefs"]

    def test_dynamic_baseline(self):
        baseline = self._table().baseline()
        assert baseline.version == "dynamic-3teams"
        mean, _ = baseline.get_baseline("epa")
        # three offences and three defences pooled
        assert mean == pytest.approx((0.11 + 0.09 + 0.08 - 0.02 + 0.01 - 0.04) / 6)


class TestResolve:
    """Exact, case-insensitive and fuzzy name matching"""

    def _table(self):
        return load_team_table(io.StringIO(TEAMS_CSV))

    def test_exact(self):
        assert self._table().resolve("Buffalo Bills") == "Buffalo Bills"

    def test_case_insensitive(self):
        assert self._table().resolve("buffalo bills") == "Buffalo Bills"

    def test_fuzzy_token_subset(self):
        assert self._table().resolve("Kansas City") == "Kansas City Chiefs"

    def test_no_match(self):
        assert self._table().resolve("Dallas Cowboys") is None

    def test_blank(self):
        assert self._table().resolve("  ") is None


class TestFromRecords:
    """Tables built directly from dict rows"""

    def test_duplicate_keeps_last(self):
        table = TeamTable.from_records([
            {"Team": "KC", "off_epa": "0.1"},
            {"Team": "KC", "off_epa": "0.2"},
        ])
        assert len(table) == 1
        assert table.get("KC").off_epa == pytest.approx(0.2)

    def test_no_rows(self):
        with pytest.raises(SourceDataError):
            TeamTable.from_records([])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
