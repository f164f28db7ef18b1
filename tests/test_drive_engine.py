"""
Tests for the discrete per-drive scoring engine
Run with: pytest tests/test_drive_engine.py -v
"""

import numpy as np
import pytest
from scipy.special import expit

from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import DriveProbabilities, GamePace, MatchupNets, TeamStats
from nflsim.services.conditions import GameConditions
from nflsim.services.drive_engine import (
    DriveScoringEngine,
    allocate_drives,
    apply_home_tilt,
    drive_probabilities,
    round_half_up,
    sample_drive_points,
)

CONFIG = ModelConfig.drive_w8()


def _avg(name="Avg"):
    return TeamStats(team_name=name)


class TestDriveProbabilities:
    """Logistic outcome links"""

    def test_league_average_anchors(self):
        probs = drive_probabilities(_avg(), MatchupNets(), CONFIG)
        p3 = expit(-1.31)
        p_td_sustained = expit(-0.76)
        assert probs.p_three_out == pytest.approx(p3)
        assert probs.p_touchdown == pytest.approx((1 - p3) * p_td_sustained)
        assert probs.p_field_goal == pytest.approx((1 - p3) * (1 - p_td_sustained) * 0.32)

    def test_sums_to_one(self):
        probs = drive_probabilities(_avg(), MatchupNets(epa_net=0.8, sr_net=-0.3), CONFIG)
        total = probs.p_three_out + probs.p_touchdown + probs.p_field_goal + probs.p_empty
        assert total == pytest.approx(1.0)

    @pytest.mark.parametrize("value", [-50.0, -3.5, 3.5, 50.0])
    def test_extreme_nets_stay_valid(self, value):
        nets = MatchupNets(
            epa_net=value, sr_net=value, ppd_net=value, ppd_resid_net=value,
            xpl_net=value, rz_net=value, three_out_net=value,
        )
        defence = TeamStats(team_name="D", def_3out=0.9 if value < 0 else 0.0)
        probs = drive_probabilities(defence, nets, CONFIG)
        scoring = probs.p_three_out + probs.p_touchdown + probs.p_field_goal
        assert scoring <= 1.0 + 1e-12
        assert probs.p_empty >= 0.0
        for p in (probs.p_three_out, probs.p_touchdown, probs.p_field_goal):
            assert 0.0 <= p <= 1.0

    def test_better_offence_fewer_three_outs(self):
        good = drive_probabilities(_avg(), MatchupNets(epa_net=1.0, sr_net=1.0), CONFIG)
        avg = drive_probabilities(_avg(), MatchupNets(), CONFIG)
        assert good.p_three_out < avg.p_three_out
        assert good.p_touchdown > avg.p_touchdown


class TestHomeTilt:
    """Home-field tilt on the home side's outcomes"""

    def test_tilt_direction(self):
        base = drive_probabilities(_avg(), MatchupNets(), CONFIG)
        tilted = apply_home_tilt(base, 2.0, CONFIG)
        assert tilted.p_three_out == pytest.approx(base.p_three_out * 0.98)
        assert tilted.p_touchdown == pytest.approx(base.p_touchdown * 1.04)
        assert tilted.p_empty >= 0.0

    def test_no_tilt_without_hfa(self):
        base = drive_probabilities(_avg(), MatchupNets(), CONFIG)
        assert apply_home_tilt(base, 0.0, CONFIG) is base
        assert apply_home_tilt(base, -3.0, CONFIG) is base


class TestDriveAllocation:
    """Integer possessions"""

    @pytest.mark.parametrize("x, expected", [(2.5, 3), (3.5, 4), (11.49, 11), (-0.5, 0)])
    def test_round_half_up(self, x, expected):
        assert round_half_up(x) == expected

    def test_allocate_even_split(self):
        assert allocate_drives(GamePace(game_drives=24.0, home_share=0.5)) == (12, 12)

    def test_allocate_uneven_split(self):
        home, away = allocate_drives(GamePace(game_drives=23.0, home_share=0.6))
        assert (home, away) == (14, 9)


class TestSampling:
    """Per-drive Monte Carlo"""

    def test_all_touchdowns(self):
        probs = DriveProbabilities(p_three_out=0.0, p_touchdown=1.0, p_field_goal=0.0, p_empty=0.0)
        points = sample_drive_points(probs, 11, 100, np.random.default_rng(42))
        assert np.all(points == 77)

    def test_zero_drives(self):
        probs = DriveProbabilities(p_three_out=0.2, p_touchdown=0.3, p_field_goal=0.2, p_empty=0.3)
        points = sample_drive_points(probs, 0, 50, np.random.default_rng(42))
        assert points.shape == (50,)
        assert not points.any()

    def test_scores_are_non_negative_integers(self):
        engine = DriveScoringEngine()
        proj = engine.project_game(_avg("H"), _avg("A"), config=CONFIG, hfa_points=1.5)
        home, away = engine.sample(proj, 10_000, np.random.default_rng(42))
        for scores in (home, away):
            assert scores.dtype == np.int64
            assert scores.min() >= 0
            assert scores.max() <= 7 * max(proj.home.drives, proj.away.drives)

    def test_sample_mean_tracks_projection(self):
        engine = DriveScoringEngine()
        proj = engine.project_game(_avg("H"), _avg("A"), config=CONFIG)
        home, away = engine.sample(proj, 10_000, np.random.default_rng(42))
        assert abs(home.mean() - proj.home.expected_points) < 0.5
        assert abs(away.mean() - proj.away.expected_points) < 0.5


class TestDriveEngine:
    """Engine wiring"""

    def test_projection_uses_integer_drives(self):
        proj = DriveScoringEngine().project_game(_avg("H"), _avg("A"), config=CONFIG)
        assert isinstance(proj.home.drives, int)
        assert proj.home.drives + proj.away.drives in (24, 25)
        assert proj.rho == 0.0
        assert proj.engine_name == "drive"

    def test_weather_ignored(self):
        engine = DriveScoringEngine()
        calm = engine.project_game(_avg("H"), _avg("A"), config=CONFIG)
        storm = engine.project_game(
            _avg("H"), _avg("A"), config=CONFIG,
            conditions=GameConditions(wind_mph=30.0, precipitation="heavy_rain"),
        )
        assert storm.home.expected_points == calm.home.expected_points

    def test_hfa_helps_home(self):
        engine = DriveScoringEngine()
        neutral = engine.project_game(_avg("H"), _avg("A"), config=CONFIG)
        home_field = engine.project_game(_avg("H"), _avg("A"), config=CONFIG, hfa_points=3.0)
        assert home_field.home.expected_points > neutral.home.expected_points
        assert home_field.away.expected_points == neutral.away.expected_points


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
