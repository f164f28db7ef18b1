"""
Tests for weather adjustments and adaptive correlation
Run with: pytest tests/test_conditions.py -v
"""

import pytest

from nflsim.core.errors import SimulationInputError
from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import TeamStats
from nflsim.services.conditions import (
    GameConditions,
    adaptive_correlation,
    weather_points_adjustment,
)

CONFIG = ModelConfig.gaussian_v3()


class TestGameConditions:
    """Validation of venue/weather inputs"""

    def test_defaults_are_neutral(self):
        assert GameConditions().is_neutral

    def test_bad_precipitation(self):
        with pytest.raises(SimulationInputError):
            GameConditions(precipitation="hail")

    def test_negative_wind(self):
        with pytest.raises(SimulationInputError):
            GameConditions(wind_mph=-3.0)


class TestWeatherAdjustment:
    """Total-points adjustment"""

    def test_none_is_zero(self):
        assert weather_points_adjustment(None, CONFIG) == 0.0

    def test_neutral_is_zero(self):
        assert weather_points_adjustment(GameConditions(), CONFIG) == 0.0

    def test_dome_bonus_ignores_weather(self):
        cond = GameConditions(dome=True, wind_mph=30.0, precipitation="snow")
        assert weather_points_adjustment(cond, CONFIG) == pytest.approx(0.5)

    def test_wind_above_threshold(self):
        cond = GameConditions(wind_mph=20.0)
        assert weather_points_adjustment(cond, CONFIG) == pytest.approx(-0.6)

    def test_cold_and_snow_stack(self):
        cond = GameConditions(temperature_f=15.0, precipitation="snow")
        assert weather_points_adjustment(cond, CONFIG) == pytest.approx(-4.0)

    @pytest.mark.parametrize("precip, expected", [
        ("none", 0.0),
        ("light_rain", -1.0),
        ("heavy_rain", -2.0),
        ("snow", -2.5),
    ])
    def test_precipitation(self, precip, expected):
        assert weather_points_adjustment(GameConditions(precipitation=precip), CONFIG) == expected


class TestAdaptiveCorrelation:
    """Home/away score correlation"""

    def _teams(self, home_pass=0.50, away_pass=0.50, xpl=0.09):
        home = TeamStats(team_name="H", ed_pass=home_pass, off_xpl=xpl)
        away = TeamStats(team_name="A", ed_pass=away_pass, off_xpl=xpl)
        return home, away

    def test_baseline_with_similar_styles(self):
        home, away = self._teams()
        # 0.22 + 0.08 for similar early-down pass rates
        assert adaptive_correlation(home, away, CONFIG) == pytest.approx(0.30)

    def test_close_spread_raises_rho(self):
        home, away = self._teams(home_pass=0.60, away_pass=0.50)
        assert adaptive_correlation(home, away, CONFIG, market_spread=-2.5) == pytest.approx(0.32)

    def test_big_spread_lowers_rho(self):
        home, away = self._teams(home_pass=0.60, away_pass=0.50)
        assert adaptive_correlation(home, away, CONFIG, market_spread=-14.0) == pytest.approx(0.12)

    def test_explosive_offences(self):
        home, away = self._teams(home_pass=0.60, away_pass=0.50, xpl=0.12)
        assert adaptive_correlation(home, away, CONFIG) == pytest.approx(0.27)

    def test_clamped_high(self):
        home, away = self._teams(xpl=0.12)
        cond = GameConditions(dome=True)
        rho = adaptive_correlation(home, away, CONFIG, market_spread=-1.0, conditions=cond)
        assert rho == pytest.approx(CONFIG.rho_max)

    def test_clamped_low(self):
        home, away = self._teams(home_pass=0.70, away_pass=0.40)
        cond = GameConditions(wind_mph=25.0, precipitation="snow")
        rho = adaptive_correlation(home, away, CONFIG, market_spread=-17.0, conditions=cond)
        assert rho == CONFIG.rho_min


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
