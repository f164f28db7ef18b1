"""
Game-day conditions: weather scoring adjustment and adaptive score correlation.

Both functions are pure.  Neutral conditions (outdoors, calm, mild, dry)
contribute zero points; the correlation starts from the configured baseline
and is nudged by market spread, stylistic similarity and weather.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from nflsim.core.errors import SimulationInputError
from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import TeamStats

logger = logging.getLogger(__name__)

PRECIPITATION_TYPES = ("none", "light_rain", "heavy_rain", "snow")


@dataclass(slots=True, frozen=True)
class GameConditions:
    """Venue and weather for one game.

    Attributes:
        dome: Indoor game; weather terms are ignored.
        wind_mph: Sustained wind speed.
        temperature_f: Kick-off temperature in Fahrenheit.
        precipitation: One of ``none``, ``light_rain``, ``heavy_rain``, ``snow``.
    """

    dome: bool = False
    wind_mph: float = 0.0
    temperature_f: float = 70.0
    precipitation: str = "none"

    def __post_init__(self) -> None:
        if self.precipitation not in PRECIPITATION_TYPES:
            raise SimulationInputError(
                f"precipitation must be one of {list(PRECIPITATION_TYPES)}, got {self.precipitation!r}"
            )
        if self.wind_mph < 0:
            raise SimulationInputError(f"wind_mph must be >= 0, got {self.wind_mph!r}")

    @property
    def is_neutral(self) -> bool:
        return (
            not self.dome
            and self.wind_mph <= 10.0
            and self.temperature_f >= 25.0
            and self.precipitation == "none"
        )


def weather_points_adjustment(conditions: GameConditions | None, config: ModelConfig) -> float:
    """Total-points adjustment for the game (split evenly between teams)."""
    if conditions is None:
        return 0.0
    w = config.weather
    if conditions.dome:
        return w.dome_bonus

    adj = 0.0
    if conditions.wind_mph > w.wind_threshold_mph:
        adj += (conditions.wind_mph - w.wind_threshold_mph) * w.wind_per_mph
    if conditions.temperature_f < w.cold_threshold_f:
        adj += w.cold_penalty
    adj += w.precipitation.get(conditions.precipitation, 0.0)
    return adj


def adaptive_correlation(
    home: TeamStats,
    away: TeamStats,
    config: ModelConfig,
    *,
    market_spread: float | None = None,
    conditions: GameConditions | None = None,
) -> float:
    """Home/away score correlation for the correlated Gaussian sampler.

    Close games, similar play-calling, explosive offences and domes push the
    two scores together; big spreads, wind and precipitation pull them apart.
    """
    rho = config.rho_baseline

    if market_spread is not None:
        abs_spread = abs(market_spread)
        if abs_spread <= 3:
            rho += 0.10
        elif abs_spread <= 7:
            rho += 0.05
        elif abs_spread >= 14:
            rho -= 0.10

    pass_rate_diff = abs(home.ed_pass - away.ed_pass)
    if pass_rate_diff < 0.05:
        rho += 0.08
    elif pass_rate_diff > 0.15:
        rho -= 0.05

    if home.off_xpl + away.off_xpl > 0.19:
        rho += 0.05

    if conditions is not None:
        if conditions.dome:
            rho += 0.05
        if conditions.wind_mph > 15:
            rho -= 0.15
        elif conditions.wind_mph > 10:
            rho -= 0.08
        if conditions.precipitation in ("heavy_rain", "snow"):
            rho -= 0.10
        elif conditions.precipitation == "light_rain":
            rho -= 0.05

    clamped = float(np.clip(rho, config.rho_min, config.rho_max))
    logger.debug("Adaptive rho %.3f (raw %.3f)", clamped, rho)
    return clamped
