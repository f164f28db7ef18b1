"""
Continuous (Gaussian) scoring engine.

Each team's score is Normal(expected_points, sd), rounded and floored at 0.

Expected points
---------------
A weighted sum of the matchup nets (EPA-dominant) plus small priors from
DVOA, turnover EPA, field position and penalties gives a z-like "net
advantage".  That maps to points per drive::

    ppd = league_ppd + net_advantage * league_ppd_sd

The home side adds ``hfa / max(1, drives)`` to its ppd so the expected
margin moves by exactly ``hfa`` points (unless the ppd clamp binds).

Variance
--------
Per-team SD starts from a single-team base (9 points) and is inflated by an
adverse three-and-out net and deflated by a favourable success-rate net.

Sampling
--------
Box-Muller on four uniforms per trial: two for home, two for away.  With a
non-zero rho the away normal is mixed with the home normal.

Usage::

    engine = GaussianScoringEngine()
    projection = engine.project_game(home, away, config=ModelConfig.gaussian_v3(), hfa_points=1.5)
    home_scores, away_scores = engine.sample(projection, 10_000, np.random.default_rng(42))
"""

from __future__ import annotations

import logging
import math

import numpy as np

from nflsim.core.errors import NFLSimError
from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import (
    GamePace,
    GameProjection,
    GaussianProjection,
    MatchupNets,
    ScoringEngine,
    TeamStats,
)
from nflsim.services.conditions import GameConditions, adaptive_correlation, weather_points_adjustment
from nflsim.services.net_features import build_matchup_nets
from nflsim.services.pace import compute_game_pace

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Projection math
# ---------------------------------------------------------------------------


def net_advantage(team: TeamStats, opponent: TeamStats, nets: MatchupNets, config: ModelConfig) -> float:
    """Efficiency nets plus prior adjustments, on the z scale."""
    w = config.weights
    eff = (
        nets.ppd_resid_net * w.ppd_resid
        + nets.epa_net * w.epa
        + nets.sr_net * w.sr
        + nets.xpl_net * w.xpl
        + nets.rz_net * w.rz
        + nets.three_out_net * w.three_out
    )
    dvoa = (team.off_dvoa / 100.0) * w.dvoa_off - (opponent.def_dvoa / 100.0) * w.dvoa_def
    turnover = team.off_to_epa * w.turnover_epa / config.league_drives_per_game
    field_pos = (team.off_fp - config.league_field_position) / 10.0 * w.field_position
    penalties = -nets.z_pen_off * w.penalties_off + nets.z_pen_def * w.penalties_def
    return eff + dvoa + turnover + field_pos + penalties


def team_sd(nets: MatchupNets, config: ModelConfig) -> float:
    """Single-team scoring SD, clamped to [sd_min, sd_max]."""
    inflate = 1.0 + config.sd_three_out_inflation * max(0.0, -nets.three_out_net)
    deflate = max(config.sd_deflation_floor, 1.0 - config.sd_sr_deflation * max(0.0, nets.sr_net))
    sd = config.base_team_sd * inflate * deflate
    return float(np.clip(sd, config.sd_min, config.sd_max))


def project_team(
    team: TeamStats,
    opponent: TeamStats,
    nets: MatchupNets,
    pace: GamePace,
    config: ModelConfig,
    *,
    is_home: bool,
    hfa_points: float = 0.0,
    points_adjustment: float = 0.0,
) -> GaussianProjection:
    """Expected points and SD for ``team`` attacking ``opponent``.

    ``points_adjustment`` is added after the ppd clamp (weather share).
    """
    adv = net_advantage(team, opponent, nets, config)
    drives = pace.home_drives if is_home else pace.away_drives

    ppd_mean, ppd_sd = config.baseline.get_baseline("ppd")
    ppd = ppd_mean + adv * ppd_sd
    if is_home and hfa_points:
        ppd += hfa_points / max(1.0, drives)
    ppd = float(np.clip(ppd, config.ppd_min, config.ppd_max))

    expected = max(0.0, ppd * drives + points_adjustment)
    return GaussianProjection(
        expected_points=expected,
        sd=team_sd(nets, config),
        drives=drives,
        ppd=ppd,
        net_advantage=adv,
    )


def box_muller(rng: np.random.Generator, n: int) -> np.ndarray:
    """n standard normals from two uniform draws each, u1 in (0, 1]."""
    u1 = 1.0 - rng.random(n)
    u2 = rng.random(n)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * math.pi * u2)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class GaussianScoringEngine(ScoringEngine):
    """Normal score model; independent draws unless ``correlated`` is set."""

    engine_name = "gaussian"

    def __init__(self, correlated: bool = False):
        self.correlated = correlated

    def project_game(
        self,
        home: TeamStats,
        away: TeamStats,
        *,
        config: ModelConfig,
        hfa_points: float = 0.0,
        conditions: GameConditions | None = None,
        market_spread: float | None = None,
    ) -> GameProjection:
        home_nets = build_matchup_nets(
            home, away, config.baseline,
            z_clip=config.z_clip, resid_c1=config.resid_c1, resid_c2=config.resid_c2,
        )
        away_nets = build_matchup_nets(
            away, home, config.baseline,
            z_clip=config.z_clip, resid_c1=config.resid_c1, resid_c2=config.resid_c2,
        )
        pace = compute_game_pace(home, away, home_nets, config)

        weather = weather_points_adjustment(conditions, config)
        home_proj = project_team(
            home, away, home_nets, pace, config,
            is_home=True, hfa_points=hfa_points, points_adjustment=weather / 2.0,
        )
        away_proj = project_team(
            away, home, away_nets, pace, config,
            is_home=False, points_adjustment=weather / 2.0,
        )

        rho = 0.0
        if self.correlated:
            rho = adaptive_correlation(
                home, away, config, market_spread=market_spread, conditions=conditions,
            )

        logger.debug(
            "%s %.1f (sd %.1f) vs %s %.1f (sd %.1f), drives %.1f share %.3f",
            home.team_name, home_proj.expected_points, home_proj.sd,
            away.team_name, away_proj.expected_points, away_proj.sd,
            pace.game_drives, pace.home_share,
        )
        return GameProjection(
            home=home_proj,
            away=away_proj,
            pace=pace,
            home_nets=home_nets,
            away_nets=away_nets,
            rho=rho,
            engine_name=self.engine_name,
            diagnostics={"weather_adjustment": weather},
        )

    def sample(
        self,
        projection: GameProjection,
        n_trials: int,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, np.ndarray]:
        home, away = projection.home, projection.away
        if not isinstance(home, GaussianProjection) or not isinstance(away, GaussianProjection):
            raise NFLSimError(f"{self.engine_name} engine needs Gaussian projections")

        z_home = box_muller(rng, n_trials)
        z_away = box_muller(rng, n_trials)
        rho = projection.rho
        if rho:
            z_away = rho * z_home + math.sqrt(1.0 - rho * rho) * z_away

        home_raw = home.expected_points + z_home * home.sd
        away_raw = away.expected_points + z_away * away.sd
        if not (np.all(np.isfinite(home_raw)) and np.all(np.isfinite(away_raw))):
            raise NFLSimError("Non-finite score draw; check projection inputs")

        home_scores = np.maximum(0, np.rint(home_raw)).astype(np.int64)
        away_scores = np.maximum(0, np.rint(away_raw)).astype(np.int64)
        return home_scores, away_scores
