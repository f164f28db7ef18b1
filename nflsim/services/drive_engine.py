"""
Discrete per-drive scoring engine.

Every possession ends in one of four outcomes:

    three-and-out (0) | touchdown (7) | field goal (3) | empty sustained drive (0)

Two chained logistic links turn the matchup nets into probabilities::

    p3      = expit(a0 - a1*epa - a2*sr + a3*(opp_def_3out - lg_3out) - a4*rz)
    pTD|S   = expit(b0 + b1*epa + b2*sr + b3*rz + b4*ppd_resid)
    pTD     = (1 - p3) * pTD|S
    pFG     = (1 - p3) * (1 - pTD|S) * phi
    pEmpty  = 1 - (p3 + pTD + pFG)

Home-field advantage tilts the home side only: fewer three-and-outs, more
touchdowns.  Trials are vectorised: one uniform per drive per trial.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.special import expit

from nflsim.core.errors import NFLSimError
from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import (
    DriveProbabilities,
    DriveProjection,
    GamePace,
    GameProjection,
    MatchupNets,
    ScoringEngine,
    TeamStats,
)
from nflsim.services.conditions import GameConditions
from nflsim.services.net_features import build_matchup_nets
from nflsim.services.pace import compute_game_pace

logger = logging.getLogger(__name__)

TOUCHDOWN_POINTS = 7
FIELD_GOAL_POINTS = 3


def _clamp01(p: float) -> float:
    return float(min(1.0, max(0.0, p)))


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def drive_probabilities(defence: TeamStats, nets: MatchupNets, config: ModelConfig) -> DriveProbabilities:
    """Per-possession outcome probabilities for the offence behind ``nets``."""
    lg = config.logits
    opp_three_out = defence.def_3out - config.three_out_reference()

    p3 = _clamp01(expit(
        lg.a0 - lg.a1 * nets.epa_net - lg.a2 * nets.sr_net
        + lg.a3 * opp_three_out + lg.a4 * (-nets.rz_net)
    ))
    p_td_sustained = _clamp01(expit(
        lg.b0 + lg.b1 * nets.epa_net + lg.b2 * nets.sr_net
        + lg.b3 * nets.rz_net + lg.b4 * nets.ppd_resid_net
    ))
    sustained = 1.0 - p3
    p_td = sustained * p_td_sustained
    p_fg = sustained * (1.0 - p_td_sustained) * _clamp01(lg.phi)
    return _with_residual(p3, p_td, p_fg)


def _with_residual(p3: float, p_td: float, p_fg: float) -> DriveProbabilities:
    """Scale down if the scoring terms exceed 1; the empty outcome takes the rest."""
    total = p3 + p_td + p_fg
    if total > 1.0:
        p3, p_td, p_fg = p3 / total, p_td / total, p_fg / total
    p_empty = max(0.0, 1.0 - (p3 + p_td + p_fg))
    return DriveProbabilities(p_three_out=p3, p_touchdown=p_td, p_field_goal=p_fg, p_empty=p_empty)


def apply_home_tilt(probs: DriveProbabilities, hfa_points: float, config: ModelConfig) -> DriveProbabilities:
    """Home-field tilt: p3 *= 1 - k3*hfa, pTD *= 1 + kTD*hfa (hfa floored at 0)."""
    hfa = max(0.0, hfa_points)
    if hfa == 0.0:
        return probs
    lg = config.logits
    p3 = _clamp01(probs.p_three_out * (1.0 - lg.hfa_three_out_per_pt * hfa))
    p_td = _clamp01(probs.p_touchdown * (1.0 + lg.hfa_touchdown_per_pt * hfa))
    return _with_residual(p3, p_td, probs.p_field_goal)


def allocate_drives(pace: GamePace) -> tuple[int, int]:
    """Integer possessions: home = round(drives*share), away = round(drives - home)."""
    home = round_half_up(pace.game_drives * pace.home_share)
    away = round_half_up(pace.game_drives - home)
    return home, away


def sample_drive_points(probs: DriveProbabilities, drives: int, n_trials: int, rng: np.random.Generator) -> np.ndarray:
    """Total points per trial for ``drives`` possessions each."""
    if drives <= 0:
        return np.zeros(n_trials, dtype=np.int64)
    t3, t_td, t_fg = probs.thresholds()
    u = rng.random((n_trials, drives))
    points = np.where(
        u < t3, 0,
        np.where(u < t_td, TOUCHDOWN_POINTS, np.where(u < t_fg, FIELD_GOAL_POINTS, 0)),
    )
    return points.sum(axis=1).astype(np.int64)


class DriveScoringEngine(ScoringEngine):
    """Per-possession outcome model driven by the logistic links above."""

    engine_name = "drive"

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
        home_drives, away_drives = allocate_drives(pace)

        home_probs = apply_home_tilt(drive_probabilities(away, home_nets, config), hfa_points, config)
        away_probs = drive_probabilities(home, away_nets, config)

        if conditions is not None and not conditions.is_neutral:
            logger.debug("Drive engine ignores weather conditions: %s", conditions)

        logger.debug(
            "%s %d drives %s | %s %d drives %s",
            home.team_name, home_drives, home_probs, away.team_name, away_drives, away_probs,
        )
        return GameProjection(
            home=DriveProjection(probabilities=home_probs, drives=home_drives),
            away=DriveProjection(probabilities=away_probs, drives=away_drives),
            pace=pace,
            home_nets=home_nets,
            away_nets=away_nets,
            rho=0.0,
            engine_name=self.engine_name,
        )

    def sample(
        self,
        projection: GameProjection,
        n_trials: int,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, np.ndarray]:
        home, away = projection.home, projection.away
        if not isinstance(home, DriveProjection) or not isinstance(away, DriveProjection):
            raise NFLSimError(f"{self.engine_name} engine needs drive projections")
        home_scores = sample_drive_points(home.probabilities, home.drives, n_trials, rng)
        away_scores = sample_drive_points(away.probabilities, away.drives, n_trials, rng)
        return home_scores, away_scores
