"""
Pace / drive allocator.

Game drives are the SUM of two independently averaged per-team estimates:
(home offence + away defence)/2 for the home side plus
(away offence + home defence)/2 for the away side.  A single average of the
four numbers would undercount by half.
"""

from __future__ import annotations

import logging

import numpy as np

from nflsim.core.model_config import ModelConfig
from nflsim.core.sim_interface import GamePace, MatchupNets, TeamStats

logger = logging.getLogger(__name__)


def base_game_drives(home: TeamStats, away: TeamStats) -> float:
    """Combined drives before tempo adjustments and clamping."""
    home_side = (home.off_drives + away.def_drives) / 2.0
    away_side = (away.off_drives + home.def_drives) / 2.0
    return home_side + away_side


def tempo_multiplier(home: TeamStats, away: TeamStats, config: ModelConfig) -> float:
    """1 + no-huddle boost + early-down pass-rate adjustment."""
    w = config.weights
    nh_boost = (home.no_huddle + away.no_huddle) / 2.0 * w.no_huddle * 0.5
    ed_adj = (
        ((home.ed_pass - config.league_ed_pass) + (away.ed_pass - config.league_ed_pass)) / 2.0
        * w.ed_pass
    )
    return 1.0 + nh_boost + ed_adj


def possession_share(home_nets: MatchupNets, config: ModelConfig) -> float:
    """Home share of game drives, clamped to the configured band."""
    share = 0.5 + config.possession_k * (home_nets.sr_net + 0.5 * home_nets.epa_net)
    return float(np.clip(share, config.share_min, config.share_max))


def compute_game_pace(
    home: TeamStats,
    away: TeamStats,
    home_nets: MatchupNets,
    config: ModelConfig,
) -> GamePace:
    """Allocate combined drives and the home possession share."""
    raw = base_game_drives(home, away) * tempo_multiplier(home, away, config)
    game_drives = float(np.clip(raw, config.drives_min, config.drives_max))
    if game_drives != raw:
        logger.debug("Game drives %.2f clamped to %.2f", raw, game_drives)
    share = possession_share(home_nets, config)
    return GamePace(game_drives=game_drives, home_share=share)
