"""
Net-feature builder: standardized offence-minus-defence matchup signals.

For each paired metric the offence's value and the opposing defence's
allowed value are standardized against the SAME league (mean, sd), then
differenced.  Positive nets always favour the offence.
"""

from __future__ import annotations

import logging

import numpy as np

from nflsim.core.baseline import METRIC_FIELDS, LeagueBaseline
from nflsim.core.sim_interface import MatchupNets, TeamStats

logger = logging.getLogger(__name__)

DEFAULT_Z_CLIP = 3.5
RESID_C1 = 0.56
RESID_C2 = 0.21


def _clip(z: float, z_clip: float | None) -> float:
    if z_clip is None:
        return z
    return float(np.clip(z, -z_clip, z_clip))


def paired_z(
    offence: TeamStats,
    defence: TeamStats,
    metric: str,
    baseline: LeagueBaseline,
    z_clip: float | None = DEFAULT_Z_CLIP,
) -> tuple[float, float]:
    """(z_offence, z_defence_allowed) for one paired metric."""
    off_field, def_field = METRIC_FIELDS[metric]
    z_off = _clip(baseline.z(metric, getattr(offence, off_field)), z_clip)
    z_def = _clip(baseline.z(metric, getattr(defence, def_field)), z_clip)
    return z_off, z_def


def build_matchup_nets(
    offence: TeamStats,
    defence: TeamStats,
    baseline: LeagueBaseline,
    *,
    z_clip: float | None = DEFAULT_Z_CLIP,
    resid_c1: float = RESID_C1,
    resid_c2: float = RESID_C2,
) -> MatchupNets:
    """Compute MatchupNets for ``offence`` attacking ``defence``.

    Three-and-out is inverted (defence minus offence) because fewer
    three-and-outs favour the offence.  The PPD net is residualized against
    the EPA and success-rate nets so the three are not counted three times
    by the points model.  A metric with a degenerate sd contributes 0.
    """
    nets: dict[str, float] = {}
    for metric in ("ppd", "epa", "sr", "xpl", "rz"):
        z_off, z_def = paired_z(offence, defence, metric, baseline, z_clip)
        nets[metric] = z_off - z_def

    z_out_off, z_out_def = paired_z(offence, defence, "three_out", baseline, z_clip)
    z_pen_off, z_pen_def = paired_z(offence, defence, "penalties", baseline, z_clip)

    ppd_resid = nets["ppd"] - (resid_c1 * nets["epa"] + resid_c2 * nets["sr"])

    result = MatchupNets(
        epa_net=nets["epa"],
        sr_net=nets["sr"],
        ppd_net=nets["ppd"],
        ppd_resid_net=ppd_resid,
        xpl_net=nets["xpl"],
        rz_net=nets["rz"],
        three_out_net=z_out_def - z_out_off,
        z_pen_off=z_pen_off,
        z_pen_def=z_pen_def,
    )
    logger.debug("Nets %s vs %s: %s", offence.team_name, defence.team_name, result)
    return result
