"""League baseline store — per-metric (mean, sd) snapshots.

A :class:`LeagueBaseline` is the yardstick every team metric is
standardised against.  The same (mean, sd) pair is used for an offence's
production and a defence's allowed value, because each paired metric is
defined identically from either side of the ball.

Two sources are supported:

* :meth:`LeagueBaseline.static` — fixed constants calibrated to recent NFL
  seasons (the default for every :class:`~nflsim.core.model_config.ModelConfig`
  preset).
* :meth:`LeagueBaseline.from_team_stats` — recomputed from a loaded team
  table.  Offence and defence columns are pooled per metric; the sd is
  floored so it can never be zero.

Baselines are immutable.  A dynamic baseline is fully built before any
simulation receives it, so no run can observe a partial update.

Typical usage::

    baseline = LeagueBaseline.from_team_stats(table.values())
    mean, sd = baseline.get_baseline("epa")
    z = baseline.z("epa", 0.11)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Iterable, Mapping

import numpy as np

from nflsim.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from nflsim.core.sim_interface import TeamStats


#: Standardised metric → (offence field, defence-allowed field) on TeamStats.
METRIC_FIELDS: Final[dict[str, tuple[str, str]]] = {
    "ppd": ("off_ppd", "def_ppd_allowed"),
    "epa": ("off_epa", "def_epa_allowed"),
    "sr": ("off_sr", "def_sr"),
    "xpl": ("off_xpl", "def_xpl"),
    "rz": ("off_rz", "def_rz"),
    "three_out": ("off_3out", "def_3out"),
    "penalties": ("off_penalties", "def_penalties"),
}

#: Floor applied to a dynamically computed sd.
DEFAULT_SD_FLOOR: Final[float] = 0.001


def z_score(value: float | None, mean: float, sd: float) -> float:
    """Standardise ``value`` against ``(mean, sd)``.

    Returns exactly ``0.0`` (no signal) when the sd is zero or non-finite,
    or when either the value or the mean is missing/non-finite.  This is the
    only place degenerate baselines are handled; callers never see NaN or
    infinity from here.
    """
    if value is None or sd is None or mean is None:
        return 0.0
    if not (math.isfinite(value) and math.isfinite(mean) and math.isfinite(sd)):
        return 0.0
    if sd == 0.0:
        return 0.0
    return (value - mean) / sd


@dataclass(frozen=True)
class LeagueBaseline:
    """Immutable metric → (mean, sd) snapshot.

    Attributes:
        stats: Read-only mapping of metric name to ``(mean, sd)``.
        version: Label identifying the snapshot (``"static"`` or
            ``"dynamic-32teams"``).  Recorded in every simulation summary
            so a result can be traced to the baseline that produced it.
    """

    stats: Mapping[str, tuple[float, float]] = field(default_factory=dict)
    version: str = "static"

    def __post_init__(self) -> None:
        frozen = {
            name: (float(mean), float(sd)) for name, (mean, sd) in dict(self.stats).items()
        }
        object.__setattr__(self, "stats", MappingProxyType(frozen))

    # ------------------------------------------------------------------ #
    #  Constructors                                                        #
    # ------------------------------------------------------------------ #

    @classmethod
    def static(
        cls,
        *,
        ppd: tuple[float, float] = (2.06, 0.42),
        epa: tuple[float, float] = (0.022, 0.127),
        sr: tuple[float, float] = (0.43, 0.05),
        xpl: tuple[float, float] = (0.113, 0.033),
        rz: tuple[float, float] = (0.56, 0.12),
        three_out: tuple[float, float] = (0.24, 0.05),
        penalties: tuple[float, float] = (0.44, 0.12),
        version: str = "static",
    ) -> LeagueBaseline:
        """Return the fixed NFL baseline.

        Sources: league aggregates over the 2022-2024 regular seasons
        (points/drive, EPA/play, success rate, explosive-play rate, red-zone
        TD rate, three-and-out rate, penalties/drive).
        """
        return cls(
            stats={
                "ppd": ppd,
                "epa": epa,
                "sr": sr,
                "xpl": xpl,
                "rz": rz,
                "three_out": three_out,
                "penalties": penalties,
            },
            version=version,
        )

    @classmethod
    def from_team_stats(
        cls,
        teams: Iterable[TeamStats],
        *,
        sd_floor: float = DEFAULT_SD_FLOOR,
        version: str | None = None,
    ) -> LeagueBaseline:
        """Recompute the baseline from a batch of loaded teams.

        For each metric the offence column and the defence-allowed column
        are pooled, then the population mean and sd are taken.  Values a
        team did not report (listed in its ``defaulted``) are left out of
        the pool; a metric nobody reported keeps its static entry.  The sd is
        floored at ``sd_floor`` so a league where every team reports the
        same value standardises to zero rather than dividing by zero.

        Raises:
            ConfigurationError: If ``teams`` is empty or ``sd_floor`` ≤ 0.
        """
        team_list = list(teams)
        if not team_list:
            raise ConfigurationError(
                "Cannot derive a league baseline from zero teams; load a team table first."
            )
        if not sd_floor > 0.0:
            raise ConfigurationError(f"sd_floor must be positive, got {sd_floor!r}.")

        fallback = cls.static().stats
        stats: dict[str, tuple[float, float]] = {}
        for metric, (off_field, def_field) in METRIC_FIELDS.items():
            values = np.array(
                [
                    getattr(t, name)
                    for name in (off_field, def_field)
                    for t in team_list
                    if name not in t.defaulted
                ],
                dtype=float,
            )
            values = values[np.isfinite(values)]
            if values.size == 0:
                logger.warning("No team reports %s; using the static baseline for it", metric)
                stats[metric] = fallback[metric]
                continue
            mean = float(np.mean(values))
            sd = float(np.std(values))
            stats[metric] = (mean, max(sd, sd_floor))

        return cls(stats=stats, version=version or f"dynamic-{len(team_list)}teams")

    # ------------------------------------------------------------------ #
    #  Accessors                                                           #
    # ------------------------------------------------------------------ #

    def get_baseline(self, metric: str) -> tuple[float, float]:
        """Return ``(mean, sd)`` for ``metric``.

        Raises:
            ConfigurationError: If the metric is not part of this snapshot.
        """
        try:
            return self.stats[metric]
        except KeyError:
            raise ConfigurationError(
                f"League baseline {self.version!r} has no entry for metric {metric!r}; "
                f"known metrics: {sorted(self.stats)}."
            ) from None

    def z(self, metric: str, value: float | None) -> float:
        """Standardise ``value`` for ``metric``; degenerate sd yields 0."""
        mean, sd = self.get_baseline(metric)
        return z_score(value, mean, sd)

    def mean(self, metric: str) -> float:
        return self.get_baseline(metric)[0]

    def __repr__(self) -> str:
        return f"LeagueBaseline(version={self.version!r}, metrics={sorted(self.stats)})"
