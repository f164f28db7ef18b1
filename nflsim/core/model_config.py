"""Model-level configuration — every tuning constant in one place.

This module is the **registry** for the calibration constants the
projection engine consumes.  Nowhere else in the codebase should weights,
logistic coefficients, variance bounds, or pace bands be hard-coded.

Architecture
------------
:class:`ModelConfig` is a frozen dataclass bundling the league baseline,
the Gaussian weight table, the per-drive logistic coefficients, and every
clamp band.  Named constructors return the calibrated presets:

* :meth:`ModelConfig.gaussian_v3` — continuous expected-points model
  (primary).
* :meth:`ModelConfig.drive_w8` — discrete per-possession outcome model.

Both presets share one engine implementation; a "variant" is a config,
never a code fork.  To tweak a single constant::

    from dataclasses import replace
    cfg = replace(ModelConfig.gaussian_v3(), base_team_sd=9.5)

Invalid combinations (inverted bands, non-positive SDs) raise
:class:`~nflsim.core.errors.ConfigurationError` at construction time, so a
bad config never reaches the trial loop.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Final

from nflsim.core.baseline import LeagueBaseline
from nflsim.core.errors import ConfigurationError


#: Engine identifiers accepted by the simulator.
ENGINE_GAUSSIAN: Final[str] = "gaussian"
ENGINE_DRIVE: Final[str] = "drive"
ENGINE_NAMES: Final[frozenset[str]] = frozenset({ENGINE_GAUSSIAN, ENGINE_DRIVE})


# ---------------------------------------------------------------------------
# Weight tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the Gaussian net-advantage sum.

    The efficiency block (``ppd_resid`` … ``three_out``) sums informally to
    about 1; EPA dominates.  The prior block adds small adjustments from
    external ratings, turnover luck, field position and penalties.  The
    pace block feeds the drive allocator, not the points model.
    """

    # Efficiency nets
    ppd_resid: float = 0.20
    epa: float = 0.40
    sr: float = 0.20
    xpl: float = 0.10
    rz: float = 0.10
    three_out: float = 0.25

    # Priors
    dvoa_off: float = 0.15
    dvoa_def: float = 0.15
    turnover_epa: float = 0.10
    field_position: float = 0.10
    penalties_off: float = 0.05
    penalties_def: float = 0.05

    # Pace
    ed_pass: float = 0.10
    no_huddle: float = 0.20


@dataclass(frozen=True)
class DriveLogits:
    """Logistic coefficients of the per-drive outcome model.

    ``a*`` drive the three-and-out link, ``b*`` the touchdown-given-sustained
    link.  ``phi`` is the share of non-touchdown sustained drives that end
    in a field goal.  The two ``hfa_*`` slopes are the per-point home tilts.
    Calibrated against 2022-2024 league drive outcomes.
    """

    a0: float = -1.31
    a1: float = 1.10
    a2: float = 0.85
    a3: float = 0.60
    a4: float = 0.25

    b0: float = -0.76
    b1: float = 0.95
    b2: float = 0.55
    b3: float = 0.35
    b4: float = 0.40

    phi: float = 0.32

    hfa_three_out_per_pt: float = 0.01
    hfa_touchdown_per_pt: float = 0.02


@dataclass(frozen=True)
class WeatherParams:
    """Point adjustments applied for game-day conditions.

    Totals are split evenly between the two teams by the Gaussian engine.
    """

    dome_bonus: float = 0.5
    wind_threshold_mph: float = 10.0
    wind_per_mph: float = -0.06
    cold_threshold_f: float = 25.0
    cold_penalty: float = -1.5
    precipitation: dict[str, float] = field(
        default_factory=lambda: {
            "none": 0.0,
            "light_rain": -1.0,
            "heavy_rain": -2.0,
            "snow": -2.5,
        }
    )


# ---------------------------------------------------------------------------
# Model configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelConfig:
    """Immutable calibration bundle for one projection model.

    Attributes:
        config_id: Short identifier (``"gaussian_v3"``, ``"drive_w8"``)
            reported in every simulation summary.
        name: Human-readable name for logging.
        engine: Default engine name for this preset (``"gaussian"`` or
            ``"drive"``).  The simulator may override it per request.

        --- Standardisation ---
        baseline: League (mean, sd) snapshot.  Replace with a dynamic
            :class:`LeagueBaseline` built from the loaded team table to
            standardise against the current season.
        z_clip: Symmetric clip applied to every z-score.  ``None`` disables.
        resid_c1: EPA coefficient removed from the PPD net.
        resid_c2: Success-rate coefficient removed from the PPD net.

        --- Gaussian points model ---
        weights: Net-advantage weight table.
        ppd_min / ppd_max: Clamp on projected points per drive.
        base_team_sd: Single-team scoring SD in points.  Never the
            total-game SD halved.
        sd_three_out_inflation: Slope of the adverse three-and-out inflator.
        sd_sr_deflation: Slope of the favourable success-rate deflator.
        sd_deflation_floor: Lowest value the deflator may reach.
        sd_min / sd_max: Clamp on per-team SD.

        --- Discrete model ---
        logits: Per-drive logistic coefficients.
        league_three_out: League three-and-out rate the opponent's raw
            defensive rate is centred on.  ``None`` uses the baseline mean.

        --- Pace ---
        league_drives_per_game: Combined drives used to scale turnover EPA.
        league_ed_pass: League early-down pass rate.
        league_field_position: League average starting yard line.
        drives_min / drives_max: Clamp on combined game drives.
        possession_k: Slope of the home possession share.
        share_min / share_max: Clamp on the home possession share.

        --- Correlation ---
        rho_baseline: Starting home/away score correlation for the
            adaptive model.
        rho_min / rho_max: Clamp on the adaptive correlation.
        weather: Weather point adjustments.
    """

    # Identity
    config_id: str = "gaussian_v3"
    name: str = "Gaussian expected-points v3"
    engine: str = ENGINE_GAUSSIAN

    # Standardisation
    baseline: LeagueBaseline = field(default_factory=LeagueBaseline.static)
    z_clip: float | None = 3.5
    resid_c1: float = 0.56
    resid_c2: float = 0.21

    # Gaussian points model
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    ppd_min: float = 0.4
    ppd_max: float = 4.0
    base_team_sd: float = 9.0
    sd_three_out_inflation: float = 0.3
    sd_sr_deflation: float = 0.15
    sd_deflation_floor: float = 0.7
    sd_min: float = 6.0
    sd_max: float = 14.0

    # Discrete model
    logits: DriveLogits = field(default_factory=DriveLogits)
    league_three_out: float | None = None

    # Pace
    league_drives_per_game: float = 24.0
    league_ed_pass: float = 0.50
    league_field_position: float = 25.0
    drives_min: float = 20.0
    drives_max: float = 30.0
    possession_k: float = 0.15
    share_min: float = 0.35
    share_max: float = 0.65

    # Correlation
    rho_baseline: float = 0.22
    rho_min: float = -0.05
    rho_max: float = 0.50
    weather: WeatherParams = field(default_factory=WeatherParams)

    def __post_init__(self) -> None:
        if self.engine not in ENGINE_NAMES:
            raise ConfigurationError(
                f"Unknown engine {self.engine!r}; expected one of {sorted(ENGINE_NAMES)}."
            )
        for low, high in [
            ("ppd_min", "ppd_max"),
            ("sd_min", "sd_max"),
            ("drives_min", "drives_max"),
            ("share_min", "share_max"),
            ("rho_min", "rho_max"),
        ]:
            lo, hi = getattr(self, low), getattr(self, high)
            if not (math.isfinite(lo) and math.isfinite(hi)) or lo > hi:
                raise ConfigurationError(
                    f"ModelConfig.{low}/{high} must be a finite band with "
                    f"{low} <= {high}, got [{lo!r}, {hi!r}]."
                )
        if not 0.0 < self.share_min <= 0.5 <= self.share_max < 1.0:
            raise ConfigurationError(
                f"Possession share band must straddle 0.5 inside (0, 1), "
                f"got [{self.share_min!r}, {self.share_max!r}]."
            )
        if self.drives_min <= 0.0:
            raise ConfigurationError(f"drives_min must be positive, got {self.drives_min!r}.")
        if self.base_team_sd <= 0.0 or self.sd_min <= 0.0:
            raise ConfigurationError(
                f"Scoring SDs must be positive (base_team_sd={self.base_team_sd!r}, "
                f"sd_min={self.sd_min!r})."
            )
        if self.z_clip is not None and not self.z_clip > 0.0:
            raise ConfigurationError(f"z_clip must be positive or None, got {self.z_clip!r}.")
        if not (-1.0 <= self.rho_min and self.rho_max <= 1.0):
            raise ConfigurationError(
                f"Correlation band must lie inside [-1, 1], got [{self.rho_min!r}, {self.rho_max!r}]."
            )
        if not 0.0 <= self.logits.phi <= 1.0:
            raise ConfigurationError(f"logits.phi must be in [0, 1], got {self.logits.phi!r}.")

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def gaussian_v3(cls) -> ModelConfig:
        """Return the continuous expected-points preset (primary model).

        Sources:
            * Baseline: 2022-2024 league aggregates (see
              :meth:`LeagueBaseline.static`).
            * Weights: least-squares fit of per-drive points on standardised
              nets, 2021-2024, with EPA constrained dominant.
            * Residual coefficients: OLS of PPD net on EPA/SR nets.
            * Base team SD: per-team scoring SD of 9 points, NFL 2018-2024.
        """
        return cls(
            config_id="gaussian_v3",
            name="Gaussian expected-points v3",
            engine=ENGINE_GAUSSIAN,
        )

    @classmethod
    def drive_w8(cls) -> ModelConfig:
        """Return the discrete per-drive preset.

        Uses a slightly lower league PPD mean (2.02 / 0.40), the
        calibration the logistic anchors were fit against.
        """
        return cls(
            config_id="drive_w8",
            name="Discrete per-drive w8",
            engine=ENGINE_DRIVE,
            baseline=LeagueBaseline.static(ppd=(2.02, 0.40), version="static-w8"),
        )

    @classmethod
    def for_engine(cls, engine: str) -> ModelConfig:
        """Return the preset that matches an engine name."""
        if engine == ENGINE_GAUSSIAN:
            return cls.gaussian_v3()
        if engine == ENGINE_DRIVE:
            return cls.drive_w8()
        raise ConfigurationError(
            f"Unknown engine {engine!r}; expected one of {sorted(ENGINE_NAMES)}."
        )

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    def with_baseline(self, baseline: LeagueBaseline) -> ModelConfig:
        """Return a copy of this config pinned to ``baseline``."""
        return replace(self, baseline=baseline)

    def three_out_reference(self) -> float:
        """League three-and-out rate used by the discrete model."""
        if self.league_three_out is not None:
            return self.league_three_out
        return self.baseline.mean("three_out")

    def __repr__(self) -> str:
        return (
            f"ModelConfig(config_id={self.config_id!r}, "
            f"engine={self.engine!r}, "
            f"baseline={self.baseline.version!r}, "
            f"sd=[{self.sd_min}, {self.sd_max}])"
        )
