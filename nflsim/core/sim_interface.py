"""Data-transfer objects and the swappable scoring-engine contract.

Every scoring engine consumes the same inputs and produces the same
trial arrays, so the simulator can swap the continuous (Gaussian) and the
discrete (per-drive) models by name without touching aggregation code.

Design choices
--------------
* :class:`ScoringEngine` is an abstract base class rather than a
  ``typing.Protocol`` so the simulator can ``isinstance``-check injected
  engines and engine authors inherit the documented contract.
* :class:`TeamStats` carries **every** canonical metric.  The normalizer
  fills any metric it cannot parse with the league default and records the
  name in ``defaulted``; nothing downstream ever guards against a missing
  value.
* Projection objects are frozen and slotted.  They are ephemeral, built
  once per matchup, and never mutated.

Run tests with::

    pytest tests/test_sim_interface.py -v
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Final, Mapping

import numpy as np

if TYPE_CHECKING:
    from nflsim.core.model_config import ModelConfig


# ---------------------------------------------------------------------------
# Canonical metrics
# ---------------------------------------------------------------------------

#: Canonical metric name → league default substituted when a source row
#: has no usable value.
METRIC_DEFAULTS: Final[dict[str, float]] = {
    # Offence
    "off_ppd": 2.06,
    "off_epa": 0.022,
    "off_sr": 0.43,
    "off_xpl": 0.113,
    "off_rz": 0.56,
    "off_3out": 0.24,
    "off_penalties": 0.44,
    "off_to_epa": 0.0,
    "off_fp": 25.0,
    "off_dvoa": 0.0,
    "off_drives": 12.0,
    "off_plays": 62.0,
    "ed_pass": 0.50,
    "no_huddle": 0.02,
    # Defence (values allowed / forced)
    "def_ppd_allowed": 2.06,
    "def_epa_allowed": 0.022,
    "def_sr": 0.43,
    "def_xpl": 0.113,
    "def_rz": 0.56,
    "def_3out": 0.24,
    "def_penalties": 0.44,
    "def_dvoa": 0.0,
    "def_drives": 12.0,
    "def_plays": 62.0,
}

METRIC_NAMES: Final[tuple[str, ...]] = tuple(METRIC_DEFAULTS)

#: Metrics reported as rates; a ``"43%"`` cell parses to ``0.43``.
PERCENT_METRICS: Final[frozenset[str]] = frozenset(
    {
        "off_sr",
        "off_xpl",
        "off_rz",
        "off_3out",
        "ed_pass",
        "no_huddle",
        "def_sr",
        "def_xpl",
        "def_rz",
        "def_3out",
    }
)


# ---------------------------------------------------------------------------
# Team inputs
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TeamStats:
    """Season statistics for one team, fully populated.

    Attributes:
        team_name: Team identifier.  Not used in projection math.

        --- Offence ---
        off_ppd: Points per drive.  League avg ≈ 2.06.
        off_epa: EPA per play.  League avg ≈ 0.022.
        off_sr: Success rate.  League avg ≈ 0.43.
        off_xpl: Explosive-play rate.  League avg ≈ 0.113.
        off_rz: Red-zone touchdown rate.  League avg ≈ 0.56.
        off_3out: Three-and-out rate.  League avg ≈ 0.24.
        off_penalties: Penalties per drive.
        off_to_epa: Turnover EPA per game (positive = ball security).
        off_fp: Average starting field position (own yard line).
        off_dvoa: Offensive DVOA in percent.
        off_drives: Offensive drives per game.
        off_plays: Offensive plays per game.
        ed_pass: Early-down pass rate.
        no_huddle: No-huddle rate.

        --- Defence ---
        def_ppd_allowed … def_plays: The same quantities allowed (or forced,
            for three-and-outs) by the defence.

        --- Metadata ---
        defaulted: Metric names that fell back to the league default.
            Diagnostics only; never read by the projection math.
    """

    team_name: str = ""

    off_ppd: float = METRIC_DEFAULTS["off_ppd"]
    off_epa: float = METRIC_DEFAULTS["off_epa"]
    off_sr: float = METRIC_DEFAULTS["off_sr"]
    off_xpl: float = METRIC_DEFAULTS["off_xpl"]
    off_rz: float = METRIC_DEFAULTS["off_rz"]
    off_3out: float = METRIC_DEFAULTS["off_3out"]
    off_penalties: float = METRIC_DEFAULTS["off_penalties"]
    off_to_epa: float = METRIC_DEFAULTS["off_to_epa"]
    off_fp: float = METRIC_DEFAULTS["off_fp"]
    off_dvoa: float = METRIC_DEFAULTS["off_dvoa"]
    off_drives: float = METRIC_DEFAULTS["off_drives"]
    off_plays: float = METRIC_DEFAULTS["off_plays"]
    ed_pass: float = METRIC_DEFAULTS["ed_pass"]
    no_huddle: float = METRIC_DEFAULTS["no_huddle"]

    def_ppd_allowed: float = METRIC_DEFAULTS["def_ppd_allowed"]
    def_epa_allowed: float = METRIC_DEFAULTS["def_epa_allowed"]
    def_sr: float = METRIC_DEFAULTS["def_sr"]
    def_xpl: float = METRIC_DEFAULTS["def_xpl"]
    def_rz: float = METRIC_DEFAULTS["def_rz"]
    def_3out: float = METRIC_DEFAULTS["def_3out"]
    def_penalties: float = METRIC_DEFAULTS["def_penalties"]
    def_dvoa: float = METRIC_DEFAULTS["def_dvoa"]
    def_drives: float = METRIC_DEFAULTS["def_drives"]
    def_plays: float = METRIC_DEFAULTS["def_plays"]

    defaulted: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in METRIC_NAMES:
            value = getattr(self, name)
            if value is None or not math.isfinite(float(value)):
                raise ValueError(
                    f"TeamStats.{name} must be a finite number for team "
                    f"{self.team_name!r}, got {value!r}."
                )
            object.__setattr__(self, name, float(value))
        object.__setattr__(self, "defaulted", tuple(self.defaulted))

    @classmethod
    def from_mapping(cls, team_name: str, values: Mapping[str, Any]) -> TeamStats:
        """Build from a canonical-name mapping, defaulting absent metrics.

        ``None`` and non-finite values count as absent.  Unknown keys are
        ignored.  Header aliases are *not* resolved here; see
        :mod:`nflsim.services.team_stats`.
        """
        kwargs: dict[str, float] = {}
        defaulted: list[str] = []
        for name in METRIC_NAMES:
            raw = values.get(name)
            try:
                value = float(raw) if raw is not None else math.nan
            except (TypeError, ValueError):
                value = math.nan
            if math.isfinite(value):
                kwargs[name] = value
            else:
                kwargs[name] = METRIC_DEFAULTS[name]
                defaulted.append(name)
        return cls(team_name=team_name, defaulted=tuple(defaulted), **kwargs)

    def get(self, metric: str) -> float:
        """Return a canonical metric by name."""
        if metric not in METRIC_DEFAULTS:
            raise KeyError(f"Unknown metric {metric!r}.")
        return getattr(self, metric)

    def as_dict(self) -> dict[str, float]:
        """Canonical metric name → value (no metadata)."""
        return {name: getattr(self, name) for name in METRIC_NAMES}

    @property
    def is_fully_defaulted(self) -> bool:
        return len(self.defaulted) == len(METRIC_NAMES)

    def __repr__(self) -> str:
        return (
            f"TeamStats({self.team_name!r}, ppd={self.off_ppd:.2f}, "
            f"epa={self.off_epa:+.3f}, defaulted={len(self.defaulted)})"
        )


# ---------------------------------------------------------------------------
# Intermediate signals
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class MatchupNets:
    """Standardised offence-minus-defence signals for one ordered pair.

    Positive values always favour the offence, including ``three_out_net``
    (which is defence-minus-offence because fewer three-and-outs is better).
    """

    epa_net: float = 0.0
    sr_net: float = 0.0
    ppd_net: float = 0.0
    ppd_resid_net: float = 0.0
    xpl_net: float = 0.0
    rz_net: float = 0.0
    three_out_net: float = 0.0
    z_pen_off: float = 0.0
    z_pen_def: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class GamePace:
    """Combined drives for the game and the home side's share of them."""

    game_drives: float
    home_share: float

    @property
    def home_drives(self) -> float:
        return self.game_drives * self.home_share

    @property
    def away_drives(self) -> float:
        return self.game_drives * (1.0 - self.home_share)

    def as_dict(self) -> dict[str, float]:
        return {
            "game_drives": self.game_drives,
            "home_share": self.home_share,
            "home_drives": self.home_drives,
            "away_drives": self.away_drives,
        }


# ---------------------------------------------------------------------------
# Score projections
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class GaussianProjection:
    """Per-team expected points and scoring SD.

    Attributes:
        expected_points: ``ppd × drives`` (plus any weather share).
        sd: Single-team scoring SD, clamped to the configured band.
        drives: Possessions allocated to this team.
        ppd: Projected points per drive after HFA and clamping.
        net_advantage: Weighted z-like sum before it is mapped to PPD.
    """

    expected_points: float
    sd: float
    drives: float
    ppd: float
    net_advantage: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class DriveProbabilities:
    """Outcome probabilities for a single possession.

    ``p_three_out + p_touchdown + p_field_goal + p_empty`` is 1 up to
    floating-point error and every term is non-negative.
    """

    p_three_out: float
    p_touchdown: float
    p_field_goal: float
    p_empty: float

    @property
    def expected_points_per_drive(self) -> float:
        return 7.0 * self.p_touchdown + 3.0 * self.p_field_goal

    def thresholds(self) -> np.ndarray:
        """Cumulative upper bounds for {three_out, touchdown, field_goal}."""
        return np.cumsum([self.p_three_out, self.p_touchdown, self.p_field_goal])

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class DriveProjection:
    """Per-team discrete projection: outcome probabilities and possessions."""

    probabilities: DriveProbabilities
    drives: int

    @property
    def expected_points(self) -> float:
        return self.drives * self.probabilities.expected_points_per_drive

    def as_dict(self) -> dict[str, float]:
        out = self.probabilities.as_dict()
        out["drives"] = self.drives
        out["expected_points"] = self.expected_points
        return out


@dataclass(slots=True, frozen=True)
class GameProjection:
    """Both teams' projections plus the shared game context.

    ``home`` / ``away`` are :class:`GaussianProjection` or
    :class:`DriveProjection` depending on the engine.  ``rho`` is the
    home/away score correlation used by the Gaussian sampler (0 when
    independent).
    """

    home: GaussianProjection | DriveProjection
    away: GaussianProjection | DriveProjection
    pace: GamePace
    home_nets: MatchupNets
    away_nets: MatchupNets
    rho: float = 0.0
    engine_name: str = ""
    diagnostics: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "engine": self.engine_name,
            "home": self.home.as_dict(),
            "away": self.away.as_dict(),
            "pace": self.pace.as_dict(),
            "home_nets": self.home_nets.as_dict(),
            "away_nets": self.away_nets.as_dict(),
            "rho": self.rho,
            **self.diagnostics,
        }


# ---------------------------------------------------------------------------
# Abstract scoring engine
# ---------------------------------------------------------------------------


class ScoringEngine(ABC):
    """Contract every scoring engine must satisfy.

    :meth:`project_game` is a pure function of its inputs.  :meth:`sample`
    consumes only the generator it is handed, so two calls with generators
    built from the same seed return identical arrays.

    Example implementation::

        class ConstantEngine(ScoringEngine):
            engine_name = "constant"

            def project_game(self, home, away, *, config, hfa_points=0.0,
                             conditions=None, market_spread=None):
                ...

            def sample(self, projection, n_trials, rng):
                scores = np.full(n_trials, 21, dtype=np.int64)
                return scores, scores.copy()
    """

    #: Short identifier reported in every summary.  Override in subclasses.
    engine_name: str = "ScoringEngine"

    @abstractmethod
    def project_game(
        self,
        home: TeamStats,
        away: TeamStats,
        *,
        config: ModelConfig,
        hfa_points: float = 0.0,
        conditions: Any = None,
        market_spread: float | None = None,
    ) -> GameProjection:
        """Build both teams' score projections for one matchup.

        Args:
            home: Home team statistics.
            away: Away team statistics.
            config: Calibration bundle (baseline, weights, bands).
            hfa_points: Home-field advantage in points.  ``0`` for a
                neutral site.
            conditions: Optional
                :class:`~nflsim.services.conditions.GameConditions`.
            market_spread: Optional home spread, used by engines that adapt
                their correlation to the market.

        Returns:
            :class:`GameProjection` with home and away projections.
        """

    @abstractmethod
    def sample(
        self,
        projection: GameProjection,
        n_trials: int,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Draw ``n_trials`` (home, away) score pairs.

        Returns:
            Two ``int64`` arrays of length ``n_trials``; every value is a
            non-negative integer.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(engine_name={self.engine_name!r})"

