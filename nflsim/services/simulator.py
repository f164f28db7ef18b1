"""
Game simulator: validates inputs, projects, samples and aggregates.

The simulator is stateless between calls.  Everything a run needs (teams,
config, request, seed) is an argument; the result is a returned
SimulationSummary.

Usage::

    sim = GameSimulator()
    summary = sim.simulate(home, away, parse_request({"market_total": 47.5, "seed": 42}))
    print(summary.to_dict())
"""

from __future__ import annotations

import logging
import numbers
from typing import Callable, Iterable, Sequence

import numpy as np

from nflsim.core.baseline import LeagueBaseline
from nflsim.core.errors import ConfigurationError, SimulationInputError
from nflsim.core.model_config import ENGINE_DRIVE, ENGINE_GAUSSIAN, ModelConfig
from nflsim.core.sim_interface import ScoringEngine, TeamStats
from nflsim.schemas import SimulationRequest, parse_request
from nflsim.services.aggregation import SimulationSummary, summarize
from nflsim.services.conditions import GameConditions
from nflsim.services.drive_engine import DriveScoringEngine
from nflsim.services.gaussian_engine import GaussianScoringEngine
from nflsim.services.slate import SlateGame
from nflsim.services.team_stats import TeamTable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def validate_trial_count(n_trials: object) -> int:
    """Return ``n_trials`` as an int, or raise ConfigurationError if it is not an integer >= 1."""
    if isinstance(n_trials, bool) or not isinstance(n_trials, numbers.Real):
        raise ConfigurationError(f"trial_count must be an integer >= 1, got {n_trials!r}")
    if isinstance(n_trials, numbers.Integral):
        value = int(n_trials)
    elif float(n_trials).is_integer():
        value = int(n_trials)
    else:
        raise ConfigurationError(f"trial_count must be a whole number, got {n_trials!r}")
    if value < 1:
        raise ConfigurationError(f"trial_count must be >= 1, got {value}")
    return value


class GameSimulator:
    """
    Monte Carlo game simulator.

    Args:
        config: Calibration to use for every run.  When None the preset
            matching the requested engine is used (gaussian_v3 / drive_w8).
        baseline: Optional league baseline pinned over the config's own.
        dynamic_baseline: Recompute the baseline from the team table on
            table-driven runs (simulate_matchup / simulate_slate).
    """

    def __init__(
        self,
        config: ModelConfig | None = None,
        *,
        baseline: LeagueBaseline | None = None,
        dynamic_baseline: bool = False,
    ):
        self.config = config
        self.baseline = baseline
        self.dynamic_baseline = dynamic_baseline

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @staticmethod
    def get_engine(name: str, correlated: bool = False) -> ScoringEngine:
        if name == ENGINE_GAUSSIAN:
            return GaussianScoringEngine(correlated=correlated)
        if name == ENGINE_DRIVE:
            return DriveScoringEngine()
        raise ConfigurationError(f"Unknown engine {name!r}; expected 'gaussian' or 'drive'")

    def config_for(self, engine: str, baseline: LeagueBaseline | None = None) -> ModelConfig:
        config = self.config or ModelConfig.for_engine(engine)
        pinned = baseline or self.baseline
        if pinned is not None:
            config = config.with_baseline(pinned)
        return config

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def simulate(
        self,
        home: TeamStats,
        away: TeamStats,
        request: SimulationRequest | None = None,
        *,
        baseline: LeagueBaseline | None = None,
        **overrides,
    ) -> SimulationSummary:
        """
        Simulate one matchup.

        ``overrides`` are configuration-block fields (market_total=47.5,
        seed=7, ...) applied over ``request``.

        Raises:
            SimulationInputError: missing team, bad market line.
            ConfigurationError: bad trial count or engine.
        """
        if home is None or away is None:
            raise SimulationInputError("Pick both teams: home and away stats are required")
        if not isinstance(home, TeamStats) or not isinstance(away, TeamStats):
            raise SimulationInputError("home and away must be TeamStats records")

        if request is None:
            request = parse_request(**overrides)
        elif overrides:
            request = parse_request(request.model_dump(), **overrides)

        n_trials = validate_trial_count(request.trial_count)
        config = self.config_for(request.engine, baseline)
        engine = self.get_engine(request.engine, correlated=request.correlated)
        conditions: GameConditions | None = request.game_conditions()

        projection = engine.project_game(
            home,
            away,
            config=config,
            hfa_points=request.home_field_advantage_points,
            conditions=conditions,
            market_spread=request.market_spread,
        )
        rng = np.random.default_rng(request.seed)
        home_scores, away_scores = engine.sample(projection, n_trials, rng)

        summary = summarize(
            home_scores,
            away_scores,
            home_team=home.team_name,
            away_team=away.team_name,
            engine=engine.engine_name,
            config_id=config.config_id,
            baseline_version=config.baseline.version,
            market_total=request.market_total,
            market_spread=request.market_spread,
            home_team_total=request.home_team_total,
            away_team_total=request.away_team_total,
            hfa_points=request.home_field_advantage_points,
            seed=request.seed,
            projection=projection,
        )
        logger.info(
            "%s vs %s [%s, n=%d]: %.1f-%.1f total %.1f margin %+.1f",
            home.team_name or "home", away.team_name or "away", engine.engine_name, n_trials,
            summary.home_score.mean, summary.away_score.mean,
            summary.total.mean, summary.margin.mean,
        )
        return summary

    def simulate_matchup(
        self,
        table: TeamTable,
        home_name: str,
        away_name: str,
        request: SimulationRequest | None = None,
        **overrides,
    ) -> SimulationSummary:
        """Look both teams up in ``table`` and simulate."""
        if not home_name or not away_name:
            raise SimulationInputError("Pick both teams: home and away names are required")
        home = table.get(home_name)
        away = table.get(away_name)
        baseline = table.baseline() if self.dynamic_baseline else None
        return self.simulate(home, away, request, baseline=baseline, **overrides)

    def simulate_slate(
        self,
        table: TeamTable,
        games: Sequence[SlateGame] | Iterable[SlateGame],
        request: SimulationRequest | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[SimulationSummary]:
        """
        Simulate a batch of games sequentially.

        Each game gets its own seed spawned from ``request.seed`` so the
        whole batch is reproducible.  ``progress(done, total)`` runs after
        every game.  Games must already name teams present in ``table``
        (see nflsim.services.slate.resolve_games).
        """
        games = list(games)
        request = request or parse_request()
        validate_trial_count(request.trial_count)
        baseline = table.baseline() if self.dynamic_baseline else None

        children = np.random.SeedSequence(request.seed).spawn(len(games))
        results: list[SimulationSummary] = []
        for done, (game, child) in enumerate(zip(games, children), start=1):
            game_seed = int(child.generate_state(1)[0])
            game_request = request.model_copy(update=game.request_updates(seed=game_seed))
            home = table.get(game.home)
            away = table.get(game.away)
            results.append(self.simulate(home, away, game_request, baseline=baseline))
            if progress is not None:
                progress(done, len(games))

        logger.info("Simulated %d game(s) from slate", len(results))
        return results
