"""
Trial aggregation: score arrays -> SimulationSummary.

Conventions (pinned by tests):
  * median is np.median (midpoint average for even N)
  * percentile p is the sorted value at index floor((n - 1) * p)
  * P(over) = count(total > line) / N, P(under) = count(total < line) / N,
    push is the remainder
  * spread is quoted from the home side (-3 = home favoured by 3); the home
    side covers when margin + spread > 0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import numpy as np

from nflsim.core.odds_math import implied_prob, prob_to_american
from nflsim.core.sim_interface import GameProjection

logger = logging.getLogger(__name__)

PERCENTILES = (0.10, 0.25, 0.50, 0.75, 0.90)

ALT_SPREAD_LADDER = (
    -14.0, -10.5, -7.0, -6.5, -3.5, -3.0, -2.5, -1.5, 0.0,
    1.5, 2.5, 3.0, 3.5, 6.5, 7.0, 10.5, 14.0,
)


# ---------------------------------------------------------------------------
# Primitive reductions
# ---------------------------------------------------------------------------


def percentile(values: Sequence[float] | np.ndarray, p: float) -> float:
    """Sorted-array percentile at index floor((n - 1) * p)."""
    arr = np.sort(np.asarray(values, dtype=float))
    if arr.size == 0:
        raise ValueError("percentile of an empty sequence")
    idx = int(math.floor((arr.size - 1) * p))
    idx = min(max(idx, 0), arr.size - 1)
    return float(arr[idx])


@dataclass(slots=True, frozen=True)
class Distribution:
    """Mean, median and the p10/p25/p50/p75/p90 ladder of one quantity."""

    mean: float
    median: float
    sd: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float

    @classmethod
    def from_values(cls, values: Sequence[float] | np.ndarray) -> Distribution:
        arr = np.asarray(values, dtype=float)
        if arr.size == 0:
            raise ValueError("distribution of an empty sequence")
        ladder = [percentile(arr, p) for p in PERCENTILES]
        return cls(
            float(np.mean(arr)),
            float(np.median(arr)),
            float(np.std(arr)),
            *ladder,
        )

    def to_dict(self, digits: int = 2) -> dict[str, float]:
        return {
            "mean": round(self.mean, digits),
            "median": round(self.median, digits),
            "sd": round(self.sd, digits),
            "p10": self.p10,
            "p25": self.p25,
            "p50": self.p50,
            "p75": self.p75,
            "p90": self.p90,
        }


@dataclass(slots=True, frozen=True)
class TotalMarket:
    """Over/under/push probabilities for one points line."""

    line: float
    p_over: float
    p_under: float
    p_push: float

    def to_dict(self) -> dict[str, float]:
        return {
            "line": self.line,
            "p_over": round(self.p_over, 4),
            "p_under": round(self.p_under, 4),
            "p_push": round(self.p_push, 4),
        }


@dataclass(slots=True, frozen=True)
class SpreadMarket:
    """Cover probabilities for a home-quoted spread."""

    spread: float
    p_home_cover: float
    p_away_cover: float
    p_push: float

    def to_dict(self) -> dict[str, float]:
        return {
            "spread": self.spread,
            "p_home_cover": round(self.p_home_cover, 4),
            "p_away_cover": round(self.p_away_cover, 4),
            "p_push": round(self.p_push, 4),
        }


@dataclass(slots=True, frozen=True)
class Moneyline:
    """Win probabilities with ties reported separately, plus fair odds.

    ``home_fair_odds`` / ``away_fair_odds`` are priced on the no-tie
    probabilities (ties are replayed as overtime in a real market).
    """

    p_home_win: float
    p_away_win: float
    p_tie: float
    home_fair_odds: int | None
    away_fair_odds: int | None

    @property
    def p_home_no_tie(self) -> float:
        decided = self.p_home_win + self.p_away_win
        return self.p_home_win / decided if decided else 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "p_home_win": round(self.p_home_win, 4),
            "p_away_win": round(self.p_away_win, 4),
            "p_tie": round(self.p_tie, 4),
            "p_home_no_tie": round(self.p_home_no_tie, 4),
            "home_fair_odds": self.home_fair_odds,
            "away_fair_odds": self.away_fair_odds,
        }


def over_under(totals: np.ndarray, line: float) -> TotalMarket:
    totals = np.asarray(totals)
    n = totals.size
    over = int(np.count_nonzero(totals > line))
    under = int(np.count_nonzero(totals < line))
    return TotalMarket(
        line=float(line),
        p_over=over / n,
        p_under=under / n,
        p_push=(n - over - under) / n,
    )


def spread_cover(margins: np.ndarray, spread: float) -> SpreadMarket:
    """Cover probabilities; threshold = -spread, home covers if margin > threshold."""
    margins = np.asarray(margins)
    n = margins.size
    threshold = -spread
    home = int(np.count_nonzero(margins - threshold > 0))
    away = int(np.count_nonzero(margins - threshold < 0))
    return SpreadMarket(
        spread=float(spread),
        p_home_cover=home / n,
        p_away_cover=away / n,
        p_push=(n - home - away) / n,
    )


def moneyline(home_scores: np.ndarray, away_scores: np.ndarray) -> Moneyline:
    home_scores = np.asarray(home_scores)
    away_scores = np.asarray(away_scores)
    n = home_scores.size
    home_wins = int(np.count_nonzero(home_scores > away_scores))
    away_wins = int(np.count_nonzero(home_scores < away_scores))
    decided = home_wins + away_wins
    p_home_no_tie = home_wins / decided if decided else 0.5
    return Moneyline(
        p_home_win=home_wins / n,
        p_away_win=away_wins / n,
        p_tie=(n - decided) / n,
        home_fair_odds=prob_to_american(p_home_no_tie),
        away_fair_odds=prob_to_american(1.0 - p_home_no_tie),
    )


def alt_lines(margins: np.ndarray, ladder: Iterable[float] = ALT_SPREAD_LADDER) -> dict[float, float]:
    """Home cover probability for each spread on the ladder."""
    return {spread: spread_cover(margins, spread).p_home_cover for spread in ladder}


# ---------------------------------------------------------------------------
# Bet decisions
# ---------------------------------------------------------------------------

#: Minimum side probability for a play to be approved.
APPROVAL_THRESHOLD = 0.54

#: (minimum probability, tier) pairs, strongest first.
TIER_THRESHOLDS = ((0.60, 1), (0.57, 2), (APPROVAL_THRESHOLD, 3))

#: Price the break-even probability is measured against.
STANDARD_PRICE = -110


def decision_tier(prob: float) -> int:
    """1 (strongest) to 3 for approved probabilities, 0 below the threshold."""
    for floor, tier in TIER_THRESHOLDS:
        if prob >= floor:
            return tier
    return 0


def spread_category(abs_spread: float) -> str:
    if abs_spread <= 3:
        return "0-3"
    if abs_spread <= 7:
        return "3-7"
    if abs_spread <= 10:
        return "7-10"
    return "10+"


def total_category(line: float) -> str:
    if line < 42:
        return "low"
    if line <= 46:
        return "mid"
    return "high"


def edge_category(edge: float) -> str:
    if edge < -3:
        return "<-3"
    if edge < 0:
        return "-3 to 0"
    if edge < 3:
        return "0 to 3"
    return "3+"


@dataclass(slots=True, frozen=True)
class SpreadDecision:
    """Which side of a spread the simulation favours, and how strongly."""

    signal: str  # HOME | AWAY
    side_type: str  # FAV | DOG
    probability: float
    spread_category: str
    model_margin: float
    tier: int
    approved: bool
    edge_vs_price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal,
            "side_type": self.side_type,
            "probability": round(self.probability, 4),
            "spread_category": self.spread_category,
            "model_margin": round(self.model_margin, 2),
            "tier": self.tier,
            "approved": self.approved,
            "edge_vs_price": round(self.edge_vs_price, 4),
        }


@dataclass(slots=True, frozen=True)
class TotalDecision:
    """Over/under lean for a game total."""

    signal: str  # OVER | UNDER
    probability: float
    model_edge: float
    total_category: str
    edge_category: str
    tier: int
    approved: bool
    edge_vs_price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal,
            "probability": round(self.probability, 4),
            "model_edge": round(self.model_edge, 2),
            "total_category": self.total_category,
            "edge_category": self.edge_category,
            "tier": self.tier,
            "approved": self.approved,
            "edge_vs_price": round(self.edge_vs_price, 4),
        }


def evaluate_spread(
    market: SpreadMarket, model_margin: float, price: int = STANDARD_PRICE
) -> SpreadDecision:
    """Pick the side with the higher cover probability.

    The home side is the favourite when the spread is negative; a pick'em
    counts the away side as favourite.  Ties in cover probability go to
    the away side.
    """
    likes_home = market.p_home_cover > market.p_away_cover
    home_is_favourite = market.spread < 0
    prob = market.p_home_cover if likes_home else market.p_away_cover
    return SpreadDecision(
        signal="HOME" if likes_home else "AWAY",
        side_type="FAV" if likes_home == home_is_favourite else "DOG",
        probability=prob,
        spread_category=spread_category(abs(market.spread)),
        model_margin=float(model_margin),
        tier=decision_tier(prob),
        approved=prob >= APPROVAL_THRESHOLD,
        edge_vs_price=prob - implied_prob(price),
    )


def evaluate_total(
    market: TotalMarket, model_total: float, price: int = STANDARD_PRICE
) -> TotalDecision:
    """Pick OVER or UNDER; equal probabilities lean UNDER."""
    over = market.p_over > market.p_under
    prob = market.p_over if over else market.p_under
    edge = float(model_total) - market.line
    return TotalDecision(
        signal="OVER" if over else "UNDER",
        probability=prob,
        model_edge=edge,
        total_category=total_category(market.line),
        edge_category=edge_category(edge),
        tier=decision_tier(prob),
        approved=prob >= APPROVAL_THRESHOLD,
        edge_vs_price=prob - implied_prob(price),
    )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SimulationSummary:
    """Immutable result of one simulated matchup."""

    home_team: str
    away_team: str
    n_trials: int
    engine: str
    config_id: str
    baseline_version: str

    home_score: Distribution
    away_score: Distribution
    total: Distribution
    margin: Distribution
    moneyline: Moneyline

    total_market: TotalMarket | None = None
    spread_market: SpreadMarket | None = None
    home_team_total: TotalMarket | None = None
    away_team_total: TotalMarket | None = None
    alt_lines: dict[float, float] = field(default_factory=dict)
    spread_decision: SpreadDecision | None = None
    total_decision: TotalDecision | None = None

    hfa_points: float = 0.0
    seed: int | None = None
    projection: dict[str, Any] = field(default_factory=dict)

    @property
    def p_over(self) -> float | None:
        return self.total_market.p_over if self.total_market else None

    @property
    def p_home_cover(self) -> float | None:
        return self.spread_market.p_home_cover if self.spread_market else None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping."""
        return {
            "home_team": self.home_team,
            "away_team": self.away_team,
            "n_trials": self.n_trials,
            "engine": self.engine,
            "config_id": self.config_id,
            "baseline_version": self.baseline_version,
            "hfa_points": self.hfa_points,
            "seed": self.seed,
            "home_score": self.home_score.to_dict(),
            "away_score": self.away_score.to_dict(),
            "total": self.total.to_dict(),
            "margin": self.margin.to_dict(),
            "moneyline": self.moneyline.to_dict(),
            "total_market": self.total_market.to_dict() if self.total_market else None,
            "spread_market": self.spread_market.to_dict() if self.spread_market else None,
            "home_team_total": self.home_team_total.to_dict() if self.home_team_total else None,
            "away_team_total": self.away_team_total.to_dict() if self.away_team_total else None,
            "alt_lines": [
                {"spread": spread, "p_home_cover": round(p, 4)}
                for spread, p in self.alt_lines.items()
            ],
            "spread_decision": self.spread_decision.to_dict() if self.spread_decision else None,
            "total_decision": self.total_decision.to_dict() if self.total_decision else None,
            "diagnostics": self.projection,
        }

    def to_row(self) -> dict[str, Any]:
        """Flat record for a slate export."""
        return {
            "home": self.home_team,
            "away": self.away_team,
            "home_mean": round(self.home_score.mean, 2),
            "away_mean": round(self.away_score.mean, 2),
            "total_mean": round(self.total.mean, 2),
            "total_median": self.total.median,
            "margin_mean": round(self.margin.mean, 2),
            "margin_median": self.margin.median,
            "market_total": self.total_market.line if self.total_market else None,
            "p_over": round(self.total_market.p_over, 4) if self.total_market else None,
            "p_under": round(self.total_market.p_under, 4) if self.total_market else None,
            "market_spread": self.spread_market.spread if self.spread_market else None,
            "p_home_cover": round(self.spread_market.p_home_cover, 4) if self.spread_market else None,
            "p_away_cover": round(self.spread_market.p_away_cover, 4) if self.spread_market else None,
            "total_signal": self.total_decision.signal if self.total_decision else None,
            "total_edge": round(self.total_decision.model_edge, 2) if self.total_decision else None,
            "total_tier": self.total_decision.tier if self.total_decision else None,
            "total_approved": self.total_decision.approved if self.total_decision else None,
            "spread_signal": self.spread_decision.signal if self.spread_decision else None,
            "side_type": self.spread_decision.side_type if self.spread_decision else None,
            "spread_tier": self.spread_decision.tier if self.spread_decision else None,
            "spread_approved": self.spread_decision.approved if self.spread_decision else None,
            "p_home_win": round(self.moneyline.p_home_win, 4),
            "home_fair_odds": self.moneyline.home_fair_odds,
            "away_fair_odds": self.moneyline.away_fair_odds,
            "engine": self.engine,
        }


def summarize(
    home_scores: np.ndarray,
    away_scores: np.ndarray,
    *,
    home_team: str = "",
    away_team: str = "",
    engine: str = "",
    config_id: str = "",
    baseline_version: str = "",
    market_total: float | None = None,
    market_spread: float | None = None,
    home_team_total: float | None = None,
    away_team_total: float | None = None,
    hfa_points: float = 0.0,
    seed: int | None = None,
    projection: GameProjection | None = None,
) -> SimulationSummary:
    """Reduce N trial score pairs to a SimulationSummary."""
    home_scores = np.asarray(home_scores)
    away_scores = np.asarray(away_scores)
    if home_scores.shape != away_scores.shape or home_scores.size == 0:
        raise ValueError(
            f"Score arrays must be non-empty and equal length "
            f"(got {home_scores.size} and {away_scores.size})"
        )
    totals = home_scores + away_scores
    margins = home_scores - away_scores
    total_dist = Distribution.from_values(totals)
    margin_dist = Distribution.from_values(margins)
    total_market = over_under(totals, market_total) if market_total is not None else None
    spread_market = spread_cover(margins, market_spread) if market_spread is not None else None

    return SimulationSummary(
        home_team=home_team,
        away_team=away_team,
        n_trials=int(home_scores.size),
        engine=engine,
        config_id=config_id,
        baseline_version=baseline_version,
        home_score=Distribution.from_values(home_scores),
        away_score=Distribution.from_values(away_scores),
        total=total_dist,
        margin=margin_dist,
        moneyline=moneyline(home_scores, away_scores),
        total_market=total_market,
        spread_market=spread_market,
        home_team_total=over_under(home_scores, home_team_total) if home_team_total is not None else None,
        away_team_total=over_under(away_scores, away_team_total) if away_team_total is not None else None,
        alt_lines=alt_lines(margins),
        spread_decision=evaluate_spread(spread_market, margin_dist.mean) if spread_market else None,
        total_decision=evaluate_total(total_market, total_dist.mean) if total_market else None,
        hfa_points=hfa_points,
        seed=seed,
        projection=projection.as_dict() if projection is not None else {},
    )
