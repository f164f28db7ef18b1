#!/usr/bin/env python3
"""
Run Monte Carlo projections from a team stats CSV.

Single matchup or a whole slate of games, printed as a text report or JSON.

Usage:
    # One game, market lines supplied
    python scripts/run_simulation.py --teams data/nfl_2025.csv \
        --home "Kansas City" --away "Buffalo" --total 47.5 --spread -2.5

    # Outdoor game in the wind, discrete per-drive engine
    python scripts/run_simulation.py --teams data/nfl_2025.csv \
        --home Chicago --away "Green Bay" --engine drive --wind 18 --temp 20

    # Full slate to CSV
    python scripts/run_simulation.py --teams data/nfl_2025.csv \
        --games data/week8.csv --out week8_results.csv --seed 7

Exit status: 0 ok, 2 bad input or configuration, 3 unreadable source data.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from nflsim.core.errors import ConfigurationError, SimulationInputError, SourceDataError
from nflsim.core.odds_math import format_american
from nflsim.schemas import parse_request
from nflsim.services.aggregation import SimulationSummary
from nflsim.services.simulator import GameSimulator
from nflsim.services.slate import load_games, resolve_games, write_results
from nflsim.services.team_stats import load_team_table
from nflsim.settings import configure_logging, get_default_hfa

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT = 2
EXIT_SOURCE = 3


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def format_summary(summary: SimulationSummary) -> str:
    """Plain-text report for one matchup."""
    ml = summary.moneyline
    lines = [
        f"{summary.away_team} @ {summary.home_team}  "
        f"({summary.engine}, {summary.n_trials:,} trials, {summary.config_id})",
        f"  Score     {summary.home_team} {summary.home_score.mean:.1f} "
        f"- {summary.away_team} {summary.away_score.mean:.1f}",
        f"  Total     mean {summary.total.mean:.1f}  median {summary.total.median:.1f}  "
        f"p10-p90 {summary.total.p10:.0f}-{summary.total.p90:.0f}",
        f"  Margin    mean {summary.margin.mean:+.1f}  median {summary.margin.median:+.1f}",
        f"  Win       home {ml.p_home_win:.1%}  away {ml.p_away_win:.1%}  tie {ml.p_tie:.1%}  "
        f"fair {format_american(ml.home_fair_odds)} / {format_american(ml.away_fair_odds)}",
    ]
    if summary.total_market:
        tm = summary.total_market
        lines.append(
            f"  O/U {tm.line:g}  over {tm.p_over:.1%}  under {tm.p_under:.1%}  push {tm.p_push:.1%}"
        )
    if summary.spread_market:
        sm = summary.spread_market
        lines.append(
            f"  Spread {sm.spread:+g}  home {sm.p_home_cover:.1%}  "
            f"away {sm.p_away_cover:.1%}  push {sm.p_push:.1%}"
        )
    for decision in (summary.total_decision, summary.spread_decision):
        if decision:
            verdict = f"tier {decision.tier}" if decision.approved else "pass"
            lines.append(f"  Lean      {decision.signal} {decision.probability:.1%} ({verdict})")
    for label, market in (("Home TT", summary.home_team_total), ("Away TT", summary.away_team_total)):
        if market:
            lines.append(f"  {label} {market.line:g}  over {market.p_over:.1%}  under {market.p_under:.1%}")
    return "\n".join(lines)


def _print_progress(done: int, total: int) -> None:
    print(f"  [{done}/{total}] simulated", file=sys.stderr)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate NFL games from season team stats"
    )
    parser.add_argument(
        "--teams", type=str, required=True,
        help="Team stats CSV (comma or tab delimited)",
    )
    parser.add_argument("--home", type=str, default=None, help="Home team name")
    parser.add_argument("--away", type=str, default=None, help="Away team name")
    parser.add_argument(
        "--games", type=str, default=None,
        help="Slate CSV with home/away (and optional spread/total/dome) columns",
    )
    parser.add_argument(
        "--out", type=str, default=None,
        help="Write slate results to this CSV",
    )
    parser.add_argument("--trials", type=int, default=None, help="Monte Carlo trials")
    parser.add_argument(
        "--hfa", type=float, default=None,
        help="Home-field advantage in points (default NFLSIM_HFA_POINTS or 0)",
    )
    parser.add_argument("--total", type=float, default=None, help="Game total line")
    parser.add_argument(
        "--spread", type=float, default=None,
        help="Home spread, negative when the home team is favoured",
    )
    parser.add_argument("--home-total", type=float, default=None, help="Home team total line")
    parser.add_argument("--away-total", type=float, default=None, help="Away team total line")
    parser.add_argument(
        "--engine", type=str, default=None,
        help="Scoring engine: gaussian (default) or drive",
    )
    parser.add_argument(
        "--correlated", action="store_true",
        help="Gaussian engine: correlate home/away scores",
    )
    parser.add_argument("--seed", type=int, default=None, help="RNG seed")
    parser.add_argument("--dome", action="store_true", help="Indoor game")
    parser.add_argument("--wind", type=float, default=None, help="Wind speed in mph")
    parser.add_argument("--temp", type=float, default=None, help="Temperature in F")
    parser.add_argument(
        "--precip", type=str, default=None,
        choices=["none", "light_rain", "heavy_rain", "snow"],
        help="Precipitation",
    )
    parser.add_argument(
        "--dynamic-baseline", action="store_true",
        help="Standardise against the loaded table instead of the static league baseline",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING")
    return parser


def _conditions(args: argparse.Namespace) -> Optional[dict]:
    if not (args.dome or args.wind is not None or args.temp is not None or args.precip):
        return None
    conditions = {"dome": args.dome}
    if args.wind is not None:
        conditions["wind_mph"] = args.wind
    if args.temp is not None:
        conditions["temperature_f"] = args.temp
    if args.precip:
        conditions["precipitation"] = args.precip
    return conditions


def run(args: argparse.Namespace) -> int:
    request = parse_request(
        home_field_advantage_points=args.hfa if args.hfa is not None else get_default_hfa(),
        trial_count=args.trials,
        market_total=args.total,
        market_spread=args.spread,
        home_team_total=args.home_total,
        away_team_total=args.away_total,
        engine=args.engine,
        correlated=args.correlated or None,
        seed=args.seed,
        conditions=_conditions(args),
    )
    table = load_team_table(args.teams)
    simulator = GameSimulator(dynamic_baseline=args.dynamic_baseline)

    if args.games:
        games = resolve_games(load_games(args.games), table)
        if not games:
            logger.warning("No games left to simulate after team matching")
            return EXIT_OK
        summaries = simulator.simulate_slate(table, games, request, progress=_print_progress)
        if args.out:
            write_results(summaries, args.out)
    else:
        if not args.home or not args.away:
            raise SimulationInputError("Pick both teams: pass --home and --away (or --games)")
        home = table.resolve(args.home)
        away = table.resolve(args.away)
        if home is None or away is None:
            missing = args.home if home is None else args.away
            raise SimulationInputError(f"Team not found in {args.teams}: {missing!r}")
        summaries = [simulator.simulate_matchup(table, home, away, request)]

    if args.json:
        print(json.dumps([s.to_dict() for s in summaries], indent=2))
    else:
        for summary in summaries:
            print(format_summary(summary))
            print()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        return run(args)
    except SourceDataError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_SOURCE
    except (SimulationInputError, ConfigurationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_INPUT


if __name__ == "__main__":
    sys.exit(main())
