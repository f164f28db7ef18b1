"""Probability and price conversions for reporting simulated markets.

All functions are pure.
Simulated win probabilities are quoted to users as *fair* (no-vig)
American odds; the conversions live here so the aggregator and the CLI
never reimplement them.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Values below this are not representable.
_MIN_ODDS_MAGNITUDE: Final[int] = 100


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        ValueError: If ``|american| < 100``.
    """
    if abs(american) < _MIN_ODDS_MAGNITUDE:
        raise ValueError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def implied_prob(american: int | float) -> float:
    """Implied probability of American odds (vig-inclusive when quoted)."""
    return 1.0 / american_to_decimal(american)


def prob_to_american(prob: float) -> int | None:
    """Fair American odds for a win probability.

    ``prob ≥ 0.5`` maps to a favourite price ``-100·p/(1-p)``; anything
    below maps to an underdog price ``+100·(1-p)/p``.  A certain or
    impossible outcome has no finite price and returns ``None``.

    Examples::

        prob_to_american(0.60) → -150
        prob_to_american(0.40) → 150
        prob_to_american(0.50) → -100
    """
    if not 0.0 < prob < 1.0:
        return None
    if prob >= 0.5:
        return round(-100.0 * prob / (1.0 - prob))
    return round(100.0 * (1.0 - prob) / prob)


def format_american(odds: int | None) -> str:
    """Display string for American odds (``"+150"``, ``"-110"``, ``"n/a"``)."""
    if odds is None:
        return "n/a"
    return f"+{odds}" if odds > 0 else str(odds)
