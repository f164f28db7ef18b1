"""
Tests for trial aggregation and market probabilities
Run with: pytest tests/test_aggregation.py -v
"""

import numpy as np
import pytest

from nflsim.services.aggregation import (
    ALT_SPREAD_LADDER,
    Distribution,
    alt_lines,
    moneyline,
    over_under,
    APPROVAL_THRESHOLD,
    SpreadMarket,
    TotalMarket,
    decision_tier,
    edge_category,
    evaluate_spread,
    evaluate_total,
    percentile,
    spread_category,
    spread_cover,
    summarize,
    total_category,
)


class TestDistribution:
    """Mean, median and percentile convention"""

    def test_five_totals(self):
        dist = Distribution.from_values([38, 41, 45, 50, 52])
        assert dist.median == 45
        assert dist.mean == pytest.approx(45.2)
        assert dist.p10 == 38
        assert dist.p25 == 41
        assert dist.p50 == 45
        assert dist.p75 == 50
        assert dist.p90 == 50

    def test_unsorted_input(self):
        dist = Distribution.from_values([52, 38, 50, 41, 45])
        assert dist.median == 45
        assert dist.p90 == 50

    def test_even_count_median_is_midpoint(self):
        assert Distribution.from_values([10, 20, 30, 40]).median == 25

    def test_percentile_index_floor(self):
        # floor((10 - 1) * 0.25) = 2
        assert percentile(list(range(10)), 0.25) == 2

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            Distribution.from_values([])


class TestOverUnder:
    """Totals probabilities"""

    def test_exact_sixty_percent(self):
        totals = np.array([50] * 6000 + [40] * 4000)
        market = over_under(totals, 47.5)
        assert market.p_over == 0.60
        assert market.p_under == 0.40
        assert market.p_push == 0.0

    def test_push_on_whole_number(self):
        market = over_under(np.array([44, 45, 45, 46]), 45)
        assert market.p_over == 0.25
        assert market.p_under == 0.25
        assert market.p_push == 0.5


class TestSpreadCover:
    """Home-quoted spread convention"""

    def test_home_favourite(self):
        margins = np.array([7, 3, 2, -4])
        market = spread_cover(margins, -3.0)
        # home covers when margin > 3
        assert market.p_home_cover == 0.25
        assert market.p_push == 0.25
        assert market.p_away_cover == 0.5

    def test_home_underdog(self):
        market = spread_cover(np.array([-7, -3, 0, 4]), 3.5)
        assert market.p_home_cover == 0.75
        assert market.p_away_cover == 0.25

    def test_probabilities_sum_to_one(self):
        margins = np.random.default_rng(42).integers(-20, 21, size=1000)
        market = spread_cover(margins, -2.5)
        assert market.p_home_cover + market.p_away_cover + market.p_push == pytest.approx(1.0)

    def test_alt_ladder_monotonic(self):
        margins = np.random.default_rng(42).integers(-20, 21, size=5000)
        ladder = alt_lines(margins)
        assert list(ladder) == list(ALT_SPREAD_LADDER)
        probs = list(ladder.values())
        assert probs == sorted(probs)


class TestMoneyline:
    """Win probabilities and fair odds"""

    def test_ties_reported_separately(self):
        ml = moneyline(np.array([24, 20, 17, 30, 21]), np.array([21, 20, 24, 10, 14]))
        assert ml.p_home_win == pytest.approx(0.6)
        assert ml.p_away_win == pytest.approx(0.2)
        assert ml.p_tie == pytest.approx(0.2)
        assert ml.p_home_no_tie == pytest.approx(0.75)
        assert ml.home_fair_odds == -300
        assert ml.away_fair_odds == 300

    def test_all_ties(self):
        ml = moneyline(np.array([10, 10]), np.array([10, 10]))
        assert ml.p_tie == 1.0
        assert ml.p_home_no_tie == 0.5
        assert ml.home_fair_odds == -100


class TestSummarize:
    """Full summary"""

    def _scores(self):
        rng = np.random.default_rng(42)
        return rng.integers(10, 35, size=2000), rng.integers(10, 35, size=2000)

    def test_markets_only_when_lines_given(self):
        home, away = self._scores()
        summary = summarize(home, away)
        assert summary.total_market is None
        assert summary.spread_market is None
        assert summary.p_over is None
        assert summary.p_home_cover is None
        assert summary.n_trials == 2000

    def test_all_markets(self):
        home, away = self._scores()
        summary = summarize(
            home, away, market_total=44.5, market_spread=-3.0,
            home_team_total=23.5, away_team_total=20.5,
        )
        assert summary.p_over == summary.total_market.p_over
        assert summary.home_team_total.line == 23.5
        assert summary.away_team_total.line == 20.5
        assert summary.total.mean == pytest.approx(float(np.mean(home + away)))
        assert summary.margin.mean == pytest.approx(float(np.mean(home - away)))

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            summarize(np.array([1, 2]), np.array([1]))

    def test_to_dict_and_row(self):
        home, away = self._scores()
        summary = summarize(home, away, home_team="KC", away_team="BUF", market_total=44.5)
        payload = summary.to_dict()
        assert payload["home_team"] == "KC"
        assert payload["total_market"]["line"] == 44.5
        assert payload["spread_market"] is None
        assert len(payload["alt_lines"]) == len(ALT_SPREAD_LADDER)
        row = summary.to_row()
        assert row["home"] == "KC"
        assert row["market_spread"] is None
        assert row["p_over"] == round(summary.total_market.p_over, 4)
        assert row["total_signal"] == summary.total_decision.signal
        assert row["spread_signal"] is None
        assert payload["spread_decision"] is None
        assert payload["total_decision"]["signal"] in ("OVER", "UNDER")

    def test_decisions_only_when_lines_given(self):
        home, away = self._scores()
        summary = summarize(home, away)
        assert summary.spread_decision is None
        assert summary.total_decision is None
        summary = summarize(home, away, market_total=44.5, market_spread=-3.0)
        assert summary.total_decision.model_edge == pytest.approx(summary.total.mean - 44.5)
        assert summary.spread_decision.model_margin == pytest.approx(summary.margin.mean)

def _spread(spread, home, away):
    return SpreadMarket(spread=spread, p_home_cover=home, p_away_cover=away, p_push=1.0 - home - away)


def _total(line, over, under):
    return TotalMarket(line=line, p_over=over, p_under=under, p_push=1.0 - over - under)


class TestDecisionTiers:
    """Approval threshold and tier boundaries"""

    @pytest.mark.parametrize("prob, tier", [
        (0.6001, 1),
        (0.60, 1),
        (0.5999, 2),
        (0.57, 2),
        (0.5699, 3),
        (0.54, 3),
        (0.5399, 0),
        (0.50, 0),
    ])
    def test_tier_boundaries(self, prob, tier):
        assert decision_tier(prob) == tier

    def test_threshold(self):
        assert APPROVAL_THRESHOLD == 0.54

    @pytest.mark.parametrize("abs_spread, category", [
        (0.0, "0-3"), (3.0, "0-3"), (3.5, "3-7"), (7.0, "3-7"),
        (7.5, "7-10"), (10.0, "7-10"), (10.5, "10+"),
    ])
    def test_spread_categories(self, abs_spread, category):
        assert spread_category(abs_spread) == category

    @pytest.mark.parametrize("line, category", [
        (41.5, "low"), (42.0, "mid"), (46.0, "mid"), (46.5, "high"),
    ])
    def test_total_categories(self, line, category):
        assert total_category(line) == category

    @pytest.mark.parametrize("edge, category", [
        (-3.5, "<-3"), (-3.0, "-3 to 0"), (-0.1, "-3 to 0"), (0.0, "0 to 3"), (3.0, "3+"),
    ])
    def test_edge_categories(self, edge, category):
        assert edge_category(edge) == category


class TestEvaluateSpread:
    """Side selection against a home-quoted spread"""

    def test_home_favourite_backed(self):
        decision = evaluate_spread(_spread(-3.0, 0.58, 0.40), model_margin=4.2)
        assert decision.signal == "HOME"
        assert decision.side_type == "FAV"
        assert decision.spread_category == "0-3"
        assert decision.tier == 2
        assert decision.approved is True
        assert decision.edge_vs_price == pytest.approx(0.58 - 0.5238, abs=1e-4)

    def test_away_underdog_backed(self):
        decision = evaluate_spread(_spread(-7.5, 0.45, 0.55), model_margin=5.0)
        assert decision.signal == "AWAY"
        assert decision.side_type == "DOG"
        assert decision.spread_category == "7-10"
        assert decision.tier == 3
        assert decision.approved is True

    def test_home_underdog(self):
        decision = evaluate_spread(_spread(6.5, 0.61, 0.39), model_margin=-2.0)
        assert decision.side_type == "DOG"
        assert decision.tier == 1

    def test_below_threshold_not_approved(self):
        decision = evaluate_spread(_spread(-1.0, 0.53, 0.47), model_margin=1.5)
        assert decision.signal == "HOME"
        assert decision.approved is False
        assert decision.tier == 0
        assert decision.edge_vs_price > 0

    def test_equal_probabilities_go_away(self):
        decision = evaluate_spread(_spread(-3.0, 0.45, 0.45), model_margin=3.0)
        assert decision.signal == "AWAY"
        assert decision.side_type == "DOG"

    def test_pickem_away_counts_as_favourite(self):
        decision = evaluate_spread(_spread(0.0, 0.40, 0.60), model_margin=-1.0)
        assert decision.side_type == "FAV"


class TestEvaluateTotal:
    """Over/under lean"""

    def test_over_with_edge(self):
        decision = evaluate_total(_total(44.5, 0.62, 0.38), model_total=49.0)
        assert decision.signal == "OVER"
        assert decision.model_edge == pytest.approx(4.5)
        assert decision.edge_category == "3+"
        assert decision.total_category == "mid"
        assert decision.tier == 1
        assert decision.approved is True

    def test_under_at_threshold(self):
        decision = evaluate_total(_total(48.0, 0.46, 0.54), model_total=46.5)
        assert decision.signal == "UNDER"
        assert decision.edge_category == "-3 to 0"
        assert decision.total_category == "high"
        assert decision.tier == 3
        assert decision.approved is True

    def test_equal_probabilities_lean_under(self):
        decision = evaluate_total(_total(41.0, 0.48, 0.48), model_total=41.0)
        assert decision.signal == "UNDER"
        assert decision.approved is False
        assert decision.total_category == "low"
        assert decision.to_dict()["tier"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
