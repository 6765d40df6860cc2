import pytest

from parlay_server.services.parlay_calculator import (
    calculate_parlay,
    calculate_parlay_slippage,
    check_liquidity,
    correlation_estimate,
    estimate_slippage,
    format_odds,
    get_correlation_warnings,
)


def _codes(calculation):
    return [w.code for w in calculation.warnings]


class TestCalculateParlay:
    def test_two_coin_flips(self, make_leg):
        calc = calculate_parlay([make_leg("a", price=0.5), make_leg("b", price=0.5)], 10)

        assert calc.combined_probability == pytest.approx(0.25)
        assert calc.combined_odds == pytest.approx(4.0)
        assert calc.potential_payout == pytest.approx(40.0)
        assert calc.roi == pytest.approx(3.0)
        assert calc.stake_per_leg == pytest.approx(5.0)
        assert [d.shares for d in calc.leg_details] == pytest.approx([10.0, 10.0])
        assert calc.warnings == []

    def test_empty_legs_is_neutral(self):
        calc = calculate_parlay([], 25)

        assert calc.combined_probability == 1.0
        assert calc.combined_odds == 1.0
        assert calc.potential_payout == pytest.approx(25.0)
        assert calc.stake_per_leg == 0.0
        assert "too_few_legs" in _codes(calc)

    def test_single_leg_warns(self, make_leg):
        calc = calculate_parlay([make_leg(price=0.4)], 10)
        assert calc.combined_odds == pytest.approx(2.5)
        assert _codes(calc) == ["too_few_legs"]

    def test_zero_price_is_infeasible(self, make_leg):
        calc = calculate_parlay([make_leg("a", price=0.0), make_leg("b", price=0.5)], 10)

        assert calc.combined_probability == 0.0
        assert calc.combined_odds == 0.0
        assert calc.potential_payout == 0.0
        assert "infeasible" in _codes(calc)

    def test_extreme_price_flags_leg(self, make_leg):
        calc = calculate_parlay([make_leg("a", price=0.99), make_leg("b", price=0.5)], 10)

        extreme = [w for w in calc.warnings if w.code == "extreme_price"]
        assert len(extreme) == 1
        assert extreme[0].leg_id == "a-YES"

    def test_zero_stake(self, make_leg):
        calc = calculate_parlay([make_leg("a", price=0.5), make_leg("b", price=0.5)], 0)
        assert calc.potential_payout == 0.0
        assert calc.roi == 0.0
        assert calc.combined_odds == pytest.approx(4.0)

    def test_leg_order_does_not_matter(self, make_leg):
        legs = [make_leg("a", price=0.3), make_leg("b", price=0.6), make_leg("c", price=0.8)]
        forward = calculate_parlay(legs, 10)
        backward = calculate_parlay(list(reversed(legs)), 10)
        assert forward.combined_odds == pytest.approx(backward.combined_odds)

    def test_extra_leg_never_lowers_odds(self, make_leg):
        base = [make_leg("a", price=0.6), make_leg("b", price=0.7)]
        before = calculate_parlay(base, 10).combined_odds

        assert calculate_parlay(base + [make_leg("c", price=0.9)], 10).combined_odds > before
        assert calculate_parlay(base + [make_leg("c", price=1.0)], 10).combined_odds == pytest.approx(before)


class TestCorrelation:
    def test_same_market_is_fully_correlated(self, make_leg):
        assert correlation_estimate(make_leg("a", "YES"), make_leg("a", "NO")) == 1.0

    def test_related_questions_warn(self, make_leg):
        legs = [
            make_leg("a", question="Will Trump win the election?"),
            make_leg("b", question="Will Republicans win the Senate?"),
        ]
        warnings = get_correlation_warnings(legs)

        assert len(warnings) == 1
        assert warnings[0].leg_ids == ["a-YES", "b-YES"]

    def test_unrelated_questions_do_not_warn(self, make_leg):
        legs = [
            make_leg("a", question="Will it snow in Paris?"),
            make_leg("b", question="Will the Lakers win?"),
        ]
        assert get_correlation_warnings(legs) == []


class TestSlippage:
    def test_no_liquidity_means_no_estimate(self, make_leg):
        assert estimate_slippage(make_leg(liquidity=None), 100) == 0.0

    def test_slippage_grows_with_stake(self, make_leg):
        leg = make_leg(liquidity=1000)
        assert estimate_slippage(leg, 100) == pytest.approx(0.1 ** 1.5 * 100)
        assert estimate_slippage(leg, 200) > estimate_slippage(leg, 100)

    def test_parlay_slippage_warns_on_thin_books(self, make_leg):
        legs = [make_leg("a", liquidity=100), make_leg("b", liquidity=100)]
        estimate = calculate_parlay_slippage(legs, 100)

        assert estimate.total_slippage == pytest.approx(0.5 ** 1.5 * 100)
        assert len(estimate.leg_slippage) == 2
        assert estimate.warning is not None

    def test_liquidity_check(self, make_leg):
        assert check_liquidity(make_leg(liquidity=100), 20).adequate is False
        moderate = check_liquidity(make_leg(liquidity=100), 8)
        assert moderate.adequate is True
        assert moderate.warning is not None
        assert check_liquidity(make_leg(liquidity=None), 20).adequate is True


@pytest.mark.parametrize("style,expected", [
    ("decimal", "×4.00"),
    ("american", "+300"),
    ("probability", "25.0%"),
    ("fractional", "300/100"),
])
def test_format_odds(style, expected):
    assert format_odds(4.0, style) == expected
