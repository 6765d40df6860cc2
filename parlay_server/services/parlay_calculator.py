# parlay_server/services/parlay_calculator.py
"""
Parlay pricing.

Legs are treated as independent events: the combined probability is the plain
product of leg prices. Correlated markets (two linked political questions, say)
are priced as if independent; `get_correlation_warnings` only flags them.
"""
import math
from itertools import combinations
from typing import List, Sequence

from ..config import EXTREME_PRICE_HIGH, EXTREME_PRICE_LOW, MIN_PARLAY_LEGS
from ..models.api import (
    CorrelationWarning,
    Leg,
    LegDetail,
    LegSlippage,
    LiquidityCheck,
    ParlayCalculation,
    ParlayWarning,
    SlippageEstimate,
)


def calculate_parlay(legs: Sequence[Leg], stake: float) -> ParlayCalculation:
    """
    Combine leg prices into probability, decimal odds and payout.

    Args:
        legs: Selected legs, each priced 0-1
        stake: Amount wagered on the whole parlay
    Returns:
        ParlayCalculation; never raises for degenerate input
    """
    legs = list(legs)
    stake = float(stake)
    warnings: List[ParlayWarning] = []

    if len(legs) < MIN_PARLAY_LEGS:
        warnings.append(ParlayWarning(
            code="too_few_legs",
            message=f"A parlay needs at least {MIN_PARLAY_LEGS} legs; this one has {len(legs)}",
        ))

    for leg in legs:
        if leg.price <= EXTREME_PRICE_LOW or leg.price >= EXTREME_PRICE_HIGH:
            warnings.append(ParlayWarning(
                code="extreme_price",
                message=f"\"{leg.question[:40]}\" is priced at {leg.price:.3f}; the market may already be decided",
                leg_id=leg.id,
            ))

    if not legs:
        combined_probability = 1.0
        combined_odds = 1.0
    else:
        combined_probability = math.prod(leg.price for leg in legs)
        if combined_probability > 0:
            combined_odds = 1 / combined_probability
        else:
            combined_odds = 0.0
            warnings.append(ParlayWarning(
                code="infeasible",
                message="At least one leg is priced at 0; this parlay cannot pay out",
            ))

    potential_payout = stake * combined_odds
    roi = (potential_payout - stake) / stake if stake > 0 else 0.0
    stake_per_leg = stake / len(legs) if legs else 0.0

    leg_details = []
    for leg in legs:
        shares = stake_per_leg / leg.price if leg.price > 0 else 0.0
        leg_details.append(LegDetail(
            leg_id=leg.id,
            stake=stake_per_leg,
            shares=shares,
            # each share pays $1 if the leg wins
            potential_return=shares,
        ))

    return ParlayCalculation(
        legs=legs,
        stake=stake,
        combined_probability=combined_probability,
        combined_odds=combined_odds,
        potential_payout=potential_payout,
        roi=roi,
        stake_per_leg=stake_per_leg,
        leg_details=leg_details,
        warnings=warnings,
    )


CORRELATION_CATEGORIES = {
    "politics": ["trump", "biden", "republican", "democrat", "election", "senate", "congress",
                 "president", "gop", "dnc", "vote", "polls"],
    "sports": ["nba", "nfl", "mlb", "nhl", "soccer", "football", "basketball", "tennis", "golf",
               "boxing", "mma", "ufc", "olympics", "world cup"],
    "crypto": ["bitcoin", "btc", "ethereum", "eth", "crypto", "defi", "solana", "dogecoin", "xrp",
               "token", "blockchain"],
    "economy": ["fed", "interest rate", "inflation", "gdp", "recession", "unemployment", "jobs",
                "economy", "federal reserve", "rate hike"],
    "tech": ["ai", "openai", "google", "apple", "microsoft", "meta", "facebook", "amazon", "tesla",
             "nvidia", "tech", "semiconductor"],
}


def _mentions(question: str, category: str) -> int:
    return sum(1 for word in CORRELATION_CATEGORIES[category] if word in question)


def correlation_estimate(leg_a: Leg, leg_b: Leg) -> float:
    """Keyword heuristic in [0, 0.95]; 1.0 for the same market."""
    if leg_a.market_id == leg_b.market_id:
        return 1.0

    question_a = leg_a.question.lower()
    question_b = leg_b.question.lower()
    score = 0.0

    for category in CORRELATION_CATEGORIES:
        matches_a = _mentions(question_a, category)
        matches_b = _mentions(question_b, category)
        if matches_a and matches_b:
            score += 0.5 + 0.1 * min(matches_a, matches_b)

    politics_a, politics_b = _mentions(question_a, "politics"), _mentions(question_b, "politics")
    economy_a, economy_b = _mentions(question_a, "economy"), _mentions(question_b, "economy")
    if (politics_a and economy_b) or (economy_a and politics_b):
        score += 0.45

    if leg_a.category and leg_a.category == leg_b.category and leg_a.category != "other" and score == 0:
        score += 0.42

    return round(min(0.95, score), 2)


def get_correlation_warnings(legs: Sequence[Leg]) -> List[CorrelationWarning]:
    warnings = []
    for leg_a, leg_b in combinations(legs, 2):
        corr = correlation_estimate(leg_a, leg_b)
        if corr > 0.7:
            warnings.append(CorrelationWarning(
                message=f"These markets are highly correlated ({corr:.2f}) - your parlay risk is higher than it appears",
                level="HIGH",
                leg_ids=[leg_a.id, leg_b.id],
            ))
        elif corr >= 0.4:
            warnings.append(CorrelationWarning(
                message=f"These markets show medium correlation ({corr:.2f}) - true odds may be lower",
                level="MEDIUM",
                leg_ids=[leg_a.id, leg_b.id],
            ))
    return warnings


def estimate_slippage(leg: Leg, stake: float) -> float:
    """Percent price impact, growing with (stake / liquidity) ** 1.5, capped at 99."""
    if not leg.liquidity or leg.liquidity <= 0 or stake <= 0:
        return 0.0
    ratio = stake / leg.liquidity
    return min(ratio ** 1.5 * 100, 99.0)


def calculate_parlay_slippage(legs: Sequence[Leg], stake: float) -> SlippageEstimate:
    if not legs or stake <= 0:
        return SlippageEstimate(total_slippage=0.0)

    stake_per_leg = stake / len(legs)
    leg_slippage = [
        LegSlippage(leg_id=leg.id, slippage=estimate_slippage(leg, stake_per_leg), stake=stake_per_leg)
        for leg in legs
    ]
    total = sum(item.slippage for item in leg_slippage) / len(legs)

    warning = None
    if total > 5:
        warning = f"Estimated {total:.1f}% average slippage due to low liquidity. Consider reducing stake."

    return SlippageEstimate(total_slippage=total, leg_slippage=leg_slippage, warning=warning)


def check_liquidity(leg: Leg, stake_per_leg: float) -> LiquidityCheck:
    if not leg.liquidity:
        return LiquidityCheck(adequate=True)

    ratio = stake_per_leg / leg.liquidity
    slippage = estimate_slippage(leg, stake_per_leg)

    if ratio > 0.1:
        return LiquidityCheck(
            adequate=False,
            warning=f"Your stake exceeds 10% of available liquidity on \"{leg.question[:30]}...\". Expect significant slippage.",
            estimated_slippage=slippage,
        )
    if ratio > 0.05:
        return LiquidityCheck(
            adequate=True,
            warning=f"Moderate slippage expected on \"{leg.question[:30]}...\" ({ratio * 100:.1f}% of liquidity).",
            estimated_slippage=slippage,
        )
    return LiquidityCheck(adequate=True, estimated_slippage=slippage)


def format_odds(combined_odds: float, style: str = "decimal") -> str:
    if style == "american":
        return f"+{round((combined_odds - 1) * 100)}"
    if style == "probability":
        if combined_odds <= 0:
            return "0.0%"
        return f"{(1 / combined_odds) * 100:.1f}%"
    if style == "fractional":
        return f"{round((combined_odds - 1) * 100)}/100"
    return f"×{combined_odds:.2f}"
