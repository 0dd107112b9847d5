"""Business case calculation.

Answers "if a brand built this, how much could they make?" from the same raw
counts the signal score uses, plus the list of observed price ceilings.
Everything here is a pure function; cost assumptions are defaults that callers
may override with :func:`dataclasses.replace`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from signal_engine.models import LobbyIntensity
from signal_engine.scoring import INTENSITY_WEIGHTS, INTENT_CONVERSION_RATE
from signal_engine.utils import round2, round_half_up

log = logging.getLogger(__name__)

SCENARIO_CONVERSION_RATES: dict[str, dict[LobbyIntensity, float]] = {
    "conservative": {
        LobbyIntensity.NEAT_IDEA: 0.02,
        LobbyIntensity.PROBABLY_BUY: 0.15,
        LobbyIntensity.TAKE_MY_MONEY: 0.45,
    },
    "moderate": {
        LobbyIntensity.NEAT_IDEA: 0.05,
        LobbyIntensity.PROBABLY_BUY: 0.25,
        LobbyIntensity.TAKE_MY_MONEY: 0.65,
    },
    "optimistic": {
        LobbyIntensity.NEAT_IDEA: 0.10,
        LobbyIntensity.PROBABLY_BUY: 0.40,
        LobbyIntensity.TAKE_MY_MONEY: 0.80,
    },
}
SCENARIOS = tuple(SCENARIO_CONVERSION_RATES)

SUGGESTED_PRICE_RATIO = 0.85
SUFFICIENT_PRICE_SAMPLE = 20

BREAK_EVEN_FAST = "~1-2 months"
BREAK_EVEN_MEDIUM = "~3-4 months"
BREAK_EVEN_SLOW = "~6+ months"


@dataclass(frozen=True)
class CostAssumptions:
    """Flat business assumptions; not derived from per-campaign cost data."""
    margin_pct: float = 40.0
    cogs_ratio: float = 0.35
    fixed_costs: float = 5000.0
    marketing_costs: float = 2000.0
    fast_customers: int = 500  # above this: ~1-2 months
    slow_customers: int = 50   # below this: ~6+ months


DEFAULT_ASSUMPTIONS = CostAssumptions()


@dataclass(frozen=True)
class CampaignData:
    neat_idea_count: int = 0
    probably_buy_count: int = 0
    take_my_money_count: int = 0
    support_count: int = 0
    intent_count: int = 0
    intent_verified_count: int = 0
    price_ceilings: list[float] = field(default_factory=list)
    signal_score: float = 0.0
    completeness_score: float = 0.0

    def __post_init__(self) -> None:
        for name in (
            "neat_idea_count", "probably_buy_count", "take_my_money_count",
            "support_count", "intent_count", "intent_verified_count",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)!r}")
        if any(p < 0 for p in self.price_ceilings):
            raise ValueError("price_ceilings must be non-negative")

    @property
    def total_lobbies(self) -> int:
        return self.neat_idea_count + self.probably_buy_count + self.take_my_money_count

    def lobby_counts(self) -> dict[LobbyIntensity, int]:
        return {
            LobbyIntensity.NEAT_IDEA: self.neat_idea_count,
            LobbyIntensity.PROBABLY_BUY: self.probably_buy_count,
            LobbyIntensity.TAKE_MY_MONEY: self.take_my_money_count,
        }


@dataclass
class ScenarioProjection:
    customers: int
    revenue: int
    margin: float  # percentage


@dataclass
class PriceInsights:
    avg_price_ceiling: float = 0.0
    median_price_ceiling: float = 0.0
    price_range: dict[str, float] = field(default_factory=lambda: {"min": 0.0, "max": 0.0})
    suggested_price_point: float = 0.0


@dataclass
class BreakEvenAnalysis:
    units_sold: int
    revenue_needed: int
    time_to_break_even: str


@dataclass
class BusinessCaseResult:
    total_demand_signals: int
    weighted_demand: int
    conservative: ScenarioProjection
    moderate: ScenarioProjection
    optimistic: ScenarioProjection
    avg_price_ceiling: float
    median_price_ceiling: float
    price_range: dict[str, float]
    suggested_price_point: float
    conversion_rates: dict[str, float]
    estimated_customers: int
    confidence_level: str
    confidence_score: int
    data_sufficiency: str
    break_even: BreakEvenAnalysis

    @property
    def scenarios(self) -> dict[str, ScenarioProjection]:
        return {"conservative": self.conservative, "moderate": self.moderate, "optimistic": self.optimistic}


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


def calculate_price_insights(price_ceilings: list[float]) -> PriceInsights:
    """Min / max / mean / lower median of the ceilings; all zero when empty."""
    if not price_ceilings:
        return PriceInsights()
    ordered = sorted(price_ceilings)
    median = float(ordered[len(ordered) // 2])
    return PriceInsights(
        avg_price_ceiling=round2(sum(ordered) / len(ordered)),
        median_price_ceiling=median,
        price_range={"min": float(ordered[0]), "max": float(ordered[-1])},
        suggested_price_point=round2(median * SUGGESTED_PRICE_RATIO),
    )


def calculate_scenario_projection(
    data: CampaignData,
    conversions: dict[LobbyIntensity, float],
    unit_price: float,
    assumptions: CostAssumptions = DEFAULT_ASSUMPTIONS,
) -> ScenarioProjection:
    # Intent pledges convert at the same rate in every scenario
    expected = sum(conversions[k] * n for k, n in data.lobby_counts().items())
    expected += data.intent_count * INTENT_CONVERSION_RATE
    customers = int(round_half_up(expected))
    return ScenarioProjection(
        customers=customers,
        revenue=int(round_half_up(customers * unit_price)),
        margin=assumptions.margin_pct,
    )


def _total_signal_points(total: int) -> int:
    if total > 200:
        return 30
    if total > 100:
        return 20
    if total > 50:
        return 10
    return 5


def _price_sample_points(n: int) -> int:
    if n > 50:
        return 25
    if n > 20:
        return 20
    if n > 10:
        return 15
    if n > 0:
        return 10
    return 0


def _signal_score_points(score: float) -> int:
    if score > 75:
        return 25
    if score > 55:
        return 20
    if score > 35:
        return 10
    return 5


def _completeness_points(completeness: float) -> int:
    if completeness > 80:
        return 10
    if completeness > 60:
        return 5
    return 2


def confidence_level(score: int) -> str:
    if score >= 80:
        return "very_high"
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def calculate_confidence(data: CampaignData) -> tuple[str, int]:
    """Additive 0-100 confidence in the projections, with its level."""
    total_signals = data.total_lobbies + data.support_count + data.intent_count
    score = (
        _total_signal_points(total_signals)
        + _price_sample_points(len(data.price_ceilings))
        + _signal_score_points(data.signal_score)
        + _completeness_points(data.completeness_score)
    )
    if data.total_lobbies > 0 and data.take_my_money_count / data.total_lobbies > 0.2:
        score += 5
    score = min(score, 100)
    return confidence_level(score), score


def calculate_break_even(
    scenario: ScenarioProjection,
    unit_price: float,
    assumptions: CostAssumptions = DEFAULT_ASSUMPTIONS,
) -> BreakEvenAnalysis:
    """Rough units-to-recover-costs heuristic with a coarse time bucket.

    The bucket strings are consumed verbatim downstream.
    """
    unit_cost = unit_price * assumptions.cogs_ratio
    unit_contribution = unit_price - unit_cost
    upfront = assumptions.fixed_costs + assumptions.marketing_costs
    units = math.ceil(upfront / unit_contribution) if unit_contribution > 0 else 0

    if scenario.customers > assumptions.fast_customers:
        bucket = BREAK_EVEN_FAST
    elif scenario.customers < assumptions.slow_customers:
        bucket = BREAK_EVEN_SLOW
    else:
        bucket = BREAK_EVEN_MEDIUM

    return BreakEvenAnalysis(
        units_sold=units,
        revenue_needed=int(round_half_up(unit_price * units)),
        time_to_break_even=bucket,
    )


def calculate_margin(
    gross_revenue: float,
    production_cost_per_unit: float,
    units_sold: int,
    fixed_costs: float = 0.0,
    variable_costs: float = 0.0,
) -> int:
    """Profit margin percentage after production, variable and fixed costs."""
    if gross_revenue == 0:
        return 0
    total_costs = (production_cost_per_unit + variable_costs) * units_sold + fixed_costs
    return int(round_half_up((gross_revenue - total_costs) / gross_revenue * 100))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def calculate_business_case(
    data: CampaignData, assumptions: CostAssumptions = DEFAULT_ASSUMPTIONS,
) -> BusinessCaseResult:
    """Three-scenario revenue projection with pricing, confidence and break-even."""
    counts = data.lobby_counts()
    prices = calculate_price_insights(data.price_ceilings)
    median = prices.median_price_ceiling

    projections = {
        name: calculate_scenario_projection(data, rates, median, assumptions)
        for name, rates in SCENARIO_CONVERSION_RATES.items()
    }
    level, confidence = calculate_confidence(data)
    break_even = calculate_break_even(projections["moderate"], median, assumptions)

    log.debug(
        "Business case: moderate %d customers, confidence %d (%s)",
        projections["moderate"].customers, confidence, level,
    )
    return BusinessCaseResult(
        total_demand_signals=data.total_lobbies + data.support_count + data.intent_count,
        weighted_demand=sum(INTENSITY_WEIGHTS[k] * n for k, n in counts.items()),
        conservative=projections["conservative"],
        moderate=projections["moderate"],
        optimistic=projections["optimistic"],
        avg_price_ceiling=prices.avg_price_ceiling,
        median_price_ceiling=median,
        price_range=prices.price_range,
        suggested_price_point=prices.suggested_price_point,
        conversion_rates={k.value: v for k, v in SCENARIO_CONVERSION_RATES["moderate"].items()},
        estimated_customers=projections["moderate"].customers,
        confidence_level=level,
        confidence_score=confidence,
        data_sufficiency=(
            "Sufficient data for reliable projections"
            if len(data.price_ceilings) > SUFFICIENT_PRICE_SAMPLE
            else "Need more price ceiling data for confidence"
        ),
        break_even=break_even,
    )
