"""Tests for the business case calculator."""
from __future__ import annotations

from dataclasses import replace

import pytest

from signal_engine.business_case import (
    BREAK_EVEN_FAST,
    BREAK_EVEN_MEDIUM,
    BREAK_EVEN_SLOW,
    DEFAULT_ASSUMPTIONS,
    CampaignData,
    CostAssumptions,
    ScenarioProjection,
    calculate_break_even,
    calculate_business_case,
    calculate_confidence,
    calculate_margin,
    calculate_price_insights,
    confidence_level,
)


@pytest.fixture()
def busy_campaign() -> CampaignData:
    return CampaignData(
        neat_idea_count=100, probably_buy_count=100, take_my_money_count=100,
        intent_count=10, price_ceilings=[40, 10, 30, 20],
        signal_score=60, completeness_score=70,
    )


class TestPriceInsights:
    def test_empty(self):
        insights = calculate_price_insights([])
        assert insights.avg_price_ceiling == 0.0
        assert insights.median_price_ceiling == 0.0
        assert insights.price_range == {"min": 0.0, "max": 0.0}
        assert insights.suggested_price_point == 0.0

    def test_lower_median_of_even_sample(self):
        insights = calculate_price_insights([40, 10, 30, 20])
        assert insights.median_price_ceiling == 30.0
        assert insights.avg_price_ceiling == 25.0
        assert insights.price_range == {"min": 10.0, "max": 40.0}
        assert insights.suggested_price_point == pytest.approx(25.5)


class TestScenarios:
    def test_scenarios_are_ordered(self, busy_campaign):
        result = calculate_business_case(busy_campaign)
        assert result.conservative.customers == 66
        assert result.moderate.customers == 99
        assert result.optimistic.customers == 134
        assert result.conservative.revenue <= result.moderate.revenue <= result.optimistic.revenue

    def test_revenue_uses_median(self, busy_campaign):
        result = calculate_business_case(busy_campaign)
        assert result.moderate.revenue == 99 * 30
        assert result.estimated_customers == result.moderate.customers

    def test_totals(self, busy_campaign):
        result = calculate_business_case(busy_campaign)
        assert result.total_demand_signals == 310
        assert result.weighted_demand == 900
        assert result.conversion_rates == {"NEAT_IDEA": 0.05, "PROBABLY_BUY": 0.25, "TAKE_MY_MONEY": 0.65}
        assert set(result.scenarios) == {"conservative", "moderate", "optimistic"}

    def test_margin_from_assumptions(self, busy_campaign):
        result = calculate_business_case(busy_campaign, CostAssumptions(margin_pct=55))
        assert all(s.margin == 55 for s in result.scenarios.values())


class TestConfidence:
    def test_no_data(self):
        assert calculate_confidence(CampaignData()) == ("low", 12)

    def test_medium(self):
        data = CampaignData(neat_idea_count=60, price_ceilings=[10.0] * 15, signal_score=40, completeness_score=70)
        assert calculate_confidence(data) == ("medium", 40)

    def test_strong_with_conviction_bonus(self):
        data = CampaignData(
            take_my_money_count=300, price_ceilings=[20.0] * 60, signal_score=80, completeness_score=90,
        )
        assert calculate_confidence(data) == ("very_high", 95)

    def test_support_and_intent_count_towards_signals(self):
        lobbies_only = CampaignData(neat_idea_count=40)
        with_pledges = CampaignData(neat_idea_count=40, support_count=30, intent_count=40)
        assert calculate_confidence(with_pledges)[1] > calculate_confidence(lobbies_only)[1]

    @pytest.mark.parametrize("score,level", [(80, "very_high"), (79, "high"), (60, "high"), (40, "medium"), (39, "low")])
    def test_levels(self, score, level):
        assert confidence_level(score) == level


class TestBreakEven:
    def test_units_and_revenue(self):
        scenario = ScenarioProjection(customers=99, revenue=2970, margin=40)
        be = calculate_break_even(scenario, 30.0)
        # 7000 / (30 - 10.5)
        assert be.units_sold == 359
        assert be.revenue_needed == 359 * 30
        assert be.time_to_break_even == BREAK_EVEN_MEDIUM

    @pytest.mark.parametrize("customers,bucket", [
        (501, BREAK_EVEN_FAST),
        (500, BREAK_EVEN_MEDIUM),
        (50, BREAK_EVEN_MEDIUM),
        (49, BREAK_EVEN_SLOW),
    ])
    def test_buckets(self, customers, bucket):
        scenario = ScenarioProjection(customers=customers, revenue=0, margin=40)
        assert calculate_break_even(scenario, 100.0).time_to_break_even == bucket

    def test_zero_price(self):
        be = calculate_break_even(ScenarioProjection(customers=0, revenue=0, margin=40), 0.0)
        assert be.units_sold == 0
        assert be.revenue_needed == 0
        assert be.time_to_break_even == BREAK_EVEN_SLOW

    def test_no_upfront_costs(self):
        assumptions = replace(DEFAULT_ASSUMPTIONS, fixed_costs=0, marketing_costs=0)
        be = calculate_break_even(ScenarioProjection(customers=10, revenue=0, margin=40), 50.0, assumptions)
        assert be.units_sold == 0

    def test_business_case_uses_moderate_scenario(self, busy_campaign):
        result = calculate_business_case(busy_campaign)
        assert result.break_even.units_sold == 359
        assert result.break_even.time_to_break_even == BREAK_EVEN_MEDIUM


class TestEmptyCampaign:
    def test_all_zero(self):
        result = calculate_business_case(CampaignData())
        assert result.total_demand_signals == 0
        assert result.moderate.customers == 0
        assert result.moderate.revenue == 0
        assert result.median_price_ceiling == 0.0
        assert result.break_even.units_sold == 0
        assert result.confidence_score == 12
        assert result.data_sufficiency == "Need more price ceiling data for confidence"


class TestDataSufficiency:
    def test_threshold_is_exclusive(self):
        assert calculate_business_case(CampaignData(price_ceilings=[10.0] * 20)).data_sufficiency.startswith("Need")
        assert calculate_business_case(CampaignData(price_ceilings=[10.0] * 21)).data_sufficiency.startswith("Sufficient")


class TestValidation:
    def test_negative_count(self):
        with pytest.raises(ValueError, match="intent_count"):
            CampaignData(intent_count=-3)

    def test_negative_price(self):
        with pytest.raises(ValueError, match="price_ceilings"):
            CampaignData(price_ceilings=[10.0, -1.0])


class TestCalculateMargin:
    def test_basic(self):
        assert calculate_margin(1000, 2, 100, fixed_costs=300) == 50

    def test_variable_costs(self):
        assert calculate_margin(1000, 2, 100, variable_costs=1) == 70

    def test_zero_revenue(self):
        assert calculate_margin(0, 5, 10) == 0

    def test_loss(self):
        assert calculate_margin(100, 2, 100) == -100
