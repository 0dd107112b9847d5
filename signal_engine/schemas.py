"""Pydantic request/response schemas for the Signal Engine API."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


class SignalInputsOut(BaseModel):
    support_count: int
    intent_count: int
    intent_phone_verified_count: int
    median_price_ceiling: float
    p90_price_ceiling: float
    intent_last_7_days: int
    intent_prev_7_days: int
    fraud_risk_score: float
    neat_idea_count: int
    probably_buy_count: int
    take_my_money_count: int
    completeness_score: float


class SignalScoreOut(BaseModel):
    score: float
    tier: str
    demand_value: float
    momentum: float
    lobby_conviction: float
    projected_customers: int
    projected_revenue: int
    inputs: SignalInputsOut


class CachedScoreOut(BaseModel):
    campaign_id: int
    signal_score: float
    signal_score_updated_at: datetime


class ScenarioOut(BaseModel):
    customers: int
    revenue: int
    margin: float


class BreakEvenOut(BaseModel):
    units_sold: int
    revenue_needed: int
    time_to_break_even: str


class BusinessCaseOut(BaseModel):
    total_demand_signals: int
    weighted_demand: int
    conservative: ScenarioOut
    moderate: ScenarioOut
    optimistic: ScenarioOut
    avg_price_ceiling: float
    median_price_ceiling: float
    price_range: dict[str, float]
    suggested_price_point: float
    conversion_rates: dict[str, float]
    estimated_customers: int
    confidence_level: str
    confidence_score: int
    data_sufficiency: str
    break_even: BreakEvenOut


class SignalBreakdownOut(BaseModel):
    neat_idea: int
    probably_buy: int
    take_my_money: int
    total: int
    percentages: dict[str, float] = {}


class MarketSizeOut(BaseModel):
    projected_customers: int
    projected_revenue: int
    median_price: float
    p90_price: float


class GrowthOut(BaseModel):
    lobbies_last_7_days: int
    lobbies_last_30_days: int
    growth_rate: float
    trend: str


class CompetitorOut(BaseModel):
    name: str
    brand: str | None = None
    price: float | None = None
    pros: str | None = None
    cons: str | None = None


class CompetitorAnalysisOut(BaseModel):
    count: int
    average_price: float
    common_themes: list[str] = []
    competitors: list[CompetitorOut] = []


class CommentOut(BaseModel):
    content: str
    user: str
    intensity: str | None = None


class DemandReportOut(BaseModel):
    campaign_id: int
    campaign_title: str
    campaign_description: str
    category: str
    campaign_slug: str
    signal_score: float
    signal_tier: str
    signal_breakdown: SignalBreakdownOut
    market_size: MarketSizeOut
    growth: GrowthOut
    competitor_analysis: CompetitorAnalysisOut
    top_comments: list[CommentOut] = []
    recommendations: list[str] = []


class BrandContactOut(BaseModel):
    id: int
    name: str
    email: str
    category: str


class OutreachOpportunityOut(BaseModel):
    campaign_id: int
    campaign_title: str
    tier: str
    lobby_count: int
    signal_score: float
    targeted_brand_id: int | None = None
    suggested_brands: list[BrandContactOut] = []


class ScheduleOutreachRequest(BaseModel):
    brand_email: str
    brand_name: str

    @field_validator("brand_email")
    @classmethod
    def email_must_look_valid(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("brand_email must be an email address")
        return v

    @field_validator("brand_name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("brand_name must not be blank")
        return v


class QueuedOutreachOut(BaseModel):
    id: int
    campaign_id: int
    brand_email: str
    brand_name: str
    subject: str
    status: str
    created_at: datetime


class RefreshResult(BaseModel):
    refreshed: int
    campaign_ids: list[int]


class CampaignScoreOut(BaseModel):
    id: int
    slug: str
    title: str
    category: str
    status: str
    signal_score: float | None = None
    signal_score_updated_at: str | None = None
