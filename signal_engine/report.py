"""Demand report builder.

Combines the signal score with growth trend, competitor gap themes, recent
supporter comments and advisory recommendations into a :class:`DemandReport`.
``generate_demand_report`` does the read; ``build_demand_report`` is pure.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from signal_engine.aggregation import CampaignSnapshot, CompetitorRecord, read_campaign_snapshot
from signal_engine.models import LobbyIntensity
from signal_engine.scoring import SignalScoreResult, compute_signal_score
from signal_engine.utils import round2, round_half_up

log = logging.getLogger(__name__)

WEEKS_PER_MONTH = 4.3
COMMENT_PREVIEW_CHARS = 150
MAX_THEMES = 5

TRENDS = ("declining", "flat", "growing", "accelerating")

FALLBACK_RECOMMENDATION = (
    "Build team, validate core assumptions, and prepare MVP. Market shows steady interest."
)


@dataclass
class SignalBreakdown:
    neat_idea: int = 0
    probably_buy: int = 0
    take_my_money: int = 0
    total: int = 0

    def percentages(self) -> dict[str, float]:
        """Share of each intensity in percent; all zero without lobbies."""
        if self.total == 0:
            return {"neat_idea": 0.0, "probably_buy": 0.0, "take_my_money": 0.0}
        return {
            "neat_idea": self.neat_idea / self.total * 100,
            "probably_buy": self.probably_buy / self.total * 100,
            "take_my_money": self.take_my_money / self.total * 100,
        }


@dataclass
class MarketSize:
    projected_customers: int = 0
    projected_revenue: int = 0
    median_price: float = 0.0
    p90_price: float = 0.0


@dataclass
class GrowthMetrics:
    lobbies_last_7_days: int = 0
    lobbies_last_30_days: int = 0
    growth_rate: float = 0.0
    trend: str = "flat"


@dataclass
class CompetitorSummary:
    name: str
    brand: str | None = None
    price: float | None = None
    pros: str | None = None
    cons: str | None = None


@dataclass
class CompetitorAnalysis:
    count: int = 0
    average_price: float = 0.0
    common_themes: list[str] = field(default_factory=list)
    competitors: list[CompetitorSummary] = field(default_factory=list)


@dataclass
class CommentSummary:
    content: str
    user: str
    intensity: str | None = None


@dataclass
class DemandReport:
    campaign_id: int
    campaign_title: str
    campaign_description: str
    category: str
    campaign_slug: str
    signal_score: float
    signal_tier: str
    signal_breakdown: SignalBreakdown
    market_size: MarketSize
    growth: GrowthMetrics
    competitor_analysis: CompetitorAnalysis
    top_comments: list[CommentSummary] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


def compute_growth_rate(last_7_days: int, last_30_days: int) -> float:
    """Last week versus the average week of the last month, in percent."""
    if last_7_days == 0 or last_30_days == 0:
        return 0.0
    return (last_7_days / (last_30_days / WEEKS_PER_MONTH) - 1) * 100


def classify_trend(growth_rate: float) -> str:
    if growth_rate < -10:
        return "declining"
    if growth_rate < 5:
        return "flat"
    if growth_rate < 50:
        return "growing"
    return "accelerating"


def extract_common_themes(cons_fields: list[str | None], limit: int = MAX_THEMES) -> list[str]:
    """Most frequent comma-separated complaint tokens across competitors.

    Tokens are trimmed and lower-cased; ties keep first-seen order.
    """
    counts: Counter[str] = Counter()
    for cons in cons_fields:
        if not cons:
            continue
        for token in cons.split(","):
            token = token.strip().lower()
            if token:
                counts[token] += 1
    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [theme for theme, _ in ranked[:limit]]


def competitor_average_price(competitors: list[CompetitorRecord]) -> float:
    if not competitors:
        return 0.0
    return round2(sum(c.price or 0.0 for c in competitors) / len(competitors))


def generate_recommendations(signal: SignalScoreResult, total_lobbies: int) -> list[str]:
    """Advisory lines in a fixed order, with a generic fallback."""
    recommendations: list[str] = []
    inputs = signal.inputs

    if signal.score > 80:
        recommendations.append(
            "Outstanding signal strength! This campaign shows exceptional market demand. "
            "Consider accelerating development roadmap."
        )
    if signal.projected_customers > 100:
        recommendations.append(
            f"Market analysis suggests potential for {signal.projected_customers}+ customers at launch. "
            "Consider scaling production planning accordingly."
        )
    if inputs.total_lobbies > 0 and inputs.take_my_money_count / inputs.total_lobbies > 0.4:
        recommendations.append(
            "Strong purchase intent evident in supporter feedback. "
            "Market is ready for competitive pricing at the higher end."
        )
    if signal.momentum > 1.5:
        recommendations.append(
            "Campaign momentum is accelerating. Recommend prioritizing this opportunity "
            "to capture mindshare before competitor entry."
        )
    if total_lobbies > 200:
        recommendations.append(
            "Large supporter base provides excellent feedback loop. "
            "Consider forming advisory group from top contributors."
        )
    if not recommendations:
        recommendations.append(FALLBACK_RECOMMENDATION)
    return recommendations


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def build_demand_report(snapshot: CampaignSnapshot, signal: SignalScoreResult) -> DemandReport:
    counts = snapshot.lobby_counts
    breakdown = SignalBreakdown(
        neat_idea=counts[LobbyIntensity.NEAT_IDEA],
        probably_buy=counts[LobbyIntensity.PROBABLY_BUY],
        take_my_money=counts[LobbyIntensity.TAKE_MY_MONEY],
        total=snapshot.total_lobbies,
    )
    growth_rate = compute_growth_rate(snapshot.lobbies_last_7_days, snapshot.lobbies_last_30_days)

    comments = []
    for c in snapshot.comments:
        intensity = snapshot.intensity_by_user.get(c.user_id)
        comments.append(CommentSummary(
            content=c.content[:COMMENT_PREVIEW_CHARS],
            user=c.user,
            intensity=intensity.value if intensity else None,
        ))

    return DemandReport(
        campaign_id=snapshot.campaign_id,
        campaign_title=snapshot.title,
        campaign_description=snapshot.description,
        category=snapshot.category,
        campaign_slug=snapshot.slug,
        signal_score=signal.score,
        signal_tier=signal.tier,
        signal_breakdown=breakdown,
        market_size=MarketSize(
            projected_customers=signal.projected_customers,
            projected_revenue=signal.projected_revenue,
            median_price=snapshot.median_price_ceiling,
            p90_price=snapshot.p90_price_ceiling,
        ),
        growth=GrowthMetrics(
            lobbies_last_7_days=snapshot.lobbies_last_7_days,
            lobbies_last_30_days=snapshot.lobbies_last_30_days,
            growth_rate=round_half_up(growth_rate, 1),
            trend=classify_trend(growth_rate),
        ),
        competitor_analysis=CompetitorAnalysis(
            count=len(snapshot.competitors),
            average_price=competitor_average_price(snapshot.competitors),
            common_themes=extract_common_themes([c.cons for c in snapshot.competitors]),
            competitors=[
                CompetitorSummary(name=c.name, brand=c.brand, price=c.price, pros=c.pros, cons=c.cons)
                for c in snapshot.competitors
            ],
        ),
        top_comments=comments,
        recommendations=generate_recommendations(signal, snapshot.total_lobbies),
    )


def generate_demand_report(session: Session, campaign_id: int, now: datetime) -> DemandReport:
    """Read a campaign snapshot and build its report.

    Raises :class:`~signal_engine.aggregation.CampaignNotFound`.
    """
    snapshot = read_campaign_snapshot(session, campaign_id, now)
    signal = compute_signal_score(snapshot.to_signal_inputs())
    report = build_demand_report(snapshot, signal)
    log.info("Built demand report for campaign %s (score %.1f, trend %s)",
             campaign_id, report.signal_score, report.growth.trend)
    return report
