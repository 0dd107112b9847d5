"""Shared operations for the API and batch jobs: reader + pure engine + cache."""
from __future__ import annotations

import logging
import math
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from signal_engine.aggregation import get_campaign_or_raise, read_campaign_snapshot
from signal_engine.business_case import (
    DEFAULT_ASSUMPTIONS, BusinessCaseResult, CostAssumptions, calculate_business_case,
)
from signal_engine.models import Campaign, CampaignStatus
from signal_engine.outreach import OutreachOpportunity
from signal_engine.report import DemandReport
from signal_engine.scoring import (
    ScoreCacheEntry, SignalScoreResult, compute_signal_score, tier_bounds,
)
from signal_engine.utils import as_naive_utc

log = logging.getLogger(__name__)

DEFAULT_STALE_MINUTES = 5
REFRESH_BATCH_SIZE = 100

# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def signal_result_dict(result: SignalScoreResult) -> dict[str, Any]:
    return asdict(result)


def business_case_dict(result: BusinessCaseResult) -> dict[str, Any]:
    return asdict(result)


def report_dict(report: DemandReport) -> dict[str, Any]:
    data = asdict(report)
    data["signal_breakdown"]["percentages"] = report.signal_breakdown.percentages()
    return data


def opportunity_dict(opportunity: OutreachOpportunity) -> dict[str, Any]:
    data = asdict(opportunity)
    data["tier"] = opportunity.tier.value
    return data


def campaign_score_summary(campaign: Campaign) -> dict[str, Any]:
    return {
        "id": campaign.id, "slug": campaign.slug, "title": campaign.title,
        "category": campaign.category, "status": campaign.status,
        "signal_score": campaign.signal_score,
        "signal_score_updated_at": (
            campaign.signal_score_updated_at.isoformat() if campaign.signal_score_updated_at else None
        ),
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def calculate_signal_score(session: Session, campaign_id: int, now: datetime) -> SignalScoreResult:
    """Read the campaign's activity and score it. Raises CampaignNotFound."""
    snapshot = read_campaign_snapshot(session, campaign_id, now)
    return compute_signal_score(snapshot.to_signal_inputs())


def business_case_for(
    session: Session,
    campaign_id: int,
    now: datetime,
    assumptions: CostAssumptions = DEFAULT_ASSUMPTIONS,
) -> BusinessCaseResult:
    snapshot = read_campaign_snapshot(session, campaign_id, now)
    signal = compute_signal_score(snapshot.to_signal_inputs())
    return calculate_business_case(snapshot.to_campaign_data(signal.score), assumptions)


def _store_cache(campaign: Campaign, entry: ScoreCacheEntry) -> None:
    campaign.signal_score = entry.score
    campaign.signal_score_updated_at = as_naive_utc(entry.updated_at) if entry.updated_at else None


def update_cached_signal_score(session: Session, campaign_id: int, now: datetime) -> float:
    """Recompute and store the cached score unconditionally (caller must commit)."""
    campaign = get_campaign_or_raise(session, campaign_id)
    result = calculate_signal_score(session, campaign_id, now)
    _store_cache(campaign, ScoreCacheEntry(score=result.score, updated_at=now))
    log.info("Cached signal score %.1f for campaign %s", result.score, campaign_id)
    return result.score


def refresh_stale_signal_scores(
    session: Session,
    now: datetime,
    stale_minutes: float = DEFAULT_STALE_MINUTES,
    batch_size: int = REFRESH_BATCH_SIZE,
) -> list[int]:
    """Refresh live campaigns whose cached score is missing or too old.

    Processes at most *batch_size* campaigns per call and returns their ids
    (caller must commit).
    """
    threshold = as_naive_utc(now) - timedelta(minutes=stale_minutes)
    campaigns = session.execute(
        select(Campaign)
        .where(
            Campaign.status == CampaignStatus.LIVE.value,
            or_(
                Campaign.signal_score.is_(None),
                Campaign.signal_score_updated_at.is_(None),
                Campaign.signal_score_updated_at < threshold,
            ),
        )
        .order_by(Campaign.signal_score_updated_at.is_not(None), Campaign.signal_score_updated_at, Campaign.id)
        .limit(batch_size)
    ).scalars().all()

    refreshed: list[int] = []
    for campaign in campaigns:
        entry = ScoreCacheEntry(score=campaign.signal_score, updated_at=campaign.signal_score_updated_at)
        if entry.refresh_if_stale(
            now, stale_minutes, lambda cid=campaign.id: calculate_signal_score(session, cid, now).score,
        ):
            _store_cache(campaign, entry)
            refreshed.append(campaign.id)
    log.info("Refreshed %d stale signal scores", len(refreshed))
    return refreshed


def campaigns_by_signal_tier(session: Session, tier: str, limit: int = 20) -> list[Campaign]:
    """Live campaigns whose cached score falls inside *tier*, highest first."""
    low, high = tier_bounds(tier)
    conditions = [
        Campaign.status == CampaignStatus.LIVE.value,
        Campaign.signal_score.is_not(None),
        Campaign.signal_score >= low,
    ]
    if not math.isinf(high):
        conditions.append(Campaign.signal_score < high)
    return list(session.execute(
        select(Campaign).where(*conditions).order_by(Campaign.signal_score.desc()).limit(limit)
    ).scalars().all())
