"""Brand outreach orchestration.

Decides from verified lobby counts whether a campaign merits outreach, picks
candidate brand contacts, and queues a rendered demand-report email.
"""
from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from signal_engine.aggregation import get_campaign_or_raise
from signal_engine.models import (
    Brand, BrandTeamMember, Campaign, CampaignStatus, Lobby, LobbyStatus, OutreachQueue,
)
from signal_engine.renderers import format_outreach_email
from signal_engine.report import generate_demand_report
from signal_engine.utils import as_naive_utc

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://productlobby.com"
MAX_SIMILAR_BRANDS = 5


class OutreachTier(str, enum.Enum):
    NONE = "NONE"
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class OutreachNotEligible(Exception):
    """The campaign is not LIVE or has too few verified lobbies for outreach."""
    def __init__(self, campaign_id: int, status: str, tier: OutreachTier):
        super().__init__(f"Campaign {campaign_id} is not eligible for outreach (status {status}, tier {tier.value})")
        self.campaign_id = campaign_id
        self.status = status
        self.tier = tier


# Minimum verified lobbies for each tier
OUTREACH_THRESHOLDS: dict[OutreachTier, int] = {
    OutreachTier.BRONZE: 50,
    OutreachTier.SILVER: 200,
    OutreachTier.GOLD: 500,
    OutreachTier.PLATINUM: 1000,
}


@dataclass
class BrandContact:
    id: int
    name: str
    email: str
    category: str


@dataclass
class OutreachOpportunity:
    campaign_id: int
    campaign_title: str
    tier: OutreachTier
    lobby_count: int
    signal_score: float
    targeted_brand_id: int | None = None
    suggested_brands: list[BrandContact] = field(default_factory=list)


def app_base_url() -> str:
    return os.environ.get("APP_BASE_URL", DEFAULT_BASE_URL).rstrip("/")


def determine_outreach_tier(lobby_count: int) -> OutreachTier:
    """Highest tier whose threshold the count reaches; NONE below Bronze."""
    for tier, threshold in sorted(OUTREACH_THRESHOLDS.items(), key=lambda kv: kv[1], reverse=True):
        if lobby_count >= threshold:
            return tier
    return OutreachTier.NONE


def is_outreach_eligible(status: str, tier: OutreachTier) -> bool:
    return status == CampaignStatus.LIVE.value and tier != OutreachTier.NONE


def verified_lobby_count(session: Session, campaign_id: int) -> int:
    return session.execute(
        select(func.count(Lobby.id)).where(
            Lobby.campaign_id == campaign_id, Lobby.status == LobbyStatus.VERIFIED.value,
        )
    ).scalar_one()


def _first_team_email(brand: Brand) -> str:
    for member in brand.team:
        if member.user is not None and member.user.email:
            return member.user.email
    return ""


def identify_relevant_brands(session: Session, campaign_id: int) -> list[BrandContact]:
    """Targeted brand first, then up to five other verified or staffed brands.

    Brands without a reachable team email are skipped.
    """
    campaign = get_campaign_or_raise(session, campaign_id)
    contacts: list[BrandContact] = []

    if campaign.targeted_brand is not None:
        email = _first_team_email(campaign.targeted_brand)
        if email:
            contacts.append(BrandContact(
                id=campaign.targeted_brand.id, name=campaign.targeted_brand.name,
                email=email, category=campaign.category,
            ))
        else:
            log.warning("Targeted brand %s of campaign %s has no team email", campaign.targeted_brand_id, campaign_id)

    conditions = [or_(Brand.verified.is_(True), Brand.team.any())]
    if campaign.targeted_brand_id is not None:
        conditions.append(Brand.id != campaign.targeted_brand_id)
    query = (
        select(Brand)
        .where(*conditions)
        .options(selectinload(Brand.team).selectinload(BrandTeamMember.user))
        .order_by(Brand.id)
        .limit(MAX_SIMILAR_BRANDS)
    )
    for brand in session.execute(query).scalars().all():
        email = _first_team_email(brand)
        if email:
            contacts.append(BrandContact(id=brand.id, name=brand.name, email=email, category=campaign.category))
    return contacts


def check_outreach_thresholds(session: Session, campaign_id: int) -> OutreachOpportunity | None:
    """Outreach opportunity for a campaign, or None when it does not qualify."""
    campaign = session.execute(select(Campaign).where(Campaign.id == campaign_id)).scalars().first()
    if campaign is None or campaign.status != CampaignStatus.LIVE.value:
        return None

    lobby_count = verified_lobby_count(session, campaign_id)
    tier = determine_outreach_tier(lobby_count)
    if not is_outreach_eligible(campaign.status, tier):
        return None

    return OutreachOpportunity(
        campaign_id=campaign.id,
        campaign_title=campaign.title,
        tier=tier,
        lobby_count=lobby_count,
        signal_score=campaign.signal_score or 0.0,
        targeted_brand_id=campaign.targeted_brand_id,
        suggested_brands=identify_relevant_brands(session, campaign_id),
    )


def get_outreach_campaigns(session: Session) -> list[OutreachOpportunity]:
    """All live campaigns that qualify for outreach, biggest lobby count first."""
    campaign_ids = session.execute(
        select(Campaign.id).where(Campaign.status == CampaignStatus.LIVE.value)
    ).scalars().all()
    opportunities = [o for o in (check_outreach_thresholds(session, cid) for cid in campaign_ids) if o]
    opportunities.sort(key=lambda o: o.lobby_count, reverse=True)
    return opportunities


def schedule_outreach(
    session: Session,
    campaign_id: int,
    brand_email: str,
    brand_name: str,
    now: datetime,
    base_url: str | None = None,
) -> OutreachQueue:
    """Render the demand report email and queue it as PENDING (caller must commit).

    Raises :class:`~signal_engine.aggregation.CampaignNotFound`, then
    :class:`OutreachNotEligible` when the campaign is not LIVE or its tier is NONE.
    """
    campaign = get_campaign_or_raise(session, campaign_id)
    tier = determine_outreach_tier(verified_lobby_count(session, campaign_id))
    if not is_outreach_eligible(campaign.status, tier):
        raise OutreachNotEligible(campaign_id, campaign.status, tier)

    report = generate_demand_report(session, campaign_id, now)
    campaign_url = f"{(base_url or app_base_url()).rstrip('/')}/campaigns/{report.campaign_slug or campaign_id}"
    email = format_outreach_email(brand_name, report, campaign_url, year=now.year)

    queued = OutreachQueue(
        campaign_id=campaign_id,
        brand_email=brand_email,
        brand_name=brand_name,
        subject=email.subject,
        html_content=email.html_content,
        plain_text_content=email.plain_text_content,
        status="PENDING",
        created_at=as_naive_utc(now),
    )
    session.add(queued)
    log.info("Queued outreach for campaign %s to %s <%s>", campaign_id, brand_name, brand_email)
    return queued
