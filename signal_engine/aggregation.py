"""Aggregation reader: the single place raw campaign activity enters the engine.

Reads one campaign and its lobbies, pledges, competitors and comments into a
:class:`CampaignSnapshot`.  All sub-queries share one session; without
snapshot isolation (SQLite default) counts may be mildly inconsistent between
sub-queries, which is acceptable for advisory scoring.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from signal_engine.business_case import CampaignData
from signal_engine.models import (
    Campaign, Comment, CommentStatus, Competitor, Lobby, LobbyIntensity, LobbyStatus, Pledge, PledgeType,
)
from signal_engine.scoring import ScoreCacheEntry, SignalScoreInputs
from signal_engine.utils import as_naive_utc, percentile_floor

log = logging.getLogger(__name__)

TOP_COMMENT_LIMIT = 10


class CampaignNotFound(LookupError):
    """The referenced campaign does not exist."""
    def __init__(self, campaign_id: int):
        super().__init__(f"Campaign {campaign_id} not found")
        self.campaign_id = campaign_id


@dataclass
class CompetitorRecord:
    name: str
    brand: str | None
    price: float | None
    pros: str | None
    cons: str | None


@dataclass
class CommentRecord:
    content: str
    user: str
    user_id: int
    created_at: datetime


@dataclass
class CampaignSnapshot:
    campaign_id: int
    slug: str
    title: str
    description: str
    category: str
    status: str
    completeness_score: float
    targeted_brand_id: int | None
    cache: ScoreCacheEntry
    lobby_counts: dict[LobbyIntensity, int]
    lobbies_last_7_days: int = 0
    lobbies_last_30_days: int = 0
    support_count: int = 0
    intent_count: int = 0
    intent_phone_verified_count: int = 0
    intent_last_7_days: int = 0
    intent_prev_7_days: int = 0
    price_ceilings: list[float] = field(default_factory=list)  # ascending
    competitors: list[CompetitorRecord] = field(default_factory=list)
    comments: list[CommentRecord] = field(default_factory=list)  # newest first
    intensity_by_user: dict[int, LobbyIntensity] = field(default_factory=dict)
    fraud_risk_score: float = 0.0

    @property
    def total_lobbies(self) -> int:
        return sum(self.lobby_counts.values())

    @property
    def median_price_ceiling(self) -> float:
        return percentile_floor(self.price_ceilings, 0.5)

    @property
    def p90_price_ceiling(self) -> float:
        return percentile_floor(self.price_ceilings, 0.9)

    def to_signal_inputs(self) -> SignalScoreInputs:
        return SignalScoreInputs(
            support_count=self.support_count,
            intent_count=self.intent_count,
            intent_phone_verified_count=self.intent_phone_verified_count,
            median_price_ceiling=self.median_price_ceiling,
            p90_price_ceiling=self.p90_price_ceiling,
            intent_last_7_days=self.intent_last_7_days,
            intent_prev_7_days=self.intent_prev_7_days,
            fraud_risk_score=self.fraud_risk_score,
            neat_idea_count=self.lobby_counts[LobbyIntensity.NEAT_IDEA],
            probably_buy_count=self.lobby_counts[LobbyIntensity.PROBABLY_BUY],
            take_my_money_count=self.lobby_counts[LobbyIntensity.TAKE_MY_MONEY],
            completeness_score=self.completeness_score,
        )

    def to_campaign_data(self, signal_score: float) -> CampaignData:
        return CampaignData(
            neat_idea_count=self.lobby_counts[LobbyIntensity.NEAT_IDEA],
            probably_buy_count=self.lobby_counts[LobbyIntensity.PROBABLY_BUY],
            take_my_money_count=self.lobby_counts[LobbyIntensity.TAKE_MY_MONEY],
            support_count=self.support_count,
            intent_count=self.intent_count,
            intent_verified_count=self.intent_phone_verified_count,
            price_ceilings=list(self.price_ceilings),
            signal_score=signal_score,
            completeness_score=self.completeness_score,
        )


def get_campaign_or_raise(session: Session, campaign_id: int) -> Campaign:
    campaign = session.execute(select(Campaign).where(Campaign.id == campaign_id)).scalars().first()
    if campaign is None:
        raise CampaignNotFound(campaign_id)
    return campaign


def _price_ceiling(pledge: Pledge) -> float | None:
    if pledge.price_ceiling is None:
        return None
    value = float(pledge.price_ceiling)
    if value < 0:
        raise ValueError(f"Pledge {pledge.id} has a negative price ceiling: {value}")
    return value


def read_campaign_snapshot(session: Session, campaign_id: int, now: datetime) -> CampaignSnapshot:
    """Gather every count the scorer, business case and report need.

    Raises :class:`CampaignNotFound` if the campaign does not exist.
    """
    campaign = get_campaign_or_raise(session, campaign_id)
    now = as_naive_utc(now)
    seven_days_ago = now - timedelta(days=7)
    fourteen_days_ago = now - timedelta(days=14)
    thirty_days_ago = now - timedelta(days=30)

    lobbies = session.execute(
        select(Lobby)
        .where(Lobby.campaign_id == campaign_id, Lobby.status == LobbyStatus.VERIFIED.value)
        .order_by(Lobby.created_at, Lobby.id)
    ).scalars().all()
    pledges = session.execute(
        select(Pledge).where(Pledge.campaign_id == campaign_id).options(selectinload(Pledge.user))
    ).scalars().all()
    competitors = session.execute(
        select(Competitor).where(Competitor.campaign_id == campaign_id).order_by(Competitor.order, Competitor.id)
    ).scalars().all()
    comments = session.execute(
        select(Comment)
        .where(Comment.campaign_id == campaign_id, Comment.status == CommentStatus.VISIBLE.value)
        .options(selectinload(Comment.user))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .limit(TOP_COMMENT_LIMIT)
    ).scalars().all()

    lobby_counts: Counter[LobbyIntensity] = Counter({k: 0 for k in LobbyIntensity})
    intensity_by_user: dict[int, LobbyIntensity] = {}
    lobbies_7d = lobbies_30d = 0
    for lobby in lobbies:
        intensity = LobbyIntensity(lobby.intensity)
        lobby_counts[intensity] += 1
        if lobby.user_id is not None:
            intensity_by_user[lobby.user_id] = intensity  # latest lobby wins
        created = as_naive_utc(lobby.created_at)
        if created >= seven_days_ago:
            lobbies_7d += 1
        if created >= thirty_days_ago:
            lobbies_30d += 1

    intents = [p for p in pledges if p.pledge_type == PledgeType.INTENT.value]
    ceilings = sorted(c for c in (_price_ceiling(p) for p in intents) if c is not None)
    intent_7d = intent_prev_7d = 0
    for pledge in intents:
        created = as_naive_utc(pledge.created_at)
        if created >= seven_days_ago:
            intent_7d += 1
        elif created >= fourteen_days_ago:
            intent_prev_7d += 1

    snapshot = CampaignSnapshot(
        campaign_id=campaign.id,
        slug=campaign.slug,
        title=campaign.title,
        description=campaign.description,
        category=campaign.category,
        status=campaign.status,
        completeness_score=campaign.completeness_score or 0,
        targeted_brand_id=campaign.targeted_brand_id,
        cache=ScoreCacheEntry(score=campaign.signal_score, updated_at=campaign.signal_score_updated_at),
        lobby_counts=dict(lobby_counts),
        lobbies_last_7_days=lobbies_7d,
        lobbies_last_30_days=lobbies_30d,
        support_count=sum(1 for p in pledges if p.pledge_type == PledgeType.SUPPORT.value),
        intent_count=len(intents),
        intent_phone_verified_count=sum(1 for p in intents if p.user is not None and p.user.phone_verified),
        intent_last_7_days=intent_7d,
        intent_prev_7_days=intent_prev_7d,
        price_ceilings=ceilings,
        competitors=[
            CompetitorRecord(
                name=c.name, brand=c.brand,
                price=float(c.price) if c.price is not None else None,
                pros=c.pros, cons=c.cons,
            )
            for c in competitors
        ],
        comments=[
            CommentRecord(
                content=c.content, user=c.user.display_name if c.user else "",
                user_id=c.user_id, created_at=c.created_at,
            )
            for c in comments
        ],
        intensity_by_user=intensity_by_user,
    )
    log.debug(
        "Snapshot for campaign %s: %d lobbies, %d intent, %d support, %d price ceilings",
        campaign_id, snapshot.total_lobbies, snapshot.intent_count, snapshot.support_count, len(ceilings),
    )
    return snapshot
