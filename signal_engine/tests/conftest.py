"""Shared fixtures: in-memory SQLite and a seeded demo campaign."""
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from signal_engine.models import (
    Base, Brand, BrandTeamMember, Campaign, Comment, CommentStatus, Competitor, Lobby, Pledge, PledgeType, User,
)
from signal_engine.tests.factories import NOW


@pytest.fixture()
def engine():
    eng = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    sess = SessionLocal()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture()
def demo_campaign(session: Session) -> Campaign:
    """A live campaign with a bit of everything.

    Verified lobbies: TMM (2 days old), PROBABLY_BUY (20 days), NEAT_IDEA (40 days).
    Intent pledges: 40 (1 day), no ceiling (3 days), 60 (10 days). One support pledge.
    """
    ada = User(display_name="Ada", email="ada@example.com", phone_verified=True)
    bo = User(display_name="Bo", email="bo@example.com")
    session.add_all([ada, bo])
    session.flush()

    brand = Brand(name="Kettleworks", slug="kettleworks", verified=True)
    session.add(brand)
    session.flush()
    session.add(BrandTeamMember(brand_id=brand.id, user_id=bo.id))

    campaign = Campaign(
        slug="quiet-kettle", title="Quiet Kettle", description="A kettle you can't hear.",
        category="Kitchen", status="LIVE", completeness_score=80, targeted_brand_id=brand.id,
    )
    session.add(campaign)
    session.flush()

    session.add_all([
        Lobby(campaign_id=campaign.id, user_id=ada.id, intensity="TAKE_MY_MONEY",
              created_at=NOW - timedelta(days=2)),
        Lobby(campaign_id=campaign.id, user_id=bo.id, intensity="PROBABLY_BUY",
              created_at=NOW - timedelta(days=20)),
        Lobby(campaign_id=campaign.id, intensity="NEAT_IDEA", created_at=NOW - timedelta(days=40)),
        Lobby(campaign_id=campaign.id, intensity="TAKE_MY_MONEY", status="PENDING",
              created_at=NOW - timedelta(days=1)),
        Lobby(campaign_id=campaign.id, intensity="TAKE_MY_MONEY", status="REJECTED",
              created_at=NOW - timedelta(days=1)),
        Pledge(campaign_id=campaign.id, user_id=ada.id, pledge_type=PledgeType.INTENT.value,
               price_ceiling=Decimal("40.00"), created_at=NOW - timedelta(days=1)),
        Pledge(campaign_id=campaign.id, user_id=bo.id, pledge_type=PledgeType.INTENT.value,
               created_at=NOW - timedelta(days=3)),
        Pledge(campaign_id=campaign.id, user_id=bo.id, pledge_type=PledgeType.INTENT.value,
               price_ceiling=Decimal("60.00"), created_at=NOW - timedelta(days=10)),
        Pledge(campaign_id=campaign.id, user_id=ada.id, pledge_type=PledgeType.SUPPORT.value,
               price_ceiling=Decimal("999.00"), created_at=NOW - timedelta(days=1)),
        Competitor(campaign_id=campaign.id, name="BoilMax", brand="Boil Co", price=Decimal("30.00"),
                   pros="cheap", cons="loud, slow", order=0),
        Competitor(campaign_id=campaign.id, name="HushPot", brand=None, price=Decimal("50.00"),
                   pros="pretty", cons="Loud", order=1),
        Comment(campaign_id=campaign.id, user_id=ada.id, content="Love it",
                created_at=NOW - timedelta(days=1)),
        Comment(campaign_id=campaign.id, user_id=bo.id, content="x" * 200,
                created_at=NOW - timedelta(days=2)),
        Comment(campaign_id=campaign.id, user_id=bo.id, content="spam", status=CommentStatus.HIDDEN.value,
                created_at=NOW),
    ])
    session.flush()
    return campaign


@pytest.fixture()
def empty_campaign(session: Session) -> Campaign:
    campaign = Campaign(slug="blank", title="Blank Slate", category="Misc", status="LIVE")
    session.add(campaign)
    session.flush()
    return campaign
