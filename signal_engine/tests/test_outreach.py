"""Tests for brand outreach tiers, brand selection and the outreach queue."""
from __future__ import annotations

import pytest
from sqlalchemy import select

from signal_engine.aggregation import CampaignNotFound
from signal_engine.models import Brand, BrandTeamMember, Campaign, LobbyStatus, OutreachQueue, User
from signal_engine.outreach import (
    OutreachNotEligible,
    OutreachTier,
    check_outreach_thresholds,
    determine_outreach_tier,
    get_outreach_campaigns,
    identify_relevant_brands,
    is_outreach_eligible,
    schedule_outreach,
    verified_lobby_count,
)
from signal_engine.tests.factories import NOW, NOW_UTC, add_lobbies


def _brand(session, name: str, verified: bool = False, email: str | None = None) -> Brand:
    brand = Brand(name=name, slug=name.lower(), verified=verified)
    session.add(brand)
    session.flush()
    if email is not None:
        user = User(display_name=f"{name} rep", email=email)
        session.add(user)
        session.flush()
        session.add(BrandTeamMember(brand_id=brand.id, user_id=user.id))
        session.flush()
    return brand


class TestTiers:
    @pytest.mark.parametrize("count,tier", [
        (0, OutreachTier.NONE),
        (49, OutreachTier.NONE),
        (50, OutreachTier.BRONZE),
        (199, OutreachTier.BRONZE),
        (200, OutreachTier.SILVER),
        (500, OutreachTier.GOLD),
        (999, OutreachTier.GOLD),
        (1000, OutreachTier.PLATINUM),
        (25000, OutreachTier.PLATINUM),
    ])
    def test_determine_tier(self, count, tier):
        assert determine_outreach_tier(count) == tier

    def test_eligibility(self):
        assert is_outreach_eligible("LIVE", OutreachTier.BRONZE)
        assert not is_outreach_eligible("LIVE", OutreachTier.NONE)
        assert not is_outreach_eligible("DRAFT", OutreachTier.GOLD)
        assert not is_outreach_eligible("CLOSED", OutreachTier.PLATINUM)


class TestThresholds:
    def test_counts_verified_only(self, session, empty_campaign):
        add_lobbies(session, empty_campaign, 3)
        add_lobbies(session, empty_campaign, 4, status=LobbyStatus.PENDING)
        assert verified_lobby_count(session, empty_campaign.id) == 3

    def test_below_bronze(self, session, empty_campaign):
        add_lobbies(session, empty_campaign, 49)
        add_lobbies(session, empty_campaign, 10, status=LobbyStatus.REJECTED)
        assert check_outreach_thresholds(session, empty_campaign.id) is None

    def test_bronze(self, session, empty_campaign):
        add_lobbies(session, empty_campaign, 50)
        opp = check_outreach_thresholds(session, empty_campaign.id)
        assert opp is not None
        assert opp.tier == OutreachTier.BRONZE
        assert opp.lobby_count == 50
        assert opp.campaign_title == "Blank Slate"
        assert opp.signal_score == 0.0

    def test_uses_cached_score(self, session, empty_campaign):
        empty_campaign.signal_score = 61.5
        add_lobbies(session, empty_campaign, 200)
        opp = check_outreach_thresholds(session, empty_campaign.id)
        assert opp.tier == OutreachTier.SILVER
        assert opp.signal_score == 61.5

    def test_draft_campaign(self, session, empty_campaign):
        empty_campaign.status = "DRAFT"
        add_lobbies(session, empty_campaign, 80)
        session.flush()
        assert check_outreach_thresholds(session, empty_campaign.id) is None

    def test_missing_campaign(self, session):
        assert check_outreach_thresholds(session, 404) is None

    def test_outreach_campaigns_sorted_by_lobbies(self, session):
        small = Campaign(slug="small", title="Small", status="LIVE")
        big = Campaign(slug="big", title="Big", status="LIVE")
        tiny = Campaign(slug="tiny", title="Tiny", status="LIVE")
        session.add_all([small, big, tiny])
        session.flush()
        add_lobbies(session, small, 60)
        add_lobbies(session, big, 210)
        add_lobbies(session, tiny, 5)
        opps = get_outreach_campaigns(session)
        assert [o.campaign_title for o in opps] == ["Big", "Small"]
        assert [o.tier for o in opps] == [OutreachTier.SILVER, OutreachTier.BRONZE]


class TestRelevantBrands:
    def test_targeted_brand_first(self, session, demo_campaign):
        _brand(session, "Hushco", verified=False, email="hello@hushco.test")
        contacts = identify_relevant_brands(session, demo_campaign.id)
        assert contacts[0].name == "Kettleworks"
        assert contacts[0].email == "bo@example.com"
        assert contacts[0].category == "Kitchen"
        assert [c.name for c in contacts] == ["Kettleworks", "Hushco"]

    def test_skips_brands_without_email(self, session, empty_campaign):
        _brand(session, "Ghost", verified=True)
        _brand(session, "Loner", verified=False)
        _brand(session, "Reachable", verified=True, email="team@reachable.test")
        contacts = identify_relevant_brands(session, empty_campaign.id)
        assert [c.name for c in contacts] == ["Reachable"]

    def test_caps_similar_brands(self, session, empty_campaign):
        for i in range(8):
            _brand(session, f"Brand{i}", verified=True, email=f"b{i}@brands.test")
        assert len(identify_relevant_brands(session, empty_campaign.id)) == 5

    def test_not_found(self, session):
        with pytest.raises(CampaignNotFound):
            identify_relevant_brands(session, 999)


class TestScheduleOutreach:
    @pytest.fixture()
    def bronze_campaign(self, session, demo_campaign):
        # 3 verified lobbies from the fixture plus 47 more reaches Bronze
        add_lobbies(session, demo_campaign, 47)
        return demo_campaign

    def test_queues_pending_email(self, session, bronze_campaign):
        queued = schedule_outreach(
            session, bronze_campaign.id, "bo@example.com", "Kettleworks", NOW_UTC,
            base_url="https://example.test/",
        )
        session.flush()
        row = session.execute(select(OutreachQueue)).scalars().one()
        assert row is queued
        assert row.status == "PENDING"
        assert row.brand_email == "bo@example.com"
        assert row.subject == 'Market Opportunity: "Quiet Kettle" – 50+ Supporters'
        assert "https://example.test/campaigns/quiet-kettle" in row.plain_text_content
        assert "Kettleworks" in row.html_content
        assert row.created_at == NOW

    def test_base_url_from_environment(self, session, bronze_campaign, monkeypatch):
        monkeypatch.setenv("APP_BASE_URL", "https://lobby.test")
        queued = schedule_outreach(session, bronze_campaign.id, "bo@example.com", "Kettleworks", NOW_UTC)
        assert "https://lobby.test/campaigns/quiet-kettle" in queued.plain_text_content

    def test_not_found(self, session):
        with pytest.raises(CampaignNotFound):
            schedule_outreach(session, 999, "x@y.test", "X", NOW_UTC)

    def test_draft_without_lobbies_is_not_queued(self, session, empty_campaign):
        empty_campaign.status = "DRAFT"
        session.flush()
        assert check_outreach_thresholds(session, empty_campaign.id) is None
        with pytest.raises(OutreachNotEligible) as excinfo:
            schedule_outreach(session, empty_campaign.id, "x@y.test", "X", NOW_UTC)
        assert excinfo.value.tier == OutreachTier.NONE
        session.flush()
        assert session.execute(select(OutreachQueue)).scalars().all() == []

    def test_draft_with_enough_lobbies_is_not_queued(self, session, empty_campaign):
        empty_campaign.status = "DRAFT"
        add_lobbies(session, empty_campaign, 80)
        with pytest.raises(OutreachNotEligible) as excinfo:
            schedule_outreach(session, empty_campaign.id, "x@y.test", "X", NOW_UTC)
        assert excinfo.value.status == "DRAFT"
        assert excinfo.value.tier == OutreachTier.BRONZE
        assert session.execute(select(OutreachQueue)).scalars().all() == []

    def test_one_below_bronze_is_not_queued(self, session, empty_campaign):
        add_lobbies(session, empty_campaign, 49)
        add_lobbies(session, empty_campaign, 5, status=LobbyStatus.PENDING)
        with pytest.raises(OutreachNotEligible):
            schedule_outreach(session, empty_campaign.id, "x@y.test", "X", NOW_UTC)
        session.flush()
        assert session.execute(select(OutreachQueue)).scalars().all() == []

    def test_exactly_bronze_is_queued(self, session, empty_campaign):
        add_lobbies(session, empty_campaign, 50)
        queued = schedule_outreach(session, empty_campaign.id, "x@y.test", "X", NOW_UTC)
        assert queued.status == "PENDING"
