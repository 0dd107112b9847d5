from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class LobbyIntensity(str, enum.Enum):
    NEAT_IDEA = "NEAT_IDEA"
    PROBABLY_BUY = "PROBABLY_BUY"
    TAKE_MY_MONEY = "TAKE_MY_MONEY"


class LobbyStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class PledgeType(str, enum.Enum):
    SUPPORT = "SUPPORT"
    INTENT = "INTENT"


class CampaignStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    LIVE = "LIVE"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class CommentStatus(str, enum.Enum):
    VISIBLE = "VISIBLE"
    HIDDEN = "HIDDEN"


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(300), default="")
    phone_verified: Mapped[bool] = mapped_column(Boolean, default=False)


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    slug: Mapped[str] = mapped_column(String(300), default="")
    verified: Mapped[bool] = mapped_column(Boolean, default=False)

    team: Mapped[list[BrandTeamMember]] = relationship(
        "BrandTeamMember", back_populates="brand", cascade="all, delete-orphan",
        order_by="BrandTeamMember.id",
    )


class BrandTeamMember(Base):
    __tablename__ = "brand_team_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    brand: Mapped[Brand] = relationship("Brand", back_populates="team")
    user: Mapped[User] = relationship("User")


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(300), default="")
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(100), default="")
    status: Mapped[str] = mapped_column(String(20), default=CampaignStatus.DRAFT.value)
    completeness_score: Mapped[int] = mapped_column(Integer, default=0)
    # Cached output of the signal scorer, refreshed by the stale-score sweep
    signal_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    signal_score_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    targeted_brand_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("brands.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    targeted_brand: Mapped[Brand | None] = relationship("Brand")
    lobbies: Mapped[list[Lobby]] = relationship("Lobby", back_populates="campaign", cascade="all, delete-orphan")
    pledges: Mapped[list[Pledge]] = relationship("Pledge", back_populates="campaign", cascade="all, delete-orphan")
    competitors: Mapped[list[Competitor]] = relationship(
        "Competitor", back_populates="campaign", cascade="all, delete-orphan",
        order_by="Competitor.order",
    )
    comments: Mapped[list[Comment]] = relationship("Comment", back_populates="campaign", cascade="all, delete-orphan")


class Lobby(Base):
    __tablename__ = "lobbies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    intensity: Mapped[str] = mapped_column(String(20), nullable=False)  # LobbyIntensity
    status: Mapped[str] = mapped_column(String(20), default=LobbyStatus.VERIFIED.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    campaign: Mapped[Campaign] = relationship("Campaign", back_populates="lobbies")


class Pledge(Base):
    __tablename__ = "pledges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    pledge_type: Mapped[str] = mapped_column(String(20), nullable=False)  # PledgeType
    price_ceiling: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    campaign: Mapped[Campaign] = relationship("Campaign", back_populates="pledges")
    user: Mapped[User] = relationship("User")


class Competitor(Base):
    __tablename__ = "competitors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(300), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    pros: Mapped[str | None] = mapped_column(Text, nullable=True)
    cons: Mapped[str | None] = mapped_column(Text, nullable=True)  # comma-separated
    order: Mapped[int] = mapped_column(Integer, default=0)

    campaign: Mapped[Campaign] = relationship("Campaign", back_populates="competitors")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default=CommentStatus.VISIBLE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    campaign: Mapped[Campaign] = relationship("Campaign", back_populates="comments")
    user: Mapped[User] = relationship("User")


class OutreachQueue(Base):
    __tablename__ = "outreach_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    brand_email: Mapped[str] = mapped_column(String(300), nullable=False)
    brand_name: Mapped[str] = mapped_column(String(300), default="")
    subject: Mapped[str] = mapped_column(String(500), default="")
    html_content: Mapped[str] = mapped_column(Text, default="")
    plain_text_content: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING | SENT | FAILED
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
