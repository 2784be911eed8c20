"""ORM models for users, their site groups, tags, sites and daily metrics.

Every row hangs off a User and is removed with it. Group and tag links to a
site are independent: deleting a group detaches its sites, deleting a tag
drops only the link rows.
"""

from __future__ import annotations

import datetime as dt
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seodesk.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanType(str, enum.Enum):
    """Subscription plan."""

    FREE = "FREE"
    TRIAL = "TRIAL"
    PRO = "PRO"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A Google account that signed in through OAuth."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("google_id", name="uq_users_google_id"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    google_id: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    plan: Mapped[PlanType] = mapped_column(
        Enum(PlanType, name="plan_type", native_enum=False, length=8),
        nullable=False,
        default=PlanType.TRIAL,
    )
    google_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    groups: Mapped[list[Group]] = relationship(
        "Group", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    tags: Mapped[list[Tag]] = relationship(
        "Tag", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    sites: Mapped[list[Site]] = relationship(
        "Site", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    preferences: Mapped[UserPreference | None] = relationship(
        "UserPreference", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Groups & tags
# ---------------------------------------------------------------------------


class Group(Base):
    """Named collection of a user's sites. Exactly one per user is the default."""

    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    display_name: Mapped[str] = mapped_column(String(40), nullable=False)
    email_owner: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="groups")


class Tag(Base):
    """User-scoped label. The system tag ("All") has is_deletable=False."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(30), nullable=False)
    is_deletable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="tags")
    site_tags: Mapped[list[SiteTag]] = relationship(
        "SiteTag", back_populates="tag", cascade="all, delete-orphan", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Sites
# ---------------------------------------------------------------------------


class Site(Base):
    """One Search Console property owned by a user."""

    __tablename__ = "sites"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_sites_user_property"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    group_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )
    property_id: Mapped[str] = mapped_column(String(512), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="sites")
    group: Mapped[Group | None] = relationship("Group")
    site_tags: Mapped[list[SiteTag]] = relationship(
        "SiteTag", back_populates="site", cascade="all, delete-orphan", passive_deletes=True
    )
    metrics: Mapped[list[SiteMetric]] = relationship(
        "SiteMetric", back_populates="site", cascade="all, delete-orphan", passive_deletes=True
    )


class SiteTag(Base):
    """Link row between a site and a tag."""

    __tablename__ = "site_tags"

    site_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("sites.id", ondelete="CASCADE"), primary_key=True)
    tag_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    site: Mapped[Site] = relationship("Site", back_populates="site_tags")
    tag: Mapped[Tag] = relationship("Tag", back_populates="site_tags")


class SiteMetric(Base):
    """Daily Search Console totals for one site. At most one row per (site, date)."""

    __tablename__ = "site_metrics"
    __table_args__ = (UniqueConstraint("site_id", "date", name="uq_site_metrics_site_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    site_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    clicks: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    ctr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_position: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    keywords_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    site: Mapped[Site] = relationship("Site", back_populates="metrics")


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


DEFAULT_SELECTED_METRICS = "clicks,impressions"
DEFAULT_RANGE_PRESET = "last28days"


class UserPreference(Base):
    """Last-used dashboard state. Created lazily on first write."""

    __tablename__ = "user_preferences"
    __table_args__ = (UniqueConstraint("user_id", name="uq_user_preferences_user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    selected_metrics: Mapped[str] = mapped_column(String(256), nullable=False, default=DEFAULT_SELECTED_METRICS)
    last_range_preset: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_RANGE_PRESET)
    last_group_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    last_tag_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="preferences")
