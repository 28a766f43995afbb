"""ORM models for the carbon accounting tables.

Alembic migration 001_carbon_tables creates the same schema for PostgreSQL;
SQLite deployments and tests build it from this metadata.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ecostep.carbon.factors import Category
from ecostep.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_BigIntId = BigInteger().with_variant(Integer, "sqlite")

CARBON = Numeric(14, 4)

_CATEGORIES = ", ".join(f"'{c.value}'" for c in Category)


class ProfileRow(Base):
    """Per-user accumulator. version guards compare-and-set updates.

    last_write_id identifies the write that produced the current version, so a
    retried update can tell whether its earlier attempt already committed.
    """

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("carbon_saved >= 0", name="profiles_carbon_saved_check"),
        CheckConstraint("level BETWEEN 1 AND 10", name="profiles_level_check"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    carbon_saved: Mapped[Decimal] = mapped_column(CARBON, nullable=False, default=Decimal(0))
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_write_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ActivityRow(Base):
    """Append-only activity log. write_id makes a retried insert land once."""

    __tablename__ = "activities"
    __table_args__ = (
        Index("idx_activities_user_created", "user_id", "created_at"),
        CheckConstraint("value > 0", name="activities_value_check"),
        CheckConstraint(f"category IN ({_CATEGORIES})", name="activities_category_check"),
    )

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    quantity: Mapped[Decimal] = mapped_column("value", CARBON, nullable=False)
    carbon_impact: Mapped[Decimal] = mapped_column(CARBON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    write_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)


class AchievementRow(Base):
    """Static achievement catalogue, seeded at startup."""

    __tablename__ = "achievements"
    __table_args__ = (
        CheckConstraint("carbon_required >= 0", name="achievements_carbon_required_check"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    carbon_required: Mapped[Decimal] = mapped_column(CARBON, nullable=False)


class UserAchievementRow(Base):
    """Unlocked achievements: UNIQUE(user_id, achievement_id) prevents duplicates."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("achievements.id"), nullable=False
    )
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    achievement: Mapped[AchievementRow] = relationship("AchievementRow", lazy="joined")
