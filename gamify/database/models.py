"""
gamify.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- events                 — Event definitions with a typed payload schema
- rules                  — Boolean logic over an event payload → one metric
- game_metrics           — Named per-user counters (points, streaks, ...)
- user_game_metrics      — The mutable counter, unique per (user, metric)
- metric_achievements    — Badges unlocked at a metric threshold
- user_game_achievements — One record per user that owns unlock entries
- user_game_achievement_entries — Unlocked achievements (set semantics)
- settings               — Key-value store (scoring weights live here)
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all gamification ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PayloadType(enum.StrEnum):
    """Closed set of type tags an event payload field may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class GameMetricType(enum.StrEnum):
    NUMBER = "Number"
    STREAK = "Streak"


class AchievementTrigger(enum.StrEnum):
    """What an achievement watches.  Only metric thresholds exist today."""
    METRIC = "metric"


# ---------------------------------------------------------------------------
# Events — schema-declared occurrences that drive rule evaluation
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    # {"score": "number", "passed": "boolean"}
    payload_schema: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# GameMetric — a named numeric counter tracked per user
# ---------------------------------------------------------------------------
class GameMetric(Base):
    __tablename__ = "game_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GameMetricType.NUMBER.value
    )
    units: Mapped[str] = mapped_column(String(50), nullable=False)
    default_increment_value: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<GameMetric id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Rule — boolean logic over one event's payload, contributing one metric
# ---------------------------------------------------------------------------
class Rule(Base):
    __tablename__ = "rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    metric_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False
    )
    # JSON-logic expression tree, e.g. {">=": [{"var": "score"}, 80]}
    logic: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_rules_event_id", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Rule id={self.id} event={self.event_id} metric={self.metric_id}>"


# ---------------------------------------------------------------------------
# UserGameMetric — the central mutable counter
# ---------------------------------------------------------------------------
class UserGameMetric(Base):
    __tablename__ = "user_game_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    metric_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "metric_id", name="uq_user_game_metrics_user_metric"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserGameMetric user={self.user_id!r} "
            f"metric={self.metric_id} value={self.value}>"
        )


# ---------------------------------------------------------------------------
# MetricAchievement — badge unlocked when value >= metric_count
# ---------------------------------------------------------------------------
class MetricAchievement(Base):
    __tablename__ = "metric_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    badge_url: Mapped[str] = mapped_column(String(500), nullable=False)
    trigger: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AchievementTrigger.METRIC.value
    )
    metric_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False
    )
    metric_count: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_metric_achievements_metric_count", "metric_id", "metric_count"),
    )

    def __repr__(self) -> str:
        return f"<MetricAchievement id={self.id} name={self.name!r} at={self.metric_count}>"


# ---------------------------------------------------------------------------
# UserGameAchievement — one record per user
# ---------------------------------------------------------------------------
class UserGameAchievement(Base):
    __tablename__ = "user_game_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    achievements: Mapped[list[UserAchievementEntry]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="UserAchievementEntry.unlocked_at",
    )

    def __repr__(self) -> str:
        return f"<UserGameAchievement user={self.user_id!r}>"


class UserAchievementEntry(Base):
    """One unlocked achievement.  The composite PK makes the list a set."""
    __tablename__ = "user_game_achievement_entries"

    record_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_game_achievements.id", ondelete="CASCADE"),
        primary_key=True,
    )
    achievement_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("metric_achievements.id", ondelete="CASCADE"),
        primary_key=True,
    )
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    record: Mapped[UserGameAchievement] = relationship(back_populates="achievements")

    def __repr__(self) -> str:
        return f"<UserAchievementEntry record={self.record_id} achievement={self.achievement_id}>"


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Runtime tuning data (the scoring weights) lives here so it can be
    changed through the API without a redeploy.  Values are JSON strings.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
