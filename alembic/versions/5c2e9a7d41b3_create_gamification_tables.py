"""Create gamification tables

Revision ID: 5c2e9a7d41b3
Revises:
Create Date: 2026-10-17 09:12:03.518274

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e9a7d41b3'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create events, rules, metrics, achievements and settings tables."""

    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("payload_schema", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- game_metrics ---
    op.create_table(
        "game_metrics",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="Number"),
        sa.Column("units", sa.String(50), nullable=False),
        sa.Column("default_increment_value", sa.Float, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- rules ---
    op.create_table(
        "rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "event_id", sa.Integer,
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "metric_id", sa.Integer,
            sa.ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("logic", postgresql.JSONB, nullable=True),
        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_rules_event_id", "rules", ["event_id"])

    # --- user_game_metrics ---
    op.create_table(
        "user_game_metrics",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column(
            "metric_id", sa.Integer,
            sa.ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("value", sa.Float, nullable=False, server_default="0"),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "metric_id", name="uq_user_game_metrics_user_metric"),
    )

    # --- metric_achievements ---
    op.create_table(
        "metric_achievements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("badge_url", sa.String(500), nullable=False),
        sa.Column("trigger", sa.String(20), nullable=False, server_default="metric"),
        sa.Column(
            "metric_id", sa.Integer,
            sa.ForeignKey("game_metrics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("metric_count", sa.Float, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_metric_achievements_metric_count", "metric_achievements",
        ["metric_id", "metric_count"],
    )

    # --- user_game_achievements + entries ---
    op.create_table(
        "user_game_achievements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(100), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "user_game_achievement_entries",
        sa.Column(
            "record_id", sa.Integer,
            sa.ForeignKey("user_game_achievements.id", ondelete="CASCADE"),
        ),
        sa.Column(
            "achievement_id", sa.Integer,
            sa.ForeignKey("metric_achievements.id", ondelete="CASCADE"),
        ),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("record_id", "achievement_id"),
    )

    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop every gamification table."""
    op.drop_table("settings")
    op.drop_table("user_game_achievement_entries")
    op.drop_table("user_game_achievements")
    op.drop_index("ix_metric_achievements_metric_count", table_name="metric_achievements")
    op.drop_table("metric_achievements")
    op.drop_table("user_game_metrics")
    op.drop_index("ix_rules_event_id", table_name="rules")
    op.drop_table("rules")
    op.drop_table("game_metrics")
    op.drop_table("events")
