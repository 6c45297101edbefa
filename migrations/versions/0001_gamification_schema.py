"""gamification schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enums are stored as plain strings (native_enum=False), by value
ENGAGEMENT_LEVELS = ("new_user", "exploring", "committed", "habituated", "veteran")
XP_SOURCES = (
    "sleep_diary", "emotion_log", "ai_interaction", "first_action", "quest_complete",
    "daily_check_in", "helping_others", "streak_bonus", "milestone_reached",
    "achievement_unlock",
)
STREAK_TYPES = (
    "daily_login", "sleep_diary", "emotion_log", "challenge_complete", "therapy_session",
)
QUEST_STATUSES = ("active", "completed", "expired")


def upgrade() -> None:
    # --- gamification_state ---
    op.create_table(
        "gamification_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("total_xp", sa.Integer(), nullable=False),
        sa.Column("current_level", sa.Integer(), nullable=False),
        sa.Column(
            "engagement_level",
            sa.Enum(*ENGAGEMENT_LEVELS, name="engagementlevel", native_enum=False),
            nullable=False,
        ),
        sa.Column("total_days_active", sa.Integer(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gamification_state_id", "gamification_state", ["id"])
    op.create_index(
        "ix_gamification_state_user_id", "gamification_state", ["user_id"], unique=True
    )

    # --- xp_transactions ---
    op.create_table(
        "xp_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column(
            "source",
            sa.Enum(*XP_SOURCES, name="xpsource", native_enum=False),
            nullable=False,
        ),
        sa.Column("multiplier", sa.Float(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_xp_transactions_id", "xp_transactions", ["id"])
    op.create_index("ix_xp_transactions_user_id", "xp_transactions", ["user_id"])
    op.create_index("ix_xp_transactions_created_at", "xp_transactions", ["created_at"])

    # --- achievements ---
    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("achievement_id", sa.String(64), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(), nullable=True),
        sa.Column("notified", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "achievement_id", name="uq_achievements_user_badge"),
    )
    op.create_index("ix_achievements_id", "achievements", ["id"])
    op.create_index("ix_achievements_user_id", "achievements", ["user_id"])

    # --- streaks ---
    op.create_table(
        "streaks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*STREAK_TYPES, name="streaktype", native_enum=False),
            nullable=False,
        ),
        sa.Column("current_count", sa.Integer(), nullable=False),
        sa.Column("longest_count", sa.Integer(), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(), nullable=True),
        sa.Column("multiplier", sa.Float(), nullable=False),
        sa.Column("frozen", sa.Boolean(), nullable=False),
        sa.Column("frozen_until", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "type", name="uq_streaks_user_type"),
    )
    op.create_index("ix_streaks_id", "streaks", ["id"])
    op.create_index("ix_streaks_user_id", "streaks", ["user_id"])

    # --- user_quests ---
    op.create_table(
        "user_quests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("quest_id", sa.String(64), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*QUEST_STATUSES, name="queststatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("objectives_json", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "quest_id", name="uq_user_quests_user_quest"),
    )
    op.create_index("ix_user_quests_id", "user_quests", ["id"])
    op.create_index("ix_user_quests_user_id", "user_quests", ["user_id"])
    op.create_index("ix_user_quests_status", "user_quests", ["status"])

    # --- inventory ---
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("reward_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("acquired_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "reward_id", name="uq_inventory_user_reward"),
    )
    op.create_index("ix_inventory_id", "inventory", ["id"])
    op.create_index("ix_inventory_user_id", "inventory", ["user_id"])

    # --- equipped_items ---
    op.create_table(
        "equipped_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("equipped_badge", sa.String(64), nullable=True),
        sa.Column("equipped_title", sa.String(64), nullable=True),
        sa.Column("equipped_theme", sa.String(64), nullable=True),
        sa.Column("equipped_frame", sa.String(64), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_equipped_items_id", "equipped_items", ["id"])
    op.create_index("ix_equipped_items_user_id", "equipped_items", ["user_id"], unique=True)

    # --- gamification_settings ---
    op.create_table(
        "gamification_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("compassion_enabled", sa.Boolean(), nullable=False),
        sa.Column("soft_reset_enabled", sa.Boolean(), nullable=False),
        sa.Column("preserve_percentage", sa.Float(), nullable=False),
        sa.Column("soft_limit_minutes", sa.Integer(), nullable=False),
        sa.Column("hard_limit_minutes", sa.Integer(), nullable=False),
        sa.Column("daily_limit_minutes", sa.Integer(), nullable=False),
        sa.Column("break_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gamification_settings_id", "gamification_settings", ["id"])
    op.create_index(
        "ix_gamification_settings_user_id", "gamification_settings", ["user_id"], unique=True
    )

    # --- session_tracking ---
    op.create_table(
        "session_tracking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("session_start", sa.DateTime(), nullable=False),
        sa.Column("session_end", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("breaks_taken", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_session_tracking_id", "session_tracking", ["id"])
    op.create_index("ix_session_tracking_user_id", "session_tracking", ["user_id"])

    # --- daily_session_summary ---
    op.create_table(
        "daily_session_summary",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False),
        sa.Column("total_minutes", sa.Integer(), nullable=False),
        sa.Column("breaks_taken", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_session_summary_user_date"),
    )
    op.create_index("ix_daily_session_summary_id", "daily_session_summary", ["id"])
    op.create_index("ix_daily_session_summary_user_id", "daily_session_summary", ["user_id"])


def downgrade() -> None:
    op.drop_table("daily_session_summary")
    op.drop_table("session_tracking")
    op.drop_table("gamification_settings")
    op.drop_table("equipped_items")
    op.drop_table("inventory")
    op.drop_table("user_quests")
    op.drop_table("streaks")
    op.drop_table("achievements")
    op.drop_table("xp_transactions")
    op.drop_table("gamification_state")
