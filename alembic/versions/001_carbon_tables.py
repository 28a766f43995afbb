"""Carbon accounting tables.

Creates profiles, activities, achievements and user_achievements.

Revision ID: 001_carbon_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_carbon_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles (accumulator) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            user_id VARCHAR(64) PRIMARY KEY,
            carbon_saved NUMERIC(14, 4) NOT NULL DEFAULT 0
                CONSTRAINT profiles_carbon_saved_check CHECK (carbon_saved >= 0),
            level INTEGER NOT NULL DEFAULT 1
                CONSTRAINT profiles_level_check CHECK (level BETWEEN 1 AND 10),
            version INTEGER NOT NULL DEFAULT 0,
            last_write_id VARCHAR(36),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Activities (append-only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activities (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            category VARCHAR(16) NOT NULL
                CONSTRAINT activities_category_check CHECK (category IN ('transport', 'waste', 'diet', 'energy')),
            activity_type VARCHAR(32) NOT NULL,
            value NUMERIC(14, 4) NOT NULL CONSTRAINT activities_value_check CHECK (value > 0),
            carbon_impact NUMERIC(14, 4) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            write_id VARCHAR(36) NOT NULL UNIQUE
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_activities_user_created
        ON activities(user_id, created_at)
    """)

    # --- Achievements (static catalogue) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(16) NOT NULL DEFAULT '',
            carbon_required NUMERIC(14, 4) NOT NULL
                CONSTRAINT achievements_carbon_required_check CHECK (carbon_required >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievements_required
        ON achievements(carbon_required)
    """)

    # --- User Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            achievement_id INTEGER NOT NULL REFERENCES achievements(id),
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_achievements_user_id_achievement_id_key UNIQUE (user_id, achievement_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_achievements")
    op.execute("DROP TABLE IF EXISTS achievements")
    op.execute("DROP TABLE IF EXISTS activities")
    op.execute("DROP TABLE IF EXISTS profiles")
