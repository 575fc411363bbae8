"""Core schema: users, games, applications, seats, statistics, badges, outbox.

Revision ID: 001_devwars_core
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_devwars_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(28) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE,
            role VARCHAR(16) NOT NULL DEFAULT 'USER',
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Games ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS games (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(124) NOT NULL,
            start_time TIMESTAMPTZ NOT NULL,
            season INTEGER NOT NULL,
            mode VARCHAR(16) NOT NULL DEFAULT 'Classic',
            status VARCHAR(16) NOT NULL DEFAULT 'SCHEDULED',
            video_url TEXT,
            storage JSONB NOT NULL DEFAULT '{}',
            settled_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT games_season_positive CHECK (season > 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_games_status ON games(status)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_games_start_time ON games(start_time DESC)")

    # --- Applications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS game_applications (
            id BIGSERIAL PRIMARY KEY,
            game_id BIGINT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            team INTEGER,
            assigned_languages JSONB NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT game_applications_game_id_user_id_key UNIQUE (game_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_game_applications_user
        ON game_applications(user_id)
    """)

    # --- Seats: one (team, language) editor per game ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS game_seats (
            id BIGSERIAL PRIMARY KEY,
            game_id BIGINT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            application_id BIGINT NOT NULL REFERENCES game_applications(id) ON DELETE CASCADE,
            team INTEGER NOT NULL,
            language VARCHAR(8) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT game_seats_game_id_team_language_key UNIQUE (game_id, team, language)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_game_seats_application_id
        ON game_seats(application_id)
    """)

    # --- Statistics ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_game_stats (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            wins INTEGER NOT NULL DEFAULT 0,
            loses INTEGER NOT NULL DEFAULT 0,
            win_streak INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            coins BIGINT NOT NULL DEFAULT 0,
            xp BIGINT NOT NULL DEFAULT 0,
            CONSTRAINT user_stats_coins_non_negative CHECK (coins >= 0),
            CONSTRAINT user_stats_xp_non_negative CHECK (xp >= 0)
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id INTEGER PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            description TEXT NOT NULL,
            awarding_experience INTEGER NOT NULL DEFAULT 0,
            awarding_coins INTEGER NOT NULL DEFAULT 0,
            variant INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)

    # --- Outbox ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS outbox_effects (
            id BIGSERIAL PRIMARY KEY,
            kind VARCHAR(16) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            attempts INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            delivered_at TIMESTAMPTZ,
            claim_token VARCHAR(32),
            claimed_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_outbox_effects_pending
        ON outbox_effects(id) WHERE delivered_at IS NULL
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_outbox_effects_claim_token
        ON outbox_effects(claim_token)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS outbox_effects CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS user_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS user_game_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS game_seats CASCADE")
    op.execute("DROP TABLE IF EXISTS game_applications CASCADE")
    op.execute("DROP TABLE IF EXISTS games CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
