"""Core tables: users, ranks, user_ranks, chats, messages.

Revision ID: 001_core_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_core_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            telegram_id VARCHAR(32) UNIQUE NOT NULL,
            username VARCHAR(64) UNIQUE NOT NULL,
            display_name VARCHAR(128) NOT NULL,
            avatar TEXT,
            gender VARCHAR(8),
            rank VARCHAR(128) NOT NULL DEFAULT 'Чебоксарец',
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            is_banned BOOLEAN DEFAULT false,
            ban_reason TEXT,
            is_muted BOOLEAN DEFAULT false,
            mute_end_time TIMESTAMPTZ,
            mute_reason TEXT,
            is_online BOOLEAN DEFAULT false,
            last_seen TIMESTAMPTZ,
            activity_points INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Ranks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ranks (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            description TEXT,
            is_system BOOLEAN NOT NULL DEFAULT false,
            level INTEGER NOT NULL DEFAULT 0,
            gender VARCHAR(8),
            created_by BIGINT REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    # At most one top-tier system rank per gender.
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_ranks_system_level_gender
        ON ranks(level, gender) WHERE is_system AND gender IS NOT NULL
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_ranks (
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            rank_id BIGINT NOT NULL REFERENCES ranks(id) ON DELETE CASCADE,
            is_active BOOLEAN NOT NULL DEFAULT true,
            assigned_by BIGINT REFERENCES users(id) ON DELETE SET NULL,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, rank_id)
        )
    """)

    # --- Chat ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS chats (
            id BIGSERIAL PRIMARY KEY,
            user1_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            user2_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            last_message_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_chats_participants
        ON chats(user1_id, user2_id)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id BIGSERIAL PRIMARY KEY,
            chat_id BIGINT NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
            sender_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_messages_chat_created
        ON messages(chat_id, created_at)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS messages CASCADE")
    op.execute("DROP TABLE IF EXISTS chats CASCADE")
    op.execute("DROP TABLE IF EXISTS user_ranks CASCADE")
    op.execute("DROP TABLE IF EXISTS ranks CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
