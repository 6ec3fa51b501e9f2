"""Initial schema — all tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-12

Creates the complete PlayMatch v1 database schema, mirroring the models in
backend/playmatch/models/.

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. Tables in FK dependency order (users → refresh_tokens → game_cards
     → matched_players → chats → chat_members, chat_messages; venues)
  2. Indexes

Enums (user_type, game card status) are stored as VARCHAR + CHECK rather
than PostgreSQL ENUM types, so the same models run on SQLite in tests.

ON DELETE policies:
  refresh_tokens.user_id         → CASCADE   (token owned by user)
  game_cards.host_user_id        → RESTRICT
  matched_players.game_card_id   → CASCADE   (snapshots owned by the card)
  matched_players.user_id        → RESTRICT
  chats.game_card_id             → RESTRICT
  chat_members.chat_id           → CASCADE
  chat_messages.chat_id          → CASCADE
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    """Apply the full initial schema."""

    # ── Step 1: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("photo_url", sa.String(500), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("about_user", sa.Text(), nullable=True),
        sa.Column(
            "user_type",
            sa.String(10),
            nullable=False,
            server_default="USER",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(first_name)) > 0",
            name="ck_users_first_name_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        sa.CheckConstraint(
            "user_type IN ('USER', 'ADMIN')",
            name="ck_users_user_type",
        ),
    )

    # ── Step 2: refresh_tokens ─────────────────────────────────────────────

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_hash"),
    )

    # ── Step 3: game_cards ─────────────────────────────────────────────────
    # host_* columns are the host snapshot taken at creation.
    # current_players includes the host; the capacity CHECK backs up the
    # conditional join UPDATE.

    op.create_table(
        "game_cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "host_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_game_cards_host"),
            nullable=False,
        ),
        sa.Column("host_first_name", sa.String(100), nullable=False),
        sa.Column("host_last_name", sa.String(100), nullable=False),
        sa.Column("host_photo_url", sa.String(500), nullable=True),
        sa.Column("host_city", sa.String(100), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("cover_url", sa.String(500), nullable=True),
        sa.Column("max_players", sa.Integer(), nullable=False),
        sa.Column("min_players", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("current_players", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default="active",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_game_cards"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_game_cards_title_nonempty",
        ),
        sa.CheckConstraint("max_players > 0", name="ck_game_cards_max_players_positive"),
        sa.CheckConstraint("min_players > 0", name="ck_game_cards_min_players_positive"),
        sa.CheckConstraint(
            "current_players <= max_players",
            name="ck_game_cards_capacity",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'moderating')",
            name="ck_game_cards_status",
        ),
    )

    # ── Step 4: matched_players ────────────────────────────────────────────
    # UNIQUE(game_card_id, user_id) — a user joins a card at most once.

    op.create_table(
        "matched_players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "game_card_id",
            sa.Integer(),
            sa.ForeignKey("game_cards.id", ondelete="CASCADE", name="fk_matched_players_card"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_matched_players_user"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("photo_url", sa.String(500), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        _timestamp("joined_at"),
        sa.PrimaryKeyConstraint("id", name="pk_matched_players"),
        sa.UniqueConstraint("game_card_id", "user_id", name="uq_matched_players_card_user"),
    )

    # ── Step 5: chats, chat_members, chat_messages ─────────────────────────
    # UNIQUE(game_card_id) — one chat per card.

    op.create_table(
        "chats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column(
            "game_card_id",
            sa.Integer(),
            sa.ForeignKey("game_cards.id", ondelete="RESTRICT", name="fk_chats_card"),
            nullable=False,
        ),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_chats"),
        sa.UniqueConstraint("game_card_id", name="uq_chats_game_card"),
    )

    op.create_table(
        "chat_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "chat_id",
            sa.Integer(),
            sa.ForeignKey("chats.id", ondelete="CASCADE", name="fk_chat_members_chat"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_chat_members_user"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("photo_url", sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_chat_members"),
        sa.UniqueConstraint("chat_id", "user_id", name="uq_chat_members_chat_user"),
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "chat_id",
            sa.Integer(),
            sa.ForeignKey("chats.id", ondelete="CASCADE", name="fk_chat_messages_chat"),
            nullable=False,
        ),
        sa.Column(
            "sender_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_chat_messages_sender"),
            nullable=False,
        ),
        sa.Column("sender_first_name", sa.String(100), nullable=False),
        sa.Column("sender_last_name", sa.String(100), nullable=False),
        sa.Column("sender_photo_url", sa.String(500), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_chat_messages"),
    )

    # ── Step 6: venues ─────────────────────────────────────────────────────

    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("rating", sa.String(20), nullable=True),
        sa.Column("address", sa.String(300), nullable=False),
        sa.Column("opening_time", sa.Time(), nullable=False),
        sa.Column("closing_time", sa.Time(), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("photos", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("latitude", sa.String(30), nullable=True),
        sa.Column("longitude", sa.String(30), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_venues"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_venues_title_nonempty",
        ),
    )

    # ── Step 7: Indexes ────────────────────────────────────────────────────
    # Names follow SQLAlchemy's ix_<table>_<column> so autogenerate sees no diff.

    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])
    op.create_index("ix_game_cards_host_user_id", "game_cards", ["host_user_id"])
    op.create_index("ix_game_cards_city", "game_cards", ["city"])
    # The sweeper scans (status, scheduled_time); the feed filters on status.
    op.create_index(
        "idx_game_cards_status_scheduled",
        "game_cards",
        ["status", "scheduled_time"],
    )
    op.create_index("ix_matched_players_game_card_id", "matched_players", ["game_card_id"])
    op.create_index("ix_matched_players_user_id", "matched_players", ["user_id"])
    op.create_index("ix_chat_members_chat_id", "chat_members", ["chat_id"])
    op.create_index("ix_chat_members_user_id", "chat_members", ["user_id"])
    op.create_index("ix_chat_messages_chat_id", "chat_messages", ["chat_id"])


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.

    Provided for local development reset only; in production prefer a
    corrective migration.
    """
    op.drop_index("ix_chat_messages_chat_id",        table_name="chat_messages")
    op.drop_index("ix_chat_members_user_id",         table_name="chat_members")
    op.drop_index("ix_chat_members_chat_id",         table_name="chat_members")
    op.drop_index("ix_matched_players_user_id",      table_name="matched_players")
    op.drop_index("ix_matched_players_game_card_id", table_name="matched_players")
    op.drop_index("idx_game_cards_status_scheduled", table_name="game_cards")
    op.drop_index("ix_game_cards_city",              table_name="game_cards")
    op.drop_index("ix_game_cards_host_user_id",      table_name="game_cards")
    op.drop_index("ix_refresh_tokens_user_id",       table_name="refresh_tokens")

    op.drop_table("venues")
    op.drop_table("chat_messages")
    op.drop_table("chat_members")
    op.drop_table("chats")
    op.drop_table("matched_players")
    op.drop_table("game_cards")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
