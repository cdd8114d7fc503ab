"""Fairway initial schema — registrations, leaderboard, scorecards, check-ins

Revision ID: 001
Revises:
Create Date: 2026-03-02 00:00:00.000000

Changes:
  - Create registrations table (workflow state + payment columns, JSON player data)
  - Create leaderboard_entries table (unique per bracket + registration)
  - Create scorecards table (18 holes stored as JSON)
  - Create check_ins table
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── registrations ─────────────────────────────────────────────────────────
    op.create_table(
        "registrations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("primary_player", sa.JSON(), nullable=False),
        sa.Column("additional_players", sa.JSON(), nullable=False),
        sa.Column("preferences", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("fees", sa.Integer(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(30), nullable=True),
        sa.Column("payment_status", sa.String(30), nullable=False),
        sa.Column("payment_intent_id", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkin_token", sa.String(36), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_registrations_sequence", "registrations", ["sequence"])
    op.create_index("ix_registrations_status", "registrations", ["status"])

    # ── leaderboard_entries ───────────────────────────────────────────────────
    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("registration_id", sa.String(64), nullable=False),
        sa.Column("team_name", sa.String(255), nullable=False),
        sa.Column("total_strokes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score_to_par", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("holes_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_tied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("players", sa.JSON(), nullable=False),
        sa.Column("current_hole", sa.Integer(), nullable=True),
        sa.Column("last_score", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("bracket_id", "registration_id"),
    )
    op.create_index("ix_leaderboard_entries_bracket_id", "leaderboard_entries", ["bracket_id"])

    # ── scorecards ────────────────────────────────────────────────────────────
    op.create_table(
        "scorecards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("registration_id", sa.String(64), nullable=False),
        sa.Column("team_name", sa.String(255), nullable=False),
        sa.Column("player_name", sa.String(255), nullable=False),
        sa.Column("holes", sa.JSON(), nullable=False),
        sa.Column("total_strokes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score_to_par", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("holes_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("bracket_id", "registration_id"),
    )
    op.create_index("ix_scorecards_bracket_id", "scorecards", ["bracket_id"])

    # ── check_ins ─────────────────────────────────────────────────────────────
    op.create_table(
        "check_ins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("registration_id", sa.String(64), nullable=False),
        sa.Column("player_name", sa.String(255), nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cart_number", sa.String(20), nullable=True),
        sa.Column("starting_hole", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("notes", sa.String(1000), nullable=True),
    )
    op.create_index("ix_check_ins_bracket_id", "check_ins", ["bracket_id"])
    op.create_index("ix_check_ins_registration_id", "check_ins", ["registration_id"])


def downgrade() -> None:
    op.drop_table("check_ins")
    op.drop_table("scorecards")
    op.drop_table("leaderboard_entries")
    op.drop_table("registrations")
