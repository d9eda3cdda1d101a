"""bracket pools, ownership ledger and audit log

Revision ID: 0001_bracket_core
Revises:
Create Date: 2026-10-12 09:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_bracket_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "pools",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("scoring_rule", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "pool_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pool_members_pool_id", "pool_members", ["pool_id"])

    op.create_table(
        "teams",
        sa.Column("code", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("abbreviation", sa.String(length=8), nullable=True),
    )

    op.create_table(
        "pool_teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("team_code", sa.String(length=32), nullable=False),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.UniqueConstraint("pool_id", "team_code", name="uq_pool_team"),
    )
    op.create_index("ix_pool_teams_pool_id", "pool_teams", ["pool_id"])

    op.create_table(
        "pool_rounds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("key", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_pool_rounds_pool_id", "pool_rounds", ["pool_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("competition_key", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("round_key", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("home_team", sa.String(length=32), nullable=False),
        sa.Column("away_team", sa.String(length=32), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="scheduled"),
        sa.Column("final_home_score", sa.Integer(), nullable=True),
        sa.Column("final_away_score", sa.Integer(), nullable=True),
        sa.Column("winner_team_code", sa.String(length=32), nullable=True),
    )

    op.create_table(
        "lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False, unique=True),
        sa.Column("home_spread", sa.Numeric(6, 1), nullable=True),
        sa.Column("away_spread", sa.Numeric(6, 1), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False, server_default="manual"),
        sa.Column("book", sa.Text(), nullable=True),
    )

    op.create_table(
        "pool_matchups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("round_id", sa.Integer(), sa.ForeignKey("pool_rounds.id"), nullable=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=True),
        sa.Column("state", sa.String(length=24), nullable=False, server_default="unresolved"),
        sa.Column("winner_member_id", sa.Integer(), sa.ForeignKey("pool_members.id"), nullable=True),
        sa.Column("decided_by", sa.String(length=16), nullable=True),
        sa.Column("result_type", sa.String(length=16), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("commissioner_note", sa.Text(), nullable=True),
        sa.Column("home_member_id", sa.Integer(), sa.ForeignKey("pool_members.id"), nullable=True),
        sa.Column("away_member_id", sa.Integer(), sa.ForeignKey("pool_members.id"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_pool_matchups_pool_id", "pool_matchups", ["pool_id"])
    op.create_index("ix_pool_matchups_event_state", "pool_matchups", ["event_id", "state"])

    op.create_table(
        "ownership",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("pool_members.id"), nullable=False),
        sa.Column("team_code", sa.String(length=32), nullable=False),
        sa.Column("acquired_via", sa.String(length=16), nullable=False, server_default="initial"),
        sa.Column("from_matchup_id", sa.Integer(), sa.ForeignKey("pool_matchups.id"), nullable=True),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("pool_id", "team_code", name="uq_ownership_pool_team"),
    )
    op.create_index("ix_ownership_pool_member", "ownership", ["pool_id", "member_id"])
    op.create_index("ix_ownership_from_matchup_id", "ownership", ["from_matchup_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("matchup_id", sa.Integer(), sa.ForeignKey("pool_matchups.id"), nullable=True),
        sa.Column("action_type", sa.String(length=32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("actor_user_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_pool_created", "audit_log", ["pool_id", "created_at"])
    op.create_index("ix_audit_log_matchup_id", "audit_log", ["matchup_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_matchup_id", table_name="audit_log")
    op.drop_index("ix_audit_log_pool_created", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_ownership_from_matchup_id", table_name="ownership")
    op.drop_index("ix_ownership_pool_member", table_name="ownership")
    op.drop_table("ownership")
    op.drop_index("ix_pool_matchups_event_state", table_name="pool_matchups")
    op.drop_index("ix_pool_matchups_pool_id", table_name="pool_matchups")
    op.drop_table("pool_matchups")
    op.drop_table("lines")
    op.drop_table("events")
    op.drop_index("ix_pool_rounds_pool_id", table_name="pool_rounds")
    op.drop_table("pool_rounds")
    op.drop_index("ix_pool_teams_pool_id", table_name="pool_teams")
    op.drop_table("pool_teams")
    op.drop_table("teams")
    op.drop_index("ix_pool_members_pool_id", table_name="pool_members")
    op.drop_table("pool_members")
    op.drop_table("pools")
