"""pools, members and matches

Revision ID: 0001_pools_and_matches
Revises:
Create Date: 2026-10-05 10:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_pools_and_matches"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "pools",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "pool_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.String(length=36), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("pool_id", "user_id", name="uq_pool_member"),
    )
    op.create_index("ix_pool_members_pool_id", "pool_members", ["pool_id"])
    op.create_index("ix_pool_members_user_id", "pool_members", ["user_id"])

    op.create_table(
        "matches",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("pool_id", sa.String(length=36), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("home_team", sa.Text(), nullable=False),
        sa.Column("away_team", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_matches_pool_id", "matches", ["pool_id"])


def downgrade() -> None:
    op.drop_index("ix_matches_pool_id", table_name="matches")
    op.drop_table("matches")
    op.drop_index("ix_pool_members_user_id", table_name="pool_members")
    op.drop_index("ix_pool_members_pool_id", table_name="pool_members")
    op.drop_table("pool_members")
    op.drop_table("pools")
