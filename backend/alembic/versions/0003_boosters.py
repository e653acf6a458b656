"""booster activations and usages

Revision ID: 0003_boosters
Revises: 0002_predictions
Create Date: 2026-10-06 09:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0003_boosters"
down_revision: str | None = "0002_predictions"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "booster_activations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("booster_id", sa.String(length=32), nullable=False),
        sa.Column("scope", sa.String(length=16), nullable=False, server_default="global"),
        sa.Column("match_id", sa.String(length=64), sa.ForeignKey("matches.id"), nullable=True),
        sa.Column("pool_id", sa.String(length=36), sa.ForeignKey("pools.id"), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_booster_activations_lookup",
        "booster_activations",
        ["user_id", "booster_id", "status"],
    )
    op.create_index("ix_booster_activations_match_id", "booster_activations", ["match_id"])

    op.create_table(
        "booster_usages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pool_id", sa.String(length=36), sa.ForeignKey("pools.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("match_id", sa.String(length=64), sa.ForeignKey("matches.id"), nullable=False),
        sa.Column("booster_id", sa.String(length=32), nullable=False),
        sa.Column("activation_id", sa.String(length=36), sa.ForeignKey("booster_activations.id"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="consumed"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_booster_usages_pool_id", "booster_usages", ["pool_id"])
    op.create_index("ix_booster_usages_user_id", "booster_usages", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_booster_usages_user_id", table_name="booster_usages")
    op.drop_index("ix_booster_usages_pool_id", table_name="booster_usages")
    op.drop_table("booster_usages")
    op.drop_index("ix_booster_activations_match_id", table_name="booster_activations")
    op.drop_index("ix_booster_activations_lookup", table_name="booster_activations")
    op.drop_table("booster_activations")
