"""predictions

Revision ID: 0002_predictions
Revises: 0001_pools_and_matches
Create Date: 2026-10-05 11:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002_predictions"
down_revision: str | None = "0001_pools_and_matches"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "predictions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("match_id", sa.String(length=64), sa.ForeignKey("matches.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("home_pred", sa.Integer(), nullable=False),
        sa.Column("away_pred", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("market", sa.String(length=16), nullable=False, server_default="1x2"),
        sa.Column("outcome", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("match_id", "user_id", name="uq_prediction_match_user"),
        sa.CheckConstraint("home_pred >= 0 AND away_pred >= 0", name="ck_prediction_non_negative"),
        sa.CheckConstraint("outcome IN (-1, 0, 1)", name="ck_prediction_outcome"),
    )
    op.create_index("ix_predictions_match_id", "predictions", ["match_id"])
    op.create_index("ix_predictions_user_id", "predictions", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_predictions_user_id", table_name="predictions")
    op.drop_index("ix_predictions_match_id", table_name="predictions")
    op.drop_table("predictions")
