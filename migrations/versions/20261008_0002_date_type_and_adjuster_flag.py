"""date type and adjuster-not-assigned flag on deals

Revision ID: 20261008_0002
Revises: 20261001_0001
Create Date: 2026-10-08 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261008_0002"
down_revision = "20261001_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("deals") as batch_op:
        batch_op.add_column(sa.Column("date_type", sa.String(), nullable=True))
        batch_op.add_column(
            sa.Column("adjuster_not_assigned", sa.Boolean(), nullable=False, server_default=sa.false())
        )


def downgrade() -> None:
    with op.batch_alter_table("deals") as batch_op:
        batch_op.drop_column("adjuster_not_assigned")
        batch_op.drop_column("date_type")
