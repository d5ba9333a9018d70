"""smart default preference tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "smart_default_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("document", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_smart_default_profiles_user_id", "smart_default_profiles", ["user_id"], unique=True)

    op.create_table(
        "intensity_mismatch_counters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("workout_type", sa.String(length=40), nullable=False),
        sa.Column("intensity", sa.String(length=20), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("user_id", "workout_type", "intensity", name="uq_intensity_counter_key"),
    )
    op.create_index("ix_intensity_mismatch_counters_user_id", "intensity_mismatch_counters", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_intensity_mismatch_counters_user_id", table_name="intensity_mismatch_counters")
    op.drop_table("intensity_mismatch_counters")
    op.drop_index("ix_smart_default_profiles_user_id", table_name="smart_default_profiles")
    op.drop_table("smart_default_profiles")
