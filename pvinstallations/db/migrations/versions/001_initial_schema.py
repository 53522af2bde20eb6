"""
Initial schema: pv_installations and production_reports tables.

Creates the installation table and the production report table with a
foreign key to it, plus indexes on the report installation id and
timestamp used by the range and timeline queries.

Revision ID: 001
Revises: None
Create Date: 2026-10-11

CHANGELOG:
- 2026-10-11: Initial creation
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create pv_installations and production_reports."""
    op.create_table(
        "pv_installations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(length=1024), nullable=False),
        sa.Column("owner_name", sa.String(length=512), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("comments", sa.String(length=1024), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "production_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("produced_wattage", sa.Float(), nullable=False),
        sa.Column("household_wattage", sa.Float(), nullable=False),
        sa.Column("battery_wattage", sa.Float(), nullable=False),
        sa.Column("grid_wattage", sa.Float(), nullable=False),
        sa.Column("installation_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["installation_id"],
            ["pv_installations.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_production_reports_installation_id",
        "production_reports",
        ["installation_id"],
    )
    op.create_index(
        "ix_production_reports_timestamp",
        "production_reports",
        ["timestamp"],
    )


def downgrade() -> None:
    op.drop_index("ix_production_reports_timestamp", table_name="production_reports")
    op.drop_index(
        "ix_production_reports_installation_id", table_name="production_reports"
    )
    op.drop_table("production_reports")
    op.drop_table("pv_installations")
