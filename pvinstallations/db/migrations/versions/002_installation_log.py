"""
Add installation_logs: append-only audit trail of installation changes.

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

CHANGELOG:
- 2026-10-12: Initial creation
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create installation_logs with a cascading FK to pv_installations."""
    op.create_table(
        "installation_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("previous_value", sa.Text(), nullable=False),
        sa.Column("next_value", sa.Text(), nullable=False),
        sa.Column("installation_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["installation_id"],
            ["pv_installations.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_installation_logs_installation_id",
        "installation_logs",
        ["installation_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_installation_logs_installation_id", table_name="installation_logs"
    )
    op.drop_table("installation_logs")
