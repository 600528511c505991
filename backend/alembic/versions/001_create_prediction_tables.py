"""Create prediction statistics tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create procedure_add_counts table
    op.create_table(
        "procedure_add_counts",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("control_name", sa.String(255), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_procedure_add_counts_control_name", "procedure_add_counts", ["control_name"], unique=True
    )

    # Create procedure_co_occurrences table
    op.create_table(
        "procedure_co_occurrences",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("anchor", sa.String(255), nullable=False),
        sa.Column("companion", sa.String(255), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("anchor", "companion", name="uq_procedure_co_occurrences_pair"),
    )
    op.create_index("ix_procedure_co_occurrences_anchor", "procedure_co_occurrences", ["anchor"])

    # Create prediction_seed_runs table
    op.create_table(
        "prediction_seed_runs",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("facility_types", sa.JSON(), nullable=False),
        sa.Column("method", sa.String(50), nullable=False, server_default="rules"),
        sa.Column("seeded_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("prediction_seed_runs")
    op.drop_index("ix_procedure_co_occurrences_anchor", table_name="procedure_co_occurrences")
    op.drop_table("procedure_co_occurrences")
    op.drop_index("ix_procedure_add_counts_control_name", table_name="procedure_add_counts")
    op.drop_table("procedure_add_counts")
