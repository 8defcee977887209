# ruff: noqa: I001
"""Statement import tables: per-user transactions and learned rules.

Revision ID: 0001_si_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_si_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "si_user_transactions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("amount", sa.String(32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("type IN ('Income', 'Expense')", name="ck_si_tx_type"),
    )
    op.create_index("idx_si_tx_user_date", "si_user_transactions", ["user_id", "date"])

    op.create_table(
        "si_learned_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "pattern", name="uq_si_rule_user_pattern"),
    )


def downgrade() -> None:
    op.drop_table("si_learned_rules")
    op.drop_index("idx_si_tx_user_date", table_name="si_user_transactions")
    op.drop_table("si_user_transactions")
