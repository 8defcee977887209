from __future__ import annotations

import uuid
import datetime as dt

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------
# Core: si_user_transactions
# ---------------------------


class UserTransaction(Base):
    __tablename__ = "si_user_transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)

    # "Income" | "Expense"
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    # Kept as the exact two-decimal string written by the importer.
    amount: Mapped[str] = mapped_column(String(32), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("type IN ('Income', 'Expense')", name="ck_si_tx_type"),
        Index("idx_si_tx_user_date", "user_id", "date"),
    )


# ---------------------------
# Learned merchant rules: si_learned_rules
# ---------------------------


class LearnedRule(Base):
    __tablename__ = "si_learned_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    # Lower-cased, trimmed description.
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (UniqueConstraint("user_id", "pattern", name="uq_si_rule_user_pattern"),)
