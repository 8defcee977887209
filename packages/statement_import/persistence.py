# ruff: noqa: I001
"""SQL-backed transaction store.

Writes committed statement rows to the shared database owned by ``libs/db``
(``si_user_transactions``) and keeps per-user learned rules in
``si_learned_rules``. Sessions come from ``db.client``; each call runs in its
own short transaction so the committer's worker threads never share a
session.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select

from db.client import session_scope
from db.models.statements import LearnedRule, UserTransaction
from .logging_setup import get_logger
from .models import StoredRecord

_logger = get_logger("statement_import.persistence")


def _norm_pattern(pattern: str) -> str:
    return " ".join(pattern.strip().lower().split())


class SqlTransactionStore:
    """``TransactionStore`` + ``RuleStore`` over SQLAlchemy.

    ``database_url`` falls back to ``DATABASE_URL`` when ``None``.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def create(self, user_id: str, record: StoredRecord) -> str:
        row = UserTransaction(
            user_id=user_id,
            type=record.type.value,
            category=record.category,
            amount=record.amount,
            date=date.fromisoformat(record.date),
            description=record.description,
            comment=record.comment,
        )
        with session_scope(database_url=self.database_url) as session:
            session.add(row)
            session.flush()
            record_id = row.id
        _logger.debug("store:created user_id=%s id=%s", user_id, record_id)
        return record_id

    def list(self, user_id: str) -> list[StoredRecord]:
        """All records of ``user_id``, oldest transaction date first."""

        stmt = (
            select(UserTransaction)
            .where(UserTransaction.user_id == user_id)
            .order_by(UserTransaction.date, UserTransaction.created_at, UserTransaction.id)
        )
        with session_scope(database_url=self.database_url) as session:
            rows = session.scalars(stmt).all()
            return [
                StoredRecord(
                    type=r.type,
                    category=r.category,
                    amount=r.amount,
                    date=r.date.isoformat(),
                    description=r.description,
                    comment=r.comment,
                    created_at=r.created_at,
                )
                for r in rows
            ]

    def save_rule(self, user_id: str, pattern: str, category: str) -> None:
        """Insert or update the learned rule ``pattern`` → ``category``."""

        key = _norm_pattern(pattern)
        if not key:
            raise ValueError("pattern must be non-empty")
        with session_scope(database_url=self.database_url) as session:
            existing = session.scalar(
                select(LearnedRule).where(
                    LearnedRule.user_id == user_id, LearnedRule.pattern == key
                )
            )
            if existing is None:
                session.add(LearnedRule(user_id=user_id, pattern=key, category=category))
            else:
                existing.category = category
        _logger.info("store:rule_saved user_id=%s pattern=%r category=%s", user_id, key, category)

    def load_rules(self, user_id: str) -> dict[str, str]:
        stmt = select(LearnedRule.pattern, LearnedRule.category).where(
            LearnedRule.user_id == user_id
        )
        with session_scope(database_url=self.database_url) as session:
            return {pattern: category for pattern, category in session.execute(stmt)}


__all__ = ["SqlTransactionStore"]
