"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the statement-import tables used by ``statement_import``.
"""

from .statements import Base, LearnedRule, UserTransaction

__all__ = [
    "Base",
    "LearnedRule",
    "UserTransaction",
]
