"""DB helpers for tests: bootstrap a temporary SQLite DB."""

from __future__ import annotations

from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.statements import UserTransaction
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections (and
    the committer's worker threads) share the same state; in-memory DBs are
    per-connection by default.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_transactions_schema_in_sync(url)
    return url


def _assert_transactions_schema_in_sync(database_url: str) -> None:
    """ORM column set matches the SQLite table column set."""

    expected = {c.name for c in UserTransaction.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('si_user_transactions')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"si_user_transactions schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
    )
