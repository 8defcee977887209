"""Pytest configuration for test isolation.

The package reads several ``SI_*`` variables (and ``DATABASE_URL``) from the
environment, and a developer's shell or ``.env`` may set them. Every test
starts from a clean slate so defaults are what the assertions see.

SQLAlchemy engines are cached per URL inside ``db.client``; they are disposed
after each test so temporary SQLite files can be removed.
"""

from __future__ import annotations

import pytest

_ENV_VARS = (
    "DATABASE_URL",
    "STATEMENT_IMPORT_LOG_LEVEL",
    "SI_COMMIT_CONCURRENCY",
    "SI_CATEGORY_RULES_FILE",
    "SI_DATE_DAYFIRST",
    "SI_BAD_DATE_POLICY",
    "SI_SKIP_BLANK_COLUMNS",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _dispose_engines():
    yield
    from db.client import reset_engines

    reset_engines()
