from __future__ import annotations

import logging

import pytest

from statement_import.commit import BatchCommitter
from statement_import.config import IngestConfig
from statement_import.errors import CommitPartialFailure
from statement_import.pipeline import IngestionPipeline
from tests.helpers.store_stub import MemoryRuleStore, MemoryStore


def _batch(n: int = 3):
    rows = [
        {"Date": f"2024-01-0{i + 1}", "Description": f"Uber Trip {i}", "Amount": f"-{i + 1}0"}
        for i in range(n)
    ]
    return IngestionPipeline(IngestConfig()).build_batch(rows)


def test_all_records_saved():
    store = MemoryStore()
    result = BatchCommitter(store, concurrency=4).commit(_batch(), "u1")

    assert result.status == "success"
    assert (result.succeeded, result.failed) == (3, 0)
    assert len(result.record_ids) == 3
    saved = store.list("u1")
    assert {r.description for r in saved} == {"Uber Trip 0", "Uber Trip 1", "Uber Trip 2"}
    assert all(r.created_at is not None for r in saved)
    first = next(r for r in saved if r.description == "Uber Trip 0")
    doc = first.to_document()
    assert doc.pop("createdAt")
    assert doc == {
        "type": "Expense",
        "category": "Transport",
        "amount": "10.00",
        "date": "2024-01-01",
        "description": "Uber Trip 0",
        "comment": "Imported from bank statement: Uber Trip 0",
    }


def test_second_write_fails_without_rollback(caplog, monkeypatch):
    store = MemoryStore(fail_on_calls={2})
    # The CLI may have configured the package logger (propagate=False) earlier in the run
    monkeypatch.setattr(logging.getLogger("statement_import"), "propagate", True)
    caplog.set_level(logging.WARNING, logger="statement_import")

    result = BatchCommitter(store, concurrency=1).commit(_batch(), "u1")

    assert result.status == "partial_failure"
    assert (result.succeeded, result.failed) == (2, 1)
    assert result.record_ids == ("rec-1", "rec-3")
    assert [f.position for f in result.failures] == [1]
    assert "store unavailable" in result.failures[0].reason
    # The two successful writes stay in the store
    assert [r.description for r in store.list("u1")] == ["Uber Trip 0", "Uber Trip 2"]
    assert store.calls == 3
    assert any("commit:record_failed" in rec.getMessage() for rec in caplog.records)

    with pytest.raises(CommitPartialFailure) as exc:
        result.raise_for_failure()
    assert exc.value.result is result
    assert "Saved 2 of 3" in str(exc.value)


def test_all_writes_fail():
    store = MemoryStore(fail_on_calls={1, 2, 3})
    result = BatchCommitter(store, concurrency=2).commit(_batch(), "u1")
    assert result.status == "failure"
    assert result.record_ids == ()
    assert [f.position for f in result.failures] == [0, 1, 2]


def test_empty_batch_makes_no_calls():
    store = MemoryStore()
    result = BatchCommitter(store).commit(_batch(0), "u1")
    assert result.status == "empty"
    assert store.calls == 0
    result.raise_for_failure()


def test_overrides_are_written_and_optionally_learned():
    store = MemoryRuleStore()
    batch = _batch(2)
    batch.set_category(1, "Entertainment")

    BatchCommitter(store, concurrency=1).commit(batch, "u1", learn_overrides=True)

    assert [r.category for r in store.list("u1")] == ["Transport", "Entertainment"]
    assert store.load_rules("u1") == {"uber trip 1": "Entertainment"}


def test_learning_is_skipped_for_plain_stores():
    store = MemoryStore()
    batch = _batch(1)
    batch.set_category(0, "Food")
    result = BatchCommitter(store).commit(batch, "u1", learn_overrides=True)
    assert result.ok


def test_user_id_required():
    with pytest.raises(ValueError):
        BatchCommitter(MemoryStore()).commit(_batch(1), " ")


def test_concurrency_from_env(monkeypatch):
    monkeypatch.setenv("SI_COMMIT_CONCURRENCY", "3")
    assert BatchCommitter(MemoryStore()).concurrency == 3
