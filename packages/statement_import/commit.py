"""Persist a confirmed preview batch to a per-user transaction store.

Each transaction becomes one ``store.create(user_id, record)`` call, issued
through a bounded thread pool. Every call runs to completion: a failed write
is recorded in the :class:`~statement_import.models.CommitResult` and logged,
is not retried, and does not undo writes that already succeeded.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .logging_setup import get_logger
from .models import CommitFailure, CommitResult, PreviewBatch, StoredRecord
from .pmap import p_map_settled, resolve_concurrency

_logger = get_logger("statement_import.commit")


class TransactionStore(Protocol):
    """Per-user record collection.

    ``create`` returns the store-assigned identifier; ``list`` returns the
    user's records with ``created_at`` populated.
    """

    def create(self, user_id: str, record: StoredRecord) -> str: ...

    def list(self, user_id: str) -> list[StoredRecord]: ...


@runtime_checkable
class RuleStore(Protocol):
    """Optional store capability: learned description → category rules."""

    def save_rule(self, user_id: str, pattern: str, category: str) -> None: ...

    def load_rules(self, user_id: str) -> dict[str, str]: ...


class BatchCommitter:
    def __init__(self, store: TransactionStore, *, concurrency: int | None = None) -> None:
        self.store = store
        self.concurrency = resolve_concurrency(concurrency)

    def commit(
        self, batch: PreviewBatch, user_id: str, *, learn_overrides: bool = False
    ) -> CommitResult:
        """Write every transaction of ``batch`` (overrides applied).

        With ``learn_overrides=True`` and a store implementing
        :class:`RuleStore`, each category override is also saved as a learned
        rule for ``user_id`` (description → category). Rule-save errors are
        logged and do not affect the result.
        """

        if not user_id or not user_id.strip():
            raise ValueError("user_id is required")

        records = [StoredRecord.from_transaction(tx) for tx in batch.effective()]
        if not records:
            _logger.info("commit:empty user_id=%s", user_id)
            return CommitResult.from_outcomes([], [])

        _logger.info(
            "commit:start user_id=%s records=%d concurrency=%d",
            user_id,
            len(records),
            self.concurrency,
        )
        settled = p_map_settled(
            records,
            lambda rec: self.store.create(user_id, rec),
            concurrency=self.concurrency,
        )

        record_ids: list[str | None] = []
        failures: list[CommitFailure] = []
        for pos, outcome in enumerate(settled):
            if outcome.ok:
                record_ids.append(outcome.value)
                continue
            record_ids.append(None)
            err = outcome.error
            reason = f"{err.__class__.__name__}: {err}"
            failures.append(CommitFailure(pos, reason))
            _logger.warning(
                "commit:record_failed user_id=%s position=%d error=%s", user_id, pos, reason
            )

        result = CommitResult.from_outcomes(record_ids, failures)
        _logger.info(
            "commit:done user_id=%s status=%s succeeded=%d failed=%d",
            user_id,
            result.status,
            result.succeeded,
            result.failed,
        )

        if learn_overrides and batch.overrides:
            self._learn(batch, user_id)
        return result

    def _learn(self, batch: PreviewBatch, user_id: str) -> None:
        if not isinstance(self.store, RuleStore):
            _logger.debug("commit:learn_unsupported store=%s", type(self.store).__name__)
            return
        for pos, category in sorted(batch.overrides.items()):
            description = batch.transactions[pos].description
            try:
                self.store.save_rule(user_id, description, category)
            except Exception as e:  # noqa: BLE001 - learning is best effort
                _logger.warning(
                    "commit:learn_failed user_id=%s pattern=%r error=%s",
                    user_id,
                    description,
                    e.__class__.__name__,
                )


__all__ = ["TransactionStore", "RuleStore", "BatchCommitter"]
