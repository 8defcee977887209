"""Data models for the statement import pipeline.

Lifecycle
---------
``RawRow`` (decoder output) → :class:`NormalizedTransaction` (pipeline output,
wrapped in :class:`Ok` or replaced by :class:`Skipped`) → :class:`PreviewBatch`
(user may override categories) → :class:`StoredRecord` (one per transaction,
handed to the store) → :class:`CommitResult`.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import CommitPartialFailure

if TYPE_CHECKING:
    from .config import CategorySets

# A decoded row keyed by trimmed header text. Values are raw cells: strings
# from CSV, or str/int/float/datetime/None from spreadsheets.
type RawRow = Mapping[str, Any]


class Direction(StrEnum):
    """Whether a transaction increases or decreases the user's balance."""

    INCOME = "Income"
    EXPENSE = "Expense"


# ---------------------------------------------------------------------------
# Normalized rows and per-row outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NormalizedTransaction:
    """The canonical output unit of one statement row.

    ``amount`` is a non-negative ``Decimal`` quantized to two places and
    ``date`` is always ``YYYY-MM-DD``.
    """

    date: str
    description: str
    amount: Decimal
    direction: Direction
    category: str
    note: str

    @property
    def amount_str(self) -> str:
        return f"{self.amount:.2f}"

    def with_category(self, category: str) -> NormalizedTransaction:
        return replace(self, category=category)


type SkipReason = Literal[
    "missing_date",
    "missing_description",
    "missing_amount",
    "invalid_amount",
    "invalid_date",
]


@dataclass(frozen=True, slots=True)
class Ok:
    row_number: int
    transaction: NormalizedTransaction


@dataclass(frozen=True, slots=True)
class Skipped:
    """A row that could not become a transaction.

    ``row_number`` is the 1-based position among decoded data rows (header and
    blank lines excluded).
    """

    row_number: int
    reason: SkipReason
    raw: RawRow


type RowOutcome = Ok | Skipped


# ---------------------------------------------------------------------------
# Preview batch
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PreviewBatch:
    """Normalized transactions awaiting user confirmation.

    Categories may be overridden per position before commit; overrides must
    come from the category set of that row's direction. The transactions
    themselves are never mutated.
    """

    transactions: tuple[NormalizedTransaction, ...]
    category_sets: CategorySets
    skipped: tuple[Skipped, ...] = ()
    source: str | None = None
    overrides: dict[int, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.transactions)

    def __iter__(self) -> Iterator[NormalizedTransaction]:
        return iter(self.effective())

    def options_for(self, position: int) -> tuple[str, ...]:
        """Category labels selectable for the row at ``position``."""

        return self.category_sets.for_direction(self.transactions[position].direction)

    def set_category(self, position: int, category: str) -> None:
        tx = self.transactions[position]
        allowed = self.options_for(position)
        if category not in allowed:
            raise ValueError(
                f"Category {category!r} is not valid for {tx.direction.value} "
                f"transactions; choose one of: {', '.join(allowed)}"
            )
        if category == tx.category:
            self.overrides.pop(position, None)
        else:
            self.overrides[position] = category

    def effective(self) -> list[NormalizedTransaction]:
        """Transactions with any user overrides applied, in input order."""

        return [
            tx.with_category(self.overrides[i]) if i in self.overrides else tx
            for i, tx in enumerate(self.transactions)
        ]


# ---------------------------------------------------------------------------
# Store wire shape
# ---------------------------------------------------------------------------

_AMOUNT_RE = re.compile(r"^\d+\.\d{2}$")


class StoredRecord(BaseModel):
    """One record as written to (and read back from) the transaction store.

    Field names mirror the document shape of the per-user collection;
    ``createdAt`` is assigned by the store and is ``None`` before creation.
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="forbid", str_strip_whitespace=True
    )

    type: Direction
    category: str
    amount: str
    date: str
    description: str
    comment: str
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @field_validator("amount")
    @classmethod
    def _amount_two_places(cls, v: str) -> str:
        if not _AMOUNT_RE.fullmatch(v):
            raise ValueError("amount must be a non-negative decimal with 2 places")
        return v

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

    @field_validator("description", "category")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be non-empty")
        return v

    @classmethod
    def from_transaction(cls, tx: NormalizedTransaction) -> StoredRecord:
        return cls(
            type=tx.direction,
            category=tx.category,
            amount=tx.amount_str,
            date=tx.date,
            description=tx.description,
            comment=tx.note,
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize using the store's field names (``createdAt``)."""

        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Commit outcome
# ---------------------------------------------------------------------------


class CommitFailure(NamedTuple):
    position: int
    reason: str


type CommitStatus = Literal["success", "partial_failure", "failure", "empty"]


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Aggregate outcome of persisting a preview batch.

    ``record_ids`` lists store identifiers of successful writes in batch
    order. Failed writes are not retried and successful ones are not undone.
    """

    status: CommitStatus
    succeeded: int
    failed: int
    record_ids: tuple[str, ...] = ()
    failures: tuple[CommitFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise CommitPartialFailure(self)

    @classmethod
    def from_outcomes(
        cls, record_ids: Sequence[str | None], failures: Sequence[CommitFailure]
    ) -> CommitResult:
        ids = tuple(r for r in record_ids if r is not None)
        succeeded, failed = len(ids), len(failures)
        status: CommitStatus
        if succeeded == 0 and failed == 0:
            status = "empty"
        elif failed == 0:
            status = "success"
        elif succeeded == 0:
            status = "failure"
        else:
            status = "partial_failure"
        return cls(
            status=status,
            succeeded=succeeded,
            failed=failed,
            record_ids=ids,
            failures=tuple(sorted(failures)),
        )


__all__ = [
    "RawRow",
    "Direction",
    "NormalizedTransaction",
    "SkipReason",
    "Ok",
    "Skipped",
    "RowOutcome",
    "PreviewBatch",
    "StoredRecord",
    "CommitFailure",
    "CommitStatus",
    "CommitResult",
]
