"""Statement file → preview batch.

Composes decode → column resolution → normalization → categorization. Rows
are processed in read order and independently of each other: a bad row
becomes a :class:`~statement_import.models.Skipped` outcome, never an
exception. Only whole-file problems (unsupported extension, undecodable
bytes) raise.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from datetime import date
from pathlib import Path

from .categorize import Categorizer
from .config import IngestConfig
from .ingest.columns import ColumnResolver, is_blank
from .ingest.decoders import decode
from .logging_setup import get_logger
from .models import NormalizedTransaction, Ok, PreviewBatch, RawRow, RowOutcome, Skipped
from .normalizers import (
    infer_direction,
    normalize_date,
    parse_amount,
    to_magnitude,
    today_utc,
)

_logger = get_logger("statement_import.pipeline")


class IngestionPipeline:
    """Turn an uploaded statement into a :class:`PreviewBatch`.

    ``today`` supplies the substitute date for unparseable date cells under
    the ``"today"`` bad-date policy; tests inject a fixed clock.
    """

    def __init__(
        self,
        config: IngestConfig | None = None,
        *,
        today: Callable[[], date] = today_utc,
    ) -> None:
        self.config = config or IngestConfig()
        self._today = today
        self._resolver = ColumnResolver(
            self.config.aliases, skip_blank_matches=self.config.skip_blank_matches
        )
        self._categorizer = Categorizer(
            self.config.rules, self.config.category_sets, self.config.learned_rules
        )

    def _normalize(self, row_number: int, row: RawRow) -> RowOutcome:
        cfg = self.config
        fields = self._resolver.resolve_all(row)

        raw_date = fields["date"]
        raw_desc = fields["description"]
        raw_amount = fields["amount"]
        if is_blank(raw_date):
            return Skipped(row_number, "missing_date", row)
        if is_blank(raw_desc):
            return Skipped(row_number, "missing_description", row)
        if is_blank(raw_amount):
            return Skipped(row_number, "missing_amount", row)

        try:
            signed = parse_amount(raw_amount)
            magnitude = to_magnitude(signed)
        except ValueError:
            return Skipped(row_number, "invalid_amount", row)

        fallback = self._today() if cfg.bad_date_policy == "today" else None
        try:
            iso_date = normalize_date(raw_date, dayfirst=cfg.dayfirst, fallback=fallback)
        except ValueError:
            return Skipped(row_number, "invalid_date", row)

        description = str(raw_desc).strip()
        direction = infer_direction(
            signed,
            fields["type"],
            income_markers=cfg.income_markers,
            expense_markers=cfg.expense_markers,
            amount_column=self._resolver.resolve_source(row, "amount"),
        )
        tx = NormalizedTransaction(
            date=iso_date,
            description=description,
            amount=magnitude,
            direction=direction,
            category=self._categorizer.categorize(description, direction),
            note=f"{cfg.note_prefix}{description}",
        )
        return Ok(row_number, tx)

    def iter_outcomes(self, rows: Iterable[RawRow]) -> Iterator[RowOutcome]:
        """Yield one outcome per raw row, numbered from 1 in read order."""

        for i, row in enumerate(rows, start=1):
            outcome = self._normalize(i, row)
            if isinstance(outcome, Skipped):
                _logger.debug(
                    "ingest:row_skipped row=%d reason=%s", outcome.row_number, outcome.reason
                )
            yield outcome

    def build_batch(self, rows: Iterable[RawRow], *, source: str | None = None) -> PreviewBatch:
        transactions: list[NormalizedTransaction] = []
        skipped: list[Skipped] = []
        for outcome in self.iter_outcomes(rows):
            if isinstance(outcome, Ok):
                transactions.append(outcome.transaction)
            else:
                skipped.append(outcome)

        _logger.info(
            "ingest:done source=%s transactions=%d skipped=%d",
            source or "-",
            len(transactions),
            len(skipped),
        )
        return PreviewBatch(
            transactions=tuple(transactions),
            category_sets=self.config.category_sets,
            skipped=tuple(skipped),
            source=source,
        )

    def ingest(self, data: bytes, filename: str) -> PreviewBatch:
        """Decode ``data`` (format chosen by ``filename``) into a preview."""

        rows = decode(data, filename)
        return self.build_batch(rows, source=filename)

    def ingest_path(self, path: str | os.PathLike[str]) -> PreviewBatch:
        p = Path(path)
        return self.ingest(p.read_bytes(), p.name)


__all__ = ["IngestionPipeline"]
