"""CSV export of stored records.

The column set is chosen so the file can be fed straight back into the
ingestion pipeline: ``Date``/``Description``/``Amount`` resolve through the
default aliases and ``Type`` carries the direction (``Income`` / ``Expense``
match the type markers).
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from typing import TextIO

from .models import StoredRecord

EXPORT_COLUMNS: tuple[str, ...] = ("Date", "Description", "Amount", "Type", "Category", "Comment")


def write_csv(records: Iterable[StoredRecord], out: TextIO) -> int:
    """Write ``records`` to ``out``; returns the number of data rows."""

    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    n = 0
    for r in records:
        writer.writerow([r.date, r.description, r.amount, r.type.value, r.category, r.comment])
        n += 1
    return n


def export_csv(records: Iterable[StoredRecord]) -> str:
    buf = io.StringIO()
    write_csv(records, buf)
    return buf.getvalue()


__all__ = ["EXPORT_COLUMNS", "export_csv", "write_csv"]
