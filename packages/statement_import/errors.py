"""Exception hierarchy for ``statement_import``.

Whole-file problems (unknown extension, corrupt workbook, undecodable text)
abort an ingestion run and are raised to the caller. Row-level problems are not
exceptions: the pipeline records them as ``Skipped`` outcomes instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import CommitResult


class StatementImportError(Exception):
    """Base class for errors raised by this package."""


class UnsupportedFormat(StatementImportError):
    """The uploaded file's extension does not map to a known decoder."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(
            f"Unsupported file format: {filename!r} (expected .csv, .xlsx or .xls)"
        )


class DecodeError(StatementImportError):
    """The file could not be parsed at all; no partial result is produced."""


class CommitPartialFailure(StatementImportError):
    """One or more store writes failed; already-written records are kept.

    Carries the full :class:`~statement_import.models.CommitResult` so callers
    can tell the user how many records now exist in storage.
    """

    def __init__(self, result: CommitResult) -> None:
        self.result = result
        first = result.failures[0].reason if result.failures else "unknown error"
        super().__init__(
            f"Saved {result.succeeded} of {result.succeeded + result.failed} "
            f"transactions; {result.failed} failed (first error: {first})"
        )


__all__ = [
    "StatementImportError",
    "UnsupportedFormat",
    "DecodeError",
    "CommitPartialFailure",
]
