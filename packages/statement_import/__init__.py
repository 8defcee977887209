"""statement_import: bank statement ingestion.

Decode a ``.csv``/``.xlsx``/``.xls`` statement, resolve its columns, normalize
dates and amounts, categorize each row, and commit the confirmed preview to a
per-user transaction store.

Public API
----------
- :class:`IngestionPipeline` / :class:`IngestConfig`
- :class:`BatchCommitter` and the :class:`TransactionStore` protocol
- ``statement_import.persistence.SqlTransactionStore`` (SQLAlchemy-backed store)
- :func:`export_csv`, :func:`categories_for`
"""

from .categorize import Categorizer, categories_for
from .commit import BatchCommitter, RuleStore, TransactionStore
from .config import IngestConfig
from .errors import CommitPartialFailure, DecodeError, StatementImportError, UnsupportedFormat
from .export import export_csv
from .models import (
    CommitResult,
    Direction,
    NormalizedTransaction,
    Ok,
    PreviewBatch,
    Skipped,
    StoredRecord,
)
from .pipeline import IngestionPipeline

__all__ = [
    "BatchCommitter",
    "Categorizer",
    "CommitPartialFailure",
    "CommitResult",
    "DecodeError",
    "Direction",
    "IngestConfig",
    "IngestionPipeline",
    "NormalizedTransaction",
    "Ok",
    "PreviewBatch",
    "RuleStore",
    "Skipped",
    "StatementImportError",
    "StoredRecord",
    "TransactionStore",
    "UnsupportedFormat",
    "categories_for",
    "export_csv",
]
