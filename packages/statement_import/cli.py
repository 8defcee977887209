# ruff: noqa: I001
"""CLI for the ``statement_import`` package.

This module exposes callable command handlers (``cmd_preview``,
``cmd_import``, ``cmd_export``) and a Typer-based console interface.
Environment variables (``DATABASE_URL``, ``SI_*``) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .config import IngestConfig
from .errors import StatementImportError
from .logging_setup import configure_logging
from .pipeline import IngestionPipeline
from .term_ui import format_preview_line


def _load_pipeline(config: IngestConfig | None = None) -> IngestionPipeline | None:
    try:
        return IngestionPipeline(config or IngestConfig.from_env())
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return None


def cmd_preview(file: str) -> int:
    """Ingest ``file`` and print the preview, one tab-separated row per line."""

    pipeline = _load_pipeline()
    if pipeline is None:
        return 1
    try:
        batch = pipeline.ingest_path(file)
    except FileNotFoundError:
        print(f"Error: File not found: {file}", file=sys.stderr)
        return 1
    except StatementImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for pos in range(len(batch)):
        print(format_preview_line(pos, batch))
    print(f"{len(batch)} transaction(s), {len(batch.skipped)} row(s) skipped", file=sys.stderr)
    return 0


def cmd_import(
    file: str,
    *,
    user_id: str,
    review: bool = False,
    learn: bool = False,
    database_url: str | None = None,
) -> int:
    """Ingest ``file`` (optionally reviewing categories) and commit it.

    Learned rules already stored for ``user_id`` take part in categorization.
    Exits non-zero when the file cannot be decoded or any record failed to
    save.
    """

    from .commit import BatchCommitter
    from .persistence import SqlTransactionStore

    try:
        config = IngestConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    store = SqlTransactionStore(database_url)
    try:
        learned = store.load_rules(user_id)
        if learned:
            config = config.with_learned_rules(learned)
    except Exception as e:
        print(f"Error: failed to load learned rules: {e}", file=sys.stderr)
        return 1

    pipeline = _load_pipeline(config)
    if pipeline is None:
        return 1
    try:
        batch = pipeline.ingest_path(file)
    except FileNotFoundError:
        print(f"Error: File not found: {file}", file=sys.stderr)
        return 1
    except StatementImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if review and len(batch):
        from .term_ui import review_batch

        changed = review_batch(batch)
        print(f"{changed} category override(s)", file=sys.stderr)

    try:
        result = BatchCommitter(store).commit(batch, user_id, learn_overrides=learn)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(
        f"Saved {result.succeeded} of {len(batch)} transaction(s) "
        f"({len(batch.skipped)} row(s) skipped); status={result.status}"
    )
    for failure in result.failures:
        print(f"  row {failure.position + 1}: {failure.reason}", file=sys.stderr)
    return 0 if result.ok else 1


def cmd_export(user_id: str, *, out: str | None = None, database_url: str | None = None) -> int:
    from .export import write_csv
    from .persistence import SqlTransactionStore

    try:
        records = SqlTransactionStore(database_url).list(user_id)
    except Exception as e:
        print(f"Error: failed to read stored transactions: {e}", file=sys.stderr)
        return 1

    if out is None:
        write_csv(records, sys.stdout)
        return 0
    with open(out, "w", encoding="utf-8", newline="") as f:
        n = write_csv(records, f)
    print(f"Wrote {n} transaction(s) to {out}", file=sys.stderr)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statements (.csv, .xlsx, .xls) into a per-user transaction store. "
        "Loads DATABASE_URL and SI_* settings from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to a bank statement (.csv, .xlsx or .xls).",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
USER_ID_OPTION: OptionInfo = typer.Option(..., "--user-id", help="Owner of the records.")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


@app.command("preview")
def preview_cmd(file: Path = FILE_OPTION) -> None:
    """Show how a statement would be imported, without saving anything."""

    raise typer.Exit(cmd_preview(str(file)))


@app.command("import")
def import_cmd(
    file: Path = FILE_OPTION,
    user_id: str = USER_ID_OPTION,
    review: bool = typer.Option(False, help="Review categories interactively before saving."),
    learn: bool = typer.Option(
        False, help="Remember category changes made during review for future imports."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Import a statement into the user's transaction store."""

    raise typer.Exit(
        cmd_import(
            str(file), user_id=user_id, review=review, learn=learn, database_url=database_url
        )
    )


@app.command("export")
def export_cmd(
    user_id: str = USER_ID_OPTION,
    out: Path | None = typer.Option(None, "--out", help="Write to a file instead of stdout."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Export a user's stored transactions as re-importable CSV."""

    raise typer.Exit(
        cmd_export(user_id, out=str(out) if out is not None else None, database_url=database_url)
    )


if __name__ == "__main__":  # pragma: no cover
    app()
