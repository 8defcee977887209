from __future__ import annotations

import csv
import io
from pathlib import Path

from typer.testing import CliRunner

from statement_import.cli import app
from tests.helpers.db import bootstrap_sqlite_db

SAMPLE = Path(__file__).parent / "data" / "sample_statement.csv"

runner = CliRunner()


def test_preview_prints_rows():
    result = runner.invoke(app, ["preview", "--file", str(SAMPLE)])

    assert result.exit_code == 0, result.output
    assert "2024-01-15\tUber Trip\t67.89\tExpense\tTransport" in result.stdout
    assert "2024-01-17\tSTARBUCKS COFFEE #4521\t6.40\tExpense\tFood" in result.stdout


def test_preview_unsupported_file(tmp_path):
    p = tmp_path / "statement.pdf"
    p.write_bytes(b"%PDF")
    result = runner.invoke(app, ["preview", "--file", str(p)])
    assert result.exit_code == 1


def test_preview_missing_file(tmp_path):
    result = runner.invoke(app, ["preview", "--file", str(tmp_path / "gone.csv")])
    assert result.exit_code == 1


def test_missing_rules_file_is_reported_not_raised(tmp_path, monkeypatch):
    monkeypatch.setenv("SI_CATEGORY_RULES_FILE", str(tmp_path / "missing-rules.json"))

    for args in (
        ["preview", "--file", str(SAMPLE)],
        ["import", "--file", str(SAMPLE), "--user-id", "u1"],
    ):
        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "invalid configuration" in result.output
        assert "missing-rules.json" in result.output


def test_import_then_export(tmp_path):
    url = bootstrap_sqlite_db(tmp_path / "cli.db")

    imported = runner.invoke(
        app, ["import", "--file", str(SAMPLE), "--user-id", "u1", "--database-url", url]
    )
    assert imported.exit_code == 0, imported.output
    assert "Saved 6 of 6" in imported.stdout

    out = tmp_path / "export.csv"
    exported = runner.invoke(
        app, ["export", "--user-id", "u1", "--out", str(out), "--database-url", url]
    )
    assert exported.exit_code == 0, exported.output

    rows = list(csv.DictReader(io.StringIO(out.read_text(encoding="utf-8"))))
    assert [r["Date"] for r in rows][:2] == ["2024-01-15", "2024-01-16"]
    assert rows[1]["Type"] == "Income"
    assert rows[1]["Category"] == "Salary"
    assert rows[1]["Amount"] == "85000.00"


def test_import_uses_learned_rules(tmp_path):
    from statement_import.persistence import SqlTransactionStore

    url = bootstrap_sqlite_db(tmp_path / "cli.db")
    SqlTransactionStore(url).save_rule("u1", "Corner shop", "Household")

    result = runner.invoke(
        app, ["import", "--file", str(SAMPLE), "--user-id", "u1", "--database-url", url]
    )
    assert result.exit_code == 0, result.output

    stored = SqlTransactionStore(url).list("u1")
    corner = next(r for r in stored if r.description == "Corner shop")
    assert corner.category == "Household"


def test_export_to_stdout(tmp_path):
    url = bootstrap_sqlite_db(tmp_path / "cli.db")
    result = runner.invoke(app, ["export", "--user-id", "nobody", "--database-url", url])
    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == "Date,Description,Amount,Type,Category,Comment"
