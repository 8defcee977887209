"""Decode uploaded statement files into raw rows.

Two input families are supported, selected by file extension:

- Delimited text (``.csv``): UTF-8 (a BOM is tolerated), RFC 4180 quoting via
  the stdlib :mod:`csv` module. The delimiter is picked from the header line
  (``,`` ``;`` tab ``|``; comma on ties).
- Spreadsheet binary (``.xlsx`` via openpyxl, ``.xls`` via xlrd): first sheet
  only.

In both cases the header row is the first row holding at least one non-blank
cell, header labels are trimmed, and blank header cells drop their column.
Decoding is eager: a corrupt file raises :class:`~statement_import.errors.
DecodeError` before any row reaches the pipeline.
"""

from __future__ import annotations

import csv
import io
import os
from collections.abc import Sequence
from enum import StrEnum
from pathlib import Path, PurePath
from typing import Any

from ..errors import DecodeError, UnsupportedFormat
from ..logging_setup import get_logger

_logger = get_logger("statement_import.ingest.decoders")


class FileFormat(StrEnum):
    DELIMITED_TEXT = "delimited-text"
    SPREADSHEET_BINARY = "spreadsheet-binary"


_EXTENSIONS: dict[str, FileFormat] = {
    ".csv": FileFormat.DELIMITED_TEXT,
    ".xlsx": FileFormat.SPREADSHEET_BINARY,
    ".xls": FileFormat.SPREADSHEET_BINARY,
}

_DELIMITERS = (",", ";", "\t", "|")


def detect_format(filename: str | os.PathLike[str]) -> FileFormat:
    """Map a file name to its decoder family or raise ``UnsupportedFormat``."""

    suffix = PurePath(os.fspath(filename)).suffix.lower()
    try:
        return _EXTENSIONS[suffix]
    except KeyError:
        raise UnsupportedFormat(os.fspath(filename)) from None


def _is_blank_cell(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _is_blank_or_zero(value: Any) -> bool:
    if _is_blank_cell(value):
        return True
    return isinstance(value, int | float) and not isinstance(value, bool) and value == 0


def _header_labels(cells: Sequence[Any]) -> list[str]:
    return ["" if c is None else str(c).strip() for c in cells]


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------


def _guess_delimiter(header_line: str) -> str:
    counts = {d: header_line.count(d) for d in _DELIMITERS}
    best = max(_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > counts[","] else ","


def decode_csv(data: bytes | str) -> list[dict[str, str]]:
    """Parse delimited text into rows keyed by trimmed header labels.

    Lines whose cells are all blank are skipped. A data row shorter than the
    header simply lacks the trailing columns; surplus cells beyond the header
    are dropped.
    """

    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Statement is not valid UTF-8 text: {exc}") from exc
    else:
        text = data.removeprefix("\ufeff")

    first_line = next((ln for ln in text.splitlines() if ln.strip()), "")
    delimiter = _guess_delimiter(first_line)

    rows: list[dict[str, str]] = []
    headers: list[str] | None = None
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)
        for cells in reader:
            if all(_is_blank_cell(c) for c in cells):
                continue
            if headers is None:
                headers = _header_labels(cells)
                continue
            row = {h: cells[i] for i, h in enumerate(headers) if h and i < len(cells)}
            rows.append(row)
    except csv.Error as exc:
        raise DecodeError(f"Malformed delimited text: {exc}") from exc

    _logger.debug("Decoded %d CSV rows (delimiter=%r)", len(rows), delimiter)
    return rows


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------


def _read_xlsx(data: bytes) -> list[list[Any]]:
    from openpyxl import load_workbook

    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return [list(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _xls_cell_value(cell: Any, datemode: int) -> Any:
    """Plain Python value of an xlrd cell.

    Date-formatted cells hold serials counted from the workbook's own epoch
    (1900 or 1904 system), so they are converted here, like openpyxl does for
    ``.xlsx``.
    """

    import xlrd

    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
        except (OverflowError, ValueError):
            _logger.debug("Unconvertible xls date serial %r", cell.value)
            return str(cell.value)
    return cell.value


def _read_xls(data: bytes) -> list[list[Any]]:
    import xlrd

    book = xlrd.open_workbook(file_contents=data)
    try:
        sheet = book.sheet_by_index(0)
        return [
            [_xls_cell_value(c, book.datemode) for c in sheet.row(r)]
            for r in range(sheet.nrows)
        ]
    finally:
        book.release_resources()


def rows_from_grid(grid: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    """Map a cell grid to rows against its first non-blank row.

    Rows whose mapped cells are all blank or zero are discarded. Cells missing
    from short rows become ``""``.
    """

    header_idx = next(
        (i for i, r in enumerate(grid) if any(not _is_blank_cell(c) for c in r)),
        None,
    )
    if header_idx is None:
        return []

    headers = _header_labels(grid[header_idx])
    rows: list[dict[str, Any]] = []
    for cells in grid[header_idx + 1 :]:
        row: dict[str, Any] = {}
        for i, h in enumerate(headers):
            if not h:
                continue
            value = cells[i] if i < len(cells) else None
            row[h] = "" if value is None else value
        if all(_is_blank_or_zero(v) for v in row.values()):
            continue
        rows.append(row)
    return rows


def decode_spreadsheet(data: bytes, filename: str = "statement.xlsx") -> list[dict[str, Any]]:
    """Read the first sheet of an ``.xlsx``/``.xls`` workbook into rows."""

    suffix = PurePath(filename).suffix.lower()
    reader = _read_xls if suffix == ".xls" else _read_xlsx
    try:
        grid = reader(data)
    except Exception as exc:  # noqa: BLE001 - openpyxl/xlrd raise many types
        raise DecodeError(f"Could not read spreadsheet {filename!r}: {exc}") from exc

    rows = rows_from_grid(grid)
    _logger.debug("Decoded %d spreadsheet rows from %s", len(rows), filename)
    return rows


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def decode(data: bytes, filename: str) -> list[dict[str, Any]]:
    """Decode ``data`` according to the extension of ``filename``."""

    fmt = detect_format(filename)
    if fmt is FileFormat.DELIMITED_TEXT:
        return decode_csv(data)
    return decode_spreadsheet(data, filename)


def decode_path(path: str | os.PathLike[str]) -> list[dict[str, Any]]:
    """Decode a file from disk. The extension is checked before reading."""

    p = Path(path)
    detect_format(p.name)
    return decode(p.read_bytes(), p.name)


__all__ = [
    "FileFormat",
    "detect_format",
    "decode",
    "decode_csv",
    "decode_spreadsheet",
    "decode_path",
    "rows_from_grid",
]
