"""Resolve semantic fields from raw rows using prioritized header aliases."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..config import FIELDS, ColumnAliasTable, Field


def _norm_key(key: Any) -> str:
    return str(key).strip().lower()


def is_blank(value: Any) -> bool:
    """True for ``None`` and strings that are empty after trimming."""

    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class ColumnResolver:
    """Look up ``date``/``description``/``amount``/``type`` in a raw row.

    Resolution is by key presence: the first alias (in declared order) whose
    column exists in the row wins, and its value is returned even when it is
    empty or zero. With ``skip_blank_matches=True`` a blank value instead
    falls through to the next alias.
    """

    def __init__(self, aliases: ColumnAliasTable, *, skip_blank_matches: bool = False) -> None:
        self._skip_blank = skip_blank_matches
        self._lowered: dict[str, tuple[str, ...]] = {
            f: tuple(a.lower() for a in aliases.aliases_for(f))
            for f in FIELDS
        }

    @staticmethod
    def _index(row: Mapping[str, Any]) -> dict[str, Any]:
        keys: dict[str, Any] = {}
        for k in row:
            # First occurrence wins when two headers only differ by case/space.
            keys.setdefault(_norm_key(k), k)
        return keys

    def _lookup(
        self, row: Mapping[str, Any], keys: Mapping[str, Any], field_name: Field
    ) -> tuple[Any, Any]:
        for alias in self._lowered[field_name]:
            key = keys.get(alias)
            if key is None:
                continue
            value = row[key]
            if self._skip_blank and is_blank(value):
                continue
            return key, value
        return None, None

    def _check_field(self, field_name: str) -> None:
        if field_name not in self._lowered:
            raise ValueError(f"unknown field: {field_name!r}")

    def resolve(self, row: Mapping[str, Any], field_name: Field) -> Any | None:
        self._check_field(field_name)
        return self._lookup(row, self._index(row), field_name)[1]

    def resolve_source(self, row: Mapping[str, Any], field_name: Field) -> Any | None:
        """Header key of the column ``resolve`` would read, or ``None``."""

        self._check_field(field_name)
        return self._lookup(row, self._index(row), field_name)[0]

    def resolve_all(self, row: Mapping[str, Any]) -> dict[str, Any | None]:
        keys = self._index(row)
        return {f: self._lookup(row, keys, f)[1] for f in self._lowered}


__all__ = ["ColumnResolver", "is_blank"]
