"""Keyword categorization of statement descriptions.

Matching is deliberately simple: learned exact-description rules first, then
the ordered keyword rules by lower-cased substring, then the catch-all. The
first rule whose category belongs to the row's direction wins, so the same
table can serve both income and expense rows ("interest" on a loan debit is
Loans, on a deposit credit it is Interest).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .config import DEFAULT_CATEGORY_SETS, DEFAULT_RULES, CategoryRule, CategorySets
from .models import Direction


def _norm_text(s: str) -> str:
    return " ".join(s.lower().split())


class Categorizer:
    def __init__(
        self,
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
        category_sets: CategorySets = DEFAULT_CATEGORY_SETS,
        learned: Mapping[str, str] | None = None,
    ) -> None:
        self._rules = tuple(rules)
        self._sets = category_sets
        self._learned = {_norm_text(k): v for k, v in (learned or {}).items()}

    @property
    def fallback(self) -> str:
        return self._sets.fallback

    def categorize(self, description: str, direction: Direction | None = None) -> str:
        """Return the category label for ``description``.

        ``direction`` restricts the result to that direction's category set;
        ``None`` allows any label.
        """

        allowed = self._sets.for_direction(direction)
        text = _norm_text(description or "")
        if not text:
            return self.fallback

        learned = self._learned.get(text)
        if learned is not None and learned in allowed:
            return learned

        for rule in self._rules:
            if rule.category in allowed and rule.matches(text):
                return rule.category
        return self.fallback


def categories_for(
    direction: Direction | None, category_sets: CategorySets = DEFAULT_CATEGORY_SETS
) -> tuple[str, ...]:
    """Selectable labels for a preview row of ``direction``."""

    return category_sets.for_direction(direction)


__all__ = ["Categorizer", "categories_for"]
