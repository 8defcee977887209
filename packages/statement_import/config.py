"""Immutable ingestion configuration.

The alias table, category rules and category sets are plain frozen
dataclasses built once and injected into :class:`~statement_import.pipeline.
IngestionPipeline`. Nothing here is mutated during ingestion, so a pipeline
can be shared across threads and tests can swap in alternate tables.

Environment
-----------
``IngestConfig.from_env()`` honours:

- ``SI_CATEGORY_RULES_FILE``: JSON object ``{"Category": ["keyword", ...]}``
  whose entries replace the default keyword rules (object order is priority
  order).
- ``SI_DATE_DAYFIRST``: ``1``/``0`` to prefer day-first or month-first when a
  date string is ambiguous (default day-first).
- ``SI_BAD_DATE_POLICY``: ``today`` (substitute the processing date) or
  ``skip`` (drop the row).
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Literal

from pydantic import RootModel, ValidationError, field_validator

from .logging_setup import get_logger
from .models import Direction

_logger = get_logger("statement_import.config")

type Field = Literal["date", "description", "amount", "type"]
type BadDatePolicy = Literal["today", "skip"]

FIELDS: tuple[Field, ...] = ("date", "description", "amount", "type")


# ---------------------------------------------------------------------------
# Column aliases
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnAliasTable:
    """Ordered header aliases per semantic field.

    Earlier aliases win. Comparison against row keys is case-insensitive and
    ignores surrounding whitespace, so listing both ``"date"`` and ``"Date"``
    is redundant.
    """

    date: tuple[str, ...]
    description: tuple[str, ...]
    amount: tuple[str, ...]
    type: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in FIELDS:
            values = getattr(self, name)
            if isinstance(values, str):
                raise ValueError(f"ColumnAliasTable.{name} must be a sequence of strings")
            cleaned = tuple(str(v).strip() for v in values)
            if any(not v for v in cleaned):
                raise ValueError(f"ColumnAliasTable.{name} contains a blank alias")
            if name != "type" and not cleaned:
                raise ValueError(f"ColumnAliasTable.{name} requires at least one alias")
            object.__setattr__(self, name, cleaned)

    def aliases_for(self, field_name: Field) -> tuple[str, ...]:
        if field_name not in FIELDS:
            raise ValueError(f"unknown field: {field_name!r}")
        return getattr(self, field_name)


DEFAULT_ALIASES = ColumnAliasTable(
    date=("Date", "Transaction Date", "Txn Date", "Value Date", "Posting Date"),
    description=(
        "Description",
        "Details",
        "Narration",
        "Remarks",
        "Payee",
        "Merchant",
        "Particulars",
    ),
    amount=("Amount", "Debit", "Credit", "Withdrawal", "Deposit"),
    type=("Type", "Transaction Type", "Debit/Credit", "Dr/Cr"),
)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategorySets:
    """Closed category label sets per direction, sharing one catch-all."""

    income: tuple[str, ...]
    expense: tuple[str, ...]
    fallback: str = "Others"

    def __post_init__(self) -> None:
        for name in ("income", "expense"):
            labels = tuple(getattr(self, name))
            if self.fallback not in labels:
                raise ValueError(
                    f"CategorySets.{name} must include the fallback {self.fallback!r}"
                )
            object.__setattr__(self, name, labels)

    def for_direction(self, direction: Direction | None) -> tuple[str, ...]:
        if direction is Direction.INCOME:
            return self.income
        if direction is Direction.EXPENSE:
            return self.expense
        return self.all_labels

    @property
    def all_labels(self) -> tuple[str, ...]:
        seen = dict.fromkeys(self.income)
        seen.update(dict.fromkeys(self.expense))
        return tuple(seen)


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """One first-match-wins rule: any keyword substring selects ``category``."""

    category: str
    keywords: tuple[str, ...]

    def __post_init__(self) -> None:
        kws = tuple(k.strip().lower() for k in self.keywords if k and k.strip())
        if not kws:
            raise ValueError(f"CategoryRule {self.category!r} has no keywords")
        object.__setattr__(self, "keywords", kws)

    def matches(self, lowered_text: str) -> bool:
        return any(k in lowered_text for k in self.keywords)


DEFAULT_CATEGORY_SETS = CategorySets(
    income=("Salary", "Gift", "Bonus", "Interest", "Business Income", "Others"),
    expense=(
        "Food",
        "Transport",
        "Utilities",
        "Cash Withdraw",
        "Health",
        "Loans",
        "Clothing",
        "Household",
        "Savings",
        "Entertainment",
        "Shopping",
        "Others",
    ),
)

# Priority order matters: "loan interest" is Loans for an expense, while an
# income row mentioning interest falls through to Interest.
DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Salary", ("salary", "payroll", "wage")),
    CategoryRule("Bonus", ("bonus",)),
    CategoryRule("Gift", ("gift",)),
    CategoryRule("Business Income", ("invoice", "consulting", "client payment")),
    CategoryRule(
        "Food",
        ("food", "restaurant", "grocery", "supermarket", "cafe", "coffee", "starbucks"),
    ),
    CategoryRule("Transport", ("uber", "fuel", "bus", "train", "taxi")),
    CategoryRule("Utilities", ("electricity", "water", "internet", "phone")),
    CategoryRule("Health", ("pharmacy", "medical", "hospital")),
    CategoryRule("Entertainment", ("netflix", "spotify", "movie", "cinema")),
    CategoryRule("Clothing", ("clothing", "apparel", "fashion")),
    CategoryRule("Shopping", ("amazon", "shopping", "electronics")),
    CategoryRule("Household", ("household", "furniture", "laundry")),
    CategoryRule("Savings", ("savings", "mutual fund", "fixed deposit")),
    CategoryRule("Cash Withdraw", ("atm", "withdrawal", "cash")),
    CategoryRule("Loans", ("loan", "mortgage", "emi", "interest")),
    CategoryRule("Interest", ("interest",)),
)


class CategoryRulesFile(RootModel[dict[str, list[str]]]):
    """JSON rule override: ``{"Category": ["keyword", ...], ...}``."""

    @field_validator("root")
    @classmethod
    def _non_empty(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        if not v:
            raise ValueError("rules file defines no categories")
        for cat, kws in v.items():
            if not cat.strip():
                raise ValueError("category names must be non-empty")
            if not any(k.strip() for k in kws):
                raise ValueError(f"category {cat!r} has no keywords")
        return v

    def to_rules(self) -> tuple[CategoryRule, ...]:
        return tuple(CategoryRule(cat.strip(), tuple(kws)) for cat, kws in self.root.items())


def load_rules_file(path: str | os.PathLike[str]) -> tuple[CategoryRule, ...]:
    """Read and validate a JSON keyword-rule file.

    Raises ``ValueError`` with the file path when the file cannot be read,
    holds malformed JSON or has the wrong shape.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"cannot read category rules file {p}: {exc}") from exc
    try:
        data = json.loads(text)
        return CategoryRulesFile.model_validate(data).to_rules()
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON in category rules file {p}: {exc}") from exc
    except ValidationError as exc:
        raise ValueError(f"invalid category rules file {p}: {exc}") from exc


# ---------------------------------------------------------------------------
# Pipeline configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IngestConfig:
    """Everything the pipeline needs besides the file itself.

    Attributes
    ----------
    income_markers / expense_markers:
        Case-insensitive substrings looked for in the type column. Income
        markers are tested first.
    dayfirst:
        Preference for ambiguous ``NN/NN/YYYY`` date strings.
    bad_date_policy:
        ``"today"`` substitutes the processing date for an unparseable date;
        ``"skip"`` drops the row instead.
    skip_blank_matches:
        When True, an alias whose column exists but is blank falls through to
        the next alias.
    learned_rules:
        Exact description → category mappings checked before keyword rules.
    """

    aliases: ColumnAliasTable = DEFAULT_ALIASES
    rules: tuple[CategoryRule, ...] = DEFAULT_RULES
    category_sets: CategorySets = DEFAULT_CATEGORY_SETS
    income_markers: tuple[str, ...] = ("credit", "cr", "income", "deposit")
    expense_markers: tuple[str, ...] = ("debit", "dr", "expense", "withdrawal")
    dayfirst: bool = True
    bad_date_policy: BadDatePolicy = "today"
    skip_blank_matches: bool = False
    note_prefix: str = "Imported from bank statement: "
    learned_rules: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        known = set(self.category_sets.all_labels)
        unknown = sorted({r.category for r in self.rules} - known)
        if unknown:
            raise ValueError(
                "Category rules reference labels outside the category sets: "
                + ", ".join(unknown)
            )
        bad_learned = sorted(set(self.learned_rules.values()) - known)
        if bad_learned:
            raise ValueError("Learned rules reference unknown labels: " + ", ".join(bad_learned))
        if self.bad_date_policy not in ("today", "skip"):
            raise ValueError(
                f"bad_date_policy must be 'today' or 'skip', got {self.bad_date_policy!r}"
            )
        object.__setattr__(
            self, "income_markers", tuple(m.strip().lower() for m in self.income_markers)
        )
        object.__setattr__(
            self, "expense_markers", tuple(m.strip().lower() for m in self.expense_markers)
        )
        object.__setattr__(
            self,
            "learned_rules",
            MappingProxyType(
                {
                    " ".join(k.lower().split()): v
                    for k, v in self.learned_rules.items()
                    if k.strip()
                }
            ),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> IngestConfig:
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        rules_file = (env.get("SI_CATEGORY_RULES_FILE") or "").strip()
        if rules_file:
            kwargs["rules"] = load_rules_file(rules_file)
            _logger.info("Loaded category rules from %s", rules_file)

        dayfirst = (env.get("SI_DATE_DAYFIRST") or "").strip().lower()
        if dayfirst in {"0", "false", "no"}:
            kwargs["dayfirst"] = False
        elif dayfirst in {"1", "true", "yes"}:
            kwargs["dayfirst"] = True

        policy = (env.get("SI_BAD_DATE_POLICY") or "").strip().lower()
        if policy:
            kwargs["bad_date_policy"] = policy

        skip_blank = (env.get("SI_SKIP_BLANK_COLUMNS") or "").strip().lower()
        if skip_blank in {"1", "true", "yes"}:
            kwargs["skip_blank_matches"] = True

        return cls(**kwargs)  # type: ignore[arg-type]

    def with_learned_rules(self, learned: Mapping[str, str]) -> IngestConfig:
        """Return a copy whose learned rules are ``learned`` merged over ours."""

        merged = dict(self.learned_rules)
        merged.update(learned)
        return replace(self, learned_rules=merged)


__all__ = [
    "FIELDS",
    "Field",
    "BadDatePolicy",
    "ColumnAliasTable",
    "CategorySets",
    "CategoryRule",
    "CategoryRulesFile",
    "DEFAULT_ALIASES",
    "DEFAULT_CATEGORY_SETS",
    "DEFAULT_RULES",
    "IngestConfig",
    "load_rules_file",
]
