from __future__ import annotations

import pytest

from statement_import.categorize import Categorizer, categories_for
from statement_import.config import DEFAULT_CATEGORY_SETS, CategoryRule, CategorySets
from statement_import.models import Direction


@pytest.fixture
def categorizer() -> Categorizer:
    return Categorizer()


def test_starbucks_is_food_every_time(categorizer):
    desc = "STARBUCKS COFFEE #4521"
    results = {categorizer.categorize(desc, Direction.EXPENSE) for _ in range(5)}
    assert results == {"Food"}


@pytest.mark.parametrize(
    ("description", "direction", "expected"),
    [
        ("Uber Trip", Direction.EXPENSE, "Transport"),
        ("ACME PAYROLL JAN", Direction.INCOME, "Salary"),
        ("Netflix.com", Direction.EXPENSE, "Entertainment"),
        ("ATM WDL 0042", Direction.EXPENSE, "Cash Withdraw"),
        ("Home loan EMI", Direction.EXPENSE, "Loans"),
        ("Savings interest credit", Direction.INCOME, "Interest"),
        ("Loan interest", Direction.EXPENSE, "Loans"),
        ("Amazon Marketplace", Direction.EXPENSE, "Shopping"),
        ("Misc transfer", Direction.EXPENSE, "Others"),
        ("Misc transfer", Direction.INCOME, "Others"),
    ],
)
def test_direction_aware_first_match(categorizer, description, direction, expected):
    assert categorizer.categorize(description, direction) == expected


def test_result_always_in_direction_set(categorizer):
    # "Uber" matches Transport, which is not an income category
    assert categorizer.categorize("Uber refund", Direction.INCOME) == "Others"


def test_without_direction_any_label_is_allowed(categorizer):
    assert categorizer.categorize("uber") == "Transport"
    assert categorizer.categorize("") == "Others"


def test_rule_order_decides_ties():
    rules = (
        CategoryRule("Food", ("market",)),
        CategoryRule("Household", ("supermarket",)),
    )
    assert Categorizer(rules).categorize("SUPERMARKET 12", Direction.EXPENSE) == "Food"


def test_learned_rules_take_precedence():
    c = Categorizer(learned={"  Uber   Trip ": "Household"})
    assert c.categorize("UBER TRIP", Direction.EXPENSE) == "Household"
    # Learned label outside the direction set is ignored
    assert c.categorize("uber trip", Direction.INCOME) == "Others"


def test_categories_for_direction():
    assert categories_for(Direction.INCOME) == DEFAULT_CATEGORY_SETS.income
    assert "Food" in categories_for(Direction.EXPENSE)
    assert "Food" not in categories_for(Direction.INCOME)
    assert set(categories_for(None)) == set(DEFAULT_CATEGORY_SETS.income) | set(
        DEFAULT_CATEGORY_SETS.expense
    )


def test_category_sets_require_fallback():
    with pytest.raises(ValueError):
        CategorySets(income=("Salary",), expense=("Food", "Others"))
