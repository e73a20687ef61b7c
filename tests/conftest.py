"""Shared fixtures for SplitLedger tests."""

import pytest

from factories import (
    PEOPLE,
    dinner_for_four,
    item,
    make_expense,
    make_ledger,
    make_settlement,
)


@pytest.fixture
def people():
    return PEOPLE


@pytest.fixture
def four_person_ledger():
    """One 1000 dinner paid by Alice, split equally between four people."""
    return make_ledger([dinner_for_four()])


@pytest.fixture
def mixed_ledger():
    """Equal, unequal, itemwise, celebration, multi-payer, excluded and settled records."""
    expenses = [
        dinner_for_four(),
        make_expense(
            "taxi",
            total=300,
            paid={"alice": 200, "bob": 100},
            owed={"alice": 100, "bob": 100, "charlie": 100},
            category="Transport",
            created_at="2026-01-02T08:00:00Z",
        ),
        make_expense(
            "groceries",
            total=500,
            paid={"charlie": 500},
            split_method="itemwise",
            items=[item("Wine", 200, "alice", category="Drinks"), item("Bread", 300, "bob", "diana")],
            category="Groceries",
            created_at="2026-01-02T18:00:00Z",
        ),
        make_expense(
            "party",
            total=1500,
            paid={"bob": 1500},
            split_method="itemwise",
            items=[item("Cake", 600, "alice", "bob"), item("Venue", 900, "charlie")],
            celebration=("diana", 200),
            category="Entertainment",
            created_at="2026-01-03T20:00:00Z",
        ),
        make_expense(
            "gift",
            total=80,
            paid={"diana": 80},
            owed={"alice": 80},
            split_method="unequal",
            exclude=True,
            created_at="2026-01-03T10:00:00Z",
        ),
    ]
    settlements = [make_settlement("bob", "alice", 100)]
    return make_ledger(expenses, settlements)
