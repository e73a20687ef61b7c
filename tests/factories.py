"""Builders for ledger records used across the tests."""

from decimal import Decimal

from models import (
    CelebrationContribution,
    Expense,
    ExpenseItem,
    Ledger,
    ManualSettlementOverride,
    PayerShare,
    Person,
    SettlementPayment,
)

ALICE = Person("alice", "Alice")
BOB = Person("bob", "Bob")
CHARLIE = Person("charlie", "Charlie")
DIANA = Person("diana", "Diana")
PEOPLE = (ALICE, BOB, CHARLIE, DIANA)


def d(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def entries(amounts: dict) -> tuple:
    return tuple(PayerShare(pid, d(amount)) for pid, amount in amounts.items())


def item(name, price, *sharers, category=None, item_id=None):
    return ExpenseItem(
        id=item_id or name,
        name=name,
        price=d(price),
        shared_by=tuple(sharers),
        category_name=category,
    )


def make_expense(
    expense_id="exp-1",
    total=100,
    paid=None,
    owed=None,
    split_method="equal",
    items=None,
    celebration=None,
    exclude=False,
    category="Food",
    created_at="2026-01-01T12:00:00Z",
    description=None,
):
    return Expense(
        id=expense_id,
        description=description or expense_id,
        total_amount=d(total),
        category=category,
        split_method=split_method,
        paid_by=entries(paid or {}),
        shares=entries(owed or {}),
        items=tuple(items) if items is not None else None,
        celebration_contribution=CelebrationContribution(celebration[0], d(celebration[1])) if celebration else None,
        exclude_from_settlement=exclude,
        created_at=created_at,
    )


def make_settlement(debtor, creditor, amount, settlement_id="s-1", settled_at="2026-01-02T09:00:00Z"):
    return SettlementPayment(
        id=settlement_id,
        debtor_id=debtor,
        creditor_id=creditor,
        amount_settled=d(amount),
        settled_at=settled_at,
    )


def make_override(debtor, creditor, amount, override_id=None, is_active=True):
    return ManualSettlementOverride(
        debtor_id=debtor,
        creditor_id=creditor,
        amount=d(amount),
        id=override_id,
        is_active=is_active,
    )


def dinner_for_four():
    """Alice pays 1000, split equally four ways."""
    return make_expense(
        "dinner",
        total=1000,
        paid={"alice": 1000},
        owed={"alice": 250, "bob": 250, "charlie": 250, "diana": 250},
        description="Dinner",
    )


def make_ledger(expenses=(), settlements=(), overrides=(), people=PEOPLE):
    return Ledger(
        people=tuple(people),
        expenses=tuple(expenses),
        settlement_payments=tuple(settlements),
        manual_overrides=tuple(overrides),
    )
