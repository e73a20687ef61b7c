"""
Business logic and computations for SplitLedger:
expense normalization and net balance aggregation
"""
from __future__ import annotations
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from errors import LedgerInputError
from models import (
    CelebrationContribution,
    Expense,
    ExpenseItem,
    NormalizedExpense,
    PayerShare,
    Person,
    SettlementPayment,
)
from utils import ZERO, distribute_with_remainder, safe_date, safe_decimal

logger = logging.getLogger(__name__)

ONE = Decimal(1)


def require_collections(**collections) -> None:
    """Fail fast when a required input collection is missing"""
    for name, value in collections.items():
        if value is None:
            raise LedgerInputError(f"{name} is required, got None")


def active_expenses(expenses: Iterable[Expense]) -> List[Expense]:
    """Expenses that take part in settlement"""
    return [e for e in expenses if not e.exclude_from_settlement]


def sum_by_person(entries: Optional[Iterable[PayerShare]]) -> Dict[str, Decimal]:
    """Collapse payer/share entries into one amount per person"""
    out: Dict[str, Decimal] = {}
    for entry in entries or ():
        out[entry.person_id] = out.get(entry.person_id, ZERO) + safe_decimal(entry.amount)
    return out


def celebration_amount(expense: Expense) -> Decimal:
    c = expense.celebration_contribution
    if c is None:
        return ZERO
    amount = safe_decimal(c.amount)
    return amount if amount > 0 else ZERO


def effective_amount(expense: Expense) -> Decimal:
    """Amount left to split among item sharers after the celebration contribution"""
    return max(ZERO, safe_decimal(expense.total_amount) - celebration_amount(expense))


def items_total(expense: Expense) -> Decimal:
    return sum((safe_decimal(i.price) for i in expense.items or ()), ZERO)


def reduction_factor(expense: Expense) -> Decimal:
    """
    Scale applied to itemised prices so they add up to the effective amount.
    1 when there is nothing to split and nothing itemised, 0 when the items
    carry no value but there is still an amount to split.
    """
    effective = effective_amount(expense)
    item_sum = items_total(expense)
    if item_sum > 0:
        return effective / item_sum
    if effective == 0:
        return ONE
    return Decimal(0)


def reduced_item_prices(expense: Expense) -> Dict[int, Decimal]:
    """
    Item index -> price after the reduction factor, to the cent.
    The reduced prices of all positively priced items add up exactly to the
    effective amount.
    """
    prices = {idx: safe_decimal(item.price) for idx, item in enumerate(expense.items or ())}
    if sum(prices.values(), ZERO) <= 0:
        return {idx: ZERO for idx in prices}
    return distribute_with_remainder(effective_amount(expense), prices)


def item_allocations(expense: Expense) -> List[Tuple[ExpenseItem, Dict[str, Decimal]]]:
    """Each item with its reduced price split evenly among its sharers (empty when unassigned)"""
    out = []
    reduced = reduced_item_prices(expense)
    for idx, item in enumerate(expense.items or ()):
        price = reduced.get(idx, ZERO)
        sharers = sorted(set(item.shared_by or ()))
        if price <= 0:
            out.append((item, {}))
            continue
        if not sharers:
            logger.warning(
                "Expense %s: item %r priced %s has no sharers; its value is unassigned",
                expense.id, item.name, price,
            )
            out.append((item, {}))
            continue
        out.append((item, distribute_with_remainder(price, {pid: ONE for pid in sharers})))
    return out


def _itemwise_owed(expense: Expense) -> Dict[str, Decimal]:
    owed: Dict[str, Decimal] = {}
    for _, split in item_allocations(expense):
        for person_id, amount in split.items():
            owed[person_id] = owed.get(person_id, ZERO) + amount
    return owed


def normalize_expense(expense: Expense) -> NormalizedExpense:
    """
    Compute each involved person's paid and owed amounts for one expense.

    equal/unequal splits take the stored shares as given. Itemwise splits
    derive the owed amounts from the items: every item price is scaled by
    reduction_factor() and divided evenly among its sharers. An itemwise
    record without item detail (items is None) falls back to its shares.

    Never raises for malformed records; unparseable amounts count as zero.
    """
    paid = sum_by_person(expense.paid_by)
    if expense.split_method == "itemwise" and expense.items is not None:
        owed = _itemwise_owed(expense)
    else:
        owed = sum_by_person(expense.shares)

    celebration = None
    amount = celebration_amount(expense)
    if amount > 0:
        celebration = CelebrationContribution(expense.celebration_contribution.person_id, amount)

    return NormalizedExpense(expense_id=expense.id, paid=paid, owed=owed, celebration=celebration)


def compute_net_balances(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
) -> Dict[str, Decimal]:
    """
    Net balance per person id: positive -> should receive; negative -> should pay.

    Every person starts at zero. Ids referenced by records but absent from
    people are still tracked so the balances keep summing to zero. Output
    is keyed in ascending person id order.
    """
    require_collections(people=people, expenses=expenses, settlement_payments=settlement_payments)

    balances: Dict[str, Decimal] = {p.id: ZERO for p in people}
    known = set(balances)

    for expense in active_expenses(expenses):
        n = normalize_expense(expense)
        for pid, amount in n.paid.items():
            balances[pid] = balances.get(pid, ZERO) + amount
        for pid, amount in n.owed.items():
            balances[pid] = balances.get(pid, ZERO) - amount
        if n.celebration is not None:
            pid = n.celebration.person_id
            balances[pid] = balances.get(pid, ZERO) - n.celebration.amount

    for payment in settlement_payments:
        amount = safe_decimal(payment.amount_settled)
        balances[payment.debtor_id] = balances.get(payment.debtor_id, ZERO) + amount
        balances[payment.creditor_id] = balances.get(payment.creditor_id, ZERO) - amount

    orphans = set(balances) - known
    if orphans:
        logger.warning("Records reference unknown person ids: %s", ", ".join(sorted(orphans)))

    return {pid: balances[pid] for pid in sorted(balances)}


def compute_summary(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
) -> Dict[str, dict]:
    """
    Compute summary figures for each person.
    Returns dict mapping person -> {paid, owed, celebration, settled_out, settled_in, net}
    """
    require_collections(people=people, expenses=expenses, settlement_payments=settlement_payments)
    people = list(people)
    settlement_payments = list(settlement_payments)

    ids = [p.id for p in people]
    fields = ("paid", "owed", "celebration", "settled_out", "settled_in")
    totals: Dict[str, Dict[str, Decimal]] = {}

    def row(pid: str) -> Dict[str, Decimal]:
        if pid not in totals:
            totals[pid] = {f: ZERO for f in fields}
        return totals[pid]

    for pid in ids:
        row(pid)

    for expense in active_expenses(expenses):
        n = normalize_expense(expense)
        for pid, amount in n.paid.items():
            row(pid)["paid"] += amount
        for pid, amount in n.owed.items():
            row(pid)["owed"] += amount
        if n.celebration is not None:
            row(n.celebration.person_id)["celebration"] += n.celebration.amount

    for payment in settlement_payments:
        amount = safe_decimal(payment.amount_settled)
        row(payment.debtor_id)["settled_out"] += amount
        row(payment.creditor_id)["settled_in"] += amount

    # net = paid - owed - celebration + settled_out - settled_in
    return {
        pid: {
            **t,
            "net": t["paid"] - t["owed"] - t["celebration"] + t["settled_out"] - t["settled_in"],
        }
        for pid, t in sorted(totals.items())
    }


def filter_expenses_by_date(
    expenses: Iterable[Expense],
    start: Optional[date],
    end: Optional[date]
) -> List[Expense]:
    """Filter expenses by created_at date range; undated expenses only pass an open range"""
    out = []
    for e in expenses:
        if start is None and end is None:
            out.append(e)
            continue
        ed = safe_date(e.created_at)
        if ed is None:
            continue
        if start and ed < start:
            continue
        if end and ed > end:
            continue
        out.append(e)
    return out
