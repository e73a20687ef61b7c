"""
Presentation-free aggregates for report and analytics collaborators.

All figures come from the same normalized per-expense contributions the
balances use; excluded expenses are left out.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional

from computations import (
    active_expenses,
    filter_expenses_by_date,
    item_allocations,
    normalize_expense,
    reduced_item_prices,
)
from models import Expense
from utils import ZERO, safe_date, safe_decimal


def _add(bucket: Dict, key, amount: Decimal) -> None:
    bucket[key] = bucket.get(key, ZERO) + amount


def expense_category_amounts(expense: Expense) -> Dict[str, Decimal]:
    """
    Split an expense's total over categories.
    Itemwise items count under their own category (reduced price); what the
    celebration contribution covers stays under the expense category.
    """
    out: Dict[str, Decimal] = {}
    total = safe_decimal(expense.total_amount)
    if expense.split_method != "itemwise" or not expense.items:
        _add(out, expense.category, total)
        return out

    reduced = reduced_item_prices(expense)
    for idx, item in enumerate(expense.items):
        _add(out, item.category_name or expense.category, reduced.get(idx, ZERO))
    rest = total - sum(reduced.values(), ZERO)
    if rest:
        _add(out, expense.category, rest)
    return out


def category_totals(
    expenses: Iterable[Expense],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, Decimal]:
    """Total spent per category, largest first"""
    totals: Dict[str, Decimal] = {}
    for e in filter_expenses_by_date(active_expenses(expenses), start, end):
        for category, amount in expense_category_amounts(e).items():
            _add(totals, category, amount)
    return dict(sorted(totals.items(), key=lambda kv: (-kv[1], kv[0])))


def daily_totals(
    expenses: Iterable[Expense],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[date, Decimal]:
    """Total spent per calendar day (expenses without a date are skipped)"""
    totals: Dict[date, Decimal] = {}
    for e in filter_expenses_by_date(active_expenses(expenses), start, end):
        day = safe_date(e.created_at)
        if day is None:
            continue
        _add(totals, day, safe_decimal(e.total_amount))
    return dict(sorted(totals.items()))


def person_category_totals(
    expenses: Iterable[Expense],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, Dict[str, Decimal]]:
    """What each person consumed per category, celebration contributions included"""
    totals: Dict[str, Dict[str, Decimal]] = {}
    for e in filter_expenses_by_date(active_expenses(expenses), start, end):
        n = normalize_expense(e)
        if e.split_method == "itemwise" and e.items is not None:
            for item, split in item_allocations(e):
                for pid, amount in split.items():
                    _add(totals.setdefault(pid, {}), item.category_name or e.category, amount)
        else:
            for pid, amount in n.owed.items():
                _add(totals.setdefault(pid, {}), e.category, amount)
        if n.celebration is not None:
            _add(totals.setdefault(n.celebration.person_id, {}), e.category, n.celebration.amount)
    return {pid: dict(sorted(cats.items())) for pid, cats in sorted(totals.items())}
