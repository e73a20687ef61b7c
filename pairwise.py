"""
Pairwise debts: who directly owes whom, expense by expense.

This is the explanatory view used by audit screens. It is not minimised and
must not be used as the settlement plan (see simplifier.simplify_debts).
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Set, Tuple

from computations import active_expenses, normalize_expense, require_collections
from models import Expense, PairwiseDebt, Person, SettlementPayment
from utils import ZERO, distribute_with_remainder, safe_decimal

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


def expense_debts(expense: Expense) -> Dict[Pair, Decimal]:
    """
    Directed debts (sharer, payer) -> amount implied by a single expense.

    Each sharer's obligation (owed share plus any celebration contribution)
    is spread over the payers in proportion to what each of them paid.
    Debts of a payer to themself are dropped.
    """
    if safe_decimal(expense.total_amount) <= 0:
        return {}
    n = normalize_expense(expense)
    payers = {pid: amount for pid, amount in n.paid.items() if amount > 0}
    if not payers:
        return {}

    debts: Dict[Pair, Decimal] = {}
    for debtor_id, owed in sorted(n.obligations().items()):
        if owed <= 0:
            continue
        for payer_id, amount in distribute_with_remainder(owed, payers).items():
            if payer_id == debtor_id or amount <= 0:
                continue
            debts[(debtor_id, payer_id)] = debts.get((debtor_id, payer_id), ZERO) + amount
    return debts


def compute_pairwise_debts(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
) -> List[PairwiseDebt]:
    """
    Aggregate raw debts over all active expenses, net opposing directions and
    subtract settlements recorded for the exact (debtor, creditor) pair.

    Output is ordered by debtor name, then creditor name (ids break ties).
    """
    require_collections(people=people, expenses=expenses, settlement_payments=settlement_payments)
    names = {p.id: p.name for p in people}

    gross: Dict[Pair, Decimal] = {}
    sources: Dict[Pair, Set[str]] = {}
    for expense in active_expenses(expenses):
        for pair, amount in expense_debts(expense).items():
            gross[pair] = gross.get(pair, ZERO) + amount
            sources.setdefault(pair, set()).add(expense.id)

    settled: Dict[Pair, Decimal] = {}
    for payment in settlement_payments:
        pair = (payment.debtor_id, payment.creditor_id)
        settled[pair] = settled.get(pair, ZERO) + safe_decimal(payment.amount_settled)

    debts: List[PairwiseDebt] = []
    seen: Set[Pair] = set()
    for a, b in gross:
        canonical = (a, b) if a < b else (b, a)
        if canonical in seen:
            continue
        seen.add(canonical)
        lo, hi = canonical
        net = gross.get((lo, hi), ZERO) - gross.get((hi, lo), ZERO)
        if net == 0:
            continue
        debtor, creditor = (lo, hi) if net > 0 else (hi, lo)
        amount = abs(net)
        paid_back = settled.get((debtor, creditor), ZERO)
        expense_ids = sources.get((lo, hi), set()) | sources.get((hi, lo), set())
        debts.append(PairwiseDebt(
            from_id=debtor,
            to_id=creditor,
            amount=amount,
            settled=paid_back,
            outstanding=amount - paid_back,
            contributing_expense_ids=tuple(sorted(expense_ids)),
        ))

    debts.sort(key=lambda d: (names.get(d.from_id, d.from_id), names.get(d.to_id, d.to_id), d.from_id, d.to_id))
    logger.debug("Resolved %d pairwise debts", len(debts))
    return debts
