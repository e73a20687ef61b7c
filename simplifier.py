"""
Debt simplification: the minimum-payment settlement plan
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from computations import require_collections
from models import CalculatedTransaction, ManualSettlementOverride, PinnedOverride, SettlementPlan
from utils import ZERO, is_zero, safe_decimal

logger = logging.getLogger(__name__)


def _largest(side: Dict[str, Decimal]) -> Tuple[str, Decimal]:
    # ties go to the lowest person id
    ranked = sorted(side.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked[0]


def compute_transfers(net: Mapping[str, Decimal]) -> Tuple[List[CalculatedTransaction], Dict[str, Decimal]]:
    """
    Greedy settlement: the largest debtor pays the largest creditor.
    net>0 creditor; net<0 debtor.
    Returns (transfers, residual); residual holds whatever is left unmatched
    when the balances do not sum to zero.
    """
    creditors = {p: v for p, v in net.items() if v > 0 and not is_zero(v)}
    debtors = {p: -v for p, v in net.items() if v < 0 and not is_zero(v)}

    transfers: List[CalculatedTransaction] = []
    while creditors and debtors:
        cname, camt = _largest(creditors)
        dname, damt = _largest(debtors)
        x = min(camt, damt)
        transfers.append(CalculatedTransaction(from_id=dname, to_id=cname, amount=x))

        creditors[cname] = camt - x
        debtors[dname] = damt - x
        if is_zero(creditors[cname]):
            del creditors[cname]
        if is_zero(debtors[dname]):
            del debtors[dname]

    residual = {p: v for p, v in creditors.items()}
    residual.update({p: -v for p, v in debtors.items()})
    return transfers, {p: residual[p] for p in sorted(residual)}


def simplify_debts(
    balances: Mapping[str, Decimal],
    overrides: Iterable[ManualSettlementOverride] = (),
) -> SettlementPlan:
    """
    Build the settlement plan from net balances.

    Overrides are pinned first, in the order given: each is emitted as is
    and moved through a working copy of the balances, even when it pays more
    than the debtor owes or the creditor is owed. The overshoot is reported
    as a negative remainder on the pinned entry and the greedy pass then
    settles whatever is left. The caller's mapping is never modified.
    """
    require_collections(balances=balances, overrides=overrides)

    working: Dict[str, Decimal] = {pid: safe_decimal(v) for pid, v in balances.items()}
    transactions: List[CalculatedTransaction] = []
    pinned: List[PinnedOverride] = []

    for o in overrides:
        amount = safe_decimal(o.amount)
        debtor_balance = working.get(o.debtor_id, ZERO)
        creditor_balance = working.get(o.creditor_id, ZERO)
        headroom = max(ZERO, min(-debtor_balance, creditor_balance))
        remainder = headroom - amount
        if remainder < 0:
            logger.info(
                "Override %s -> %s of %s exceeds the %s owed; overpayment %s",
                o.debtor_id, o.creditor_id, amount, headroom, -remainder,
            )
        pinned.append(PinnedOverride(override=o, remainder=remainder))
        transactions.append(CalculatedTransaction(from_id=o.debtor_id, to_id=o.creditor_id, amount=amount))
        working[o.debtor_id] = debtor_balance + amount
        working[o.creditor_id] = creditor_balance - amount

    transfers, residual = compute_transfers(working)
    transactions.extend(transfers)

    if residual:
        logger.warning("Balances do not sum to zero; unsettled residual: %s", residual)

    return SettlementPlan(transactions=tuple(transactions), pinned=tuple(pinned), residual=residual)
