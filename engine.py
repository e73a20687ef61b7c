"""
Settlement engine facade: one call from a ledger snapshot to balances,
pairwise debts and the settlement plan.

Everything here is a pure function of the snapshot, so results may be
cached under snapshot_hash() with no other invalidation rule.
"""
from __future__ import annotations
import hashlib
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from computations import compute_net_balances, require_collections
from config import ledger_to_dict
from errors import LedgerInputError
from models import Ledger, PairwiseDebt, SettlementPlan
from overrides import OverrideResolution, resolve_overrides
from pairwise import compute_pairwise_debts
from simplifier import simplify_debts
from utils import EPSILON, ZERO, money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementReport:
    balances: Dict[str, Decimal]
    pairwise: Tuple[PairwiseDebt, ...]
    plan: SettlementPlan
    overrides: OverrideResolution = field(default_factory=OverrideResolution)
    conservation_error: Decimal = ZERO  # sum of all balances; zero for a consistent ledger
    snapshot_hash: str = ""

    @property
    def is_conserved(self) -> bool:
        return abs(self.conservation_error) < EPSILON

    def to_dict(self) -> Dict[str, Any]:
        """Canonical serialisable form; amounts as strings, stable ordering"""
        return {
            "snapshot_hash": self.snapshot_hash,
            "balances": {pid: str(v) for pid, v in self.balances.items()},
            "pairwise": [
                {
                    "from": d.from_id,
                    "to": d.to_id,
                    "amount": str(d.amount),
                    "settled": str(d.settled),
                    "outstanding": str(d.outstanding),
                    "contributing_expense_ids": list(d.contributing_expense_ids),
                }
                for d in self.pairwise
            ],
            "settlement_plan": [
                {"from": t.from_id, "to": t.to_id, "amount": str(t.amount)}
                for t in self.plan.transactions
            ],
            "pinned_overrides": [
                {
                    "from": p.override.debtor_id,
                    "to": p.override.creditor_id,
                    "amount": str(p.override.amount),
                    "remainder": str(p.remainder),
                }
                for p in self.plan.pinned
            ],
            "rejected_overrides": [
                {"id": r.override.id, "from": r.override.debtor_id, "to": r.override.creditor_id, "reason": r.reason}
                for r in self.overrides.rejected
            ],
            "residual": {pid: str(v) for pid, v in self.plan.residual.items()},
            "conservation_error": str(self.conservation_error),
        }


def snapshot_hash(ledger: Ledger) -> str:
    """SHA-256 of the canonical JSON form of the snapshot"""
    payload = json.dumps(ledger_to_dict(ledger), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def compute_settlement_report(ledger: Ledger) -> SettlementReport:
    """
    Run the whole engine on a snapshot.

    Balances drive the plan; pairwise debts are computed independently for
    audit views. A balance sum away from zero is logged as critical and
    returned as conservation_error, never corrected.
    """
    if ledger is None:
        raise LedgerInputError("ledger is required, got None")
    require_collections(
        people=ledger.people,
        expenses=ledger.expenses,
        settlement_payments=ledger.settlement_payments,
        manual_overrides=ledger.manual_overrides,
    )

    balances = compute_net_balances(ledger.people, ledger.expenses, ledger.settlement_payments)
    conservation_error = sum(balances.values(), ZERO)
    if abs(conservation_error) >= EPSILON:
        logger.critical("Balances sum to %s instead of zero; check expense records", conservation_error)

    resolution = resolve_overrides(ledger.manual_overrides, balances)
    plan = simplify_debts(balances, resolution.accepted)
    pairwise = compute_pairwise_debts(ledger.people, ledger.expenses, ledger.settlement_payments)

    report = SettlementReport(
        balances=balances,
        pairwise=tuple(pairwise),
        plan=plan,
        overrides=resolution,
        conservation_error=conservation_error,
        snapshot_hash=snapshot_hash(ledger),
    )
    logger.debug(
        "Snapshot %s: %d balances, %d pairwise debts, %d planned payments",
        report.snapshot_hash[:12], len(balances), len(pairwise), len(plan.transactions),
    )
    return report


def _as_amount(v: Any) -> Optional[Decimal]:
    try:
        return money(v)
    except (InvalidOperation, TypeError, ValueError):
        return None


def _amounts_differ(a: Any, b: Any) -> bool:
    x, y = _as_amount(a), _as_amount(b)
    if x is None or y is None:
        return a != b
    return abs(x - y) > EPSILON


def diff_reports(expected: Dict[str, Any], actual: Dict[str, Any]) -> List[str]:
    """
    Compare two report dicts (as produced by SettlementReport.to_dict).

    Balances, the pairwise list and the settlement plan must match entry by
    entry and in order; amounts match when within a cent. Returns one line
    per mismatch, empty when the outputs agree.
    """
    mismatches: List[str] = []

    exp_bal = expected.get("balances", {})
    act_bal = actual.get("balances", {})
    for pid in sorted(set(exp_bal) | set(act_bal)):
        if pid not in exp_bal or pid not in act_bal:
            mismatches.append(f"balance for {pid}: present in only one report")
        elif _amounts_differ(exp_bal[pid], act_bal[pid]):
            mismatches.append(f"balance for {pid}: expected {exp_bal[pid]}, got {act_bal[pid]}")

    for key in ("pairwise", "settlement_plan"):
        exp_rows = expected.get(key, [])
        act_rows = actual.get(key, [])
        if len(exp_rows) != len(act_rows):
            mismatches.append(f"{key}: expected {len(exp_rows)} entries, got {len(act_rows)}")
        for idx, (e, a) in enumerate(zip(exp_rows, act_rows)):
            if (e.get("from"), e.get("to")) != (a.get("from"), a.get("to")):
                mismatches.append(
                    f"{key}[{idx}]: expected {e.get('from')} -> {e.get('to')}, got {a.get('from')} -> {a.get('to')}"
                )
            elif _amounts_differ(e.get("amount"), a.get("amount")):
                mismatches.append(f"{key}[{idx}]: expected amount {e.get('amount')}, got {a.get('amount')}")

    return mismatches
