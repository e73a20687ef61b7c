"""
Integrity checks over a ledger snapshot.

Re-runs the engine and reports pass/fail/warning per check, with one detail
line per record where that makes sense. Nothing here raises for bad data;
the point is to surface it.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from computations import (
    compute_net_balances,
    celebration_amount,
    items_total,
    normalize_expense,
    sum_by_person,
)
from engine import SettlementReport, compute_settlement_report, diff_reports
from models import Expense, Ledger
from utils import ZERO, is_zero, safe_decimal, within_tolerance

logger = logging.getLogger(__name__)

PASS = "pass"
FAIL = "fail"
WARNING = "warning"


@dataclass(frozen=True)
class CheckResult:
    id: str
    name: str
    description: str
    status: str
    details: Tuple[str, ...] = ()


@dataclass(frozen=True)
class VerificationReport:
    timestamp: str
    results: Tuple[CheckResult, ...]
    report: SettlementReport

    @property
    def passed(self) -> bool:
        return all(r.status != FAIL for r in self.results)

    @property
    def data_integrity_score(self) -> float:
        """Pass = 1 point, warning = 0.5, fail = 0; as a percentage"""
        if not self.results:
            return 100.0
        points = sum(1.0 if r.status == PASS else 0.5 if r.status == WARNING else 0.0 for r in self.results)
        return round(points / len(self.results) * 100, 2)

    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if r.status == FAIL]


def _label(expense: Expense) -> str:
    return expense.description or expense.id


def _fmt(balances: Mapping[str, Decimal], names: Mapping[str, str]) -> str:
    return ", ".join(f"{names.get(pid, pid)}: {amount}" for pid, amount in balances.items())


def check_conservation(report: SettlementReport, names: Mapping[str, str]) -> CheckResult:
    ok = report.is_conserved
    details = [
        f"Total balance sum: {report.conservation_error}",
        f"Individual balances: {_fmt(report.balances, names)}",
        f"People with positive balance: {sum(1 for b in report.balances.values() if b > 0 and not is_zero(b))}",
        f"People with negative balance: {sum(1 for b in report.balances.values() if b < 0 and not is_zero(b))}",
    ]
    if not ok:
        details.append(f"Balance sum {report.conservation_error} violates money conservation")
    return CheckResult(
        "balance-conservation", "Balance conservation",
        "Total balances sum to zero",
        PASS if ok else FAIL, tuple(details),
    )


def check_expense_integrity(ledger: Ledger) -> CheckResult:
    ok = True
    details = []
    for e in ledger.expenses:
        total = safe_decimal(e.total_amount)
        paid = sum(sum_by_person(e.paid_by).values(), ZERO)
        shares = sum(normalize_expense(e).owed.values(), ZERO) + celebration_amount(e)
        suffix = " (excluded)" if e.exclude_from_settlement else ""
        if not within_tolerance(paid, total):
            ok = False
            details.append(f"FAIL {_label(e)}{suffix}: paid {paid} != total {total}")
        elif not within_tolerance(shares, total):
            ok = False
            details.append(f"FAIL {_label(e)}{suffix}: shares+celebration {shares} != total {total}")
        else:
            details.append(f"PASS {_label(e)}{suffix}: all amounts balanced")
    return CheckResult(
        "expense-integrity", "Expense data integrity",
        "Paid amounts and shares match each expense total",
        PASS if ok else FAIL, tuple(details) or ("No expenses",),
    )


def check_excluded_expenses(ledger: Ledger, report: SettlementReport, names: Mapping[str, str]) -> CheckResult:
    excluded = [e for e in ledger.expenses if e.exclude_from_settlement]
    if not excluded:
        return CheckResult(
            "excluded-expenses", "Excluded expenses",
            "Excluded expenses do not affect balances",
            PASS, ("No expenses marked as excluded from settlement",),
        )
    active = [e for e in ledger.expenses if not e.exclude_from_settlement]
    without = compute_net_balances(ledger.people, active, ledger.settlement_payments)
    details = []
    for pid in sorted(set(without) | set(report.balances)):
        a, b = report.balances.get(pid, ZERO), without.get(pid, ZERO)
        if a != b:
            details.append(f"FAIL balance mismatch for {names.get(pid, pid)}: {a} with excluded, {b} without")
    if not details:
        details.append(f"PASS {len(excluded)} expenses correctly excluded")
    return CheckResult(
        "excluded-expenses", "Excluded expenses",
        "Excluded expenses do not affect balances",
        FAIL if details[0].startswith("FAIL") else PASS, tuple(details),
    )


def check_itemwise(ledger: Ledger, names: Mapping[str, str]) -> CheckResult:
    ok = True
    details = []
    for e in ledger.expenses:
        if e.split_method != "itemwise" or e.items is None:
            continue
        total = safe_decimal(e.total_amount)
        item_sum = items_total(e)
        n = normalize_expense(e)
        distributed = sum(n.owed.values(), ZERO) + celebration_amount(e)
        before = len(details)

        if not within_tolerance(item_sum, total):
            ok = False
            details.append(f"FAIL {_label(e)}: items total {item_sum} != total {total}")
        for item in e.items:
            if safe_decimal(item.price) > 0 and not item.shared_by:
                ok = False
                details.append(f"FAIL {_label(e)}: item {item.name!r} has a price but no sharers")
        if not within_tolerance(distributed, total):
            ok = False
            details.append(f"FAIL {_label(e)}: distributed {distributed} != total {total}")

        stored = sum_by_person(e.shares)
        if stored:
            for pid in sorted(set(stored) | set(n.owed)):
                if not within_tolerance(stored.get(pid, ZERO), n.owed.get(pid, ZERO)):
                    ok = False
                    details.append(
                        f"FAIL {_label(e)}: stored share for {names.get(pid, pid)} {stored.get(pid, ZERO)}"
                        f" != item split {n.owed.get(pid, ZERO)}"
                    )
        if len(details) == before:
            details.append(f"PASS {_label(e)}: items and shares match")
    return CheckResult(
        "itemwise-accuracy", "Itemwise split accuracy",
        "Itemwise expenses distribute their items among the sharers",
        PASS if ok else FAIL, tuple(details) or ("No itemwise expenses",),
    )


def check_multiple_payers(ledger: Ledger, names: Mapping[str, str]) -> CheckResult:
    ok = True
    details = []
    for e in ledger.expenses:
        paid = sum_by_person(e.paid_by)
        if len(paid) < 2:
            continue
        total_paid = sum(paid.values(), ZERO)
        if within_tolerance(total_paid, safe_decimal(e.total_amount)):
            details.append(f"PASS {_label(e)}: {_fmt(paid, names)}")
        else:
            ok = False
            details.append(f"FAIL {_label(e)}: payers total {total_paid} != total {e.total_amount}")
    return CheckResult(
        "multi-payer", "Multiple payers",
        "Expenses with several payers add up",
        PASS if ok else FAIL, tuple(details) or ("No multi-payer expenses",),
    )


def check_celebrations(ledger: Ledger, names: Mapping[str, str]) -> CheckResult:
    ok = True
    details = []
    for e in ledger.expenses:
        amount = celebration_amount(e)
        if amount <= 0:
            continue
        total = safe_decimal(e.total_amount)
        who = names.get(e.celebration_contribution.person_id, e.celebration_contribution.person_id)
        if amount > total:
            ok = False
            details.append(f"FAIL {_label(e)}: celebration {amount} by {who} exceeds total {total}")
        else:
            details.append(f"PASS {_label(e)}: {who} covers {amount} of {total}")
    return CheckResult(
        "celebration-contributions", "Celebration contributions",
        "Celebration contributions stay within the expense total",
        PASS if ok else FAIL, tuple(details) or ("No celebration contributions",),
    )


def check_settlement_impact(ledger: Ledger, report: SettlementReport, names: Mapping[str, str]) -> CheckResult:
    if not ledger.settlement_payments:
        return CheckResult(
            "settlement-impact", "Settlement payments impact",
            "Settlements move only the debtor and creditor balances",
            PASS, ("No settlement payments",),
        )
    expected = dict(compute_net_balances(ledger.people, ledger.expenses, []))
    status = PASS
    details = []
    for s in ledger.settlement_payments:
        amount = safe_decimal(s.amount_settled)
        expected[s.debtor_id] = expected.get(s.debtor_id, ZERO) + amount
        expected[s.creditor_id] = expected.get(s.creditor_id, ZERO) - amount
        if s.debtor_id not in names or s.creditor_id not in names:
            status = WARNING
            details.append(f"WARN settlement {s.id} references an unknown person")
    for pid in sorted(set(expected) | set(report.balances)):
        if expected.get(pid, ZERO) != report.balances.get(pid, ZERO):
            status = FAIL
            details.append(
                f"FAIL {names.get(pid, pid)}: expected {expected.get(pid, ZERO)}, got {report.balances.get(pid, ZERO)}"
            )
    if status == PASS:
        details.append(f"PASS {len(ledger.settlement_payments)} settlements applied to debtor and creditor only")
    return CheckResult(
        "settlement-impact", "Settlement payments impact",
        "Settlements move only the debtor and creditor balances",
        status, tuple(details),
    )


def _apply(balances: Mapping[str, Decimal], transactions) -> Dict[str, Decimal]:
    out = dict(balances)
    for t in transactions:
        out[t.from_id] = out.get(t.from_id, ZERO) + t.amount
        out[t.to_id] = out.get(t.to_id, ZERO) - t.amount
    return out


def check_full_settlement(report: SettlementReport, names: Mapping[str, str]) -> CheckResult:
    after = _apply(report.balances, report.plan.transactions)
    left = {pid: v for pid, v in after.items() if not is_zero(v)}
    details = [f"{len(report.plan.transactions)} planned payments"]
    bad_amounts = [t for t in report.plan.transactions if t.amount <= 0]
    if left:
        details.append(f"FAIL balances left after the plan: {_fmt(left, names)}")
    if bad_amounts:
        details.append(f"FAIL {len(bad_amounts)} payments with non-positive amounts")
    return CheckResult(
        "full-settlement", "Full settlement",
        "Applying the plan zeroes every balance",
        FAIL if left or bad_amounts else PASS, tuple(details),
    )


def check_minimality(report: SettlementReport) -> CheckResult:
    pinned = len(report.plan.pinned)
    after_pins = _apply(report.balances, report.plan.transactions[:pinned])
    nonzero = sum(1 for v in after_pins.values() if not is_zero(v))
    greedy = len(report.plan.transactions) - pinned
    bound = max(0, nonzero - 1)
    ok = greedy <= bound
    return CheckResult(
        "minimality", "Minimal payment count",
        "Payments never exceed the number of unsettled people minus one",
        PASS if ok else FAIL,
        (f"{greedy} computed payments for {nonzero} unsettled people (bound {bound}), {pinned} pinned",),
    )


def check_determinism(ledger: Ledger, report: SettlementReport) -> CheckResult:
    again = compute_settlement_report(ledger)
    ok = again.to_dict() == report.to_dict()
    return CheckResult(
        "determinism", "Deterministic output",
        "Re-running on the same snapshot gives identical output",
        PASS if ok else FAIL,
        ("PASS identical output on re-run",) if ok else tuple(diff_reports(report.to_dict(), again.to_dict())),
    )


def check_overrides(report: SettlementReport, names: Mapping[str, str]) -> CheckResult:
    details = []
    status = PASS
    for r in report.overrides.rejected:
        if r.reason == "inactive":
            continue
        status = WARNING
        details.append(f"WARN override {r.override.id or ''} ignored: {r.reason}")
    for p in report.plan.pinned:
        o = p.override
        who = f"{names.get(o.debtor_id, o.debtor_id)} -> {names.get(o.creditor_id, o.creditor_id)}"
        if p.remainder < 0:
            status = WARNING
            details.append(f"WARN {who} {o.amount}: overpays by {-p.remainder}")
        else:
            details.append(f"PASS {who} {o.amount}: pinned")
    return CheckResult(
        "manual-overrides", "Manual settlement overrides",
        "Pinned overrides fit the outstanding balances",
        status, tuple(details) or ("No active overrides",),
    )


def check_rendered(report: SettlementReport, rendered: Dict[str, Any]) -> CheckResult:
    mismatches = diff_reports(rendered, report.to_dict())
    return CheckResult(
        "rendered-consistency", "Rendered output consistency",
        "What was shown to the user matches a fresh computation",
        FAIL if mismatches else PASS,
        tuple(mismatches) or ("PASS rendered output matches",),
    )


def run_verification(ledger: Ledger, rendered: Optional[Dict[str, Any]] = None) -> VerificationReport:
    """
    Run every check against a snapshot.

    rendered: the report dict that was displayed (SettlementReport.to_dict()
    shape); when given it is diffed against a fresh computation.
    """
    report = compute_settlement_report(ledger)
    names = ledger.people_map()

    results = [
        check_conservation(report, names),
        check_expense_integrity(ledger),
        check_excluded_expenses(ledger, report, names),
        check_itemwise(ledger, names),
        check_multiple_payers(ledger, names),
        check_celebrations(ledger, names),
        check_settlement_impact(ledger, report, names),
        check_full_settlement(report, names),
        check_minimality(report),
        check_determinism(ledger, report),
        check_overrides(report, names),
    ]
    if rendered is not None:
        results.append(check_rendered(report, rendered))

    for r in results:
        if r.status == FAIL:
            logger.error("Verification failed: %s", r.name)

    return VerificationReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        results=tuple(results),
        report=report,
    )
