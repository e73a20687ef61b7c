"""
Data models for SplitLedger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Tuple

SPLIT_METHODS = ("equal", "unequal", "itemwise")


@dataclass(frozen=True)
class Person:
    """Participant in the group"""
    id: str
    name: str


@dataclass(frozen=True)
class PayerShare:
    """Amount paid or owed by one person on an expense"""
    person_id: str
    amount: Decimal


@dataclass(frozen=True)
class ExpenseItem:
    """Line item of an itemwise expense"""
    id: str
    name: str
    price: Decimal
    shared_by: Tuple[str, ...] = ()  # person ids
    category_name: Optional[str] = None


@dataclass(frozen=True)
class CelebrationContribution:
    """Extra amount one person covers on top of their own share"""
    person_id: str
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    """Single expense record"""
    id: str
    description: str
    total_amount: Decimal
    category: str
    split_method: str  # equal | unequal | itemwise
    paid_by: Tuple[PayerShare, ...] = ()
    shares: Tuple[PayerShare, ...] = ()
    items: Optional[Tuple[ExpenseItem, ...]] = None
    celebration_contribution: Optional[CelebrationContribution] = None
    exclude_from_settlement: bool = False
    created_at: Optional[str] = None  # ISO timestamp


@dataclass(frozen=True)
class SettlementPayment:
    """Money that already changed hands from debtor to creditor"""
    id: str
    debtor_id: str
    creditor_id: str
    amount_settled: Decimal
    settled_at: str  # ISO timestamp
    notes: Optional[str] = None
    status: str = "completed"


@dataclass(frozen=True)
class ManualSettlementOverride:
    """Transaction pinned by an operator into the settlement plan"""
    debtor_id: str
    creditor_id: str
    amount: Decimal
    id: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class CalculatedTransaction:
    """from_id owes to_id the given amount"""
    from_id: str
    to_id: str
    amount: Decimal
    contributing_expense_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Ledger:
    """Point-in-time snapshot of everything the engine needs"""
    people: Tuple[Person, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    settlement_payments: Tuple[SettlementPayment, ...] = ()
    manual_overrides: Tuple[ManualSettlementOverride, ...] = ()
    version: int = 1

    def people_map(self) -> Dict[str, str]:
        return {p.id: p.name for p in self.people}


@dataclass(frozen=True)
class NormalizedExpense:
    """Per-person contribution of one expense"""
    expense_id: str
    paid: Dict[str, Decimal] = field(default_factory=dict)
    owed: Dict[str, Decimal] = field(default_factory=dict)
    celebration: Optional[CelebrationContribution] = None

    def obligations(self) -> Dict[str, Decimal]:
        """Owed shares plus the celebration contribution, per person"""
        out = dict(self.owed)
        if self.celebration is not None and self.celebration.amount > 0:
            pid = self.celebration.person_id
            out[pid] = out.get(pid, Decimal("0.00")) + self.celebration.amount
        return out


@dataclass(frozen=True)
class PairwiseDebt:
    """Raw bilateral debt, netted across expenses and reduced by settlements"""
    from_id: str
    to_id: str
    amount: Decimal
    settled: Decimal
    outstanding: Decimal  # negative when overpaid
    contributing_expense_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PinnedOverride:
    """Override applied ahead of the greedy pass"""
    override: ManualSettlementOverride
    remainder: Decimal  # headroom minus amount; negative means overpayment


@dataclass(frozen=True)
class SettlementPlan:
    """Minimised payments, pinned overrides first"""
    transactions: Tuple[CalculatedTransaction, ...] = ()
    pinned: Tuple[PinnedOverride, ...] = ()
    residual: Dict[str, Decimal] = field(default_factory=dict)  # left when balances did not sum to zero
