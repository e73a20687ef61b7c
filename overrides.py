"""
Manual settlement overrides: validation ahead of the simplifier's pinned pass
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Mapping, Set, Tuple

from computations import require_collections
from models import ManualSettlementOverride
from utils import safe_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectedOverride:
    override: ManualSettlementOverride
    reason: str


@dataclass(frozen=True)
class OverrideResolution:
    accepted: Tuple[ManualSettlementOverride, ...] = ()
    rejected: Tuple[RejectedOverride, ...] = field(default_factory=tuple)


def resolve_overrides(
    overrides: Iterable[ManualSettlementOverride],
    balances: Mapping[str, Decimal],
) -> OverrideResolution:
    """
    Keep the overrides the simplifier may pin.

    An override is accepted when it is active, moves a positive amount
    between two different people who both appear in the balance map, and
    its (debtor, creditor) pair has not already been accepted in this call.
    Amounts are returned quantized to cents; balances are not touched.
    """
    require_collections(overrides=overrides, balances=balances)

    accepted: List[ManualSettlementOverride] = []
    rejected: List[RejectedOverride] = []
    pairs: Set[Tuple[str, str]] = set()

    for o in overrides:
        amount = safe_decimal(o.amount)
        if not o.is_active:
            reason = "inactive"
        elif o.debtor_id == o.creditor_id:
            reason = "debtor and creditor are the same person"
        elif amount <= 0:
            reason = "amount must be positive"
        elif o.debtor_id not in balances:
            reason = f"unknown debtor {o.debtor_id}"
        elif o.creditor_id not in balances:
            reason = f"unknown creditor {o.creditor_id}"
        elif (o.debtor_id, o.creditor_id) in pairs:
            reason = "duplicate override for the same pair"
        else:
            pairs.add((o.debtor_id, o.creditor_id))
            accepted.append(ManualSettlementOverride(
                debtor_id=o.debtor_id,
                creditor_id=o.creditor_id,
                amount=amount,
                id=o.id,
                notes=o.notes,
                is_active=True,
            ))
            continue

        if reason != "inactive":
            logger.warning("Ignoring override %s (%s -> %s): %s", o.id, o.debtor_id, o.creditor_id, reason)
        rejected.append(RejectedOverride(o, reason))

    return OverrideResolution(accepted=tuple(accepted), rejected=tuple(rejected))
