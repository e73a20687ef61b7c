"""
Utility functions for SplitLedger: money arithmetic, dates and paths
"""
from __future__ import annotations
import os
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Tolerance for caller-supplied sums (paid vs total, shares vs total).
EPSILON = Decimal("0.01")


def parse_date(s: str) -> date:
    """Parse a YYYY-MM-DD date or an ISO-8601 timestamp into a date"""
    s = s.strip()
    if len(s) == 10:
        return datetime.strptime(s, "%Y-%m-%d").date()
    return datetime.fromisoformat(s.replace("Z", "+00:00")).date()


def safe_date(s: Optional[str]) -> Optional[date]:
    """Parse a date, returning None when missing or malformed"""
    if not s:
        return None
    try:
        return parse_date(s)
    except ValueError:
        return None


def money(x) -> Decimal:
    """Quantize a numeric value to cents. Raises on values that are not numbers."""
    if isinstance(x, float):
        x = repr(x)
    return Decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def safe_decimal(x, default: Decimal = ZERO) -> Decimal:
    """Convert to a cent-quantized Decimal, returning default on error"""
    if x is None or isinstance(x, bool):
        return default
    try:
        value = money(x if not isinstance(x, str) else x.strip())
    except (InvalidOperation, TypeError, ValueError):
        return default
    if not value.is_finite():
        return default
    return value


def to_cents(x: Decimal) -> int:
    return int(money(x) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def is_zero(x: Decimal) -> bool:
    """True when an amount rounds to zero cents"""
    return abs(x) < EPSILON


def within_tolerance(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) <= EPSILON


def distribute_with_remainder(total: Decimal, weights: Dict[K, Decimal]) -> Dict[K, Decimal]:
    """
    Split total across keys in proportion to weights, to the cent.

    Ensures sum(result) == total whenever some weight is positive. Cents left
    after flooring go to the largest fractional remainders; equal remainders
    are broken by ascending key so the result does not depend on dict order.
    Non-positive weights receive nothing.
    """
    if not weights:
        return {}

    total_c = to_cents(total)
    sign = -1 if total_c < 0 else 1
    total_c = abs(total_c)

    units = {k: max(0, to_cents(w)) for k, w in weights.items()}
    denominator = sum(units.values())
    if denominator == 0:
        return {k: ZERO for k in weights}

    base = {k: total_c * u // denominator for k, u in units.items()}
    leftover = total_c - sum(base.values())
    if leftover:
        order = sorted(units, key=lambda k: (-(total_c * units[k] % denominator), str(k)))
        for k in order[:leftover]:
            base[k] += 1

    return {k: from_cents(sign * c) for k, c in base.items()}


def app_dir() -> str:
    """
    Get application data directory.
    Honours SPLITLEDGER_HOME, otherwise ~/Library/Application Support/SplitLedger.
    Creates directory if it doesn't exist.
    """
    path = os.getenv("SPLITLEDGER_HOME")
    if not path:
        base = os.path.expanduser("~/Library/Application Support")
        path = os.path.join(base, "SplitLedger")
    os.makedirs(path, exist_ok=True)
    return path
