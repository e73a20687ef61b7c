"""
Configuration and data loading/saving for SplitLedger
"""
from __future__ import annotations
import json
import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from errors import ConfigError, DataValidationError
from models import (
    SPLIT_METHODS,
    CelebrationContribution,
    Expense,
    ExpenseItem,
    Ledger,
    ManualSettlementOverride,
    PayerShare,
    Person,
    SettlementPayment,
)
from utils import app_dir, money, safe_decimal

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "ledger.json"


def default_ledger_path() -> str:
    return os.path.join(app_dir(), LEDGER_FILENAME)


def load_ledger(path: Optional[str] = None, strict: bool = True) -> Ledger:
    """Load a ledger snapshot from a JSON file; a missing file yields an empty ledger"""
    path = path or default_ledger_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("No ledger at %s, starting empty", path)
        return Ledger()
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read ledger {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Ledger {path} must contain a JSON object")
    ledger = dict_to_ledger(data, strict=strict)
    logger.info(
        "Loaded ledger %s: %d people, %d expenses, %d settlements, %d overrides",
        path, len(ledger.people), len(ledger.expenses),
        len(ledger.settlement_payments), len(ledger.manual_overrides),
    )
    return ledger


def save_ledger(ledger: Ledger, path: Optional[str] = None) -> str:
    """Write a ledger snapshot as JSON and return the path"""
    path = path or default_ledger_path()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(ledger_to_dict(ledger), f, ensure_ascii=False, indent=2)
    return path


def _amount(v: Decimal) -> Optional[str]:
    # unparseable amounts are written as found; the engine counts them as zero
    try:
        return str(money(v))
    except (InvalidOperation, TypeError, ValueError):
        return None if v is None else str(v)


def _shares_to_list(shares) -> List[dict]:
    return [{"person_id": s.person_id, "amount": _amount(s.amount)} for s in shares]


def expense_to_dict(e: Expense) -> dict:
    return {
        "id": e.id,
        "description": e.description,
        "total_amount": _amount(e.total_amount),
        "category": e.category,
        "split_method": e.split_method,
        "paid_by": _shares_to_list(e.paid_by),
        "shares": _shares_to_list(e.shares),
        "items": None if e.items is None else [
            {
                "id": i.id,
                "name": i.name,
                "price": _amount(i.price),
                "shared_by": list(i.shared_by),
                "category_name": i.category_name,
            } for i in e.items
        ],
        "celebration_contribution": None if e.celebration_contribution is None else {
            "person_id": e.celebration_contribution.person_id,
            "amount": _amount(e.celebration_contribution.amount),
        },
        "exclude_from_settlement": e.exclude_from_settlement,
        "created_at": e.created_at,
    }


def settlement_to_dict(s: SettlementPayment) -> dict:
    return {
        "id": s.id,
        "debtor_id": s.debtor_id,
        "creditor_id": s.creditor_id,
        "amount_settled": _amount(s.amount_settled),
        "settled_at": s.settled_at,
        "notes": s.notes,
        "status": s.status,
    }


def override_to_dict(o: ManualSettlementOverride) -> dict:
    return {
        "id": o.id,
        "debtor_id": o.debtor_id,
        "creditor_id": o.creditor_id,
        "amount": _amount(o.amount),
        "notes": o.notes,
        "is_active": o.is_active,
    }


def ledger_to_dict(ledger: Ledger) -> dict:
    """Convert Ledger object to dictionary for JSON serialization"""
    return {
        "version": ledger.version,
        "people": [{"id": p.id, "name": p.name} for p in ledger.people],
        "expenses": [expense_to_dict(e) for e in ledger.expenses],
        "settlement_payments": [settlement_to_dict(s) for s in ledger.settlement_payments],
        "manual_overrides": [override_to_dict(o) for o in ledger.manual_overrides],
    }


class _Reader:
    """Field access for one record; strict mode rejects what lenient mode defaults"""

    def __init__(self, record: Any, where: str, strict: bool):
        if not isinstance(record, dict):
            raise DataValidationError(f"{where}: expected an object, got {type(record).__name__}")
        self.record = record
        self.where = where
        self.strict = strict

    def get(self, *keys: str, default: Any = None) -> Any:
        # accepts snake_case and the camelCase spelling used by older exports
        for k in keys:
            if k in self.record:
                return self.record[k]
        return default

    def require(self, *keys: str) -> Any:
        value = self.get(*keys)
        if value is None:
            raise DataValidationError(f"{self.where}: missing {keys[0]}")
        return value

    def amount(self, *keys: str) -> Decimal:
        raw = self.get(*keys)
        if self.strict:
            try:
                return money(raw)
            except (InvalidOperation, TypeError, ValueError):
                raise DataValidationError(f"{self.where}: invalid {keys[0]} {raw!r}") from None
        return safe_decimal(raw)

    def flag(self, *keys: str, default: bool) -> bool:
        raw = self.get(*keys)
        if raw is None:
            return default
        if isinstance(raw, bool):
            return raw
        if self.strict:
            raise DataValidationError(f"{self.where}: {keys[0]} must be true or false, got {raw!r}")
        return str(raw).strip().lower() in ("yes", "true", "1")


def _parse_shares(raw: Any, where: str, strict: bool) -> tuple:
    out = []
    for idx, entry in enumerate(raw or ()):
        r = _Reader(entry, f"{where}[{idx}]", strict)
        out.append(PayerShare(person_id=str(r.require("person_id", "personId")),
                              amount=r.amount("amount")))
    return tuple(out)


def dict_to_expense(raw: Any, idx: int = 0, strict: bool = True) -> Expense:
    r = _Reader(raw, f"expenses[{idx}]", strict)
    expense_id = str(r.require("id"))
    where = f"expense {expense_id}"

    split_method = r.get("split_method") or "equal"
    if split_method not in SPLIT_METHODS:
        if strict:
            raise DataValidationError(f"{where}: unknown split_method {split_method!r}")
        logger.warning("%s: unknown split_method %r treated as unequal", where, split_method)
        split_method = "unequal"

    items = None
    raw_items = r.get("items")
    if raw_items is not None:
        parsed = []
        for j, item in enumerate(raw_items):
            ir = _Reader(item, f"{where} items[{j}]", strict)
            price = ir.amount("price")
            shared_by = tuple(str(pid) for pid in ir.get("shared_by", "sharedBy", default=()) or ())
            if strict and price > 0 and not shared_by:
                raise DataValidationError(f"{where}: item {ir.get('name')!r} has a price but no sharers")
            parsed.append(ExpenseItem(
                id=str(ir.get("id", default=j)),
                name=str(ir.get("name") or ""),
                price=price,
                shared_by=shared_by,
                category_name=ir.get("category_name", "categoryName"),
            ))
        items = tuple(parsed)

    celebration = None
    raw_celebration = r.get("celebration_contribution")
    if raw_celebration:
        cr = _Reader(raw_celebration, f"{where} celebration_contribution", strict)
        celebration = CelebrationContribution(
            person_id=str(cr.require("person_id", "personId")),
            amount=cr.amount("amount"),
        )

    return Expense(
        id=expense_id,
        description=str(r.get("description") or ""),
        total_amount=r.amount("total_amount"),
        category=str(r.get("category") or ""),
        split_method=split_method,
        paid_by=_parse_shares(r.get("paid_by"), f"{where} paid_by", strict),
        shares=_parse_shares(r.get("shares"), f"{where} shares", strict),
        items=items,
        celebration_contribution=celebration,
        exclude_from_settlement=r.flag("exclude_from_settlement", default=False),
        created_at=r.get("created_at"),
    )


def dict_to_settlement(raw: Any, idx: int = 0, strict: bool = True) -> SettlementPayment:
    r = _Reader(raw, f"settlement_payments[{idx}]", strict)
    return SettlementPayment(
        id=str(r.require("id")),
        debtor_id=str(r.require("debtor_id")),
        creditor_id=str(r.require("creditor_id")),
        amount_settled=r.amount("amount_settled"),
        settled_at=str(r.get("settled_at") or ""),
        notes=r.get("notes"),
        status=str(r.get("status") or "completed"),
    )


def _parse_override(raw: Any, idx: int, strict: bool) -> ManualSettlementOverride:
    r = _Reader(raw, f"manual_overrides[{idx}]", strict)
    return ManualSettlementOverride(
        debtor_id=str(r.require("debtor_id")),
        creditor_id=str(r.require("creditor_id")),
        amount=r.amount("amount"),
        id=r.get("id"),
        notes=r.get("notes"),
        is_active=r.flag("is_active", default=True),
    )


def dict_to_ledger(d: Dict[str, Any], strict: bool = True) -> Ledger:
    """
    Convert dictionary from JSON to Ledger object.

    strict=True rejects malformed records with DataValidationError, including
    itemwise items that carry a price but no sharers. strict=False keeps
    going with zero amounts so a single bad record cannot block the rest.
    """
    people = []
    for idx, raw in enumerate(d.get("people", [])):
        r = _Reader(raw, f"people[{idx}]", strict)
        people.append(Person(id=str(r.require("id")), name=str(r.get("name") or "")))

    return Ledger(
        version=d.get("version", 1),
        people=tuple(people),
        expenses=tuple(dict_to_expense(e, i, strict) for i, e in enumerate(d.get("expenses", []))),
        settlement_payments=tuple(
            dict_to_settlement(s, i, strict) for i, s in enumerate(d.get("settlement_payments", []))
        ),
        manual_overrides=tuple(
            _parse_override(o, i, strict) for i, o in enumerate(d.get("manual_overrides", []))
        ),
    )
