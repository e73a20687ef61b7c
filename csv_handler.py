"""
CSV export and import functionality for SplitLedger
"""
from __future__ import annotations
import csv
import json
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from config import dict_to_expense, dict_to_settlement, expense_to_dict, settlement_to_dict
from models import CalculatedTransaction, Expense, PairwiseDebt, SettlementPayment

EXPENSE_COLUMNS = [
    'id', 'created_at', 'description', 'category', 'total_amount', 'split_method',
    'paid_by', 'shares', 'celebration', 'items', 'exclude_from_settlement',
]
SETTLEMENT_COLUMNS = ['id', 'debtor_id', 'creditor_id', 'amount_settled', 'settled_at', 'notes', 'status']


def _pairs_to_str(entries: Iterable[dict]) -> str:
    return ';'.join(f"{e['person_id']}:{e['amount']}" for e in entries)


def _str_to_pairs(s: str) -> List[dict]:
    out = []
    if s:
        for pair in s.split(';'):
            if ':' in pair:
                k, v = pair.rsplit(':', 1)
                out.append({'person_id': k.strip(), 'amount': v.strip()})
    return out


def export_expenses_to_csv(expenses: Iterable[Expense], filepath: str) -> None:
    """
    Export expenses list to CSV file
    paid_by/shares are written as "person:amount;person:amount",
    celebration as "person:amount" and items as a JSON list.
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)

        for e in expenses:
            d = expense_to_dict(e)
            celebration = d['celebration_contribution']
            writer.writerow([
                d['id'],
                d['created_at'] or '',
                d['description'],
                d['category'],
                d['total_amount'],
                d['split_method'],
                _pairs_to_str(d['paid_by']),
                _pairs_to_str(d['shares']),
                _pairs_to_str([celebration]) if celebration else '',
                json.dumps(d['items'], ensure_ascii=False) if d['items'] is not None else '',
                'yes' if d['exclude_from_settlement'] else 'no',
            ])


def import_expenses_from_csv(filepath: str, strict: bool = True) -> List[Expense]:
    """
    Import expenses list from CSV file
    Returns list of Expense objects; rows go through the same validation as JSON ledgers
    """
    expenses = []

    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        for idx, row in enumerate(reader):
            celebration = _str_to_pairs(row.get('celebration', ''))
            raw = {
                'id': row['id'],
                'created_at': row.get('created_at') or None,
                'description': row.get('description', ''),
                'category': row.get('category', ''),
                'total_amount': row['total_amount'],
                'split_method': row.get('split_method') or 'equal',
                'paid_by': _str_to_pairs(row.get('paid_by', '')),
                'shares': _str_to_pairs(row.get('shares', '')),
                'celebration_contribution': celebration[0] if celebration else None,
                'items': json.loads(row['items']) if row.get('items') else None,
                'exclude_from_settlement': (row.get('exclude_from_settlement') or '').strip().lower() in ('yes', 'true', '1'),
            }
            expenses.append(dict_to_expense(raw, idx, strict))

    return expenses


def export_settlements_to_csv(payments: Iterable[SettlementPayment], filepath: str) -> None:
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=SETTLEMENT_COLUMNS)
        writer.writeheader()
        for p in payments:
            writer.writerow({k: ('' if v is None else v) for k, v in settlement_to_dict(p).items()})


def import_settlements_from_csv(filepath: str, strict: bool = True) -> List[SettlementPayment]:
    """Import recorded settlement payments from CSV file"""
    payments = []
    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for idx, row in enumerate(reader):
            row = {k: (v if v != '' else None) for k, v in row.items()}
            payments.append(dict_to_settlement(row, idx, strict))
    return payments


def export_transactions_to_csv(
    transactions: Iterable[CalculatedTransaction],
    filepath: str,
    names: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Export a settlement plan to CSV file
    CSV columns: from_id, from_name, to_id, to_name, amount
    """
    names = names or {}
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['from_id', 'from_name', 'to_id', 'to_name', 'amount'])
        for t in transactions:
            writer.writerow([t.from_id, names.get(t.from_id, t.from_id), t.to_id, names.get(t.to_id, t.to_id), t.amount])


def export_pairwise_to_csv(
    debts: Iterable[PairwiseDebt],
    filepath: str,
    names: Optional[Mapping[str, str]] = None,
) -> None:
    names = names or {}
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['from_id', 'from_name', 'to_id', 'to_name', 'amount', 'settled', 'outstanding', 'expenses'])
        for d in debts:
            writer.writerow([
                d.from_id, names.get(d.from_id, d.from_id),
                d.to_id, names.get(d.to_id, d.to_id),
                d.amount, d.settled, d.outstanding,
                ';'.join(d.contributing_expense_ids),
            ])


def export_balances_to_csv(
    balances: Mapping[str, Decimal],
    filepath: str,
    names: Optional[Mapping[str, str]] = None,
) -> None:
    names = names or {}
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['person_id', 'name', 'balance'])
        for pid, amount in balances.items():
            writer.writerow([pid, names.get(pid, pid), amount])
