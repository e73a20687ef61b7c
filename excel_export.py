"""
Excel export functionality for SplitLedger
"""
from __future__ import annotations
from datetime import date
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from models import Ledger
from computations import (
    active_expenses,
    compute_summary,
    filter_expenses_by_date,
    normalize_expense,
)
from engine import SettlementReport, compute_settlement_report
from reports import category_totals, daily_totals
from utils import safe_date, safe_decimal


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            v = cell.value
            if v is None:
                continue
            s = str(v)
            max_len = max(max_len, len(s))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _money_format(ws, columns, first_row=2):
    for r in range(first_row, ws.max_row + 1):
        for c in columns:
            ws.cell(r, c).number_format = "0.00"


def _new_sheet(wb, title, headers):
    ws = wb.create_sheet(title)
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    return ws


def export_excel(
    ledger: Ledger,
    filepath: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    report: Optional[SettlementReport] = None,
) -> None:
    """
    Export ledger to Excel file with sheets:
    - Expenses: one row per active expense with each person's owed amount
    - Summary, Pairwise, Settlement: always over the whole ledger
    - Categories, Daily: totals for the selected date range
    """
    report = report or compute_settlement_report(ledger)
    names = ledger.people_map()

    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    people = [p.id for p in ledger.people]
    exps = filter_expenses_by_date(active_expenses(ledger.expenses), start, end)
    exps.sort(key=lambda e: (e.created_at or "", e.description, e.id))

    # Expenses sheet
    headers = ["date", "description", "category", "split", "total"] + [f"{names[p]} owed" for p in people]
    ws = _new_sheet(wb, "Expenses", headers)
    for e in exps:
        n = normalize_expense(e)
        obligations = n.obligations()
        d = safe_date(e.created_at)
        row = [d.isoformat() if d else "", e.description, e.category, e.split_method, float(safe_decimal(e.total_amount))]
        row += [float(obligations.get(p, 0)) for p in people]
        ws.append(row)

    # Footer totals, using Excel formulas for transparency
    if exps:
        last_data_row = ws.max_row
        ws.append(["TOTALS"] + [""] * (len(headers) - 1))
        trow = ws.max_row
        ws.cell(trow, 1).font = Font(bold=True)
        for col in range(5, len(headers) + 1):
            letter = get_column_letter(col)
            ws.cell(trow, col).value = f"=SUM({letter}2:{letter}{last_data_row})"
    _money_format(ws, range(5, len(headers) + 1))
    _autosize_columns(ws)

    # Summary sheet
    ws = _new_sheet(wb, "Summary", ["Person", "Paid", "Owed", "Celebration", "Settled Out", "Settled In", "Net"])
    summary = compute_summary(ledger.people, ledger.expenses, ledger.settlement_payments)
    for pid, s in summary.items():
        ws.append([
            names.get(pid, pid),
            float(s["paid"]), float(s["owed"]), float(s["celebration"]),
            float(s["settled_out"]), float(s["settled_in"]), float(s["net"]),
        ])
    _money_format(ws, range(2, 8))
    _autosize_columns(ws)

    # Pairwise sheet (explanatory, not the plan)
    ws = _new_sheet(wb, "Pairwise", ["From (Debtor)", "To (Creditor)", "Amount", "Settled", "Outstanding", "Expenses"])
    for d in report.pairwise:
        ws.append([
            names.get(d.from_id, d.from_id), names.get(d.to_id, d.to_id),
            float(d.amount), float(d.settled), float(d.outstanding),
            ", ".join(d.contributing_expense_ids),
        ])
    _money_format(ws, (3, 4, 5))
    _autosize_columns(ws)

    # Settlement plan sheet
    ws = _new_sheet(wb, "Settlement", ["From (Debtor)", "To (Creditor)", "Amount", "Pinned"])
    pinned = len(report.plan.pinned)
    for idx, t in enumerate(report.plan.transactions):
        ws.append([names.get(t.from_id, t.from_id), names.get(t.to_id, t.to_id), float(t.amount), "yes" if idx < pinned else ""])
    _money_format(ws, (3,))
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Categories", ["Category", "Total"])
    for category, total in category_totals(ledger.expenses, start, end).items():
        ws.append([category, float(total)])
    _money_format(ws, (2,))
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Daily", ["Date", "Total"])
    for day, total in daily_totals(ledger.expenses, start, end).items():
        ws.append([day.isoformat(), float(total)])
    _money_format(ws, (2,))
    _autosize_columns(ws)

    wb.save(filepath)
