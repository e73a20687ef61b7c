"""
SplitLedger command line
- Load a ledger snapshot (people, expenses, settlements, overrides) from JSON.
- Print net balances and the settlement plan; optionally verify the ledger
  and write CSV files or an Excel report.

Run:
  split-ledger ledger.json [--excel report.xlsx] [--csv-dir out/] [--verify] [--json]

Exit codes:
  0 - success
  1 - the ledger could not be loaded, or verification found failures
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from config import default_ledger_path, load_ledger
from csv_handler import export_balances_to_csv, export_pairwise_to_csv, export_transactions_to_csv
from engine import compute_settlement_report
from errors import LedgerError
from excel_export import export_excel
from log_config import setup_logging
from utils import parse_date
from verification import run_verification

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="split-ledger", description="Settle a shared-expense ledger")
    parser.add_argument("ledger", nargs="?", help="ledger JSON file (default: app data directory)")
    parser.add_argument("--excel", metavar="PATH", help="write an Excel report")
    parser.add_argument("--csv-dir", metavar="DIR", help="write balances/pairwise/settlement CSV files")
    parser.add_argument("--start", type=parse_date, help="report start date, YYYY-MM-DD")
    parser.add_argument("--end", type=parse_date, help="report end date, YYYY-MM-DD")
    parser.add_argument("--verify", action="store_true", help="run integrity checks")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    parser.add_argument("--lenient", action="store_true", help="load malformed records with zero amounts")
    parser.add_argument("--log-file", metavar="PATH", help="also log to this file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file)

    if args.ledger and not os.path.exists(args.ledger):
        logger.error("Ledger file not found: %s", args.ledger)
        return 1
    path = args.ledger or default_ledger_path()
    try:
        ledger = load_ledger(path, strict=not args.lenient)
    except LedgerError as e:
        logger.error("%s", e)
        return 1

    report = compute_settlement_report(ledger)
    names = ledger.people_map()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print("Balances:")
        for pid, amount in report.balances.items():
            print(f"  {names.get(pid, pid)}: {amount}")
        print("Settlement plan:")
        if not report.plan.transactions:
            print("  all settled")
        for t in report.plan.transactions:
            print(f"  {names.get(t.from_id, t.from_id)} pays {names.get(t.to_id, t.to_id)} {t.amount}")

    if args.csv_dir:
        os.makedirs(args.csv_dir, exist_ok=True)
        export_balances_to_csv(report.balances, os.path.join(args.csv_dir, "balances.csv"), names)
        export_pairwise_to_csv(report.pairwise, os.path.join(args.csv_dir, "pairwise.csv"), names)
        export_transactions_to_csv(report.plan.transactions, os.path.join(args.csv_dir, "settlement.csv"), names)

    if args.excel:
        export_excel(ledger, args.excel, args.start, args.end, report=report)

    if args.verify:
        verification = run_verification(ledger)
        # diagnostics go to stderr so --json output stays parseable
        for r in verification.results:
            print(f"[{r.status.upper()}] {r.name}", file=sys.stderr)
            for line in r.details:
                print(f"    {line}", file=sys.stderr)
        print(f"Data integrity score: {verification.data_integrity_score}", file=sys.stderr)
        if not verification.passed:
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
