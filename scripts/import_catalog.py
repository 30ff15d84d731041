"""
Import a catalog CSV from the command line.

Runs the same pipeline as the upload endpoint (detect, map, validate,
reconcile, report) against a local file and prints the batch result.
Nothing is written to the product store.

Usage:
    python scripts/import_catalog.py exports/cafe24_products.csv

    # Platform not detected, preamble rows before the header
    python scripts/import_catalog.py export.csv --platform makeshop --skip-rows 2

    # Codes already in the store, one per line
    python scripts/import_catalog.py export.csv --existing-codes codes.txt --json
"""

import argparse
import json
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError
from services.import_session_service import ImportSession
from services.upload_history_service import UploadHistoryService


def read_existing_codes(path: str) -> set[str]:
    """One product code per line; blank lines ignored."""
    with open(path, encoding="utf-8") as f:
        return {line.strip() for line in f if line.strip()}


def print_report(session: ImportSession, outcome) -> None:
    separator = "=" * 60
    result = outcome.result
    reconciliation = outcome.reconciliation

    print(separator)
    print(f"  CATALOG IMPORT -- {result.batch_id}")
    print(separator)
    print()
    print(f"  {'File:':<18} {session.file_name}")
    print(f"  {'Platform:':<18} {session.platform.name} "
          f"({'detected' if session.auto_detected else 'selected'})")
    print(f"  {'Rows:':<18} {result.total}")
    print(f"  {'Valid rows:':<18} {result.valid_rows}")
    print(f"  {'Success:':<18} {result.success}")
    print(f"  {'Errors:':<18} {result.error}")
    print(f"  {'Create:':<18} {reconciliation.created_count}")
    print(f"  {'Update:':<18} {reconciliation.updated_count}")

    if result.error_groups:
        print()
        print("Rows with errors:")
        for group in result.error_groups:
            print(f"  row {group.row:<6} {', '.join(group.fields)}")
    print()


def print_candidates(session: ImportSession) -> None:
    print("Platform not detected. Candidates:")
    for candidate in session.candidates:
        print(f"  {candidate.platform_id:<12} {candidate.confidence:>3}%  "
              f"{', '.join(candidate.matched_keywords)}")
    print("Re-run with --platform ID.")


def main():
    parser = argparse.ArgumentParser(
        description="Validate and reconcile a storefront catalog CSV."
    )
    parser.add_argument("file", help="CSV file exported from a storefront")
    parser.add_argument(
        "--platform",
        default=None,
        help="Platform id (skips detection)",
    )
    parser.add_argument(
        "--skip-rows",
        type=int,
        default=0,
        help="Leading rows before the header (default: 0)",
    )
    parser.add_argument(
        "--existing-codes",
        default=None,
        help="File listing codes already in the product store, one per line",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the submit result as JSON",
    )

    args = parser.parse_args()

    if not os.path.isfile(args.file):
        print(f"ERROR: File not found: {args.file}")
        sys.exit(1)

    with open(args.file, "rb") as f:
        data = f.read()

    existing = read_existing_codes(args.existing_codes) if args.existing_codes else set()

    try:
        session = ImportSession.open(
            file_name=os.path.basename(args.file),
            data=data,
            skip_rows=args.skip_rows,
        )
        if args.platform:
            session.select_platform(args.platform)
        elif session.platform is None:
            print_candidates(session)
            sys.exit(2)

        outcome = session.submit(existing, UploadHistoryService())

    except AppError as e:
        print(f"ERROR: [{e.code}] {e.message}")
        if e.details:
            print(f"         {e.details}")
        sys.exit(1)

    if args.json:
        print(json.dumps(outcome.model_dump(mode="json"), ensure_ascii=False, indent=2))
    else:
        print_report(session, outcome)


if __name__ == "__main__":
    main()
