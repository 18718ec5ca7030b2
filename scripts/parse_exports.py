"""Parse local analytics exports and report what was found.

Usage:
    python scripts/parse_exports.py exports/*.xlsx
    python scripts/parse_exports.py content.xls followers.xls --json > rows.json
    python scripts/parse_exports.py export.xlsx --save "November export"

Files that fail validation or parsing are listed but do not stop the run.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from analytics_ingest.config import settings
from analytics_ingest.database import init_db, session_scope
from analytics_ingest.ingest import ParseResult, UploadedFile, parse_files
from analytics_ingest.repository import save_dataset


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse analytics spreadsheet exports.")
    parser.add_argument("paths", nargs="+", type=Path, help="XLS/XLSX/ODS/CSV export files")
    parser.add_argument("--json", action="store_true", help="Print normalized rows as JSON")
    parser.add_argument("--save", metavar="NAME", help="Store the rows as a dataset with this name")
    return parser.parse_args(argv)


def load_uploads(paths: list[Path]) -> list[UploadedFile]:
    return [UploadedFile(name=p.name, content=p.read_bytes()) for p in paths]


def print_summary(parsed: ParseResult) -> None:
    print(f"posts:                  {len(parsed.posts)}")
    print(f"daily metrics:          {len(parsed.daily)}")
    print(f"followers (daily):      {len(parsed.followers_daily)}")
    print(f"followers (demographic): {len(parsed.followers_demographics)}")
    for warning in parsed.warnings:
        print(f"warning: {warning}")
    for failure in parsed.failures:
        print(f"failed:  {failure.filename}: {failure.reason}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    missing = [p for p in args.paths if not p.is_file()]
    if missing:
        print(f"File not found: {', '.join(str(p) for p in missing)}", file=sys.stderr)
        return 2

    parsed = parse_files(load_uploads(args.paths))

    if args.json:
        print(json.dumps(parsed.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_summary(parsed)

    if args.save:
        init_db()
        with session_scope() as session:
            dataset = save_dataset(session, args.save, parsed)
            print(f"Saved dataset {dataset.id} '{dataset.name}'", file=sys.stderr)

    return 1 if parsed.failures and parsed.total_records == 0 else 0


if __name__ == "__main__":
    sys.exit(main())
