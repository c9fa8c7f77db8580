from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scholarship_search.config import DEFAULT_STORE_PATH
from scholarship_search.io.store import load_store_records, write_store_parquet


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the structured-store parquet snapshot.")
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSON list of scholarship records (or an object with a 'scholarships' list).",
    )
    parser.add_argument("--output", type=Path, default=DEFAULT_STORE_PATH)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not args.input.exists():
        raise FileNotFoundError(f"Input file not found: {args.input}")

    records = load_store_records(args.input)
    output_path = write_store_parquet(records, args.output)
    print(f"Wrote store snapshot: {output_path} ({len(records)} records)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
