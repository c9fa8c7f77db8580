from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scholarship_search.config import SearchSettings
from scholarship_search.errors import ValidationError
from scholarship_search.service import ScholarshipSearchService

logger = logging.getLogger("run_search")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one multi-source scholarship search.")
    parser.add_argument(
        "--criteria",
        type=Path,
        default=None,
        help="JSON file holding the search criteria. Reads stdin when omitted.",
    )
    parser.add_argument("--max-results", type=int, default=None)
    parser.add_argument("--store-path", type=Path, default=None, help="Parquet store snapshot to query.")
    parser.add_argument("--no-generative", action="store_true", help="Skip the generative recommender.")
    parser.add_argument("--no-scrape", action="store_true", help="Skip the scraped listing sites.")
    parser.add_argument("--no-analysis", action="store_true", help="Skip text analysis of the results.")
    parser.add_argument("--list-sources", action="store_true", help="Print configured sources and exit.")
    parser.add_argument("--output", type=Path, default=None, help="Write the response JSON here.")
    return parser.parse_args(argv)


def load_criteria(path: Path | None) -> Any:
    if path is None:
        return json.loads(sys.stdin.read() or "null")
    if not path.exists():
        raise FileNotFoundError(f"Criteria file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8-sig"))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = SearchSettings.from_env()
    if args.store_path is not None:
        settings = SearchSettings.from_mapping({**settings.to_dict(), "store_path": args.store_path})

    service = ScholarshipSearchService.from_settings(
        settings,
        enable_generative=not args.no_generative,
        enable_scrapers=not args.no_scrape,
        enable_analysis=not args.no_analysis,
    )
    try:
        if args.list_sources:
            print(json.dumps(service.list_sources(), indent=2))
            return 0

        criteria = load_criteria(args.criteria)
        try:
            response = asyncio.run(service.search(criteria, args.max_results))
        except ValidationError as exc:
            logger.error("Invalid search criteria: %s", exc)
            return 2
    finally:
        service.close()

    payload = json.dumps(response.to_dict(), indent=2, default=str)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote search response: {args.output}")
    else:
        print(payload)
    print(
        f"Found {response.total_found} scholarships from "
        f"{', '.join(response.sources_used) or 'no sources'} in {response.processing_time_ms}ms",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
