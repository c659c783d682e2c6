#!/usr/bin/env python3
"""newsletter_curator – batch deduplication and merge for newsletter curation.

Usage:
    python main.py batches                  # list scrape batches with counts
    python main.py import scrape.json       # store a scraped batch (JSON list of items)
    python main.py merge 3 4 --preview      # dry-run merge statistics
    python main.py merge 3 4                # merge batches 3 and 4
    python main.py serve                    # run the admin API
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# ── Ensure project root is on sys.path ───────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ── Load .env file (if present) ──────────────────────────────────────
_env_path = PROJECT_ROOT / ".env"
load_dotenv(_env_path, override=True)  # override=True so .env always wins

from process.intake import import_scrape_batch
from process.merge import InvalidArgument, StoreFailure, execute_merge, preview_merge
from storage.db import get_session, init_db, list_batches_with_counts
from storage.models import NewContent

# ── Logging setup ────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


log = logging.getLogger("newsletter_curator")


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ── Commands ─────────────────────────────────────────────────────────


def cmd_batches(_: argparse.Namespace) -> int:
    with get_session() as session:
        batches = list_batches_with_counts(session)
    _print_json({"batches": batches})
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    with open(args.path, encoding="utf-8") as f:
        raw = json.load(f)
    records = [NewContent.from_dict(entry) for entry in raw]
    batch = import_scrape_batch(records, name=args.name)
    _print_json({"batch": batch.to_dict()})
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    try:
        if args.preview:
            result = preview_merge(args.batch_ids)
            _print_json({"preview": True, "stats": result.to_stats()})
        else:
            merged, result = execute_merge(args.batch_ids)
            _print_json({
                "success": True,
                "mergedBatch": merged.to_dict(),
                "stats": result.to_stats(include_removed=True),
            })
    except (InvalidArgument, StoreFailure) as exc:
        _print_json({"error": str(exc)})
        return 1 if isinstance(exc, InvalidArgument) else 2
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("web.app:app", host=args.host, port=args.port)
    return 0


# ── CLI ──────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Newsletter content curation")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("batches", help="List scrape batches with status counts")
    p.set_defaults(func=cmd_batches)

    p = sub.add_parser("import", help="Store a scraped batch from a JSON file")
    p.add_argument("path", help="JSON list of {title, link, summary, sourceType, sourceName}")
    p.add_argument("--name", help="Batch display name (default: timestamped)")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("merge", help="Merge two or more pending batches")
    p.add_argument("batch_ids", type=int, nargs="+", metavar="BATCH_ID")
    p.add_argument("--preview", action="store_true", help="Only report what would happen")
    p.set_defaults(func=cmd_merge)

    p = sub.add_parser("serve", help="Run the admin API")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging()
    if args.command != "serve":
        init_db()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
