#!/usr/bin/env python
"""
Rewrite legacy-format asset references from the command line.

Usage:
    python scripts/rewrite_references.py run --dry-run
    python scripts/rewrite_references.py run
    python scripts/rewrite_references.py reset
    python scripts/rewrite_references.py rollback
    python scripts/rewrite_references.py log

Connection settings come from the MONGO_* variables (libs.models.MongoSettings),
or from MONGODB_URI / MONGODB_DB when set; engine settings from REWRITE_*
environment variables (see libs.models.config.RewriteSettings).
"""

import argparse
import getpass
import json
import logging
import os
import sys

from pymongo import MongoClient

from libs.jobs import RewriteEngine, RewriteJobError
from libs.models import JobResponse, MongoSettings, RewriteSettings


def get_mongo_client() -> MongoClient:
    """MongoDB client from MONGODB_URI, else from the MONGO_* settings."""
    uri = os.getenv("MONGODB_URI")
    if uri:
        return MongoClient(uri)
    settings = MongoSettings()
    return MongoClient(settings.connection_string)


def print_progress(response: JobResponse) -> None:
    line = f"[{response.stage.value}] {response.message}"
    if response.total:
        line += f" ({response.processed}/{response.total})"
    print(line)


def print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run_command(engine: RewriteEngine, args: argparse.Namespace) -> int:
    final = engine.run_to_completion(
        args.operator,
        dry_run=args.dry_run,
        on_progress=print_progress,
        max_calls=args.max_calls,
    )
    if final.continue_:
        print("Stopped before completion; run 'advance' again to resume.")
        return 0
    for sample in final.samples:
        print(f"  {sample['collection']}:{sample['record_id']}:{sample['field']}")
        print(f"    - {sample['before']}")
        print(f"    + {sample['after']}")
    return 0


def advance_command(engine: RewriteEngine, args: argparse.Namespace) -> int:
    response = engine.advance(args.operator)
    print_progress(response)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Rewrite legacy asset references")
    parser.add_argument(
        "--db",
        default=os.getenv("MONGODB_DB") or os.getenv("MONGO_DATABASE", "cms"),
        help="Database name",
    )
    parser.add_argument(
        "--operator",
        default=os.getenv("REWRITE_OPERATOR", getpass.getuser()),
        help="Operator identity scoping the job state",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Start a job and run it to completion")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing anything",
    )
    run_parser.add_argument(
        "--max-calls", type=int, default=None, help="Stop after this many batches"
    )
    subparsers.add_parser("advance", help="Run one batch of an existing job")
    subparsers.add_parser("reset", help="Delete the current job state")
    subparsers.add_parser("rollback", help="Revert the last completed live run")
    subparsers.add_parser("log", help="Show the latest run summary and changes")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client = get_mongo_client()
    engine = RewriteEngine(client[args.db], RewriteSettings())
    engine.ensure_indexes()
    print(f"Target database: {args.db}")

    try:
        if args.command == "run":
            return run_command(engine, args)
        if args.command == "advance":
            return advance_command(engine, args)
        if args.command == "reset":
            print(engine.reset(args.operator).message)
        elif args.command == "rollback":
            response = engine.rollback()
            print(response.message)
        elif args.command == "log":
            print_json(engine.view_log().model_dump(mode="json"))
    except RewriteJobError as e:
        print_json(e.to_payload())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
