#!/usr/bin/env python3
from __future__ import annotations

# ruff: noqa: E402
import argparse
import os
import sys
from typing import List, Optional, Sequence, Tuple

# Ensure project root is in path for local execution.
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, project_root)

from careerhub.config.settings import Settings, get_settings
from careerhub.job_import.errors import InvalidTransitionError, QueueItemNotFoundError
from careerhub.job_import.http import JobPageFetcher
from careerhub.job_import.logging_utils import configure_logging
from careerhub.job_import.models import BatchResult
from careerhub.job_import.postgres import PostgresListingStore, PostgresQueueStore, connect, ensure_schema
from careerhub.job_import.processor import ImportProcessor
from careerhub.job_import.queue import ImportQueue
from careerhub.job_import.stores import ListingStore, QueueStore
from careerhub.job_import.worker import BatchWorker


def _connect_warehouse(settings: Settings):
    return connect(settings.warehouse)


def _build_stores(conn, settings: Settings) -> Tuple[QueueStore, ListingStore]:
    schema = settings.warehouse.schema_name
    return PostgresQueueStore(conn, schema=schema), PostgresListingStore(conn, schema=schema)


def _build_processor(
    settings: Settings, queue_store: QueueStore, listing_store: ListingStore, fetcher: JobPageFetcher
) -> ImportProcessor:
    return ImportProcessor.from_settings(
        settings, queue_store=queue_store, listing_store=listing_store, fetcher=fetcher
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Queue job-posting URLs and import them as draft listings.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_enqueue = sub.add_parser("enqueue", help="Add URLs to the import queue.")
    p_enqueue.add_argument("urls", nargs="+", metavar="URL")
    p_enqueue.add_argument("--no-ai", action="store_true", help="Use basic extraction only for these URLs.")
    p_enqueue.add_argument("--submitted-by", help="User id recorded on the queue items (default: JOB_IMPORT_SUBMITTED_BY).")

    p_run = sub.add_parser("run", help="Process one batch of Pending items.")
    p_run.add_argument("--drain", action="store_true", help="Keep running batches until the queue is empty.")
    p_run.add_argument("--max-batches", type=int, default=100, help="Upper bound on batches with --drain.")

    p_status = sub.add_parser("status", help="Show queue counts and the most recent items.")
    p_status.add_argument("--limit", type=int, help="Number of recent items to show (default: JOB_IMPORT_RECENT_LIMIT).")

    sub.add_parser("retry", help="Reset every Failed item to Pending.")

    p_rescrape = sub.add_parser("rescrape", help="Re-import one item, overwriting the existing listing.")
    p_rescrape.add_argument("item_id")

    sub.add_parser("init-db", help="Create the queue and listing tables if missing.")
    return parser


def _print_batch(batch: BatchResult) -> None:
    print(
        f"Batch run_id={batch.run_id} succeeded={batch.succeeded} failed={batch.failed} "
        f"duplicates={batch.duplicates} duration_s={batch.duration_s:.2f}"
    )


def _run(settings: Settings, queue_store: QueueStore, listing_store: ListingStore, args: argparse.Namespace) -> int:
    with JobPageFetcher.from_settings(settings.job_import) as fetcher:
        processor = _build_processor(settings, queue_store, listing_store, fetcher)
        with BatchWorker(processor) as worker:
            if args.drain:
                batches: List[BatchResult] = worker.drain(max_batches=args.max_batches)
            else:
                batches = [worker.submit().result()]

    for batch in batches:
        _print_batch(batch)
    total_failed = sum(b.failed for b in batches)
    print(
        f"Run summary batches={len(batches)} succeeded={sum(b.succeeded for b in batches)} "
        f"failed={total_failed} duplicates={sum(b.duplicates for b in batches)}"
    )
    return 0 if total_failed == 0 else 1


def _status(queue: ImportQueue, limit: Optional[int]) -> int:
    report = queue.status(recent_limit=limit)
    print(" ".join(f"{status}={count}" for status, count in report.counts.items()))
    for item in report.recent:
        line = f"{item.id} {item.status:<10} {item.url}"
        if item.error:
            line += f" error={item.error!r}"
        if item.note:
            line += f" note={item.note!r}"
        print(line)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    conn = _connect_warehouse(settings)
    try:
        if args.command == "init-db":
            ensure_schema(conn, settings.warehouse.schema_name)
            print(f"Schema ready: {settings.warehouse.schema_name}")
            return 0

        queue_store, listing_store = _build_stores(conn, settings)
        queue = ImportQueue(
            queue_store=queue_store,
            listing_store=listing_store,
            recent_limit=settings.job_import.recent_limit,
        )

        if args.command == "enqueue":
            result = queue.enqueue(
                args.urls,
                submitted_by=args.submitted_by or settings.job_import.submitted_by,
                prefer_ai=settings.job_import.prefer_ai and not args.no_ai,
            )
            print(f"Enqueued added={result.added} skipped={result.skipped}")
            return 0

        if args.command == "run":
            return _run(settings, queue_store, listing_store, args)

        if args.command == "status":
            return _status(queue, args.limit)

        if args.command == "retry":
            ack = queue.retry_failed()
            print(f"{ack.message}: {ack.reset}")
            return 0

        if args.command == "rescrape":
            try:
                item = queue.rescrape(args.item_id)
            except (QueueItemNotFoundError, InvalidTransitionError) as e:
                print(str(e))
                return 2
            print(f"Queued for re-scrape: {item.id} {item.url}")
            return 0

        print(f"Unknown command: {args.command}")
        return 2
    finally:
        conn.close()


if __name__ == "__main__":
    raise SystemExit(main())
