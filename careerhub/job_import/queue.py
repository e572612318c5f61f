from __future__ import annotations

import logging
from typing import Iterable, Optional

from careerhub.job_import.errors import DuplicateQueueItemError, InvalidTransitionError, QueueItemNotFoundError
from careerhub.job_import.logging_utils import LOGGER_NAME, log_event
from careerhub.job_import.models import EnqueueResult, ImportQueueItem, QueueStatusReport, RetryAcknowledgement
from careerhub.job_import.normalize import canonicalize_url
from careerhub.job_import.stores import ListingStore, QueueStore

LOGGER = logging.getLogger(LOGGER_NAME)


class ImportQueue:
    """Operator-facing queue actions: enqueue, status, bulk retry and re-scrape."""

    def __init__(self, *, queue_store: QueueStore, listing_store: ListingStore, recent_limit: int = 20) -> None:
        self._queue = queue_store
        self._listings = listing_store
        self._recent_limit = max(1, int(recent_limit))

    def enqueue(self, urls: Iterable[str], submitted_by: str, prefer_ai: bool = True) -> EnqueueResult:
        added = 0
        skipped = 0
        for raw_url in urls:
            if not raw_url or not raw_url.strip():
                continue
            url = canonicalize_url(raw_url)

            if self._queue.find_by_url(url) is not None or self._listings.find_by_url(url) is not None:
                skipped += 1
                continue

            try:
                self._queue.create(ImportQueueItem(url=url, submitted_by=submitted_by, prefer_ai=prefer_ai))
            except DuplicateQueueItemError:
                # Another caller queued the same URL between the lookup and the insert.
                skipped += 1
                continue
            added += 1

        log_event(
            LOGGER,
            logging.INFO,
            "import_enqueued",
            submitted_by=submitted_by,
            prefer_ai=prefer_ai,
            added=added,
            skipped=skipped,
        )
        return EnqueueResult(added=added, skipped=skipped)

    def status(self, recent_limit: Optional[int] = None) -> QueueStatusReport:
        limit = self._recent_limit if recent_limit is None else max(0, int(recent_limit))
        return QueueStatusReport(counts=self._queue.count_by_status(), recent=self._queue.recent(limit))

    def retry_failed(self) -> RetryAcknowledgement:
        reset = self._queue.reset_failed()
        log_event(LOGGER, logging.INFO, "queue_retry_failed", reset=reset)
        return RetryAcknowledgement(reset=reset)

    def rescrape(self, item_id: str) -> ImportQueueItem:
        item = self._queue.get(item_id)
        if item is None:
            raise QueueItemNotFoundError(item_id)
        if item.status == "Processing":
            raise InvalidTransitionError(item_id, item.status, "re-scrape")

        previous = item.status
        item.status = "Pending"
        item.force_update = True
        item.error = None
        item.note = None
        item.duplicate = False
        self._queue.save(item)

        log_event(LOGGER, logging.INFO, "queue_rescrape", item_id=item.id, url=item.url, previous_status=previous)
        return item
