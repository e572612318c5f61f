from __future__ import annotations

import logging
import time
import uuid
from typing import Literal, Optional

from careerhub.config.settings import Settings
from careerhub.job_import.errors import FetchError
from careerhub.job_import.extractors.ai import AIExtractionResult, AIExtractor, OpenAIJobExtractor
from careerhub.job_import.extractors.basic import basic_extract
from careerhub.job_import.http import JobPageFetcher
from careerhub.job_import.logging_utils import LOGGER_NAME, log_event
from careerhub.job_import.models import BatchResult, ExtractedJobFields, ImportQueueItem, JobListing
from careerhub.job_import.stores import ListingStore, QueueStore

LOGGER = logging.getLogger(LOGGER_NAME)

DEGRADED_EXTRACTION_NOTE = "\n\n[Note: AI extraction failed, basic details only.]"
DUPLICATE_URL_NOTE = "Duplicate: Job with this URL already exists."
DUPLICATE_TITLE_COMPANY_NOTE = "Duplicate: Job with this Title and Company already exists."

ItemOutcome = Literal["succeeded", "duplicate"]


class ImportProcessor:
    """
    Runs bounded batches of Pending queue items through
    claim -> duplicate check -> fetch -> extract -> create/update listing.

    Items are processed one at a time. Every per-item failure is recorded on
    the item as Failed; only failures to list pending items escape a batch.
    """

    def __init__(
        self,
        *,
        queue_store: QueueStore,
        listing_store: ListingStore,
        fetcher: JobPageFetcher,
        ai_extractor: Optional[AIExtractor] = None,
        batch_size: int = 5,
    ) -> None:
        self._queue = queue_store
        self._listings = listing_store
        self._fetcher = fetcher
        self._ai = ai_extractor
        self._batch_size = max(1, int(batch_size))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        queue_store: QueueStore,
        listing_store: ListingStore,
        fetcher: Optional[JobPageFetcher] = None,
    ) -> "ImportProcessor":
        ai_extractor = OpenAIJobExtractor.from_settings(settings.openai) if settings.ai_available else None
        return cls(
            queue_store=queue_store,
            listing_store=listing_store,
            fetcher=fetcher or JobPageFetcher.from_settings(settings.job_import),
            ai_extractor=ai_extractor,
            batch_size=settings.job_import.batch_size,
        )

    def run_batch(self, *, run_id: Optional[str] = None) -> BatchResult:
        run_id = run_id or str(uuid.uuid4())
        result = BatchResult(run_id=run_id)
        start = time.perf_counter()

        pending = self._queue.list_pending(self._batch_size)
        log_event(LOGGER, logging.INFO, "batch_start", run_id=run_id, pending=len(pending))

        for item in pending:
            try:
                if not self._queue.claim(item.id):
                    log_event(LOGGER, logging.INFO, "item_claim_skipped", run_id=run_id, item_id=item.id, url=item.url)
                    continue
                item.status = "Processing"
                outcome = self._process_item(item, run_id=run_id)
            except FetchError as e:
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "item_fetch_failed",
                    run_id=run_id,
                    item_id=item.id,
                    url=e.url,
                    status_code=e.status_code,
                    error=str(e),
                )
                self._mark_failed(item, str(e), run_id=run_id)
                result.failed += 1
                continue
            except Exception as e:
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "item_failed",
                    run_id=run_id,
                    item_id=item.id,
                    url=item.url,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                self._mark_failed(item, str(e) or type(e).__name__, run_id=run_id)
                result.failed += 1
                continue

            if outcome == "duplicate":
                result.duplicates += 1
            else:
                result.succeeded += 1

        result.duration_s = time.perf_counter() - start
        log_event(
            LOGGER,
            logging.INFO,
            "batch_done",
            run_id=run_id,
            succeeded=result.succeeded,
            failed=result.failed,
            duplicates=result.duplicates,
            duration_s=round(result.duration_s, 3),
        )
        return result

    def _process_item(self, item: ImportQueueItem, *, run_id: str) -> ItemOutcome:
        existing = self._listings.find_by_url(item.url)
        if existing is not None and not item.force_update:
            self._mark_duplicate(item, existing, DUPLICATE_URL_NOTE, run_id=run_id)
            return "duplicate"

        page = self._fetcher.fetch(item.url)
        fields = self._extract(item, page.text, run_id=run_id)

        if existing is None and not item.force_update:
            twin = self._listings.find_by_title_company(fields.title, fields.company)
            if twin is not None:
                self._mark_duplicate(item, twin, DUPLICATE_TITLE_COMPANY_NOTE, run_id=run_id)
                return "duplicate"

        if existing is not None:
            existing.apply_extracted(fields)
            self._listings.update(existing)
            listing = existing
            event = "item_updated"
        else:
            listing = JobListing.from_extracted(fields, external_url=item.url, posted_by=item.submitted_by)
            self._listings.create(listing)
            event = "item_created"

        item.status = "Completed"
        item.resulting_listing_id = listing.id
        item.error = None
        item.note = None
        item.duplicate = False
        self._queue.save(item)

        log_event(
            LOGGER,
            logging.INFO,
            event,
            run_id=run_id,
            item_id=item.id,
            url=item.url,
            listing_id=listing.id,
            title=listing.title,
            company=listing.company,
        )
        return "succeeded"

    def _extract(self, item: ImportQueueItem, html: str, *, run_id: str) -> ExtractedJobFields:
        if not item.prefer_ai:
            return basic_extract(html)

        outcome = self._run_ai(html)
        if outcome.ok and outcome.fields is not None:
            return outcome.fields

        log_event(
            LOGGER,
            logging.WARNING,
            "ai_extraction_failed",
            run_id=run_id,
            item_id=item.id,
            url=item.url,
            reason=outcome.reason,
        )
        fields = basic_extract(html)
        fields.description += DEGRADED_EXTRACTION_NOTE
        return fields

    def _run_ai(self, html: str) -> AIExtractionResult:
        if self._ai is None:
            return AIExtractionResult.failure("AI extractor not configured")
        try:
            return self._ai.extract(html)
        except Exception as e:
            return AIExtractionResult.failure(f"{type(e).__name__}: {e}")

    def _mark_duplicate(self, item: ImportQueueItem, listing: JobListing, note: str, *, run_id: str) -> None:
        item.status = "Completed"
        item.duplicate = True
        item.note = note
        item.error = None
        item.resulting_listing_id = listing.id
        self._queue.save(item)
        log_event(
            LOGGER,
            logging.INFO,
            "item_duplicate",
            run_id=run_id,
            item_id=item.id,
            url=item.url,
            listing_id=listing.id,
            note=note,
        )

    def _mark_failed(self, item: ImportQueueItem, message: str, *, run_id: str) -> None:
        item.status = "Failed"
        item.error = message
        try:
            self._queue.save(item)
        except Exception as e:
            # The store itself is failing; the item stays Processing until an operator resets it.
            log_event(
                LOGGER,
                logging.ERROR,
                "item_failure_not_recorded",
                run_id=run_id,
                item_id=item.id,
                url=item.url,
                error_type=type(e).__name__,
                error=str(e),
            )
