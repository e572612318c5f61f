from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from careerhub.job_import.logging_utils import LOGGER_NAME, log_event
from careerhub.job_import.models import BatchResult
from careerhub.job_import.processor import ImportProcessor

LOGGER = logging.getLogger(LOGGER_NAME)


class BatchWorker:
    """
    Runs processor batches off the caller's thread.

    At most one batch is in flight: a trigger that arrives while a batch is
    running gets the running batch's Future instead of starting a second one.
    """

    def __init__(self, processor: ImportProcessor) -> None:
        self._processor = processor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="job-import")
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    def submit(self) -> "Future[BatchResult]":
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                log_event(LOGGER, logging.DEBUG, "batch_trigger_coalesced")
                return self._inflight
            self._inflight = self._executor.submit(self._processor.run_batch)
            return self._inflight

    def drain(self, *, max_batches: int = 100) -> List[BatchResult]:
        """Trigger batches back to back until one processes nothing."""
        results: List[BatchResult] = []
        for _ in range(max(1, int(max_batches))):
            batch = self.submit().result()
            results.append(batch)
            if batch.processed == 0:
                break
        return results

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BatchWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
