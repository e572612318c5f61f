"""Job import pipeline: queue job-posting URLs and turn them into draft listings.

This package provides:
- A URL import queue with status, bulk retry and re-scrape actions
- A batch processor (claim -> fetch -> extract -> create/update listing)
- AI-first extraction with a structured-data and heuristic fallback
- In-memory and Postgres stores for queue items and listings
"""

from careerhub.job_import.models import (
    BatchResult,
    EnqueueResult,
    ExtractedJobFields,
    ImportQueueItem,
    JobListing,
    QueueStatusReport,
    RequiredSkill,
    RetryAcknowledgement,
)
from careerhub.job_import.processor import ImportProcessor
from careerhub.job_import.queue import ImportQueue
from careerhub.job_import.worker import BatchWorker

__all__ = [
    "BatchResult",
    "BatchWorker",
    "EnqueueResult",
    "ExtractedJobFields",
    "ImportProcessor",
    "ImportQueue",
    "ImportQueueItem",
    "JobListing",
    "QueueStatusReport",
    "RequiredSkill",
    "RetryAcknowledgement",
]
