from __future__ import annotations

import copy
import itertools
import threading
from typing import Dict, List, Optional, Tuple

from careerhub.job_import.errors import DuplicateQueueItemError, PersistenceError, QueueItemNotFoundError
from careerhub.job_import.models import QUEUE_STATUSES, ImportQueueItem, JobListing, utcnow


class QueueStore:
    """Persistence contract for import queue items (unique by URL)."""

    def get(self, item_id: str) -> Optional[ImportQueueItem]:
        raise NotImplementedError

    def find_by_url(self, url: str) -> Optional[ImportQueueItem]:
        raise NotImplementedError

    def create(self, item: ImportQueueItem) -> ImportQueueItem:
        raise NotImplementedError

    def list_pending(self, limit: int) -> List[ImportQueueItem]:
        raise NotImplementedError

    def claim(self, item_id: str) -> bool:
        """Atomically move a Pending item to Processing; False when it is no longer Pending."""
        raise NotImplementedError

    def save(self, item: ImportQueueItem) -> None:
        raise NotImplementedError

    def count_by_status(self) -> Dict[str, int]:
        raise NotImplementedError

    def recent(self, limit: int) -> List[ImportQueueItem]:
        raise NotImplementedError

    def reset_failed(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        return None


class ListingStore:
    """Persistence contract for job listings."""

    def get(self, listing_id: str) -> Optional[JobListing]:
        raise NotImplementedError

    def find_by_url(self, url: str) -> Optional[JobListing]:
        raise NotImplementedError

    def find_by_title_company(self, title: str, company: str) -> Optional[JobListing]:
        raise NotImplementedError

    def create(self, listing: JobListing) -> JobListing:
        raise NotImplementedError

    def update(self, listing: JobListing) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class InMemoryQueueStore(QueueStore):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._items: Dict[str, Tuple[int, ImportQueueItem]] = {}
        self._by_url: Dict[str, str] = {}

    @property
    def items(self) -> List[ImportQueueItem]:
        with self._lock:
            return [copy.deepcopy(item) for _seq, item in sorted(self._items.values(), key=lambda e: e[0])]

    def get(self, item_id: str) -> Optional[ImportQueueItem]:
        with self._lock:
            entry = self._items.get(item_id)
            return copy.deepcopy(entry[1]) if entry else None

    def find_by_url(self, url: str) -> Optional[ImportQueueItem]:
        with self._lock:
            item_id = self._by_url.get(url)
            return self.get(item_id) if item_id else None

    def create(self, item: ImportQueueItem) -> ImportQueueItem:
        with self._lock:
            if item.url in self._by_url:
                raise DuplicateQueueItemError(item.url)
            self._items[item.id] = (next(self._seq), copy.deepcopy(item))
            self._by_url[item.url] = item.id
            return copy.deepcopy(item)

    def list_pending(self, limit: int) -> List[ImportQueueItem]:
        with self._lock:
            pending = [e for e in self._items.values() if e[1].status == "Pending"]
            pending.sort(key=lambda e: (e[1].created_at, e[0]))
            return [copy.deepcopy(item) for _seq, item in pending[: max(0, limit)]]

    def claim(self, item_id: str) -> bool:
        with self._lock:
            entry = self._items.get(item_id)
            if entry is None or entry[1].status != "Pending":
                return False
            entry[1].status = "Processing"
            entry[1].updated_at = utcnow()
            return True

    def save(self, item: ImportQueueItem) -> None:
        with self._lock:
            entry = self._items.get(item.id)
            if entry is None:
                raise QueueItemNotFoundError(item.id)
            owner = self._by_url.get(item.url)
            if owner is not None and owner != item.id:
                raise PersistenceError(f"URL belongs to another queue item: {item.url}")
            if entry[1].url != item.url:
                self._by_url.pop(entry[1].url, None)
                self._by_url[item.url] = item.id
            item.updated_at = utcnow()
            self._items[item.id] = (entry[0], copy.deepcopy(item))

    def count_by_status(self) -> Dict[str, int]:
        with self._lock:
            counts = {status: 0 for status in QUEUE_STATUSES}
            for _seq, item in self._items.values():
                counts[item.status] = counts.get(item.status, 0) + 1
            return counts

    def recent(self, limit: int) -> List[ImportQueueItem]:
        with self._lock:
            entries = sorted(self._items.values(), key=lambda e: (e[1].created_at, e[0]), reverse=True)
            return [copy.deepcopy(item) for _seq, item in entries[: max(0, limit)]]

    def reset_failed(self) -> int:
        with self._lock:
            reset = 0
            now = utcnow()
            for _seq, item in self._items.values():
                if item.status != "Failed":
                    continue
                item.status = "Pending"
                item.error = None
                item.updated_at = now
                reset += 1
            return reset


class InMemoryListingStore(ListingStore):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: Dict[str, JobListing] = {}

    @property
    def items(self) -> List[JobListing]:
        with self._lock:
            return [copy.deepcopy(listing) for listing in self._items.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, listing_id: str) -> Optional[JobListing]:
        with self._lock:
            listing = self._items.get(listing_id)
            return copy.deepcopy(listing) if listing else None

    def find_by_url(self, url: str) -> Optional[JobListing]:
        with self._lock:
            for listing in self._items.values():
                if listing.external_url == url:
                    return copy.deepcopy(listing)
            return None

    def find_by_title_company(self, title: str, company: str) -> Optional[JobListing]:
        with self._lock:
            for listing in self._items.values():
                if listing.title == title and listing.company == company:
                    return copy.deepcopy(listing)
            return None

    def create(self, listing: JobListing) -> JobListing:
        with self._lock:
            if listing.id in self._items:
                raise PersistenceError(f"Listing already exists: {listing.id}")
            self._items[listing.id] = copy.deepcopy(listing)
            return copy.deepcopy(listing)

    def update(self, listing: JobListing) -> None:
        with self._lock:
            if listing.id not in self._items:
                raise PersistenceError(f"Listing not found: {listing.id}")
            self._items[listing.id] = copy.deepcopy(listing)
