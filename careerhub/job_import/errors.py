from __future__ import annotations

from typing import Optional


class JobImportError(RuntimeError):
    pass


class FetchError(JobImportError):
    def __init__(self, url: str, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(JobImportError):
    """AI extraction failed; callers recover with heuristic extraction."""


class PersistenceError(JobImportError):
    pass


class DuplicateQueueItemError(PersistenceError):
    def __init__(self, url: str) -> None:
        super().__init__(f"URL already queued: {url}")
        self.url = url


class QueueItemNotFoundError(JobImportError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Import queue item not found: {item_id}")
        self.item_id = item_id


class InvalidTransitionError(JobImportError):
    def __init__(self, item_id: str, status: str, action: str) -> None:
        super().__init__(f"Cannot {action} item {item_id} while it is {status}")
        self.item_id = item_id
        self.status = status
        self.action = action
