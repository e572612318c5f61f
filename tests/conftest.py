from __future__ import annotations

import pytest

from careerhub.job_import.stores import InMemoryListingStore, InMemoryQueueStore
from tests.helpers.job_import import PageServer, make_fetcher


@pytest.fixture
def queue_store() -> InMemoryQueueStore:
    return InMemoryQueueStore()


@pytest.fixture
def listing_store() -> InMemoryListingStore:
    return InMemoryListingStore()


@pytest.fixture
def page_server() -> PageServer:
    return PageServer()


@pytest.fixture
def fetcher(page_server: PageServer):
    f = make_fetcher(page_server)
    try:
        yield f
    finally:
        f.close()
