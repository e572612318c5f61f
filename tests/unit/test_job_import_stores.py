from __future__ import annotations

from datetime import timedelta

import pytest

from careerhub.job_import.errors import DuplicateQueueItemError, PersistenceError, QueueItemNotFoundError
from careerhub.job_import.models import ImportQueueItem, JobListing, utcnow


def _item(url: str, **kwargs) -> ImportQueueItem:
    return ImportQueueItem(url=url, submitted_by="user-1", **kwargs)


class TestInMemoryQueueStore:
    def test_create_rejects_duplicate_url(self, queue_store):
        queue_store.create(_item("https://jobs.example.com/1"))
        with pytest.raises(DuplicateQueueItemError):
            queue_store.create(_item("https://jobs.example.com/1"))

    def test_claim_is_conditional_on_pending(self, queue_store):
        item = queue_store.create(_item("https://jobs.example.com/1"))

        assert queue_store.claim(item.id) is True
        assert queue_store.claim(item.id) is False
        assert queue_store.get(item.id).status == "Processing"

    def test_claim_unknown_item_is_false(self, queue_store):
        assert queue_store.claim("missing") is False

    def test_list_pending_orders_by_creation_and_limits(self, queue_store):
        now = utcnow()
        late = queue_store.create(_item("https://jobs.example.com/late", created_at=now + timedelta(seconds=5)))
        early = queue_store.create(_item("https://jobs.example.com/early", created_at=now))
        tie = queue_store.create(_item("https://jobs.example.com/tie", created_at=now))
        done = queue_store.create(_item("https://jobs.example.com/done", created_at=now - timedelta(seconds=5)))
        done.status = "Completed"
        queue_store.save(done)

        assert [i.id for i in queue_store.list_pending(10)] == [early.id, tie.id, late.id]
        assert [i.id for i in queue_store.list_pending(2)] == [early.id, tie.id]

    def test_returned_items_are_copies(self, queue_store):
        item = queue_store.create(_item("https://jobs.example.com/1"))
        fetched = queue_store.get(item.id)
        fetched.status = "Failed"

        assert queue_store.get(item.id).status == "Pending"

    def test_save_unknown_item_raises(self, queue_store):
        with pytest.raises(QueueItemNotFoundError):
            queue_store.save(_item("https://jobs.example.com/1"))


class TestInMemoryListingStore:
    def test_lookups_by_url_and_title_company(self, listing_store):
        listing = listing_store.create(
            JobListing(title="Dev", company="Acme", description="d", external_url="https://jobs.example.com/1")
        )

        assert listing_store.find_by_url("https://jobs.example.com/1").id == listing.id
        assert listing_store.find_by_title_company("Dev", "Acme").id == listing.id
        assert listing_store.find_by_title_company("Dev", "Globex") is None
        assert listing_store.find_by_url("https://jobs.example.com/2") is None

    def test_update_requires_existing_listing(self, listing_store):
        with pytest.raises(PersistenceError):
            listing_store.update(JobListing(title="Dev", company="Acme", description="d"))

    def test_create_rejects_existing_id(self, listing_store):
        listing = listing_store.create(JobListing(title="Dev", company="Acme", description="d"))
        with pytest.raises(PersistenceError):
            listing_store.create(listing)
