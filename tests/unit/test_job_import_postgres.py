from __future__ import annotations

import psycopg2
import pytest

from careerhub.config.settings import WarehouseSettings
from careerhub.job_import import postgres
from careerhub.job_import.errors import DuplicateQueueItemError, PersistenceError, QueueItemNotFoundError
from careerhub.job_import.models import Applicant, ImportQueueItem, JobListing, RequiredSkill, utcnow


class DummyCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = conn.rowcount

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql, params=None):
        self._conn.executed.append((sql, params))
        if self._conn.error is not None:
            raise self._conn.error

    def fetchone(self):
        return self._conn.rows.pop(0) if self._conn.rows else None

    def fetchall(self):
        rows, self._conn.rows = self._conn.rows, []
        return rows


class DummyConnection:
    def __init__(self, rows=None, rowcount=1, error=None):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.error = error
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, cursor_factory=None):
        return DummyCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


def _queue_row(**overrides):
    now = utcnow()
    row = {
        "id": "item-1",
        "url": "https://jobs.example.com/1",
        "prefer_ai": True,
        "force_update": False,
        "status": "Pending",
        "error": None,
        "note": None,
        "duplicate": False,
        "resulting_listing_id": None,
        "submitted_by": "user-1",
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


def test_connect_requires_user():
    with pytest.raises(EnvironmentError, match="WAREHOUSE_USER"):
        postgres.connect(WarehouseSettings(user=""))


def test_ensure_schema_runs_ddl_and_commits():
    conn = DummyConnection()
    postgres.ensure_schema(conn, "job_import")

    sql, _ = conn.executed[0]
    assert "CREATE TABLE IF NOT EXISTS job_import.import_queue" in sql
    assert "CREATE TABLE IF NOT EXISTS job_import.job_listings" in sql
    assert conn.commits == 1


def test_ensure_schema_rejects_unsafe_schema_names():
    with pytest.raises(ValueError):
        postgres.ensure_schema(DummyConnection(), "job_import; DROP TABLE x")


class TestPostgresQueueStore:
    def test_get_maps_row_to_item(self):
        store = postgres.PostgresQueueStore(DummyConnection(rows=[_queue_row(status="Failed", error="boom")]))
        item = store.get("item-1")

        assert item.id == "item-1"
        assert item.status == "Failed"
        assert item.error == "boom"
        assert item.can_retry is True

    def test_create_conflict_raises_duplicate(self):
        store = postgres.PostgresQueueStore(DummyConnection(rows=[]))

        with pytest.raises(DuplicateQueueItemError):
            store.create(ImportQueueItem(url="https://jobs.example.com/1", submitted_by="user-1"))

    def test_claim_uses_conditional_update(self):
        conn = DummyConnection(rows=[{"id": "item-1"}])
        store = postgres.PostgresQueueStore(conn)

        assert store.claim("item-1") is True
        assert store.claim("item-1") is False
        sql, params = conn.executed[0]
        assert "status = 'Pending'" in sql
        assert params == ("item-1",)

    def test_save_missing_row_raises_not_found(self):
        store = postgres.PostgresQueueStore(DummyConnection(rowcount=0))

        with pytest.raises(QueueItemNotFoundError):
            store.save(ImportQueueItem(url="https://jobs.example.com/1", submitted_by="user-1"))

    def test_count_by_status_fills_missing_states(self):
        store = postgres.PostgresQueueStore(DummyConnection(rows=[{"status": "Failed", "n": 3}]))

        assert store.count_by_status() == {"Pending": 0, "Processing": 0, "Completed": 0, "Failed": 3}

    def test_reset_failed_returns_rowcount(self):
        store = postgres.PostgresQueueStore(DummyConnection(rowcount=4))
        assert store.reset_failed() == 4

    def test_driver_errors_are_wrapped_and_rolled_back(self):
        conn = DummyConnection(error=psycopg2.OperationalError("server closed the connection"))
        store = postgres.PostgresQueueStore(conn)

        with pytest.raises(PersistenceError, match="server closed the connection"):
            store.list_pending(5)
        assert conn.rollbacks == 1
        assert conn.commits == 0


class TestPostgresListingStore:
    def test_listing_document_round_trip(self):
        listing = JobListing(
            title="Dev",
            company="Acme",
            description="d",
            required_skills=[RequiredSkill("Docker", 70)],
            applicants=[Applicant(user_id="u-1", applied_at=utcnow())],
            external_url="https://jobs.example.com/1",
        )
        conn = DummyConnection(rows=[{"document": listing.as_dict()}])
        store = postgres.PostgresListingStore(conn)

        found = store.find_by_url("https://jobs.example.com/1")

        assert found == listing
        sql, params = conn.executed[0]
        assert "external_url = %s" in sql
        assert params == ("https://jobs.example.com/1",)

    def test_create_stores_lifted_columns(self):
        conn = DummyConnection()
        store = postgres.PostgresListingStore(conn)
        listing = JobListing(title="Dev", company="Acme", description="d")

        store.create(listing)

        _sql, params = conn.executed[0]
        assert params[:5] == (listing.id, None, "Dev", "Acme", "Draft")
        assert conn.commits == 1
