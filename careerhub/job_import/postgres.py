"""Postgres-backed queue and listing stores.

Queue items live in ``<schema>.import_queue`` (one row per URL). Listings are
stored as ``jsonb`` documents in ``<schema>.job_listings`` with the duplicate
detection keys (``external_url``, ``title``/``company``) lifted into indexed
columns.

Credentials come from ``WarehouseSettings`` (``WAREHOUSE_HOST``,
``WAREHOUSE_PORT``, ``WAREHOUSE_DB``, ``WAREHOUSE_USER``,
``WAREHOUSE_PASSWORD``). A missing user raises immediately rather than
connecting to a misconfigured stack.
"""
from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

import psycopg2
import psycopg2.extras

from careerhub.config.settings import WarehouseSettings
from careerhub.job_import.errors import DuplicateQueueItemError, PersistenceError, QueueItemNotFoundError
from careerhub.job_import.models import (
    QUEUE_STATUSES,
    Applicant,
    ImportQueueItem,
    JobListing,
    RequiredSkill,
    utcnow,
)
from careerhub.job_import.stores import ListingStore, QueueStore

log = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_QUEUE_COLUMNS = (
    "id, url, prefer_ai, force_update, status, error, note, duplicate, "
    "resulting_listing_id, submitted_by, created_at, updated_at"
)


# ---------------------------------------------------------------------------
# Connection helpers
# ---------------------------------------------------------------------------

def connect(settings: WarehouseSettings):
    if not settings.user:
        raise EnvironmentError("Postgres user not set. Configure the WAREHOUSE_USER env var.")
    return psycopg2.connect(
        host=settings.host,
        port=settings.port,
        dbname=settings.db,
        user=settings.user,
        password=settings.password,
    )


def _checked_schema(schema: str) -> str:
    if not _IDENTIFIER_RE.match(schema or ""):
        raise ValueError(f"Invalid schema name: {schema!r}")
    return schema


def ensure_schema(conn, schema: str = "job_import") -> None:
    """Idempotently create the schema, tables and indexes used by the stores."""
    schema = _checked_schema(schema)
    ddl = f"""
    CREATE SCHEMA IF NOT EXISTS {schema};
    CREATE TABLE IF NOT EXISTS {schema}.import_queue (
        id                      text        NOT NULL PRIMARY KEY,
        seq                     bigserial,
        url                     text        NOT NULL UNIQUE,
        prefer_ai               boolean     NOT NULL DEFAULT true,
        force_update            boolean     NOT NULL DEFAULT false,
        status                  text        NOT NULL DEFAULT 'Pending',
        error                   text,
        note                    text,
        duplicate               boolean     NOT NULL DEFAULT false,
        resulting_listing_id    text,
        submitted_by            text        NOT NULL,
        created_at              timestamptz NOT NULL DEFAULT now(),
        updated_at              timestamptz NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS import_queue_status_idx
        ON {schema}.import_queue (status, created_at, seq);
    CREATE TABLE IF NOT EXISTS {schema}.job_listings (
        id                      text        NOT NULL PRIMARY KEY,
        external_url            text,
        title                   text        NOT NULL,
        company                 text        NOT NULL,
        status                  text        NOT NULL,
        document                jsonb       NOT NULL,
        created_at              timestamptz NOT NULL DEFAULT now(),
        updated_at              timestamptz NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS job_listings_external_url_idx
        ON {schema}.job_listings (external_url);
    CREATE INDEX IF NOT EXISTS job_listings_title_company_idx
        ON {schema}.job_listings (title, company);
    """
    try:
        with conn.cursor() as cur:
            cur.execute(ddl)
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        raise PersistenceError(f"Failed to ensure job import schema: {e}") from e
    log.info("DDL ensured: %s.import_queue, %s.job_listings", schema, schema)


class _PostgresStore:
    def __init__(self, conn, *, schema: str = "job_import") -> None:
        self._conn = conn
        self._schema = _checked_schema(schema)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """Yield a dict cursor; commits on success, rolls back and wraps driver errors."""
        try:
            with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                yield cur
            self._conn.commit()
        except psycopg2.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"{type(self).__name__}: {e}") from e
        except Exception:
            self._conn.rollback()
            raise

    def close(self) -> None:
        self._conn.close()


# ---------------------------------------------------------------------------
# Queue store
# ---------------------------------------------------------------------------

def _queue_item_from_row(row: Mapping[str, Any]) -> ImportQueueItem:
    return ImportQueueItem(
        id=str(row["id"]),
        url=str(row["url"]),
        prefer_ai=bool(row["prefer_ai"]),
        force_update=bool(row["force_update"]),
        status=row["status"],
        error=row.get("error"),
        note=row.get("note"),
        duplicate=bool(row.get("duplicate")),
        resulting_listing_id=row.get("resulting_listing_id"),
        submitted_by=str(row["submitted_by"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresQueueStore(_PostgresStore, QueueStore):
    @property
    def _table(self) -> str:
        return f"{self._schema}.import_queue"

    def get(self, item_id: str) -> Optional[ImportQueueItem]:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM {self._table} WHERE id = %s", (item_id,))
            row = cur.fetchone()
        return _queue_item_from_row(row) if row else None

    def find_by_url(self, url: str) -> Optional[ImportQueueItem]:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM {self._table} WHERE url = %s", (url,))
            row = cur.fetchone()
        return _queue_item_from_row(row) if row else None

    def create(self, item: ImportQueueItem) -> ImportQueueItem:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._table} ({_QUEUE_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (url) DO NOTHING
                RETURNING id
                """,
                (
                    item.id,
                    item.url,
                    item.prefer_ai,
                    item.force_update,
                    item.status,
                    item.error,
                    item.note,
                    item.duplicate,
                    item.resulting_listing_id,
                    item.submitted_by,
                    item.created_at,
                    item.updated_at,
                ),
            )
            inserted = cur.fetchone()
        if inserted is None:
            raise DuplicateQueueItemError(item.url)
        return item

    def list_pending(self, limit: int) -> List[ImportQueueItem]:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {_QUEUE_COLUMNS} FROM {self._table} "
                "WHERE status = 'Pending' ORDER BY created_at, seq LIMIT %s",
                (max(0, int(limit)),),
            )
            rows = cur.fetchall()
        return [_queue_item_from_row(r) for r in rows]

    def claim(self, item_id: str) -> bool:
        with self._cursor() as cur:
            cur.execute(
                f"UPDATE {self._table} SET status = 'Processing', updated_at = now() "
                "WHERE id = %s AND status = 'Pending' RETURNING id",
                (item_id,),
            )
            claimed = cur.fetchone()
        return claimed is not None

    def save(self, item: ImportQueueItem) -> None:
        item.updated_at = utcnow()
        with self._cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table} SET
                    url = %s,
                    prefer_ai = %s,
                    force_update = %s,
                    status = %s,
                    error = %s,
                    note = %s,
                    duplicate = %s,
                    resulting_listing_id = %s,
                    updated_at = %s
                WHERE id = %s
                """,
                (
                    item.url,
                    item.prefer_ai,
                    item.force_update,
                    item.status,
                    item.error,
                    item.note,
                    item.duplicate,
                    item.resulting_listing_id,
                    item.updated_at,
                    item.id,
                ),
            )
            updated = cur.rowcount
        if updated == 0:
            raise QueueItemNotFoundError(item.id)

    def count_by_status(self) -> Dict[str, int]:
        with self._cursor() as cur:
            cur.execute(f"SELECT status, count(*) AS n FROM {self._table} GROUP BY status")
            rows = cur.fetchall()
        counts = {status: 0 for status in QUEUE_STATUSES}
        for row in rows:
            counts[str(row["status"])] = int(row["n"])
        return counts

    def recent(self, limit: int) -> List[ImportQueueItem]:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {_QUEUE_COLUMNS} FROM {self._table} ORDER BY created_at DESC, seq DESC LIMIT %s",
                (max(0, int(limit)),),
            )
            rows = cur.fetchall()
        return [_queue_item_from_row(r) for r in rows]

    def reset_failed(self) -> int:
        with self._cursor() as cur:
            cur.execute(
                f"UPDATE {self._table} SET status = 'Pending', error = NULL, updated_at = now() "
                "WHERE status = 'Failed'"
            )
            reset = cur.rowcount
        return int(reset or 0)


# ---------------------------------------------------------------------------
# Listing store
# ---------------------------------------------------------------------------

def _parse_ts(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def listing_from_document(doc: Mapping[str, Any]) -> JobListing:
    data = dict(doc)
    data["required_skills"] = [
        RequiredSkill(name=s["name"], level=int(s["level"])) for s in data.get("required_skills") or []
    ]
    data["applicants"] = [
        Applicant(
            user_id=str(a["user_id"]),
            status=a.get("status") or "Applied",
            applied_at=_parse_ts(a.get("applied_at")),
            resume_url=a.get("resume_url"),
        )
        for a in data.get("applicants") or []
    ]
    data["created_at"] = _parse_ts(data.get("created_at")) or utcnow()
    data["updated_at"] = _parse_ts(data.get("updated_at")) or utcnow()
    known = set(JobListing.__dataclass_fields__)
    return JobListing(**{k: v for k, v in data.items() if k in known})


class PostgresListingStore(_PostgresStore, ListingStore):
    @property
    def _table(self) -> str:
        return f"{self._schema}.job_listings"

    def _find_one(self, where: str, params: tuple) -> Optional[JobListing]:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT document FROM {self._table} WHERE {where} ORDER BY created_at LIMIT 1",
                params,
            )
            row = cur.fetchone()
        return listing_from_document(row["document"]) if row else None

    def get(self, listing_id: str) -> Optional[JobListing]:
        return self._find_one("id = %s", (listing_id,))

    def find_by_url(self, url: str) -> Optional[JobListing]:
        return self._find_one("external_url = %s", (url,))

    def find_by_title_company(self, title: str, company: str) -> Optional[JobListing]:
        return self._find_one("title = %s AND company = %s", (title, company))

    def create(self, listing: JobListing) -> JobListing:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._table}
                    (id, external_url, title, company, status, document, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    listing.id,
                    listing.external_url,
                    listing.title,
                    listing.company,
                    listing.status,
                    psycopg2.extras.Json(listing.as_dict()),
                    listing.created_at,
                    listing.updated_at,
                ),
            )
        return listing

    def update(self, listing: JobListing) -> None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table} SET
                    external_url = %s,
                    title = %s,
                    company = %s,
                    status = %s,
                    document = %s,
                    updated_at = %s
                WHERE id = %s
                """,
                (
                    listing.external_url,
                    listing.title,
                    listing.company,
                    listing.status,
                    psycopg2.extras.Json(listing.as_dict()),
                    listing.updated_at,
                    listing.id,
                ),
            )
            updated = cur.rowcount
        if updated == 0:
            raise PersistenceError(f"Listing not found: {listing.id}")
