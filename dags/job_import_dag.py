"""Job Import Queue DAG

Drains the job import queue on a schedule:

  Tasks
  ─────
  ensure_schema     Create the import_queue / job_listings tables if missing.
  drain_queue       Run processor batches until no Pending items remain.

Per-item failures are recorded on the queue items (status Failed) and do not
fail the task; only store or configuration errors do.

Configuration (env vars):
  WAREHOUSE_HOST / WAREHOUSE_PORT / WAREHOUSE_DB / WAREHOUSE_USER / WAREHOUSE_PASSWORD
  JOB_IMPORT_SCHEMA                   (default: job_import)
  JOB_IMPORT_BATCH_SIZE               (default: 5)
  JOB_IMPORT_RATE_LIMIT_PER_HOST_S    (default: 1.0)
  OPENAI_API_KEY / OPENAI_MODEL       AI extraction; basic extraction only when unset
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from airflow import DAG
from airflow.operators.python import PythonOperator

log = logging.getLogger(__name__)

_MAX_BATCHES_PER_RUN = 50


# ===========================================================================
# Callables: heavy imports deferred inside functions to keep DAG parsing light.
# ===========================================================================

def _ensure_schema(**_kwargs):
    from careerhub.config.settings import get_settings
    from careerhub.job_import.postgres import connect, ensure_schema

    settings = get_settings()
    conn = connect(settings.warehouse)
    try:
        ensure_schema(conn, settings.warehouse.schema_name)
    finally:
        conn.close()


def _drain_queue(**kwargs):
    """Run batches until the queue is empty.

    XCom pushes:
      batches     int
      succeeded   int
      failed      int
      duplicates  int
    """
    from careerhub.config.settings import get_settings
    from careerhub.job_import.http import JobPageFetcher
    from careerhub.job_import.postgres import PostgresListingStore, PostgresQueueStore, connect
    from careerhub.job_import.processor import ImportProcessor
    from careerhub.job_import.worker import BatchWorker

    settings = get_settings()
    schema = settings.warehouse.schema_name
    conn = connect(settings.warehouse)
    try:
        with JobPageFetcher.from_settings(settings.job_import) as fetcher:
            processor = ImportProcessor.from_settings(
                settings,
                queue_store=PostgresQueueStore(conn, schema=schema),
                listing_store=PostgresListingStore(conn, schema=schema),
                fetcher=fetcher,
            )
            with BatchWorker(processor) as worker:
                batches = worker.drain(max_batches=_MAX_BATCHES_PER_RUN)
    finally:
        conn.close()

    succeeded = sum(b.succeeded for b in batches)
    failed = sum(b.failed for b in batches)
    duplicates = sum(b.duplicates for b in batches)

    ti = kwargs["ti"]
    ti.xcom_push(key="batches", value=len(batches))
    ti.xcom_push(key="succeeded", value=succeeded)
    ti.xcom_push(key="failed", value=failed)
    ti.xcom_push(key="duplicates", value=duplicates)

    if failed:
        log.warning("[drain] %d item(s) failed; see the queue status for errors.", failed)
    log.info(
        "[drain] Done: batches=%d succeeded=%d failed=%d duplicates=%d",
        len(batches),
        succeeded,
        failed,
        duplicates,
    )


default_args = {
    "owner": "careerhub",
    "depends_on_past": False,
    "start_date": datetime(2024, 1, 1),
    "email_on_failure": False,
    "email_on_retry": False,
    "retries": 1,
    "retry_delay": timedelta(minutes=2),
}

with DAG(
    dag_id="job_import_queue",
    default_args=default_args,
    description="Drain the job import queue into draft job listings",
    schedule=timedelta(minutes=15),
    catchup=False,
    tags=["job-import", "listings"],
    max_active_runs=1,
    dagrun_timeout=timedelta(minutes=30),
) as dag:

    t_schema = PythonOperator(
        task_id="ensure_schema",
        python_callable=_ensure_schema,
        retries=2,
        retry_delay=timedelta(seconds=30),
    )

    t_drain = PythonOperator(
        task_id="drain_queue",
        python_callable=_drain_queue,
        execution_timeout=timedelta(minutes=25),
    )

    t_schema >> t_drain
