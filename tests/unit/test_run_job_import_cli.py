from __future__ import annotations

import pytest

import scripts.pipeline.run_job_import as run_job_import
from careerhub.config.settings import Settings
from careerhub.job_import.models import ImportQueueItem
from careerhub.job_import.processor import ImportProcessor
from careerhub.job_import.stores import InMemoryListingStore, InMemoryQueueStore
from tests.helpers.job_import import PageServer, load_fixture, make_fetcher

ACME_URL = "https://jobs.example.com/acme-backend"


class DummyConnection:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def cli(monkeypatch):
    state = {
        "conn": DummyConnection(),
        "queue_store": InMemoryQueueStore(),
        "listing_store": InMemoryListingStore(),
        "server": PageServer({ACME_URL: load_fixture("html/plain_job_page.html")}),
    }

    def fake_build_processor(settings, queue_store, listing_store, fetcher):
        return ImportProcessor(
            queue_store=queue_store,
            listing_store=listing_store,
            fetcher=make_fetcher(state["server"]),
        )

    monkeypatch.setattr(run_job_import, "get_settings", lambda: Settings())
    monkeypatch.setattr(run_job_import, "_connect_warehouse", lambda settings: state["conn"])
    monkeypatch.setattr(
        run_job_import, "_build_stores", lambda conn, settings: (state["queue_store"], state["listing_store"])
    )
    monkeypatch.setattr(run_job_import, "_build_processor", fake_build_processor)
    return state


def test_enqueue_adds_items_and_closes_connection(cli, capsys):
    rc = run_job_import.main(["enqueue", ACME_URL, ACME_URL, "--no-ai", "--submitted-by", "recruiter-9"])

    assert rc == 0
    assert "added=1 skipped=1" in capsys.readouterr().out
    [item] = cli["queue_store"].items
    assert item.prefer_ai is False
    assert item.submitted_by == "recruiter-9"
    assert cli["conn"].closed


def test_run_processes_queue(cli, capsys):
    run_job_import.main(["enqueue", ACME_URL, "--no-ai"])

    rc = run_job_import.main(["run"])

    assert rc == 0
    assert "succeeded=1 failed=0" in capsys.readouterr().out
    assert cli["listing_store"].count() == 1


def test_run_with_failures_exits_one(cli):
    run_job_import.main(["enqueue", "https://jobs.example.com/gone", "--no-ai"])

    assert run_job_import.main(["run", "--drain"]) == 1
    assert cli["queue_store"].items[0].status == "Failed"


def test_status_lists_counts_and_items(cli, capsys):
    run_job_import.main(["enqueue", ACME_URL])
    capsys.readouterr()

    rc = run_job_import.main(["status", "--limit", "5"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "Pending=1 Processing=0 Completed=0 Failed=0" in out
    assert ACME_URL in out


def test_retry_reports_reset_count(cli, capsys):
    item = cli["queue_store"].create(ImportQueueItem(url=ACME_URL, submitted_by="user-1"))
    item.status = "Failed"
    cli["queue_store"].save(item)

    rc = run_job_import.main(["retry"])

    assert rc == 0
    assert "Failed items reset to Pending: 1" in capsys.readouterr().out


def test_rescrape_unknown_item_exits_two(cli, capsys):
    rc = run_job_import.main(["rescrape", "does-not-exist"])

    assert rc == 2
    assert "not found" in capsys.readouterr().out


def test_init_db_ensures_schema(cli, monkeypatch):
    calls = []
    monkeypatch.setattr(run_job_import, "ensure_schema", lambda conn, schema: calls.append((conn, schema)))

    rc = run_job_import.main(["init-db"])

    assert rc == 0
    assert calls == [(cli["conn"], "job_import")]
    assert cli["conn"].closed


def test_connection_closed_even_when_command_raises(cli, monkeypatch):
    def boom(conn, settings):
        raise RuntimeError("db error")

    monkeypatch.setattr(run_job_import, "_build_stores", boom)

    with pytest.raises(RuntimeError, match="db error"):
        run_job_import.main(["status"])
    assert cli["conn"].closed
