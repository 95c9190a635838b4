"""Tests for the content scraping run and the scheduler around it."""

from __future__ import annotations

import threading
from unittest import mock

import pytest  # type: ignore

from cinepulse.errors import PersistenceError
from cinepulse.jobs import ContentJob, JobRegistry, JobState, Scheduler, build_extraction_prompt
from cinepulse.providers import ProviderOrchestrator

from .fakes import FakeProvider, FakeSource, RecordingNotifier

PAGE_A = "https://a.example/"
PAGE_B = "https://b.example/"
REPLY = '[{"title":"Dune","year":2021,"category":"Hollywood","type":"movie"},{"title":"Arcane","category":"Anime","type":"series"}]'


class Ticker:
    """Monotonic clock that advances ``step`` seconds per call."""

    def __init__(self, step: float) -> None:
        self.value = 0.0
        self.step = step

    def __call__(self) -> float:
        current = self.value
        self.value += self.step
        return current


def _job(store, pages=None, reply=REPLY, notifier=None, urls=(PAGE_A, PAGE_B)) -> ContentJob:
    pages = pages if pages is not None else {PAGE_A: "Dune 2021 Arcane", PAGE_B: "More listings"}
    return ContentJob(
        source=FakeSource(pages),
        orchestrator=ProviderOrchestrator([FakeProvider("m", reply)]),
        store=store,
        source_urls=list(urls),
        notifier=notifier,
    )


def test_prompt_embeds_page_text_and_rules() -> None:
    prompt = build_extraction_prompt("PAGE TEXT")
    assert prompt.endswith("PAGE TEXT")
    assert "Do not include Korean content" in prompt
    assert "JSON ARRAY ONLY" in prompt
    assert build_extraction_prompt("PAGE TEXT") == prompt


def test_run_saves_records_with_source_and_notifies(store) -> None:
    notifier = RecordingNotifier()
    job = _job(store, notifier=notifier)
    result = job.run()

    assert result.status is JobState.COMPLETED
    assert job.state is JobState.COMPLETED
    assert result.sources_processed == 2
    assert result.records_saved == 4
    assert result.providers == {PAGE_A: "fake:m", PAGE_B: "fake:m"}
    # same natural keys from both pages: the second save updates the source
    assert store.get("Dune", "movie").source_url == PAGE_B
    assert store.get_stats()["total"] == 2

    assert len(notifier.calls) == 1
    records, sources = notifier.calls[0]
    assert len(records) == 4
    assert sources == [PAGE_A, PAGE_B]


def test_fetch_failure_skips_source(store) -> None:
    job = _job(store, pages={PAGE_B: "listings"})
    result = job.run()
    assert result.status is JobState.COMPLETED
    assert result.sources_skipped == 1
    assert result.sources_processed == 1
    assert result.records_saved == 2
    assert PAGE_A not in result.providers


def test_no_content_extracted_is_not_a_failure(store) -> None:
    notifier = RecordingNotifier()
    result = _job(store, reply="Nothing here, sorry.", notifier=notifier).run()
    assert result.status is JobState.COMPLETED
    assert result.records_saved == 0
    assert result.providers == {PAGE_A: None, PAGE_B: None}
    assert notifier.calls == []


def test_persistence_failure_skips_only_that_record(store) -> None:
    original = store.upsert

    def flaky(record, source_url=None):
        if record.title == "Dune":
            raise PersistenceError("disk full")
        return original(record, source_url=source_url)

    job = _job(store, urls=(PAGE_A,))
    with mock.patch.object(store, "upsert", side_effect=flaky):
        result = job.run()
    assert result.records_failed == 1
    assert result.records_saved == 1
    assert [r.title for r in result.saved_records] == ["Arcane"]


def test_out_of_range_year_is_dropped_and_run_completes(store) -> None:
    reply = '[{"title":"Huge","year":99999999999999999999,"category":"Hollywood","type":"movie"}]'
    notifier = RecordingNotifier()
    job = _job(store, reply=reply, notifier=notifier)
    result = job.run()

    assert result.status is JobState.COMPLETED
    assert result.sources_processed == 2
    assert result.records_saved == 2
    assert result.records_failed == 0
    assert store.get("Huge", "movie").year is None
    assert len(notifier.calls) == 1


def test_deadline_cancels_before_next_source(store) -> None:
    notifier = RecordingNotifier()
    job = _job(store, notifier=notifier)
    # start=0, first check=10 (<15), second check=20 (>=15)
    result = job.run(deadline_seconds=15, clock=Ticker(10))

    assert result.status is JobState.CANCELLED
    assert job.state is JobState.CANCELLED
    assert result.sources_processed == 1
    assert job.source.fetched == [PAGE_A]
    # records persisted before the deadline stay persisted and are reported
    assert store.get_stats()["total"] == 2
    assert len(notifier.calls) == 1


def test_notification_failure_does_not_fail_run(store) -> None:
    result = _job(store, notifier=RecordingNotifier(fail=True)).run()
    assert result.status is JobState.COMPLETED
    assert result.records_saved == 4


def test_empty_source_list_uses_default(store) -> None:
    job = _job(store, urls=())
    assert job.source_urls == ["https://nkiri.com/"]


# Scheduler


def test_registry_rejects_duplicates(store) -> None:
    registry = JobRegistry()
    registry.add(_job(store))
    with pytest.raises(ValueError):
        registry.add(_job(store))
    assert registry.names() == ["content_scraper"]


def test_run_job_now_unknown_name() -> None:
    with pytest.raises(KeyError):
        Scheduler().run_job_now("missing")


def test_run_job_now_passes_deadline(store) -> None:
    job = _job(store)
    job.run = mock.Mock(wraps=job.run)
    scheduler = Scheduler(deadline_seconds=600)
    scheduler.registry.add(job)
    result = scheduler.run_job_now(job.name)
    assert result.status is JobState.COMPLETED
    job.run.assert_called_once_with(deadline_seconds=600)


def test_overlapping_run_is_skipped(store) -> None:
    job = _job(store)
    started = threading.Event()
    release = threading.Event()
    original_run = job.run

    def slow_run(**kwargs):
        started.set()
        release.wait(5)
        return original_run(**kwargs)

    job.run = slow_run
    scheduler = Scheduler()
    scheduler.registry.add(job)

    results = []
    worker = threading.Thread(target=lambda: results.append(scheduler.run_job_now(job.name)))
    worker.start()
    assert started.wait(5)
    assert scheduler.run_job_now(job.name) is None
    release.set()
    worker.join(5)
    assert results[0].status is JobState.COMPLETED
    # lock released after the first run finished
    assert scheduler.run_job_now(job.name) is not None


def test_add_daily_registers_times(store) -> None:
    job = _job(store)
    scheduler = Scheduler()
    scheduler.add_daily(job, ["10:00", "17:00"])
    assert "content_scraper" in scheduler.registry
    assert len(scheduler._schedule.get_jobs()) == 2
    assert scheduler.next_run is not None


def test_run_forever_stops_on_event(store) -> None:
    scheduler = Scheduler()
    scheduler.add_daily(_job(store), ["10:00"])
    stop = threading.Event()
    stop.set()
    scheduler.run_forever(stop, interval=0.01)
    assert scheduler._schedule.get_jobs() == []
