"""
Content scraping run.

A run walks the configured sources in order: fetch the page text, ask
the providers to extract records, upsert what comes back and finally
send one notification covering everything saved.  Failures are
contained at the smallest unit they affect (a record, a provider, a
source); only the run deadline ends a run early, and it is checked
between sources.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from ..collect import TextSource
from ..config import DEFAULT_SOURCE_URLS
from ..errors import DeadlineExceeded, FetchError, NotifyError, PersistenceError
from ..notify import NotificationSink
from ..providers import ProviderOrchestrator
from ..records import ContentRecord
from ..storage import ContentStore
from .prompt import build_extraction_prompt

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class RunResult:
    status: JobState
    sources_total: int = 0
    sources_processed: int = 0
    sources_skipped: int = 0
    records_saved: int = 0
    records_failed: int = 0
    saved_records: List[ContentRecord] = field(default_factory=list)
    # source URL -> name of the provider that produced its records (None if none did)
    providers: Dict[str, Optional[str]] = field(default_factory=dict)
    duration: float = 0.0


class ContentJob:
    """Scrape the configured sources and persist extracted content.

    Args:
        source: Fetches page text for a URL.
        orchestrator: Runs the prompt through the providers.
        store: Receives the natural-key upserts.
        source_urls: Ordered source URLs; empty falls back to the default.
        notifier: Optional sink told about the saved records.
        name: Job identity used by the scheduler.
    """

    def __init__(
        self,
        source: TextSource,
        orchestrator: ProviderOrchestrator,
        store: ContentStore,
        source_urls: Sequence[str],
        notifier: Optional[NotificationSink] = None,
        name: str = "content_scraper",
    ) -> None:
        self.source = source
        self.orchestrator = orchestrator
        self.store = store
        self.source_urls = list(source_urls) or list(DEFAULT_SOURCE_URLS)
        self.notifier = notifier
        self.name = name
        self.state = JobState.IDLE

    def run(
        self,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> RunResult:
        """Process every source until done or until the deadline passes.

        The deadline is checked before each source; calls already in
        flight are never interrupted.

        Returns:
            A :class:`RunResult`; partial failures are reported through
            its counters and never raised.
        """
        started = clock()
        deadline = started + deadline_seconds if deadline_seconds is not None else None
        self.state = JobState.RUNNING
        result = RunResult(status=JobState.RUNNING, sources_total=len(self.source_urls))
        logger.info("Running content scraper job with %d sources", len(self.source_urls))

        try:
            for url in self.source_urls:
                if deadline is not None and clock() >= deadline:
                    raise DeadlineExceeded(f"deadline of {deadline_seconds:.0f}s exceeded before {url}")
                self._process_source(url, result)
            result.status = JobState.COMPLETED
        except DeadlineExceeded as exc:
            logger.warning("Run cancelled: %s", exc)
            result.status = JobState.CANCELLED

        self.state = result.status
        self._notify(result.saved_records)
        result.duration = clock() - started
        logger.info(
            "Content scraper job %s: %d/%d sources processed, %d skipped, %d records saved, %d failed",
            result.status.value,
            result.sources_processed,
            result.sources_total,
            result.sources_skipped,
            result.records_saved,
            result.records_failed,
        )
        return result

    def _process_source(self, url: str, result: RunResult) -> None:
        logger.info("Scraping content from %s", url)
        try:
            text = self.source.fetch(url)
        except FetchError as exc:
            logger.error("Error scraping %s: %s", url, exc)
            result.sources_skipped += 1
            return

        extraction = self.orchestrator.extract(build_extraction_prompt(text))
        result.providers[url] = extraction.provider
        result.sources_processed += 1
        if not extraction.records:
            logger.warning("No content extracted from %s", url)
            return

        saved = 0
        for record in extraction.records:
            try:
                stored = self.store.upsert(record.with_source(url), source_url=url)
            except PersistenceError as exc:
                logger.error("Error saving content '%s': %s", record.title, exc)
                result.records_failed += 1
                continue
            result.saved_records.append(stored)
            saved += 1
        result.records_saved += saved
        logger.info("Saved %d content items from %s", saved, url)

    def _notify(self, records: List[ContentRecord]) -> None:
        if not records or self.notifier is None:
            return
        try:
            self.notifier.notify(records, self.source_urls)
        except NotifyError as exc:
            logger.error("Failed to send email notification: %s", exc)
