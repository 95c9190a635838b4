"""
Timer-driven job execution.

`JobRegistry` is the explicit name-to-job map shared by whatever
triggers runs (the timer or a manual "run now").  `Scheduler` drives
daily runs through a private ``schedule.Scheduler`` and guarantees that
at most one run of a given job is in flight at a time.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import schedule

from .content_job import ContentJob, RunResult

logger = logging.getLogger(__name__)

DEFAULT_TIMES = ("10:00", "17:00")


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: Dict[str, ContentJob] = {}

    def add(self, job: ContentJob) -> None:
        if job.name in self._jobs:
            raise ValueError(f"job {job.name} already registered")
        self._jobs[job.name] = job

    def get(self, name: str) -> ContentJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"job {name} not registered") from None

    def names(self) -> List[str]:
        return list(self._jobs)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)


class Scheduler:
    """Run registered jobs at fixed times of day.

    Args:
        registry: Registry to run jobs from; a new one is created if omitted.
        deadline_seconds: Wall-clock budget handed to every run.
    """

    def __init__(self, registry: Optional[JobRegistry] = None, deadline_seconds: float = 30 * 60) -> None:
        self.registry = registry if registry is not None else JobRegistry()
        self.deadline_seconds = deadline_seconds
        self._schedule = schedule.Scheduler()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def add_daily(self, job: ContentJob, times: Iterable[str] = DEFAULT_TIMES) -> None:
        """Register *job* and run it every day at each ``HH:MM`` in *times*."""
        if job.name not in self.registry:
            self.registry.add(job)
        for at in times:
            self._schedule.every().day.at(at).do(self._scheduled_run, job.name)
            logger.info("Scheduled job %s daily at %s", job.name, at)

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def _execute(self, name: str) -> Optional[RunResult]:
        job = self.registry.get(name)
        lock = self._lock_for(name)
        if not lock.acquire(blocking=False):
            logger.warning("Job %s is already running; skipping this trigger", name)
            return None
        try:
            started = time.monotonic()
            result = job.run(deadline_seconds=self.deadline_seconds)
            logger.info("Completed job %s in %.1fs (%s)", name, time.monotonic() - started, result.status.value)
            return result
        finally:
            lock.release()

    def _scheduled_run(self, name: str) -> None:
        logger.info("Starting scheduled job: %s", name)
        try:
            self._execute(name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error running job %s: %s", name, exc)

    def run_job_now(self, name: str) -> Optional[RunResult]:
        """Run a registered job immediately.

        Returns:
            The run result, or ``None`` when the job was already running.

        Raises:
            KeyError: no job with that name is registered.
        """
        logger.info("Manually running job: %s", name)
        return self._execute(name)

    def run_pending(self) -> None:
        self._schedule.run_pending()

    @property
    def next_run(self) -> Optional[datetime]:
        return self._schedule.next_run

    def run_forever(self, stop_event: threading.Event, interval: float = 30.0) -> None:
        """Poll for due jobs until *stop_event* is set."""
        logger.info("Scheduler started")
        while not stop_event.is_set():
            self._schedule.run_pending()
            stop_event.wait(interval)
        self._schedule.clear()
        logger.info("Scheduler stopped")
