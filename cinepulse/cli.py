"""
Command line interface for Cine Pulse.

Subcommands:

* ``run`` performs one scraping run over the configured sources.
* ``schedule`` runs the scraper every day at the configured times until
  interrupted.
* ``stats`` prints content counts and the most recent records.
* ``migrate`` applies, reverts or reports schema migrations.

Without a subcommand the ``RUN_MODE`` setting picks ``schedule`` or
``run``.  Settings come from the environment (``.env`` is honoured) and
an optional YAML file given with ``--config``.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Tuple

from .collect import WebScraper
from .config import Settings, load_settings
from .errors import CinePulseError, ConfigError
from .jobs import ContentJob, Scheduler
from .notify import build_notifier
from .providers import ProviderOrchestrator, build_providers
from .storage import SQLiteContentStore

logger = logging.getLogger("cinepulse.cli")

RECENT_LIMIT = 5


def build_job(settings: Settings) -> Tuple[ContentJob, SQLiteContentStore]:
    """Wire the production collaborators into a :class:`ContentJob`."""
    store = SQLiteContentStore(settings.data_path)
    store.initialize()
    providers = build_providers(settings)
    if not providers:
        logger.warning("No LLM provider configured; runs will extract nothing")
    job = ContentJob(
        source=WebScraper(timeout=settings.fetch_timeout_seconds),
        orchestrator=ProviderOrchestrator(providers),
        store=store,
        source_urls=settings.source_urls,
        notifier=build_notifier(settings.email),
    )
    return job, store


def cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Run the scraper once with the single-run deadline."""
    job, store = build_job(settings)
    try:
        scheduler = Scheduler(deadline_seconds=settings.deadline_seconds(once=True))
        scheduler.registry.add(job)
        result = scheduler.run_job_now(job.name)
    finally:
        job.orchestrator.close()
        store.close()
    if result is not None:
        logger.info(
            "Run %s: %d records saved from %d source(s)",
            result.status.value,
            result.records_saved,
            result.sources_processed,
        )
    return 0


def cmd_schedule(args: argparse.Namespace, settings: Settings) -> int:
    """Run the scraper on its daily schedule until SIGINT/SIGTERM."""
    job, store = build_job(settings)
    scheduler = Scheduler(deadline_seconds=settings.deadline_seconds())
    scheduler.add_daily(job, settings.schedule_times)

    stop_event = threading.Event()

    def _stop(signum, frame):  # noqa: ARG001
        logger.info("Shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    try:
        if args.run_at_startup or settings.run_at_startup:
            scheduler.run_job_now(job.name)
        logger.info("Next run at %s", scheduler.next_run)
        scheduler.run_forever(stop_event, interval=args.interval)
    finally:
        job.orchestrator.close()
        store.close()
    return 0


def cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Print content counts and the most recent records."""
    with SQLiteContentStore(settings.data_path) as store:
        stats = store.get_stats()
        recent = store.get_all()[: args.limit]
    print(f"Total content: {stats['total']} ({stats['movies']} movies, {stats['series']} series)")
    if recent:
        print("\nMost recent:")
    for record in recent:
        year = f" ({record.year})" if record.year is not None else ""
        rating = f" - {record.rating:g}/10" if record.rating is not None else ""
        print(f"  [{record.type.value}] {record.title}{year} - {record.category}{rating}")
    return 0


def cmd_migrate(args: argparse.Namespace, settings: Settings) -> int:
    """Apply, revert or report schema migrations."""
    store = SQLiteContentStore(settings.data_path)
    store.initialize(migrate=False)
    try:
        manager = store.migrations()
        if args.cmd == "up":
            print(f"Migrated to version {manager.up()}")
        elif args.cmd == "down":
            print(f"Rolled back to version {manager.down()}")
        elif args.cmd == "reset":
            print(f"Reset complete; now at version {manager.reset()}")
        elif args.cmd == "version":
            print(f"Current version: {manager.version()}")
        else:
            for version, description, applied in manager.status():
                print(f"{'applied' if applied else 'pending':<8} {version:>3}  {description}")
    finally:
        store.close()
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="cinepulse", description="Cine Pulse content scraper")
    parser.add_argument("--config", help="YAML file overriding environment settings")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    run_cmd = subparsers.add_parser("run", help="Run the scraper once")
    run_cmd.set_defaults(func=cmd_run)

    schedule_cmd = subparsers.add_parser("schedule", help="Run the scraper on its daily schedule")
    schedule_cmd.add_argument(
        "--run-at-startup",
        dest="run_at_startup",
        action="store_true",
        help="Run the scraper immediately before waiting for the schedule",
    )
    schedule_cmd.add_argument("--interval", type=float, default=30.0, help="Seconds between schedule checks")
    schedule_cmd.set_defaults(func=cmd_schedule)

    stats_cmd = subparsers.add_parser("stats", help="Show stored content statistics")
    stats_cmd.add_argument("--limit", type=int, default=RECENT_LIMIT, help="Number of recent records to list")
    stats_cmd.set_defaults(func=cmd_stats)

    migrate_cmd = subparsers.add_parser("migrate", help="Manage database migrations")
    migrate_cmd.add_argument(
        "--cmd",
        choices=["up", "down", "status", "version", "reset"],
        default="up",
        help="Migration command (default: up)",
    )
    migrate_cmd.set_defaults(func=cmd_migrate)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s" if args.verbose else "[%(levelname)s] %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2
    if not args.verbose:
        logging.getLogger().setLevel(settings.log_level)

    if args.command is None:
        if settings.run_mode == "once":
            args.func = cmd_run
        else:
            args.func = cmd_schedule
            args.run_at_startup = False
            args.interval = 30.0

    try:
        return args.func(args, settings)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2
    except CinePulseError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
