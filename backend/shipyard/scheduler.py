"""Pipeline triggers using APScheduler: fixed polling interval plus source-change watch."""

import asyncio
import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, NoReturn

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from shipyard.config import Settings
from shipyard.pipeline import BuildResult, run_pipeline

logger = logging.getLogger(__name__)


class SourceWatcher:
    """Tracks the git revision of the checkout the pipeline builds."""

    def __init__(self, repo_dir: Path):
        self.repo_dir = repo_dir
        self.last_built: str | None = None

    def current_revision(self) -> str | None:
        try:
            completed = subprocess.run(
                ["git", "rev-parse", "HEAD"],
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning(f"Cannot read revision in {self.repo_dir}: {e}")
            return None
        return completed.stdout.strip() or None

    def has_changed(self) -> bool:
        revision = self.current_revision()
        return revision is not None and revision != self.last_built

    def mark_built(self, revision: str) -> None:
        self.last_built = revision


class PipelineTrigger:
    """Starts runs from any trigger, never more than one at a time."""

    def __init__(
        self,
        watcher: SourceWatcher,
        run: Callable[[], BuildResult],
    ):
        self.watcher = watcher
        self._run = run
        self._lock = threading.Lock()

    def fire(self, reason: str) -> BuildResult | None:
        if not self._lock.acquire(blocking=False):
            logger.info(f"Run already in progress; ignoring {reason} trigger")
            return None
        try:
            revision = self.watcher.current_revision()
            logger.info(f"Pipeline triggered by {reason} (revision: {revision or 'unknown'})")
            result = self._run()
            if revision:
                self.watcher.mark_built(revision)
            return result
        except Exception as exc:
            logger.error(f"Pipeline run failed to complete: {exc}", exc_info=True)
            return None
        finally:
            self._lock.release()

    def poll_job(self) -> None:
        """Scheduler job wrapper for the fixed polling interval; builds only new revisions."""
        if self.watcher.has_changed():
            self.fire("polling interval")

    def source_job(self) -> None:
        """Scheduler job wrapper for the source-change check."""
        if self.watcher.has_changed():
            self.fire("source change")


def build_trigger(settings: Settings) -> PipelineTrigger:
    return PipelineTrigger(
        watcher=SourceWatcher(settings.scheduler.repo_dir.resolve()),
        run=lambda: asyncio.run(run_pipeline(settings)),
    )


def start_scheduler(settings: Settings) -> NoReturn:
    """Start the APScheduler with the polling and source-change jobs."""
    trigger = build_trigger(settings)
    scheduler = BlockingScheduler()

    scheduler.add_job(
        trigger.poll_job,
        IntervalTrigger(minutes=settings.scheduler.poll_interval_minutes),
        id="pipeline-poll",
        name="Pipeline: Polling Interval",
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"Registered job: Pipeline Poll (every {settings.scheduler.poll_interval_minutes} min)"
    )

    scheduler.add_job(
        trigger.source_job,
        IntervalTrigger(seconds=settings.scheduler.source_check_seconds),
        id="pipeline-source-watch",
        name="Pipeline: Source Change Watch",
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"Registered job: Source Change Watch (every {settings.scheduler.source_check_seconds}s)"
    )

    try:
        logger.info(f"Scheduler starting with {len(scheduler.get_jobs())} jobs")
        logger.info("Press Ctrl+C to stop")
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received interrupt signal")
        scheduler.shutdown()
        logger.info("Scheduler stopped cleanly")
