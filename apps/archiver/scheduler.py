"""
Archive Scheduler - Cron and On-Demand Execution

Manages scheduled and manual archive runs using APScheduler.

Features:
- Cron-based scheduling (configurable via ARCHIVE_SCHEDULE_CRON, daily 06:10 by default)
- RUN_ONCE mode for immediate execution
- Graceful shutdown handling

Usage:
    # Scheduled mode (default)
    python -m apps.archiver

    # Run once and exit
    RUN_ONCE=true python -m apps.archiver
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from apps.archiver.archiver_job import run_archive
from utils.config import Settings, settings as default_settings
from utils.logging import setup_logging

logger = logging.getLogger(__name__)

JOB_ID = "archive_job"


class ArchiveScheduler:
    """Runs the archive job on its cron schedule, or once when ``run_once`` is set."""

    def __init__(self, run_once: bool = False, config: Optional[Settings] = None) -> None:
        """
        Initialize scheduler.

        Args:
            run_once: If True, run the archive once and exit
            config: Settings, defaults to the environment-loaded singleton
        """
        self.run_once = run_once
        self.config = config or default_settings
        self.scheduler: AsyncIOScheduler | None = None
        self.shutdown_event = asyncio.Event()

    async def execute_archive(self) -> None:
        """
        Execute one archive run.

        Failures are logged; in RUN_ONCE mode they are re-raised so the
        process exits non-zero, in scheduled mode the next trigger still fires.
        """
        logger.info(
            "Archive run triggered",
            extra={"run_once": self.run_once, "schedule": self.config.ARCHIVE_SCHEDULE_CRON},
        )

        try:
            summary = await run_archive(self.config)

            logger.info(
                "Archive run succeeded",
                extra={
                    "campaigns": summary.campaigns,
                    "groups": summary.groups,
                    "security_tests": summary.security_tests,
                    "recipient_files": summary.recipients.stored,
                    "recipient_errors": summary.recipients.errors,
                },
            )

        except Exception as e:
            logger.error(
                "Archive run failed: %s",
                e,
                extra={"error": str(e)},
                exc_info=True,
            )
            if self.run_once:
                raise

        finally:
            if self.run_once:
                logger.info("Single archive run finished, stopping")
                self.shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Stop waiting for the next archive run on SIGINT or SIGTERM."""

        def signal_handler(signum: int, frame: object) -> None:
            logger.info("Received signal %s, stopping archive scheduler", signum)
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def start(self) -> None:
        """Run one archive, or keep the cron job scheduled until a stop signal arrives."""
        self.setup_signal_handlers()

        if self.run_once:
            logger.info("Running a single archive")
            await self.execute_archive()
            return

        logger.info("Scheduling archive runs")

        self.scheduler = AsyncIOScheduler()

        trigger = CronTrigger.from_crontab(self.config.ARCHIVE_SCHEDULE_CRON)
        self.scheduler.add_job(
            self.execute_archive,
            trigger=trigger,
            id=JOB_ID,
            name="Periodic Phishing Report Archive",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()

        next_run = getattr(self.scheduler.get_job(JOB_ID), "next_run_time", None)
        logger.info(
            "Next archive run at %s",
            next_run,
            extra={"schedule": self.config.ARCHIVE_SCHEDULE_CRON},
        )

        await self.shutdown_event.wait()

        logger.info("Stopping archive scheduler")
        if self.scheduler:
            self.scheduler.shutdown(wait=True)
        logger.info("Archive scheduler stopped")


async def main() -> None:
    """Main entry point for scheduler."""
    setup_logging(
        level=default_settings.LOG_LEVEL,
        format_type=default_settings.LOG_FORMAT,
        static_fields={
            "app": default_settings.APP_NAME,
            "version": default_settings.APP_VERSION,
            "environment": default_settings.ENVIRONMENT,
        },
    )

    run_once = os.getenv("RUN_ONCE", "false").lower() in ("true", "1", "yes")

    scheduler = ArchiveScheduler(run_once=run_once)

    try:
        await scheduler.start()
    except Exception as e:
        logger.error("Scheduler failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
