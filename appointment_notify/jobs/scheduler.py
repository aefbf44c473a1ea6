"""Scheduler process for the daily notification workflows.

Run separately from CLI/manual flows using:
    python -m appointment_notify.jobs.scheduler
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, tzinfo
from functools import partial
from typing import Callable, Protocol

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from appointment_notify.domain.models import CronTick
from appointment_notify.jobs.config import resolve_config
from appointment_notify.jobs.tasks import build_runtime, run_schedule
from appointment_notify.triggers import TriggerRouter

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def add_cron_job(self, job_id: str, cron: str, func: Callable[[], object]) -> None: ...

    def start(self) -> None: ...


def configure_logging() -> None:
    """Configure process-wide logging for scheduler mode."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


class APSchedulerHost:
    """``Scheduler`` backed by an APScheduler ``BlockingScheduler``."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz
        self.scheduler = BlockingScheduler(timezone=tz) if tz is not None else BlockingScheduler()
        self.scheduler.add_listener(self._log_job_state, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    def _now(self) -> datetime:
        return datetime.now(tz=self.tz) if self.tz is not None else datetime.now().astimezone()

    def _log_job_state(self, event: JobExecutionEvent) -> None:
        """Log last and next run metadata for observability."""
        job = self.scheduler.get_job(event.job_id)
        job_next_run = getattr(job, "next_run_time", None) if job else None
        next_run = job_next_run.isoformat() if job_next_run else "none"
        last_run_at = (
            event.scheduled_run_time.isoformat() if event.scheduled_run_time else self._now().isoformat()
        )

        if event.exception:
            logger.error(
                "Job %s failed at %s; next run at %s",
                event.job_id,
                last_run_at,
                next_run,
                exc_info=event.exception,
            )
            return

        logger.info("Job %s completed at %s; next run at %s", event.job_id, last_run_at, next_run)

    def add_cron_job(self, job_id: str, cron: str, func: Callable[[], object]) -> None:
        if self.tz is not None:
            trigger = CronTrigger.from_crontab(cron, timezone=self.tz)
        else:
            trigger = CronTrigger.from_crontab(cron)
        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=1800,
        )
        next_run = trigger.get_next_fire_time(None, self._now())
        logger.info(
            "Registered %s for '%s' (next run: %s)",
            job_id,
            cron,
            next_run.isoformat() if next_run else "none",
        )

    def start(self) -> None:
        self.scheduler.start()


def _deliver_tick(router: TriggerRouter, schedule_id: str, tz: tzinfo | None) -> None:
    fired_at = datetime.now(tz=tz) if tz is not None else datetime.now().astimezone()
    result = router.deliver(CronTick(schedule_id=schedule_id, fired_at=fired_at))
    if not result.success:
        logger.error("Schedule %s reported failure: %s", schedule_id, result.error)


def register_schedules(host: Scheduler, router: TriggerRouter, tz: tzinfo | None = None) -> list[str]:
    """Register one cron job per schedule known to the router."""
    registered = []
    for schedule_id, cron in router.schedules.items():
        host.add_cron_job(schedule_id, cron, partial(_deliver_tick, router, schedule_id, tz))
        registered.append(schedule_id)
    return registered


def build_scheduler(router: TriggerRouter | None = None, tz: tzinfo | None = None) -> APSchedulerHost:
    """Build and configure the scheduler instance."""
    if router is None:
        config = resolve_config()
        tz = config.timezone
        router = build_runtime(config)
    host = APSchedulerHost(tz)
    register_schedules(host, router, tz)
    return host


def main(argv: list[str] | None = None) -> None:
    """Entrypoint for a dedicated scheduler process."""
    parser = argparse.ArgumentParser(description="Run the notification workflow scheduler")
    parser.add_argument(
        "--once",
        metavar="SCHEDULE_ID",
        help="Execute one schedule immediately and exit (manual mode)",
    )
    args = parser.parse_args(argv)

    configure_logging()

    if args.once:
        logger.info("Running in manual mode: executing %s once", args.once)
        result = run_schedule(args.once)
        logger.info("Manual execution of %s completed (success=%s)", args.once, result.success)
        return

    host = build_scheduler()
    logger.info("Starting scheduler process")
    host.start()


if __name__ == "__main__":
    main()
