"""Scheduler process for recurring reminder jobs.

Run separately from CLI/manual flows using:
    python -m care_scheduler.jobs.scheduler
"""

from __future__ import annotations

import argparse
import logging
import os
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from care_scheduler.jobs.tasks import TRUTHY, dispatch_pending_reminders_job, generate_daily_reminders_job

GENERATE_JOB_ID = "generate_daily_reminders"
DISPATCH_JOB_ID = "dispatch_pending_reminders"
DEFAULT_GENERATION_HOUR = 6
DEFAULT_DISPATCH_INTERVAL_MINUTES = 15

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure process-wide logging for scheduler mode."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def resolve_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("CARE_TIMEZONE", "Africa/Nairobi"))


def keeps_utc_day(hour: int, tz: ZoneInfo, on: date | None = None) -> bool:
    """True when ``hour`` local time falls on the same calendar day in UTC."""
    day = on or datetime.now(tz=tz).date()
    local = datetime.combine(day, time(hour), tzinfo=tz)
    return local.astimezone(UTC).date() == day


def resolve_generation_hour(tz: ZoneInfo | None = None) -> int:
    """Hour of the daily generation run.

    Reminder ids are keyed by UTC day while dose times use the local day, so
    hours whose UTC day differs from the local day are rejected.
    """
    tz = tz or resolve_timezone()
    raw = os.getenv("CARE_GENERATION_HOUR", "").strip()
    if not raw:
        return DEFAULT_GENERATION_HOUR
    if not raw.isdigit() or int(raw) > 23:
        logger.warning("Ignoring CARE_GENERATION_HOUR=%r; using %02d:00", raw, DEFAULT_GENERATION_HOUR)
        return DEFAULT_GENERATION_HOUR
    if not keeps_utc_day(int(raw), tz):
        logger.warning(
            "Ignoring CARE_GENERATION_HOUR=%s: %02d:00 %s falls on a different UTC day; using %02d:00",
            raw,
            int(raw),
            tz.key,
            DEFAULT_GENERATION_HOUR,
        )
        return DEFAULT_GENERATION_HOUR
    return int(raw)


def resolve_dispatch_interval() -> int:
    raw = os.getenv("CARE_DISPATCH_INTERVAL_MINUTES", "").strip()
    if raw.isdigit() and int(raw) > 0:
        return int(raw)
    return DEFAULT_DISPATCH_INTERVAL_MINUTES


def _dispatch_tick() -> None:
    dispatch_enabled = os.getenv("CARE_ENABLE_DISPATCH", "").strip().lower() in TRUTHY
    dispatch_pending_reminders_job(dry_run=not dispatch_enabled)


def _log_job_state(scheduler: BlockingScheduler, event: JobExecutionEvent) -> None:
    """Log last and next run metadata for observability."""
    tz = resolve_timezone()
    job = scheduler.get_job(event.job_id)
    job_next_run = getattr(job, "next_run_time", None) if job else None
    next_run = job_next_run.isoformat() if job_next_run else "none"
    last_run_at = (
        event.scheduled_run_time.astimezone(tz).isoformat()
        if event.scheduled_run_time
        else datetime.now(tz=tz).isoformat()
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


def build_scheduler() -> BlockingScheduler:
    """Build and configure the scheduler instance."""
    tz = resolve_timezone()
    scheduler = BlockingScheduler(timezone=tz)

    generation_hour = resolve_generation_hour(tz)
    generate_trigger = CronTrigger(hour=generation_hour, minute=0, timezone=tz)
    scheduler.add_job(
        generate_daily_reminders_job,
        trigger=generate_trigger,
        id=GENERATE_JOB_ID,
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=1800,
    )

    interval = resolve_dispatch_interval()
    scheduler.add_job(
        _dispatch_tick,
        trigger=IntervalTrigger(minutes=interval, timezone=tz),
        id=DISPATCH_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    scheduler.add_listener(
        lambda event: _log_job_state(scheduler, event),
        EVENT_JOB_EXECUTED | EVENT_JOB_ERROR,
    )

    next_run = generate_trigger.get_next_fire_time(None, datetime.now(tz=tz))
    logger.info(
        "Registered %s for %02d:00 %s (next run: %s); %s every %s minutes",
        GENERATE_JOB_ID,
        generation_hour,
        tz.key,
        next_run.isoformat() if next_run else "none",
        DISPATCH_JOB_ID,
        interval,
    )

    return scheduler


def main() -> None:
    """Entrypoint for a dedicated scheduler process."""
    parser = argparse.ArgumentParser(description="Run the recurring reminder scheduler")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run reminder generation and one dispatch pass immediately, then exit",
    )
    args = parser.parse_args()

    configure_logging()

    if args.once:
        logger.info("Running in manual mode: executing %s and %s once", GENERATE_JOB_ID, DISPATCH_JOB_ID)
        generate_daily_reminders_job()
        _dispatch_tick()
        logger.info("Manual execution completed")
        return

    scheduler = build_scheduler()
    logger.info("Starting scheduler process")
    scheduler.start()


if __name__ == "__main__":
    main()
