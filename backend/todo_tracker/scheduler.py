"""Scheduled report emails: end of day, end of week, end of month.

Cron triggers fire at 23:55 in the configured timezone. "Last day of month"
has no cron spelling, so the monthly job fires on days 28-31 and re-checks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .notifier import Notifier, NotifyEvent
from .reports import build_report

logger = logging.getLogger(__name__)

FIRE_HOUR = 23
FIRE_MINUTE = 55


def is_last_day_of_month(moment: datetime) -> bool:
    """True if the calendar day after moment is the 1st (in moment's own timezone)."""
    return (moment + timedelta(days=1)).day == 1


def run_report_job(period: str, notifier: Notifier, now: datetime | None = None) -> bool:
    """One firing: build the report anchored at now and email it. Never raises."""
    try:
        report = build_report(period, now or datetime.now(timezone.utc))
        emailed = notifier.notify(NotifyEvent.REPORT, report)
        logger.info(
            "%s report processed (%d completed, emailed=%s).",
            period,
            report.completed_count,
            emailed,
        )
        return emailed
    except Exception:
        logger.exception("Failed to process %s report", period)
        return False


def run_monthly_job(notifier: Notifier, tz: ZoneInfo, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    if not is_last_day_of_month(now.astimezone(tz)):
        logger.debug("Monthly trigger on %s is not the last day of the month; skipping", now.date())
        return False
    return run_report_job("monthly", notifier, now)


def setup_schedulers(settings, notifier: Notifier, *, start: bool = True) -> BackgroundScheduler | None:
    """Register the three report jobs. Returns None when scheduling is disabled."""
    if not settings.enable_scheduled_emails:
        logger.info("Scheduled emails disabled via TODO_ENABLE_SCHEDULED_EMAILS=false")
        return None

    tz = ZoneInfo(settings.timezone)
    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults={"max_instances": 1, "coalesce": True, "misfire_grace_time": 300},
    )

    scheduler.add_job(
        run_report_job,
        CronTrigger(hour=FIRE_HOUR, minute=FIRE_MINUTE, timezone=tz),
        args=["daily", notifier],
        id="report_daily",
    )
    scheduler.add_job(
        run_report_job,
        CronTrigger(day_of_week="sun", hour=FIRE_HOUR, minute=FIRE_MINUTE, timezone=tz),
        args=["weekly", notifier],
        id="report_weekly",
    )
    scheduler.add_job(
        run_monthly_job,
        CronTrigger(day="28-31", hour=FIRE_HOUR, minute=FIRE_MINUTE, timezone=tz),
        args=[notifier, tz],
        id="report_monthly",
    )

    if start:
        scheduler.start()
        logger.info("Scheduler started with timezone %s", settings.timezone)
    return scheduler
