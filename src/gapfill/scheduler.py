"""Daemon mode: keep the schedule fresh and cross the day boundary on time."""

import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config, load_config
from .lifecycle import ScheduleManager
from .workflows import build_manager

logger = logging.getLogger(__name__)


def daily_reset(manager: ScheduleManager) -> None:
    """Cross the day boundary and build the new day's schedule."""
    manager.check_day_boundary()
    manager.regenerate()
    manager.sync.flush()
    logger.info("Daily reset complete")


def refresh_schedule(manager: ScheduleManager) -> None:
    """Pick up calendar and task changes."""
    try:
        manager.regenerate()
    except Exception as e:
        logger.error(f"Scheduled regeneration failed: {e}")
        return
    for error in manager.sync.drain_errors():
        logger.warning(f"Action sync error since last pass: {error}")


def setup_scheduler(manager: ScheduleManager, config: Config | None = None) -> BlockingScheduler:
    """Set up the daily reset and periodic regeneration jobs."""
    if config is None:
        config = load_config()

    # Both jobs drive the same manager, so they run on a single worker
    scheduler = BlockingScheduler(
        timezone=config.timezone or "America/Toronto",
        executors={"default": ThreadPoolExecutor(1)},
        job_defaults={"coalesce": True, "max_instances": 1},
    )

    hour, minute = map(int, config.daily_reset_time.split(":"))
    scheduler.add_job(
        daily_reset,
        CronTrigger(hour=hour, minute=minute),
        args=[manager],
        id="daily_reset",
    )
    logger.info(f"Scheduled daily reset at {config.daily_reset_time}")

    scheduler.add_job(
        refresh_schedule,
        IntervalTrigger(minutes=config.regenerate_interval_minutes),
        args=[manager],
        id="regenerate",
    )
    logger.info(f"Scheduled regeneration every {config.regenerate_interval_minutes} minutes")

    return scheduler


def run_daemon(config: Config | None = None) -> None:
    """Run the scheduler until interrupted."""
    if config is None:
        config = load_config()

    manager = build_manager(config)
    manager.load_synced()
    manager.regenerate()

    scheduler = setup_scheduler(manager, config)
    logger.info("Scheduler started")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
    finally:
        manager.sync.close()
