"""
APScheduler entry point: one cron job per configured scout.
"""
from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from scout import ScoutRuntime, get_runtime
from scout.errors import ConfigError, ScoutError

logger = logging.getLogger(__name__)


def trigger_for(schedule: str) -> CronTrigger:
    """Five-field crontab expression, or a bare minute field such as ``*/15``."""
    try:
        if len(schedule.split()) == 5:
            return CronTrigger.from_crontab(schedule, timezone="UTC")
        return CronTrigger(minute=schedule, timezone="UTC")
    except ValueError as exc:
        raise ConfigError(f"Invalid schedule {schedule!r}: {exc}") from exc


def build_scheduler(runtime: ScoutRuntime, scheduler: Optional[BlockingScheduler] = None) -> BlockingScheduler:
    scheduler = scheduler or BlockingScheduler(timezone="UTC")

    for name, config in runtime.scouts.items():

        def job(scout_name: str = name) -> None:
            try:
                result = runtime.run(scout_name)
            except ScoutError as exc:
                logger.error("Scheduled run of %s failed: %s", scout_name, exc)
                return
            logger.info("Scheduled run of %s: %s", scout_name, result.stats.to_dict())

        scheduler.add_job(
            job,
            trigger_for(config.schedule),
            id=f"scout_{name}",
            max_instances=1,
            coalesce=True,
        )
    return scheduler


def run_scheduler(runtime: Optional[ScoutRuntime] = None) -> None:
    scheduler = build_scheduler(runtime or get_runtime())
    logger.info("Starting scheduler with %d scout jobs", len(scheduler.get_jobs()))
    scheduler.start()


if __name__ == "__main__":  # pragma: no cover
    run_scheduler()
