"""Scheduler for the periodic import and cleanup ticks."""

import asyncio
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from mail_extractor.core.sync.cron import CronRunner

from .config_manager import SchedulerConfig
from .errors import ConfigurationError, ErrorHandler, MailExtractorError, ValidationError
from .logging import async_log_call, get_logger, log_call

# Constants
VALID_INTERVAL_UNITS = ["seconds", "minutes", "hours", "days", "weeks"]

logger = get_logger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler whose jobs never overlap themselves and skip missed runs."""
    return AsyncIOScheduler(
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60}
    )


## Jobs


def make_import_job(runner: CronRunner) -> Callable:
    @async_log_call
    async def cron_import_job() -> None:
        try:
            await runner.cron_import()
        except MailExtractorError as e:
            ErrorHandler.handle(e, "Scheduled import", log_traceback=False)

    return cron_import_job


def make_cleanup_job(runner: CronRunner) -> Callable:
    @async_log_call
    async def cron_cleanup_job() -> None:
        try:
            deleted = await runner.cron_cleanup()
        except MailExtractorError as e:
            ErrorHandler.handle(e, "Scheduled cleanup", log_traceback=False)
            return
        if deleted:
            logger.info(f"Scheduled cleanup removed {deleted} email(s)")

    return cron_cleanup_job


## Registry


def _validate_interval(job_name: str, interval_tuple: tuple) -> bool:
    """Validate interval tuple format (value, unit)."""

    if not isinstance(interval_tuple, tuple) or len(interval_tuple) != 2:
        raise ValidationError(
            f"Invalid interval format for {job_name}: {interval_tuple} (must be tuple of (value, unit))"
        )

    value, unit = interval_tuple

    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(
            f"Invalid interval value for {job_name}: {value} (must be positive integer)"
        )

    if unit not in VALID_INTERVAL_UNITS:
        raise ValidationError(
            f"Invalid interval unit for {job_name}: {unit} (must be one of {VALID_INTERVAL_UNITS})"
        )

    return True


def _add_job_if_enabled(
    scheduler: AsyncIOScheduler,
    job_func: Callable,
    job_name: str,
    enabled: bool,
    interval: tuple,
) -> bool:
    """Add job to scheduler if enabled and validated."""

    if not enabled:
        logger.info(f"Job {job_name} is disabled")
        return False

    try:
        _validate_interval(job_name, interval)
    except ValidationError as e:
        logger.warning(f"Skipping job {job_name}: {e.message}")
        return False

    value, unit = interval
    scheduler.add_job(
        job_func,
        "interval",
        **{unit: value},
        id=job_name,
        name=job_name,
        replace_existing=True,
    )
    logger.info(f"Added job: {job_name} (interval: {value} {unit})")
    return True


def build_jobs_registry(runner: CronRunner, config: SchedulerConfig) -> dict:
    """Build registry of scheduled jobs from config."""

    return {
        "cron_import": {
            "enabled": config.import_enabled,
            "interval": (config.import_check_minutes, "minutes"),
            "func": make_import_job(runner),
        },
        "cron_cleanup": {
            "enabled": config.cleanup_enabled,
            "interval": (config.cleanup_hours, "hours"),
            "func": make_cleanup_job(runner),
        },
    }


@log_call
def start_scheduler(
    runner: CronRunner,
    config: SchedulerConfig,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> AsyncIOScheduler:
    """Register the enabled jobs and start the scheduler.

    Must be called from inside a running event loop.
    """
    scheduler = scheduler or create_scheduler()
    enabled_jobs = []

    for job_name, job in build_jobs_registry(runner, config).items():
        if _add_job_if_enabled(
            scheduler, job["func"], job_name, job["enabled"], job["interval"]
        ):
            enabled_jobs.append((job_name, job["interval"]))

    if not scheduler.running:
        try:
            scheduler.start()
        except RuntimeError as e:
            raise ConfigurationError(f"Failed to start scheduler: {e}") from e
        logger.info(f"Scheduler started with {len(enabled_jobs)} job(s): {enabled_jobs}")

    return scheduler


@async_log_call
async def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Stop scheduler without waiting for running jobs.

    ``AsyncIOScheduler.shutdown`` is scheduled on the event loop, so this
    yields once before reporting the scheduler stopped.
    """
    if scheduler.running:
        scheduler.shutdown(wait=False)
        await asyncio.sleep(0)
        logger.info("Scheduler stopped")
    else:
        logger.info("Scheduler is not running")
