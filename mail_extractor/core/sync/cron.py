"""Scheduled entry points: debounced import and retention cleanup."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.database.utils import utcnow
from mail_extractor.core.models.results import ImportResult
from mail_extractor.core.validation.settings import parse_bool, parse_int
from mail_extractor.utils.logging import get_logger

from .orchestrator import SyncOrchestrator

logger = get_logger(__name__)

LAST_IMPORT_KEY = "last_import_at"
LAST_RUN_TTL = timedelta(hours=12)
DEFAULT_IMPORT_FREQUENCY = 60  # minutes
DEFAULT_CLEANUP_DAYS = 30
LOG_RETENTION_DAYS = 7


def is_due(
    last_run: Optional[datetime],
    now: datetime,
    interval: timedelta,
    ttl: timedelta = LAST_RUN_TTL,
) -> bool:
    """Whether a debounced job should run now.

    The last-run marker is forgotten after ``ttl``, so an interval longer
    than the TTL effectively runs every ``ttl``. A marker from the future
    counts as stale.
    """
    if last_run is None:
        return True

    elapsed = now - last_run
    if elapsed < timedelta(0) or elapsed >= ttl:
        return True
    return elapsed >= interval


def format_cleanup_summary(count: int) -> str:
    if count == 1:
        return "1 old email deleted."
    return f"{count} old emails deleted."


def _parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Ignoring unreadable {LAST_IMPORT_KEY} value: {value!r}")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class CronRunner:
    """What the scheduler calls on every tick."""

    def __init__(
        self,
        store: RecordStore,
        orchestrator: Optional[SyncOrchestrator] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.orchestrator = orchestrator or SyncOrchestrator(store)
        self.clock = clock

    async def cron_import(self) -> Optional[ImportResult]:
        """Run an import unless the last one is more recent than ``import_frequency``.

        Returns:
            The import result, or None when the import was not due
        """
        settings = await self.store.get_settings()
        frequency = parse_int(settings.get("import_frequency"), DEFAULT_IMPORT_FREQUENCY)
        if frequency <= 0:
            frequency = DEFAULT_IMPORT_FREQUENCY

        now = self.clock()
        last_run = _parse_timestamp(settings.get(LAST_IMPORT_KEY, ""))
        if not is_due(last_run, now, timedelta(minutes=frequency)):
            logger.debug(f"Import not due yet (last run {last_run}, every {frequency} min)")
            return None

        result = await self.orchestrator.import_now()
        await self.store.save_setting(LAST_IMPORT_KEY, now.isoformat())
        logger.info(f"Scheduled import finished: {result.status.value} - {result.message}")
        return result

    async def cron_cleanup(self) -> Optional[int]:
        """Apply email retention when enabled, then trim the import log.

        Returns:
            Number of emails deleted, or None when auto cleanup is off
        """
        settings = await self.store.get_settings()
        deleted: Optional[int] = None

        if parse_bool(settings.get("auto_cleanup"), default=False):
            days = parse_int(settings.get("cleanup_days"), DEFAULT_CLEANUP_DAYS)
            if days <= 0:
                days = DEFAULT_CLEANUP_DAYS

            deleted = await self.store.cleanup_old_emails(days)
            if deleted > 0:
                await self.store.add_log("cleanup", format_cleanup_summary(deleted))

        await self.store.cleanup_old_logs(LOG_RETENTION_DAYS)
        return deleted
