"""Maintenance commands - database setup and retention cleanup."""

from typing import Any, Dict

from mail_extractor.core.sync.cron import (
    DEFAULT_CLEANUP_DAYS,
    LOG_RETENTION_DAYS,
    format_cleanup_summary,
)
from mail_extractor.core.validation.settings import parse_int
from mail_extractor.utils.console import print_error, print_status, print_success
from mail_extractor.utils.logging import async_log_call

from .base import BaseCommandHandler


class InitCommandHandler(BaseCommandHandler):
    """Create the database and seed the default settings."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        await self.store.initialize()
        if not await self.store.engine_mgr.health_check():
            await print_error(f"Database at {self.store.db_path} is not responding", self.console)
            return False

        await print_success(f"Database ready at {self.store.db_path}", self.console)
        await print_status(
            f"Configuration file: {self.context.config_manager.path}", self.console
        )
        return True


class CleanupCommandHandler(BaseCommandHandler):
    """Delete old emails now, whether or not auto cleanup is on."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        if args.get("days") is not None:
            days = self.validate_positive_int(args["days"], "days")
        else:
            days = parse_int(await self.store.get_setting("cleanup_days"), DEFAULT_CLEANUP_DAYS)
            if days <= 0:
                days = DEFAULT_CLEANUP_DAYS

        deleted = await self.store.cleanup_old_emails(days)
        if deleted > 0:
            summary = format_cleanup_summary(deleted)
            await self.store.add_log("cleanup", summary)
            await print_success(summary, self.console)
        else:
            await print_status(f"No emails older than {days} day(s).", self.console)

        await self.store.cleanup_old_logs(LOG_RETENTION_DAYS)
        return True
