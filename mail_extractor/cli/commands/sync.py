"""Sync commands - test the connection, import now, scheduled ticks."""

import asyncio
from typing import Any, Dict

from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.core.models.results import ResultStatus
from mail_extractor.utils.console import (
    print_error,
    print_status,
    print_success,
    print_warning,
)
from mail_extractor.utils.logging import async_log_call
from mail_extractor.utils.scheduler import start_scheduler, stop_scheduler

from .base import BaseCommandHandler

# command line option -> settings key
CONNECTION_OVERRIDES = {
    "server": "pop3_server",
    "port": "pop3_port",
    "username": "username",
    "password": "password",
    "app_password": "app_password",
    "use_ssl": "use_ssl",
}


class TestConnectionCommandHandler(BaseCommandHandler):
    """Log in to the mailbox and out again."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        values = await self.store.get_settings()
        for arg_name, setting_key in CONNECTION_OVERRIDES.items():
            if args.get(arg_name) is not None:
                values[setting_key] = args[arg_name]
        config = ConnectionConfig.from_mapping(values)

        await print_status(f"Connecting to {config.server or '?'}:{config.port}...", self.console)
        result = await self.context.orchestrator.test_connection(config)

        if result.success:
            await print_success(result.message, self.console)
        else:
            await print_error(result.message, self.console)
        return result.success


class ImportCommandHandler(BaseCommandHandler):
    """Import every message in the mailbox now."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        await print_status("Importing emails...", self.console)
        result = await self.context.orchestrator.import_now()

        if result.status == ResultStatus.SUCCESS:
            await print_success(result.message, self.console)
        elif result.status == ResultStatus.NO_MESSAGES:
            await print_status(result.message, self.console)
        elif result.status == ResultStatus.BUSY:
            await print_warning(result.message, self.console)
        else:
            await print_error(result.message, self.console)

        return result.success


class CronCommandHandler(BaseCommandHandler):
    """One scheduler tick, for use from a system crontab."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        runner = self.context.cron_runner

        result = await runner.cron_import()
        if result is None:
            await print_status("Import not due yet.", self.console)
        elif result.success:
            await print_success(result.message, self.console)
        else:
            await print_error(result.message, self.console)

        deleted = await runner.cron_cleanup()
        if deleted:
            await print_status(f"Cleanup removed {deleted} email(s).", self.console)

        return result is None or result.success


class RunCommandHandler(BaseCommandHandler):
    """Keep running and fire the scheduled jobs until interrupted."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        scheduler_config = self.context.config_manager.config.scheduler
        scheduler = start_scheduler(self.context.cron_runner, scheduler_config)
        await print_status(
            f"Scheduler running (import check every {scheduler_config.import_check_minutes} min, "
            f"cleanup every {scheduler_config.cleanup_hours} h). Press Ctrl+C to stop.",
            self.console,
        )

        try:
            await asyncio.Event().wait()
        finally:
            await stop_scheduler(scheduler)

        return True
