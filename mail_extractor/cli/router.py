"""Routes CLI commands to their handlers."""

from typing import Any, Dict, Optional, Type

from mail_extractor.utils.logging import async_log_call, get_logger

from .commands import (
    BaseCommandHandler,
    CleanupCommandHandler,
    CommandContext,
    ConfigCommandHandler,
    CronCommandHandler,
    EmailShowCommandHandler,
    EmailsCommandHandler,
    ImportCommandHandler,
    InitCommandHandler,
    LogsCommandHandler,
    RunCommandHandler,
    SettingsCommandHandler,
    TestConnectionCommandHandler,
)

logger = get_logger(__name__)


class CommandRouter:
    """Routes commands to the matching handler class."""

    HANDLERS: Dict[str, Type[BaseCommandHandler]] = {
        "init": InitCommandHandler,
        "settings": SettingsCommandHandler,
        "config": ConfigCommandHandler,
        "test-connection": TestConnectionCommandHandler,
        "import": ImportCommandHandler,
        "cleanup": CleanupCommandHandler,
        "emails": EmailsCommandHandler,
        "show": EmailShowCommandHandler,
        "logs": LogsCommandHandler,
        "cron": CronCommandHandler,
        "run": RunCommandHandler,
    }

    def __init__(self, context: CommandContext):
        self.context = context

    @async_log_call
    async def route(self, command: str, args: Optional[Dict[str, Any]] = None) -> bool:
        """Route command to its handler.

        Returns:
            True if command executed successfully

        Raises:
            ValueError: If command is unknown
        """
        handler_class = self.HANDLERS.get(command)
        if handler_class is None:
            raise ValueError(f"Unknown command: {command}")

        handler = handler_class(self.context)
        return await handler.execute(args or {})
