"""Base command class for CLI commands."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rich.console import Console

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.sync.cron import CronRunner
from mail_extractor.core.sync.orchestrator import SyncOrchestrator
from mail_extractor.utils.config_manager import ConfigManager
from mail_extractor.utils.console import get_console
from mail_extractor.utils.errors import ValidationError
from mail_extractor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandContext:
    """Everything a command handler needs, built once per CLI invocation."""

    store: RecordStore
    orchestrator: SyncOrchestrator
    config_manager: ConfigManager
    console: Optional[Console] = None

    def __post_init__(self):
        if self.console is None:
            self.console = get_console()

    @property
    def cron_runner(self) -> CronRunner:
        return CronRunner(self.store, self.orchestrator)


class BaseCommandHandler(ABC):
    """Base class for all command handlers."""

    def __init__(self, context: CommandContext):
        self.context = context
        self.store = context.store
        self.console = context.console
        self.logger = logger

    @abstractmethod
    async def execute(self, args: Dict[str, Any]) -> bool:
        """Run the command. Returns True on success."""

    ## Validation Methods

    @staticmethod
    def validate_positive_int(value: Any, name: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{name} must be a whole number, got {value!r}") from e
        if number <= 0:
            raise ValidationError(f"{name} must be greater than zero, got {number}")
        return number
