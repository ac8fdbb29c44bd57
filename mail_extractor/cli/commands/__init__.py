"""Command handlers for the mail-extractor CLI."""

from .base import BaseCommandHandler, CommandContext
from .maintenance import CleanupCommandHandler, InitCommandHandler
from .settings import ConfigCommandHandler, SettingsCommandHandler
from .sync import (
    CronCommandHandler,
    ImportCommandHandler,
    RunCommandHandler,
    TestConnectionCommandHandler,
)
from .view import EmailsCommandHandler, EmailShowCommandHandler, LogsCommandHandler

__all__ = [
    "BaseCommandHandler",
    "CleanupCommandHandler",
    "CommandContext",
    "ConfigCommandHandler",
    "CronCommandHandler",
    "EmailShowCommandHandler",
    "EmailsCommandHandler",
    "ImportCommandHandler",
    "InitCommandHandler",
    "LogsCommandHandler",
    "RunCommandHandler",
    "SettingsCommandHandler",
    "TestConnectionCommandHandler",
]
