"""Settings commands - mailbox settings and application config."""

import json
from typing import Any, Dict

from rich.table import Table
from rich.text import Text

from mail_extractor.core.database.models import DEFAULT_SETTINGS
from mail_extractor.core.validation.email import EmailSanitizer
from mail_extractor.core.validation.settings import FALSE_VALUES, TRUE_VALUES
from mail_extractor.utils.console import print_success
from mail_extractor.utils.errors import ValidationError
from mail_extractor.utils.logging import async_log_call

from .base import BaseCommandHandler

SECRET_SETTINGS = {"password", "app_password"}
BOOLEAN_SETTINGS = {"use_ssl", "auto_cleanup"}
POSITIVE_INT_SETTINGS = {"pop3_port", "import_frequency", "cleanup_days"}


def mask_secret(value: str) -> str:
    return "********" if value else ""


class SettingsCommandHandler(BaseCommandHandler):
    """Show or change the stored mailbox settings."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        if args.get("settings_command") == "set":
            return await self._set(args["key"], args["value"])
        return await self._show()

    async def _show(self) -> bool:
        settings = await self.store.get_settings()

        table = Table(title="Mailbox settings")
        table.add_column("Key", style="bold")
        table.add_column("Value")

        for key in DEFAULT_SETTINGS:
            value = settings.get(key, "")
            if key in SECRET_SETTINGS:
                value = mask_secret(value)
            table.add_row(key, Text(value))

        self.console.print(table)
        return True

    async def _set(self, key: str, value: str) -> bool:
        value = self.normalize(key, value)
        await self.store.save_setting(key, value)

        shown = mask_secret(value) if key in SECRET_SETTINGS else value
        await print_success(f"{key} = {shown}", self.console)
        return True

    @classmethod
    def normalize(cls, key: str, value: str) -> str:
        """Validate a setting value and return the form to store."""
        if key not in DEFAULT_SETTINGS:
            raise ValidationError(
                f"Unknown setting '{key}'. Known settings: {', '.join(DEFAULT_SETTINGS)}"
            )

        value = value.strip() if key not in SECRET_SETTINGS else value

        if key in BOOLEAN_SETTINGS:
            lowered = value.lower()
            if lowered in TRUE_VALUES:
                return "1"
            if lowered in FALSE_VALUES:
                return "0"
            raise ValidationError(f"{key} must be yes/no, got {value!r}")

        if key in POSITIVE_INT_SETTINGS:
            number = cls.validate_positive_int(value, key)
            if key == "pop3_port" and number > 65535:
                raise ValidationError(f"pop3_port must be at most 65535, got {number}")
            return str(number)

        if key == "email_address" and value:
            normalized = EmailSanitizer.sanitize_address(value)
            if not normalized:
                raise ValidationError(f"Invalid email address: {value}")
            return normalized

        return value


class ConfigCommandHandler(BaseCommandHandler):
    """Show or change the JSON application config."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        config_manager = self.context.config_manager

        if args.get("config_command") == "reset":
            config_manager.reset_to_defaults()
            await print_success(f"Config reset to defaults in {config_manager.path}", self.console)
            return True

        if args.get("config_command") == "set":
            config_manager.set_config(args["key"], self.parse_value(args["value"]))
            await print_success(
                f"{args['key']} = {config_manager.get_config(args['key'])!r}", self.console
            )
            return True

        self.console.print(Text(json.dumps(config_manager.config.model_dump(), indent=2)))
        return True

    @staticmethod
    def parse_value(raw: str) -> Any:
        """JSON literal when it is one (``10``, ``true``, ``null``), else the string."""
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
