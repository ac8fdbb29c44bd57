"""Configuration manager for persistent settings stored as JSON.

Holds runtime tuning only (timeouts, scheduler cadence, log level, database
location). Mailbox credentials and import policy are stored in the record
store's settings table.
"""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import (
    ConfigurationError,
    FileSystemError,
    InvalidConfigError,
    MailExtractorError,
    MissingConfigError,
)
from .logging import get_logger, log_call
from .paths import CONFIG_PATH, DATABASE_PATH

logger = get_logger(__name__)


class NetworkConfig(BaseModel):
    """Pydantic model for POP3 network settings."""

    connect_timeout: float = Field(default=30, gt=0)  # in seconds
    read_timeout: Optional[float] = Field(default=None, gt=0)  # None waits forever


class SchedulerConfig(BaseModel):
    """Pydantic model for the background scheduler."""

    import_enabled: bool = True
    import_check_minutes: int = 5
    cleanup_enabled: bool = True
    cleanup_hours: int = 24


class LoggingConfig(BaseModel):
    """Pydantic model for logging settings."""

    log_level: str = "INFO"


class DatabaseConfig(BaseModel):
    """Pydantic model for database settings."""

    database_path: str = str(DATABASE_PATH)


class AppConfig(BaseModel):
    """Pydantic model for overall application configuration."""

    version: str = "0.1.0"
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)


class ConfigManager:
    """Manages persistent application configuration."""

    _instance = None
    _initialized = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None):
        if not ConfigManager._initialized:
            self.path = Path(config_path) if config_path else CONFIG_PATH
            self.config = self._load_or_create_config()
            logger.info(f"Configuration loaded from {self.path}")
            ConfigManager._initialized = True

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the shared instance so the next call reloads from disk."""
        cls._instance = None
        cls._initialized = False

    def _load_or_create_config(self) -> AppConfig:
        """Load configuration from file or create default if not present."""

        if not self.path.exists():
            logger.info("No config file found, creating default configuration.")
            config = AppConfig()
            self._save_config(config)
            return config

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = AppConfig(**data)
            logger.debug("Configuration successfully loaded and validated.")
            return config

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise InvalidConfigError(f"Configuration file is not valid JSON: {str(e)}") from e
        except PydanticValidationError as e:
            logger.error(f"Failed to validate config file: {e}")
            raise InvalidConfigError(
                f"Configuration data does not match expected schema: {str(e)}"
            ) from e
        except OSError as e:
            raise FileSystemError(f"Failed to read configuration file: {self.path}") from e

    def _save_config(self, config: Optional[AppConfig] = None) -> None:
        """Save the current configuration to file."""

        config = config or self.config

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
            logger.debug("Configuration successfully saved.")
        except OSError as e:
            raise FileSystemError(f"Failed to write configuration file: {str(e)}") from e

    def get_config(self, key_path: str) -> Any:
        """Read a configuration value using a dot-separated key path."""

        obj: Any = self.config
        for key in key_path.split("."):
            if not isinstance(obj, BaseModel) or key not in type(obj).model_fields:
                raise MissingConfigError(f"Configuration key '{key_path}' does not exist")
            obj = getattr(obj, key)
        return obj

    @log_call
    def set_config(self, key_path: str, value: Any, persist: bool = True) -> None:
        """Set a configuration value using dot-separated key path.

        The whole model is re-validated, so string input from the command line
        is coerced to the field's type and bad values never reach the file.
        """

        self.get_config(key_path)
        keys = key_path.split(".")

        try:
            data = self.config.model_dump()
            node = data
            for key in keys[:-1]:
                node = node[key]
            node[keys[-1]] = value
            self.config = AppConfig.model_validate(data)
        except PydanticValidationError as e:
            raise InvalidConfigError(
                f"Invalid value for '{key_path}': {value!r}", details={"errors": e.errors()}
            ) from e

        if persist:
            self._save_config()

        logger.info(f"Config key '{key_path}' updated.")

    @log_call
    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""

        try:
            logger.info("Resetting configuration to default values.")
            self.config = AppConfig()
            self._save_config()
        except MailExtractorError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to reset configuration to defaults: {str(e)}") from e
