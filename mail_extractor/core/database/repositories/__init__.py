from .email import EmailRepository
from .log import LogRepository
from .settings import SettingsRepository

__all__ = ["EmailRepository", "LogRepository", "SettingsRepository"]
