"""Record store - persistence facade used by the sync engine."""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from mail_extractor.core.database.base import metadata
from mail_extractor.core.database.config import PoolConfig
from mail_extractor.core.database.engine_manager import EngineManager
from mail_extractor.core.database.models import DEFAULT_SETTINGS
from mail_extractor.core.database.repositories import (
    EmailRepository,
    LogRepository,
    SettingsRepository,
)
from mail_extractor.core.database.settings_cache import SettingsCache
from mail_extractor.core.database.utils import utcnow
from mail_extractor.core.models.email import MailMessage
from mail_extractor.utils.errors import StoreError
from mail_extractor.utils.logging import get_logger
from mail_extractor.utils.paths import DATABASE_PATH

logger = get_logger(__name__)

DEFAULT_LOG_RETENTION_DAYS = 7


class RecordStore:
    """Settings, imported emails and the import log in one SQLite file.

    Every public operation initialises the schema on first use, so callers
    never have to call :meth:`initialize` themselves. Database failures
    surface as ``StoreError``.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[PoolConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialise the store.

        Args:
            db_path: SQLite database file, defaults to the data directory
            config: Pool and timeout tuning
            clock: Source of the current aware UTC time
        """
        self.db_path = Path(db_path) if db_path else DATABASE_PATH
        self.engine_mgr = EngineManager(self.db_path, config=config)
        self.clock = clock

        self.emails = EmailRepository(self.engine_mgr)
        self.settings = SettingsRepository(self.engine_mgr)
        self.logs = LogRepository(self.engine_mgr)
        self.settings_cache = SettingsCache(self.settings.get_all)

        self._initialized = False
        self._init_lock = asyncio.Lock()

    ## Lifecycle

    async def initialize(self) -> None:
        """Create the tables and seed default settings. Idempotent."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            engine = await self.engine_mgr.get_engine()
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(metadata.create_all)
            except SQLAlchemyError as e:
                raise StoreError(
                    "Failed to create database tables", details={"error": str(e)}
                ) from e

            await self.settings.seed(DEFAULT_SETTINGS)
            self.settings_cache.clear()
            self._initialized = True
            logger.info(f"Record store ready: {self.db_path}")

    async def close(self) -> None:
        await self.engine_mgr.close()
        self.settings_cache.clear()
        self._initialized = False

    async def __aenter__(self) -> "RecordStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    ## Settings

    async def get_settings(self) -> Dict[str, str]:
        await self.initialize()
        return await self.settings_cache.get_all()

    async def get_setting(self, key: str, default: str = "") -> str:
        value = (await self.get_settings()).get(key)
        return default if value is None else value

    async def save_setting(self, key: str, value: Any) -> None:
        await self.initialize()
        try:
            await self.settings.set(key, "" if value is None else str(value))
        finally:
            self.settings_cache.clear()
        logger.debug(f"Setting '{key}' saved")

    ## Emails

    async def save_email(self, message: MailMessage) -> None:
        """Upsert by uid; a second save of the same uid replaces every column."""
        await self.initialize()
        await self.emails.save(message, self.clock())

    async def get_emails_count(self) -> int:
        await self.initialize()
        return await self.emails.count()

    async def get_emails(self, limit: int = 20, offset: int = 0) -> List[MailMessage]:
        await self.initialize()
        return await self.emails.find_all(limit=limit, offset=offset)

    async def get_email(self, uid: str) -> Optional[MailMessage]:
        await self.initialize()
        return await self.emails.find_by_uid(uid)

    async def cleanup_old_emails(self, days: int) -> int:
        """Delete emails whose date is more than ``days`` days ago."""
        await self.initialize()
        deleted = await self.emails.delete_older_than(self.clock() - timedelta(days=days))
        logger.info(f"Deleted {deleted} email(s) older than {days} day(s)")
        return deleted

    ## Import log

    async def add_log(self, kind: str, message: str) -> None:
        await self.initialize()
        await self.logs.add(kind, message, self.clock())

    async def get_recent_logs(self, limit: int = 50) -> List[Dict[str, Any]]:
        await self.initialize()
        return await self.logs.recent(limit=limit)

    async def cleanup_old_logs(self, days: int = DEFAULT_LOG_RETENTION_DAYS) -> int:
        await self.initialize()
        deleted = await self.logs.delete_older_than(self.clock() - timedelta(days=days))
        logger.debug(f"Deleted {deleted} log entr(ies) older than {days} day(s)")
        return deleted
