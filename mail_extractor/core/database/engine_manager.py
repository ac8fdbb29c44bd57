"""Engine manager wrapping SQLAlchemy connection pool."""

import asyncio
from pathlib import Path
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from mail_extractor.core.database.base import create_engine, dispose_engine
from mail_extractor.core.database.config import PoolConfig, get_config
from mail_extractor.utils.errors import DatabaseConnectionError
from mail_extractor.utils.logging import get_logger

logger = get_logger(__name__)


class EngineManager:
    """Manages SQLAlchemy async engine lifecycle and health."""

    def __init__(self, db_path: Path, config: Optional[PoolConfig] = None) -> None:
        self.db_path = Path(db_path)
        self.config = config or get_config()
        self._engine: Optional[AsyncEngine] = None
        self._lock = asyncio.Lock()

    async def get_engine(self) -> AsyncEngine:
        """Get or create the async engine.

        Raises:
            DatabaseConnectionError: If engine creation fails
        """
        async with self._lock:
            if self._engine is None:
                try:
                    self._engine = create_engine(self.db_path, config=self.config)
                except (OSError, SQLAlchemyError) as e:
                    raise DatabaseConnectionError(
                        "Failed to create database engine",
                        details={"db_path": str(self.db_path), "error": str(e)},
                    ) from e

        return self._engine

    async def close(self) -> None:
        """Dispose of engine and close all pooled connections."""
        async with self._lock:
            if self._engine is not None:
                engine, self._engine = self._engine, None
                await dispose_engine(engine)

    async def health_check(self) -> bool:
        """Run ``SELECT 1`` against the database."""
        try:
            engine = await self.get_engine()
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                healthy = result.scalar() == 1
        except (DatabaseConnectionError, SQLAlchemyError) as e:
            logger.error(f"Database health check failed: {e}")
            return False

        logger.debug(f"Database health check: {'OK' if healthy else 'FAILED'}")
        return healthy

    async def __aenter__(self):
        await self.get_engine()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
