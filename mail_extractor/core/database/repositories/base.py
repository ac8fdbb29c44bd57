"""Base repository with shared engine access and error translation."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from mail_extractor.core.database.engine_manager import EngineManager
from mail_extractor.utils.errors import StoreError


class Repository:
    """Base class for table repositories."""

    def __init__(self, engine_manager: EngineManager):
        self.engine_mgr = engine_manager

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncConnection]:
        """Connection inside a transaction; SQLAlchemy errors become StoreError.

        Args:
            operation: Short description used in the error message
        """
        engine = await self.engine_mgr.get_engine()
        try:
            async with engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to {operation}", details={"error": str(e)}
            ) from e
