"""Log repository - the user-facing import history."""

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import delete, insert, select

from mail_extractor.core.database.models import logs
from mail_extractor.core.database.utils import from_db_datetime, to_db_datetime

from .base import Repository


class LogRepository(Repository):

    async def add(self, kind: str, message: str, logged_at: datetime) -> None:
        query = insert(logs).values(
            log_type=kind, log_message=message, log_date=to_db_datetime(logged_at)
        )

        async with self._transaction("write log entry") as conn:
            await conn.execute(query)

    async def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Newest entries first."""
        query = select(logs).order_by(logs.c.log_date.desc(), logs.c.id.desc()).limit(limit)

        async with self._transaction("read log entries") as conn:
            rows = (await conn.execute(query)).all()

        return [
            {
                "id": row.id,
                "log_type": row.log_type,
                "log_message": row.log_message,
                "log_date": from_db_datetime(row.log_date),
            }
            for row in rows
        ]

    async def delete_older_than(self, cutoff: datetime) -> int:
        query = delete(logs).where(logs.c.log_date < to_db_datetime(cutoff))

        async with self._transaction("delete old log entries") as conn:
            result = await conn.execute(query)

        return result.rowcount or 0
