"""Email repository with SQLAlchemy Core queries."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert

from mail_extractor.core.database.models import emails
from mail_extractor.core.database.utils import message_to_row, row_to_message, to_db_datetime
from mail_extractor.core.models.email import MailMessage
from mail_extractor.utils.logging import get_logger

from .base import Repository

logger = get_logger(__name__)


class EmailRepository(Repository):
    """Imported messages, unique by mailbox uid."""

    async def save(self, message: MailMessage, imported_at: datetime) -> None:
        """Insert or fully replace the message with the same uid."""
        values = message_to_row(message, imported_at)
        update_values = {key: value for key, value in values.items() if key != "email_uid"}

        query = insert(emails).values(**values)
        query = query.on_conflict_do_update(
            index_elements=["email_uid"],
            set_=update_values,
        )

        async with self._transaction("save email") as conn:
            await conn.execute(query)

        logger.debug(f"Saved email {message.uid}")

    async def find_by_uid(self, uid: str) -> Optional[MailMessage]:
        query = select(emails).where(emails.c.email_uid == uid)

        async with self._transaction("load email") as conn:
            row = (await conn.execute(query)).first()

        return row_to_message(row) if row else None

    async def find_all(self, limit: int = 20, offset: int = 0) -> List[MailMessage]:
        """Newest first by message date."""
        query = (
            select(emails)
            .order_by(emails.c.email_date.desc(), emails.c.id.desc())
            .limit(limit)
            .offset(offset)
        )

        async with self._transaction("list emails") as conn:
            rows = (await conn.execute(query)).all()

        return [row_to_message(row) for row in rows]

    async def count(self) -> int:
        query = select(func.count()).select_from(emails)

        async with self._transaction("count emails") as conn:
            return (await conn.execute(query)).scalar_one()

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete messages dated strictly before ``cutoff``. Returns rows removed."""
        query = delete(emails).where(emails.c.email_date < to_db_datetime(cutoff))

        async with self._transaction("delete old emails") as conn:
            result = await conn.execute(query)

        return result.rowcount or 0
