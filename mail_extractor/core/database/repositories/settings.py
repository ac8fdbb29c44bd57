"""Settings repository - key/value strings."""

from typing import Dict, Mapping

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert

from mail_extractor.core.database.models import settings

from .base import Repository


class SettingsRepository(Repository):

    async def get_all(self) -> Dict[str, str]:
        query = select(settings.c.setting_key, settings.c.setting_value)

        async with self._transaction("read settings") as conn:
            rows = (await conn.execute(query)).all()

        return {row.setting_key: row.setting_value for row in rows}

    async def set(self, key: str, value: str) -> None:
        query = insert(settings).values(setting_key=key, setting_value=value)
        query = query.on_conflict_do_update(
            index_elements=["setting_key"],
            set_={"setting_value": value},
        )

        async with self._transaction("save setting") as conn:
            await conn.execute(query)

    async def seed(self, defaults: Mapping[str, str]) -> None:
        """Insert each default whose key is not stored yet."""
        async with self._transaction("seed settings") as conn:
            for key, value in defaults.items():
                query = insert(settings).values(setting_key=key, setting_value=value)
                await conn.execute(query.on_conflict_do_nothing(index_elements=["setting_key"]))
