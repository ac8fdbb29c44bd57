"""In-memory copy of the settings table."""

import asyncio
from typing import Awaitable, Callable, Dict, Optional


class SettingsCache:
    """Lazily loaded snapshot of all settings.

    Concurrent readers share a single reload; any write clears the snapshot.
    A load that was started before a write is returned to its caller but
    never kept, so the next read sees the written value.
    """

    def __init__(self, loader: Callable[[], Awaitable[Dict[str, str]]]):
        self._loader = loader
        self._values: Optional[Dict[str, str]] = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._values is not None

    async def get_all(self) -> Dict[str, str]:
        values = self._values
        if values is None:
            async with self._lock:
                values = self._values
                if values is None:
                    generation = self._generation
                    values = await self._loader()
                    if generation == self._generation:
                        self._values = values
        return dict(values)

    def clear(self) -> None:
        self._generation += 1
        self._values = None
