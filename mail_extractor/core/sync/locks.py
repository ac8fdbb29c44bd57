"""Per-mailbox session locks."""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator

from mail_extractor.utils.errors import SessionBusyError


class SessionLockRegistry:
    """One non-blocking lock per mailbox key.

    A second import for a mailbox that is already being imported fails
    immediately instead of queueing behind the first one.
    """

    def __init__(self):
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def is_locked(self, key: Hashable) -> bool:
        return self._lock_for(key).locked()

    @contextmanager
    def session(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        The lock stays held across awaits in the calling coroutine, which is
        only safe because it is never acquired blocking; a blocking acquire
        here would stall the event loop.

        Raises:
            SessionBusyError: If another session already holds it
        """
        lock = self._lock_for(key)
        if not lock.acquire(blocking=False):
            raise SessionBusyError(details={"mailbox": str(key)})
        try:
            yield
        finally:
            lock.release()


# Shared by every orchestrator in the process
session_locks = SessionLockRegistry()
