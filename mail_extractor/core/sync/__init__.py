"""Mailbox synchronisation engine."""

from .cron import CronRunner, is_due
from .locks import SessionLockRegistry, session_locks
from .orchestrator import SyncOrchestrator

__all__ = ["CronRunner", "SessionLockRegistry", "SyncOrchestrator", "is_due", "session_locks"]
